"""Lightweight in-process metric primitives: gauges, counters and labelled gauges."""

from __future__ import annotations

import threading


class Gauge:
    """A value that can be set to any number."""

    def __init__(self, name: str = "", documentation: str = "") -> None:
        self.name = name
        self.documentation = documentation
        self._value = 0.0
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    def __repr__(self) -> str:
        return f"Gauge(name={self.name!r}, value={self.value!r})"


class Counter:
    """A monotonically increasing value."""

    def __init__(self, name: str = "", documentation: str = "") -> None:
        self.name = name
        self.documentation = documentation
        self._value = 0.0
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def inc(self, amount: float = 1.0) -> None:
        """Increase the counter; a counter can never go down."""
        if amount < 0:
            raise ValueError("counters can only be incremented by non-negative amounts")
        with self._lock:
            self._value += amount

    def __repr__(self) -> str:
        return f"Counter(name={self.name!r}, value={self.value!r})"


class GaugeVec:
    """A family of gauges distinguished by label values."""

    def __init__(self, name: str = "", labelnames: tuple[str, ...] | list[str] = (),
                 documentation: str = "") -> None:
        self.name = name
        self.labelnames = tuple(labelnames)
        self.documentation = documentation
        self._children: dict[tuple[str, ...], Gauge] = {}
        self._lock = threading.Lock()

    def labels(self, *args: str) -> Gauge:
        """Return the gauge for the given label values, creating it on first use."""
        if len(args) != len(self.labelnames):
            raise ValueError(
                f"expected {len(self.labelnames)} label values, got {len(args)}"
            )
        key = tuple(str(arg) for arg in args)
        with self._lock:
            gauge = self._children.get(key)
            if gauge is None:
                gauge = Gauge(self.name, self.documentation)
                self._children[key] = gauge
            return gauge

    def children(self) -> dict[tuple[str, ...], Gauge]:
        """A snapshot of every labelled gauge created so far."""
        with self._lock:
            return dict(self._children)