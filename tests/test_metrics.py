import threading

import pytest

from spffy.metrics import Counter, Gauge, GaugeVec


def test_gauge_starts_at_zero():
    assert Gauge("g").value == 0.0


def test_gauge_set_keeps_last_value():
    gauge = Gauge("g")
    gauge.set(42)
    gauge.set(7.5)
    assert gauge.value == 7.5


def test_counter_inc_default_adds_one():
    counter = Counter("c")
    counter.inc()
    assert counter.value == 1


def test_counter_inc_amount():
    counter = Counter("c")
    counter.inc(2.5)
    assert counter.value == 2.5


def test_counter_is_monotonic():
    counter = Counter("c")
    previous = counter.value
    for amount in (0, 1, 3, 0.5):
        counter.inc(amount)
        assert counter.value >= previous
        previous = counter.value


def test_counter_rejects_negative():
    counter = Counter("c")
    with pytest.raises(ValueError):
        counter.inc(-1)


def test_counter_thread_safe_total():
    counter = Counter("c")

    def work():
        for _ in range(1000):
            counter.inc()

    threads = [threading.Thread(target=work) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert counter.value == 8 * 1000


def test_gauge_vec_returns_same_child_for_same_labels():
    vec = GaugeVec("v", ["key"])
    first = vec.labels("a")
    first.set(3)
    assert vec.labels("a") is first
    assert vec.labels("a").value == 3


def test_gauge_vec_children_are_independent():
    vec = GaugeVec("v", ["key"])
    vec.labels("a").set(1)
    vec.labels("b").set(2)
    assert vec.labels("a").value == 1
    assert set(vec.children()) == {("a",), ("b",)}


def test_gauge_vec_wrong_label_count():
    vec = GaugeVec("v", ["key"])
    with pytest.raises(ValueError):
        vec.labels("a", "b")
    with pytest.raises(ValueError):
        vec.labels()