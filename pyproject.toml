[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "spffy"
version = "0.1.0"
description = "Caches for SPF lookup results: a size-bounded in-memory cache and a Redis-backed cache, with in-process metrics"
requires-python = ">=3.10"
dependencies = [
    "redis",
]
keywords = ["spf", "dns", "cache", "redis", "metrics"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Name Service (DNS)",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["spffy"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
