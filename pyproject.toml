[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "netreplay"
version = "0.1.0"
description = "Record, replay and verify packet-level traces of simulated networks"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "network",
    "simulation",
    "trace",
    "replay",
    "verification",
    "quic",
    "congestion-control",
    "delay-tolerant-networking",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["netreplay"]

[tool.hatch.build.targets.sdist]
include = ["netreplay", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
