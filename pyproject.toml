[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tinynet"
version = "0.1.0"
description = "A small reactor-style TCP networking library: event loops, channels, timers, buffers and a multi-loop TCP server."
requires-python = ">=3.10"
dependencies = []
keywords = ["networking", "reactor", "event-loop", "tcp", "server", "timers"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tinynet"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
