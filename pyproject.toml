[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "evreactor"
version = "0.1.0"
description = "A reactor-style event loop with file-descriptor channels, timers, cross-thread calls, loop threads and thread pools"
requires-python = ">=3.10"
dependencies = []
keywords = ["event loop", "reactor", "networking", "timers", "threads", "poll"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
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
packages = ["evreactor"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
