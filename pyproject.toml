[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ryutools"
version = "0.1.0"
description = "Threading queues, workers, timers, packet framing, socket and WebSocket clients, a TCP server, and small string, file, JSON-option and YUV helpers"
requires-python = ">=3.10"
keywords = ["queue", "worker", "timer", "socket", "websocket", "packet", "yuv", "i420"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
    "Topic :: System :: Networking",
]
dependencies = [
    "websocket-client",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["ryutools"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
