[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "connectwire"
version = "0.1.0"
description = "Building blocks for Connect, gRPC and gRPC-Web style RPC clients: status codes, gzip compression pools, unary stream rules and client stream views."
requires-python = ">=3.10"
keywords = ["rpc", "connect", "grpc", "streaming", "status-codes", "gzip"]
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
    "Topic :: Software Development :: Object Brokering",
    "Topic :: Internet :: WWW/HTTP",
    "Typing :: Typed",
]
dependencies = []

[project.optional-dependencies]
test = [
    "pytest",
    "hypothesis",
]

[tool.hatch.build.targets.wheel]
packages = ["connectwire"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
