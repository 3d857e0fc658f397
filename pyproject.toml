[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rpcware"
version = "0.1.0"
description = "Composable RPC interceptors: call reporting, authentication, rate limiting and structured call logging."
requires-python = ">=3.10"
dependencies = []
keywords = ["rpc", "grpc", "middleware", "interceptors", "logging", "authentication", "rate-limiting"]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rpcware"]

[tool.hatch.build.targets.sdist]
include = ["rpcware", "tests", "README.md"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
