[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gmicro"
version = "0.1.0"
description = "Small service toolkit: uint64 list helpers, config loading, request context, JSON RPC client, shutdown hooks and proto-to-SQL generation"
requires-python = ">=3.10"
keywords = ["microservice", "protobuf", "proto", "sql", "mysql", "config"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: Software Development :: Code Generators",
]
dependencies = [
    "pyyaml",
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
proto2gorm = "gmicro.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["gmicro"]

[tool.pytest.ini_options]
addopts = "-ra"
