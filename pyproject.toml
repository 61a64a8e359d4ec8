[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "scopegraph"
version = "0.6.0"
description = "A graph of variable scopes with inheritance, provided attributes and change listeners"
requires-python = ">=3.10"
dependencies = []
keywords = ["scope", "graph", "state", "variables", "reactive", "listeners"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["scopegraph"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
