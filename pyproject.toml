[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "scifind"
version = "0.1.0"
description = "Structured errors, retry and circuit-breaker policies, and data models for scientific paper search"
requires-python = ">=3.10"
dependencies = []
keywords = ["errors", "retry", "circuit-breaker", "papers", "search", "models"]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["scifind"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
