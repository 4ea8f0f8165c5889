[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kindkit"
version = "0.12.0a0"
description = "Building blocks for managing local Kubernetes clusters: errors, command execution, file copying, terminal helpers and cluster configuration"
requires-python = ">=3.10"
dependencies = []
keywords = ["kubernetes", "cluster", "subprocess", "configuration", "terminal"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["kindkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
