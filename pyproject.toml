[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dbkernel"
version = "0.1.0"
description = "Database engine building blocks: a deadlock-detecting lock manager and iterator-model relational operators"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "database",
    "lock manager",
    "two-phase locking",
    "deadlock",
    "waits-for graph",
    "relational algebra",
    "iterator model",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dbkernel"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
