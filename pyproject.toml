[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "notevault"
version = "0.1.0"
description = "SQLite-backed storage for nested folders, notes and tags, with import, export and markdown link parsing"
requires-python = ">=3.10"
dependencies = []
keywords = ["notes", "note-taking", "sqlite", "tags", "markdown"]
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
    "Topic :: Office/Business :: News/Diary",
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["notevault"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
