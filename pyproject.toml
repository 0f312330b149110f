[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "trainticket"
version = "0.1.0"
description = "A command-driven train ticket booking system with file-backed B+ tree storage"
requires-python = ">=3.10"
dependencies = []
keywords = ["train", "ticket", "booking", "b+ tree", "reservation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
trainticket = "trainticket.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["trainticket"]

[tool.pytest.ini_options]
addopts = "-ra"
