[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bwtaligner"
version = "0.1.0"
description = "Burrows-Wheeler transform index construction, FM-index queries and short-read alignment helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["bioinformatics", "bwt", "fm-index", "suffix-array", "alignment", "sam", "fastq"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Bio-Informatics",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[project.scripts]
bwtgen = "bwtaligner.bwtgen:main"

[tool.hatch.build.targets.wheel]
packages = ["bwtaligner"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
