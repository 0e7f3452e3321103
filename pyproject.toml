[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bgzfkit"
version = "0.1.0"
description = "Blocked gzip (BGZF) reading, writing, seeking, block caching and chunk selection"
requires-python = ">=3.10"
dependencies = []
keywords = ["bgzf", "gzip", "bam", "tabix", "bioinformatics", "compression", "genomics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Bio-Informatics",
    "Topic :: System :: Archiving :: Compression",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["bgzfkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
