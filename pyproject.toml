[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "srcfind"
version = "0.1.0"
description = "Linker bookkeeping, source catalogues and reliability measurement for source finding in radio data cubes"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "astronomy",
    "radio astronomy",
    "source finding",
    "reliability",
    "kernel density estimation",
]
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
    "Topic :: Scientific/Engineering :: Astronomy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["srcfind"]

[tool.pytest.ini_options]
addopts = "-ra"
