[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "uarchsim"
version = "0.1.0"
description = "Branch predictors, a branch target buffer and cache prefetchers for trace-driven microarchitecture simulation"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "microarchitecture",
    "simulation",
    "branch-prediction",
    "prefetcher",
    "perceptron",
    "btb",
    "cache",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Education",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["uarchsim"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
