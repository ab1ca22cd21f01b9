[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "diegorep"
version = "0.1.0"
description = "Cell representative helpers: LRP and task conversions, rep configuration, start-up checks, a process runner and a small HTTP(S) probe client"
requires-python = ">=3.10"
dependencies = [
    "cryptography",
]
keywords = ["cell", "container", "lrp", "scheduler", "rep", "configuration"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
gocurl = "diegorep.gocurl:main"

[tool.hatch.build.targets.wheel]
packages = ["diegorep"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
