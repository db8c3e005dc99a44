[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "actlocal"
version = "0.1.0"
description = "Building blocks for running CI workflow jobs locally: executors, an artifact server, git helpers, plan reports and run configuration."
requires-python = ">=3.10"
keywords = [
    "ci",
    "workflows",
    "actions",
    "executor",
    "artifacts",
    "git",
    "local-runner",
]
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
    "Topic :: Software Development :: Build Tools",
    "Topic :: Software Development :: Testing",
]
dependencies = [
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["actlocal"]

[tool.hatch.build.targets.sdist]
include = [
    "actlocal",
    "tests",
    "pyproject.toml",
]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
