[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "smtpdkit"
version = "5.7.2"
description = "Building blocks for mail server add-ons: imsg framing, ChaCha-based randomness, string helpers, ordered trees and lookup tables."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "smtp",
    "mail",
    "imsg",
    "chacha",
    "base64",
    "red-black tree",
    "splay tree",
    "sqlite",
    "lookup table",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Email :: Mail Transport Agents",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["smtpdkit"]

[tool.hatch.build.targets.sdist]
include = ["smtpdkit", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
