[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "msxserialkit"
version = "0.1.0"
description = "Serial-line BBS terminal with telnet negotiation and X/YMODEM file reception"
requires-python = ">=3.10"
dependencies = [
    "pyserial",
]
keywords = [
    "xmodem",
    "ymodem",
    "telnet",
    "bbs",
    "serial",
    "terminal",
    "msx",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: BBS",
    "Topic :: Communications :: File Sharing",
    "Topic :: Terminals :: Serial",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
msx-term = "msxserialkit.term:main"

[tool.hatch.build.targets.wheel]
packages = ["msxserialkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
