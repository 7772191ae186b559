[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "relayhub"
version = "0.1.0"
description = "Chat channel naming, registry and routing for a game relay server"
requires-python = ">=3.10"
dependencies = []
keywords = ["game server", "relay", "chat channels", "mmorpg"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Games/Entertainment :: Role-Playing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["relayhub*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
