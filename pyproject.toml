[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "emitsec"
version = "0.1.0"
description = "Channel parsing, security keys, key ciphers and licences for a pub/sub message broker"
requires-python = ">=3.10"
dependencies = []
keywords = ["pubsub", "mqtt", "security", "xtea", "salsa20", "murmur3", "license"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security :: Cryptography",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["emitsec"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
