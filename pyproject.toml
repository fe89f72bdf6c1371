[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "oscourse"
version = "0.1.0"
description = "Operating-systems exercises: a caching HTTP proxy, an HTTP GET request parser, a two-process pipeline and busy-waiting mutual-exclusion demos"
requires-python = ">=3.10"
dependencies = []
keywords = ["proxy", "http", "parser", "pipeline", "mutual exclusion", "peterson", "lru cache"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
oscourse-proxy = "oscourse.proxy_server:main"
oscourse-pipeline = "oscourse.pipeline:main"
oscourse-mutex = "oscourse.mutex:main"

[tool.hatch.build.targets.wheel]
packages = ["oscourse"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
