[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "graphquery"
version = "1.0.0"
description = "A small HTTP server that loads a weighted directed graph and answers shortest-path and prime-weight-path queries."
requires-python = ">=3.10"
dependencies = []
keywords = ["graph", "shortest-path", "prime", "http", "server"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
graphquery = "graphquery.server:main"

[tool.hatch.build.targets.wheel]
packages = ["graphquery"]

[tool.pytest.ini_options]
addopts = "-ra"
