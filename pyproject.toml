[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "foyle"
version = "0.1.0"
description = "Notebook cell and block conversion, example learning and in-memory retrieval for an AI notebook assistant"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["notebook", "embeddings", "retrieval", "ulid", "vscode", "assistant"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
foyle-web-assets = "foyle.webassets:main"

[tool.hatch.build.targets.wheel]
packages = ["foyle"]

[tool.pytest.ini_options]
addopts = "-ra"
