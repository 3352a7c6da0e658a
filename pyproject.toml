[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tihu"
version = "0.2.0"
description = "Speech synthesis front end driving an MBROLA process, with resampling and UTF-8 utilities"
requires-python = ">=3.10"
keywords = ["speech", "tts", "mbrola", "synthesis", "utf-8", "resampling"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Speech",
    "Topic :: Text Processing :: General",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["tihu"]

[tool.pytest.ini_options]
addopts = "-ra"
