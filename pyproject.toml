[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rasdecode"
version = "0.1.0"
description = "Decoders for machine check and vendor-specific hardware error records"
requires-python = ">=3.10"
dependencies = []
keywords = ["ras", "mce", "machine-check", "hardware-errors", "hisilicon", "ampere", "intel"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Hardware",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rasdecode"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
