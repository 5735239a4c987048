[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "otelcol-upgrade"
version = "0.1.0"
description = "Upgrade routines and pod building blocks for OpenTelemetry Collector instances"
requires-python = ">=3.10"
keywords = ["opentelemetry", "collector", "kubernetes", "upgrade", "configuration"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "pyyaml>=6.0",
    "semver>=3.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[tool.hatch.build.targets.wheel]
packages = ["otelcol_upgrade"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
