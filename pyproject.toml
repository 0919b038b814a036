[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sspop"
version = "0.13.0"
description = "Resource builders, status logic and manifest tooling for the SSP virtualization operator"
requires-python = ">=3.10"
keywords = [
    "kubernetes",
    "operator",
    "kubevirt",
    "templates",
    "clusterserviceversion",
    "olm",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
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

[project.scripts]
sspop-csv-generator = "sspop.csv_generator:main"

[tool.hatch.build.targets.wheel]
packages = ["sspop"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
