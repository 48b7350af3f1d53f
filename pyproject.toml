[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dbbackup"
version = "0.1.0"
description = "Scheduling, tar archiving, compression, hook scripts and retention pruning for database backups"
requires-python = ">=3.10"
dependencies = []
keywords = ["backup", "database", "dump", "prune", "retention", "cron", "tar", "gzip", "bzip2"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Backup",
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dbbackup"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
