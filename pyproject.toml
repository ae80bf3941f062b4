[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mirrorkeep"
version = "0.1.0"
description = "Interactive shell that keeps live mirror backups of directories and restores them"
requires-python = ">=3.10"
keywords = ["backup", "mirror", "sync", "filesystem", "watch"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Backup",
]
dependencies = [
    "watchdog",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
mirrorkeep = "mirrorkeep.main:main"

[tool.hatch.build.targets.wheel]
packages = ["mirrorkeep"]

[tool.pytest.ini_options]
addopts = "-ra"
