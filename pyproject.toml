[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "octopulse"
version = "0.1.0"
description = "Desktop notifications for GitHub pull request activity you participate in"
requires-python = ">=3.10"
keywords = ["github", "notifications", "pull-requests", "desktop", "dbus"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Version Control :: Git",
]
dependencies = [
    "httpx",
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
    "respx",
    "pillow",
    "httpx",
]

[project.scripts]
octopulse = "octopulse.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["octopulse"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
