[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tubely"
version = "0.1.0"
description = "A small video metadata and thumbnail service with a SQLite store, served as a WSGI application."
requires-python = ">=3.10"
keywords = ["video", "thumbnails", "wsgi", "sqlite", "file-storage"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: Database",
]
dependencies = [
    "werkzeug",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
tubely = "tubely.app:main"

[tool.hatch.build.targets.wheel]
packages = ["tubely"]

[tool.pytest.ini_options]
addopts = "-ra"
