[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "syncrocket"
version = "0.14.0"
description = "Client and file player for the Rocket sync tracker: keyframed, interpolated values for demos and presentations."
requires-python = ">=3.10"
dependencies = []
keywords = ["rocket", "sync-tracker", "demoscene", "keyframes", "animation", "interpolation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: Presentation",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
syncrocket = "syncrocket.demo:main"

[tool.hatch.build.targets.wheel]
packages = ["syncrocket"]

[tool.pytest.ini_options]
addopts = "-ra"
