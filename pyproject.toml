[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dmsview"
version = "0.1.0"
description = "Loader, skeletal animation and software display-list renderer for DMS 3D model files"
requires-python = ">=3.10"
dependencies = []
keywords = ["3d", "model", "skeletal-animation", "triangle-strips", "palette", "dms"]
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
    "Topic :: Multimedia :: Graphics :: 3D Rendering",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
dmsview = "dmsview.render:main"
dmsview-bench = "dmsview.benchmark:main"

[tool.hatch.build.targets.wheel]
packages = ["dmsview"]

[tool.pytest.ini_options]
addopts = "-ra"
