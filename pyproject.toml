[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dsolite"
version = "0.1.0"
description = "Building blocks for a sparse direct visual odometry back end: staged accumulators, projections, pixel selection and Schur-complement stitching"
requires-python = ">=3.10"
dependencies = ["numpy"]
keywords = ["visual odometry", "slam", "bundle adjustment", "schur complement", "hessian", "pixel selection"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Image Processing",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dsolite"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
