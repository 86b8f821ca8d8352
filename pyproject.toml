[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "framepipe"
version = "0.1.0"
description = "Composable frame-processing pipelines: pins, sources, filters, sinks, colour conversion, cubemap panoramas and recording"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["video", "pipeline", "yuv", "rgba", "equirectangular", "cubemap", "hevc", "sei", "png", "csv"]
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
    "Topic :: Multimedia :: Video :: Conversion",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["framepipe"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
