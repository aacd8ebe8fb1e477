[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "i8086emu"
version = "0.1.0"
description = "An Intel 8086 CPU emulator: registers, flags, ALU and instruction decoder"
requires-python = ">=3.10"
dependencies = []
keywords = ["8086", "x86", "emulator", "cpu", "intel", "retro"]
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
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["i8086emu"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
