[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "echobench"
version = "0.1.0"
description = "Multi-threaded TCP and UDP echo benchmarks, including a stop-and-wait ARQ variant"
requires-python = ">=3.10"
dependencies = []
keywords = ["benchmark", "echo", "tcp", "udp", "arq", "latency", "networking"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Benchmark",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
echobench = "echobench.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["echobench"]

[tool.pytest.ini_options]
addopts = "-ra"
