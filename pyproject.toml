[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cogito"
version = "0.1.0"
description = "Reasoning-chain state for LLM agents: thoughts, notes, sessions, event signals and session steps"
requires-python = ">=3.10"
dependencies = []
keywords = ["llm", "agents", "reasoning", "chain-of-thought", "session", "embeddings", "events"]
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
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["cogito"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
