[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kafkaops"
version = "1.0.22"
description = "KafkaOperation resource model and a reconciler that resets Kafka topics by temporarily shrinking retention"
requires-python = ">=3.10"
dependencies = []
keywords = ["kafka", "kubernetes", "operator", "reconciler", "topic", "retention"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["kafkaops"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
