[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kubemci"
version = "0.4.0"
description = "Keep the firewall rules and backend services of a multicluster Kubernetes ingress in their desired state."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "kubernetes",
    "ingress",
    "multicluster",
    "load-balancer",
    "firewall",
    "backend-service",
]
classifiers = [
    "Development Status :: 4 - Beta",
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
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["kubemci"]

[tool.hatch.build.targets.sdist]
include = ["kubemci", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
