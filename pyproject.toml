[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dorykernel"
version = "0.1.0"
description = "A simulated teaching kernel: priority round-robin scheduler, named semaphores, file descriptors, a command shell, dining philosophers and a module image packer."
requires-python = ">=3.10"
dependencies = []
keywords = ["kernel", "scheduler", "semaphores", "operating-system", "education", "simulation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Operating System",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
dory-shell = "dorykernel.shell:main"
dory-packer = "dorykernel.packer:main"

[tool.hatch.build.targets.wheel]
packages = ["dorykernel"]

[tool.pytest.ini_options]
addopts = "-ra"
