[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bafikit"
version = "0.1.0"
description = "Pure-Python building blocks of a hobby x86 operating system: hash map, RNG, allocator, boot structures, GDT, ELF loading, packets and DHCP."
requires-python = ">=3.10"
dependencies = []
keywords = ["operating-system", "elf", "dhcp", "allocator", "gdt", "udp", "hashmap"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Operating System",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["bafikit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
