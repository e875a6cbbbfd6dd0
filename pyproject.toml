[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rttterm"
version = "0.1.0"
description = "TELNET protocol state tracker with RFC 1143 option negotiation, and a small GDB remote-protocol client"
requires-python = ">=3.10"
dependencies = []
keywords = ["telnet", "rfc1143", "zmp", "mssp", "new-environ", "mccp2", "gdb", "remote-protocol"]
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
    "Topic :: Terminals :: Telnet",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
rtt-terminal = "rttterm.gdbremote:main"

[tool.hatch.build.targets.wheel]
packages = ["rttterm"]

[tool.pytest.ini_options]
addopts = "-ra"
