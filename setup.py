#!/usr/bin/env python3
# =============================================================================
#  graphslick: setup.py
#
#  pyproject.toml only carries the build-system table and tool settings;
#  package metadata lives here.
#
#      pip install -e ".[dev]"
#      python -m pytest
# =============================================================================

from __future__ import annotations

import re
from pathlib import Path

from setuptools import setup, find_packages

_HERE = Path(__file__).resolve().parent


def _read_version() -> str:
    """Extract ``__version__`` from graphslick/__init__.py."""
    init = _HERE / "graphslick" / "__init__.py"
    text = init.read_text(encoding="utf-8")
    match = re.search(r'^__version__(?::\s*str)?\s*=\s*"([^"]+)"', text, re.MULTILINE)
    if match:
        return match.group(1)
    return "0.0.0"


def _read_long_description() -> str:
    readme = _HERE / "README.md"
    if readme.exists():
        return readme.read_text(encoding="utf-8")
    return ""


def _read_requirements() -> list[str]:
    """Read requirements.txt if it exists."""
    req_file = _HERE / "requirements.txt"
    if req_file.exists():
        lines = req_file.read_text(encoding="utf-8").splitlines()
        return [
            ln.strip()
            for ln in lines
            if ln.strip() and not ln.strip().startswith("#")
        ]
    return []


setup(
    name="graphslick",
    version=_read_version(),
    description=(
        "Group the basic blocks of a function's control-flow graph and "
        "view the grouped graph."
    ),
    long_description=_read_long_description(),
    long_description_content_type="text/markdown",
    license="MIT",
    author="graphslick contributors",
    python_requires=">=3.9",
    packages=find_packages(
        include=["graphslick", "graphslick.*"],
        exclude=["tests", "tests.*"],
    ),
    install_requires=_read_requirements(),
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "ruff>=0.4",
            "mypy>=1.10",
        ],
        "viz": [
            "graphviz>=0.20",
        ],
    },
    entry_points={
        "console_scripts": [
            "graphslick=graphslick.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Software Development :: Disassemblers",
    ],
    keywords=[
        "control-flow",
        "basic-block",
        "reverse-engineering",
        "graph",
    ],
    zip_safe=False,
)
