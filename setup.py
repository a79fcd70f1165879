#!/usr/bin/env python3
"""
Socketmap Setup Script
======================
Allows installation of the socketmap package.

Usage:
    pip install -e .           # Development install
    pip install -e .[test]     # Development install with test tools
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="socketmap",
    version="1.0.0",
    packages=find_packages(exclude=("tests", "tests.*", "scripts")),
    python_requires=">=3.10",
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "socketmap=socketmap.server:main",
        ],
    },
)
