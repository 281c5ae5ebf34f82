#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# Standard library
from setuptools import setup, find_packages


# List of packages
pkgs = find_packages(include=["lfcfilter", "lfcfilter.*"])

# Create the build
setup(
    name="lfcfilter",
    packages=pkgs,
    install_requires=[
        "PyYAML",
        "argread",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    description="Git clean/smudge filter for large file control",
    entry_points={
        "console_scripts": [
            "lfc-filter=lfcfilter.cli:main",
        ]
    },
    python_requires=">=3.7",
    version="1.0.0")
