#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Setup script for esgcore

ESG emissions and compliance scoring engine.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Single source of truth for the version lives in esgcore/_version.py
version_ns = {}
exec((Path(__file__).parent / "esgcore" / "_version.py").read_text(encoding="utf-8"), version_ns)
VERSION = version_ns["__version__"]

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
if readme_file.exists():
    long_description = readme_file.read_text(encoding="utf-8")
else:
    long_description = "esgcore - ESG Emissions & Compliance Scoring Engine"

setup(
    name="esgcore",
    version=VERSION,
    description="ESG emissions (Scope 1/2/3, PCAF financed) and compliance scoring engine",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT",
    python_requires=">=3.9",
    packages=find_packages(include=["esgcore", "esgcore.*"]),
    package_data={"esgcore": ["data/*.yaml"]},
    include_package_data=True,
    install_requires=[
        "pydantic>=2.0",
        "PyYAML>=6.0",
        "prometheus_client>=0.17",
        "typer>=0.9",
        "rich>=13.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "hypothesis>=6.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "esgcore=esgcore.cli.main:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
