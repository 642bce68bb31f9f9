#!/usr/bin/env python3
"""
Setup script for mcmctreer package.
"""

import re
from pathlib import Path

from setuptools import setup, find_packages

# Read the README file for long description
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding='utf-8')

# Read requirements from requirements.txt
requirements = []
requirements_path = this_directory / "requirements.txt"
if requirements_path.exists():
    requirements = requirements_path.read_text().strip().split('\n')
    requirements = [req.strip() for req in requirements if req.strip() and not req.startswith('#')]


def version():
    """Read the version from the package without importing it."""
    init = this_directory / "mcmctreer" / "__init__.py"
    match = re.search(r"^__version__ = ['\"]([^'\"]+)['\"]",
                      init.read_text(encoding='utf-8'), re.M)
    if match:
        return match.group(1)
    raise RuntimeError(f"Unable to find version string in {init}")


setup(
    name="mcmctreer",
    version=version(),
    description="Read MCMCTree output trees and estimate Cauchy calibration priors",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    keywords="phylogenetics bioinformatics divergence-times mcmctree paml calibration cauchy",
    python_requires=">=3.8",
    install_requires=requirements,
    extras_require={
        "dev": ["pytest>=6.0", "pytest-cov", "black", "flake8"],
    },
    entry_points={
        "console_scripts": [
            "mcmctreer=mcmctreer.cli:main",
        ],
    },
    zip_safe=False,
)
