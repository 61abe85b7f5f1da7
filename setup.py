#!/usr/bin/env python3
from setuptools import setup, find_packages

setup(
    name="hypstep",
    version="0.1.0",
    description="Explicit SSP Runge-Kutta time stepping with guaranteed maximal wavespeed estimates for compressible flow",
    author="hypstep developers",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.20.0",
        "scipy>=1.7.0",
        "matplotlib>=3.4.0",
    ],
    extras_require={
        "yaml": ["PyYAML>=5.4"],
        "mpi": ["mpi4py>=3.1.0"],
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "hypstep=hypstep.cli.app:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering",
    ],
)
