#!/usr/bin/env python
"""
WorkerSet - a desired-state reconciliation controller for fleets of identical workers
"""
from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Define required packages
required_packages = [
    "pydantic>=2.0.0",  # For data validation of resources and settings
    "pyyaml>=6.0",      # For configuration file support
]

setup(
    name="workerset-controller",
    version="0.1.0",
    author="DarsheeeGamer",
    author_email="cleaverdeath@gmail.com",
    description="A reconciliation controller that keeps a fleet of worker replicas at a desired count",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=required_packages,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    include_package_data=True,
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
