#!/usr/bin/env python3
"""Simple setup script for development."""

from setuptools import setup, find_packages

setup(
    name="engine-manager",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "pyyaml>=6.0.1",
        "structlog>=24.1.0",
        "psutil>=5.9.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "engine-manager=engine_manager.__main__:main",
        ],
    },
)
