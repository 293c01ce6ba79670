"""
fixpy: Declarative Fixpoint Equations

An engine for numeric quantities defined in terms of themselves:
self-referential cells resolved by bounded fixed-point iteration and
piecewise recurrences resolved by first-match pattern dispatch.
"""

from setuptools import setup, find_packages

setup(
    name="fixpy",
    version="1.0.0",
    description="Declarative fixpoint equations with memoized evaluation and bounded fixed-point iteration",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    author="fixpy developers",
    python_requires=">=3.10",
    packages=find_packages(include=["fixpy", "fixpy.*"]),
    install_requires=[
        "numpy>=1.24.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
        ]
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: Mathematics",
    ],
)
