"""
Setup configuration for HRA (Hospital Readmission Analytics) package.
"""
from setuptools import setup, find_packages

with open("HRA/README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="hra",
    version="1.0.0",
    author="Analytics Team",
    description="30-day readmission analytics for hospital admission records",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "snowflake-snowpark-python[pandas]>=1.34.0",
        "cryptography>=3.4.8",
        "pandas>=1.5.0",
        "numpy>=1.23.0",
        "python-dateutil>=2.8.2",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "factory-boy>=3.2",
        ],
    },
    entry_points={
        "console_scripts": [
            "hra-readmissions=HRA.pipeline:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Healthcare Industry",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
