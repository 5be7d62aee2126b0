#!/usr/bin/env python
from setuptools import setup, find_packages

with open("README.md", "r") as fh:
    long_description = fh.read()

with open("VERSION") as version_file:
    version = version_file.read().strip()

requires = [
    "cerberus",
    "colorama",
    "coloredlogs",
    "click",
    "click-default-group",
    "pyyaml",
]

dev_requires = [
    "black",
    "bumpversion",
    "coverage",
    "flake8",
    "isort",
    "mypy",
    "pre-commit",
    "pytest",
    "pytest-cov",
    "pytest-mock",
    "types-PyYAML",
]

setup(
    name="grantscope",
    version=version,
    author="Grantscope Contributors",
    description="Declarative Snowflake access snapshots: diff, query, compress and verify",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    include_package_data=True,
    python_requires=">=3.8",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    tests_require=dev_requires,
    install_requires=requires,
    extras_require={"dev": dev_requires, "test": dev_requires},
    entry_points={"console_scripts": ["grantscope = grantscope.cli:main"]},
)
