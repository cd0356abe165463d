#!/usr/bin/env python3

import os
from setuptools import setup, find_packages

here = os.path.abspath(os.path.dirname(__file__))

readme_path = os.path.join(here, "README.md")
with open(readme_path, encoding="utf-8") as f:
    long_description = f.read()

version_path = os.path.join(here, "lambdaci", "version.py")
version_dict = {}
with open(version_path) as f:
    exec(f.read(), version_dict)
__version__ = version_dict["__version__"]


def read_requirements(filename):
    with open(os.path.join(here, filename), encoding="utf-8") as f:
        return [line.strip() for line in f if not line.startswith("#") and line.strip()]


install_requires = read_requirements("requirements.txt")
extras_require = {"test": read_requirements("requirements.test.txt")}

setup(
    name="lambda-ci",
    version=__version__,
    description="Build Go functions from a source tree and deploy them to AWS Lambda",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Topic :: Software Development :: Build Tools",
        "Topic :: System :: Software Distribution",
    ],
    keywords="serverless, faas, lambda, aws, deployment, ci",
    packages=find_packages(where=here, exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "lambda-ci=lambdaci.cli:main",
        ],
    },
)
