#!/usr/bin/env python3
import os
from typing import List

from setuptools import find_packages, setup

DESCRIPTION = "Library linking and offline transaction signing for Ethereum contract deployment"
VERSION = "0.1.0"


def read_requirements(path: str) -> List[str]:
    assert os.path.isfile(path)
    with open(path) as requirements:
        return requirements.read().split()


requirements = read_requirements("requirements.txt")

config = {
    "version": VERSION,
    "scripts": [],
    "name": "ethlinker",
    "description": DESCRIPTION,
    "license": "MIT",
    "keywords": "ethereum contract linking deployment transaction signing",
    "install_requires": requirements,
    "extras_require": {"dev": read_requirements("requirements-dev.txt")},
    "packages": find_packages(),
    "include_package_data": True,
    "python_requires": ">=3.8",
    "classifiers": [
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Natural Language :: English",
        "Programming Language :: Python :: 3",
    ],
    "entry_points": {"console_scripts": ["ethlinker = ethlinker.deploy.__main__:main"]},
    "zip_safe": False,
    "package_data": {"ethlinker": ["py.typed"]},
}

setup(**config)
