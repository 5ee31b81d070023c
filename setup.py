#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
"""The setup.py file."""

import os
import sys

from setuptools import find_packages, setup
from setuptools.command.install import install


with open("src/evohome_listener/version.py") as fh:
    for line in fh:
        if line.strip().startswith("__version__"):
            VERSION = eval(line.split("=")[-1])
            break

URL = "https://github.com/evohome-listener/evohome_listener"

with open("README.md", "r") as fh:
    LONG_DESCRIPTION = fh.read()

with open("requirements.txt") as fh:
    REQUIREMENTS = [val.strip() for val in fh if val.strip()]


class VerifyVersionCommand(install):
    """Custom command to verify that the git tag matches our VERSION."""

    def run(self):
        tag = os.getenv("CIRCLE_TAG")
        if tag != VERSION:
            info = f"Git tag: {tag} does not match the version of this pkg: {VERSION}"
            sys.exit(info)


setup(
    name="evohome-listener",
    description="A zone listener & requester for evohome (RAMSES II) via an HGI80.",
    keywords=["ramses", "evohome", "hgi80", "heating"],
    url=URL,
    download_url=f"{URL}/archive/{VERSION}.tar.gz",
    install_requires=REQUIREMENTS,
    extras_require={
        "test": ["pytest>=7.0", "pytest-asyncio>=0.21", "PyYAML>=6.0"],
    },
    entry_points={
        "console_scripts": ["evohome-listener = evohome_cli.client:main"],
    },
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages("src", exclude=["tests", "docs"]),
    version=VERSION,
    license="MIT",
    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.11",
        "Topic :: Home Automation",
    ],
    cmdclass={
        "verify": VerifyVersionCommand,
    },
)
