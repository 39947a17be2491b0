#!/usr/bin/python3
# Setup file for gitdisassemble
# Copyright (C) 2024 The gitdisassemble developers
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later

from setuptools import setup

setup(
    name="gitdisassemble",
    version="0.1.0",
    description="Convert git history to editable directories and back",
    license="Apache-2.0 OR GPL-2.0-or-later",
    python_requires=">=3.10",
    packages=["gitdisassemble"],
    package_data={"": ["py.typed"]},
    entry_points={
        "console_scripts": ["gitdisassemble=gitdisassemble.cli:_main"],
    },
    extras_require={
        "dev": ["ruff==0.14.0", "mypy==1.18.2"],
        "test": ["pytest"],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX",
        "Topic :: Software Development :: Version Control",
    ],
)
