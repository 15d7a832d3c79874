#!/usr/bin/python3
# Setup file for get
# Copyright (C) 2023 The get contributors
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later

from setuptools import setup

tests_require: list[str] = []

setup(
    name="get-vcs",
    version="0.1.0",
    description="A minimal content-addressed version control engine",
    license="Apache-2.0 OR GPL-2.0-or-later",
    packages=["get"],
    package_data={"": ["py.typed"]},
    python_requires=">=3.10",
    install_requires=['typing_extensions >=4.0; python_version < "3.11"'],
    extras_require={
        "test": tests_require,
    },
    entry_points={"console_scripts": ["get = get.cli:_main"]},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Operating System :: POSIX",
        "Topic :: Software Development :: Version Control",
    ],
)
