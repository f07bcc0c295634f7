#!/usr/bin/env python

from setuptools import setup

setup(
    name="xctargets",
    version="0.3.0",
    packages=[
        "xctargets",
        "xctargets.details",
        "xctargets.details.tools",
        "xctargets.generators",
        "xctargets.generators.cocoapods",
        "xctargets.generators.xcode",
    ],
    python_requires=">=3.9",
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["xctargets = xctargets.__main__:main"]},
)
