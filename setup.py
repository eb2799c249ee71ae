#!/usr/bin/env python
# -*- coding: utf-8 -*-

# Setup script for the `shrine' module.

import codecs
import os
import re

from setuptools import setup


PROJECT = 'shrine'

long_description = (
    'Local, file-based encrypted secrets manager with an optional '
    'password caching agent'
)
description_file = 'README.rst'

try:
    with open(description_file) as readme_file:
        long_description = readme_file.read()
except IOError:
    pass


def get_contents(*args):
    """Get the contents of a file relative to the source distribution directory.""" # noqa
    with codecs.open(get_absolute_path(*args), 'r', 'UTF-8') as handle:
        return handle.read()


def get_absolute_path(*args):
    """Transform relative pathnames into absolute pathnames."""
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), *args)


def get_version():
    """Get the release number from the package without importing it."""
    match = re.search(
        r"^__release__ = '([^']+)'",
        get_contents('shrine', '__init__.py'),
        re.MULTILINE,
    )
    return match.group(1)


setup(
    setup_requires=['setuptools>=40.9.0', 'pip>=20.2.2'],
    python_requires='>=3.9',
    version=get_version(),
    install_requires=get_contents('requirements.txt'),
    extras_require={
        'test': get_contents('requirements-test.txt'),
    },
    long_description=long_description,
    long_description_content_type='text/x-rst',
    name=PROJECT,
    namespace_packages=[],
    packages=[
        'shrine',
        'shrine.cli',
        'shrine.cli.agent',
        'shrine.cli.config',
        'shrine.cli.secrets',
        'shrine.daemon',
    ],
    entry_points={
        'console_scripts': [
            'shrine = shrine.__main__:main',
        ],
    },
    test_suite='tests',
)

# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
