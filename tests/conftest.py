# -*- coding: utf-8 -*-

import shutil
import tempfile

from pathlib import Path

import pytest

from shrine.kdf import (
    KdfParams,
    derive,
)


# Low work factor to keep key derivation fast in tests.
TEST_ITERATIONS = 1000
PASSWORD = 'password'


@pytest.fixture
def params():
    return KdfParams.generate(TEST_ITERATIONS)


@pytest.fixture
def key(params):
    derived = derive(PASSWORD, params)
    yield derived
    derived.wipe()


@pytest.fixture
def shrine_file(tmp_path):
    return tmp_path / 'shrine'


@pytest.fixture
def runtime_dir():
    # Unix socket paths are limited to ~100 characters, too short for
    # pytest's tmp_path.
    path = Path(tempfile.mkdtemp(prefix='shrine-'))
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def no_git():
    """Version control adapter that never touches git."""
    class NoGit(object):
        def __init__(self):
            self.recorded = []

        def record(self, change, config):
            self.recorded.append(change)
            return True

    return NoGit()


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
