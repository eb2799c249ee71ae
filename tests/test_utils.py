#!/usr/bin/env python

"""
test_shrine.utils
-----------------

Tests for `shrine.utils` module.
"""

import argparse
import io
import os
import stat
import unittest

from pathlib import Path
from unittest.mock import patch

import pytest

import shrine.utils
from shrine.exceptions import (
    InvalidPatternError,
    InvalidSecretPathError,
)


class Test_Utils(unittest.TestCase):

    def setUp(self):
        self.paths = [
            'db/prod/password',
            'db/test/password',
            'api/token',
        ]

    def tearDown(self):
        pass

    def test_umask(self):
        assert shrine.utils.umask('0o077') == 0o077

    def test_umask_not_octal(self):
        with pytest.raises(argparse.ArgumentTypeError,
                           match=r'value \(077\) must be expressed'):
            shrine.utils.umask('077')

    def test_umask_out_of_range(self):
        with pytest.raises(argparse.ArgumentTypeError):
            shrine.utils.umask('0o1777')

    def test_kdf_iterations(self):
        assert shrine.utils.kdf_iterations('1000') == 1000
        with pytest.raises(argparse.ArgumentTypeError):
            shrine.utils.kdf_iterations('999')

    def test_positive_number(self):
        assert shrine.utils.positive_number('0.5') == 0.5
        with pytest.raises(argparse.ArgumentTypeError):
            shrine.utils.positive_number('0')

    def test_compile_pattern_all(self):
        for pattern in [None, '']:
            matches = shrine.utils.compile_pattern(pattern)
            assert all(matches(path) for path in self.paths)

    def test_compile_pattern_search(self):
        matches = shrine.utils.compile_pattern('password$')
        assert [p for p in self.paths if matches(p)] == self.paths[:2]

    def test_compile_pattern_invalid(self):
        with pytest.raises(InvalidPatternError):
            shrine.utils.compile_pattern('(')

    def test_secrets_tree(self):
        outfile = io.StringIO()
        shrine.utils.secrets_tree(self.paths, root='shrine', outfile=outfile)
        assert outfile.getvalue().splitlines() == [
            'shrine',
            '├── api',
            '│   └── token',
            '└── db',
            '    ├── prod',
            '    │   └── password',
            '    └── test',
            '        └── password',
        ]

    def test_secrets_tree_returns_lines(self):
        lines = shrine.utils.secrets_tree(['a'])
        assert lines == ['.', '└── a']


@pytest.mark.parametrize('path', ['a', 'a/b', 'a/b/c', 'A b/c.d'])
def test_valid_secret_path(path):
    assert shrine.utils.validate_secret_path(path) == path


@pytest.mark.parametrize('path', ['', '/', '/a', 'a/', 'a//b', None, 1])
def test_invalid_secret_path(path):
    with pytest.raises(InvalidSecretPathError):
        shrine.utils.validate_secret_path(path)


@pytest.mark.parametrize('value,expected', [
    ('true', True),
    ('TRUE', True),
    ('yes', True),
    ('false', False),
    ('Off', False),
    ('vi', 'vi'),
    ('', ''),
])
def test_parse_config_value(value, expected):
    assert shrine.utils.parse_config_value(value) == expected


@pytest.mark.parametrize('value,expected', [
    (True, True),
    ('true', True),
    (False, False),
    (None, False),
    ('nope', False),
])
def test_as_bool(value, expected):
    assert shrine.utils.as_bool(value) is expected


def test_format_config_value():
    assert shrine.utils.format_config_value(True) == 'true'
    assert shrine.utils.format_config_value(False) == 'false'
    assert shrine.utils.format_config_value('vi') == 'vi'


class Test_Defaults(object):

    def test_default_folder(self, monkeypatch, tmp_path):
        monkeypatch.setenv('SHRINE_FOLDER', str(tmp_path))
        assert shrine.utils.get_shrine_file() == tmp_path / 'shrine'

    def test_default_folder_is_cwd(self, monkeypatch):
        monkeypatch.delenv('SHRINE_FOLDER', raising=False)
        assert shrine.utils.get_default_folder() == Path(os.getcwd())

    def test_default_agent_ttl(self, monkeypatch):
        monkeypatch.delenv('SHRINE_AGENT_TTL', raising=False)
        assert shrine.utils.get_default_agent_ttl() == 900
        monkeypatch.setenv('SHRINE_AGENT_TTL', '60')
        assert shrine.utils.get_default_agent_ttl() == 60

    def test_runtime_dir_from_env(self, monkeypatch, tmp_path):
        runtime_dir = tmp_path / 'run'
        monkeypatch.setenv('SHRINE_RUNTIME_DIR', str(runtime_dir))
        assert shrine.utils.get_runtime_dir() == runtime_dir
        mode = stat.S_IMODE(os.stat(runtime_dir).st_mode)
        assert mode == 0o700

    def test_runtime_dir_xdg(self, monkeypatch, tmp_path):
        monkeypatch.delenv('SHRINE_RUNTIME_DIR', raising=False)
        monkeypatch.setenv('XDG_RUNTIME_DIR', str(tmp_path))
        assert shrine.utils.get_runtime_dir() == tmp_path / 'shrine'

    def test_endpoints_per_shrine(self, tmp_path):
        a = shrine.utils.get_socket_path(tmp_path / 'a' / 'shrine', tmp_path)
        b = shrine.utils.get_socket_path(tmp_path / 'b' / 'shrine', tmp_path)
        assert a != b
        assert a.parent == tmp_path
        assert a.suffix == '.sock'
        pid = shrine.utils.get_pid_path(tmp_path / 'a' / 'shrine', tmp_path)
        assert pid.stem == a.stem

    def test_prompt_password_confirm(self):
        with patch('getpass.getpass', side_effect=['pw', 'pw']):
            assert shrine.utils.prompt_password(confirm=True) == 'pw'
        with patch('getpass.getpass', side_effect=['pw', 'other']):
            with pytest.raises(RuntimeError):
                shrine.utils.prompt_password(confirm=True)

    def test_author(self):
        with patch('getpass.getuser', return_value='alice'), \
                patch('socket.gethostname', return_value='laptop'):
            assert shrine.utils.get_author() == 'alice@laptop'

    def test_author_without_login_name(self):
        with patch('getpass.getuser', side_effect=OSError('no user')), \
                patch('socket.gethostname', return_value='laptop'):
            assert shrine.utils.get_author() == f'{os.getuid()}@laptop'


if __name__ == '__main__':
    import sys
    sys.exit(unittest.main())

# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
