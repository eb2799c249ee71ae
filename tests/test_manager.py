#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
test_manager
------------

Tests for `shrine.daemon.manager` module.
"""

import os

import psutil
import pytest

from shrine.daemon.manager import (
    daemon_pid,
    start_daemon,
    stop_daemon,
)
from shrine.exceptions import DaemonNotRunningError
from shrine.repository import ShrineRepository
from shrine.utils import get_pid_path

from conftest import PASSWORD


@pytest.fixture
def shrine(shrine_file, key, no_git):
    repository = ShrineRepository(shrine_file, vcs=no_git)
    repository.initialize(key)
    with repository.mutation(key):
        repository.set('secret', b'password123')
    repository.close()
    return shrine_file


def test_no_pid_file(shrine, runtime_dir):
    assert daemon_pid(shrine, runtime_dir=runtime_dir) is None


def test_stale_pid_file(shrine, runtime_dir):
    pid_path = get_pid_path(shrine, runtime_dir=runtime_dir)
    pid_path.write_text(f'{max(psutil.pids()) + 100000}\n')
    assert daemon_pid(shrine, runtime_dir=runtime_dir) is None
    assert not pid_path.exists()


def test_live_pid_file(shrine, runtime_dir):
    pid_path = get_pid_path(shrine, runtime_dir=runtime_dir)
    pid_path.write_text(f'{os.getpid()}\n')
    assert daemon_pid(shrine, runtime_dir=runtime_dir) == os.getpid()


def test_stop_without_agent(shrine, runtime_dir):
    assert stop_daemon(shrine, runtime_dir=runtime_dir) is False


def test_start_unlock_stop(shrine, runtime_dir):
    client = start_daemon(shrine, ttl=30, runtime_dir=runtime_dir)
    try:
        pid = daemon_pid(shrine, runtime_dir=runtime_dir)
        assert pid is not None and pid != os.getpid()
        assert client.status()['state'] == 'locked'
        client.unlock(PASSWORD)
        assert client.get('secret') == b'password123'
        # Starting again reuses the running agent.
        again = start_daemon(shrine, runtime_dir=runtime_dir)
        assert again.status()['pid'] == pid
    finally:
        assert stop_daemon(shrine, runtime_dir=runtime_dir) is True
    assert daemon_pid(shrine, runtime_dir=runtime_dir) is None
    with pytest.raises(DaemonNotRunningError):
        client.status()


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
