# -*- coding: utf-8 -*-

"""
Start, find and stop agent processes.
"""

import logging
import os
import sys
import time

from pathlib import Path
from subprocess import Popen, DEVNULL, STDOUT  # nosec

import psutil

from shrine.daemon.client import DaemonClient
from shrine.exceptions import (
    AgentError,
    DaemonNotRunningError,
)
from shrine.utils import (
    get_log_path,
    get_pid_path,
    get_runtime_dir,
    get_socket_path,
)


logger = logging.getLogger(__name__)

# Seconds to wait for a freshly spawned agent to answer.
STARTUP_TIMEOUT = 8.0
# Seconds to wait for a stopped agent to exit.
SHUTDOWN_TIMEOUT = 5.0
POLL_INTERVAL = 0.05


def daemon_pid(shrine_file, runtime_dir=None):
    """
    Return the pid of the live agent serving ``shrine_file``, or ``None``.

    Stale pid files (process gone) are removed.
    """
    pid_path = get_pid_path(shrine_file, runtime_dir=runtime_dir)
    try:
        pid = int(pid_path.read_text().strip())
    except (FileNotFoundError, ValueError):
        return None
    if not psutil.pid_exists(pid):
        logger.debug("[*] removing stale pid file '%s'", pid_path)
        try:
            pid_path.unlink()
        except FileNotFoundError:
            pass
        return None
    return pid


def start_daemon(shrine_file, ttl=None, runtime_dir=None,
                 timeout=STARTUP_TIMEOUT):
    """
    Spawn a detached agent for ``shrine_file`` and wait until it answers.

    Returns:
      DaemonClient: A client connected to the new (or already running)
      agent.
    """
    shrine_file = Path(shrine_file).absolute()
    if runtime_dir is None:
        runtime_dir = get_runtime_dir()
    client = DaemonClient.for_shrine(shrine_file, runtime_dir=runtime_dir)
    if client.is_running():
        logger.info('[+] agent already running')
        return client
    socket_path = get_socket_path(shrine_file, runtime_dir=runtime_dir)
    log_path = get_log_path(shrine_file, runtime_dir=runtime_dir)
    cmd = [
        sys.executable, '-m', 'shrine.daemon',
        '--shrine', str(shrine_file),
        '--socket', str(socket_path),
        '--pid-file', str(get_pid_path(shrine_file, runtime_dir=runtime_dir)),
    ]
    if ttl is not None:
        cmd.extend(['--ttl', str(ttl)])
    logger.debug('[*] spawning agent: %s', ' '.join(cmd))
    fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
    with os.fdopen(fd, 'ab') as log:
        process = Popen(  # nosec
            cmd,
            stdin=DEVNULL,
            stdout=log,
            stderr=STDOUT,
            start_new_session=True,
            close_fds=True,
        )
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if client.is_running():
            logger.info('[+] started agent (pid %d)', process.pid)
            return client
        if process.poll() is not None:
            raise AgentError(
                msg=f"Agent exited with status {process.returncode}"
                    f" (see '{log_path}')")
        time.sleep(POLL_INTERVAL)
    raise AgentError(msg=f"Agent did not start (see '{log_path}')")


def stop_daemon(shrine_file, runtime_dir=None, timeout=SHUTDOWN_TIMEOUT):
    """
    Stop the agent serving ``shrine_file``.

    Returns:
      bool: ``True`` if an agent was stopped.
    """
    client = DaemonClient.for_shrine(shrine_file, runtime_dir=runtime_dir)
    pid = daemon_pid(shrine_file, runtime_dir=runtime_dir)
    try:
        client.stop()
    except DaemonNotRunningError:
        if pid is None:
            return False
        # Socket gone but process alive: ask it the hard way.
        psutil.Process(pid).terminate()
    if pid is not None:
        try:
            psutil.Process(pid).wait(timeout=timeout)
        except psutil.NoSuchProcess:
            pass
        except psutil.TimeoutExpired:
            raise AgentError(msg=f'Agent (pid {pid}) did not exit')
    logger.info('[+] stopped agent')
    return True


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
