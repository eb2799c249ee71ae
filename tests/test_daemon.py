#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
test_daemon
-----------

Tests for the `shrine.daemon` package (agent server, client, protocol)
and the warm/cold path selection in `shrine.unlock`.
"""

import asyncio
import fcntl
import json
import os
import socket
import stat
import threading
import time

import pytest

from shrine.daemon import (
    DaemonClient,
    SessionDaemon,
)
from shrine.daemon.protocol import (
    ProtocolError,
    failure,
    pack,
    raise_for_response,
    request,
    unpack,
)
from shrine.daemon.session import (
    Session,
    SessionState,
)
from shrine.exceptions import (
    AgentError,
    BadPasswordError,
    DaemonNotRunningError,
    IntegrityError,
    SecretNotFoundError,
    SessionExpiredError,
)
from shrine.repository import (
    ShrineRepository,
    convert,
)
from shrine.unlock import (
    LocalSecrets,
    SessionSecrets,
    perform,
)
from shrine.utils import (
    get_socket_path,
    LOCK_FILENAME,
)

from conftest import PASSWORD


@pytest.fixture
def shrine(shrine_file, key, no_git):
    repository = ShrineRepository(shrine_file, vcs=no_git)
    repository.initialize(key)
    with repository.mutation(key):
        repository.set('secret', b'password123')
    repository.close()
    return shrine_file


@pytest.fixture
def start_agent(shrine, runtime_dir, no_git):
    started = []

    def _start(ttl=60, socket_path=None):
        agent = SessionDaemon(
            shrine,
            socket_path=socket_path or runtime_dir / 'agent.sock',
            ttl=ttl,
            vcs=no_git,
        )
        thread = threading.Thread(target=agent.run, daemon=True)
        thread.start()
        assert agent.ready.wait(5)
        started.append((agent, thread))
        return agent, DaemonClient(agent.socket_path, timeout=10)

    yield _start
    for agent, thread in started:
        agent.shutdown()
        thread.join(5)


@pytest.fixture
def agent(start_agent):
    return start_agent()


def contents(shrine_file, password=PASSWORD):
    repository = ShrineRepository(shrine_file)
    repository.open(repository.derive_key(password))
    try:
        return {p: bytes(v) for p, v in repository.store.items()}
    finally:
        repository.close()


class Test_Protocol(object):

    def test_pack_unpack(self):
        message = request('get', path='a/b')
        assert unpack(pack(message)) == {'op': 'get', 'path': 'a/b'}

    def test_unknown_operation(self):
        with pytest.raises(ProtocolError):
            request('explode')

    @pytest.mark.parametrize('line', [b'not json\n', b'[1, 2]\n', b'\xff\n'])
    def test_bad_message(self, line):
        with pytest.raises(ProtocolError):
            unpack(line)

    def test_errors_cross_the_wire(self):
        response = failure(SecretNotFoundError(secret='a/b'))
        assert response == {
            'ok': False,
            'error': 'SecretNotFoundError',
            'message': 'Secret not found: a/b',
        }
        with pytest.raises(SecretNotFoundError):
            raise_for_response(response)

    def test_unknown_errors_become_agent_errors(self):
        response = failure(RuntimeError('boom'))
        assert response['error'] == 'AgentError'
        with pytest.raises(AgentError):
            raise_for_response({'ok': False, 'error': 'SystemExit'})


class Test_SessionValue(object):

    def test_fixed_expiry(self, key, shrine_file):
        session = Session.start(key, shrine_file, ttl=10)
        now = session.created_at
        assert session.remaining(now + 4) == pytest.approx(6)
        assert not session.expired(now + 9.9)
        assert session.expired(now + 10)
        assert session.remaining(now + 20) == 0

    def test_destroy_wipes_key(self, key, shrine_file):
        session = Session.start(key, shrine_file, ttl=10)
        session.destroy()
        assert key.wiped
        assert session.expired()


class Test_Endpoint(object):

    def test_socket_owner_only(self, agent):
        server, _ = agent
        mode = stat.S_IMODE(os.stat(server.socket_path).st_mode)
        assert mode == 0o600

    def test_pid_file(self, agent):
        server, _ = agent
        assert int(server.pid_path.read_text()) == os.getpid()

    def test_status(self, agent):
        server, client = agent
        status = client.status()
        assert status['state'] == 'locked'
        assert status['shrine'] == str(server.shrine_file)
        assert status['expires_in'] is None
        assert client.is_running()

    def test_no_agent(self, runtime_dir):
        client = DaemonClient(runtime_dir / 'missing.sock')
        with pytest.raises(DaemonNotRunningError):
            client.status()
        assert not client.is_running()

    def test_second_agent_refused(self, agent, shrine):
        server, _ = agent
        other = SessionDaemon(shrine, socket_path=server.socket_path)
        with pytest.raises(RuntimeError):
            asyncio.run(other.serve())

    def test_stale_socket_replaced(self, start_agent, runtime_dir):
        stale = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        stale.bind(str(runtime_dir / 'agent.sock'))
        stale.close()
        _, client = start_agent()
        assert client.status()['state'] == 'locked'

    def test_malformed_request(self, agent):
        server, _ = agent
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.connect(str(server.socket_path))
        sock.sendall(b'garbage\n')
        response = json.loads(sock.makefile('rb').readline())
        sock.close()
        assert response['ok'] is False
        assert response['error'] == 'AgentError'

    def test_stop(self, start_agent):
        server, client = start_agent()
        client.stop()
        deadline = time.monotonic() + 5
        while server.socket_path.exists() and time.monotonic() < deadline:
            time.sleep(0.05)
        assert not server.socket_path.exists()
        assert not server.pid_path.exists()
        assert not client.is_running()


class Test_Session(object):

    def test_requests_need_unlock(self, agent):
        _, client = agent
        with pytest.raises(SessionExpiredError):
            client.get('secret')

    def test_bad_password(self, agent):
        server, client = agent
        with pytest.raises(BadPasswordError):
            client.unlock('wrong')
        assert client.status()['state'] == 'locked'
        assert server.session is None

    def test_get_set_remove_list(self, agent, shrine):
        _, client = agent
        assert client.unlock(PASSWORD) == 60
        assert client.get('secret') == b'password123'
        client.set('db/password', b'hunter2')
        client.set('bin', bytes(range(256)))
        assert client.list().paths == ('bin', 'db/password', 'secret')
        assert client.list('^db/').count == 1
        client.remove('bin')
        with pytest.raises(SecretNotFoundError):
            client.get('bin')
        with pytest.raises(SecretNotFoundError):
            client.remove('bin')
        assert contents(shrine) == {
            'secret': b'password123',
            'db/password': b'hunter2',
        }

    def test_import(self, agent, shrine):
        _, client = agent
        client.unlock(PASSWORD)
        secrets = SessionSecrets(client)
        lines = ['key1=val1#comment', '#a comment', '', 'key2=val2==']
        assert secrets.import_lines(lines, prefix='env/') == 2
        assert secrets.get('env/key2') == b'val2=='
        assert contents(shrine)['env/key1'] == b'val1'

    def test_status_unlocked(self, agent):
        _, client = agent
        client.unlock(PASSWORD)
        status = client.status()
        assert status['state'] == SessionState.UNLOCKED.value
        assert 0 < status['expires_in'] <= 60

    def test_lock(self, agent):
        server, client = agent
        client.unlock(PASSWORD)
        key = server.session.key
        client.lock()
        assert key.wiped
        assert server.state is SessionState.LOCKED
        with pytest.raises(SessionExpiredError):
            client.get('secret')

    def test_expiry(self, start_agent):
        server, client = start_agent(ttl=0.5)
        client.unlock(PASSWORD)
        key = server.session.key
        assert client.get('secret') == b'password123'
        time.sleep(1.0)
        with pytest.raises(SessionExpiredError):
            client.get('secret')
        assert key.wiped
        assert client.status()['state'] == 'locked'

    def test_activity_does_not_extend_session(self, start_agent):
        _, client = start_agent(ttl=1.0)
        client.unlock(PASSWORD)
        deadline = time.monotonic() + 0.8
        while time.monotonic() < deadline:
            client.get('secret')
            time.sleep(0.1)
        time.sleep(0.5)
        with pytest.raises(SessionExpiredError):
            client.get('secret')

    def test_expiry_while_waiting_for_lock(self, start_agent, shrine):
        server, client = start_agent(ttl=0.5)
        client.unlock(PASSWORD)
        key = server.session.key
        results = []

        def late_set():
            try:
                client.set('late', b'x')
            except SessionExpiredError as err:
                results.append(err)
            else:
                results.append(None)

        thread = threading.Thread(target=late_set)
        fd = os.open(shrine.parent / LOCK_FILENAME, os.O_RDWR | os.O_CREAT)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
            thread.start()
            time.sleep(1.5)
            # The expiry timer fired although a write is waiting for the lock.
            assert key.wiped
            assert server.state is SessionState.LOCKED
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)
        thread.join(10)
        assert len(results) == 1
        assert isinstance(results[0], SessionExpiredError)
        assert 'late' not in contents(shrine)

    def test_list_metadata(self, agent):
        _, client = agent
        client.unlock(PASSWORD)
        client.set('secret', b'changed')
        client.set('bin', bytes(range(256)))
        entries = {entry.path: entry for entry in client.list().entries}
        assert entries['bin'].mode == 'bin'
        assert entries['bin'].updated_at is None
        assert entries['secret'].mode == 'txt'
        assert entries['secret'].updated_by == entries['secret'].created_by
        assert entries['secret'].updated_at >= entries['secret'].created_at

    def test_rekeyed_behind_our_back(self, agent, shrine, no_git):
        server, client = agent
        client.unlock(PASSWORD)
        convert(shrine, PASSWORD, 'password2', vcs=no_git)
        with pytest.raises(SessionExpiredError):
            client.get('secret')
        assert server.session is None
        client.unlock('password2')
        assert client.get('secret') == b'password123'

    def test_shutdown_clears_session(self, start_agent):
        server, client = start_agent()
        client.unlock(PASSWORD)
        key = server.session.key
        client.stop()
        deadline = time.monotonic() + 5
        while not key.wiped and time.monotonic() < deadline:
            time.sleep(0.05)
        assert key.wiped


class Test_Perform(object):

    @staticmethod
    def no_password():
        raise AssertionError('password should not be needed')

    def test_cold_path_without_agent(self, shrine, runtime_dir, no_git):
        used = []

        def action(secrets):
            used.append(secrets)
            return secrets.get('secret')

        value = perform(
            shrine, lambda: PASSWORD, action,
            runtime_dir=runtime_dir, vcs=no_git)
        assert value == b'password123'
        assert isinstance(used[0], LocalSecrets)

    def test_cold_path_wrong_password(self, shrine, runtime_dir, no_git):
        with pytest.raises(IntegrityError):
            perform(
                shrine, lambda: 'wrong', lambda s: s.get('secret'),
                runtime_dir=runtime_dir, vcs=no_git)

    def test_warm_path(self, shrine, runtime_dir, start_agent):
        _, client = start_agent(
            socket_path=get_socket_path(shrine, runtime_dir=runtime_dir))
        client.unlock(PASSWORD)
        value = perform(
            shrine, self.no_password, lambda s: (s.warm, s.get('secret')),
            runtime_dir=runtime_dir)
        assert value == (True, b'password123')

    def test_locked_agent_falls_back(self, shrine, runtime_dir,
                                     start_agent, no_git):
        start_agent(
            socket_path=get_socket_path(shrine, runtime_dir=runtime_dir))
        value = perform(
            shrine, lambda: PASSWORD, lambda s: (s.warm, s.get('secret')),
            runtime_dir=runtime_dir, vcs=no_git)
        assert value == (False, b'password123')

    def test_same_results_on_both_paths(self, shrine, runtime_dir,
                                        start_agent, no_git):
        cold = LocalSecrets(shrine, lambda: PASSWORD, vcs=no_git)
        _, client = start_agent()
        client.unlock(PASSWORD)
        warm = SessionSecrets(client)
        assert cold.list().paths == warm.list().paths
        assert cold.dump() == warm.dump()


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
