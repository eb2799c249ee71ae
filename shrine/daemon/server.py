# -*- coding: utf-8 -*-

"""
Agent server.

A single asyncio event loop serves client connections on a Unix socket
(owner-only permissions) and runs the session expiry timer. Requests are
handled one at a time.
"""

import asyncio
import contextlib
import logging
import os
import signal
import socket
import threading

from pathlib import Path

from shrine.daemon.protocol import (
    MAX_MESSAGE_SIZE,
    ProtocolError,
    decode_value,
    encode_value,
    failure,
    pack,
    success,
    unpack,
)
from shrine.daemon.session import (
    Session,
    SessionState,
)
from shrine.exceptions import (
    AgentError,
    BadPasswordError,
    IntegrityError,
    SessionExpiredError,
    ShrineBaseException,
)
from shrine.git import ChangeKind
from shrine.kdf import (
    DerivedKey,
    verify,
)
from shrine.repository import ShrineRepository
from shrine.utils import (
    get_default_agent_ttl,
    get_pid_path,
    get_socket_path,
    DEFAULT_FILE_MODE,
)


class SessionDaemon(object):
    """
    Serve one shrine file, caching its key between ``unlock`` and expiry.

    States: ``LOCKED`` (no session), ``UNLOCKING`` (deriving and verifying
    a key), ``UNLOCKED`` (session active). The session expires ``ttl``
    seconds after unlock regardless of activity. Expiry, ``lock`` and
    shutdown all go through ``_clear_session()``.
    """

    logger = logging.getLogger(__name__)

    def __init__(
        self,
        shrine_file,
        socket_path=None,
        pid_path=None,
        ttl=None,
        vcs=None,
    ):
        self.shrine_file = Path(shrine_file).absolute()
        self.socket_path = (
            get_socket_path(self.shrine_file) if socket_path is None
            else Path(socket_path)
        )
        if pid_path is None:
            pid_path = (
                get_pid_path(self.shrine_file) if socket_path is None
                else self.socket_path.with_suffix('.pid')
            )
        self.pid_path = Path(pid_path)
        self.ttl = get_default_agent_ttl() if ttl is None else float(ttl)
        self.vcs = vcs
        self.state = SessionState.LOCKED
        self.ready = threading.Event()
        self._session = None
        self._timer = None
        self._loop = None
        self._stopping = None
        self._request_lock = None
        self._handlers = {
            'unlock': self._unlock,
            'get': self._get,
            'set': self._set,
            'remove': self._remove,
            'list': self._list,
            'import': self._import,
            'lock': self._lock,
            'status': self._status,
            'stop': self._stop,
        }

    # Lifecycle

    def run(self):
        """Serve until stopped (blocking)."""
        asyncio.run(self.serve())

    def shutdown(self):
        """Ask a running server to stop. Safe to call from any thread."""
        loop, stopping = self._loop, self._stopping
        if loop is None or stopping is None:
            return
        # The loop may close between the check and the call.
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(stopping.set)

    async def serve(self):
        self._loop = asyncio.get_running_loop()
        self._stopping = asyncio.Event()
        self._request_lock = asyncio.Lock()
        self._remove_stale_endpoint()
        old_umask = os.umask(0o177)
        try:
            server = await asyncio.start_unix_server(
                self._handle_connection,
                path=str(self.socket_path),
                limit=MAX_MESSAGE_SIZE,
            )
        finally:
            os.umask(old_umask)
        os.chmod(self.socket_path, DEFAULT_FILE_MODE)
        self.pid_path.write_text(f'{os.getpid()}\n')
        self._install_signal_handlers()
        self.logger.info("[+] agent for '%s' listening on '%s'",
                         self.shrine_file, self.socket_path)
        self.ready.set()
        try:
            async with server:
                await self._stopping.wait()
        finally:
            self._clear_session('shutdown')
            self._remove_endpoint()
            self._loop = None
            self.logger.info('[+] agent stopped')

    def _install_signal_handlers(self):
        if threading.current_thread() is not threading.main_thread():
            return
        for signum in (signal.SIGINT, signal.SIGTERM):
            self._loop.add_signal_handler(signum, self._stopping.set)

    def _remove_stale_endpoint(self):
        if not self.socket_path.exists():
            return
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(str(self.socket_path))
        except OSError:
            self.logger.debug("[*] removing stale socket '%s'",
                              self.socket_path)
            self.socket_path.unlink()
        else:
            raise RuntimeError(
                f"[-] an agent is already listening on '{self.socket_path}'")
        finally:
            sock.close()

    def _remove_endpoint(self):
        for path in (self.socket_path, self.pid_path):
            with contextlib.suppress(FileNotFoundError):
                path.unlink()

    # Session

    @property
    def session(self):
        return self._session

    def _start_session(self, key):
        self._clear_session('replaced')
        self._session = Session.start(key, self.shrine_file, self.ttl)
        self._timer = self._loop.call_later(self.ttl, self._expire)
        self.state = SessionState.UNLOCKED
        self.logger.info('[+] session unlocked for %.0f seconds', self.ttl)

    def _expire(self):
        self._timer = None
        self._clear_session('expired')

    def _clear_session(self, reason):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._session is not None:
            self._session.destroy()
            self._session = None
            self.logger.info('[-] session cleared (%s)', reason)
        self.state = SessionState.LOCKED

    def _require_session(self):
        session = self._session
        if session is None:
            raise SessionExpiredError()
        if session.expired():
            self._clear_session('expired')
            raise SessionExpiredError(msg='Session expired')
        return session

    async def _in_worker(self, body, session, action):
        """
        Run ``body(session, key, action)`` in a worker thread.

        The worker gets its own copy of the session key, so expiry can wipe
        the session key while the worker waits on the shrine lock or on
        version control. The loop keeps running and the expiry timer fires
        on time.
        """
        key = DerivedKey(session.key.expose(), session.key.params)
        try:
            return await asyncio.to_thread(body, session, key, action)
        except IntegrityError:
            # Re-keyed or replaced behind our back: the cached key is useless.
            if self._session is session:
                self._clear_session('key no longer opens shrine')
            raise SessionExpiredError(msg='Session expired')
        finally:
            key.wipe()

    @staticmethod
    def _check_session(session):
        if session.expired():
            raise SessionExpiredError(msg='Session expired')

    def _read(self, session, key, action):
        repository = ShrineRepository(self.shrine_file, vcs=self.vcs)
        self._check_session(session)
        repository.open(key)
        try:
            return action(repository)
        finally:
            repository.close()

    def _mutate(self, session, key, action):
        repository = ShrineRepository(self.shrine_file, vcs=self.vcs)
        with repository.locked():
            # The session may have expired while waiting for the lock.
            self._check_session(session)
            repository.open(key)
            try:
                action(repository)
                self._check_session(session)
                repository.persist(ChangeKind.UPDATE)
            finally:
                repository.close()

    # Connections

    async def _handle_connection(self, reader, writer):
        try:
            line = await reader.readline()
            if not line:
                return
            try:
                message = unpack(line)
            except ProtocolError as err:
                response = failure(AgentError(msg=str(err)))
            else:
                async with self._request_lock:
                    response = await self.dispatch(message)
            writer.write(pack(response))
            await writer.drain()
        except (ConnectionError, ValueError) as err:
            self.logger.warning('[!] dropped connection: %s', err)
        finally:
            writer.close()
            with contextlib.suppress(ConnectionError):
                await writer.wait_closed()

    async def dispatch(self, message):
        """Run one request and return its response message."""
        op = message.get('op')
        handler = self._handlers.get(op)
        if handler is None:
            return failure(AgentError(msg=f'Unknown operation {op!r}'))
        self.logger.debug("[*] handling '%s'", op)
        try:
            return await handler(message)
        except ShrineBaseException as err:
            return failure(err)
        except (KeyError, TypeError, ValueError) as err:
            return failure(AgentError(msg=f'Malformed {op!r} request: {err}'))

    # Operations

    def _derive_verified_key(self, password):
        repository = ShrineRepository(self.shrine_file, vcs=self.vcs)
        key = repository.derive_key(password)
        try:
            verify(key, repository.read_blob())
        except IntegrityError:
            key.wipe()
            raise BadPasswordError()
        return key

    async def _unlock(self, message):
        previous = self.state
        self.state = SessionState.UNLOCKING
        try:
            key = await asyncio.to_thread(
                self._derive_verified_key, message['password'])
        except ShrineBaseException:
            self.state = previous
            self.logger.info('[-] unlock failed')
            raise
        self._start_session(key)
        return success(expires_in=self.ttl)

    async def _get(self, message):
        session = self._require_session()
        path = message['path']
        value = await self._in_worker(
            self._read, session,
            lambda repository: encode_value(repository.get(path)))
        return success(value=value)

    async def _set(self, message):
        session = self._require_session()
        path = message['path']
        value = decode_value(message['value'])
        await self._in_worker(
            self._mutate, session,
            lambda repository: repository.set(path, value))
        return success()

    async def _remove(self, message):
        session = self._require_session()
        path = message['path']
        await self._in_worker(
            self._mutate, session,
            lambda repository: repository.remove(path))
        return success()

    async def _list(self, message):
        session = self._require_session()
        pattern = message.get('pattern')
        listing = await self._in_worker(
            self._read, session,
            lambda repository: repository.list(pattern))
        return success(
            entries=[entry.to_dict() for entry in listing.entries],
            count=listing.count,
        )

    async def _import(self, message):
        session = self._require_session()
        entries = [
            (path, decode_value(value)) for path, value in message['entries']
        ]

        def apply(repository):
            for path, value in entries:
                repository.set(path, value)

        await self._in_worker(self._mutate, session, apply)
        return success(count=len(entries))

    async def _lock(self, message):
        self._clear_session('lock')
        return success()

    async def _status(self, message):
        session = self._session
        return success(
            state=self.state.value,
            shrine=str(self.shrine_file),
            pid=os.getpid(),
            expires_in=(
                None if session is None else session.remaining()
            ),
        )

    async def _stop(self, message):
        self._stopping.set()
        return success()


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
