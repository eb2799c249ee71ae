# -*- coding: utf-8 -*-

"""
Synchronous client for the agent.
"""

import logging
import socket

from pathlib import Path

from shrine.daemon.protocol import (
    MAX_MESSAGE_SIZE,
    ProtocolError,
    decode_value,
    encode_value,
    pack,
    raise_for_response,
    request,
    unpack,
)
from shrine.exceptions import (
    AgentError,
    DaemonNotRunningError,
)
from shrine.codec import SecretInfo
from shrine.repository import Listing
from shrine.utils import get_socket_path


class DaemonClient(object):
    """
    Talk to the agent serving one shrine file.

    Every call opens a connection, sends one request and reads one
    response. A missing or dead endpoint raises ``DaemonNotRunningError``.
    """

    logger = logging.getLogger(__name__)

    def __init__(self, socket_path, timeout=None):
        self.socket_path = Path(socket_path)
        self.timeout = timeout

    @classmethod
    def for_shrine(cls, shrine_file, runtime_dir=None, timeout=None):
        return cls(
            get_socket_path(shrine_file, runtime_dir=runtime_dir),
            timeout=timeout,
        )

    def request(self, op, **kwargs):
        """Send one request and return the (successful) response."""
        message = request(op, **kwargs)
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(self.timeout)
        try:
            try:
                sock.connect(str(self.socket_path))
            except (FileNotFoundError, ConnectionRefusedError):
                raise DaemonNotRunningError(endpoint=str(self.socket_path))
            sock.sendall(pack(message))
            response = self._read_line(sock)
        except OSError as err:
            raise AgentError(msg=f'Agent connection failed: {err}')
        finally:
            sock.close()
        if not response:
            raise AgentError(msg='Agent closed the connection')
        try:
            return raise_for_response(unpack(response))
        except ProtocolError as err:
            raise AgentError(msg=str(err))

    @staticmethod
    def _read_line(sock):
        chunks = []
        size = 0
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
            size += len(chunk)
            if chunk.endswith(b'\n') or size > MAX_MESSAGE_SIZE:
                break
        return b''.join(chunks)

    def is_running(self):
        try:
            self.status()
        except (DaemonNotRunningError, AgentError):
            return False
        return True

    def unlock(self, password):
        if isinstance(password, bytes):
            password = password.decode('utf-8')
        return self.request('unlock', password=password)['expires_in']

    def get(self, path):
        return decode_value(self.request('get', path=path)['value'])

    def set(self, path, value):
        if isinstance(value, str):
            value = value.encode('utf-8')
        self.request('set', path=path, value=encode_value(value))

    def remove(self, path):
        self.request('remove', path=path)

    def list(self, pattern=None):
        response = self.request('list', pattern=pattern)
        return Listing(tuple(
            SecretInfo.from_dict(entry) for entry in response['entries']
        ))

    def import_entries(self, entries):
        """Set several ``(path, value)`` entries in one write."""
        payload = [
            [path, encode_value(value.encode('utf-8')
                                if isinstance(value, str) else value)]
            for path, value in entries
        ]
        return self.request('import', entries=payload)['count']

    def lock(self):
        self.request('lock')

    def status(self):
        return self.request('status')

    def stop(self):
        self.request('stop')


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
