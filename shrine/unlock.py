# -*- coding: utf-8 -*-

"""
Ways of reaching the secrets of a shrine file.

Commands don't care whether the key comes from a password typed now or
from an agent session started earlier. Both variants below offer the same
methods (``get``, ``set``, ``remove``, ``list``, ``dump``,
``import_lines``):

* ``LocalSecrets`` derives the key in this process from a password
  (cold path).
* ``SessionSecrets`` forwards every call to the agent holding the key
  (warm path).

``perform()`` picks the warm path when an agent answers and falls back to
the cold path when none is reachable or its session has expired.
"""

import contextlib
import logging

from shrine.daemon.client import DaemonClient
from shrine.exceptions import (
    DaemonNotRunningError,
    SessionExpiredError,
)
from shrine.importer import parse_lines
from shrine.repository import ShrineRepository


logger = logging.getLogger(__name__)


class LocalSecrets(object):
    """
    Cold path: derive the key from a password for every operation.

    ``password`` is a callable returning the password; it is only called
    when a key is actually needed.
    """

    logger = logging.getLogger(__name__)
    warm = False

    def __init__(self, shrine_file, password, vcs=None):
        self.repository = ShrineRepository(shrine_file, vcs=vcs)
        self._password = password

    def _derive(self):
        return self.repository.derive_key(self._password())

    @contextlib.contextmanager
    def reading(self):
        key = self._derive()
        try:
            self.repository.open(key)
            yield self.repository
        finally:
            self.repository.close()
            key.wipe()

    @contextlib.contextmanager
    def mutating(self):
        key = self._derive()
        try:
            with self.repository.mutation(key):
                yield self.repository
        finally:
            self.repository.close()
            key.wipe()

    def get(self, path):
        with self.reading() as repository:
            return bytes(repository.get(path))

    def set(self, path, value):
        with self.mutating() as repository:
            repository.set(path, value)

    def remove(self, path):
        with self.mutating() as repository:
            repository.remove(path)

    def list(self, pattern=None):
        with self.reading() as repository:
            return repository.list(pattern)

    def dump(self, pattern=None):
        with self.reading() as repository:
            return [
                (path, bytes(repository.get(path)))
                for path in repository.list(pattern)
            ]

    def import_lines(self, lines, prefix=None):
        entries = parse_lines(lines, prefix=prefix)
        with self.mutating() as repository:
            for path, value in entries:
                repository.set(path, value)
        return len(entries)


class SessionSecrets(object):
    """Warm path: ask the agent, which holds the key."""

    logger = logging.getLogger(__name__)
    warm = True

    def __init__(self, client):
        self.client = client

    def get(self, path):
        return self.client.get(path)

    def set(self, path, value):
        self.client.set(path, value)

    def remove(self, path):
        self.client.remove(path)

    def list(self, pattern=None):
        return self.client.list(pattern)

    def dump(self, pattern=None):
        return [
            (path, self.client.get(path))
            for path in self.client.list(pattern)
        ]

    def import_lines(self, lines, prefix=None):
        return self.client.import_entries(parse_lines(lines, prefix=prefix))


def perform(shrine_file, password, action, runtime_dir=None, vcs=None):
    """
    Run ``action(secrets)`` on the warm path if possible, else cold.

    Args:
      shrine_file (Path): The shrine file.
      password (callable): Returns the password for the cold path.
      action (callable): Receives a ``LocalSecrets`` or ``SessionSecrets``.
      runtime_dir (Path): Where agent endpoints live.
      vcs: Version control adapter for the cold path.

    Returns:
      Whatever ``action`` returns.
    """
    client = DaemonClient.for_shrine(shrine_file, runtime_dir=runtime_dir)
    if client.socket_path.exists():
        try:
            return action(SessionSecrets(client))
        except (DaemonNotRunningError, SessionExpiredError) as err:
            logger.debug('[*] %s: using password instead', err)
    return action(LocalSecrets(shrine_file, password, vcs=vcs))


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
