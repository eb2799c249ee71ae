# -*- coding: utf-8 -*-

"""
Shrine agent: a per-shrine background process caching the derived key.

Components:

- session.py: the cached key and its fixed expiry
- protocol.py: newline-delimited JSON messages exchanged over the socket
- server.py: asyncio server holding the session (``SessionDaemon``)
- client.py: blocking client used by CLI commands (``DaemonClient``)
- manager.py: process lifecycle (start/stop/status)

All commands keep working without an agent: when none is reachable the
CLI derives the key itself.
"""

from .client import DaemonClient
from .server import SessionDaemon

__all__ = ['DaemonClient', 'SessionDaemon']

# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
