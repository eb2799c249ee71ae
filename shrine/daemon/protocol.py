# -*- coding: utf-8 -*-

"""
Agent wire protocol.

One JSON object per line in each direction. Requests carry an ``op`` name
and its arguments; responses carry ``ok`` and either the result fields or
an ``error`` class name with a ``message``. Secret values travel base64
encoded. Listing entries carry each secret's path, mode and authorship
(ISO 8601 timestamps), never its value.

Operations::

    {"op": "unlock", "password": "..."}         -> {"ok": true, "expires_in": 900.0}
    {"op": "get", "path": "a/b"}                -> {"ok": true, "value": "<b64>"}
    {"op": "set", "path": "a/b", "value": "<b64>"} -> {"ok": true}
    {"op": "remove", "path": "a/b"}             -> {"ok": true}
    {"op": "list", "pattern": "^a/"}            -> {"ok": true, "entries": [...], "count": 1}
    {"op": "import", "entries": [["a/b", "<b64>"]]} -> {"ok": true, "count": 1}
    {"op": "lock"}                              -> {"ok": true}
    {"op": "status"}                            -> {"ok": true, "state": "unlocked", ...}
    {"op": "stop"}                              -> {"ok": true}
"""

import base64
import json

from shrine import exceptions


OPERATIONS = [
    'unlock',
    'get',
    'set',
    'remove',
    'list',
    'import',
    'lock',
    'status',
    'stop',
]
# Errors that may be sent back to a client, by wire name.
WIRE_ERRORS = {
    cls.__name__: cls for cls in [
        exceptions.AgentError,
        exceptions.BadPasswordError,
        exceptions.ConcurrentModificationError,
        exceptions.FormatError,
        exceptions.IntegrityError,
        exceptions.InvalidPatternError,
        exceptions.InvalidSecretPathError,
        exceptions.SecretNotFoundError,
        exceptions.SessionExpiredError,
        exceptions.ShrineIOError,
        exceptions.ShrineNotFoundError,
    ]
}
# Upper bound on a single message.
MAX_MESSAGE_SIZE = 16 * 1024 * 1024


class ProtocolError(Exception):
    """Malformed agent message"""


def encode_value(value):
    return base64.b64encode(bytes(value)).decode('ascii')


def decode_value(text):
    return base64.b64decode(text.encode('ascii'), validate=True)


def pack(message):
    """Serialize a message to a line of bytes."""
    return json.dumps(message).encode('utf-8') + b'\n'


def unpack(line):
    """Parse a line of bytes into a message."""
    try:
        message = json.loads(line.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as err:
        raise ProtocolError(f'invalid message: {err}')
    if not isinstance(message, dict):
        raise ProtocolError('message is not an object')
    return message


def request(op, **kwargs):
    if op not in OPERATIONS:
        raise ProtocolError(f'unknown operation {op!r}')
    return dict(op=op, **kwargs)


def success(**kwargs):
    return dict(ok=True, **kwargs)


def failure(err):
    """Build the response for a (shrine) exception."""
    name = type(err).__name__
    if name not in WIRE_ERRORS:
        name = 'AgentError'
    return dict(ok=False, error=name, message=str(err))


def raise_for_response(response):
    """Re-raise the error carried by a failure response."""
    if response.get('ok'):
        return response
    cls = WIRE_ERRORS.get(response.get('error'), exceptions.AgentError)
    raise cls(msg=response.get('message'))


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
