# -*- coding: utf-8 -*-

"""
Shrine container codec.

A shrine file is a small clear-text header followed by the AES-256-GCM
encryption of a JSON document holding every secret (value, mode and
authorship) and the shrine's configuration::

    magic "shrine" | format_version | kdf algorithm | iterations | salt |
    nonce | ciphertext | integrity_tag

The header is authenticated as associated data, so tampering with any of
its fields is detected like tampering with the ciphertext. The whole store
is re-encrypted with a fresh nonce on every write.
"""

import base64
import binascii
import hashlib
import json
import logging
import os
import struct

from collections.abc import MutableMapping
from dataclasses import dataclass
from datetime import (
    datetime,
    timezone,
)

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from shrine.exceptions import (
    FormatError,
    IntegrityError,
)
from shrine.kdf import (
    KDF_PBKDF2_SHA256,
    SALT_SIZE,
    KdfParams,
    SecretBytes,
)
from shrine.utils import (
    get_author,
    validate_secret_path,
)


logger = logging.getLogger(__name__)

MAGIC = b'shrine'
FORMAT_VERSION = 1
SUPPORTED_VERSIONS = [FORMAT_VERSION]
SUPPORTED_KDFS = [KDF_PBKDF2_SHA256]
NONCE_SIZE = 12
TAG_SIZE = 16
HEADER = struct.Struct(f'>{len(MAGIC)}sBBI{SALT_SIZE}s{NONCE_SIZE}s')
MODE_TEXT = 'txt'
MODE_BINARY = 'bin'
MODES = [MODE_TEXT, MODE_BINARY]


def utcnow():
    return datetime.now(timezone.utc)


def detect_mode(value):
    """Return ``txt`` for UTF-8 text values, ``bin`` for anything else."""
    try:
        value.decode('utf-8')
    except UnicodeDecodeError:
        return MODE_BINARY
    return MODE_TEXT


def _timestamp(value):
    return None if value is None else value.isoformat()


def _parse_timestamp(value):
    return None if value is None else datetime.fromisoformat(value)


def _check_mode(mode, value):
    if mode is None:
        return detect_mode(value)
    if mode not in MODES:
        raise ValueError(f"[-] unknown secret mode '{mode}'")
    return mode


@dataclass(frozen=True)
class SecretInfo:
    """What is known about a secret besides its value."""

    path: str
    mode: str
    created_by: str
    created_at: datetime
    updated_by: str = None
    updated_at: datetime = None

    def to_dict(self):
        return {
            'path': self.path,
            'mode': self.mode,
            'created_by': self.created_by,
            'created_at': _timestamp(self.created_at),
            'updated_by': self.updated_by,
            'updated_at': _timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            path=data['path'],
            mode=data['mode'],
            created_by=data['created_by'],
            created_at=_parse_timestamp(data['created_at']),
            updated_by=data.get('updated_by'),
            updated_at=_parse_timestamp(data.get('updated_at')),
        )


class Secret(object):
    """
    A secret value with its mode (``txt`` or ``bin``) and authorship.

    The creation fields are set once. Every later change of the value
    records who changed it and when in the update fields.
    """

    def __init__(
        self,
        value,
        mode=None,
        created_by=None,
        created_at=None,
        updated_by=None,
        updated_at=None,
    ):
        self.value = SecretBytes(value)
        self.mode = _check_mode(mode, self.value)
        self.created_by = get_author() if created_by is None else created_by
        self.created_at = utcnow() if created_at is None else created_at
        self.updated_by = updated_by
        self.updated_at = updated_at

    def update_with(self, value, mode=None):
        """Replace the value, keeping the creation fields."""
        value = SecretBytes(value)
        mode = _check_mode(mode, value)
        old, self.value, self.mode = self.value, value, mode
        self.updated_by = get_author()
        self.updated_at = utcnow()
        old.wipe()
        return self

    def info(self, path):
        return SecretInfo(
            path=path,
            mode=self.mode,
            created_by=self.created_by,
            created_at=self.created_at,
            updated_by=self.updated_by,
            updated_at=self.updated_at,
        )

    def to_document(self):
        document = self.info(None).to_dict()
        del document['path']
        document['value'] = base64.b64encode(bytes(self.value)).decode('ascii')
        return document

    @classmethod
    def from_document(cls, document):
        return cls(
            base64.b64decode(document['value'], validate=True),
            mode=document['mode'],
            created_by=document['created_by'],
            created_at=_parse_timestamp(document['created_at']),
            updated_by=document.get('updated_by'),
            updated_at=_parse_timestamp(document.get('updated_at')),
        )

    def wipe(self):
        self.value.wipe()

    def __repr__(self):
        return f'Secret(mode={self.mode!r}, <redacted>)'


class SecretStore(MutableMapping):
    """
    Mapping of secret paths to secret values.

    Keys are validated secret paths; values are kept as ``SecretBytes`` so
    they can be wiped when the store is released. Each value carries its
    ``Secret`` metadata, available from ``info()``.
    """

    def __init__(self, secrets=None):
        self._secrets = dict()
        for path, value in (secrets or {}).items():
            self[path] = value

    def __getitem__(self, path):
        return self._secrets[path].value

    def __setitem__(self, path, value):
        self.put(path, value)

    def __delitem__(self, path):
        self._secrets.pop(path).wipe()

    def __iter__(self):
        return iter(self._secrets)

    def __len__(self):
        return len(self._secrets)

    def __repr__(self):
        return f'SecretStore(<{len(self)} secrets>)'

    def put(self, path, value, mode=None):
        """
        Insert or overwrite the secret at ``path``.

        The mode is detected from the value unless given. Overwriting keeps
        the secret's creation fields and updates the others.
        """
        validate_secret_path(path)
        if isinstance(value, str):
            value = value.encode('utf-8')
        secret = self._secrets.get(path)
        if secret is None:
            self._secrets[path] = Secret(value, mode=mode)
        else:
            secret.update_with(value, mode=mode)

    def restore(self, path, secret):
        """Add a ``Secret`` as loaded from a shrine file."""
        validate_secret_path(path)
        self._secrets[path] = secret

    def secret(self, path):
        return self._secrets[path]

    def info(self, path):
        """Return the ``SecretInfo`` of the secret at ``path``."""
        return self._secrets[path].info(path)

    def paths(self):
        """Return the secret paths, sorted."""
        return sorted(self._secrets)

    def wipe(self):
        """Overwrite and drop every value."""
        for secret in self._secrets.values():
            secret.wipe()
        self._secrets.clear()


@dataclass(frozen=True)
class ShrineHeader:
    """Clear-text header of a shrine file."""

    format_version: int
    kdf_params: KdfParams
    nonce: bytes

    def pack(self):
        return HEADER.pack(
            MAGIC,
            self.format_version,
            self.kdf_params.algorithm,
            self.kdf_params.iterations,
            self.kdf_params.salt,
            self.nonce,
        )


def read_header(blob, path=None):
    """
    Parse the clear-text header at the start of ``blob``.

    Raises:
      FormatError: Not a shrine file, or an unsupported format version or
        key derivation algorithm.
    """
    if len(blob) < HEADER.size + TAG_SIZE or not blob.startswith(MAGIC):
        raise FormatError(msg='Not a shrine file', path=path)
    _, version, algorithm, iterations, salt, nonce = HEADER.unpack_from(blob)
    if version not in SUPPORTED_VERSIONS:
        raise FormatError(
            msg=(
                f'Unsupported shrine format version {version} '
                f'(max {max(SUPPORTED_VERSIONS)})'
            ),
            path=path,
        )
    if algorithm not in SUPPORTED_KDFS:
        raise FormatError(
            msg=f'Unsupported key derivation algorithm {algorithm}',
            path=path,
        )
    return ShrineHeader(
        format_version=version,
        kdf_params=KdfParams(
            salt=salt, iterations=iterations, algorithm=algorithm),
        nonce=nonce,
    )


def fingerprint(blob):
    """Return the version fingerprint of an encoded shrine."""
    return hashlib.sha256(blob).hexdigest()


def _serialize(store, config):
    document = {
        'secrets': {
            path: store.secret(path).to_document() for path in store
        },
        'config': dict(config),
    }
    return json.dumps(document, sort_keys=True).encode('utf-8')


def _deserialize(plaintext):
    try:
        document = json.loads(plaintext.decode('utf-8'))
        store = SecretStore()
        for path, entry in document['secrets'].items():
            store.restore(path, Secret.from_document(entry))
        config = dict(document.get('config', {}))
    except (
        binascii.Error,
        KeyError,
        TypeError,
        UnicodeDecodeError,
        ValueError,
    ) as err:
        raise FormatError(msg=f'Malformed shrine payload: {err}')
    return store, config


def encode(store, config, key):
    """
    Serialize and encrypt ``store`` and ``config`` with ``key``.

    A fresh random nonce is generated for every call. The key's derivation
    parameters are written to the header.

    Returns:
      bytes: The complete shrine container.
    """
    nonce = os.urandom(NONCE_SIZE)
    header = ShrineHeader(
        format_version=FORMAT_VERSION,
        kdf_params=key.params,
        nonce=nonce,
    ).pack()
    plaintext = bytearray(_serialize(store, config))
    try:
        sealed = AESGCM(key.expose()).encrypt(
            nonce, bytes(plaintext), header)
    finally:
        for i in range(len(plaintext)):
            plaintext[i] = 0
    # AESGCM appends the tag to the ciphertext, which is already the
    # on-disk order.
    return header + sealed


def decode(blob, key, path=None):
    """
    Decrypt and deserialize a shrine container.

    Returns:
      tuple: ``(SecretStore, dict)`` holding secrets and configuration.

    Raises:
      FormatError: The container's format version is not supported.
      IntegrityError: The key is wrong or the container was altered.
    """
    header = read_header(blob, path=path)
    if not key.matches(header.kdf_params):
        # A key derived with other parameters can never authenticate.
        raise IntegrityError()
    try:
        plaintext = AESGCM(key.expose()).decrypt(
            header.nonce, blob[HEADER.size:], blob[:HEADER.size])
    except InvalidTag:
        raise IntegrityError() from None
    return _deserialize(plaintext)


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
