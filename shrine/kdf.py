# -*- coding: utf-8 -*-

"""
Password based key derivation.

Keys are derived with PBKDF2-HMAC-SHA256 from the user's password, a random
per-password salt and a work factor (iteration count). The salt and work
factor are stored in the clear in the shrine file header, so the same key
can be derived again when the shrine is unlocked.
"""

import logging
import os

from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from shrine.utils import get_default_kdf_iterations


logger = logging.getLogger(__name__)

KDF_PBKDF2_SHA256 = 1
KEY_SIZE = 32
SALT_SIZE = 16


class SecretBytes(bytearray):
    """
    Mutable byte buffer for sensitive material.

    The buffer is zeroed by ``wipe()`` (also called when used as a context
    manager) and never shows its content in ``repr()``.
    """

    def wipe(self):
        """Overwrite the buffer with zeros and empty it."""
        for i in range(len(self)):
            self[i] = 0
        del self[:]

    def expose(self):
        """Return an immutable copy of the content."""
        return bytes(self)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.wipe()

    def __repr__(self):
        return f'{self.__class__.__name__}(<{len(self)} bytes redacted>)'

    __str__ = __repr__


@dataclass(frozen=True)
class KdfParams:
    """Key derivation parameters stored in the shrine header."""

    salt: bytes
    iterations: int
    algorithm: int = KDF_PBKDF2_SHA256

    @classmethod
    def generate(cls, iterations=None):
        """Return parameters with a fresh random salt."""
        if iterations is None:
            iterations = get_default_kdf_iterations()
        return cls(salt=os.urandom(SALT_SIZE), iterations=int(iterations))


class DerivedKey(object):
    """
    A symmetric key together with the parameters it was derived with.

    The key only opens shrine files whose header carries the same
    parameters.
    """

    def __init__(self, material, params):
        self._material = SecretBytes(material)
        self.params = params

    def matches(self, params):
        """Return whether this key was derived with ``params``."""
        return (
            not self.wiped
            and self.params.salt == params.salt
            and self.params.iterations == params.iterations
            and self.params.algorithm == params.algorithm
        )

    @property
    def wiped(self):
        return len(self._material) == 0

    def expose(self):
        return self._material.expose()

    def wipe(self):
        self._material.wipe()

    def __repr__(self):
        return f'DerivedKey(iterations={self.params.iterations})'


def derive(password, params):
    """
    Derive a key from ``password`` using the salt and work factor in
    ``params``.

    The derivation is deterministic: the same password and parameters
    always produce the same key.

    Args:
      password (str|bytes): The user's password.
      params (KdfParams): Salt, work factor and algorithm.

    Returns:
      DerivedKey: The derived key.
    """
    if params.algorithm != KDF_PBKDF2_SHA256:
        raise ValueError(
            f"[-] unsupported key derivation algorithm {params.algorithm}")
    if isinstance(password, str):
        password = password.encode('utf-8')
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=params.salt,
        iterations=params.iterations,
    )
    logger.debug(
        '[*] deriving key (%d iterations)', params.iterations)
    return DerivedKey(kdf.derive(password), params)


def verify(key, blob):
    """
    Check that ``key`` opens the shrine container ``blob``.

    Returns ``True`` on success. Any failure, wrong key or damaged
    container alike, raises ``IntegrityError``.
    """
    # pylint: disable=import-outside-toplevel
    from shrine.codec import decode
    # pylint: enable=import-outside-toplevel
    store, _ = decode(blob, key)
    store.wipe()
    return True


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
