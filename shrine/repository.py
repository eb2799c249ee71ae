# -*- coding: utf-8 -*-

"""
Shrine repository: load, mutate and persist a shrine file.

Every mutation follows the same cycle. The repository takes an advisory
lock on the shrine folder, loads and decrypts the file, applies the change,
then re-encrypts the whole store into a temporary file that atomically
replaces the original. Readers therefore always see either the old or the
new file in full. The rename is the only irrevocable step; any failure
before it leaves the original file untouched.

On top of the lock, the repository remembers a fingerprint of the file it
loaded and refuses to persist over a file that changed since
(``ConcurrentModificationError``).
"""

# Standard imports
import contextlib
import fcntl
import logging
import os
import tempfile

from dataclasses import dataclass
from pathlib import Path

# Local imports
from shrine.codec import (
    SecretStore,
    decode,
    encode,
    fingerprint,
    read_header,
)
from shrine.exceptions import (
    AlreadyExistsError,
    ConcurrentModificationError,
    ConfigKeyNotFoundError,
    ShrineIOError,
    ShrineNotFoundError,
    SecretNotFoundError,
)
from shrine.git import (
    ChangeKind,
    VersionControlAdapter,
)
from shrine.importer import parse_lines
from shrine.kdf import (
    KdfParams,
    derive,
)
from shrine.utils import (
    compile_pattern,
    validate_secret_path,
    DEFAULT_FILE_MODE,
    LOCK_FILENAME,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Listing:
    """
    Secrets matched by a listing, sorted by path.

    ``entries`` holds the ``SecretInfo`` of each secret; iterating yields
    the paths.
    """

    entries: tuple

    @property
    def paths(self):
        return tuple(entry.path for entry in self.entries)

    @property
    def count(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.paths)

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.paths)

    def __len__(self):
        return len(self.paths)


class ShrineRepository(object):
    """
    Access to one shrine file.

      Typical usage example::

          from shrine.repository import ShrineRepository

          repository = ShrineRepository('/home/me/secrets/shrine')
          key = repository.derive_key(password)
          with repository.mutation(key):
              repository.set('db/password', b'hunter2')

    Attributes:
        shrine_file: Path to the shrine file.
        vcs: Adapter notified after every successful write.
    """

    logger = logging.getLogger(__name__)

    def __init__(self, shrine_file, vcs=None):
        self.shrine_file = Path(shrine_file)
        self.lock_file = self.shrine_file.parent / LOCK_FILENAME
        self.vcs = (
            VersionControlAdapter(self.shrine_file) if vcs is None
            else vcs
        )
        self._key = None
        self._store = None
        self._config = None
        self._fingerprint = None

    def __str__(self):
        return str(self.shrine_file)

    def exists(self):
        return self.shrine_file.exists()

    # Loading

    def read_blob(self):
        """Return the raw content of the shrine file."""
        try:
            return self.shrine_file.read_bytes()
        except FileNotFoundError:
            raise ShrineNotFoundError(path=str(self.shrine_file))
        except OSError as err:
            raise ShrineIOError(
                msg=f'Could not read shrine: {err}',
                path=str(self.shrine_file),
            )

    def read_header(self):
        """Return the clear-text header of the shrine file."""
        return read_header(self.read_blob(), path=str(self.shrine_file))

    def derive_key(self, password):
        """Derive the key for this shrine file from ``password``."""
        return derive(password, self.read_header().kdf_params)

    def open(self, key):
        """
        Load and decrypt the shrine file with ``key``.

        Returns:
          SecretStore: The decrypted secrets.

        Raises:
          ShrineNotFoundError: The shrine file does not exist.
          IntegrityError: Wrong key or corrupted file.
          FormatError: Unsupported file format.
        """
        blob = self.read_blob()
        store, config = decode(blob, key, path=str(self.shrine_file))
        self.close()
        self._key = key
        self._store = store
        self._config = config
        self._fingerprint = fingerprint(blob)
        self.logger.debug("[*] opened shrine '%s' (%d secrets)",
                          self.shrine_file, len(store))
        return store

    def close(self):
        """Wipe the loaded secrets."""
        if self._store is not None:
            self._store.wipe()
        self._store = None
        self._config = None
        self._key = None
        self._fingerprint = None

    @property
    def store(self):
        if self._store is None:
            raise RuntimeError('[-] shrine is not open')
        return self._store

    @property
    def config(self):
        if self._config is None:
            raise RuntimeError('[-] shrine is not open')
        return self._config

    # Exclusivity

    @contextlib.contextmanager
    def locked(self):
        """
        Hold an exclusive advisory lock on the shrine folder.

        The lock lives in a separate file because the shrine file itself is
        replaced (a new inode) on every write.
        """
        if not self.shrine_file.parent.is_dir():
            raise ShrineIOError(
                msg='Shrine folder does not exist',
                path=str(self.shrine_file.parent),
            )
        fd = os.open(self.lock_file, os.O_RDWR | os.O_CREAT, DEFAULT_FILE_MODE)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
            yield self
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)

    @contextlib.contextmanager
    def mutation(self, key, change=ChangeKind.UPDATE):
        """
        Run a load, mutate, persist cycle under the lock.

        Nothing is written if the body raises.
        """
        with self.locked():
            self.open(key)
            yield self
            self.persist(change)

    # Secrets

    def get(self, path):
        validate_secret_path(path)
        try:
            return self.store[path]
        except KeyError:
            raise SecretNotFoundError(secret=path)

    def set(self, path, value, mode=None):
        """
        Insert or overwrite the secret at ``path``.

        Overwriting keeps the secret's creation author and time and records
        the update.
        """
        self.store.put(path, value, mode=mode)

    def info(self, path):
        """Return the metadata (``SecretInfo``) of the secret at ``path``."""
        validate_secret_path(path)
        try:
            return self.store.info(path)
        except KeyError:
            raise SecretNotFoundError(secret=path)

    def remove(self, path):
        validate_secret_path(path)
        try:
            del self.store[path]
        except KeyError:
            raise SecretNotFoundError(secret=path)

    def list(self, pattern=None):
        """
        List the secrets whose path matches the regular expression
        ``pattern`` (all secrets when no pattern is given), sorted by path.
        """
        matches = compile_pattern(pattern)
        return Listing(tuple(
            self.store.info(path)
            for path in self.store.paths() if matches(path)
        ))

    def import_lines(self, lines, prefix=None):
        """
        Import ``key=value`` lines, prepending ``prefix`` to every key.

        Imported values overwrite existing secrets with the same path.

        Returns:
          int: Number of imported entries.
        """
        entries = parse_lines(lines, prefix=prefix)
        for path, value in entries:
            self.set(path, value)
        return len(entries)

    # Configuration

    def get_config(self, key):
        try:
            return self.config[key]
        except KeyError:
            raise ConfigKeyNotFoundError(key=key)

    def set_config(self, key, value):
        self.config[key] = value

    # Persisting

    def _current_fingerprint(self):
        try:
            return fingerprint(self.shrine_file.read_bytes())
        except FileNotFoundError:
            return None
        except OSError as err:
            raise ShrineIOError(
                msg=f'Could not read shrine: {err}',
                path=str(self.shrine_file),
            )

    def _write(self, blob):
        folder = self.shrine_file.parent
        try:
            fd, tmp = tempfile.mkstemp(
                dir=folder,
                prefix=f'.{self.shrine_file.name}.',
                suffix='.tmp',
            )
        except OSError as err:
            raise ShrineIOError(
                msg=f'Could not write shrine: {err}', path=str(folder))
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(blob)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp, DEFAULT_FILE_MODE)
            os.replace(tmp, self.shrine_file)
        except OSError as err:
            raise ShrineIOError(
                msg=f'Could not write shrine: {err}',
                path=str(self.shrine_file),
            )
        finally:
            if os.path.exists(tmp):
                os.unlink(tmp)
        with contextlib.suppress(OSError):
            dir_fd = os.open(folder, os.O_RDONLY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)

    def persist(self, change=ChangeKind.UPDATE, key=None):
        """
        Encrypt the loaded store and atomically replace the shrine file.

        Args:
          change (ChangeKind): Recorded by the version control adapter.
          key (DerivedKey): Key to encrypt with (re-keying); defaults to the
            key the shrine was opened with.

        Raises:
          ConcurrentModificationError: The file changed since it was loaded.
          ShrineIOError: The file could not be written.
        """
        key = self._key if key is None else key
        if key is None:
            raise RuntimeError('[-] shrine is not open')
        if self._current_fingerprint() != self._fingerprint:
            raise ConcurrentModificationError(path=str(self.shrine_file))
        blob = encode(self.store, self.config, key)
        self._write(blob)
        self._key = key
        self._fingerprint = fingerprint(blob)
        self.logger.debug("[*] wrote shrine '%s'", self.shrine_file)
        self.vcs.record(change, self.config)
        return blob

    def initialize(self, key, force=False, config=None):
        """
        Create a new, empty shrine file encrypted with ``key``.

        Raises:
          AlreadyExistsError: The file exists and ``force`` is false.
        """
        with self.locked():
            if self.exists() and not force:
                raise AlreadyExistsError(path=str(self.shrine_file))
            self.close()
            self._store = SecretStore()
            self._config = dict(config or {})
            self._key = key
            self._fingerprint = self._current_fingerprint()
            self.persist(ChangeKind.INIT)
        return self


def convert(shrine_file, old_password, new_password, iterations=None,
            vcs=None):
    """
    Re-key a shrine file: same secrets, new password and new salt.

    The store is decrypted with the key derived from ``old_password`` and
    written back, under a key derived from ``new_password`` with a fresh
    salt, to a temporary file that then replaces the original. A crash
    before the replace leaves the original (old password) file intact.

    Returns:
      KdfParams: The new key derivation parameters.
    """
    repository = ShrineRepository(shrine_file, vcs=vcs)
    with repository.locked():
        old_key = repository.derive_key(old_password)
        repository.open(old_key)
        if iterations is None:
            iterations = old_key.params.iterations
        new_key = derive(new_password, KdfParams.generate(iterations))
        try:
            repository.persist(ChangeKind.UPDATE, key=new_key)
        finally:
            repository.close()
            old_key.wipe()
    logger.info("[+] changed password of shrine '%s'", shrine_file)
    params = new_key.params
    new_key.wipe()
    return params


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
