# -*- coding: utf-8 -*-

"""
Utility functions.
"""

# Standard imports
import argparse
import getpass
import hashlib
import logging
import os
import re
import socket
import tempfile

from pathlib import Path

# External imports
from anytree import (
    Node,
    RenderTree,
)

# Local imports
from shrine.exceptions import (
    InvalidPatternError,
    InvalidSecretPathError,
)


logger = logging.getLogger(__name__)

DEFAULT_UMASK = 0o077
MAX_UMASK = 0o777
DEFAULT_MODE = 0o700
DEFAULT_FILE_MODE = 0o600
SHRINE_FILENAME = 'shrine'
LOCK_FILENAME = '.shrine.lock'
PATH_SEPARATOR = '/'
DEFAULT_KDF_ITERATIONS = 600000
MIN_KDF_ITERATIONS = 1000
# Sessions expire 15 minutes after unlock.
DEFAULT_AGENT_TTL = 900
TRUE_STRINGS = ['true', 'yes', 'on', '1']
FALSE_STRINGS = ['false', 'no', 'off', '0']


class CustomFormatter(
    argparse.RawDescriptionHelpFormatter,
    argparse.ArgumentDefaultsHelpFormatter,
):
    """
    Custom class to control arparse help output formatting.
    """


def umask(value):
    """Set umask."""
    if value.lower().find("o") < 0:
        raise argparse.ArgumentTypeError(
            f'value ({value}) must be expressed in '
            'octal form (e.g., "0o077")')
    ivalue = int(value, base=8)
    if ivalue < 0 or ivalue > MAX_UMASK:
        raise argparse.ArgumentTypeError(
            f"value ({ value }) must be between 0 and 0o777"
        )
    return ivalue


def kdf_iterations(value):
    """Validate a key derivation work factor."""
    ivalue = int(value)
    if ivalue < MIN_KDF_ITERATIONS:
        raise argparse.ArgumentTypeError(
            f"[-] '{value}' is below the minimum of {MIN_KDF_ITERATIONS}")
    return ivalue


def positive_number(value):
    """
    Tests for a positive number (float allowed).
    """
    fvalue = float(value)
    if fvalue <= 0:
        raise argparse.ArgumentTypeError(
            f"[-] '{value}' is not a positive number")
    return fvalue


def show_current_value(variable=None):
    """Pretty-print environment variable (if set)."""
    value = os.getenv(variable, None)
    return f" ('{value}')" if value is not None else ''


def get_default_folder():
    """
    Return the default folder holding the shrine file.
    """
    return Path(os.getenv('SHRINE_FOLDER', os.getcwd()))


def get_default_kdf_iterations():
    """
    Return the default key derivation work factor.
    """
    return int(os.getenv('SHRINE_KDF_ITERATIONS', DEFAULT_KDF_ITERATIONS))


def get_default_agent_ttl():
    """
    Return the default session lifetime (in seconds) for the agent.
    """
    return float(os.getenv('SHRINE_AGENT_TTL', DEFAULT_AGENT_TTL))


def get_shrine_file(folder=None):
    """
    Return the path to the shrine file held in ``folder``.
    """
    if folder is None:
        folder = get_default_folder()
    return Path(folder).absolute() / SHRINE_FILENAME


def get_runtime_dir(create=True):
    """
    Return the directory holding agent endpoints (sockets, pid files, logs).

    Precedence is ``SHRINE_RUNTIME_DIR``, then ``XDG_RUNTIME_DIR``, then a
    per-user directory below the system temporary directory. The directory
    is created with owner-only permissions.
    """
    runtime_dir = os.getenv('SHRINE_RUNTIME_DIR', None)
    if runtime_dir is None:
        xdg_runtime_dir = os.getenv('XDG_RUNTIME_DIR', None)
        if xdg_runtime_dir is not None:
            runtime_dir = Path(xdg_runtime_dir) / 'shrine'
        else:
            uid = os.getuid() if hasattr(os, 'getuid') else 0
            runtime_dir = Path(tempfile.gettempdir()) / f'shrine-{uid}'
    runtime_dir = Path(runtime_dir)
    if create:
        runtime_dir.mkdir(parents=True, mode=DEFAULT_MODE, exist_ok=True)
    return runtime_dir


def get_endpoint_name(shrine_file):
    """
    Return the agent endpoint base name for a shrine file.

    Socket paths are length limited, so the (absolute) shrine file path is
    hashed rather than embedded.
    """
    abspath = str(Path(shrine_file).absolute())
    return hashlib.sha256(abspath.encode('utf-8')).hexdigest()[:16]


def get_socket_path(shrine_file, runtime_dir=None):
    """Return the agent socket path for a shrine file."""
    if runtime_dir is None:
        runtime_dir = get_runtime_dir()
    return Path(runtime_dir) / f'{get_endpoint_name(shrine_file)}.sock'


def get_pid_path(shrine_file, runtime_dir=None):
    """Return the agent pid file path for a shrine file."""
    if runtime_dir is None:
        runtime_dir = get_runtime_dir()
    return Path(runtime_dir) / f'{get_endpoint_name(shrine_file)}.pid'


def get_log_path(shrine_file, runtime_dir=None):
    """Return the agent log file path for a shrine file."""
    if runtime_dir is None:
        runtime_dir = get_runtime_dir()
    return Path(runtime_dir) / f'{get_endpoint_name(shrine_file)}.log'


def validate_secret_path(path):
    """
    Validate a secret path and return it.

    A secret path is a ``/`` delimited, non-empty string in which every
    segment is non-empty.

    Raises:
      InvalidSecretPathError: The path is empty or has an empty segment.
    """
    if not isinstance(path, str) or path == '':
        raise InvalidSecretPathError(secret=repr(path))
    if any(segment == '' for segment in path.split(PATH_SEPARATOR)):
        raise InvalidSecretPathError(secret=path)
    return path


def compile_pattern(pattern=None):
    """
    Compile a listing pattern into a predicate over secret paths.

    The pattern is a regular expression searched for anywhere in the full
    path. No pattern (or an empty one) matches everything.
    """
    if pattern in [None, '']:
        return lambda path: True
    try:
        regex = re.compile(pattern)
    except re.error as err:
        raise InvalidPatternError(msg=f"Invalid pattern '{pattern}': {err}")
    return lambda path: regex.search(path) is not None


def as_bool(value):
    """
    Interpret a configuration value as a boolean.

    Missing values read as ``False``.
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUE_STRINGS


def parse_config_value(value):
    """
    Convert a configuration value given on the command line.

    ``true``/``false`` (and friends) become booleans; anything else is
    kept as a string.
    """
    lowered = value.strip().lower()
    if lowered in TRUE_STRINGS:
        return True
    if lowered in FALSE_STRINGS:
        return False
    return value


def format_config_value(value):
    """Render a configuration value the way ``config set`` accepts it."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def get_author():
    """Return ``user@host``, recorded as the author of secret changes."""
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        # No login name and no passwd entry (e.g., in a container).
        user = str(os.getuid())
    return f'{user}@{socket.gethostname()}'


def prompt_password(prompt='Password: ', confirm=False):
    """
    Prompt the user for a password without echoing it.

    When ``confirm`` is true the password is asked for twice and must
    match.
    """
    password = getpass.getpass(prompt)
    if confirm:
        again = getpass.getpass('Confirm password: ')
        if again != password:
            raise RuntimeError('[-] passwords do not match')
    return password


def secrets_tree(paths, root='.', outfile=None):
    """
    Produces the tree structure for a set of secret paths.

    Each ``/`` separated segment becomes a node. If ``outfile`` is specified
    (e.g., as sys.stdout) it will be used, otherwise a list of strings is
    returned.

    Uses anytree: https://anytree.readthedocs.io/en/latest/
    """

    nodes = dict()
    root_node = Node(root)
    for path in sorted(paths):
        parent = root_node
        prefix = ''
        for segment in path.split(PATH_SEPARATOR):
            prefix = f'{prefix}{PATH_SEPARATOR}{segment}'
            if prefix not in nodes:
                nodes[prefix] = Node(segment, parent=parent)
            parent = nodes[prefix]

    output = []
    for pre, fill, node in RenderTree(root_node):
        output.append((f'{ pre }{ node.name }'))
    if outfile is not None:
        for line in output:
            print(line, file=outfile)
    else:
        return output


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
