# -*- coding: utf-8 -*-

"""
Create a new shrine file.
"""

import logging

from cliff.command import Command

from shrine.exceptions import AlreadyExistsError
from shrine.git import GIT_DEFAULTS
from shrine.kdf import (
    KdfParams,
    derive,
)
from shrine.repository import ShrineRepository
from shrine.utils import (
    get_default_kdf_iterations,
    kdf_iterations,
    DEFAULT_MODE,
)


class Init(Command):
    """
    Create a new, empty shrine file.

    The shrine file is named ``shrine`` and created in the shrine folder
    (``--folder``, ``$SHRINE_FOLDER`` or the current directory)::

        $ shrine init
        Password:
        Confirm password:

    An existing shrine file is only replaced when ``--force`` is given,
    which destroys every secret it held.

    With ``--git`` the folder is turned into a git repository and every
    change to the shrine file is committed automatically. The first commit
    is named ``Initialize shrine``, later ones ``Update shrine``. The
    ``git.*`` configuration keys control this afterwards (see ``shrine
    config set --help``).

    The password is turned into a key with PBKDF2-HMAC-SHA256. Use
    ``--iterations`` to change the work factor: higher is slower for you
    and for an attacker.
    """

    logger = logging.getLogger(__name__)

    def get_parser(self, prog_name):
        parser = super().get_parser(prog_name)
        parser.add_argument(
            '--force',
            action='store_true',
            dest='force',
            default=False,
            help='Replace an existing shrine file'
        )
        parser.add_argument(
            '--git',
            action='store_true',
            dest='git',
            default=False,
            help='Track the shrine file in a git repository'
        )
        parser.add_argument(
            '--iterations',
            metavar='<iterations>',
            type=kdf_iterations,
            dest='iterations',
            default=get_default_kdf_iterations(),
            help='Key derivation work factor (Env: SHRINE_KDF_ITERATIONS)'
        )
        return parser

    def take_action(self, parsed_args):
        shrine_file = self.app.shrine_file
        shrine_file.parent.mkdir(mode=DEFAULT_MODE, parents=True, exist_ok=True)
        repository = ShrineRepository(shrine_file)
        if repository.exists() and not parsed_args.force:
            raise AlreadyExistsError(path=str(shrine_file))
        password = self.app.get_password(confirm=True)
        key = derive(password, KdfParams.generate(parsed_args.iterations))
        config = dict(GIT_DEFAULTS) if parsed_args.git else dict()
        try:
            repository.initialize(key, force=parsed_args.force, config=config)
        finally:
            repository.close()
            key.wipe()
        self.logger.info("[+] created shrine '%s'", shrine_file)


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
