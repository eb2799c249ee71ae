# -*- coding: utf-8 -*-

"""
Change the password of a shrine file.
"""

import logging

from cliff.command import Command

from shrine.repository import convert
from shrine.utils import (
    kdf_iterations,
    prompt_password,
)


class Convert(Command):
    """
    Change the shrine password.

    Every secret is re-encrypted with a key derived from the new password
    and a fresh salt. The new file is written next to the old one and then
    renamed over it, so an interruption leaves the shrine readable with
    the old password::

        $ shrine convert --new-password 'correct horse battery staple'

    Without ``--new-password`` the new password is prompted for (twice).
    An agent session unlocked with the old password stops working; run
    ``shrine agent unlock`` again.
    """

    logger = logging.getLogger(__name__)

    def get_parser(self, prog_name):
        parser = super().get_parser(prog_name)
        parser.add_argument(
            '--new-password',
            metavar='<new-password>',
            dest='new_password',
            default=None,
            help='New shrine password (default: prompt)'
        )
        parser.add_argument(
            '--iterations',
            metavar='<iterations>',
            type=kdf_iterations,
            dest='iterations',
            default=None,
            help='New key derivation work factor (default: keep current)'
        )
        return parser

    def take_action(self, parsed_args):
        old_password = self.app.get_password()
        new_password = parsed_args.new_password
        if new_password is None:
            new_password = prompt_password(
                prompt='New password: ', confirm=True)
        params = convert(
            self.app.shrine_file,
            old_password,
            new_password,
            iterations=parsed_args.iterations,
        )
        self.logger.info(
            '[+] shrine re-encrypted (%d iterations)', params.iterations)


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
