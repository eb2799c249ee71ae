# -*- coding: utf-8 -*-

"""
Set shrine configuration values.
"""

import logging

from cliff.command import Command

from shrine.unlock import LocalSecrets
from shrine.utils import parse_config_value


class ConfigSet(Command):
    """
    Set a shrine configuration key.

    The configuration is stored, encrypted, inside the shrine file. Known
    keys are::

        git.enabled       Track the shrine file in git (true/false)
        git.commit.auto   Commit after every change (true/false)
        git.push.auto     Push after every commit (true/false)

    ``true`` and ``false`` (in any case) are stored as booleans, anything
    else as a string::

        $ shrine config set git.push.auto true

    Changing the configuration is itself a change of the shrine file and
    is committed according to the configuration *after* the change: turning
    ``git.commit.auto`` off is not committed.
    """

    logger = logging.getLogger(__name__)

    def get_parser(self, prog_name):
        parser = super().get_parser(prog_name)
        parser.add_argument('key')
        parser.add_argument('value')
        return parser

    def take_action(self, parsed_args):
        value = parse_config_value(parsed_args.value)
        secrets = LocalSecrets(self.app.shrine_file, self.app.get_password)
        with secrets.mutating() as repository:
            repository.set_config(parsed_args.key, value)
        self.logger.info("[+] set '%s'", parsed_args.key)


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
