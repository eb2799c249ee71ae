# -*- coding: utf-8 -*-

import logging

from cliff.command import Command

from shrine.unlock import LocalSecrets
from shrine.utils import format_config_value


class ConfigGet(Command):
    """Get the value of a shrine configuration key."""

    logger = logging.getLogger(__name__)

    def get_parser(self, prog_name):
        parser = super().get_parser(prog_name)
        parser.add_argument('key')
        return parser

    def take_action(self, parsed_args):
        secrets = LocalSecrets(self.app.shrine_file, self.app.get_password)
        with secrets.reading() as repository:
            value = repository.get_config(parsed_args.key)
        print(format_config_value(value))


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
