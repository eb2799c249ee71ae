# -*- coding: utf-8 -*-

import logging

from cliff.command import Command


class SecretsRemove(Command):
    """Remove a secret."""

    logger = logging.getLogger(__name__)

    def get_parser(self, prog_name):
        parser = super().get_parser(prog_name)
        parser.add_argument('path')
        return parser

    def take_action(self, parsed_args):
        self.app.with_secrets(
            lambda secrets: secrets.remove(parsed_args.path))
        self.logger.info("[+] removed secret '%s'", parsed_args.path)


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
