# -*- coding: utf-8 -*-

"""
Set the value of a secret.
"""

import getpass
import logging
import sys

from cliff.command import Command


class SecretsSet(Command):
    """
    Set the value of a secret.

    The secret is created, or overwritten if it exists::

        $ shrine set db/prod/password hunter2

    Values given on the command line end up in your shell history and are
    visible to other users in the process table. Leave the value out to be
    prompted for it (without echo), or pipe it in with ``--stdin``::

        $ shrine set db/prod/password
        Value:
        $ shrine set tls/key --stdin < server.key
    """

    logger = logging.getLogger(__name__)

    def get_parser(self, prog_name):
        parser = super().get_parser(prog_name)
        parser.add_argument(
            '--stdin',
            action='store_true',
            dest='stdin',
            default=False,
            help='Read the value from standard input'
        )
        parser.add_argument('path')
        parser.add_argument(
            'value',
            nargs='?',
            default=None
        )
        return parser

    def take_action(self, parsed_args):
        if parsed_args.stdin:
            if parsed_args.value is not None:
                raise RuntimeError('[-] give a value or --stdin, not both')
            value = sys.stdin.buffer.read()
        elif parsed_args.value is None:
            value = getpass.getpass('Value: ').encode('utf-8')
        else:
            value = parsed_args.value.encode('utf-8')
        self.app.with_secrets(
            lambda secrets: secrets.set(parsed_args.path, value))
        self.logger.info("[+] set secret '%s'", parsed_args.path)


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
