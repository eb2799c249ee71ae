# -*- coding: utf-8 -*-

import argparse
import base64
import logging
import textwrap

from cliff.command import Command


class SecretsGet(Command):
    """Get the value of a secret."""

    logger = logging.getLogger(__name__)

    def get_parser(self, prog_name):
        parser = super().get_parser(prog_name)
        parser.formatter_class = argparse.RawDescriptionHelpFormatter
        parser.add_argument(
            '--base64',
            action='store_true',
            dest='base64',
            default=False,
            help='Print the value base64 encoded (default: False)'
        )
        parser.add_argument('path')
        parser.epilog = textwrap.dedent("""
            The value is printed as text followed by a newline. Values that
            are not valid UTF-8 (keys, certificates in DER form, ...) need
            the ``--base64`` option.
            """)
        return parser

    def take_action(self, parsed_args):
        self.logger.debug("[*] get secret '%s'", parsed_args.path)
        value = self.app.with_secrets(
            lambda secrets: secrets.get(parsed_args.path))
        if parsed_args.base64:
            print(base64.b64encode(value).decode('ascii'))
            return
        try:
            print(value.decode('utf-8'))
        except UnicodeDecodeError:
            raise RuntimeError(
                f"[-] '{parsed_args.path}' is not text (use --base64)")


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
