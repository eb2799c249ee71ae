# -*- coding: utf-8 -*-

import argparse
import logging
import sys
import textwrap

from cliff.command import Command

from shrine.utils import secrets_tree


class SecretsTree(Command):
    """Output tree listing of secret paths."""

    logger = logging.getLogger(__name__)

    def get_parser(self, prog_name):
        parser = super().get_parser(prog_name)
        parser.formatter_class = argparse.RawDescriptionHelpFormatter
        parser.add_argument(
            'pattern',
            nargs='?',
            default=None,
            help='Regular expression selecting secret paths'
        )
        parser.epilog = textwrap.dedent("""
            The ``tree`` command shows the secret paths the way the Unix
            ``tree`` command shows files:

            .. code-block:: console

                $ shrine tree
                /home/me/secrets/shrine
                ├── api
                │   └── token
                └── db
                    ├── prod
                    │   └── password
                    └── test
                        └── password

            ..
            """)
        return parser

    def take_action(self, parsed_args):
        listing = self.app.with_secrets(
            lambda secrets: secrets.list(parsed_args.pattern))
        secrets_tree(
            listing.paths,
            root=str(self.app.shrine_file),
            outfile=sys.stdout,
        )


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
