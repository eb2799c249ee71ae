# -*- coding: utf-8 -*-

"""
Print secrets as ``key=value`` lines.
"""

import logging

from cliff.command import Command


class Dump(Command):
    """
    Print all (or matching) secrets as ``key=value`` lines.

    The output can be read back with ``shrine import``::

        $ shrine dump '^db/'
        db/prod/password=hunter2
        db/test/password=hunter3

    Values that are not valid UTF-8 are skipped with a warning (use
    ``shrine get --base64`` for those).
    """

    logger = logging.getLogger(__name__)

    def get_parser(self, prog_name):
        parser = super().get_parser(prog_name)
        parser.add_argument(
            'pattern',
            nargs='?',
            default=None,
            help='Regular expression selecting secret paths'
        )
        return parser

    def take_action(self, parsed_args):
        entries = self.app.with_secrets(
            lambda secrets: secrets.dump(parsed_args.pattern))
        for path, value in entries:
            try:
                text = value.decode('utf-8')
            except UnicodeDecodeError:
                self.logger.warning("[!] '%s' is not text, skipping", path)
                continue
            print(f'{path}={text}')


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
