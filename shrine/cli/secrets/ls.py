# -*- coding: utf-8 -*-

"""
List secret paths.
"""

import logging

from cliff.lister import Lister


TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M'


def _format_timestamp(value):
    return '' if value is None else value.strftime(TIMESTAMP_FORMAT)


class SecretsList(Lister):
    """
    List the paths of the secrets in the shrine.

    An optional regular expression selects the paths to list; it may match
    anywhere in the path::

        $ shrine ls '^db/'
        +------------------+
        | Path             |
        +------------------+
        | db/prod/password |
        | db/test/password |
        +------------------+

    With ``--long``, each secret's mode (``txt`` or ``bin``), who created
    it and when, and who last updated it and when (UTC) are listed too::

        $ shrine ls --long -f value '^db/'
        db/prod/password txt me@laptop 2024-03-01 09:12 me@ci 2024-05-02 17:40
        db/test/password txt me@laptop 2024-03-01 09:13

    Paths are sorted. The number of matching secrets is logged (use
    ``-v``) and is the number of rows printed.
    """

    logger = logging.getLogger(__name__)

    def get_parser(self, prog_name):
        parser = super().get_parser(prog_name)
        parser.add_argument(
            '-l', '--long',
            action='store_true',
            dest='long',
            default=False,
            help='Also list mode, authors and timestamps'
        )
        parser.add_argument(
            'pattern',
            nargs='?',
            default=None,
            help='Regular expression selecting secret paths'
        )
        return parser

    def take_action(self, parsed_args):
        listing = self.app.with_secrets(
            lambda secrets: secrets.list(parsed_args.pattern))
        self.logger.info('[+] total %d', listing.count)
        if not parsed_args.long:
            return ('Path',), [(path,) for path in listing]
        columns = (
            'Path',
            'Mode',
            'Created by',
            'Created at',
            'Updated by',
            'Updated at',
        )
        data = [
            (
                entry.path,
                entry.mode,
                entry.created_by,
                _format_timestamp(entry.created_at),
                entry.updated_by or '',
                _format_timestamp(entry.updated_at),
            )
            for entry in listing.entries
        ]
        return columns, data


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
