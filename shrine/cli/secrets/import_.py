# -*- coding: utf-8 -*-

"""
Import secrets from a ``key=value`` file.
"""

import logging

from cliff.command import Command


class SecretsImport(Command):
    """
    Import secrets from a file of ``key=value`` lines.

    The format is the one of ``.env`` files::

        # database
        DB_USER=admin
        DB_PASSWORD=s3cr3t  # trailing comments are ignored
        export API_TOKEN="abc#def"
        HASH=abc\\#123

    Each line is split at the first ``=``. An unescaped ``#`` starts a
    comment, unless it is inside a quoted value; ``\\#`` is a literal
    ``#``. Blank and comment lines are skipped, as is a leading
    ``export``. Imported values overwrite existing secrets with the same
    path, so importing the same file twice changes nothing.

    Use ``--prefix`` to import below a path::

        $ shrine import .env --prefix env/prod/
    """

    logger = logging.getLogger(__name__)

    def get_parser(self, prog_name):
        parser = super().get_parser(prog_name)
        parser.add_argument(
            '--prefix',
            metavar='<prefix>',
            dest='prefix',
            default=None,
            help='String prepended to every imported key'
        )
        parser.add_argument('file')
        return parser

    def take_action(self, parsed_args):
        with open(parsed_args.file, 'r', encoding='utf-8') as f:
            lines = f.read().splitlines()
        count = self.app.with_secrets(
            lambda secrets: secrets.import_lines(
                lines, prefix=parsed_args.prefix))
        self.logger.info(
            "[+] imported %d secret(s) from '%s'", count, parsed_args.file)


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
