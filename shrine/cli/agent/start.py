# -*- coding: utf-8 -*-

"""
Start an agent for the shrine.
"""

import logging

from cliff.command import Command

from shrine.daemon.manager import start_daemon
from shrine.utils import (
    get_default_agent_ttl,
    positive_number,
)


class AgentStart(Command):
    """
    Start an agent for the shrine file.

    The agent runs in the background and, once unlocked, keeps the key of
    this shrine in memory so later commands don't ask for the password::

        $ shrine agent start --ttl 600
        $ shrine agent unlock
        Password:
        $ shrine get db/prod/password
        hunter2

    The session ends ``--ttl`` seconds after ``agent unlock``, however
    busy it is. It is reachable only through a socket that only you can
    open. Use ``--unlock`` to start and unlock in one step.
    """

    logger = logging.getLogger(__name__)

    def get_parser(self, prog_name):
        parser = super().get_parser(prog_name)
        parser.add_argument(
            '--ttl',
            metavar='<seconds>',
            type=positive_number,
            dest='ttl',
            default=get_default_agent_ttl(),
            help='Session lifetime in seconds (Env: SHRINE_AGENT_TTL)'
        )
        parser.add_argument(
            '--unlock',
            action='store_true',
            dest='unlock',
            default=False,
            help='Unlock the session right away'
        )
        return parser

    def take_action(self, parsed_args):
        shrine_file = self.app.shrine_file
        if not shrine_file.exists():
            raise RuntimeError(f"[-] no shrine file at '{shrine_file}'")
        client = start_daemon(shrine_file, ttl=parsed_args.ttl)
        if parsed_args.unlock:
            expires_in = client.unlock(self.app.get_password())
            self.logger.info(
                '[+] session unlocked for %d seconds', expires_in)


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
