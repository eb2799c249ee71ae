# -*- coding: utf-8 -*-

import logging

from cliff.command import Command

from shrine.daemon.manager import stop_daemon


class AgentStop(Command):
    """Stop the agent of the shrine file, forgetting its session."""

    logger = logging.getLogger(__name__)

    def take_action(self, parsed_args):
        if not stop_daemon(self.app.shrine_file):
            self.logger.info('[-] no agent running')


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
