# -*- coding: utf-8 -*-

import logging

from cliff.command import Command

from shrine.daemon.client import DaemonClient


class AgentLock(Command):
    """Lock the agent session right away, discarding the cached key."""

    logger = logging.getLogger(__name__)

    def take_action(self, parsed_args):
        DaemonClient.for_shrine(self.app.shrine_file).lock()
        self.logger.info('[+] session locked')


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
