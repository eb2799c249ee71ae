# -*- coding: utf-8 -*-

import logging

from cliff.command import Command

from shrine.daemon.client import DaemonClient


class AgentUnlock(Command):
    """Unlock the agent session with the shrine password."""

    logger = logging.getLogger(__name__)

    def take_action(self, parsed_args):
        client = DaemonClient.for_shrine(self.app.shrine_file)
        # Fail on a missing agent before prompting.
        client.status()
        expires_in = client.unlock(self.app.get_password())
        self.logger.info('[+] session unlocked for %d seconds', expires_in)


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
