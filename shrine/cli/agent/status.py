# -*- coding: utf-8 -*-

"""
Show the agent status.
"""

import logging

from cliff.show import ShowOne

from shrine.daemon.client import DaemonClient
from shrine.daemon.manager import daemon_pid
from shrine.exceptions import (
    AgentError,
    DaemonNotRunningError,
)


UNDEF = ''


class AgentStatus(ShowOne):
    """
    Show the status of the agent of the shrine file::

        $ shrine agent status
        +------------+--------------------------------------------+
        | Field      | Value                                      |
        +------------+--------------------------------------------+
        | shrine     | /home/me/secrets/shrine                    |
        | socket     | /run/user/1000/shrine/0c5bd1f1a2d9a8d4.sock |
        | pid        | 12345                                      |
        | running    | True                                       |
        | state      | unlocked                                   |
        | expires_in | 512                                        |
        +------------+--------------------------------------------+
    """

    logger = logging.getLogger(__name__)

    def take_action(self, parsed_args):
        shrine_file = self.app.shrine_file
        client = DaemonClient.for_shrine(shrine_file)
        info = {
            'shrine': str(shrine_file),
            'socket': str(client.socket_path),
            'pid': daemon_pid(shrine_file) or UNDEF,
            'running': False,
            'state': UNDEF,
            'expires_in': UNDEF,
        }
        try:
            status = client.status()
        except (DaemonNotRunningError, AgentError) as err:
            self.logger.debug('[-] %s', err)
        else:
            expires_in = status.get('expires_in')
            info.update({
                'pid': status.get('pid'),
                'running': True,
                'state': status.get('state'),
                'expires_in': UNDEF if expires_in is None else int(expires_in),
            })
        return tuple(info.keys()), tuple(info.values())


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
