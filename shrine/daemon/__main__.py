# -*- coding: utf-8 -*-

"""
Run an agent in the foreground::

    python -m shrine.daemon --shrine ~/.shrine/shrine --ttl 900
"""

import argparse
import logging
import os
import sys

from shrine.daemon.server import SessionDaemon
from shrine.utils import (
    get_default_agent_ttl,
    positive_number,
    DEFAULT_UMASK,
)


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='python -m shrine.daemon',
        description='Cache the key of a shrine file for a limited time.',
    )
    parser.add_argument(
        '--shrine',
        required=True,
        help='Shrine file to serve',
    )
    parser.add_argument(
        '--ttl',
        type=positive_number,
        default=get_default_agent_ttl(),
        help='Session lifetime in seconds (default: %(default)s)',
    )
    parser.add_argument(
        '--socket',
        default=None,
        help='Socket path (default: derived from the shrine path)',
    )
    parser.add_argument(
        '--pid-file',
        default=None,
        help='Pid file path (default: derived from the shrine path)',
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        default=False,
        help='Log debug messages',
    )
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
    )
    os.umask(DEFAULT_UMASK)
    daemon = SessionDaemon(
        args.shrine,
        socket_path=args.socket,
        pid_path=args.pid_file,
        ttl=args.ttl,
    )
    try:
        daemon.run()
    except RuntimeError as err:
        logging.getLogger(__name__).error(str(err))
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
