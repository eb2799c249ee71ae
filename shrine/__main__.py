# -*- coding: utf-8 -*-

"""
Local, file-based encrypted secrets manager.
"""

# Standard imports
import sys

# Local imports
from shrine import __version__
from shrine.app import ShrineApp


def main(argv=None):
    """
    Command line interface for the ``shrine`` program.
    """
    if argv is None:
        argv = sys.argv[1:]
    myapp = ShrineApp(
        namespace='shrine',
        version=__version__,
    )
    return myapp.run(argv)


if __name__ == '__main__':
    sys.exit(main(sys.argv[1:]))

# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
