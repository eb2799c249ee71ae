# -*- coding: utf-8 -*-

from importlib.metadata import (
    version,
    PackageNotFoundError,
)

__author__ = 'Christophe Pollet'
__email__ = 'cpollet@users.noreply.github.com'
__release__ = '0.4.0'

try:
    __version__ = version("shrine")
except PackageNotFoundError:
    __version__ = __release__

__version_tuple__ = tuple(__version__.split('.'))

__all__ = [
    '__author__',
    '__email__',
    '__release__',
    '__version__',
    '__version_tuple__',
]

# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
