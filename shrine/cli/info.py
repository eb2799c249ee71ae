# -*- coding: utf-8 -*-

"""
Show shrine file metadata.
"""

import logging

from cliff.show import ShowOne

from shrine.codec import fingerprint
from shrine.kdf import KDF_PBKDF2_SHA256
from shrine.repository import ShrineRepository


KDF_NAMES = {
    KDF_PBKDF2_SHA256: 'pbkdf2-hmac-sha256',
}


class Info(ShowOne):
    """
    Show metadata of the shrine file.

    Only the clear-text header is read, so no password is needed::

        $ shrine info
        +-------------+------------------------------------------------+
        | Field       | Value                                          |
        +-------------+------------------------------------------------+
        | file        | /home/me/secrets/shrine                        |
        | version     | 1                                              |
        | kdf         | pbkdf2-hmac-sha256                             |
        | iterations  | 600000                                         |
        | size        | 1234                                           |
        | fingerprint | 5d41402abc4b2a76b9719d911017c592...            |
        +-------------+------------------------------------------------+

    Select a single value with the usual output options::

        $ shrine info -c iterations -f value
        600000
    """

    logger = logging.getLogger(__name__)

    def take_action(self, parsed_args):
        repository = ShrineRepository(self.app.shrine_file)
        blob = repository.read_blob()
        header = repository.read_header()
        params = header.kdf_params
        info = {
            'file': str(repository.shrine_file),
            'version': header.format_version,
            'kdf': KDF_NAMES.get(params.algorithm, str(params.algorithm)),
            'iterations': params.iterations,
            'size': len(blob),
            'fingerprint': fingerprint(blob),
        }
        return tuple(info.keys()), tuple(info.values())


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
