# -*- coding: utf-8 -*-

"""
``shrine`` exception classes.
"""


class ShrineBaseException(Exception):
    """Base class for shrine exceptions"""
    # This base class uses the __doc__ string of subclasses as the default
    # message. To customize the message, pass it to ``__init__()`` as
    # the ``msg`` argument.
    #
    # Subclasses that carry context (a file path, a secret path, ...) name
    # the keyword in ``context`` and get it appended by ``__str__()``.
    #
    # Don't raise this exception directly.
    #
    context = None

    def __init__(self, *args, msg=None, **kwargs):
        if self.context is not None:
            setattr(self, self.context, kwargs.pop(self.context, None))
        super().__init__(msg or self.__doc__, *args, **kwargs)
        self.msg = msg or self.__doc__

    def __str__(self):
        addendum = ''
        if self.context is not None:
            value = getattr(self, self.context, None)
            if value is not None:
                addendum = f": {value}"
        return str(self.msg) + addendum


class IntegrityError(ShrineBaseException):
    """Wrong password or corrupted shrine"""
    # Both causes produce the same error so that a caller can't tell
    # a bad password from a damaged file.


class BadPasswordError(IntegrityError):
    """Wrong password or corrupted shrine"""


class FormatError(ShrineBaseException):
    """Unsupported shrine format"""
    context = 'path'


class NotFoundError(ShrineBaseException):
    """Not found"""


class ShrineNotFoundError(NotFoundError):
    """Shrine file does not exist"""
    context = 'path'


class SecretNotFoundError(NotFoundError):
    """Secret not found"""
    context = 'secret'


class ConfigKeyNotFoundError(NotFoundError):
    """Configuration key not found"""
    context = 'key'


class AlreadyExistsError(ShrineBaseException):
    """Shrine file already exists; use --force to override"""
    context = 'path'


class ConcurrentModificationError(ShrineBaseException):
    """Shrine file was modified by another process"""
    context = 'path'


class ShrineIOError(ShrineBaseException):
    """Could not access shrine file"""
    context = 'path'


class GitError(ShrineBaseException):
    """Git operation failed"""


class SessionExpiredError(ShrineBaseException):
    """No active session"""


class DaemonNotRunningError(ShrineBaseException):
    """Agent is not running"""
    context = 'endpoint'


class AgentError(ShrineBaseException):
    """Agent request failed"""


class InvalidSecretPathError(ShrineBaseException):
    """Invalid secret path"""
    context = 'secret'


class InvalidPatternError(ShrineBaseException):
    """Invalid pattern"""


class ImportFormatError(ShrineBaseException):
    """Invalid import file"""
    context = 'line'


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
