# -*- coding: utf-8 -*-

"""
Agent session: a derived key with an absolute expiry.
"""

import enum
import time

from dataclasses import (
    dataclass,
    field,
)
from pathlib import Path

from shrine.kdf import DerivedKey


class SessionState(enum.Enum):
    LOCKED = 'locked'
    UNLOCKING = 'unlocking'
    UNLOCKED = 'unlocked'


@dataclass
class Session:
    """
    Key cached for one shrine file.

    ``expires_at`` is fixed when the session is created and is not pushed
    back by activity.
    """

    key: DerivedKey
    shrine_path: Path
    expires_at: float
    created_at: float = field(default_factory=time.monotonic)

    @classmethod
    def start(cls, key, shrine_path, ttl):
        now = time.monotonic()
        return cls(
            key=key,
            shrine_path=Path(shrine_path),
            expires_at=now + ttl,
            created_at=now,
        )

    def remaining(self, now=None):
        """Seconds left before expiry (never negative)."""
        now = time.monotonic() if now is None else now
        return max(0.0, self.expires_at - now)

    def expired(self, now=None):
        now = time.monotonic() if now is None else now
        return now >= self.expires_at or self.key.wiped

    def destroy(self):
        self.key.wipe()


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
