# -*- coding: utf-8 -*-

"""
Git integration for shrine folders.

When enabled in the shrine configuration, every successful write of the
shrine file is staged and (optionally) committed and pushed. Git failures
are reported as warnings: by the time they happen the secrets have already
been written to the shrine file.
"""

import enum
import getpass
import logging
import os
import shutil
import socket

from pathlib import Path
from subprocess import run, PIPE  # nosec

from shrine.exceptions import GitError
from shrine.utils import as_bool


GIT_ENABLED = 'git.enabled'
GIT_COMMIT_AUTO = 'git.commit.auto'
GIT_PUSH_AUTO = 'git.push.auto'
GIT_DEFAULTS = {
    GIT_ENABLED: True,
    GIT_COMMIT_AUTO: True,
    GIT_PUSH_AUTO: False,
}


class ChangeKind(enum.Enum):
    """Kind of change recorded for a shrine write."""

    INIT = 'Initialize shrine'
    UPDATE = 'Update shrine'

    @property
    def message(self):
        return self.value


class VersionControlAdapter(object):
    """
    Record shrine writes in a git repository rooted at the shrine folder.
    """

    logger = logging.getLogger(__name__)

    def __init__(self, shrine_file, git_command='git'):
        self.shrine_file = Path(shrine_file)
        self.folder = self.shrine_file.parent
        self.git_command = git_command

    def _environment(self):
        # Commits must not fail for lack of a configured identity.
        env = dict(os.environ)
        username = getpass.getuser()
        email = f'{username}@{socket.gethostname()}'
        env.setdefault('GIT_AUTHOR_NAME', username)
        env.setdefault('GIT_AUTHOR_EMAIL', email)
        env.setdefault('GIT_COMMITTER_NAME', username)
        env.setdefault('GIT_COMMITTER_EMAIL', email)
        return env

    def git(self, *args):
        """
        Run a git sub-command in the shrine folder.

        Returns:
          str: Standard output of the command.

        Raises:
          GitError: git is missing or the command failed.
        """
        if shutil.which(self.git_command) is None:
            raise GitError(msg=f"'{self.git_command}' executable not found")
        cmd = [self.git_command] + list(args)
        self.logger.debug('[*] running %s', ' '.join(cmd))
        try:
            p = run(  # nosec
                cmd,
                cwd=str(self.folder),
                env=self._environment(),
                stdout=PIPE,
                stderr=PIPE,
                shell=False,
            )
        except OSError as err:
            raise GitError(msg=f"'{' '.join(cmd)}' failed: {err}")
        if p.returncode != 0:
            raise GitError(
                msg=(
                    f"'{' '.join(cmd)}' failed: "
                    f"{p.stderr.decode('UTF-8', 'replace').strip()}"
                )
            )
        return p.stdout.decode('UTF-8', 'replace')

    def ensure_repository(self):
        """Initialize a repository in the shrine folder if needed."""
        if not (self.folder / '.git').exists():
            self.git('init', '--quiet')
            self.logger.info("[+] initialized git repository in '%s'",
                             self.folder)

    def commit(self, message):
        self.git('commit', '--quiet', '-m', message)

    def push(self):
        self.git('push', '--quiet')

    def record(self, change, config):
        """
        Record a shrine write according to the shrine's configuration.

        ``git.enabled`` stages the shrine file, ``git.commit.auto`` commits
        it with ``"Initialize shrine"`` (first write) or ``"Update shrine"``
        and ``git.push.auto`` pushes the commit.

        Returns:
          bool: ``False`` when a git operation failed (after logging a
          warning), ``True`` otherwise.
        """
        if not as_bool(config.get(GIT_ENABLED)):
            return True
        try:
            self.ensure_repository()
            self.git('add', '--', self.shrine_file.name)
            if as_bool(config.get(GIT_COMMIT_AUTO)):
                self.commit(change.message)
                self.logger.info("[+] git commit '%s'", change.message)
                if as_bool(config.get(GIT_PUSH_AUTO)):
                    self.push()
                    self.logger.info('[+] git push')
        except GitError as err:
            self.logger.warning('[!] %s', err)
            return False
        return True


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
