# -*- coding: utf-8 -*-

"""
Command line interface for a local, file-based encrypted secrets store.

All secrets live in a single encrypted file named ``shrine`` in the shrine
folder. Commands either derive the key from your password or, when an
agent holds an unlocked session for that shrine, ask the agent instead so
you don't have to type the password again.
"""

# Standard imports
import logging
import os
import sys
import textwrap

from typing import Union

# External imports
from cliff.app import App
from cliff.commandmanager import CommandManager

# Local imports
from shrine.unlock import perform
from shrine.utils import (
    get_default_folder,
    get_runtime_dir,
    get_shrine_file,
    prompt_password,
    show_current_value,
    umask,
    DEFAULT_UMASK,
)

SHRINE_LOGFILE = os.getenv('SHRINE_LOGFILE', None)


def get_commands():
    """Return the ``(name, class)`` pairs of all shrine commands."""
    # pylint: disable=import-outside-toplevel
    from shrine.cli.agent.lock import AgentLock
    from shrine.cli.agent.start import AgentStart
    from shrine.cli.agent.status import AgentStatus
    from shrine.cli.agent.stop import AgentStop
    from shrine.cli.agent.unlock import AgentUnlock
    from shrine.cli.config.get import ConfigGet
    from shrine.cli.config.set import ConfigSet
    from shrine.cli.convert import Convert
    from shrine.cli.dump import Dump
    from shrine.cli.info import Info
    from shrine.cli.init import Init
    from shrine.cli.secrets.get import SecretsGet
    from shrine.cli.secrets.import_ import SecretsImport
    from shrine.cli.secrets.ls import SecretsList
    from shrine.cli.secrets.rm import SecretsRemove
    from shrine.cli.secrets.set import SecretsSet
    from shrine.cli.secrets.tree import SecretsTree
    # pylint: enable=import-outside-toplevel
    return [
        ('init', Init),
        ('info', Info),
        ('convert', Convert),
        ('set', SecretsSet),
        ('get', SecretsGet),
        ('ls', SecretsList),
        ('rm', SecretsRemove),
        ('import', SecretsImport),
        ('tree', SecretsTree),
        ('dump', Dump),
        ('config get', ConfigGet),
        ('config set', ConfigSet),
        ('agent start', AgentStart),
        ('agent stop', AgentStop),
        ('agent status', AgentStatus),
        ('agent unlock', AgentUnlock),
        ('agent lock', AgentLock),
    ]


class ShrineApp(App):
    '''
    Shrine application class.

    Holds the global options (shrine folder, password, umask) and gives
    commands access to the selected shrine file::

        from shrine.app import ShrineApp

        def main(argv=None):
            app = ShrineApp(namespace='shrine', version='1.0.0')
            return app.run(argv or sys.argv[1:])
    '''

    def __init__(
        self,
        description: Union[str, None] = None,
        version: Union[str, None] = None,
        namespace: Union[str, None] = None,
    ):
        if namespace is None:
            raise RuntimeError("[-] no command namespace specified")
        if description is None:
            description = __doc__.strip()
        command_manager = CommandManager(namespace=namespace)
        for name, command_class in get_commands():
            command_manager.add_command(name, command_class)
        super().__init__(
            description=description,
            version=version,
            command_manager=command_manager,
            deferred_help=True,
            )
        self.shrine_file = None
        self._password = None
        #
        # Alias the following variable for consistency using code
        # using "logger" instead of "LOG".
        self.logger = self.LOG

    def build_option_parser(self, description, version, argparse_kwargs=None):
        parser = super().build_option_parser(
            description,
            version,
            argparse_kwargs,
        )
        # Make ``help`` output report the main program name, even if run
        # as ``python -m shrine``.
        if parser.prog.endswith('.py'):
            parser.prog = self.command_manager.namespace

        # Replace the cliff SmartHelpFormatter class before first use
        # by subcommand `--help`.
        # pylint: disable=import-outside-toplevel
        from shrine.utils import CustomFormatter
        from cliff import _argparse
        _argparse.SmartHelpFormatter = CustomFormatter
        # pylint: enable=import-outside-toplevel

        # We also need to change app parser, which is separate.
        parser.formatter_class = CustomFormatter
        # Global options
        parser.add_argument(
            '-p', '--password',
            metavar='<password>',
            dest='password',
            default=None,
            help='Shrine password (default: prompt)'
        )
        parser.add_argument(
            '--folder', '--path',
            metavar='<folder>',
            dest='folder',
            default=get_default_folder(),
            help='Folder holding the shrine file (Env: SHRINE_FOLDER)'
        )
        parser.add_argument(
            '--umask',
            metavar='<umask>',
            type=umask,
            dest='umask',
            default=DEFAULT_UMASK,
            help='Permissions mask to apply during app execution'
        )
        parser.epilog = textwrap.dedent(f"""
            Secrets are addressed by ``/`` separated paths (``db/prod/password``).
            Passing ``--password`` on the command line exposes the password to
            other users of this host through the process table; prefer the
            interactive prompt or an agent session (``{parser.prog} agent start``
            followed by ``{parser.prog} agent unlock``).

            To improve overall security, a default process umask of {DEFAULT_UMASK:#05o}
            is set when the app initializes. If you need to relax these permissions,
            use the ``--umask`` option to apply the desired mask.

            Current working dir: {os.getcwd()}
            Python interpreter:  {sys.executable} (v{sys.version.split()[0]})

            Environment variables consumed:
              SHRINE_FOLDER          Default folder holding the shrine file.{show_current_value('SHRINE_FOLDER')}
              SHRINE_LOGFILE         Path to file for receiving log messages.{show_current_value('SHRINE_LOGFILE')}
              SHRINE_RUNTIME_DIR     Directory for agent sockets and pid files.{show_current_value('SHRINE_RUNTIME_DIR')}
              SHRINE_AGENT_TTL       Default agent session lifetime in seconds.{show_current_value('SHRINE_AGENT_TTL')}
              SHRINE_KDF_ITERATIONS  Default key derivation work factor for ``init``.{show_current_value('SHRINE_KDF_ITERATIONS')}
            """)  # noqa
        return parser

    def initialize_app(self, argv):
        self.logger.debug('[*] initialize_app(%s)', self.__class__.NAME)
        if SHRINE_LOGFILE is not None:
            logging.basicConfig(
                level=logging.INFO,
                filename=SHRINE_LOGFILE,
                format="%(asctime)s.%(msecs).6d %(levelname)s: %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        os.umask(self.options.umask)

    def prepare_to_run_command(self, cmd):
        self.logger.debug("[*] prepare_to_run_command('%s')", cmd.cmd_name)
        self.shrine_file = get_shrine_file(self.options.folder)
        self.logger.debug("[*] using shrine '%s'", self.shrine_file)
        self.logger.debug("[*] running command '%s'", cmd.cmd_name)

    def clean_up(self, cmd, result, err):
        self.logger.debug("[-] clean_up command '%s'", cmd.cmd_name)
        self._password = None
        if err:
            self.logger.debug("[-] got an error: %s", str(err))

    def get_password(self, confirm=False, prompt='Password: '):
        """
        Return the shrine password from ``--password`` or a prompt.

        A prompted password is remembered for the rest of the command.
        """
        if self.options.password is not None:
            return self.options.password
        if self._password is None:
            self._password = prompt_password(prompt=prompt, confirm=confirm)
        return self._password

    def with_secrets(self, action):
        """Run ``action`` on the warm path if an agent is unlocked."""
        return perform(
            self.shrine_file,
            self.get_password,
            action,
            runtime_dir=get_runtime_dir(),
        )


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
