# Path: provisioner/cli/provision_cli.py
"""
Provision CLI Interface

Command-line interface for staging toolchain sources.

Architecture:
- Paired flags (--force/--no-force, --clone/--download, --https/--ssh),
  the last of each pair wins
- Flags are frozen into RunSettings together with environment defaults
- Staging directory and run log are set up before any fetch
- ManifestDispatcher does the work, a rich table reports it
- Build-loop stub lists the staged directories
- Exit status: 0 on success, 1 on any failure (help included)

Usage:
    python -m provisioner.provision [--force] [--clone] [--ssh] [--manifest FILE]
"""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from rich.table import Table

from provisioner.core.config_loader import ConfigLoader
from provisioner.core.logger import get_logger, configure_logging, console
from provisioner.core.settings import RunSettings
from provisioner.engine.dispatcher import ManifestDispatcher, strategy_for
from provisioner.engine.manifest import ManifestParseError
from provisioner.engine.result import RunResult
from provisioner.engine.staging import StagingCoordinator, StagingError
from provisioner.constants import (
    GITHUB_HTTPS_PREFIX,
    GITHUB_SSH_PREFIX,
    STATUS_FETCHED,
    STATUS_SKIPPED,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'cli')

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

TRANSPORT_PREFIXES = {
    'https': GITHUB_HTTPS_PREFIX,
    'ssh': GITHUB_SSH_PREFIX,
}

STATUS_STYLES = {
    STATUS_FETCHED: 'green',
    STATUS_SKIPPED: 'cyan',
}


class UsageError(Exception):
    """Command line could not be parsed."""


class ProvisionArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports errors instead of exiting with status 2."""

    def error(self, message):
        raise UsageError(message)


def build_parser() -> ProvisionArgumentParser:
    """Argument parser for the provision command."""
    parser = ProvisionArgumentParser(
        prog='provision',
        description='Download and stage toolchain sources listed in a component manifest.',
        add_help=False,
    )

    parser.add_argument(
        '--force', dest='force', action='store_const', const=True,
        help='delete existing sources and fetch them again',
    )
    parser.add_argument(
        '--no-force', dest='force', action='store_const', const=False,
        help='keep existing sources (default)',
    )
    parser.add_argument(
        '--clone', dest='clone', action='store_const', const=True,
        help='clone repositories with git',
    )
    parser.add_argument(
        '--download', dest='clone', action='store_const', const=False,
        help='download repository tarballs (default)',
    )
    parser.add_argument(
        '--https', dest='transport', action='store_const', const='https',
        help='clone over https (default)',
    )
    parser.add_argument(
        '--ssh', dest='transport', action='store_const', const='ssh',
        help='clone over ssh',
    )
    parser.add_argument(
        '--manifest', metavar='PATH',
        help='component manifest (default: components.conf)',
    )
    parser.add_argument(
        '-h', '--help', dest='help', action='store_true',
        help='show this help and exit',
    )

    parser.set_defaults(force=False, clone=False, transport='https')
    return parser


class ProvisionCLI:
    """
    Command-line front end.

    Workflow:
    1. Parse flags
    2. Freeze RunSettings
    3. Create the staging directory, open the run log
    4. Run the manifest
    5. Report, then run the build-loop stub on success

    Example:
        cli = ProvisionCLI()
        sys.exit(cli.run(sys.argv[1:]))
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        """
        Initialize provision CLI.

        Args:
            config: Optional ConfigLoader instance
        """
        self.config = config if config else ConfigLoader()
        self.parser = build_parser()

    def run(self, argv: Optional[Sequence[str]] = None) -> int:
        """
        Run one provisioning session.

        Args:
            argv: Command-line arguments (sys.argv[1:] if None)

        Returns:
            Process exit status
        """
        try:
            args = self.parser.parse_args(argv)
        except UsageError as e:
            self.parser.print_usage(sys.stderr)
            print(f"{self.parser.prog}: error: {e}", file=sys.stderr)
            return EXIT_FAILURE

        if args.help:
            self.parser.print_help()
            return EXIT_FAILURE

        configure_logging(self.config)

        settings = RunSettings.from_config(
            self.config,
            manifest_path=args.manifest,
            force=args.force,
            clone=args.clone,
            transport_prefix=TRANSPORT_PREFIXES[args.transport],
        )

        try:
            strategy_for(settings.failure_strategy)
        except ValueError as e:
            logger.error(f"{LOG_OUTPUT} {e}")
            return EXIT_FAILURE

        logger.info(f"{LOG_INPUT} Manifest: {settings.manifest_path}")
        logger.info(f"{LOG_INPUT} Staging directory: {settings.staging_dir}")

        staging = StagingCoordinator(settings)
        try:
            staging.ensure_staging_dir()
        except StagingError as e:
            logger.error(f"{LOG_OUTPUT} {e}")
            return EXIT_FAILURE

        staging.open_run_log()
        try:
            run = asyncio.run(self._run_manifest(settings, staging))
        except ManifestParseError as e:
            logger.error(f"{LOG_OUTPUT} Invalid manifest {settings.manifest_path}: {e}")
            return EXIT_FAILURE
        except OSError as e:
            logger.error(f"{LOG_OUTPUT} Cannot read manifest {settings.manifest_path}: {e}")
            return EXIT_FAILURE
        finally:
            staging.close_run_log()

        self._display_run(run)

        if not run.ok:
            console.print(f"[red]Provisioning failed.[/red] See {staging.run_log_path}")
            return EXIT_FAILURE

        self._build_components(settings, staging)
        return EXIT_SUCCESS

    async def _run_manifest(
        self,
        settings: RunSettings,
        staging: StagingCoordinator
    ) -> RunResult:
        """Run the manifest on a fresh dispatcher."""
        async with ManifestDispatcher(settings, staging=staging) as dispatcher:
            return await dispatcher.run_manifest(settings.manifest_path)

    def _display_run(self, run: RunResult) -> None:
        """Render per-component outcomes."""
        if run.error_stage:
            console.print(f"[red]{run.error_stage}:[/red] {run.error_message}")

        if not run.outcomes:
            return

        table = Table(title="Components", show_header=True)
        table.add_column("Component", style="bold")
        table.add_column("Class")
        table.add_column("Status")
        table.add_column("Detail", style="dim")

        for outcome in run.outcomes:
            style = STATUS_STYLES.get(outcome.status, 'red')
            if outcome.success:
                detail = str(outcome.target_dir) if outcome.target_dir else ''
            else:
                detail = f"{outcome.error_stage}: {outcome.error_message}"
            table.add_row(
                outcome.component,
                outcome.record_class,
                f"[{style}]{outcome.status}[/{style}]",
                detail,
            )

        console.print(table)

    def _build_components(self, settings: RunSettings, staging: StagingCoordinator) -> None:
        """
        Build-loop stub.

        Lists the staged source trees that a build pass would consume.
        """
        staged = staging.staged_directories()

        logger.info(
            f"{LOG_PROCESS} Build pass: {len(staged)} staged source trees, "
            f"make -j{settings.make_jobs}"
        )
        for directory in staged:
            logger.info(f"{LOG_OUTPUT}   {directory.name}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    CLI entry point.

    Args:
        argv: Command-line arguments (sys.argv[1:] if None)

    Returns:
        Process exit status
    """
    return ProvisionCLI().run(argv)


__all__ = ['ProvisionCLI', 'ProvisionArgumentParser', 'UsageError', 'build_parser', 'main']
