# Path: provisioner/engine/dispatcher.py
"""
Manifest Dispatcher

Main workflow orchestrator for a provisioning run.
Routes every manifest record, in file order, to its fetcher.

Routing:
- toolchain -> ArchiveFetcher(name, version, forced mirror)
- dreamcast -> VCSFetcher(repo, branch, organization)
- lib       -> LibFetcher(name, url)
- anything else is skipped with an informational message

Architecture:
- Strictly sequential, one record fully resolved before the next
- Failure policy is a strategy object (fail-fast by default)
- Transport preflight before any fetch
- Unexpected fetcher exceptions become failed FetchResults;
  cancellation always propagates
"""

import time
from pathlib import Path
from typing import Iterable, Optional

from provisioner.core.logger import get_logger
from provisioner.core.settings import RunSettings
from provisioner.engine.archive_downloader import ArchiveDownloader
from provisioner.engine.archive_fetcher import ArchiveFetcher
from provisioner.engine.failure_handler import FailureHandler
from provisioner.engine.lib_fetcher import LibFetcher
from provisioner.engine.manifest import (
    ComponentRecord,
    DreamcastRecord,
    LibRecord,
    ToolchainRecord,
    UnknownRecord,
    read_manifest,
)
from provisioner.engine.protocol_handlers import HTTPHandler
from provisioner.engine.result import FetchResult, RunResult
from provisioner.engine.retry_manager import RetryManager
from provisioner.engine.staging import StagingCoordinator
from provisioner.engine.vcs_client import VCSClient
from provisioner.engine.vcs_fetcher import VCSFetcher
from provisioner.constants import (
    STAGE_TRANSPORT,
    STAGE_UNEXPECTED,
    STRATEGY_CONTINUE,
    STRATEGY_STOP,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'engine')


class FailureStrategy:
    """Decides whether a run goes on after a record outcome."""

    name = ''

    def should_continue(self, outcome: FetchResult) -> bool:
        raise NotImplementedError("Subclasses must implement should_continue()")


class StopOnFirstFailure(FailureStrategy):
    """Fail-fast: the first failed record ends the run."""

    name = STRATEGY_STOP

    def should_continue(self, outcome: FetchResult) -> bool:
        return outcome.success


class ContinueAndCollectFailures(FailureStrategy):
    """Process every record; the run fails if any record failed."""

    name = STRATEGY_CONTINUE

    def should_continue(self, outcome: FetchResult) -> bool:
        return True


STRATEGIES = {
    StopOnFirstFailure.name: StopOnFirstFailure,
    ContinueAndCollectFailures.name: ContinueAndCollectFailures,
}


def strategy_for(name: Optional[str]) -> FailureStrategy:
    """
    Failure strategy by configured name.

    Args:
        name: 'stop' or 'continue' (fail-fast if empty)

    Returns:
        Strategy instance

    Raises:
        ValueError: Unknown strategy name
    """
    key = (name or STRATEGY_STOP).lower()
    if key not in STRATEGIES:
        raise ValueError(
            f"Unknown failure strategy {name!r}; expected one of {', '.join(STRATEGIES)}"
        )
    return STRATEGIES[key]()


class ManifestDispatcher:
    """
    Runs a component manifest.

    Example:
        async with ManifestDispatcher(settings) as dispatcher:
            run = await dispatcher.run_manifest(settings.manifest_path)
        sys.exit(0 if run.ok else 1)
    """

    def __init__(
        self,
        settings: RunSettings,
        staging: Optional[StagingCoordinator] = None,
        http_handler: Optional[HTTPHandler] = None,
        vcs_client: Optional[VCSClient] = None,
        archive_fetcher: Optional[ArchiveFetcher] = None,
        vcs_fetcher: Optional[VCSFetcher] = None,
        lib_fetcher: Optional[LibFetcher] = None,
        strategy: Optional[FailureStrategy] = None,
        failure_handler: Optional[FailureHandler] = None
    ):
        """
        Initialize dispatcher.

        Collaborators not supplied are built from settings.

        Args:
            settings: Run settings
            staging: Optional StagingCoordinator
            http_handler: Optional HTTPHandler
            vcs_client: Optional VCSClient
            archive_fetcher: Optional toolchain fetcher
            vcs_fetcher: Optional dreamcast fetcher
            lib_fetcher: Optional lib fetcher
            strategy: Failure strategy (from settings if None)
            failure_handler: Optional FailureHandler
        """
        self.settings = settings

        self.staging = staging if staging else StagingCoordinator(settings)
        self.http_handler = http_handler if http_handler else HTTPHandler(settings)
        self.vcs_client = vcs_client if vcs_client else VCSClient(settings)
        self.failure_handler = failure_handler if failure_handler else FailureHandler()
        self.strategy = strategy if strategy else strategy_for(settings.failure_strategy)

        downloader = None
        if not (archive_fetcher and vcs_fetcher and lib_fetcher):
            downloader = ArchiveDownloader(
                self.http_handler,
                RetryManager(settings=settings),
                settings,
            )

        self.archive_fetcher = archive_fetcher if archive_fetcher else \
            ArchiveFetcher(settings, self.staging, downloader)
        self.vcs_fetcher = vcs_fetcher if vcs_fetcher else \
            VCSFetcher(settings, self.staging, self.vcs_client, downloader)
        self.lib_fetcher = lib_fetcher if lib_fetcher else \
            LibFetcher(settings, self.staging, downloader)

    def preflight(self, records: list[ComponentRecord]) -> Optional[str]:
        """
        Capability check before any fetch.

        Args:
            records: Parsed manifest records

        Returns:
            Error message if the run cannot proceed, None otherwise
        """
        needs_git = self.settings.clone and any(
            isinstance(record, DreamcastRecord) for record in records
        )
        if needs_git and not self.vcs_client.is_available():
            return f"{self.vcs_client.executable} is required for --clone but was not found"
        return None

    async def run(self, records: Iterable[ComponentRecord]) -> RunResult:
        """
        Process records in order.

        Args:
            records: Parsed manifest records

        Returns:
            RunResult
        """
        records = list(records)
        logger.info(
            f"{LOG_INPUT} {len(records)} manifest records "
            f"({'clone' if self.settings.clone else 'download'} mode, "
            f"{self.strategy.name} on failure)"
        )

        start_time = time.time()
        run = RunResult()

        problem = self.preflight(records)
        if problem:
            run.fail(STAGE_TRANSPORT, problem)
            run.total_duration = time.time() - start_time
            self.failure_handler.report_run(run)
            return run

        for record in records:
            if isinstance(record, UnknownRecord):
                logger.info(
                    f"{LOG_PROCESS} Skipping unknown component class "
                    f"'{record.record_class}' (line {record.line_number})"
                )
                run.ignored.append(record.record_class)
                continue

            outcome = await self._dispatch(record)
            run.record(outcome)

            if not outcome.success:
                self.failure_handler.handle_failure(record, outcome)

            if not self.strategy.should_continue(outcome):
                logger.info(f"{LOG_PROCESS} Stopping after failed {outcome.component}")
                break

        run.total_duration = time.time() - start_time
        self.failure_handler.report_run(run)

        return run

    async def run_manifest(self, manifest_path: Optional[Path] = None) -> RunResult:
        """
        Read and run a manifest file.

        Args:
            manifest_path: Manifest to run (settings.manifest_path if None)

        Returns:
            RunResult

        Raises:
            ManifestParseError: A record is malformed (nothing is fetched)
            OSError: The manifest cannot be read
        """
        records = read_manifest(manifest_path or self.settings.manifest_path)
        return await self.run(records)

    async def _dispatch(self, record: ComponentRecord) -> FetchResult:
        """Route one record to its fetcher."""
        try:
            if isinstance(record, ToolchainRecord):
                return await self.archive_fetcher.fetch(
                    record.name,
                    record.version,
                    record.forced_mirror_url,
                )

            if isinstance(record, DreamcastRecord):
                return await self.vcs_fetcher.fetch(
                    record.repo,
                    record.branch,
                    record.organization,
                )

            if isinstance(record, LibRecord):
                return await self.lib_fetcher.fetch(record.name, record.url)

            raise TypeError(f"Unsupported record type: {type(record).__name__}")

        except Exception as e:
            logger.error(f"{LOG_OUTPUT} Unexpected error for {record.target}: {e}", exc_info=True)
            return FetchResult(
                success=False,
                component=record.target,
                record_class=record.record_class,
            ).mark_failed(STAGE_UNEXPECTED, str(e))

    async def close(self):
        """Close dispatcher and cleanup resources."""
        logger.debug("Closing manifest dispatcher")
        await self.http_handler.close()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()


__all__ = [
    'ManifestDispatcher',
    'FailureStrategy',
    'StopOnFirstFailure',
    'ContinueAndCollectFailures',
    'strategy_for',
]
