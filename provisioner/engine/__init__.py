# Path: provisioner/engine/__init__.py
"""
Provisioner Engine Module

Component acquisition components.
Exports public APIs for running a manifest.

Architecture:
- ManifestDispatcher: Main orchestrator
- ArchiveFetcher / VCSFetcher / LibFetcher: One per record class
- ChecksumLocator: Finds releases on GNU-style mirrors
- ArchiveDownloader: Download-with-retry and unpack
- StagingCoordinator: Owns the staging directory and run log
"""

from provisioner.engine.dispatcher import (
    ManifestDispatcher,
    FailureStrategy,
    StopOnFirstFailure,
    ContinueAndCollectFailures,
    strategy_for,
)
from provisioner.engine.archive_fetcher import ArchiveFetcher
from provisioner.engine.vcs_fetcher import VCSFetcher, repository_url, archive_url
from provisioner.engine.lib_fetcher import LibFetcher
from provisioner.engine.mirror_locator import ChecksumLocator, LocatedArchive, mirror_candidates
from provisioner.engine.archive_downloader import ArchiveDownloader
from provisioner.engine.protocol_handlers import HTTPHandler
from provisioner.engine.stream_handler import StreamHandler
from provisioner.engine.retry_manager import RetryManager
from provisioner.engine.vcs_client import VCSClient
from provisioner.engine.validator import Validator
from provisioner.engine.staging import StagingCoordinator, StagingError
from provisioner.engine.failure_handler import FailureHandler
from provisioner.engine.checksums import ChecksumEntry, ChecksumParseError
from provisioner.engine.manifest import (
    ManifestParseError,
    ToolchainRecord,
    DreamcastRecord,
    LibRecord,
    UnknownRecord,
    read_manifest,
    parse_manifest,
)
from provisioner.engine.result import (
    DownloadResult,
    ExtractionResult,
    CloneResult,
    ValidationResult,
    FetchResult,
    RunResult,
)

__all__ = [
    # Main dispatcher
    'ManifestDispatcher',
    'FailureStrategy',
    'StopOnFirstFailure',
    'ContinueAndCollectFailures',
    'strategy_for',

    # Fetchers
    'ArchiveFetcher',
    'VCSFetcher',
    'LibFetcher',
    'repository_url',
    'archive_url',

    # Mirror handling
    'ChecksumLocator',
    'LocatedArchive',
    'mirror_candidates',
    'ChecksumEntry',
    'ChecksumParseError',

    # Transport
    'ArchiveDownloader',
    'HTTPHandler',
    'StreamHandler',
    'RetryManager',
    'VCSClient',

    # Workflow components
    'Validator',
    'StagingCoordinator',
    'StagingError',
    'FailureHandler',

    # Manifest
    'ManifestParseError',
    'ToolchainRecord',
    'DreamcastRecord',
    'LibRecord',
    'UnknownRecord',
    'read_manifest',
    'parse_manifest',

    # Result objects
    'DownloadResult',
    'ExtractionResult',
    'CloneResult',
    'ValidationResult',
    'FetchResult',
    'RunResult',
]
