# Path: provisioner/engine/archive_fetcher.py
"""
Archive Fetcher

Acquires toolchain-class components: GNU-style release tarballs.

Workflow per record:
1. Force policy / idempotency check on builds/<name>-<version>/
2. Locate the release on the mirror via its sha512.sum manifests
3. Select one archive format (xz > bz2 > gz)
4. Download (resuming a partial file from an earlier run)
5. Verify the SHA-512 digest; a mismatch keeps the archive, skips unpacking
6. Unpack into a scratch directory, move <name>-<version>/ into place

Architecture:
- Returns FetchResult, never raises for record-level failures
- Every failure names its stage (locate, checksum, download, ...)
- IPO logging throughout
"""

import asyncio
import time
from typing import Optional

from provisioner.core.logger import get_logger
from provisioner.core.settings import RunSettings
from provisioner.engine.archive_downloader import ArchiveDownloader
from provisioner.engine.checksums import ChecksumParseError, select_format, verify_digest
from provisioner.engine.mirror_locator import ChecksumLocator
from provisioner.engine.staging import StagingCoordinator
from provisioner.engine.validator import Validator
from provisioner.engine.result import FetchResult
from provisioner.constants import (
    CLASS_TOOLCHAIN,
    CHECKSUM_SCRATCH_NAME,
    STAGE_LOCATE,
    STAGE_CHECKSUM,
    STAGE_DOWNLOAD,
    STAGE_VERIFICATION,
    STAGE_EXTRACTION,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'engine')


class ArchiveFetcher:
    """
    Fetches toolchain sources from a GNU-style mirror.

    Example:
        fetcher = ArchiveFetcher(settings, staging, downloader)
        result = await fetcher.fetch('binutils', '2.30')
        if result.success:
            print(result.target_dir)
    """

    def __init__(
        self,
        settings: RunSettings,
        staging: StagingCoordinator,
        downloader: ArchiveDownloader,
        locator: Optional[ChecksumLocator] = None,
        validator: Optional[Validator] = None
    ):
        """
        Initialize archive fetcher.

        Args:
            settings: Run settings (mirror, force, verification)
            staging: Staging coordinator
            downloader: Archive downloader
            locator: Optional ChecksumLocator (built on downloader if None)
            validator: Optional Validator instance
        """
        self.settings = settings
        self.staging = staging
        self.downloader = downloader
        self.locator = locator if locator else ChecksumLocator(
            downloader,
            staging.scratch_path(CHECKSUM_SCRATCH_NAME),
        )
        self.validator = validator if validator else Validator()

    async def fetch(
        self,
        name: str,
        version: str,
        mirror_base: Optional[str] = None
    ) -> FetchResult:
        """
        Acquire one toolchain component.

        Args:
            name: Component name (e.g. 'gcc')
            version: Component version (e.g. '9.3.0')
            mirror_base: Mirror base URL; the configured default if empty

        Returns:
            FetchResult
        """
        target = f"{name}-{version}"
        target_dir = self.staging.path_for(target)
        base = mirror_base or self.settings.mirror_url

        logger.info(f"{LOG_INPUT} Toolchain component: {target}")

        start_time = time.time()
        result = FetchResult(success=False, component=target, record_class=CLASS_TOOLCHAIN)

        try:
            if self.staging.already_present(target):
                logger.info(f"{LOG_OUTPUT} {name} already downloaded.")
                return result.mark_skipped(target_dir)

            # Locate
            logger.info(f"{LOG_PROCESS} Locating {target}...")
            try:
                located = await self.locator.locate(name, version, base)
            except ChecksumParseError as e:
                message = f"parsing checksums for {target}: {e}"
                logger.error(f"{LOG_OUTPUT} {message}")
                return result.mark_failed(STAGE_CHECKSUM, message)

            if located is None:
                message = f"Unable to locate {target} on server"
                logger.error(f"{LOG_OUTPUT} {message}")
                return result.mark_failed(STAGE_LOCATE, message)

            result.mirror_directory = located.directory

            # Format selection
            try:
                entry = select_format(located.entries)
            except ChecksumParseError as e:
                message = f"parsing checksums for {target} from {located.directory}: {e}"
                logger.error(f"{LOG_OUTPUT} {message}")
                return result.mark_failed(STAGE_CHECKSUM, message)

            result.archive_format = entry.archive_format
            result.expected_digest = entry.hex_digest

            filename = entry.filename(target)
            archive_path = self.staging.scratch_path(filename)

            # A forced run starts from a fresh archive
            if self.settings.force:
                self.staging.discard(archive_path)

            # Download
            logger.info(f"{LOG_PROCESS} Downloading {target}...")
            download_result = await self.downloader.download(
                located.archive_url(entry, target),
                archive_path,
            )
            result.download_result = download_result

            if not download_result.success:
                message = f"Unable to download {name}: {download_result.error_message}"
                logger.error(f"{LOG_OUTPUT} {message}")
                return result.mark_failed(STAGE_DOWNLOAD, message)

            download_check = self.validator.validate_download(archive_path)
            if not download_check.valid:
                message = f"Unable to download {name}: {'; '.join(download_check.error_messages)}"
                logger.error(f"{LOG_OUTPUT} {message}")
                return result.mark_failed(STAGE_DOWNLOAD, message)

            # Verify
            if self.settings.verify_checksums:
                logger.info(f"{LOG_PROCESS} Validating {target}...")
                matches, actual = await asyncio.to_thread(
                    verify_digest,
                    archive_path,
                    entry.hex_digest,
                    self.settings.chunk_size,
                )
                result.actual_digest = actual

                if not matches:
                    message = (
                        f"checksum failure for {filename}: expected {entry.hex_digest} "
                        f"but got {actual}"
                    )
                    logger.error(f"{LOG_OUTPUT} {message}")
                    return result.mark_failed(STAGE_VERIFICATION, message)

                logger.info(f"{LOG_OUTPUT} Download validated.")

            # Unpack
            logger.info(f"{LOG_PROCESS} Unpacking {target}...")
            extraction_result = await self.downloader.extract_as(
                archive_path,
                target_dir,
                root_name=target,
            )
            result.extraction_result = extraction_result

            if not extraction_result.success:
                message = f"Unable to unpack {name}: {extraction_result.error_message}"
                logger.error(f"{LOG_OUTPUT} {message}")
                return result.mark_failed(STAGE_EXTRACTION, message)

            extraction_check = self.validator.validate_extraction(target_dir)
            if not extraction_check.valid:
                message = (
                    f"Unable to unpack {name}: {target}/ from {filename} is unusable: "
                    f"{'; '.join(extraction_check.error_messages)}"
                )
                logger.error(f"{LOG_OUTPUT} {message}")
                self.staging.discard(target_dir)
                return result.mark_failed(STAGE_EXTRACTION, message)

            logger.info(f"{LOG_OUTPUT} Staged {target}")
            return result.mark_fetched(target_dir)

        finally:
            self.staging.discard(self.locator.scratch_file)
            result.total_duration = time.time() - start_time


__all__ = ['ArchiveFetcher']
