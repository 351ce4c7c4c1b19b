# Path: provisioner/engine/archive_downloader.py
"""
Archive Downloader

Download-and-unpack steps shared by every fetcher.

Architecture:
- Downloads go through RetryManager (transient failures are retried)
- Extraction runs in a worker thread under a timeout and stops
  cooperatively when the timeout fires
- extract_as() unpacks into a scratch directory and moves the
  result into place only after a successful unpack
"""

import asyncio
import shutil
import threading
import time
from pathlib import Path
from typing import Optional

from provisioner.core.logger import get_logger
from provisioner.core.settings import RunSettings
from provisioner.engine.protocol_handlers import HTTPHandler
from provisioner.engine.retry_manager import RetryManager
from provisioner.engine.extraction import ArchiveHandler
from provisioner.engine.result import DownloadResult, ExtractionResult
from provisioner.constants import LOG_INPUT, LOG_PROCESS, LOG_OUTPUT
from provisioner.engine.extraction.constants import UNPACK_SCRATCH_PREFIX

logger = get_logger(__name__, 'engine')


class ArchiveDownloader:
    """
    Downloads and unpacks archives into the staging directory.

    Example:
        downloader = ArchiveDownloader(http_handler, retry_manager, settings)
        result = await downloader.download(url, staging / 'gcc-9.3.0.tar.xz')
        if result.success:
            await downloader.extract(result.file_path, staging)
    """

    def __init__(
        self,
        http_handler: HTTPHandler,
        retry_manager: RetryManager,
        settings: RunSettings,
        archive_handler: Optional[ArchiveHandler] = None
    ):
        """
        Initialize archive downloader.

        Args:
            http_handler: HTTP handler for downloads
            retry_manager: Retry manager for transient failures
            settings: Run settings (timeouts, resume, archive retention)
            archive_handler: Optional ArchiveHandler instance
        """
        self.http_handler = http_handler
        self.retry_manager = retry_manager
        self.archive_handler = archive_handler if archive_handler else \
            ArchiveHandler(max_extraction_size=settings.max_archive_size)

        self.enable_resume = settings.enable_resume
        self.keep_archives = settings.keep_archives
        self.extract_timeout = settings.extract_timeout

    def is_archive(self, path: Path) -> bool:
        """True when the file name has a supported archive extension."""
        return self.archive_handler.is_supported(path)

    async def download(
        self,
        url: str,
        output_path: Path,
        silent: bool = False,
        resume: Optional[bool] = None
    ) -> DownloadResult:
        """
        Download with retry.

        Args:
            url: Source URL
            output_path: Destination file
            silent: Probe mode (no progress bar, quiet logging)
            resume: Continue a partial file (settings default if None)

        Returns:
            DownloadResult of the final attempt
        """
        resume = self.enable_resume if resume is None else resume

        return await self.retry_manager.download_with_retry(
            lambda: self.http_handler.download(
                url,
                output_path,
                resume=resume,
                silent=silent,
            )
        )

    async def extract(self, archive_path: Path, target_dir: Path) -> ExtractionResult:
        """
        Unpack an archive into target_dir.

        The extractor runs in a worker thread. On timeout or cancellation it
        is told to stop before its next member and is awaited, so nothing
        writes into target_dir once this returns.

        Args:
            archive_path: Archive file
            target_dir: Directory the archive's contents land in

        Returns:
            ExtractionResult
        """
        cancel_event = threading.Event()
        worker = asyncio.ensure_future(
            asyncio.to_thread(
                self.archive_handler.extract,
                archive_path,
                target_dir,
                not self.keep_archives,
                cancel_event,
            )
        )

        try:
            return await asyncio.wait_for(asyncio.shield(worker), timeout=self.extract_timeout)

        except asyncio.TimeoutError:
            cancel_event.set()
            await asyncio.wait([worker])

            message = f"Extraction timed out after {self.extract_timeout}s"
            logger.error(f"{LOG_OUTPUT} {message}: {archive_path.name}")
            return ExtractionResult(
                success=False,
                archive_path=archive_path,
                extract_directory=target_dir,
                error_message=message,
            )

        except asyncio.CancelledError:
            cancel_event.set()
            await asyncio.wait([worker])
            raise

    async def extract_as(
        self,
        archive_path: Path,
        target_dir: Path,
        require_single_root: bool = True,
        root_name: Optional[str] = None
    ) -> ExtractionResult:
        """
        Unpack an archive so that its contents end up at target_dir.

        The archive is unpacked into a scratch directory next to target_dir
        and only moved into place once extraction succeeded, so target_dir
        never holds a partial tree. The scratch directory is always removed.

        Which part becomes target_dir:
        - root_name given: that top-level directory (it must exist)
        - a single top-level directory: that directory
        - several entries: the scratch directory itself, unless
          require_single_root is set, in which case it is an error

        Args:
            archive_path: Archive file
            target_dir: Final directory (must not exist)
            require_single_root: Fail unless the archive has one top directory
            root_name: Top-level directory the archive must contain

        Returns:
            ExtractionResult with extract_directory set to target_dir
        """
        logger.debug(f"{LOG_INPUT} Unpacking {archive_path.name} as {target_dir.name}")

        scratch_dir = target_dir.parent / f"{UNPACK_SCRATCH_PREFIX}{target_dir.name}"
        self._remove_tree(scratch_dir)

        try:
            result = await self.extract(archive_path, scratch_dir)
            if not result.success:
                return result

            start_time = time.time()
            entries = list(scratch_dir.iterdir())

            if root_name:
                source = scratch_dir / root_name
                if not source.is_dir():
                    result.success = False
                    result.error_message = (
                        f"{archive_path.name} did not produce {root_name}/ "
                        f"(top level: {', '.join(result.top_level_entries) or 'empty'})"
                    )
                    logger.error(f"{LOG_OUTPUT} {result.error_message}")
                    return result
            elif len(entries) == 1 and entries[0].is_dir():
                source = entries[0]
            elif require_single_root:
                result.success = False
                result.error_message = (
                    f"Expected one top-level directory in {archive_path.name}, "
                    f"found {len(entries)} entries"
                )
                logger.error(f"{LOG_OUTPUT} {result.error_message}")
                return result
            else:
                source = scratch_dir

            try:
                logger.debug(f"{LOG_PROCESS} Moving {source.name} to {target_dir.name}")
                source.rename(target_dir)
            except OSError as e:
                result.success = False
                result.error_message = f"Unable to move unpacked dir to {target_dir}: {e}"
                logger.error(f"{LOG_OUTPUT} {result.error_message}")
                return result

            result.extract_directory = target_dir
            result.duration += time.time() - start_time

            logger.debug(f"{LOG_OUTPUT} Unpacked into {target_dir}")
            return result

        finally:
            self._remove_tree(scratch_dir)

    def _remove_tree(self, path: Path) -> None:
        """Remove a scratch directory if present."""
        if path.exists():
            shutil.rmtree(path, ignore_errors=True)


__all__ = ['ArchiveDownloader']
