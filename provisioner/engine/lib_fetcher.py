# Path: provisioner/engine/lib_fetcher.py
"""
Lib Fetcher

Acquires lib-class components: a single URL, download only.

A supported archive is unpacked into <staging>/<name>/; anything else
is placed inside a new <staging>/<name>/ directory as-is.
"""

import time
from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse

from provisioner.core.logger import get_logger
from provisioner.core.settings import RunSettings
from provisioner.engine.archive_downloader import ArchiveDownloader
from provisioner.engine.staging import StagingCoordinator
from provisioner.engine.result import FetchResult
from provisioner.constants import (
    CLASS_LIB,
    STAGE_DOWNLOAD,
    STAGE_EXTRACTION,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'engine')

DOWNLOAD_SUFFIX = '.download'


def download_filename(name: str, url: str) -> str:
    """
    Local file name for a lib download.

    The last URL path segment, or <name>.download when the URL has none
    or it would collide with the staged directory itself.
    """
    basename = PurePosixPath(unquote(urlparse(url).path)).name
    if not basename or basename == name:
        return f"{name}{DOWNLOAD_SUFFIX}"
    return basename


class LibFetcher:
    """
    Fetches a library from a plain URL.

    Example:
        fetcher = LibFetcher(settings, staging, downloader)
        result = await fetcher.fetch('zlib', 'https://zlib.net/zlib-1.3.1.tar.gz')
    """

    def __init__(
        self,
        settings: RunSettings,
        staging: StagingCoordinator,
        downloader: ArchiveDownloader
    ):
        self.settings = settings
        self.staging = staging
        self.downloader = downloader

    async def fetch(self, name: str, url: str) -> FetchResult:
        """
        Acquire one library.

        Args:
            name: Staged directory name
            url: Download URL

        Returns:
            FetchResult
        """
        logger.info(f"{LOG_INPUT} Library: {name} from {url}")

        start_time = time.time()
        target_dir = self.staging.path_for(name)
        result = FetchResult(success=False, component=name, record_class=CLASS_LIB)

        try:
            if self.staging.already_present(name):
                logger.info(f"{LOG_OUTPUT} {name} already downloaded.")
                return result.mark_skipped(target_dir)

            filename = download_filename(name, url)
            download_path = self.staging.scratch_path(filename)
            if self.settings.force:
                self.staging.discard(download_path)

            logger.info(f"{LOG_PROCESS} Downloading {name}...")
            download_result = await self.downloader.download(url, download_path)
            result.download_result = download_result

            if not download_result.success:
                message = f"Unable to download {name}: {download_result.error_message}"
                logger.error(f"{LOG_OUTPUT} {message}")
                return result.mark_failed(STAGE_DOWNLOAD, message)

            if self.downloader.is_archive(download_path):
                logger.info(f"{LOG_PROCESS} Unpacking {name}...")
                extraction_result = await self.downloader.extract_as(
                    download_path,
                    target_dir,
                    require_single_root=False,
                )
                result.extraction_result = extraction_result

                if not extraction_result.success:
                    message = f"Unable to unpack {name}: {extraction_result.error_message}"
                    logger.error(f"{LOG_OUTPUT} {message}")
                    return result.mark_failed(STAGE_EXTRACTION, message)
            else:
                placed = target_dir / (filename[:-len(DOWNLOAD_SUFFIX)]
                                       if filename.endswith(DOWNLOAD_SUFFIX) else filename)
                try:
                    target_dir.mkdir(parents=True)
                    download_path.rename(placed)
                except OSError as e:
                    message = f"Unable to place {filename} in {target_dir}: {e}"
                    logger.error(f"{LOG_OUTPUT} {message}")
                    return result.mark_failed(STAGE_DOWNLOAD, message)

                logger.debug(f"{LOG_PROCESS} Placed {placed}")

            logger.info(f"{LOG_OUTPUT} Staged {name}")
            return result.mark_fetched(target_dir)

        finally:
            result.total_duration = time.time() - start_time


__all__ = ['LibFetcher', 'download_filename']
