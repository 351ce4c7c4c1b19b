# Path: provisioner/engine/protocol_handlers.py
"""
Protocol Handlers

HTTP/HTTPS download handler with streaming support.
Handles headers, timeouts, resume and connection management.

Architecture:
- Async HTTP client with streaming (aiohttp)
- Resume of partial downloads via Range requests
- Transient-failure classification for the retry manager
- Silent mode for checksum probes, progress bar otherwise
"""

import asyncio
import time
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import aiohttp

from provisioner.core.logger import get_logger
from provisioner.core.settings import RunSettings
from provisioner.engine.stream_handler import StreamHandler
from provisioner.engine.result import DownloadResult
from provisioner.constants import (
    HTTP_OK,
    HTTP_PARTIAL_CONTENT,
    HTTP_RANGE_NOT_SATISFIABLE,
    RETRYABLE_STATUS_CODES,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)
from provisioner.engine.constants import (
    MAX_CONCURRENT_CONNECTIONS,
    FORCE_CLOSE_CONNECTIONS,
    DEFAULT_USER_AGENT,
    DEFAULT_ACCEPT_HEADER,
    DEFAULT_ACCEPT_ENCODING,
    HEADER_USER_AGENT,
    HEADER_ACCEPT,
    HEADER_ACCEPT_ENCODING,
    HEADER_RANGE,
    HEADER_CONTENT_LENGTH,
    VALID_URL_SCHEMES,
)

logger = get_logger(__name__, 'engine')


class HTTPHandler:
    """
    HTTP/HTTPS download handler with streaming.

    Features:
    - Async HTTP with aiohttp
    - Streaming to disk (memory-efficient)
    - Resume support (Range header)
    - Progress bar for visible downloads

    Example:
        async with HTTPHandler(settings) as handler:
            result = await handler.download(
                url='https://gcc.gnu.org/pub/gcc/releases/gcc-9.3.0/gcc-9.3.0.tar.xz',
                output_path=Path('builds/gcc-9.3.0.tar.xz'),
            )
    """

    def __init__(self, settings: RunSettings):
        """
        Initialize HTTP handler.

        Args:
            settings: Run settings (timeouts, chunk size)
        """
        self.chunk_size = settings.chunk_size
        self.timeout = settings.request_timeout
        self.connect_timeout = settings.connect_timeout

        self._session: Optional[aiohttp.ClientSession] = None

    @staticmethod
    def supports(url: str) -> bool:
        """True for URLs this handler can fetch (http/https)."""
        parsed = urlparse(url)
        return parsed.scheme in VALID_URL_SCHEMES and bool(parsed.netloc)

    async def download(
        self,
        url: str,
        output_path: Path,
        resume: bool = False,
        silent: bool = False
    ) -> DownloadResult:
        """
        Download file from URL to local path.

        Args:
            url: Source URL
            output_path: Destination path
            resume: Continue a partial file left by an earlier attempt
            silent: No progress bar, debug-level logging only

        Returns:
            DownloadResult with download statistics
        """
        log = logger.debug if silent else logger.info
        log(f"{LOG_INPUT} Downloading: {url}")

        start_time = time.time()
        result = DownloadResult(
            success=False,
            url=url,
            file_path=output_path
        )

        if not self.supports(url):
            result.error_message = f"Unsupported URL: {url}"
            logger.error(f"{LOG_OUTPUT} {result.error_message}")
            return result

        try:
            request_headers = self._build_headers()

            resume_from = 0
            if resume and output_path.exists():
                resume_from = output_path.stat().st_size
                if resume_from > 0:
                    request_headers[HEADER_RANGE] = f'bytes={resume_from}-'
                    log(f"{LOG_PROCESS} Resuming from byte {resume_from}")

            session = await self._get_session()

            async with session.get(
                url,
                headers=request_headers,
                timeout=aiohttp.ClientTimeout(
                    total=self.timeout,
                    connect=self.connect_timeout
                )
            ) as response:

                result.status_code = response.status

                # Partial file is already complete
                if response.status == HTTP_RANGE_NOT_SATISFIABLE and resume_from > 0:
                    result.success = True
                    result.file_size = resume_from
                    result.resumed_from = resume_from
                    result.duration = time.time() - start_time
                    log(f"{LOG_OUTPUT} Already complete: {output_path.name}")
                    return result

                if response.status not in (HTTP_OK, HTTP_PARTIAL_CONTENT):
                    result.error_message = f"HTTP {response.status}"
                    result.retryable = response.status in RETRYABLE_STATUS_CODES
                    result.duration = time.time() - start_time
                    log(f"{LOG_OUTPUT} HTTP error {response.status}: {url}")
                    return result

                # Server ignored the Range header, start over
                if response.status == HTTP_OK:
                    resume_from = 0

                content_length = response.headers.get(HEADER_CONTENT_LENGTH)
                total_size = int(content_length) + resume_from if content_length else None

                stream_handler = StreamHandler(chunk_size=self.chunk_size)

                bytes_written = await stream_handler.stream_to_file(
                    response_stream=response.content.iter_chunked(self.chunk_size),
                    output_path=output_path,
                    total_size=total_size,
                    resume_from=resume_from,
                    show_progress=not silent,
                )

                result.success = True
                result.file_size = bytes_written
                result.resumed_from = resume_from
                result.chunks_downloaded = stream_handler.chunks_written
                result.duration = time.time() - start_time

                log(
                    f"{LOG_OUTPUT} Download complete: {bytes_written} bytes "
                    f"in {result.duration:.2f}s "
                    f"({result.download_speed_mbps:.2f} MB/s)"
                )

        except asyncio.TimeoutError as e:
            result.error_message = f"Timeout: {e}"
            result.retryable = True
            result.duration = time.time() - start_time
            logger.warning(f"{LOG_OUTPUT} Download timeout: {url}")

        except aiohttp.ClientError as e:
            result.error_message = f"HTTP error: {e}"
            result.retryable = True
            result.duration = time.time() - start_time
            log(f"{LOG_OUTPUT} Download failed: {e}")

        except OSError as e:
            result.error_message = f"Cannot write {output_path}: {e}"
            result.duration = time.time() - start_time
            logger.error(f"{LOG_OUTPUT} {result.error_message}")

        return result

    def _build_headers(self) -> dict[str, str]:
        """
        Build HTTP request headers.

        Returns:
            Dictionary of headers
        """
        return {
            HEADER_USER_AGENT: DEFAULT_USER_AGENT,
            HEADER_ACCEPT: DEFAULT_ACCEPT_HEADER,
            HEADER_ACCEPT_ENCODING: DEFAULT_ACCEPT_ENCODING,
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        """
        Get or create aiohttp session.

        Returns:
            ClientSession instance
        """
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=MAX_CONCURRENT_CONNECTIONS,
                force_close=FORCE_CLOSE_CONNECTIONS
            )

            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                auto_decompress=False,
            )

        return self._session

    async def close(self):
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()


__all__ = ['HTTPHandler']
