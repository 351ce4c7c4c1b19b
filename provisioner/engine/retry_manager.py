# Path: provisioner/engine/retry_manager.py
"""
Retry Manager

Exponential backoff retry logic for transient transfer failures.
Handles network errors, timeouts and rate limiting.

Architecture:
- tenacity AsyncRetrying with exponential backoff
- Configurable retry attempts
- Retryable vs fatal error classification
- DownloadResult-aware wrapper: transient failures are retried,
  the last failed result is returned once attempts run out
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import aiohttp
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from provisioner.core.logger import get_logger
from provisioner.core.settings import RunSettings
from provisioner.engine.result import DownloadResult
from provisioner.constants import (
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_MAX_RETRY_DELAY,
    LOG_PROCESS,
)

logger = get_logger(__name__, 'engine')


class TransientDownloadError(Exception):
    """Raised inside a retry loop to request another attempt."""

    def __init__(self, result: DownloadResult):
        self.result = result
        super().__init__(result.error_message or 'transient download failure')


class RetryManager:
    """
    Manages retry logic with exponential backoff.

    Features:
    - Exponential backoff starting at base_delay
    - Maximum delay cap
    - Retryable error detection

    Example:
        manager = RetryManager(settings=settings)
        result = await manager.download_with_retry(
            lambda: handler.download(url, path)
        )
    """

    def __init__(
        self,
        max_retries: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        settings: Optional[RunSettings] = None
    ):
        """
        Initialize retry manager.

        Args:
            max_retries: Maximum retry attempts (from settings if None)
            base_delay: Initial retry delay in seconds (from settings if None)
            max_delay: Maximum retry delay cap (from settings if None)
            settings: Optional run settings
        """
        self.max_retries = max_retries if max_retries is not None else \
            (settings.retry_attempts if settings else DEFAULT_RETRY_ATTEMPTS)

        self.base_delay = base_delay if base_delay is not None else \
            (settings.retry_delay if settings else DEFAULT_RETRY_DELAY)

        self.max_delay = max_delay if max_delay is not None else \
            (settings.max_retry_delay if settings else DEFAULT_MAX_RETRY_DELAY)

    def is_retryable_error(self, error: BaseException) -> bool:
        """
        Determine if error is retryable.

        Args:
            error: Exception to check

        Returns:
            True if error should trigger retry
        """
        if isinstance(error, TransientDownloadError):
            return True

        if isinstance(error, (ConnectionError, TimeoutError, asyncio.TimeoutError)):
            return True

        if isinstance(error, aiohttp.ClientError):
            return True

        return False

    def _retrying(self) -> AsyncRetrying:
        """Build the tenacity controller for one operation."""
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.base_delay, max=self.max_delay),
            retry=retry_if_exception(self.is_retryable_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    async def retry_async(
        self,
        func: Callable[..., Awaitable[Any]],
        *args,
        **kwargs
    ) -> Any:
        """
        Execute async function with retry logic.

        Args:
            func: Async function to execute
            *args: Positional arguments for func
            **kwargs: Keyword arguments for func

        Returns:
            Result of successful execution

        Raises:
            Last exception if all retries exhausted or error is fatal
        """
        async for attempt in self._retrying():
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        f"{LOG_PROCESS} Attempt {attempt.retry_state.attempt_number}"
                        f"/{self.max_retries + 1}"
                    )
                return await func(*args, **kwargs)

    async def download_with_retry(
        self,
        func: Callable[[], Awaitable[DownloadResult]]
    ) -> DownloadResult:
        """
        Run a download, retrying transient failures.

        Args:
            func: Zero-argument coroutine factory returning DownloadResult

        Returns:
            The successful result, or the last failed one
        """
        async def attempt() -> DownloadResult:
            result = await func()
            if not result.success and result.retryable:
                raise TransientDownloadError(result)
            return result

        try:
            return await self.retry_async(attempt)
        except TransientDownloadError as e:
            logger.error(
                f"All retries exhausted after {self.max_retries + 1} attempts: "
                f"{e.result.url}"
            )
            return e.result


__all__ = ['RetryManager', 'TransientDownloadError']
