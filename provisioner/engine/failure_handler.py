# Path: provisioner/engine/failure_handler.py
"""
Failure Handler

Centralized failure reporting.
Extracts error messages from FetchResult and writes them to the log,
which the run log tees to disk.

Architecture:
- Error message extraction from FetchResult
- Structured error logging
- Run summary for the end of a manifest run
"""

from provisioner.core.logger import get_logger
from provisioner.engine.result import FetchResult, RunResult
from provisioner.constants import (
    STAGE_TRANSPORT,
    STAGE_LOCATE,
    STAGE_CHECKSUM,
    STAGE_DOWNLOAD,
    STAGE_VERIFICATION,
    STAGE_EXTRACTION,
    STAGE_CLONE,
    STAGE_UNEXPECTED,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'engine')


class FailureHandler:
    """
    Reports record and run failures.

    Example:
        handler = FailureHandler()
        if not result.success:
            handler.handle_failure(record, result)
    """

    def handle_failure(self, record, result: FetchResult) -> str:
        """
        Report a failed record.

        Args:
            record: Manifest record that failed
            result: FetchResult with error information

        Returns:
            Complete error message
        """
        error_details = self._extract_error_details(result)
        error_msg = f"Failed at {result.error_stage}: {error_details}"

        line = getattr(record, 'line_number', 0)
        location = f" (manifest line {line})" if line else ''

        logger.error(
            f"{LOG_OUTPUT} {result.record_class} component {result.component} "
            f"FAILED{location}: {error_msg}"
        )

        return error_msg

    def _extract_error_details(self, result: FetchResult) -> str:
        """
        Extract error details from FetchResult.

        Checks error_stage to determine which sub-result holds the message.

        Args:
            result: FetchResult with error information

        Returns:
            Human-readable error message
        """
        if result.error_message:
            return result.error_message

        if result.error_stage == STAGE_DOWNLOAD and result.download_result:
            return result.download_result.error_message or "Download failed"

        elif result.error_stage == STAGE_EXTRACTION and result.extraction_result:
            return result.extraction_result.error_message or "Extraction failed"

        elif result.error_stage == STAGE_CLONE and result.clone_result:
            return result.clone_result.error_message or "Clone failed"

        elif result.error_stage == STAGE_LOCATE:
            return "Release not found on mirror"

        elif result.error_stage == STAGE_CHECKSUM:
            return "Checksum manifest could not be parsed"

        elif result.error_stage == STAGE_VERIFICATION:
            return "Checksum mismatch"

        elif result.error_stage == STAGE_TRANSPORT:
            return "Transport unavailable"

        elif result.error_stage == STAGE_UNEXPECTED:
            return "Unexpected error occurred"

        else:
            return "Unknown error"

    def report_run(self, run: RunResult) -> None:
        """Log the end-of-run summary."""
        fetched = len(run.outcomes) - len(run.failures) - len(run.skipped)

        if run.error_stage:
            logger.error(f"{LOG_OUTPUT} Run FAILED at {run.error_stage}: {run.error_message}")

        summary = (
            f"{LOG_OUTPUT} {len(run.outcomes)} components: {fetched} fetched, "
            f"{len(run.skipped)} already present, {len(run.failures)} failed "
            f"in {run.total_duration:.1f}s"
        )
        if run.ok:
            logger.info(summary)
        else:
            logger.warning(summary)


__all__ = ['FailureHandler']
