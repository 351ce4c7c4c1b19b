# Path: provisioner/engine/result.py
"""
Acquisition Result Objects

Type-safe, structured results for acquisition operations.

Architecture:
- DownloadResult: Single file download
- ExtractionResult: Single archive extraction
- CloneResult: Single git clone
- ValidationResult: File/directory validation
- FetchResult: One manifest record, end to end
- RunResult: Aggregate over the whole manifest
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from provisioner.constants import (
    STATUS_FETCHED,
    STATUS_SKIPPED,
    STATUS_FAILED,
    RUN_OK,
    RUN_FAIL,
)


@dataclass
class DownloadResult:
    """
    Result of a single file download operation.

    Attributes:
        success: Whether download succeeded
        file_path: Path where file was downloaded
        file_size: Size of downloaded file in bytes
        url: Source URL
        duration: Download duration in seconds
        error_message: Error message if failed
        status_code: HTTP status code
        chunks_downloaded: Number of chunks downloaded
        retryable: Whether the failure is transient (timeout, 429, 5xx)
        resumed_from: Byte offset a partial download resumed from
    """
    success: bool
    file_path: Optional[Path] = None
    file_size: int = 0
    url: str = ''
    duration: float = 0.0
    error_message: Optional[str] = None
    status_code: Optional[int] = None
    chunks_downloaded: int = 0
    retryable: bool = False
    resumed_from: int = 0
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def download_speed_mbps(self) -> float:
        """Calculate download speed in MB/s."""
        if self.duration > 0 and self.file_size > 0:
            mb = self.file_size / (1024 * 1024)
            return mb / self.duration
        return 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            'success': self.success,
            'file_path': str(self.file_path) if self.file_path else None,
            'file_size': self.file_size,
            'url': self.url,
            'duration': self.duration,
            'error_message': self.error_message,
            'status_code': self.status_code,
            'chunks_downloaded': self.chunks_downloaded,
            'retryable': self.retryable,
            'resumed_from': self.resumed_from,
            'download_speed_mbps': self.download_speed_mbps,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass
class ExtractionResult:
    """
    Result of archive extraction operation.

    Attributes:
        success: Whether extraction succeeded
        extract_directory: Path where files were extracted
        files_extracted: Number of members extracted
        archive_path: Path to archive file
        duration: Extraction duration in seconds
        error_message: Error message if failed
        top_level_entries: Distinct first path components in the archive
    """
    success: bool
    extract_directory: Optional[Path] = None
    files_extracted: int = 0
    archive_path: Optional[Path] = None
    duration: float = 0.0
    error_message: Optional[str] = None
    top_level_entries: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            'success': self.success,
            'extract_directory': str(self.extract_directory) if self.extract_directory else None,
            'files_extracted': self.files_extracted,
            'archive_path': str(self.archive_path) if self.archive_path else None,
            'duration': self.duration,
            'error_message': self.error_message,
            'top_level_entries': self.top_level_entries,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass
class CloneResult:
    """
    Result of a git clone.

    Attributes:
        success: Whether the clone completed
        url: Repository URL
        branch: Branch checked out
        target_dir: Clone destination
        return_code: git exit status (None if git never ran)
        duration: Clone duration in seconds
        error_message: git stderr or timeout message
    """
    success: bool
    url: str = ''
    branch: str = ''
    target_dir: Optional[Path] = None
    return_code: Optional[int] = None
    duration: float = 0.0
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            'success': self.success,
            'url': self.url,
            'branch': self.branch,
            'target_dir': str(self.target_dir) if self.target_dir else None,
            'return_code': self.return_code,
            'duration': self.duration,
            'error_message': self.error_message,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass
class ValidationResult:
    """
    Result of file/directory validation.

    Attributes:
        valid: Whether validation passed
        checks_performed: List of validation checks performed
        checks_passed: List of checks that passed
        checks_failed: List of checks that failed
        error_messages: Detailed error messages
        warnings: Non-critical warnings
        file_count: Number of files found
        directory_exists: Whether target directory exists
    """
    valid: bool
    checks_performed: list[str] = field(default_factory=list)
    checks_passed: list[str] = field(default_factory=list)
    checks_failed: list[str] = field(default_factory=list)
    error_messages: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    file_count: int = 0
    directory_exists: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    def add_check(self, check_name: str, passed: bool, message: str = ''):
        """Add validation check result."""
        self.checks_performed.append(check_name)
        if passed:
            self.checks_passed.append(check_name)
        else:
            self.checks_failed.append(check_name)
            if message:
                self.error_messages.append(f"{check_name}: {message}")

    def add_warning(self, message: str):
        """Add non-critical warning."""
        self.warnings.append(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            'valid': self.valid,
            'checks_performed': self.checks_performed,
            'checks_passed': self.checks_passed,
            'checks_failed': self.checks_failed,
            'error_messages': self.error_messages,
            'warnings': self.warnings,
            'file_count': self.file_count,
            'directory_exists': self.directory_exists,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass
class FetchResult:
    """
    Outcome of acquiring one manifest record.

    Attributes:
        success: Whether the record is present and verified on disk
        component: Staged directory name (name-version, repo or lib name)
        record_class: toolchain, dreamcast or lib
        status: fetched, skipped (already present) or failed
        target_dir: Staged source tree
        mirror_directory: Mirror directory the archive came from
        archive_format: Selected compression (xz, bz2, gz)
        expected_digest: Digest recorded in the checksum manifest
        actual_digest: Digest computed from the download
        download_result: Download step result
        clone_result: Clone step result
        extraction_result: Extraction step result
        total_duration: Total processing duration in seconds
        error_stage: Which stage failed (locate, checksum, download, ...)
        error_message: Detailed error message
    """
    success: bool
    component: str = ''
    record_class: str = ''
    status: str = STATUS_FAILED
    target_dir: Optional[Path] = None
    mirror_directory: Optional[str] = None
    archive_format: Optional[str] = None
    expected_digest: Optional[str] = None
    actual_digest: Optional[str] = None
    download_result: Optional[DownloadResult] = None
    clone_result: Optional[CloneResult] = None
    extraction_result: Optional[ExtractionResult] = None
    total_duration: float = 0.0
    error_stage: Optional[str] = None
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def skipped(self) -> bool:
        """True when the artifact was already present from a prior run."""
        return self.status == STATUS_SKIPPED

    def mark_fetched(self, target_dir: Path) -> 'FetchResult':
        """Record a fresh acquisition."""
        self.success = True
        self.status = STATUS_FETCHED
        self.target_dir = target_dir
        return self

    def mark_skipped(self, target_dir: Path) -> 'FetchResult':
        """Record that the artifact was already staged."""
        self.success = True
        self.status = STATUS_SKIPPED
        self.target_dir = target_dir
        return self

    def mark_failed(self, stage: str, message: str) -> 'FetchResult':
        """Record a record-level failure."""
        self.success = False
        self.status = STATUS_FAILED
        self.error_stage = stage
        self.error_message = message
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            'success': self.success,
            'component': self.component,
            'record_class': self.record_class,
            'status': self.status,
            'target_dir': str(self.target_dir) if self.target_dir else None,
            'mirror_directory': self.mirror_directory,
            'archive_format': self.archive_format,
            'expected_digest': self.expected_digest,
            'actual_digest': self.actual_digest,
            'download_result': self.download_result.to_dict() if self.download_result else None,
            'clone_result': self.clone_result.to_dict() if self.clone_result else None,
            'extraction_result': self.extraction_result.to_dict() if self.extraction_result else None,
            'total_duration': self.total_duration,
            'error_stage': self.error_stage,
            'error_message': self.error_message,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass
class RunResult:
    """
    Aggregate status of one manifest run.

    Attributes:
        status: 'ok' or 'fail'
        outcomes: FetchResult per processed record, in manifest order
        ignored: Record classes skipped as unknown
        error_stage: Run-level failure stage (e.g. transport preflight)
        error_message: Run-level failure message
        total_duration: Total run duration in seconds
    """
    status: str = RUN_OK
    outcomes: list[FetchResult] = field(default_factory=list)
    ignored: list[str] = field(default_factory=list)
    error_stage: Optional[str] = None
    error_message: Optional[str] = None
    total_duration: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def ok(self) -> bool:
        """True when every processed record succeeded."""
        return self.status == RUN_OK

    @property
    def failures(self) -> list[FetchResult]:
        """Failed record outcomes."""
        return [outcome for outcome in self.outcomes if not outcome.success]

    @property
    def skipped(self) -> list[FetchResult]:
        """Records that were already present."""
        return [outcome for outcome in self.outcomes if outcome.skipped]

    def record(self, outcome: FetchResult) -> None:
        """Accumulate one record outcome."""
        self.outcomes.append(outcome)
        if not outcome.success:
            self.status = RUN_FAIL

    def fail(self, stage: str, message: str) -> 'RunResult':
        """Mark the whole run failed before or outside record processing."""
        self.status = RUN_FAIL
        self.error_stage = stage
        self.error_message = message
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            'status': self.status,
            'outcomes': [outcome.to_dict() for outcome in self.outcomes],
            'ignored': self.ignored,
            'error_stage': self.error_stage,
            'error_message': self.error_message,
            'total_duration': self.total_duration,
            'timestamp': self.timestamp.isoformat(),
        }


__all__ = [
    'DownloadResult',
    'ExtractionResult',
    'CloneResult',
    'ValidationResult',
    'FetchResult',
    'RunResult',
]
