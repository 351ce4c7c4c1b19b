# Path: provisioner/engine/extraction/archive_handler.py
"""
Archive Handler Factory

Multi-format archive extraction with pluggable extractors.
Supports TAR, TAR.GZ, TAR.BZ2, TAR.XZ and ZIP.

Architecture:
- Factory pattern for archive type detection
- Individual extractor classes per format
- Common interface (ExtractionResult)
- Path traversal, depth and size checks before anything is written
"""

import lzma
import tarfile
import threading
import time
import zipfile
import zlib
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator, Optional, Type

from provisioner.core.logger import get_logger
from provisioner.engine.result import ExtractionResult
from provisioner.constants import (
    MAX_ARCHIVE_SIZE,
    MAX_EXTRACTION_DEPTH,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)
from provisioner.engine.extraction.constants import (
    ZIP_READ_MODE,
    TAR_READ_MODE,
    TAR_GZ_MODE,
    TAR_BZ2_MODE,
    TAR_XZ_MODE,
    TAR_EXTRACTION_FILTER,
    ARCHIVE_EXTENSIONS_ZIP,
    ARCHIVE_EXTENSIONS_TAR,
    ARCHIVE_EXTENSIONS_TAR_GZ,
    ARCHIVE_EXTENSIONS_TGZ,
    ARCHIVE_EXTENSIONS_TAR_BZ2,
    ARCHIVE_EXTENSIONS_TBZ2,
    ARCHIVE_EXTENSIONS_TAR_XZ,
    ARCHIVE_EXTENSIONS_TXZ,
)

logger = get_logger(__name__, 'extraction')


class ExtractionCancelled(Exception):
    """The caller stopped an extraction between two members."""


def top_level_entries(member_names: Iterable[str]) -> list[str]:
    """Distinct first path components of archive members, sorted."""
    entries = set()
    for name in member_names:
        parts = [part for part in PurePosixPath(name).parts if part not in ('.', '/')]
        if parts:
            entries.add(parts[0])
    return sorted(entries)


class BaseExtractor:
    """
    Base class for archive extractors.

    All format-specific extractors inherit from this.
    Provides common interface and validation.
    """

    def __init__(self, max_extraction_size: int = MAX_ARCHIVE_SIZE):
        """
        Initialize base extractor.

        Args:
            max_extraction_size: Upper bound on unpacked bytes
        """
        self.max_extraction_size = max_extraction_size

    def extract(
        self,
        archive_path: Path,
        target_dir: Path,
        cleanup_archive: bool = False,
        cancel_event: Optional[threading.Event] = None
    ) -> ExtractionResult:
        """
        Extract archive to target directory.

        Must be implemented by subclasses.

        Args:
            archive_path: Path to archive file
            target_dir: Target directory for extraction
            cleanup_archive: Whether to delete archive after extraction
            cancel_event: Set by the caller to stop before the next member

        Returns:
            ExtractionResult with extraction details
        """
        raise NotImplementedError("Subclasses must implement extract()")

    def _validate_depth(self, member_path: str) -> bool:
        """
        Validate path depth.

        Args:
            member_path: Relative path within archive

        Returns:
            True if depth is acceptable
        """
        depth = len(Path(member_path).parts)
        if depth > MAX_EXTRACTION_DEPTH:
            logger.error(f"Path too deep: {member_path} (depth={depth})")
            return False
        return True

    def _validate_path_traversal(
        self,
        member_path: Path,
        target_dir: Path
    ) -> bool:
        """
        Validate path doesn't escape target directory.

        Args:
            member_path: Full member path
            target_dir: Target extraction directory

        Returns:
            True if path is safe
        """
        try:
            member_path.resolve().relative_to(target_dir.resolve())
            return True
        except ValueError:
            logger.error(f"Unsafe path detected: {member_path}")
            return False

    def _until_cancelled(
        self,
        members: Iterable,
        cancel_event: Optional[threading.Event]
    ) -> Iterator:
        """Yield members until cancel_event is set."""
        for member in members:
            if cancel_event is not None and cancel_event.is_set():
                raise ExtractionCancelled("Extraction cancelled")
            yield member

    def _cleanup(self, archive_path: Path) -> None:
        """Delete the archive after a successful extraction."""
        try:
            archive_path.unlink()
            logger.info(f"{LOG_PROCESS} Deleted archive: {archive_path.name}")
        except OSError as e:
            logger.warning(f"Cannot delete archive: {e}")


class ZipExtractor(BaseExtractor):
    """
    ZIP file extractor.

    Handles: .zip files
    """

    def extract(
        self,
        archive_path: Path,
        target_dir: Path,
        cleanup_archive: bool = False,
        cancel_event: Optional[threading.Event] = None
    ) -> ExtractionResult:
        """
        Extract ZIP archive.

        Args:
            archive_path: Path to ZIP file
            target_dir: Target directory
            cleanup_archive: Whether to delete ZIP after extraction
            cancel_event: Set by the caller to stop before the next member

        Returns:
            ExtractionResult
        """
        logger.info(f"{LOG_INPUT} Extracting ZIP: {archive_path.name}")

        start_time = time.time()
        result = ExtractionResult(
            success=False,
            archive_path=archive_path,
            extract_directory=target_dir
        )

        try:
            if not archive_path.exists():
                result.error_message = "ZIP file not found"
                logger.error(f"{LOG_OUTPUT} {result.error_message}")
                return result

            target_dir.mkdir(parents=True, exist_ok=True)

            with zipfile.ZipFile(archive_path, ZIP_READ_MODE) as zf:
                if not self._validate_zip_safe(zf, target_dir):
                    result.error_message = "ZIP contains unsafe paths"
                    logger.error(f"{LOG_OUTPUT} {result.error_message}")
                    return result

                total_size = sum(info.file_size for info in zf.infolist())
                if total_size > self.max_extraction_size:
                    result.error_message = f"ZIP too large: {total_size} bytes"
                    logger.error(f"{LOG_OUTPUT} {result.error_message}")
                    return result

                names = zf.namelist()
                logger.info(f"{LOG_PROCESS} Extracting {len(names)} files...")

                zf.extractall(target_dir, members=self._until_cancelled(names, cancel_event))

                result.files_extracted = len(names)
                result.top_level_entries = top_level_entries(names)

            result.success = True
            result.duration = time.time() - start_time

            logger.info(
                f"{LOG_OUTPUT} ZIP extraction complete: {result.files_extracted} files "
                f"in {result.duration:.2f}s"
            )

            if cleanup_archive:
                self._cleanup(archive_path)

        except ExtractionCancelled as e:
            result.error_message = str(e)
            result.duration = time.time() - start_time
            logger.warning(f"{LOG_OUTPUT} {result.error_message}: {archive_path.name}")

        except (zipfile.BadZipFile, zlib.error) as e:
            result.error_message = f"Invalid ZIP file: {e}"
            result.duration = time.time() - start_time
            logger.error(f"{LOG_OUTPUT} {result.error_message}")

        except OSError as e:
            result.error_message = f"ZIP extraction failed: {e}"
            result.duration = time.time() - start_time
            logger.error(f"{LOG_OUTPUT} {result.error_message}")

        return result

    def _validate_zip_safe(self, zip_file: zipfile.ZipFile, target_dir: Path) -> bool:
        """Validate ZIP for path traversal attacks."""
        for member in zip_file.namelist():
            member_path = target_dir / member

            if not self._validate_path_traversal(member_path, target_dir):
                return False

            if not self._validate_depth(member):
                return False

        return True


class TarExtractor(BaseExtractor):
    """
    TAR archive extractor.

    Handles: .tar, .tar.gz, .tgz, .tar.bz2, .tar.xz
    """

    def extract(
        self,
        archive_path: Path,
        target_dir: Path,
        cleanup_archive: bool = False,
        cancel_event: Optional[threading.Event] = None
    ) -> ExtractionResult:
        """
        Extract TAR archive (including compressed variants).

        Args:
            archive_path: Path to TAR file
            target_dir: Target directory
            cleanup_archive: Whether to delete TAR after extraction
            cancel_event: Set by the caller to stop before the next member

        Returns:
            ExtractionResult
        """
        logger.info(f"{LOG_INPUT} Extracting TAR: {archive_path.name}")

        start_time = time.time()
        result = ExtractionResult(
            success=False,
            archive_path=archive_path,
            extract_directory=target_dir
        )

        try:
            if not archive_path.exists():
                result.error_message = "TAR file not found"
                logger.error(f"{LOG_OUTPUT} {result.error_message}")
                return result

            target_dir.mkdir(parents=True, exist_ok=True)

            mode = self._detect_tar_mode(archive_path)
            logger.debug(f"{LOG_PROCESS} TAR mode: {mode}")

            with tarfile.open(archive_path, mode) as tf:
                if not self._validate_tar_safe(tf, target_dir):
                    result.error_message = "TAR contains unsafe paths"
                    logger.error(f"{LOG_OUTPUT} {result.error_message}")
                    return result

                members = tf.getmembers()

                total_size = sum(m.size for m in members if m.isfile())
                if total_size > self.max_extraction_size:
                    result.error_message = f"TAR too large: {total_size} bytes"
                    logger.error(f"{LOG_OUTPUT} {result.error_message}")
                    return result

                logger.info(f"{LOG_PROCESS} Extracting {len(members)} items...")

                pending = self._until_cancelled(members, cancel_event)
                if hasattr(tarfile, 'tar_filter'):
                    tf.extractall(target_dir, members=pending, filter=TAR_EXTRACTION_FILTER)
                else:
                    tf.extractall(target_dir, members=pending)

                result.files_extracted = len(members)
                result.top_level_entries = top_level_entries(m.name for m in members)

            result.success = True
            result.duration = time.time() - start_time

            logger.info(
                f"{LOG_OUTPUT} TAR extraction complete: {result.files_extracted} items "
                f"in {result.duration:.2f}s"
            )

            if cleanup_archive:
                self._cleanup(archive_path)

        except ExtractionCancelled as e:
            result.error_message = str(e)
            result.duration = time.time() - start_time
            logger.warning(f"{LOG_OUTPUT} {result.error_message}: {archive_path.name}")

        # Corrupt compressed streams surface as lzma/zlib errors
        except (tarfile.TarError, EOFError, lzma.LZMAError, zlib.error) as e:
            result.error_message = f"Invalid TAR file: {e}"
            result.duration = time.time() - start_time
            logger.error(f"{LOG_OUTPUT} {result.error_message}")

        except OSError as e:
            result.error_message = f"TAR extraction failed: {e}"
            result.duration = time.time() - start_time
            logger.error(f"{LOG_OUTPUT} {result.error_message}")

        return result

    def _detect_tar_mode(self, archive_path: Path) -> str:
        """
        Detect TAR compression mode from file extension.

        Args:
            archive_path: Path to TAR file

        Returns:
            Mode string for tarfile.open()
        """
        name_lower = archive_path.name.lower()

        if name_lower.endswith(ARCHIVE_EXTENSIONS_TAR_GZ) or name_lower.endswith(ARCHIVE_EXTENSIONS_TGZ):
            return TAR_GZ_MODE
        elif name_lower.endswith(ARCHIVE_EXTENSIONS_TAR_BZ2) or name_lower.endswith(ARCHIVE_EXTENSIONS_TBZ2):
            return TAR_BZ2_MODE
        elif name_lower.endswith(ARCHIVE_EXTENSIONS_TAR_XZ) or name_lower.endswith(ARCHIVE_EXTENSIONS_TXZ):
            return TAR_XZ_MODE
        else:
            return TAR_READ_MODE

    def _validate_tar_safe(self, tar_file: tarfile.TarFile, target_dir: Path) -> bool:
        """Validate TAR for path traversal attacks."""
        for member in tar_file.getmembers():
            member_path = target_dir / member.name

            if not self._validate_path_traversal(member_path, target_dir):
                return False

            if not self._validate_depth(member.name):
                return False

        return True


class ArchiveHandler:
    """
    Archive handler factory.

    Detects archive format and delegates to appropriate extractor.

    Example:
        handler = ArchiveHandler()
        result = handler.extract(
            archive_path=Path('builds/binutils-2.30.tar.xz'),
            target_dir=Path('builds'),
        )
    """

    # Map file extensions to extractor classes
    EXTRACTOR_MAP = {
        ARCHIVE_EXTENSIONS_ZIP: ZipExtractor,
        ARCHIVE_EXTENSIONS_TAR: TarExtractor,
        ARCHIVE_EXTENSIONS_TAR_GZ: TarExtractor,
        ARCHIVE_EXTENSIONS_TGZ: TarExtractor,
        ARCHIVE_EXTENSIONS_TAR_BZ2: TarExtractor,
        ARCHIVE_EXTENSIONS_TBZ2: TarExtractor,
        ARCHIVE_EXTENSIONS_TAR_XZ: TarExtractor,
        ARCHIVE_EXTENSIONS_TXZ: TarExtractor,
    }

    def __init__(self, max_extraction_size: int = MAX_ARCHIVE_SIZE):
        """
        Initialize archive handler.

        Args:
            max_extraction_size: Upper bound on unpacked bytes
        """
        self.max_extraction_size = max_extraction_size

    def extract(
        self,
        archive_path: Path,
        target_dir: Path,
        cleanup_archive: bool = False,
        cancel_event: Optional[threading.Event] = None
    ) -> ExtractionResult:
        """
        Extract archive using appropriate extractor.

        Args:
            archive_path: Path to archive file
            target_dir: Target directory for extraction
            cleanup_archive: Whether to delete archive after extraction
            cancel_event: Set by the caller to stop before the next member

        Returns:
            ExtractionResult
        """
        logger.debug(f"{LOG_INPUT} Processing archive: {archive_path.name}")

        extractor_class = self._detect_format(archive_path)

        if extractor_class is None:
            error_msg = f"Unsupported archive format: {archive_path.name}"
            logger.error(f"{LOG_OUTPUT} {error_msg}")

            return ExtractionResult(
                success=False,
                archive_path=archive_path,
                extract_directory=target_dir,
                error_message=error_msg
            )

        logger.debug(f"{LOG_PROCESS} Using {extractor_class.__name__}")
        extractor = extractor_class(max_extraction_size=self.max_extraction_size)

        return extractor.extract(archive_path, target_dir, cleanup_archive, cancel_event)

    def _detect_format(self, archive_path: Path) -> Optional[Type[BaseExtractor]]:
        """
        Detect archive format from file extension.

        Args:
            archive_path: Path to archive

        Returns:
            Extractor class or None if unsupported
        """
        name_lower = archive_path.name.lower()

        # Compound extensions first (.tar.gz, .tar.xz, etc.)
        for ext, extractor_class in self.EXTRACTOR_MAP.items():
            if '.' in ext[1:] and name_lower.endswith(ext):
                return extractor_class

        return self.EXTRACTOR_MAP.get(archive_path.suffix.lower())

    def is_supported(self, archive_path: Path) -> bool:
        """
        Check if archive format is supported.

        Args:
            archive_path: Path to archive

        Returns:
            True if format is supported
        """
        return self._detect_format(archive_path) is not None


__all__ = [
    'ArchiveHandler',
    'BaseExtractor',
    'ExtractionCancelled',
    'ZipExtractor',
    'TarExtractor',
    'top_level_entries',
]
