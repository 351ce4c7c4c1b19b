# Path: provisioner/engine/validator.py
"""
Download and Extraction Validator

Post-download and post-extraction validation.
Ensures staged files exist physically before a record is reported fetched.

Architecture:
- File existence and size validation after download
- Directory existence verification
- Physical reality checks
"""

import os
from pathlib import Path

from provisioner.core.logger import get_logger
from provisioner.engine.result import ValidationResult
from provisioner.constants import (
    MAX_EXTRACTION_DEPTH,
    LOG_INPUT,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'engine')


class Validator:
    """
    Validates downloads and extractions.

    A record is only reported fetched when its directory is really there.

    Example:
        validator = Validator()

        # After extraction
        result = validator.validate_extraction(Path('builds/binutils-2.30'))
        if result.valid:
            outcome.mark_fetched(target_dir)
    """

    def validate_download(self, file_path: Path, min_size: int = 1) -> ValidationResult:
        """
        Validate downloaded file.

        Checks physical file existence and size.

        Args:
            file_path: Path to downloaded file
            min_size: Minimum expected file size in bytes

        Returns:
            ValidationResult with check details
        """
        logger.debug(f"{LOG_INPUT} Validating download: {file_path}")

        result = ValidationResult(valid=True)

        # Check 1: File exists
        if file_path.exists():
            result.add_check('file_exists', True)
        else:
            result.add_check('file_exists', False, 'File does not exist on disk')
            result.valid = False
            return result

        # Check 2: Is actually a file (not directory)
        if file_path.is_file():
            result.add_check('is_file', True)
        else:
            result.add_check('is_file', False, 'Path is not a file')
            result.valid = False
            return result

        # Check 3: File size >= minimum
        try:
            file_size = file_path.stat().st_size
            if file_size >= min_size:
                result.add_check('minimum_size', True)
            else:
                result.add_check(
                    'minimum_size',
                    False,
                    f'File too small: {file_size} bytes (minimum {min_size})'
                )
                result.valid = False
        except OSError as e:
            result.add_check('minimum_size', False, f'Cannot read file size: {e}')
            result.valid = False

        # Check 4: File is readable
        if os.access(file_path, os.R_OK):
            result.add_check('readable', True)
        else:
            result.add_check('readable', False, 'File is not readable')
            result.valid = False

        logger.debug(f"{LOG_OUTPUT} Validation: {'PASSED' if result.valid else 'FAILED'}")

        return result

    def validate_extraction(
        self,
        directory: Path,
        expected_min_files: int = 1
    ) -> ValidationResult:
        """
        Validate extraction directory.

        Args:
            directory: Path to extraction directory
            expected_min_files: Minimum expected files

        Returns:
            ValidationResult with verification details
        """
        logger.debug(f"{LOG_INPUT} Validating extraction: {directory}")

        result = ValidationResult(valid=True)

        # Check 1: Directory exists
        if directory.exists():
            result.add_check('directory_exists', True)
            result.directory_exists = True
        else:
            result.add_check('directory_exists', False, 'Directory does not exist')
            result.valid = False
            return result

        # Check 2: Is actually a directory
        if directory.is_dir():
            result.add_check('is_directory', True)
        else:
            result.add_check('is_directory', False, 'Path is not a directory')
            result.valid = False
            return result

        # Check 3: Count files (recursive)
        file_count = self._count_files_recursive(directory)
        result.file_count = file_count

        if file_count >= expected_min_files:
            result.add_check('minimum_files', True)
        else:
            result.add_check(
                'minimum_files',
                False,
                f'Too few files: {file_count} (expected >={expected_min_files})'
            )
            result.valid = False

        # Check 4: Directory is accessible
        if os.access(directory, os.R_OK | os.X_OK):
            result.add_check('accessible', True)
        else:
            result.add_check('accessible', False, 'Directory not accessible')
            result.valid = False

        logger.debug(
            f"{LOG_OUTPUT} Validation: {'PASSED' if result.valid else 'FAILED'} "
            f"({result.file_count} files)"
        )

        return result

    def _count_files_recursive(
        self,
        directory: Path,
        max_depth: int = MAX_EXTRACTION_DEPTH
    ) -> int:
        """
        Count files recursively in directory.

        Args:
            directory: Root directory
            max_depth: Maximum depth to search

        Returns:
            Number of files found
        """
        count = 0

        try:
            for item in directory.rglob('*'):
                if item.is_file() and len(item.relative_to(directory).parts) <= max_depth:
                    count += 1
        except OSError as e:
            logger.warning(f"Error counting files: {e}")

        return count


__all__ = ['Validator']
