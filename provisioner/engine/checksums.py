# Path: provisioner/engine/checksums.py
"""
Checksum Manifest Handling

Structured parsing of remote sha512.sum manifests, archive format
selection and digest verification.

Manifest lines look like:
    <128 hex digits>  binutils-2.30.tar.xz

Format preference while scanning the matching lines in order:
- xz is taken immediately and ends the scan
- bz2 replaces whatever was chosen before
- gz is taken only when nothing has been chosen yet
Any other extension met during the scan is a parse error.
"""

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from provisioner.core.logger import get_logger
from provisioner.constants import DEFAULT_CHUNK_SIZE, LOG_PROCESS

logger = get_logger(__name__, 'engine')

FORMAT_XZ = 'xz'
FORMAT_BZ2 = 'bz2'
FORMAT_GZ = 'gz'
SUPPORTED_FORMATS = (FORMAT_XZ, FORMAT_BZ2, FORMAT_GZ)

DIGEST_PATTERN = re.compile(r'^[0-9a-f]{128}$')


class ChecksumParseError(ValueError):
    """A checksum manifest entry for the target could not be interpreted."""


@dataclass(frozen=True)
class ChecksumEntry:
    """One (digest, compression format) pair for a target archive."""
    hex_digest: str
    archive_format: str

    def filename(self, target: str) -> str:
        """Archive filename for this entry, e.g. gcc-9.3.0.tar.xz."""
        return f"{target}.tar.{self.archive_format}"


def split_checksum_line(line: str) -> Optional[tuple[str, str]]:
    """
    Split a checksum line into (digest, filename).

    A leading '*' (binary mode marker) and any directory part of the
    filename are dropped.

    Returns:
        (digest, filename) or None for lines without two fields
    """
    parts = line.strip().split(None, 1)
    if len(parts) != 2:
        return None

    digest, filename = parts
    filename = filename.strip().lstrip('*')
    filename = filename.rsplit('/', 1)[-1]
    return digest, filename


def find_entries(lines: Iterable[str], target: str) -> list[ChecksumEntry]:
    """
    Collect the checksum entries naming target.tar.*, in manifest order.

    Args:
        lines: Checksum manifest lines
        target: Archive stem (name-version)

    Returns:
        Matching entries; empty when the manifest does not list the target

    Raises:
        ChecksumParseError: If a matching line carries a malformed digest
    """
    prefix = f"{target}.tar."
    entries = []

    for line in lines:
        fields = split_checksum_line(line)
        if fields is None:
            continue

        digest, filename = fields
        if not filename.startswith(prefix):
            continue

        if not DIGEST_PATTERN.match(digest):
            raise ChecksumParseError(f"malformed digest for {filename}: {digest!r}")

        archive_format = filename[len(prefix):]
        entries.append(ChecksumEntry(hex_digest=digest, archive_format=archive_format))

    return entries


def select_format(entries: Iterable[ChecksumEntry]) -> Optional[ChecksumEntry]:
    """
    Pick exactly one archive from the matching entries.

    Args:
        entries: Matching checksum entries in manifest order

    Returns:
        Selected entry, or None if entries is empty

    Raises:
        ChecksumParseError: On an unsupported extension met before an xz entry
    """
    selected: Optional[ChecksumEntry] = None

    for entry in entries:
        if entry.archive_format == FORMAT_XZ:
            return entry
        elif entry.archive_format == FORMAT_BZ2:
            selected = entry
        elif entry.archive_format == FORMAT_GZ:
            if selected is None:
                selected = entry
        else:
            raise ChecksumParseError(
                f"unsupported archive format: tar.{entry.archive_format}"
            )

    return selected


def compute_digest(file_path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """
    SHA-512 hex digest of a file, read in chunks.

    Args:
        file_path: File to hash
        chunk_size: Read size in bytes

    Returns:
        Lowercase hex digest
    """
    digest = hashlib.sha512()
    with open(file_path, 'rb') as handle:
        for chunk in iter(lambda: handle.read(chunk_size), b''):
            digest.update(chunk)
    return digest.hexdigest()


def verify_digest(file_path: Path, expected: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> tuple[bool, str]:
    """
    Compare a file's digest against the recorded one.

    Returns:
        (matches, actual_digest)
    """
    logger.info(f"{LOG_PROCESS} Validating {file_path.name}...")
    actual = compute_digest(file_path, chunk_size)
    return actual == expected, actual


__all__ = [
    'ChecksumParseError',
    'ChecksumEntry',
    'FORMAT_XZ',
    'FORMAT_BZ2',
    'FORMAT_GZ',
    'SUPPORTED_FORMATS',
    'split_checksum_line',
    'find_entries',
    'select_format',
    'compute_digest',
    'verify_digest',
]
