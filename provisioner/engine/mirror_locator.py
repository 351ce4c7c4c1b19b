# Path: provisioner/engine/mirror_locator.py
"""
Mirror Locator

Finds which directory of a GNU-style mirror publishes a release.

Architecture:
- Fixed, ordered list of candidate directories per (name, version)
- Each candidate is probed by silently fetching its sha512.sum
- First candidate whose manifest lists name-version.tar.* wins
- The scratch checksum file never outlives a probe
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from provisioner.core.logger import get_logger
from provisioner.engine.archive_downloader import ArchiveDownloader
from provisioner.engine.checksums import ChecksumEntry, find_entries
from provisioner.constants import (
    CHECKSUM_MANIFEST_NAME,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'engine')


def mirror_candidates(base: str, name: str, version: str) -> list[str]:
    """
    Candidate mirror directories for a release, in probe order.

    Args:
        base: Mirror base URL (e.g. https://gcc.gnu.org/pub)
        name: Component name
        version: Component version

    Returns:
        Directory URLs without trailing slash
    """
    root = f"{base.rstrip('/')}/{name}"
    release = f"{name}-{version}"

    return [
        root,
        f"{root}/releases",
        f"{root}/releases/{release}",
        f"{root}/{version}",
        f"{root}/snapshots",
        f"{root}/snapshots/{release}",
    ]


@dataclass
class LocatedArchive:
    """
    Mirror directory publishing a release.

    Attributes:
        directory: Directory URL whose checksum manifest lists the release
        entries: Matching checksum entries, in manifest order
        attempted: Every directory probed, the matching one last
    """
    directory: str
    entries: list[ChecksumEntry]
    attempted: list[str] = field(default_factory=list)

    def archive_url(self, entry: ChecksumEntry, target: str) -> str:
        """Download URL of the archive described by entry."""
        return f"{self.directory}/{entry.filename(target)}"


class ChecksumLocator:
    """
    Probes mirror candidates for a checksum manifest naming the release.

    Example:
        locator = ChecksumLocator(downloader, staging.scratch_path('checksums.txt'))
        located = await locator.locate('binutils', '2.30', 'https://gcc.gnu.org/pub')
        if located is None:
            ...  # not on this mirror
    """

    def __init__(self, downloader: ArchiveDownloader, scratch_file: Path):
        """
        Initialize checksum locator.

        Args:
            downloader: Archive downloader used for silent probes
            scratch_file: Where each probed sha512.sum is written
        """
        self.downloader = downloader
        self.scratch_file = scratch_file

    async def locate(self, name: str, version: str, base: str) -> Optional[LocatedArchive]:
        """
        Find the first candidate directory listing name-version.tar.*.

        Args:
            name: Component name
            version: Component version
            base: Mirror base URL

        Returns:
            LocatedArchive, or None when no candidate lists the release

        Raises:
            ChecksumParseError: A matching line carries a malformed digest
        """
        target = f"{name}-{version}"
        logger.info(f"{LOG_INPUT} Locating {target} on {base}")

        attempted = []

        for directory in mirror_candidates(base, name, version):
            attempted.append(directory)
            logger.debug(f"{LOG_PROCESS} Probing {directory}")

            entries = await self._probe(directory, target)
            if entries:
                logger.info(f"{LOG_OUTPUT} Found {target} in {directory}")
                return LocatedArchive(directory=directory, entries=entries, attempted=attempted)

        logger.debug(f"{LOG_OUTPUT} {target} not listed in {len(attempted)} candidates")
        return None

    async def _probe(self, directory: str, target: str) -> list[ChecksumEntry]:
        """Fetch one candidate's checksum manifest and collect matching entries."""
        self._discard_scratch()

        try:
            result = await self.downloader.download(
                f"{directory}/{CHECKSUM_MANIFEST_NAME}",
                self.scratch_file,
                silent=True,
                resume=False,
            )
            if not result.success:
                return []

            text = self.scratch_file.read_text(encoding='utf-8', errors='replace')
            return find_entries(text.splitlines(), target)
        finally:
            self._discard_scratch()

    def _discard_scratch(self) -> None:
        """Remove the scratch checksum file if present."""
        self.scratch_file.unlink(missing_ok=True)


__all__ = ['ChecksumLocator', 'LocatedArchive', 'mirror_candidates']
