# Path: provisioner/engine/manifest.py
"""
Component Manifest Parser

Typed parser for the line-based component manifest.

Format (colon-delimited, one record per line, '#' comments):
    toolchain:<name>:<version>:[<forced_mirror_base_url>]
    dreamcast:<repo>:[<branch>]:[<organization>]
    lib:<name>:<url>

The last field of every class is split with a bounded maxsplit,
so URLs keep their own colons. Unknown classes are returned as
UnknownRecord and skipped by the dispatcher, never rejected here.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Iterable, Optional, Union

from provisioner.core.logger import get_logger
from provisioner.constants import (
    CLASS_TOOLCHAIN,
    CLASS_DREAMCAST,
    CLASS_LIB,
    DEFAULT_BRANCH,
    DEFAULT_ORGANIZATION,
    LOG_INPUT,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'engine')

FIELD_SEPARATOR = ':'
COMMENT_PREFIX = '#'


class ManifestParseError(ValueError):
    """A manifest line that cannot be read as a component record."""

    def __init__(self, message: str, line_number: int = 0, line: str = ''):
        self.line_number = line_number
        self.line = line
        location = f"line {line_number}: " if line_number else ''
        super().__init__(f"{location}{message}")


@dataclass(frozen=True)
class ToolchainRecord:
    """GNU-style source tarball located through mirror checksum manifests."""
    record_class: ClassVar[str] = CLASS_TOOLCHAIN

    name: str
    version: str
    forced_mirror_url: Optional[str] = None
    line_number: int = 0

    @property
    def target(self) -> str:
        """Staged directory name, also the archive stem."""
        return f"{self.name}-{self.version}"


@dataclass(frozen=True)
class DreamcastRecord:
    """GitHub-hosted project, cloned or downloaded as a branch tarball."""
    record_class: ClassVar[str] = CLASS_DREAMCAST

    repo: str
    branch: str = DEFAULT_BRANCH
    organization: str = DEFAULT_ORGANIZATION
    line_number: int = 0

    @property
    def target(self) -> str:
        return self.repo


@dataclass(frozen=True)
class LibRecord:
    """Library fetched by plain download."""
    record_class: ClassVar[str] = CLASS_LIB

    name: str
    url: str
    line_number: int = 0

    @property
    def target(self) -> str:
        return self.name


@dataclass(frozen=True)
class UnknownRecord:
    """Record of an unrecognised class, kept so it can be reported."""
    record_class: str
    line: str
    line_number: int = 0

    @property
    def target(self) -> str:
        fields = self.line.split(FIELD_SEPARATOR)
        return fields[1].strip() if len(fields) > 1 else ''


ComponentRecord = Union[ToolchainRecord, DreamcastRecord, LibRecord, UnknownRecord]


def _split(line: str, maxsplit: int) -> list[str]:
    """Split on ':' into exactly maxsplit + 1 stripped fields."""
    fields = [part.strip() for part in line.split(FIELD_SEPARATOR, maxsplit)]
    fields.extend([''] * (maxsplit + 1 - len(fields)))
    return fields


def _require_safe_name(value: str, what: str, line_number: int, line: str) -> None:
    """Names become directory names under the staging area."""
    if not value:
        raise ManifestParseError(f"missing {what}", line_number, line)
    if '/' in value or '\\' in value or value in ('.', '..'):
        raise ManifestParseError(f"invalid {what}: {value!r}", line_number, line)


def parse_manifest_line(line: str, line_number: int = 0) -> Optional[ComponentRecord]:
    """
    Parse one manifest line.

    Args:
        line: Raw manifest line
        line_number: 1-based line number for error reporting

    Returns:
        Component record, or None for blank and comment lines

    Raises:
        ManifestParseError: If a known record class is malformed
    """
    stripped = line.strip()
    if not stripped or stripped.startswith(COMMENT_PREFIX):
        return None

    record_class = stripped.split(FIELD_SEPARATOR, 1)[0].strip()

    if record_class == CLASS_TOOLCHAIN:
        _, name, version, forced_url = _split(stripped, 3)
        _require_safe_name(name, 'toolchain name', line_number, stripped)
        _require_safe_name(version, 'toolchain version', line_number, stripped)
        return ToolchainRecord(
            name=name,
            version=version,
            forced_mirror_url=forced_url or None,
            line_number=line_number,
        )

    if record_class == CLASS_DREAMCAST:
        _, repo, branch, organization = _split(stripped, 3)
        _require_safe_name(repo, 'repository', line_number, stripped)
        if organization and ('/' in organization or FIELD_SEPARATOR in organization):
            raise ManifestParseError(
                f"invalid organization: {organization!r}", line_number, stripped
            )
        return DreamcastRecord(
            repo=repo,
            branch=branch or DEFAULT_BRANCH,
            organization=organization or DEFAULT_ORGANIZATION,
            line_number=line_number,
        )

    if record_class == CLASS_LIB:
        _, name, url = _split(stripped, 2)
        _require_safe_name(name, 'library name', line_number, stripped)
        if not url:
            raise ManifestParseError('missing library url', line_number, stripped)
        return LibRecord(name=name, url=url, line_number=line_number)

    return UnknownRecord(record_class=record_class, line=stripped, line_number=line_number)


def parse_manifest(lines: Iterable[str]) -> list[ComponentRecord]:
    """
    Parse manifest lines into records, preserving order.

    Args:
        lines: Manifest lines

    Returns:
        List of component records

    Raises:
        ManifestParseError: On the first malformed record
    """
    records = []
    for line_number, line in enumerate(lines, 1):
        record = parse_manifest_line(line, line_number)
        if record is not None:
            records.append(record)
    return records


def read_manifest(manifest_path: Path) -> list[ComponentRecord]:
    """
    Read and parse a manifest file.

    Args:
        manifest_path: Path to the manifest

    Returns:
        List of component records

    Raises:
        OSError: If the file cannot be read
        ManifestParseError: On the first malformed record
    """
    logger.info(f"{LOG_INPUT} Reading manifest: {manifest_path}")

    text = Path(manifest_path).read_text(encoding='utf-8')
    records = parse_manifest(text.splitlines())

    logger.info(f"{LOG_OUTPUT} Manifest holds {len(records)} records")
    return records


__all__ = [
    'ManifestParseError',
    'ToolchainRecord',
    'DreamcastRecord',
    'LibRecord',
    'UnknownRecord',
    'ComponentRecord',
    'parse_manifest_line',
    'parse_manifest',
    'read_manifest',
]
