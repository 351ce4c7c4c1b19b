# Path: provisioner/tests/test_checksums.py
"""
Unit tests for checksum manifest handling.

Tests:
- Line splitting (binary marker, path prefixes)
- Entry matching for name-version.tar.*
- Format preference (xz > bz2 > gz)
- Digest verification
"""

import pytest

from provisioner.engine.checksums import (
    ChecksumEntry,
    ChecksumParseError,
    compute_digest,
    find_entries,
    select_format,
    split_checksum_line,
    verify_digest,
)
from provisioner.tests.fixtures import sha512_hex

DIGEST_A = 'a' * 128
DIGEST_B = 'b' * 128
DIGEST_C = 'c' * 128


def test_split_checksum_line_variants():
    assert split_checksum_line(f"{DIGEST_A}  gcc-9.3.0.tar.xz") == (DIGEST_A, 'gcc-9.3.0.tar.xz')
    assert split_checksum_line(f"{DIGEST_A} *gcc-9.3.0.tar.xz") == (DIGEST_A, 'gcc-9.3.0.tar.xz')
    assert split_checksum_line(f"{DIGEST_A}  ./gcc-9.3.0/gcc-9.3.0.tar.gz") == \
        (DIGEST_A, 'gcc-9.3.0.tar.gz')
    assert split_checksum_line('') is None
    assert split_checksum_line('lonely') is None


def test_find_entries_only_matches_target():
    """Test lines for other releases are ignored, order is kept."""
    lines = [
        f"{DIGEST_A}  binutils-2.29.tar.xz",
        f"{DIGEST_B}  binutils-2.30.tar.gz",
        f"{DIGEST_C}  binutils-2.30.tar.xz",
        f"{DIGEST_A}  binutils-2.30.1.tar.xz",
    ]

    entries = find_entries(lines, 'binutils-2.30')

    assert entries == [
        ChecksumEntry(DIGEST_B, 'gz'),
        ChecksumEntry(DIGEST_C, 'xz'),
    ], f"Unexpected entries: {entries}"


def test_find_entries_rejects_malformed_digest_for_target():
    with pytest.raises(ChecksumParseError):
        find_entries(['deadbeef  binutils-2.30.tar.xz'], 'binutils-2.30')

    # Malformed lines for other files don't matter
    assert find_entries(['deadbeef  other-1.0.tar.xz'], 'binutils-2.30') == []


def test_select_format_prefers_xz_immediately():
    entries = [
        ChecksumEntry(DIGEST_A, 'gz'),
        ChecksumEntry(DIGEST_B, 'xz'),
        ChecksumEntry(DIGEST_C, 'bz2'),
    ]

    assert select_format(entries) == ChecksumEntry(DIGEST_B, 'xz')


def test_select_format_bz2_overrides_gz():
    entries = [ChecksumEntry(DIGEST_A, 'gz'), ChecksumEntry(DIGEST_B, 'bz2')]
    assert select_format(entries).archive_format == 'bz2'

    reversed_entries = [ChecksumEntry(DIGEST_B, 'bz2'), ChecksumEntry(DIGEST_A, 'gz')]
    assert select_format(reversed_entries).archive_format == 'bz2', \
        "gz must not replace an earlier choice"


def test_select_format_gz_only():
    assert select_format([ChecksumEntry(DIGEST_A, 'gz')]).archive_format == 'gz'
    assert select_format([]) is None


def test_select_format_unknown_extension_is_error():
    with pytest.raises(ChecksumParseError):
        select_format([ChecksumEntry(DIGEST_A, 'gz'), ChecksumEntry(DIGEST_B, 'lz')])


def test_unknown_extension_after_xz_is_never_seen():
    entries = [ChecksumEntry(DIGEST_A, 'xz'), ChecksumEntry(DIGEST_B, 'zst')]
    assert select_format(entries).archive_format == 'xz'


def test_verify_digest(tmp_path):
    payload = b'binutils source'
    archive = tmp_path / 'binutils-2.30.tar.xz'
    archive.write_bytes(payload)

    assert compute_digest(archive, chunk_size=4) == sha512_hex(payload)

    matches, actual = verify_digest(archive, sha512_hex(payload))
    assert matches
    assert actual == sha512_hex(payload)

    matches, _ = verify_digest(archive, DIGEST_A)
    assert not matches


def test_uppercase_digest_is_malformed():
    """Digests are lowercase hex, as sha512sum writes them."""
    with pytest.raises(ChecksumParseError):
        find_entries([f"{DIGEST_C.upper()}  binutils-2.30.tar.xz"], 'binutils-2.30')
