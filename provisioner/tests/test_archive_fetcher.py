# Path: provisioner/tests/test_archive_fetcher.py
"""
Unit tests for toolchain archive fetching.

Tests:
- Fresh fetch: locate, select, download, verify, unpack
- Idempotency and force semantics (including a failed delete)
- Checksum mismatch keeps the archive and skips extraction
- Stage-specific failures (locate, checksum, download, extraction)
- A failed unpack leaves nothing behind for the next run to skip
"""

import asyncio
import logging

from provisioner.engine.archive_fetcher import ArchiveFetcher
from provisioner.tests.fixtures import (
    MockHTTPHandler,
    checksum_manifest,
    make_downloader,
    make_settings,
    make_staging,
    make_tarball,
)

BASE = 'https://mirror.test/pub'
README = b'GNU binutils\n'


def binutils_archive(archive_format='xz', top='binutils-2.30'):
    return make_tarball({f'{top}/README': README, f'{top}/ld/ldmain.c': b'int main;\n'}, archive_format)


def binutils_routes(archive=None, listed=None, directory=f'{BASE}/binutils'):
    archive = archive if archive is not None else binutils_archive()
    listed = listed if listed is not None else archive
    return {
        f'{directory}/sha512.sum': checksum_manifest(('binutils-2.30.tar.xz', listed)),
        f'{directory}/binutils-2.30.tar.xz': archive,
    }


def make_fetcher(tmp_path, routes, **overrides):
    settings = make_settings(tmp_path, **overrides)
    staging = make_staging(settings)
    http = MockHTTPHandler(routes)
    fetcher = ArchiveFetcher(settings, staging, make_downloader(settings, http))
    return fetcher, staging, http


def test_fresh_fetch_stages_source(tmp_path):
    fetcher, staging, _ = make_fetcher(tmp_path, binutils_routes())

    result = asyncio.run(fetcher.fetch('binutils', '2.30'))

    assert result.success, f"Fetch failed: {result.error_stage}: {result.error_message}"
    assert result.status == 'fetched'
    assert result.archive_format == 'xz'
    assert result.mirror_directory == f'{BASE}/binutils'
    assert result.actual_digest == result.expected_digest
    assert (staging.root / 'binutils-2.30' / 'README').read_bytes() == README
    assert (staging.root / 'binutils-2.30.tar.xz').exists(), "Archive should be kept"
    assert not (staging.root / 'checksums.txt').exists()


def test_second_run_skips_without_network(tmp_path, caplog):
    """Test idempotency: an existing directory is reused, nothing is requested."""
    fetcher, _, http = make_fetcher(tmp_path, binutils_routes())
    asyncio.run(fetcher.fetch('binutils', '2.30'))
    requests_after_first = list(http.requests)

    with caplog.at_level(logging.INFO, logger='provisioner'):
        result = asyncio.run(fetcher.fetch('binutils', '2.30'))

    assert result.success
    assert result.status == 'skipped'
    assert http.requests == requests_after_first
    assert 'binutils already downloaded.' in caplog.text


def test_force_refetches(tmp_path):
    fetcher, staging, _ = make_fetcher(tmp_path, binutils_routes())
    asyncio.run(fetcher.fetch('binutils', '2.30'))
    (staging.root / 'binutils-2.30' / 'README').write_bytes(b'edited')

    forced, _, http = make_fetcher(tmp_path, binutils_routes(), force=True)
    result = asyncio.run(forced.fetch('binutils', '2.30'))

    assert result.status == 'fetched'
    assert (staging.root / 'binutils-2.30' / 'README').read_bytes() == README
    assert f'{BASE}/binutils/binutils-2.30.tar.xz' in http.requests


def test_force_delete_failure_only_warns(tmp_path, monkeypatch, caplog):
    """Test a failed force-delete is a warning and the old copy is used."""
    fetcher, staging, _ = make_fetcher(tmp_path, binutils_routes())
    asyncio.run(fetcher.fetch('binutils', '2.30'))

    def refuse(path, *args, **kwargs):
        raise PermissionError(13, 'Permission denied', str(path))

    monkeypatch.setattr('provisioner.engine.staging.shutil.rmtree', refuse)

    forced, _, http = make_fetcher(tmp_path, binutils_routes(), force=True)
    with caplog.at_level(logging.WARNING, logger='provisioner'):
        result = asyncio.run(forced.fetch('binutils', '2.30'))

    assert result.success
    assert result.status == 'skipped'
    assert http.requests == []
    assert any(
        record.levelno == logging.WARNING and 'Unable to remove' in record.getMessage()
        for record in caplog.records
    ), "Expected a warning about the failed delete"
    assert (staging.root / 'binutils-2.30').exists()


def test_checksum_mismatch_keeps_archive_and_skips_extraction(tmp_path):
    routes = binutils_routes(listed=b'some other bytes')
    fetcher, staging, _ = make_fetcher(tmp_path, routes)

    result = asyncio.run(fetcher.fetch('binutils', '2.30'))

    assert not result.success
    assert result.error_stage == 'verification'
    assert result.expected_digest != result.actual_digest
    assert (staging.root / 'binutils-2.30.tar.xz').exists(), "Archive should be kept"
    assert not (staging.root / 'binutils-2.30').exists(), "Must not unpack on mismatch"
    assert not (staging.root / 'checksums.txt').exists()


def test_verification_can_be_disabled(tmp_path):
    routes = binutils_routes(listed=b'some other bytes')
    fetcher, staging, _ = make_fetcher(tmp_path, routes, verify_checksums=False)

    result = asyncio.run(fetcher.fetch('binutils', '2.30'))

    assert result.success
    assert result.actual_digest is None
    assert (staging.root / 'binutils-2.30').is_dir()


def test_unlocatable_release(tmp_path):
    fetcher, _, http = make_fetcher(tmp_path, {})

    result = asyncio.run(fetcher.fetch('binutils', '2.30'))

    assert result.error_stage == 'locate'
    assert result.error_message == 'Unable to locate binutils-2.30 on server'
    assert len(http.requests) == 6


def test_forced_mirror_overrides_default(tmp_path):
    other = 'https://ftp.example.org/gnu'
    fetcher, _, http = make_fetcher(tmp_path, binutils_routes(directory=f'{other}/binutils'))

    result = asyncio.run(fetcher.fetch('binutils', '2.30', other))

    assert result.success
    assert all(url.startswith(other) for url in http.requests)


def test_bz2_preferred_over_gz(tmp_path):
    bz2 = binutils_archive('bz2')
    gz = binutils_archive('gz')
    routes = {
        f'{BASE}/binutils/sha512.sum': checksum_manifest(
            ('binutils-2.30.tar.gz', gz),
            ('binutils-2.30.tar.bz2', bz2),
        ),
        f'{BASE}/binutils/binutils-2.30.tar.bz2': bz2,
        f'{BASE}/binutils/binutils-2.30.tar.gz': gz,
    }
    fetcher, staging, http = make_fetcher(tmp_path, routes)

    result = asyncio.run(fetcher.fetch('binutils', '2.30'))

    assert result.success
    assert result.archive_format == 'bz2'
    assert f'{BASE}/binutils/binutils-2.30.tar.gz' not in http.requests


def test_unsupported_extension_fails_checksum_stage(tmp_path):
    archive = binutils_archive()
    routes = {
        f'{BASE}/binutils/sha512.sum': checksum_manifest(
            ('binutils-2.30.tar.lz', archive),
            ('binutils-2.30.tar.xz', archive),
        ),
    }
    fetcher, _, _ = make_fetcher(tmp_path, routes)

    result = asyncio.run(fetcher.fetch('binutils', '2.30'))

    assert result.error_stage == 'checksum'


def test_download_failure(tmp_path):
    routes = binutils_routes()
    del routes[f'{BASE}/binutils/binutils-2.30.tar.xz']
    fetcher, _, _ = make_fetcher(tmp_path, routes)

    result = asyncio.run(fetcher.fetch('binutils', '2.30'))

    assert result.error_stage == 'download'
    assert result.download_result.status_code == 404


def test_archive_without_expected_directory(tmp_path):
    archive = binutils_archive(top='binutils-2.30-rc1')
    fetcher, _, _ = make_fetcher(tmp_path, binutils_routes(archive=archive))

    result = asyncio.run(fetcher.fetch('binutils', '2.30'))

    assert result.error_stage == 'extraction'
    assert 'binutils-2.30-rc1' in result.error_message


def test_failed_unpack_is_retried_on_next_run(tmp_path):
    """Test a half-written tree is never left behind to be skipped later."""
    # README is a file, so README/nested.c cannot be written
    archive = make_tarball({
        'binutils-2.30/README': README,
        'binutils-2.30/README/nested.c': b'int nested;\n',
    }, 'xz')
    fetcher, staging, http = make_fetcher(tmp_path, binutils_routes(archive=archive))

    first = asyncio.run(fetcher.fetch('binutils', '2.30'))
    requests_after_first = len(http.requests)
    second = asyncio.run(fetcher.fetch('binutils', '2.30'))

    assert first.error_stage == 'extraction'
    assert second.error_stage == 'extraction', "Second run must not skip a broken unpack"
    assert len(http.requests) > requests_after_first
    assert not (staging.root / 'binutils-2.30').exists()
    assert not list(staging.root.glob('.unpack-*'))
