# Path: provisioner/tests/test_protocol_handlers.py
"""
HTTP handler tests against a local aiohttp mirror.

Tests:
- Plain download
- Range resume of a partial file
- 416 on a complete partial file counts as done
- A server ignoring Range restarts the file from scratch
- 404 is final and not retried
"""

import asyncio

from provisioner.engine.protocol_handlers import HTTPHandler
from provisioner.engine.retry_manager import RetryManager
from provisioner.tests.fixtures import MIRROR_PAYLOAD, make_settings, mirror_app, run_against


def download(tmp_path, path, output, resume=False, honour_range=True):
    """Fetch path from a fresh local mirror; returns (result, request paths)."""
    hits = []

    async def scenario(server):
        async with HTTPHandler(make_settings(tmp_path)) as handler:
            return await handler.download(str(server.make_url(path)), output, resume=resume, silent=True)

    result = asyncio.run(run_against(mirror_app(hits, honour_range), scenario))
    return result, hits


def test_full_download(tmp_path):
    output = tmp_path / 'gcc-9.3.0.tar.xz'

    result, hits = download(tmp_path, '/archive', output)

    assert result.success, result.error_message
    assert result.status_code == 200
    assert result.resumed_from == 0
    assert output.read_bytes() == MIRROR_PAYLOAD
    assert hits == ['/archive']


def test_partial_file_resumed_with_range(tmp_path):
    output = tmp_path / 'gcc-9.3.0.tar.xz'
    output.write_bytes(MIRROR_PAYLOAD[:1000])

    result, _ = download(tmp_path, '/archive', output, resume=True)

    assert result.success, result.error_message
    assert result.status_code == 206
    assert result.resumed_from == 1000
    assert output.read_bytes() == MIRROR_PAYLOAD


def test_range_not_satisfiable_means_already_complete(tmp_path):
    output = tmp_path / 'gcc-9.3.0.tar.xz'
    output.write_bytes(MIRROR_PAYLOAD)

    result, _ = download(tmp_path, '/archive', output, resume=True)

    assert result.success
    assert result.status_code == 416
    assert result.file_size == len(MIRROR_PAYLOAD)
    assert output.read_bytes() == MIRROR_PAYLOAD


def test_ignored_range_restarts_file(tmp_path):
    """Test a 200 reply to a Range request overwrites the partial file."""
    output = tmp_path / 'gcc-9.3.0.tar.xz'
    output.write_bytes(b'stale bytes from another release')

    result, _ = download(tmp_path, '/archive', output, resume=True, honour_range=False)

    assert result.success
    assert result.status_code == 200
    assert result.resumed_from == 0
    assert output.read_bytes() == MIRROR_PAYLOAD


def test_not_found_is_not_retried(tmp_path):
    hits = []
    output = tmp_path / 'gcc-9.3.0.tar.xz'

    async def scenario(server):
        manager = RetryManager(max_retries=3, base_delay=0, max_delay=0)
        async with HTTPHandler(make_settings(tmp_path)) as handler:
            return await manager.download_with_retry(
                lambda: handler.download(str(server.make_url('/missing')), output, silent=True)
            )

    result = asyncio.run(run_against(mirror_app(hits), scenario))

    assert not result.success
    assert result.status_code == 404
    assert not result.retryable
    assert hits == ['/missing']


def test_unsupported_scheme_rejected(tmp_path):
    handler = HTTPHandler(make_settings(tmp_path))

    result = asyncio.run(handler.download('ftp://gcc.gnu.org/pub/gcc/sha512.sum', tmp_path / 'x'))

    assert not result.success
    assert result.error_message.startswith('Unsupported URL')
