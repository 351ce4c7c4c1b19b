# Path: provisioner/tests/test_retry_manager.py
"""
Unit tests for retry with backoff.

Tests:
- A transient 5xx is retried until the mirror recovers
- Attempts are bounded; the last failed result comes back
- Exceptions: transient ones retried, others raised at once
"""

import asyncio

import pytest

from provisioner.engine.protocol_handlers import HTTPHandler
from provisioner.engine.retry_manager import RetryManager
from provisioner.tests.fixtures import MIRROR_PAYLOAD, make_settings, mirror_app, run_against


def retried_download(tmp_path, path, max_retries):
    hits = []
    output = tmp_path / 'newlib-3.3.0.tar.gz'

    async def scenario(server):
        manager = RetryManager(max_retries=max_retries, base_delay=0, max_delay=0)
        async with HTTPHandler(make_settings(tmp_path)) as handler:
            return await manager.download_with_retry(
                lambda: handler.download(str(server.make_url(path)), output, silent=True)
            )

    result = asyncio.run(run_against(mirror_app(hits), scenario))
    return result, hits, output


def test_server_error_retried_until_success(tmp_path):
    result, hits, output = retried_download(tmp_path, '/flaky', max_retries=3)

    assert result.success, result.error_message
    assert hits == ['/flaky', '/flaky']
    assert output.read_bytes() == MIRROR_PAYLOAD


def test_gives_up_after_all_attempts(tmp_path):
    result, hits, _ = retried_download(tmp_path, '/down', max_retries=2)

    assert not result.success
    assert result.status_code == 503
    assert result.retryable
    assert len(hits) == 3, "One attempt plus two retries"


def test_retry_async_retries_connection_errors():
    calls = []

    async def connect():
        calls.append(1)
        if len(calls) < 3:
            raise ConnectionError("mirror reset the connection")
        return 'connected'

    manager = RetryManager(max_retries=2, base_delay=0, max_delay=0)

    assert asyncio.run(manager.retry_async(connect)) == 'connected'
    assert len(calls) == 3


def test_retry_async_raises_fatal_errors_immediately():
    calls = []

    async def parse():
        calls.append(1)
        raise ValueError("bad checksum line")

    manager = RetryManager(max_retries=5, base_delay=0, max_delay=0)

    with pytest.raises(ValueError):
        asyncio.run(manager.retry_async(parse))
    assert len(calls) == 1


def test_settings_supply_defaults(tmp_path):
    manager = RetryManager(settings=make_settings(tmp_path, retry_attempts=4, retry_delay=1.5))

    assert manager.max_retries == 4
    assert manager.base_delay == 1.5
    assert manager.max_delay == 0
