# Path: provisioner/tests/test_dispatcher.py
"""
Unit tests for manifest dispatch.

Tests:
- Routing by record class
- Fail-fast over three records
- Continue-and-collect strategy
- Unknown classes skipped
- Transport preflight in clone mode
- Unexpected exceptions vs cancellation
"""

import asyncio
import logging

import pytest

from provisioner.engine.dispatcher import (
    ContinueAndCollectFailures,
    ManifestDispatcher,
    StopOnFirstFailure,
    strategy_for,
)
from provisioner.engine.manifest import parse_manifest
from provisioner.engine.result import FetchResult
from provisioner.tests.fixtures import MockHTTPHandler, MockVCSClient, make_settings, make_staging


class MockFetcher:
    """Records calls; fails the components named in failing."""

    def __init__(self, failing=(), raising=None):
        self.failing = set(failing)
        self.raising = raising
        self.calls = []

    async def fetch(self, *args):
        self.calls.append(args)
        if self.raising is not None:
            raise self.raising

        result = FetchResult(success=False, component=args[0])
        if args[0] in self.failing:
            return result.mark_failed('download', f"Unable to download {args[0]}")
        return result.mark_fetched(None)


def make_dispatcher(tmp_path, archive=None, vcs_fetcher=None, lib=None, vcs_client=None,
                    strategy=None, **overrides):
    settings = make_settings(tmp_path, **overrides)
    return ManifestDispatcher(
        settings,
        staging=make_staging(settings),
        http_handler=MockHTTPHandler(),
        vcs_client=vcs_client if vcs_client else MockVCSClient(),
        archive_fetcher=archive if archive else MockFetcher(),
        vcs_fetcher=vcs_fetcher if vcs_fetcher else MockFetcher(),
        lib_fetcher=lib if lib else MockFetcher(),
        strategy=strategy,
    )


THREE_TOOLCHAINS = parse_manifest([
    'toolchain:binutils:2.30:',
    'toolchain:gcc:9.3.0:',
    'toolchain:newlib:3.3.0:',
])


def test_routes_each_class_to_its_fetcher(tmp_path):
    archive, vcs, lib = MockFetcher(), MockFetcher(), MockFetcher()
    dispatcher = make_dispatcher(tmp_path, archive, vcs, lib)
    records = parse_manifest([
        'toolchain:gcc:9.3.0:https://ftp.example.org/gnu',
        'dreamcast:KallistiOS::',
        'lib:zlib:https://zlib.net/zlib.tar.gz',
    ])

    run = asyncio.run(dispatcher.run(records))

    assert run.ok
    assert archive.calls == [('gcc', '9.3.0', 'https://ftp.example.org/gnu')]
    assert vcs.calls == [('KallistiOS', 'master', 'KallistiOS')]
    assert lib.calls == [('zlib', 'https://zlib.net/zlib.tar.gz')]


def test_fail_fast_stops_after_first_failure(tmp_path):
    """Test the third record is never attempted once the second fails."""
    archive = MockFetcher(failing={'gcc'})
    dispatcher = make_dispatcher(tmp_path, archive)

    run = asyncio.run(dispatcher.run(THREE_TOOLCHAINS))

    assert not run.ok
    assert run.status == 'fail'
    assert [call[0] for call in archive.calls] == ['binutils', 'gcc'], \
        f"Unexpected calls: {archive.calls}"
    assert len(run.outcomes) == 2
    assert run.failures[0].error_stage == 'download'


def test_continue_strategy_collects_all_failures(tmp_path):
    archive = MockFetcher(failing={'binutils', 'newlib'})
    dispatcher = make_dispatcher(tmp_path, archive, strategy=ContinueAndCollectFailures())

    run = asyncio.run(dispatcher.run(THREE_TOOLCHAINS))

    assert not run.ok
    assert len(archive.calls) == 3
    assert len(run.failures) == 2


def test_strategy_from_settings(tmp_path):
    dispatcher = make_dispatcher(tmp_path, failure_strategy='continue')
    assert isinstance(dispatcher.strategy, ContinueAndCollectFailures)

    assert isinstance(strategy_for(None), StopOnFirstFailure)
    with pytest.raises(ValueError):
        strategy_for('retry-forever')


def test_unknown_class_skipped(tmp_path, caplog):
    archive = MockFetcher()
    dispatcher = make_dispatcher(tmp_path, archive)
    records = parse_manifest(['ports:libpng:1.6', 'toolchain:gcc:9.3.0:'])

    with caplog.at_level(logging.INFO, logger='provisioner'):
        run = asyncio.run(dispatcher.run(records))

    assert run.ok
    assert run.ignored == ['ports']
    assert len(archive.calls) == 1
    assert "Skipping unknown component class 'ports'" in caplog.text


def test_missing_git_fails_clone_mode_before_any_fetch(tmp_path):
    archive, vcs = MockFetcher(), MockFetcher()
    dispatcher = make_dispatcher(
        tmp_path, archive, vcs,
        vcs_client=MockVCSClient(available=False),
        clone=True,
    )
    records = parse_manifest(['toolchain:gcc:9.3.0:', 'dreamcast:KallistiOS'])

    run = asyncio.run(dispatcher.run(records))

    assert not run.ok
    assert run.error_stage == 'transport'
    assert archive.calls == [] and vcs.calls == []


def test_missing_git_is_fine_in_download_mode(tmp_path):
    dispatcher = make_dispatcher(tmp_path, vcs_client=MockVCSClient(available=False))

    run = asyncio.run(dispatcher.run(parse_manifest(['dreamcast:KallistiOS'])))

    assert run.ok


def test_unexpected_exception_becomes_failed_record(tmp_path):
    archive = MockFetcher(raising=RuntimeError('disk on fire'))
    dispatcher = make_dispatcher(tmp_path, archive)

    run = asyncio.run(dispatcher.run(THREE_TOOLCHAINS))

    assert len(run.outcomes) == 1
    outcome = run.outcomes[0]
    assert outcome.error_stage == 'unexpected'
    assert outcome.component == 'binutils-2.30'
    assert 'disk on fire' in outcome.error_message


def test_cancellation_propagates(tmp_path):
    archive = MockFetcher(raising=asyncio.CancelledError())
    dispatcher = make_dispatcher(tmp_path, archive)

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(dispatcher.run(THREE_TOOLCHAINS))


def test_run_manifest_reads_file(tmp_path):
    archive = MockFetcher()
    dispatcher = make_dispatcher(tmp_path, archive)
    manifest = tmp_path / 'components.conf'
    manifest.write_text('# sources\ntoolchain:gcc:9.3.0:\n')

    run = asyncio.run(dispatcher.run_manifest(manifest))

    assert run.ok
    assert archive.calls == [('gcc', '9.3.0', None)]


def test_context_manager_closes_http(tmp_path):
    dispatcher = make_dispatcher(tmp_path)

    async def use():
        async with dispatcher:
            pass

    asyncio.run(use())

    assert dispatcher.http_handler.closed
