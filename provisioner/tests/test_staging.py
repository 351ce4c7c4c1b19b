# Path: provisioner/tests/test_staging.py
"""
Unit tests for the staging directory coordinator.
"""

import logging
from datetime import datetime

import pytest

from provisioner.engine.staging import StagingCoordinator, StagingError
from provisioner.tests.fixtures import make_settings, make_staging


def test_ensure_creates_nested_directory(tmp_path):
    settings = make_settings(tmp_path, staging_dir=tmp_path / 'a' / 'b' / 'builds')
    staging = StagingCoordinator(settings)

    assert staging.ensure_staging_dir() == tmp_path / 'a' / 'b' / 'builds'
    assert staging.root.is_dir()
    # Second call is a no-op
    staging.ensure_staging_dir()


def test_ensure_fails_when_path_is_a_file(tmp_path):
    blocker = tmp_path / 'builds'
    blocker.write_text('not a directory')
    staging = StagingCoordinator(make_settings(tmp_path))

    with pytest.raises(StagingError):
        staging.ensure_staging_dir()


def test_run_log_name_and_warning_tee(tmp_path):
    """Test warnings reach the per-run log and info messages do not."""
    staging = make_staging(make_settings(tmp_path))

    log_path = staging.open_run_log(datetime(2024, 3, 9, 7, 5))
    try:
        logger = logging.getLogger('provisioner.engine.test_staging')
        logger.info("routine progress")
        logger.warning("mirror is slow")
    finally:
        staging.close_run_log()

    assert log_path.name == 'build-2024-03-09-0705.log'
    contents = log_path.read_text()
    assert 'mirror is slow' in contents
    assert 'routine progress' not in contents


def test_run_log_replaces_same_minute_file(tmp_path):
    staging = make_staging(make_settings(tmp_path))
    when = datetime(2024, 3, 9, 7, 5)
    (staging.root / 'build-2024-03-09-0705.log').write_text('previous run\n')

    log_path = staging.open_run_log(when)
    staging.close_run_log()

    assert 'previous run' not in log_path.read_text()


def test_already_present_without_force(tmp_path):
    staging = make_staging(make_settings(tmp_path))
    (staging.root / 'gcc-9.3.0').mkdir()

    assert staging.already_present('gcc-9.3.0')
    assert not staging.already_present('gdb-9.1')
    assert (staging.root / 'gcc-9.3.0').exists()


def test_already_present_with_force_removes(tmp_path):
    staging = make_staging(make_settings(tmp_path, force=True))
    (staging.root / 'gcc-9.3.0' / 'gcc').mkdir(parents=True)
    (staging.root / 'gcc.tar.gz').write_bytes(b'old')

    assert not staging.already_present('gcc-9.3.0')
    assert not staging.already_present('gcc.tar.gz')
    assert not (staging.root / 'gcc-9.3.0').exists()


def test_staged_directories_skip_hidden_and_files(tmp_path):
    staging = make_staging(make_settings(tmp_path))
    for name in ('newlib-3.3.0', 'binutils-2.30', '.unpack-dcload-ip'):
        (staging.root / name).mkdir()
    (staging.root / 'binutils-2.30.tar.xz').write_bytes(b'')

    assert [path.name for path in staging.staged_directories()] == ['binutils-2.30', 'newlib-3.3.0']


def test_discard_tolerates_missing_paths(tmp_path):
    staging = make_staging(make_settings(tmp_path))

    staging.discard(staging.scratch_path('checksums.txt'))
    staging.discard(staging.scratch_path('.unpack-missing'))
