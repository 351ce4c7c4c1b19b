# Path: provisioner/core/settings.py
"""
Run Settings

Immutable per-run configuration threaded through the engine.

ConfigLoader supplies process-wide defaults from the environment;
the CLI layers its flags on top and freezes the result here.
Engine components receive a RunSettings instance explicitly and
never consult global state.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from provisioner.core.config_loader import ConfigLoader
from provisioner.constants import (
    DEFAULT_MANIFEST_NAME,
    DEFAULT_MIRROR_URL,
    DEFAULT_REMOTE_NAME,
    DEFAULT_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_CLONE_TIMEOUT,
    DEFAULT_EXTRACT_TIMEOUT,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_MAX_RETRY_DELAY,
    DEFAULT_CHUNK_SIZE,
    GITHUB_HTTPS_PREFIX,
    MAX_ARCHIVE_SIZE,
    STAGING_DIRNAME,
    STRATEGY_STOP,
)


def detect_make_jobs() -> int:
    """
    Parallelism hint for the build pass.

    Returns:
        Number of usable CPUs, 1 if it cannot be determined
    """
    if hasattr(os, 'sched_getaffinity'):
        try:
            return max(1, len(os.sched_getaffinity(0)))
        except OSError:
            pass
    return os.cpu_count() or 1


@dataclass(frozen=True)
class RunSettings:
    """
    Frozen configuration for one provisioning run.

    Attributes:
        staging_dir: Directory where sources are staged
        manifest_path: Component manifest to process
        mirror_url: Default GNU-style mirror base URL
        force: Delete existing artifacts before re-acquiring
        clone: Clone repositories instead of downloading tarballs
        transport_prefix: Git transport prefix (https or ssh form)
        remote_name: Remote name used by clone_tool
        verify_checksums: Compare archive digests against the mirror manifest
        keep_archives: Keep downloaded archives after unpacking
        enable_resume: Resume partial downloads left by a prior run
        failure_strategy: 'stop' (fail-fast) or 'continue'
        make_jobs: Parallelism hint, reported only
    """
    staging_dir: Path
    manifest_path: Path = Path(DEFAULT_MANIFEST_NAME)
    mirror_url: str = DEFAULT_MIRROR_URL
    force: bool = False
    clone: bool = False
    transport_prefix: str = GITHUB_HTTPS_PREFIX
    remote_name: str = DEFAULT_REMOTE_NAME
    verify_checksums: bool = True
    keep_archives: bool = True
    enable_resume: bool = True
    chunk_size: int = DEFAULT_CHUNK_SIZE
    request_timeout: int = DEFAULT_TIMEOUT
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT
    clone_timeout: int = DEFAULT_CLONE_TIMEOUT
    extract_timeout: int = DEFAULT_EXTRACT_TIMEOUT
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY
    max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY
    max_archive_size: int = MAX_ARCHIVE_SIZE
    failure_strategy: str = STRATEGY_STOP
    log_dir: Optional[Path] = None
    make_jobs: int = field(default_factory=detect_make_jobs)

    @classmethod
    def from_config(
        cls,
        config: Optional[ConfigLoader] = None,
        **overrides
    ) -> 'RunSettings':
        """
        Build settings from environment defaults plus explicit overrides.

        The staging directory defaults to builds/ beside the manifest.

        Args:
            config: Optional ConfigLoader instance
            **overrides: Field values that win over the environment

        Returns:
            RunSettings instance
        """
        config = config if config else ConfigLoader()

        values = {
            'manifest_path': config.get('manifest_path'),
            'staging_dir': config.get('staging_dir'),
            'log_dir': config.get('log_dir'),
            'mirror_url': config.get('mirror_url'),
            'remote_name': config.get('remote_name'),
            'verify_checksums': config.get('verify_checksums'),
            'keep_archives': config.get('keep_archives'),
            'enable_resume': config.get('enable_resume'),
            'chunk_size': config.get('chunk_size'),
            'request_timeout': config.get('request_timeout'),
            'connect_timeout': config.get('connect_timeout'),
            'clone_timeout': config.get('clone_timeout'),
            'extract_timeout': config.get('extract_timeout'),
            'retry_attempts': config.get('retry_attempts'),
            'retry_delay': config.get('retry_delay'),
            'max_retry_delay': config.get('max_retry_delay'),
            'max_archive_size': config.get('max_archive_size'),
            'failure_strategy': config.get('failure_strategy'),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})

        manifest_path = Path(values['manifest_path']).absolute()
        values['manifest_path'] = manifest_path

        if values['staging_dir'] is None:
            values['staging_dir'] = manifest_path.parent / STAGING_DIRNAME
        values['staging_dir'] = Path(values['staging_dir']).absolute()

        return cls(**values)

    def with_overrides(self, **changes) -> 'RunSettings':
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


__all__ = ['RunSettings', 'detect_make_jobs']
