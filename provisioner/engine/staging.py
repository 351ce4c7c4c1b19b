# Path: provisioner/engine/staging.py
"""
Staging Coordinator

Owns the staging directory and everything placed in it.

Architecture:
- Creates the staging directory once per run
- Per-run log file (build-YYYY-MM-DD-HHMM.log) teed from the logger tree
- Force-delete policy: a failed delete only warns, the old artifact is reused
- "Already acquired" is decided by directory existence alone
- No locking: one run owns the directory
"""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from provisioner.core.logger import get_logger, attach_run_log, detach_run_log
from provisioner.core.settings import RunSettings
from provisioner.constants import (
    RUN_LOG_PATTERN,
    LOG_PROCESS,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'engine')


class StagingError(Exception):
    """The staging directory cannot be created or used."""


class StagingCoordinator:
    """
    Staging directory manager.

    Example:
        staging = StagingCoordinator(settings)
        staging.ensure_staging_dir()
        staging.open_run_log()

        if staging.already_present('binutils-2.30'):
            ...
    """

    def __init__(self, settings: RunSettings):
        """
        Initialize staging coordinator.

        Args:
            settings: Run settings (staging directory, force flag)
        """
        self.root = Path(settings.staging_dir)
        self.force = settings.force

        self.run_log_path: Optional[Path] = None
        self._run_log_handler: Optional[logging.Handler] = None

    def ensure_staging_dir(self) -> Path:
        """
        Create the staging directory if it doesn't exist.

        Returns:
            Staging directory path

        Raises:
            StagingError: Directory cannot be created
        """
        if self.root.is_dir():
            logger.debug(f"{LOG_OUTPUT} Staging directory already exists: {self.root}")
            return self.root

        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StagingError(f"Cannot create staging directory {self.root}: {e}") from e

        logger.info(f"{LOG_OUTPUT} Created staging directory: {self.root}")
        return self.root

    def open_run_log(self, now: Optional[datetime] = None) -> Path:
        """
        Start this run's log file.

        A log with the same timestamp from an earlier run is replaced.

        Args:
            now: Timestamp for the file name (current time if None)

        Returns:
            Path to the run log
        """
        stamp = (now or datetime.now()).strftime(RUN_LOG_PATTERN)
        log_path = self.root / stamp

        self.close_run_log()
        self.discard(log_path)

        self._run_log_handler = attach_run_log(log_path)
        self.run_log_path = log_path

        logger.debug(f"{LOG_PROCESS} Run log: {log_path}")
        return log_path

    def close_run_log(self) -> None:
        """Detach the run log handler, if one is attached."""
        if self._run_log_handler is not None:
            detach_run_log(self._run_log_handler)
            self._run_log_handler = None

    def path_for(self, name: str) -> Path:
        """Staged location of a component directory."""
        return self.root / name

    def scratch_path(self, filename: str) -> Path:
        """Location of a scratch file inside the staging directory."""
        return self.root / filename

    def remove_stale(self, name: str) -> bool:
        """
        Delete a previously staged artifact.

        Args:
            name: Directory or file name under the staging directory

        Returns:
            True if nothing is left at that path
        """
        path = self.path_for(name)
        if not path.exists() and not path.is_symlink():
            return True

        logger.info(f"{LOG_PROCESS} Removing {path}")

        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except OSError as e:
            logger.warning(f"Unable to remove {path}: {e}; using existing copy")
            return False

        return True

    def already_present(self, name: str) -> bool:
        """
        Apply the force policy, then report whether the artifact exists.

        Args:
            name: Directory name under the staging directory

        Returns:
            True if the artifact is (still) on disk
        """
        if self.force:
            self.remove_stale(name)

        return self.path_for(name).exists()

    def discard(self, path: Path) -> None:
        """Silently remove a scratch file or directory."""
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink(missing_ok=True)
        except OSError as e:
            logger.debug(f"Cannot remove {path}: {e}")

    def staged_directories(self) -> list[Path]:
        """
        Component directories currently staged.

        Returns:
            Sorted list of directories, hidden scratch directories excluded
        """
        if not self.root.is_dir():
            return []

        return sorted(
            path for path in self.root.iterdir()
            if path.is_dir() and not path.name.startswith('.')
        )


__all__ = ['StagingCoordinator', 'StagingError']
