# Path: provisioner/engine/vcs_client.py
"""
VCS Client

Thin async wrapper around the git executable.

Architecture:
- Capability check via shutil.which (no git, no clone mode)
- git runs as an asyncio subprocess, never prompting for credentials
- Timeout and cancellation kill the process and remove the partial clone
"""

import asyncio
import os
import shutil
import time
from pathlib import Path
from typing import Optional

from provisioner.core.logger import get_logger
from provisioner.core.settings import RunSettings
from provisioner.engine.result import CloneResult
from provisioner.constants import (
    DEFAULT_CLONE_TIMEOUT,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)
from provisioner.engine.constants import GIT_EXECUTABLE, GIT_ENVIRONMENT

logger = get_logger(__name__, 'engine')


class VCSClient:
    """
    git clone runner.

    Example:
        client = VCSClient(settings)
        if client.is_available():
            result = await client.clone(
                'https://github.com/KallistiOS/KallistiOS.git',
                'master',
                Path('builds/KallistiOS'),
            )
    """

    def __init__(
        self,
        settings: Optional[RunSettings] = None,
        executable: str = GIT_EXECUTABLE
    ):
        """
        Initialize VCS client.

        Args:
            settings: Optional run settings (clone timeout)
            executable: git executable name or path
        """
        self.executable = executable
        self.timeout = settings.clone_timeout if settings else DEFAULT_CLONE_TIMEOUT

    def is_available(self) -> bool:
        """True when the git executable can be found."""
        return shutil.which(self.executable) is not None

    def build_clone_command(
        self,
        url: str,
        branch: str,
        target_dir: Path,
        remote_name: Optional[str] = None
    ) -> list[str]:
        """
        Build the argument vector for a quiet single-branch clone.

        Args:
            url: Repository URL
            branch: Branch to check out
            target_dir: Destination directory
            remote_name: Remote name instead of 'origin'

        Returns:
            Argument list for create_subprocess_exec
        """
        command = [self.executable, 'clone', '-q', '-b', branch]
        if remote_name:
            command += ['-o', remote_name]
        command += [url, str(target_dir)]
        return command

    async def clone(
        self,
        url: str,
        branch: str,
        target_dir: Path,
        remote_name: Optional[str] = None
    ) -> CloneResult:
        """
        Clone a repository.

        Args:
            url: Repository URL
            branch: Branch to check out
            target_dir: Destination directory (must not exist)
            remote_name: Remote name instead of 'origin'

        Returns:
            CloneResult
        """
        logger.info(f"{LOG_INPUT} Cloning {url} ({branch})")

        start_time = time.time()
        result = CloneResult(success=False, url=url, branch=branch, target_dir=target_dir)

        command = self.build_clone_command(url, branch, target_dir, remote_name)
        logger.debug(f"{LOG_PROCESS} {' '.join(command)}")

        env = dict(os.environ)
        env.update(GIT_ENVIRONMENT)

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as e:
            result.error_message = f"Cannot run {self.executable}: {e}"
            result.duration = time.time() - start_time
            logger.error(f"{LOG_OUTPUT} {result.error_message}")
            return result

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)

        except asyncio.TimeoutError:
            await self._terminate(process, target_dir)
            result.error_message = f"Clone timed out after {self.timeout}s"
            result.duration = time.time() - start_time
            logger.error(f"{LOG_OUTPUT} {result.error_message}: {url}")
            return result

        except asyncio.CancelledError:
            await self._terminate(process, target_dir)
            raise

        result.return_code = process.returncode
        result.duration = time.time() - start_time

        if process.returncode != 0:
            message = stderr.decode(errors='replace').strip()
            result.error_message = message or f"git exited with status {process.returncode}"
            logger.error(f"{LOG_OUTPUT} Clone failed: {result.error_message}")
            return result

        result.success = True
        logger.info(f"{LOG_OUTPUT} Cloned into {target_dir} in {result.duration:.2f}s")

        return result

    async def _terminate(self, process: asyncio.subprocess.Process, target_dir: Path) -> None:
        """Kill a running git and drop whatever it left behind."""
        if process.returncode is None:
            process.kill()
            await process.wait()

        if target_dir.exists():
            shutil.rmtree(target_dir, ignore_errors=True)


__all__ = ['VCSClient']
