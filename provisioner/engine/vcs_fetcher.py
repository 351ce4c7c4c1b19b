# Path: provisioner/engine/vcs_fetcher.py
"""
VCS Fetcher

Acquires dreamcast-class components: GitHub-hosted repositories.

The run mode decides the transport:
- clone mode: git clone of <prefix>/<organization>/<repo>.git
- download mode: the branch tarball from GitHub's archive endpoint,
  unpacked and renamed to <repo>/

Architecture:
- Same force/skip policy as every other fetcher
- Clone and clone_tool() share one VCSClient.clone routine
- Archive downloads always use HTTPS; ssh cannot serve tarballs
- Returns FetchResult, never raises for record-level failures
"""

import time
from pathlib import Path
from typing import Optional

from provisioner.core.logger import get_logger
from provisioner.core.settings import RunSettings
from provisioner.engine.archive_downloader import ArchiveDownloader
from provisioner.engine.staging import StagingCoordinator
from provisioner.engine.vcs_client import VCSClient
from provisioner.engine.result import FetchResult
from provisioner.constants import (
    CLASS_DREAMCAST,
    DEFAULT_BRANCH,
    DEFAULT_ORGANIZATION,
    GITHUB_HTTPS_PREFIX,
    STAGE_CLONE,
    STAGE_DOWNLOAD,
    STAGE_EXTRACTION,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)
from provisioner.engine.constants import GIT_SUFFIX, GITHUB_ARCHIVE_PATH

logger = get_logger(__name__, 'engine')


def repository_url(prefix: str, organization: str, repo: str) -> str:
    """
    Clone URL for a GitHub repository.

    An scp-style prefix (git@github.com:) is joined without a slash.

    Args:
        prefix: Transport prefix (https://github.com or git@github.com:)
        organization: GitHub organization
        repo: Repository name

    Returns:
        Repository URL ending in .git
    """
    if prefix.endswith(':'):
        return f"{prefix}{organization}/{repo}{GIT_SUFFIX}"
    return f"{prefix.rstrip('/')}/{organization}/{repo}{GIT_SUFFIX}"


def archive_url(organization: str, repo: str, branch: str) -> str:
    """Branch tarball URL on GitHub (always HTTPS)."""
    return GITHUB_ARCHIVE_PATH.format(
        prefix=GITHUB_HTTPS_PREFIX,
        organization=organization,
        repo=repo,
        branch=branch,
    )


class VCSFetcher:
    """
    Fetches GitHub repositories by clone or by branch tarball.

    Example:
        fetcher = VCSFetcher(settings, staging, vcs_client, downloader)
        result = await fetcher.fetch('KallistiOS', 'master', 'KallistiOS')
    """

    def __init__(
        self,
        settings: RunSettings,
        staging: StagingCoordinator,
        vcs_client: VCSClient,
        downloader: ArchiveDownloader
    ):
        """
        Initialize VCS fetcher.

        Args:
            settings: Run settings (clone mode, transport prefix, force)
            staging: Staging coordinator
            vcs_client: git client
            downloader: Archive downloader for download mode
        """
        self.settings = settings
        self.staging = staging
        self.vcs_client = vcs_client
        self.downloader = downloader

    async def fetch(
        self,
        repo: str,
        branch: Optional[str] = None,
        organization: Optional[str] = None
    ) -> FetchResult:
        """
        Acquire one repository in the run's mode.

        Args:
            repo: Repository name, also the staged directory name
            branch: Branch to fetch (master if empty)
            organization: GitHub organization (KallistiOS if empty)

        Returns:
            FetchResult
        """
        branch = branch or DEFAULT_BRANCH
        organization = organization or DEFAULT_ORGANIZATION

        logger.info(f"{LOG_INPUT} Repository: {organization}/{repo} ({branch})")

        if self.settings.clone:
            url = repository_url(self.settings.transport_prefix, organization, repo)
            return await self._clone(repo, url, branch)

        return await self._download(repo, branch, organization)

    async def clone_tool(
        self,
        tool: str,
        repo_url: str,
        branch: Optional[str] = None
    ) -> FetchResult:
        """
        Clone an arbitrary repository into <staging>/<tool>.

        The remote is named after the toolset instead of 'origin'.

        Args:
            tool: Staged directory name
            repo_url: Full repository URL
            branch: Branch to check out (master if empty)

        Returns:
            FetchResult
        """
        logger.info(f"{LOG_INPUT} Tool repository: {repo_url}")
        return await self._clone(
            tool,
            repo_url,
            branch or DEFAULT_BRANCH,
            remote_name=self.settings.remote_name,
        )

    async def _clone(
        self,
        name: str,
        url: str,
        branch: str,
        remote_name: Optional[str] = None
    ) -> FetchResult:
        """Force/skip policy followed by a clone into <staging>/<name>."""
        start_time = time.time()
        target_dir = self.staging.path_for(name)
        result = FetchResult(success=False, component=name, record_class=CLASS_DREAMCAST)

        try:
            if self.staging.already_present(name):
                logger.info(f"{LOG_OUTPUT} {name} already cloned.")
                return result.mark_skipped(target_dir)

            logger.info(f"{LOG_PROCESS} Cloning {name}...")
            clone_result = await self.vcs_client.clone(url, branch, target_dir, remote_name)
            result.clone_result = clone_result

            if not clone_result.success:
                message = f"Unable to clone {name}: {clone_result.error_message}"
                logger.error(f"{LOG_OUTPUT} {message}")
                return result.mark_failed(STAGE_CLONE, message)

            logger.info(f"{LOG_OUTPUT} Staged {name}")
            return result.mark_fetched(target_dir)

        finally:
            result.total_duration = time.time() - start_time

    async def _download(self, repo: str, branch: str, organization: str) -> FetchResult:
        """Force/skip policy followed by a branch tarball download and unpack."""
        start_time = time.time()
        target_dir = self.staging.path_for(repo)
        result = FetchResult(success=False, component=repo, record_class=CLASS_DREAMCAST)

        try:
            if self.staging.already_present(repo):
                logger.info(f"{LOG_OUTPUT} {repo} already downloaded.")
                return result.mark_skipped(target_dir)

            archive_path = self._archive_path(repo, branch)
            if self.settings.force:
                self.staging.discard(archive_path)

            logger.info(f'{LOG_PROCESS} Downloading repository: "{repo}" - branch: "{branch}"')
            download_result = await self.downloader.download(
                archive_url(organization, repo, branch),
                archive_path,
            )
            result.download_result = download_result
            result.archive_format = 'gz'

            if not download_result.success:
                message = f"Unable to download {repo}: {download_result.error_message}"
                logger.error(f"{LOG_OUTPUT} {message}")
                return result.mark_failed(STAGE_DOWNLOAD, message)

            logger.info(f"{LOG_PROCESS} Unpacking {repo}...")
            extraction_result = await self.downloader.extract_as(archive_path, target_dir)
            result.extraction_result = extraction_result

            if not extraction_result.success:
                message = f"Unable to unpack {repo}: {extraction_result.error_message}"
                logger.error(f"{LOG_OUTPUT} {message}")
                return result.mark_failed(STAGE_EXTRACTION, message)

            logger.info(f"{LOG_OUTPUT} Staged {repo}")
            return result.mark_fetched(target_dir)

        finally:
            result.total_duration = time.time() - start_time

    def _archive_path(self, repo: str, branch: str) -> Path:
        """<staging>/<repo>-<branch>.tar.gz, slashes in the branch flattened."""
        return self.staging.scratch_path(f"{repo}-{branch.replace('/', '-')}.tar.gz")


__all__ = ['VCSFetcher', 'repository_url', 'archive_url']
