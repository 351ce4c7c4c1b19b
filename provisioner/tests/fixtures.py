# Path: provisioner/tests/fixtures.py
"""
Test Fixtures for the Provisioner

In-memory doubles for the network collaborators and archive builders.

Contains:
- MockHTTPHandler: canned bodies by URL, 404 otherwise
- MockVCSClient: records clones, creates checkout directories
- Tarball and sha512.sum builders
- A local HTTP mirror with Range support for transport tests
- Settings/staging/downloader factories
"""

import hashlib
import io
import tarfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from aiohttp import test_utils, web

from provisioner.core.settings import RunSettings
from provisioner.engine.archive_downloader import ArchiveDownloader
from provisioner.engine.retry_manager import RetryManager
from provisioner.engine.result import CloneResult, DownloadResult
from provisioner.engine.staging import StagingCoordinator

TAR_MODES = {
    'xz': 'w:xz',
    'bz2': 'w:bz2',
    'gz': 'w:gz',
}


def make_tarball(files: dict, archive_format: str = 'xz') -> bytes:
    """Build a compressed tarball in memory from {member name: content}."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode=TAR_MODES[archive_format]) as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def sha512_hex(data: bytes) -> str:
    return hashlib.sha512(data).hexdigest()


def checksum_manifest(*entries) -> bytes:
    """sha512.sum body from (filename, archive bytes or digest) pairs."""
    lines = []
    for filename, payload in entries:
        digest = payload if isinstance(payload, str) else sha512_hex(payload)
        lines.append(f"{digest}  {filename}")
    return ('\n'.join(lines) + '\n').encode()


class MockHTTPHandler:
    """Serves canned bodies by URL; every other URL is a 404."""

    def __init__(self, routes: Optional[dict] = None):
        self.routes = dict(routes or {})
        self.requests = []
        self.closed = False

    async def download(self, url, output_path, resume=False, silent=False):
        self.requests.append(url)
        body = self.routes.get(url)

        if body is None:
            return DownloadResult(
                success=False,
                url=url,
                file_path=output_path,
                status_code=404,
                error_message='HTTP 404',
            )

        if isinstance(body, int):
            return DownloadResult(
                success=False,
                url=url,
                file_path=output_path,
                status_code=body,
                error_message=f'HTTP {body}',
                retryable=body >= 500,
            )

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(body)
        return DownloadResult(
            success=True,
            url=url,
            file_path=output_path,
            file_size=len(body),
            status_code=200,
        )

    async def close(self):
        self.closed = True


@dataclass
class MockVCSClient:
    """git double: records clones and creates a checkout directory."""
    available: bool = True
    fail_with: Optional[str] = None
    executable: str = 'git'
    clones: list = field(default_factory=list)

    def is_available(self):
        return self.available

    async def clone(self, url, branch, target_dir, remote_name=None):
        self.clones.append((url, branch, Path(target_dir), remote_name))

        if self.fail_with:
            return CloneResult(
                success=False,
                url=url,
                branch=branch,
                target_dir=target_dir,
                return_code=128,
                error_message=self.fail_with,
            )

        Path(target_dir).mkdir(parents=True)
        (Path(target_dir) / 'README').write_text('checkout\n')
        return CloneResult(success=True, url=url, branch=branch, target_dir=target_dir, return_code=0)


def make_settings(tmp_path: Path, **overrides) -> RunSettings:
    """Settings for tests: no retries, no backoff, staging under tmp_path."""
    values = dict(
        staging_dir=tmp_path / 'builds',
        manifest_path=tmp_path / 'components.conf',
        mirror_url='https://mirror.test/pub',
        retry_attempts=0,
        retry_delay=0,
        max_retry_delay=0,
        make_jobs=2,
    )
    values.update(overrides)
    return RunSettings(**values)


def make_staging(settings: RunSettings) -> StagingCoordinator:
    staging = StagingCoordinator(settings)
    staging.ensure_staging_dir()
    return staging


def make_downloader(settings: RunSettings, http: MockHTTPHandler) -> ArchiveDownloader:
    return ArchiveDownloader(http, RetryManager(settings=settings), settings)



MIRROR_PAYLOAD = bytes(range(256)) * 64


def mirror_app(hits: list, honour_range: bool = True) -> web.Application:
    """
    Local mirror for transport tests.

    Routes:
        /archive: MIRROR_PAYLOAD, with Range support unless honour_range is off
        /flaky: 503 on the first request, then MIRROR_PAYLOAD
        /down: always 503
        /missing: always 404
    Every request path is appended to hits.
    """
    size = len(MIRROR_PAYLOAD)

    async def archive(request):
        hits.append(request.path)
        requested = request.headers.get('Range')
        if not requested or not honour_range:
            return web.Response(body=MIRROR_PAYLOAD)

        start = int(requested.removeprefix('bytes=').rstrip('-'))
        if start >= size:
            return web.Response(status=416, headers={'Content-Range': f'bytes */{size}'})
        return web.Response(
            status=206,
            body=MIRROR_PAYLOAD[start:],
            headers={'Content-Range': f'bytes {start}-{size - 1}/{size}'},
        )

    async def flaky(request):
        hits.append(request.path)
        if hits.count(request.path) == 1:
            return web.Response(status=503)
        return web.Response(body=MIRROR_PAYLOAD)

    async def down(request):
        hits.append(request.path)
        return web.Response(status=503)

    async def missing(request):
        hits.append(request.path)
        raise web.HTTPNotFound()

    app = web.Application()
    app.router.add_get('/archive', archive)
    app.router.add_get('/flaky', flaky)
    app.router.add_get('/down', down)
    app.router.add_get('/missing', missing)
    return app


async def run_against(app: web.Application, scenario):
    """Serve app on localhost for the duration of scenario(server)."""
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        return await scenario(server)
    finally:
        await server.close()
