# Path: provisioner/tests/test_end_to_end.py
"""
End-to-end test over real HTTP.

Serves a GNU-style mirror from a local aiohttp server and runs a
manifest through the real dispatcher, HTTP handler and extractors.
"""

import asyncio

from aiohttp import test_utils, web

from provisioner.engine.dispatcher import ManifestDispatcher
from provisioner.engine.manifest import parse_manifest
from provisioner.tests.fixtures import MockVCSClient, checksum_manifest, make_settings, make_tarball

ARCHIVE = make_tarball({
    'binutils-2.30/README': b'GNU binutils\n',
    'binutils-2.30/gas/as.c': b'int main(void) { return 0; }\n',
}, 'xz')


def mirror_app(requests: list) -> web.Application:
    """binutils published under releases/, nothing at the top level."""
    files = {
        '/binutils/releases/sha512.sum': checksum_manifest(('binutils-2.30.tar.xz', ARCHIVE)),
        '/binutils/releases/binutils-2.30.tar.xz': ARCHIVE,
    }

    async def serve(request):
        requests.append(request.path)
        body = files.get(request.path)
        if body is None:
            raise web.HTTPNotFound()
        return web.Response(body=body, content_type='application/octet-stream')

    app = web.Application()
    app.router.add_get('/{path:.*}', serve)
    return app


def test_toolchain_fetched_from_local_mirror(tmp_path):
    requests = []

    async def provision():
        server = test_utils.TestServer(mirror_app(requests))
        await server.start_server()
        try:
            settings = make_settings(tmp_path, mirror_url=str(server.make_url('/')))
            async with ManifestDispatcher(settings, vcs_client=MockVCSClient()) as dispatcher:
                dispatcher.staging.ensure_staging_dir()
                return await dispatcher.run(parse_manifest(['toolchain:binutils:2.30:']))
        finally:
            await server.close()

    run = asyncio.run(provision())

    assert run.ok, [outcome.to_dict() for outcome in run.outcomes]
    outcome = run.outcomes[0]
    assert outcome.status == 'fetched'
    assert outcome.mirror_directory.endswith('/binutils/releases')
    assert (tmp_path / 'builds' / 'binutils-2.30' / 'gas' / 'as.c').exists()
    assert requests == [
        '/binutils/sha512.sum',
        '/binutils/releases/sha512.sum',
        '/binutils/releases/binutils-2.30.tar.xz',
    ]
