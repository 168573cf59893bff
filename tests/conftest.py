"""Shared fixtures for the page cloner tests."""

import asyncio
from collections import Counter

import pytest
from aiohttp import web

from page_cloner.snapshot.fetcher import (
    BinaryContent,
    EnvelopeKind,
    Fetcher,
    ProxyEndpoint,
    ProxyExhaustedError,
)


PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'fake-image-data'


class StubFetcher:
    """In-memory stand-in for Fetcher keyed by absolute URL."""

    def __init__(self, text=None, binary=None):
        self.text = dict(text or {})
        self.binary = dict(binary or {})
        self.calls = []

    async def fetch_resource(self, url, binary=False):
        self.calls.append((url, binary))
        if binary:
            return self.binary.get(url)
        if url not in self.text:
            raise ProxyExhaustedError(url, ['stub'])
        return self.text[url]


@pytest.fixture
def png():
    return BinaryContent(PNG_BYTES, 'image/png')


@pytest.fixture
def hits():
    return Counter()


@pytest.fixture
def pages():
    """Contents the fake relay serves, keyed by target URL."""
    return {}


@pytest.fixture
async def relay_server(aiohttp_server, hits, pages):
    """HTTP server playing both relay services and origin hosts."""
    in_flight = {'now': 0, 'max': 0}

    async def flaky(request):
        hits['flaky'] += 1
        if hits['flaky'] < 3:
            return web.Response(status=500, text='boom')
        return web.Response(text='ok')

    async def down(request):
        hits['down'] += 1
        return web.Response(status=503, text='unavailable')

    async def missing(request):
        hits['missing'] += 1
        return web.Response(status=404, text='not found')

    async def slow(request):
        hits['slow'] += 1
        await asyncio.sleep(1)
        return web.Response(text='late')

    async def raw(request):
        hits['raw'] += 1
        target = request.query['url']
        if target in pages:
            return web.Response(text=pages[target], content_type='text/html')
        return web.Response(text=f'raw:{target}')

    async def json_relay(request):
        hits['json'] += 1
        return web.json_response({'contents': f"json:{request.query['url']}"})

    async def json_empty(request):
        hits['json_empty'] += 1
        return web.json_response({'contents': None, 'status': {'http_code': 500}})

    async def image_relay(request):
        hits['image'] += 1
        return web.Response(body=PNG_BYTES, content_type='image/png')

    async def asset(request):
        hits['asset'] += 1
        in_flight['now'] += 1
        in_flight['max'] = max(in_flight['max'], in_flight['now'])
        await asyncio.sleep(0.02)
        in_flight['now'] -= 1
        return web.Response(body=PNG_BYTES, content_type='image/png')

    app = web.Application()
    app.router.add_get('/flaky', flaky)
    app.router.add_get('/down', down)
    app.router.add_get('/missing', missing)
    app.router.add_get('/missing.png', missing)
    app.router.add_get('/slow', slow)
    app.router.add_get('/raw', raw)
    app.router.add_get('/json', json_relay)
    app.router.add_get('/json-empty', json_empty)
    app.router.add_get('/image', image_relay)
    app.router.add_get('/site/{name}', asset)

    server = await aiohttp_server(app)
    server.in_flight = in_flight
    return server


def relay(server, path, name=None, envelope=EnvelopeKind.RAW, binary_path=None):
    """Build a ProxyEndpoint pointing at a route of the test server."""
    base = str(server.make_url(path))
    return ProxyEndpoint(
        name=name or path.strip('/'),
        template=base + '?url={url}',
        envelope=envelope,
        binary_template=str(server.make_url(binary_path)) + '?url={url}' if binary_path else None,
    )


@pytest.fixture
def delays():
    return []


@pytest.fixture
def make_fetcher(delays):
    """Create fetchers whose backoff sleeps are recorded instead of awaited."""
    def factory(**kwargs):
        fetcher = Fetcher(**kwargs)

        async def record_sleep(seconds):
            delays.append(seconds)

        fetcher._sleep = record_sleep
        return fetcher

    return factory
