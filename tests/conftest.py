"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for FeedBridge tests.

Upstream mirrors are real aiohttp applications served on localhost by
``aiohttp.test_utils.TestServer``, so the fetcher exercises its actual
HTTP client path.
"""

import asyncio
import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
for name in ("NITTER_INSTANCE", "RSSHUB_INSTANCE", "FEEDBRIDGE_NITTER_INSTANCE", "FEEDBRIDGE_RSSHUB_INSTANCE"):
    os.environ.pop(name, None)
os.environ["FEEDBRIDGE_DEBUG"] = "true"
os.environ["FEEDBRIDGE_LOGGING__CONSOLE_LOGGING"] = "false"


SAMPLE_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">
  <channel>
    <title>Twitter @jack</title>
    <link>https://x.com/jack</link>
    <atom:link href="https://mirror.example/twitter/user/jack" rel="self" type="application/rss+xml" />
    <description>Tweets from @jack</description>
    <language>en</language>
    <item>
      <title><![CDATA[Q&A tonight <b>live</b>]]></title>
      <link>https://x.com/jack/status/1</link>
      <description><![CDATA[Tom & Jerry <author>plain</author>]]></description>
      <author>Jack Dorsey</author>
      <guid isPermaLink="false">1</guid>
    </item>
  </channel>
</rss>"""

HTML_ERROR_PAGE = """<!DOCTYPE html>
<html><head><title>Rate limited</title></head><body>Too many requests</body></html>"""


@pytest.fixture
def sample_rss():
    """Well-formed mirror feed with a self-link, a language element and CDATA payloads."""
    return SAMPLE_RSS


@pytest.fixture
def html_error_page():
    return HTML_ERROR_PAGE


@pytest.fixture
def test_settings():
    """Settings built from defaults and the test environment only."""
    from feedbridge.config.settings import FeedBridgeSettings

    return FeedBridgeSettings(_env_file=None)


class MockMirror:
    """A running mock mirror plus a record of the requests it received."""

    def __init__(self, server: TestServer, received: list):
        self.server = server
        self.received = received

    @property
    def base_url(self) -> str:
        return str(self.server.make_url("/")).rstrip("/")


@pytest_asyncio.fixture
async def mirror_factory():
    """Start mock mirrors that answer every GET with a canned response.

    Usage:
        mirror = await mirror_factory(status=503, body="down", content_type="text/plain")
    """
    servers = []

    async def _make(status=200, body=SAMPLE_RSS, content_type="application/rss+xml; charset=utf-8", delay=0.0):
        received = []

        async def handler(request: web.Request) -> web.Response:
            received.append({
                "path": request.path,
                "raw_path": request.raw_path,
                "headers": dict(request.headers),
            })
            if delay:
                await asyncio.sleep(delay)
            return web.Response(status=status, text=body, headers={"Content-Type": content_type})

        app = web.Application()
        app.router.add_route("GET", "/{tail:.*}", handler)

        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return MockMirror(server, received)

    yield _make

    for server in servers:
        await server.close()


@pytest.fixture
def unreachable_mirror():
    """Base URL on which nothing listens."""
    return "http://127.0.0.1:9"
