"""
FeedBridge HTTP API
===================

aiohttp application exposing the feed proxy endpoint:

- ``GET /api/rss``  validated request -> proxied, sanitized feed
- ``GET /health``   liveness and mirror configuration summary
"""

import math
from typing import Dict, Optional

import aiohttp
from aiohttp import web

from ..config.settings import FeedBridgeSettings, get_settings
from ..processing.pipeline import FeedPipeline
from ..utils.exceptions import (
    AllInstancesFailedError,
    ValidationError,
    get_user_friendly_message,
    handle_exception,
)
from ..utils.logging import get_logger_for_component
from ..utils.validators import RequestValidator
from .error_feed import generate_error_feed


API_PATH = "/api/rss"
XML_CONTENT_TYPE = "application/xml"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET",
}

SETTINGS_KEY = web.AppKey("settings", FeedBridgeSettings)
PIPELINE_KEY = web.AppKey("pipeline", FeedPipeline)
SESSION_KEY = web.AppKey("session", aiohttp.ClientSession)

logger = get_logger_for_component("api")


def canonical_feed_url(request: web.Request, public_base_url: Optional[str] = None) -> str:
    """Public URL of the requested feed on this proxy."""
    if public_base_url:
        return f"{public_base_url}{request.path_qs}"
    return str(request.url)


def feed_headers(max_age: int) -> Dict[str, str]:
    return {"Cache-Control": f"public, max-age={max_age}", **CORS_HEADERS}


async def handle_rss(request: web.Request) -> web.Response:
    """Serve one proxied feed."""
    settings = request.app[SETTINGS_KEY]
    pipeline = request.app[PIPELINE_KEY]

    try:
        feed_request = RequestValidator.validate(request.query)
    except ValidationError as e:
        logger.info(f"Rejected feed request: {e.reason}", extra={"field_name": e.field_name})
        return web.json_response(
            {"error": e.reason, "field": e.field_name},
            status=400,
            headers={"Cache-Control": "no-store", **CORS_HEADERS},
        )

    feed_url = canonical_feed_url(request, settings.server.public_base_url)

    try:
        result = await pipeline.run(feed_request, feed_url, request.app.get(SESSION_KEY))

    except AllInstancesFailedError as e:
        logger.error(
            f"No {e.family} mirror could serve {feed_request.kind.value} feed "
            f"'{feed_request.identifier}'",
            extra=e.to_dict(),
        )
        return error_feed_response(feed_request, feed_url, e.message, settings)

    except Exception as e:
        error = handle_exception(e, logger, "proxy feed", {"feed_url": feed_url})
        return error_feed_response(
            feed_request, feed_url, get_user_friendly_message(error), settings
        )

    return web.Response(
        text=result.xml,
        content_type=XML_CONTENT_TYPE,
        charset="utf-8",
        headers={
            **feed_headers(result.ttl_minutes * 60),
            "X-Feed-Source": result.family.value,
        },
    )


def error_feed_response(
    feed_request, feed_url: str, message: str, settings: FeedBridgeSettings
) -> web.Response:
    # The advertised ttl and max-age describe the same interval
    ttl = math.ceil(settings.feed.error_max_age / 60)
    return web.Response(
        status=503,
        text=generate_error_feed(feed_request, feed_url, message, ttl_minutes=ttl),
        content_type=XML_CONTENT_TYPE,
        charset="utf-8",
        headers=feed_headers(ttl * 60),
    )


async def handle_health(request: web.Request) -> web.Response:
    pipeline = request.app[PIPELINE_KEY]
    return web.json_response(
        {
            "status": "ok",
            "family": pipeline.family.value,
            "instances": len(pipeline.fetcher.mirrors),
        }
    )


async def client_session_ctx(app: web.Application):
    """Share one upstream session across requests for the app's lifetime."""
    async with app[PIPELINE_KEY].fetcher.get_session() as session:
        app[SESSION_KEY] = session
        yield


def create_app(
    settings: Optional[FeedBridgeSettings] = None,
    pipeline: Optional[FeedPipeline] = None,
) -> web.Application:
    """Create the web application.

    Args:
        settings: Application settings (process-wide settings when omitted)
        pipeline: Preconfigured pipeline (built from settings when omitted)

    Returns:
        Configured aiohttp application
    """
    settings = settings or get_settings()
    pipeline = pipeline or FeedPipeline.from_settings(settings)

    app = web.Application()
    app[SETTINGS_KEY] = settings
    app[PIPELINE_KEY] = pipeline
    app.cleanup_ctx.append(client_session_ctx)

    app.router.add_get(API_PATH, handle_rss)
    app.router.add_get("/health", handle_health)

    logger.info(
        f"API ready: proxying {pipeline.family.value} "
        f"({len(pipeline.fetcher.mirrors)} mirrors)"
    )
    return app


def run_server(settings: Optional[FeedBridgeSettings] = None) -> None:
    """Run the API until interrupted."""
    settings = settings or get_settings()
    web.run_app(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        print=None,
    )
