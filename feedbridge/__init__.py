"""
FeedBridge - Resilient RSS Proxy for Twitter/X Mirrors
======================================================

Turns a feed request (user timeline, search, hashtag or list) into a clean
RSS document by trying a chain of public mirrors in order.

Main Components:
- Validation: untrusted query parameters to typed feed requests
- Processing: mirror URL building, response classification, fallback fetching
- Repair: CDATA-safe XML sanitization and self-link/ttl rewriting
- API: aiohttp endpoint with CORS, cache headers and error feeds
"""

__version__ = "1.0.0"
__author__ = "FeedBridge Development Team"
__description__ = "Resilient RSS proxy for Twitter/X mirror instances"

# Core imports for easy access
from .config.settings import get_settings
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import FeedBridgeError

__all__ = [
    "get_settings",
    "configure_application_logging",
    "get_logger_for_component",
    "FeedBridgeError",
]
