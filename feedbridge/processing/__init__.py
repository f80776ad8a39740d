"""
FeedBridge Processing Module
============================

Fetch-with-fallback pipeline components: mirror URL building, response
classification, XML sanitization and response rewriting.
"""

from .feed_fetcher import FallbackFetcher, MirrorStrategy
from .classifier import ResponseClassifier
from .xml_sanitizer import XmlSanitizer
from .response_rewriter import ResponseRewriter
from .pipeline import FeedPipeline

__all__ = [
    'FallbackFetcher',
    'MirrorStrategy',
    'ResponseClassifier',
    'XmlSanitizer',
    'ResponseRewriter',
    'FeedPipeline'
]
