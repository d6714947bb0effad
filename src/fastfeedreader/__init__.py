"""Fetch, detect, parse and sanitize RSS, Atom, RDF and JSON feeds."""

from __future__ import annotations

import logging

from .config import FetchConfig, Settings
from .dates import parse_date
from .detector import detect_format
from .errors import (
    BodyReadError,
    ClientError,
    DateParseError,
    EmptyResponseError,
    FeedParseError,
    HTMLDocumentError,
    HTTPStatusError,
    InvalidCertificateError,
    InvalidSiteURLError,
    LocalizedError,
    PermanentNetworkError,
    RequestTimeoutError,
    ResponseTooLargeError,
    TemporaryNetworkError,
    UnsupportedFormatError,
)
from .fetcher import Response, fetch
from .mediaproxy import proxify_url, rewrite_document
from .model import Enclosure, Entry, Feed
from .parser import parse_feed
from .sanitizer import sanitize, strip_tags, truncate_html
from .srcset import ImageCandidate, ImageCandidates, parse_srcset
from .subscription import Subscription, SubscriptionFinder, find_subscriptions

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "BodyReadError",
    "ClientError",
    "DateParseError",
    "EmptyResponseError",
    "Enclosure",
    "Entry",
    "Feed",
    "FeedParseError",
    "FetchConfig",
    "HTMLDocumentError",
    "HTTPStatusError",
    "ImageCandidate",
    "ImageCandidates",
    "InvalidCertificateError",
    "InvalidSiteURLError",
    "LocalizedError",
    "PermanentNetworkError",
    "RequestTimeoutError",
    "Response",
    "ResponseTooLargeError",
    "Settings",
    "Subscription",
    "SubscriptionFinder",
    "TemporaryNetworkError",
    "UnsupportedFormatError",
    "detect_format",
    "fetch",
    "find_subscriptions",
    "parse_date",
    "parse_feed",
    "parse_srcset",
    "proxify_url",
    "rewrite_document",
    "sanitize",
    "strip_tags",
    "truncate_html",
]
