"""Rewrite media URLs of sanitized entry content so they go through a proxy route."""

from __future__ import annotations

import base64
import html as _html_mod
import logging
from typing import Iterable, Optional

import lxml.html
from lxml import etree

from .config import MediaProxyMode, Settings
from .srcset import parse_srcset
from .urls import is_https

logger = logging.getLogger(__name__)

DEFAULT_ROUTE = "/proxy/{encoded_url}"


def proxify_url(url: str, route: str = DEFAULT_ROUTE) -> str:
    encoded = base64.urlsafe_b64encode(url.encode("utf-8")).decode("ascii")
    return route.replace("{encoded_url}", encoded)


def should_proxify(url: str, mode: MediaProxyMode) -> bool:
    if not url or url.startswith("data:"):
        return False
    if mode == "all":
        return True
    return mode != "none" and not is_https(url)


def should_proxify_with_mime_type(
    url: str, mime_type: str, mode: MediaProxyMode, resource_types: Iterable[str]
) -> bool:
    """For enclosures: the URL qualifies and its MIME type is one of ``resource_types``."""
    if not should_proxify(url, mode):
        return False
    return any(mime_type.startswith(kind + "/") for kind in resource_types)


def _rewrite_attribute(element: etree._Element, name: str, mode: MediaProxyMode, route: str) -> None:
    value = element.get(name)
    if value is not None and should_proxify(value, mode):
        element.set(name, proxify_url(value, route))


def _rewrite_srcset(element: etree._Element, mode: MediaProxyMode, route: str) -> None:
    value = element.get("srcset")
    if value is None:
        return
    candidates = parse_srcset(value)
    for candidate in candidates:
        if should_proxify(candidate.image_url, mode):
            candidate.image_url = proxify_url(candidate.image_url, route)
    element.set("srcset", str(candidates))


def rewrite_document(
    html: str,
    mode: MediaProxyMode = "http-only",
    route: str = DEFAULT_ROUTE,
    resource_types: Iterable[str] = ("image",),
) -> str:
    """Point ``img``/``source``/``audio``/``video`` URLs at ``route``.

    Returns ``html`` untouched when the mode is ``none`` or the markup cannot be parsed.
    """
    if mode == "none" or not html.strip():
        return html

    try:
        root = lxml.html.fragment_fromstring(html, create_parent="div")
    except (etree.ParserError, ValueError) as e:
        logger.debug("Unable to parse HTML for media proxy rewrite: %s", e)
        return html

    resource_types = list(resource_types)
    for kind in resource_types:
        if kind == "image":
            for element in root.xpath(".//img | .//picture//source"):
                _rewrite_attribute(element, "src", mode, route)
                _rewrite_srcset(element, mode, route)
            if "video" not in resource_types:
                for element in root.iter("video"):
                    _rewrite_attribute(element, "poster", mode, route)
        elif kind == "audio":
            for element in root.xpath(".//audio | .//audio//source"):
                _rewrite_attribute(element, "src", mode, route)
        elif kind == "video":
            for element in root.xpath(".//video | .//video//source"):
                _rewrite_attribute(element, "src", mode, route)
                _rewrite_attribute(element, "poster", mode, route)

    return _html_mod.escape(root.text or "", quote=False) + "".join(
        lxml.html.tostring(child, encoding="unicode") for child in root
    )


def rewrite_document_with_settings(html: str, settings: Optional[Settings] = None) -> str:
    settings = settings or Settings()
    return rewrite_document(
        html,
        settings.media_proxy_mode,
        settings.media_proxy_route,
        settings.resource_types,
    )
