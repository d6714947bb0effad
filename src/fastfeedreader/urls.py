from __future__ import annotations

from urllib.parse import urljoin, urlsplit


def _has_http_prefix(url: str) -> bool:
    return url.startswith(("https://", "http://"))


def is_absolute_url(url: str) -> bool:
    if _has_http_prefix(url):
        return True
    try:
        return bool(urlsplit(url).scheme)
    except ValueError:
        return False


def is_relative_path(link: str) -> bool:
    """True for a path without scheme or host (``//host`` links are not relative paths)."""
    if not link:
        return False
    try:
        parts = urlsplit(link)
    except ValueError:
        return False
    return not parts.scheme and not parts.netloc and not link.startswith("//")


def absolute_url(base_url: str, link: str) -> str:
    """Resolve ``link`` against ``base_url``.

    Protocol-relative links are upgraded to https. Raises ValueError when either
    URL cannot be parsed.
    """
    if link.startswith("//"):
        return "https:" + link
    if _has_http_prefix(link):
        return link

    if urlsplit(link).scheme:
        return link

    urlsplit(base_url)
    return urljoin(base_url, link)


def resolve_or_keep(base_url: str, link: str) -> str:
    """Like :func:`absolute_url` but keeps the literal link when resolution fails."""
    try:
        return absolute_url(base_url, link)
    except ValueError:
        return link


def root_url(url: str) -> str:
    if not url:
        return ""
    if url.startswith("//"):
        url = "https://" + url[2:]
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url
    return f"{parts.scheme}://{parts.netloc}/"


def is_https(url: str) -> bool:
    try:
        return urlsplit(url).scheme.lower() == "https"
    except ValueError:
        return False


def domain(url: str) -> str:
    try:
        return urlsplit(url).netloc
    except ValueError:
        return url


def domain_without_www(url: str) -> str:
    host = domain(url)
    return host[4:] if host.startswith("www.") else host


def join_base_url_and_path(base_url: str, path: str) -> str:
    if not base_url:
        raise ValueError("empty base URL")
    if not path:
        raise ValueError("empty path")
    urlsplit(base_url)
    return base_url.rstrip("/") + "/" + path.lstrip("/")
