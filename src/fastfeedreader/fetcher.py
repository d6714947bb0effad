"""Conditional HTTP client.

One call to :func:`fetch` performs one request and returns a :class:`Response`, or raises
a :class:`~fastfeedreader.errors.LocalizedError` describing the transport failure. HTTP
error statuses are not raised here; callers ask :meth:`Response.localized_error`.
"""

from __future__ import annotations

import base64
import logging
import socket
import ssl
import time
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional

import httpx

from .config import DEFAULT_USER_AGENT, FetchConfig
from .encoding import decode_body
from .errors import (
    BodyReadError,
    ClientError,
    EmptyResponseError,
    HTTPStatusError,
    InvalidCertificateError,
    LocalizedError,
    PermanentNetworkError,
    RequestTimeoutError,
    ResponseTooLargeError,
    TemporaryNetworkError,
)

logger = logging.getLogger(__name__)

# httpx decodes "br" when the brotli package is installed
_ACCEPT_ENCODING = "gzip, deflate, br"


@dataclass(slots=True)
class Response:
    body: bytes
    status_code: int
    effective_url: str
    etag: str = ""
    last_modified: str = ""
    expires: str = ""
    content_type: str = ""
    content_length: int = -1

    def is_modified(self, etag: str, last_modified: str) -> bool:
        """False when the origin answered 304 or a stored validator still matches."""
        if self.status_code == 304:
            return False
        if self.etag and self.etag == etag:
            return False
        if self.last_modified and self.last_modified == last_modified:
            return False
        return True

    def localized_error(self) -> Optional[LocalizedError]:
        if self.status_code >= 400:
            return HTTPStatusError(self.status_code)
        if self.status_code != 304 and (self.content_length == 0 or not self.body):
            return EmptyResponseError()
        return None

    def raise_for_error(self) -> None:
        error = self.localized_error()
        if error is not None:
            raise error

    def text(self) -> str:
        return decode_body(self.body, self.content_type)

    body_as_text = text


def _build_headers(config: FetchConfig) -> dict[str, str]:
    headers = dict(config.headers)
    if config.etag:
        headers["If-None-Match"] = config.etag
    if config.last_modified:
        headers["If-Modified-Since"] = config.last_modified
    headers["User-Agent"] = config.user_agent or DEFAULT_USER_AGENT
    if config.cookie:
        headers["Cookie"] = config.cookie
    if config.username and config.password:
        credentials = f"{config.username}:{config.password}".encode()
        headers["Authorization"] = "Basic " + base64.b64encode(credentials).decode("ascii")
    if config.authorization:
        headers["Authorization"] = config.authorization
    headers["Accept"] = "*/*"
    headers["Accept-Encoding"] = _ACCEPT_ENCODING
    headers["Connection"] = "close"
    return headers


def _proxy_url(config: FetchConfig) -> Optional[str]:
    if not config.use_proxy or not config.proxy_url:
        return None
    try:
        proxy = httpx.URL(config.proxy_url)
    except httpx.InvalidURL as e:
        logger.warning("Unable to parse proxy URL %r: %s", config.proxy_url, e)
        return None
    if not proxy.scheme or not proxy.host:
        logger.warning("Unable to parse proxy URL %r: missing scheme or host", config.proxy_url)
        return None
    return config.proxy_url


def _causes(exc: BaseException) -> Iterator[BaseException]:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _is_certificate_error(exc: BaseException) -> bool:
    for cause in _causes(exc):
        if isinstance(cause, ssl.SSLCertVerificationError):
            return True
        if "CERTIFICATE_VERIFY_FAILED" in str(cause):
            return True
    return False


def _is_permanent_network_error(exc: BaseException) -> bool:
    for cause in _causes(exc):
        if isinstance(cause, ConnectionRefusedError):
            return True
        if isinstance(cause, socket.gaierror) and cause.errno == socket.EAI_NONAME:
            return True
    return False


def _classify_transport_error(exc: httpx.HTTPError, timeout: float) -> LocalizedError:
    if isinstance(exc, httpx.TimeoutException):
        return RequestTimeoutError(timeout)
    if _is_certificate_error(exc):
        return InvalidCertificateError(str(exc))
    if isinstance(exc, httpx.RemoteProtocolError):
        return EmptyResponseError(key="error.http_empty_response")
    if isinstance(exc, httpx.NetworkError):
        if _is_permanent_network_error(exc):
            return PermanentNetworkError(str(exc))
        return TemporaryNetworkError(str(exc))
    return ClientError(str(exc))


def _read_body(
    response: httpx.Response, max_body_size: int, timeout: float, deadline: float
) -> bytes:
    """Read the streamed body, bounded by size and by the request deadline."""
    buffer = bytearray()
    try:
        for chunk in response.iter_bytes():
            buffer.extend(chunk)
            if len(buffer) > max_body_size:
                raise ResponseTooLargeError(max_body_size)
            # httpx timeouts apply per read, not to the whole transfer
            if time.monotonic() > deadline:
                raise RequestTimeoutError(timeout)
    except httpx.TimeoutException as e:
        raise RequestTimeoutError(timeout) from e
    except (httpx.StreamError, httpx.TransportError, httpx.DecodingError) as e:
        raise BodyReadError(str(e)) from e
    return bytes(buffer)


def _declared_length(headers: httpx.Headers) -> int:
    try:
        return int(headers.get("Content-Length", ""))
    except ValueError:
        return -1


def fetch(
    url: str,
    config: Optional[FetchConfig] = None,
    *,
    method: str = "GET",
    data: Optional[Mapping[str, Any]] = None,
    json: Any = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Response:
    """Perform one request for ``url``.

    Raises:
        LocalizedError: certificate, timeout, network, oversize or unreadable body
    """
    config = config or FetchConfig()
    headers = _build_headers(config)
    proxy = _proxy_url(config)
    verify = not config.allow_self_signed_certificates

    logger.debug(
        "Making outgoing request: method=%s url=%s timeout=%s follow_redirects=%s with_proxy=%s",
        method,
        url,
        config.timeout,
        config.follow_redirects,
        proxy is not None,
    )

    if transport is None and proxy is not None:
        transport = httpx.HTTPTransport(verify=verify, proxy=proxy)

    deadline = time.monotonic() + config.timeout
    try:
        with httpx.Client(
            transport=transport,
            verify=verify,
            timeout=httpx.Timeout(config.timeout),
            follow_redirects=config.follow_redirects,
        ) as client:
            request = client.build_request(method, url, headers=headers, data=data, json=json)
            http_response = client.send(request, stream=True)
            try:
                content_length = _declared_length(http_response.headers)
                if content_length > config.max_body_size:
                    raise ResponseTooLargeError(config.max_body_size)
                body = _read_body(
                    http_response, config.max_body_size, config.timeout, deadline
                )
            finally:
                http_response.close()
    except httpx.HTTPError as e:
        raise _classify_transport_error(e, config.timeout) from e
    except httpx.InvalidURL as e:
        raise ClientError(str(e)) from e

    response_headers = http_response.headers
    expires = response_headers.get("Expires", "")
    etag = response_headers.get("ETag", "")
    last_modified = response_headers.get("Last-Modified", "")
    if expires.strip() == "0":
        logger.debug("Ignoring caching headers for %s (Expires: 0)", url)
        etag = ""
        last_modified = ""

    response = Response(
        body=body,
        status_code=http_response.status_code,
        effective_url=str(http_response.url),
        etag=etag,
        last_modified=last_modified,
        expires=expires,
        content_type=response_headers.get("Content-Type", ""),
        content_length=content_length,
    )
    logger.debug(
        "Got response: status=%d effective_url=%s content_type=%s content_length=%d "
        "etag=%r last_modified=%r expires=%r",
        response.status_code,
        response.effective_url,
        response.content_type,
        response.content_length,
        response.etag,
        response.last_modified,
        response.expires,
    )
    return response
