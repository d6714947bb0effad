"""Localized, categorized errors.

Every public operation fails with a :class:`LocalizedError`. The translation key is
stable and meant for callers (scheduler, UI) to branch on; ``str(error)`` is the
English message and :meth:`LocalizedError.translate` renders it with another catalog.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

ENGLISH_MESSAGES: dict[str, str] = {
    "error.tls_error": "Invalid SSL certificate (original error: %r)",
    "error.network_operation_temporary": "This website is temporarily unreachable (original error: %r)",
    "error.network_operation_permanent": "This website is permanently unreachable (original error: %r)",
    "error.network_timeout": "Website unreachable, the request timed out after %d seconds",
    "error.http_response_too_large": "The response is too large (more than %d bytes)",
    "error.http_body_read": "Unable to read the HTTP body: %s",
    "error.http_empty_response_body": "The HTTP response body is empty",
    "error.http_empty_response": "The HTTP response is empty. Perhaps, this website is using a bot protection mechanism?",
    "error.http_client_error": "HTTP client error: %s",
    "error.http_not_authorized": "Access to this website is not authorized. It could be a bad username or password.",
    "error.http_forbidden": "Access to this website is forbidden. Perhaps, this website has a bot protection mechanism?",
    "error.http_too_many_requests": "Too many requests were sent to this website. Please, try again later or change the polling configuration.",
    "error.http_resource_not_found": "The requested resource is not found. Please, verify the URL.",
    "error.http_internal_server_error": "The website is not available at the moment due to a server error. The problem is not on the reader side. Please, try again later.",
    "error.http_bad_gateway": "The website is not available at the moment due to a bad gateway error. The problem is not on the reader side. Please, try again later.",
    "error.http_service_unavailable": "The website is not available at the moment due to an internal service error. The problem is not on the reader side. Please, try again later.",
    "error.http_gateway_timeout": "The website is not available at the moment due to a gateway timeout error. The problem is not on the reader side. Please, try again later.",
    "error.http_unexpected_status_code": "The website returned an unexpected status code: %d",
    "error.feed_format_not_detected": "Unable to detect feed format: %s",
    "error.unable_to_parse_feed": "Unable to parse this feed: %s",
    "error.unable_to_parse_html_document": "Unable to parse HTML document: %s",
    "error.invalid_site_url": "Invalid site URL: %s",
    "error.date_parser": "%s",
}


class LocalizedError(Exception):
    """Base error: a translation key plus the arguments that fill its message."""

    key = "error.http_client_error"

    def __init__(self, *args: Any, key: Optional[str] = None) -> None:
        if key is not None:
            self.key = key
        self.args_for_message = args
        super().__init__(self.translate())

    def translate(self, catalog: Optional[Mapping[str, str]] = None) -> str:
        template = None
        if catalog is not None:
            template = catalog.get(self.key)
        if template is None:
            template = ENGLISH_MESSAGES.get(self.key)
        if template is None:
            if not self.args_for_message:
                return self.key
            return f"{self.key} {self.args_for_message!r}"
        try:
            return template % self.args_for_message
        except (TypeError, ValueError):
            return template


class InvalidCertificateError(LocalizedError):
    key = "error.tls_error"


class TemporaryNetworkError(LocalizedError):
    key = "error.network_operation_temporary"


class PermanentNetworkError(LocalizedError):
    key = "error.network_operation_permanent"


class RequestTimeoutError(LocalizedError):
    key = "error.network_timeout"

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(int(timeout))


class ResponseTooLargeError(LocalizedError):
    key = "error.http_response_too_large"

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(limit)


class BodyReadError(LocalizedError):
    key = "error.http_body_read"


class EmptyResponseError(LocalizedError):
    key = "error.http_empty_response_body"


class ClientError(LocalizedError):
    key = "error.http_client_error"


_STATUS_KEYS: dict[int, str] = {
    401: "error.http_not_authorized",
    403: "error.http_forbidden",
    404: "error.http_resource_not_found",
    410: "error.http_resource_not_found",
    429: "error.http_too_many_requests",
    500: "error.http_internal_server_error",
    502: "error.http_bad_gateway",
    503: "error.http_service_unavailable",
    504: "error.http_gateway_timeout",
}


class HTTPStatusError(LocalizedError):
    """A response whose status code is an error (>= 400)."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        key = _STATUS_KEYS.get(status_code, "error.http_unexpected_status_code")
        if key == "error.http_unexpected_status_code":
            super().__init__(status_code, key=key)
        else:
            super().__init__(key=key)


class FeedParseError(LocalizedError, ValueError):
    key = "error.unable_to_parse_feed"


class UnsupportedFormatError(FeedParseError):
    key = "error.feed_format_not_detected"


class DateParseError(LocalizedError, ValueError):
    key = "error.date_parser"


class HTMLDocumentError(LocalizedError):
    key = "error.unable_to_parse_html_document"


class InvalidSiteURLError(LocalizedError, ValueError):
    key = "error.invalid_site_url"
