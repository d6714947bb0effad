import pytest

from fastfeedreader.errors import (
    ClientError,
    DateParseError,
    EmptyResponseError,
    FeedParseError,
    HTTPStatusError,
    LocalizedError,
    RequestTimeoutError,
    ResponseTooLargeError,
    UnsupportedFormatError,
)


def test_english_messages():
    assert str(RequestTimeoutError(30.0)) == "Website unreachable, the request timed out after 30 seconds"
    assert str(ResponseTooLargeError(1024)) == "The response is too large (more than 1024 bytes)"
    assert str(ClientError("boom")) == "HTTP client error: boom"
    assert str(EmptyResponseError()) == "The HTTP response body is empty"
    assert str(FeedParseError("bad token")) == "Unable to parse this feed: bad token"


def test_status_code_keys():
    assert HTTPStatusError(404).key == "error.http_resource_not_found"
    assert HTTPStatusError(599).key == "error.http_unexpected_status_code"
    assert str(HTTPStatusError(401)).startswith("Access to this website is not authorized.")


def test_translate_with_catalog():
    error = ResponseTooLargeError(10)
    catalog = {"error.http_response_too_large": "La réponse est trop grande (plus de %d octets)"}
    assert error.translate(catalog) == "La réponse est trop grande (plus de 10 octets)"
    assert error.translate({}) == str(error)


def test_unknown_key_falls_back_to_key():
    assert str(LocalizedError(key="error.something_new")) == "error.something_new"
    assert str(LocalizedError("x", key="error.something_new")) == "error.something_new ('x',)"


def test_mismatched_template_arguments():
    error = ClientError("a", "b")
    assert str(error) == "HTTP client error: %s"


def test_error_hierarchy():
    assert issubclass(UnsupportedFormatError, FeedParseError)
    assert issubclass(FeedParseError, ValueError)
    assert issubclass(DateParseError, ValueError)
    with pytest.raises(LocalizedError):
        raise HTTPStatusError(500)
