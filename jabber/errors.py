"""Error taxonomy shared by the upstream clients, router and HTTP layer."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Category of a failed request."""

    INVALID_REQUEST = "InvalidRequest"
    UPSTREAM_UNAVAILABLE = "UpstreamUnavailable"
    UPSTREAM_ERROR = "UpstreamError"
    NOT_FOUND = "NotFound"


HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.UPSTREAM_UNAVAILABLE: 500,
    ErrorKind.UPSTREAM_ERROR: 500,
    ErrorKind.NOT_FOUND: 200,
}


def http_status(kind: ErrorKind | None) -> int:
    """Map an error kind to the HTTP status returned to the widget."""
    if kind is None:
        return 200
    return HTTP_STATUS[kind]
