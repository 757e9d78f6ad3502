"""httpwatch builder - turn a request block's text into a ParsedRequest."""

from __future__ import annotations

import re
from urllib.parse import urlsplit, urlunsplit

from httpwatch.errors import RequestBuildError
from httpwatch.models import ParsedRequest

METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS", "TRACE", "CONNECT")

DEFAULT_HTTP_VERSION = "HTTP/1.1"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

_VERSION_RE = re.compile(r"^HTTP/\d(\.\d)?$")
_HEADER_NAME_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


def is_request_line(line: str) -> bool:
    """True if line starts with an upper-case verb followed by a space."""
    stripped = line.strip()
    return any(stripped.startswith(method + " ") for method in METHODS)


def _ci_get(headers: dict[str, str], name: str) -> str | None:
    lower = name.lower()
    for key, value in headers.items():
        if key.lower() == lower:
            return value
    return None


def parse_header_lines(lines: list[str]) -> tuple[dict[str, str], int]:
    """Read ``key: value`` lines up to the first blank one.

    Returns the headers and the index of the blank line (or len(lines)).
    Raises ValueError on a line that is not a header.
    """
    headers: dict[str, str] = {}
    i = 0
    while i < len(lines) and lines[i].strip():
        key, sep, value = lines[i].partition(":")
        key = key.strip()
        if not sep or not _HEADER_NAME_RE.match(key):
            raise ValueError(f"malformed header line: {lines[i].strip()!r}")
        headers[key] = value.strip()
        i += 1
    return headers, i


def build_request(content: str) -> ParsedRequest:
    """Build a ParsedRequest from normalized block text.

    - Request line: METHOD [URL] [HTTP/x.x]; URL defaults to /
    - Headers until the first blank line
    - Everything after the blank line is the body
    - A Host header fills in the authority of a relative URL
    - Content-Length / Content-Type are filled in for bodies
    """
    lines = content.replace("\r\n", "\n").split("\n")
    request_line = lines[0].strip()
    tokens = request_line.split()
    if not tokens:
        raise RequestBuildError("empty request line")

    method = tokens[0]
    rest = tokens[1:]
    http_version = DEFAULT_HTTP_VERSION
    if rest and _VERSION_RE.match(rest[-1]):
        http_version = rest.pop()
    if len(rest) > 1:
        raise RequestBuildError(f"malformed request line: {request_line!r}")
    target = rest[0] if rest else "/"

    try:
        parts = urlsplit(target)
    except ValueError as e:
        raise RequestBuildError(f"invalid URL {target!r}: {e}") from None

    try:
        headers, blank = parse_header_lines(lines[1:])
    except ValueError as e:
        raise RequestBuildError(str(e)) from None
    body = "\n".join(lines[blank + 2 :]).rstrip("\n")

    url = target
    host = _ci_get(headers, "Host")
    if host and not parts.netloc:
        url = urlunsplit(
            (parts.scheme or "http", host, parts.path or "/", parts.query, parts.fragment),
        )

    if body:
        if _ci_get(headers, "Content-Length") is None:
            headers["Content-Length"] = str(len(body.encode("utf-8")))
        if method in ("POST", "PUT") and _ci_get(headers, "Content-Type") is None:
            headers["Content-Type"] = FORM_CONTENT_TYPE

    return ParsedRequest(
        method=method,
        url=url,
        http_version=http_version,
        headers=headers,
        body=body,
    )
