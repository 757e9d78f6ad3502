"""httpwatch executor - send one request over HTTP."""

import time

import requests


class RequestResult:
    """Result of an HTTP request."""

    def __init__(self):
        self.status_code: int = 0
        self.reason: str = ""
        self.headers: dict[str, str] = {}
        self.elapsed_ms: float = 0
        self.error: str | None = None
        self.raw_text: str = ""

    @property
    def status(self) -> str:
        """Status line text, e.g. ``200 OK``."""
        return f"{self.status_code} {self.reason}".strip()

    def to_wire(self) -> str:
        """Status, headers and text of the received response, CRLF separated."""
        lines = [self.status]
        lines.extend(f"{key}: {value}" for key, value in self.headers.items())
        return "\r\n".join(lines) + "\r\n\r\n" + self.raw_text


def execute_request(
    method: str,
    url: str,
    headers: dict[str, str] | None = None,
    body: str | None = None,
    timeout: float = 3,
    allow_redirects: bool = True,
    session: requests.Session | None = None,
) -> RequestResult:
    """Execute an HTTP request and return structured result.

    - Sends through session when given (shared cookie jar)
    - Keeps the response headers and text for verbose output
    - Captures timing, including for failed requests
    - Never raises - always returns RequestResult with error field set
    """
    result = RequestResult()
    send = session.request if session is not None else requests.request

    start = time.monotonic()
    try:
        resp = send(
            method=method.upper(),
            url=url,
            headers=headers,
            data=body.encode("utf-8") if body else None,
            timeout=timeout,
            allow_redirects=allow_redirects,
        )
        result.elapsed_ms = (time.monotonic() - start) * 1000

        result.status_code = resp.status_code
        result.reason = resp.reason or ""
        result.headers = dict(resp.headers)
        result.raw_text = resp.text
    except requests.exceptions.Timeout:
        result.error = f"Request timed out after {timeout:g}s"
    except requests.exceptions.ConnectionError as e:
        result.error = f"Connection error: {e}"
    except requests.exceptions.RequestException as e:
        result.error = f"Request failed: {e}"
    except Exception as e:
        result.error = f"Unexpected error: {e}"

    if result.error:
        result.elapsed_ms = (time.monotonic() - start) * 1000
    return result
