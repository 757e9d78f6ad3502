"""httpwatch models - parsed source files, blocks, requests and responses.

Every parse pass builds these from scratch. They are frozen so a pipeline
stage returns a new value with ``dataclasses.replace`` instead of editing
the previous one.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ParsedRequest:
    """A request built from a block, ready for the transport."""

    method: str
    url: str
    http_version: str = "HTTP/1.1"
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""

    def to_wire(self) -> str:
        """Render the request in HTTP/1.1 text form (CRLF line endings)."""
        lines = [f"{self.method} {self.url} {self.http_version}"]
        lines.extend(f"{key}: {value}" for key, value in self.headers.items())
        return "\r\n".join(lines) + "\r\n\r\n" + self.body


@dataclass(frozen=True)
class ParsedResponse:
    """The expected response declared under a request block."""

    protocol: str
    status_code: int
    status_text: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""

    @property
    def status(self) -> str:
        """Status as printed on a status line, e.g. ``404 Not Found``."""
        return f"{self.status_code} {self.status_text}"

    def to_wire(self) -> str:
        lines = [f"{self.protocol} {self.status}"]
        lines.extend(f"{key}: {value}" for key, value in self.headers.items())
        return "\r\n".join(lines) + "\r\n\r\n" + self.body


@dataclass(frozen=True)
class Block:
    """One unit between two ``###`` delimiters.

    ``id`` counts non-empty blocks from 1. ``directives`` holds the
    ``// @...`` lines lifted from the top of the block and ``error`` the
    reason the request could not be built, if any.
    """

    id: int
    content: str
    label: str = ""
    directives: tuple[str, ...] = ()
    request: ParsedRequest | None = None
    expected_response: ParsedResponse | None = None
    error: str | None = None

    def has_directive(self, name: str) -> bool:
        prefix = f"// @{name}"
        return any(
            d == prefix or d.startswith(prefix + " ") for d in self.directives
        )


@dataclass(frozen=True)
class SourceFile:
    """Raw text of one ``.http``/``.rest`` file and the blocks parsed from it."""

    raw_content: str
    file_path: str
    global_variables: dict[str, str] = field(default_factory=dict)
    blocks: tuple[Block, ...] = ()
