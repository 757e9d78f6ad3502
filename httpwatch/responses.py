"""httpwatch responses - expected responses written under a request."""

from __future__ import annotations

import logging
import re
from dataclasses import replace

from httpwatch.builder import is_request_line, parse_header_lines
from httpwatch.errors import MalformedResponseError
from httpwatch.models import ParsedResponse, SourceFile

logger = logging.getLogger(__name__)

_STATUS_LINE_RE = re.compile(r"^HTTP/\d\.\d\s+\d{3}")


def is_status_line(line: str) -> bool:
    return bool(_STATUS_LINE_RE.match(line.strip()))


def parse_response(content: str, file_path: str, block_id: int) -> ParsedResponse:
    """Parse a response block: status line, headers, blank line, body."""
    lines = content.replace("\r\n", "\n").split("\n")
    status_line = lines[0].strip()
    tokens = status_line.split(None, 2)
    if len(tokens) < 3:
        raise MalformedResponseError(
            f"malformed HTTP status line {status_line!r}",
            file_path,
            block_id,
        )
    protocol, code, text = tokens
    try:
        status_code = int(code)
    except ValueError:
        raise MalformedResponseError(
            f"malformed HTTP status code {code!r}",
            file_path,
            block_id,
        ) from None

    try:
        headers, blank = parse_header_lines(lines[1:])
    except ValueError as e:
        raise MalformedResponseError(str(e), file_path, block_id) from None
    body = "\n".join(lines[blank + 2 :]).rstrip("\n")

    return ParsedResponse(
        protocol=protocol,
        status_code=status_code,
        status_text=text.strip(),
        headers=headers,
        body=body,
    )


def _first_line(content: str) -> str:
    return content.strip().split("\n", 1)[0]


def attach_expected_responses(files: tuple[SourceFile, ...]) -> tuple[SourceFile, ...]:
    """Attach each response block to the request block right before it.

    The response block stays in the sequence; its first line is not a
    request line so it is never sent.
    """
    logger.debug("Processing HTTP response blocks and attaching them to requests...")
    result = []
    for source in files:
        blocks = list(source.blocks)
        for j in range(len(blocks) - 1):
            current, following = blocks[j], blocks[j + 1]
            if not is_request_line(_first_line(current.content)):
                continue
            if not is_status_line(_first_line(following.content)):
                continue
            response = parse_response(following.content, source.file_path, following.id)
            blocks[j] = replace(current, expected_response=response)
            logger.debug(
                "Attached response from block %d to request block %d with status code %d",
                following.id,
                current.id,
                response.status_code,
            )
        result.append(replace(source, blocks=tuple(blocks)))
    return tuple(result)
