"""httpwatch parser - turn request files into blocks.

The pipeline is a chain of stages. Each stage takes the full tuple of
SourceFiles and returns a new tuple; an exception from any stage aborts
the rest of the pass.

    strip_comments -> substitute_variables -> split_blocks
    -> normalize_blocks -> fold_multiline_urls -> validate_request_lines
    -> build_requests -> attach_expected_responses
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace

from httpwatch.builder import METHODS, build_request, is_request_line
from httpwatch.config import RunConfig
from httpwatch.errors import EmptyFileError, NoBlocksError, RequestBuildError
from httpwatch.loader import load_sources
from httpwatch.models import Block, SourceFile
from httpwatch.responses import attach_expected_responses, is_status_line

logger = logging.getLogger(__name__)

DELIMITER = "###"
DIRECTIVE_PREFIXES = (
    "// @prompt",
    "// @name",
    "// @note",
    "// @no-redirect",
    "// @no-cookie-jar",
)

_VARIABLE_RE = re.compile(r"^\s*@(\w+)\s*=\s*(.+?)\s*$")
_PLACEHOLDER_RE = re.compile(r"\{\{([^}]+)\}\}")


def _split_lines(content: str) -> list[str]:
    return [line.rstrip("\r") for line in content.split("\n")]


def _join_lines(lines: list[str]) -> str:
    return "\r\n".join(lines)


def is_directive(line: str) -> bool:
    return line.strip().startswith(DIRECTIVE_PREFIXES)


# ── Stages ───────────────────────────────────────────────────────────────


def strip_comments(files: tuple[SourceFile, ...]) -> tuple[SourceFile, ...]:
    """Drop ``//`` comment lines, keeping ``// @directive`` lines.

    ``#`` and ``/* */`` are not comments.
    """
    result = []
    for source in files:
        kept = [
            line
            for line in source.raw_content.split("\n")
            if not line.strip().startswith("//") or is_directive(line)
        ]
        result.append(replace(source, raw_content="\n".join(kept)))
    return tuple(result)


def substitute_variables(files: tuple[SourceFile, ...]) -> tuple[SourceFile, ...]:
    """Collect ``@name = value`` lines and replace ``{{name}}`` placeholders.

    Definition lines are removed. ``{{name/}}`` falls back to ``name``.
    Unknown placeholders are left as they are. Substituted values are not
    scanned again.
    """
    result = []
    for source in files:
        variables: dict[str, str] = {}
        kept = []
        for line in source.raw_content.split("\n"):
            m = _VARIABLE_RE.match(line)
            if m:
                variables[m.group(1)] = m.group(2)
            else:
                kept.append(line)
        content = resolve_placeholders("\n".join(kept), variables)
        result.append(replace(source, raw_content=content, global_variables=variables))
    return tuple(result)


def resolve_placeholders(text: str, variables: dict[str, str]) -> str:
    """Replace {{name}} and {{name/}} placeholders in one pass."""

    def _replace(m: re.Match) -> str:
        name = m.group(1).strip()
        if name in variables:
            return variables[name]
        if name.endswith("/") and name[:-1] in variables:
            return variables[name[:-1]]
        return m.group(0)

    return _PLACEHOLDER_RE.sub(_replace, text)


def _make_block(block_id: int, content: str, label: str) -> Block | None:
    """Build a Block, lifting leading directive lines out of its content."""
    lines = content.split("\n")
    directives = []
    while lines and is_directive(lines[0]):
        directives.append(lines.pop(0).strip())
    body = "\n".join(lines).strip()
    if not body:
        return None
    if not label:
        for directive in directives:
            if directive.startswith("// @name"):
                label = directive[len("// @name") :].strip()
                break
    return Block(id=block_id, content=body, label=label, directives=tuple(directives))


def _starts_inline_response(line: str, section: list[str]) -> bool:
    """A status line after a blank line opens a response block of its own."""
    return (
        line.startswith("HTTP/")
        and is_status_line(line)
        and bool(section)
        and not section[-1].strip()
        and any(s.strip() for s in section)
    )


def split_blocks(files: tuple[SourceFile, ...]) -> tuple[SourceFile, ...]:
    """Split each file on ``###`` lines.

    Text after ``###`` labels the block that follows. A status line
    written after a blank line inside a block also starts a new (unlabeled)
    block. Empty blocks are dropped and the rest numbered from 1.
    """
    result = []
    for source in files:
        if source.raw_content == "":
            raise EmptyFileError("empty file content", source.file_path)

        # (label, lines) per section; text before the first ### has no label
        sections: list[tuple[str, list[str]]] = [("", [])]
        for line in source.raw_content.split("\n"):
            current = sections[-1][1]
            if line.startswith(DELIMITER):
                sections.append((line[len(DELIMITER) :].strip(), []))
            elif _starts_inline_response(line, current):
                sections.append(("", [line]))
            else:
                current.append(line)

        blocks: list[Block] = []
        for label, lines in sections:
            block = _make_block(len(blocks) + 1, "\n".join(lines).strip(), label)
            if block is not None:
                blocks.append(block)

        if not blocks:
            raise NoBlocksError("no valid blocks found", source.file_path)
        result.append(replace(source, blocks=tuple(blocks)))
    return tuple(result)


def _map_blocks(files: tuple[SourceFile, ...], fn) -> tuple[SourceFile, ...]:
    return tuple(
        replace(source, blocks=tuple(fn(source, block) for block in source.blocks))
        for source in files
    )


def normalize_blocks(files: tuple[SourceFile, ...]) -> tuple[SourceFile, ...]:
    """End every block with exactly one blank line, CRLF terminated."""

    def _normalize(source: SourceFile, block: Block) -> Block:
        content = _join_lines(_split_lines(block.content.rstrip("\r\n"))) + "\r\n\r\n"
        if content == block.content:
            return block
        logger.debug("Normalized block %d in file %s", block.id, source.file_path)
        return replace(block, content=content)

    return _map_blocks(files, _normalize)


def _is_continuation(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith(("?", "&")) and line != line.lstrip()


def fold_line(lines: list[str]) -> list[str]:
    """Fold indented ``?``/``&`` lines onto the request line.

    The query goes in front of a trailing `` HTTP/x.x``. Only the first
    ``?`` is kept; later ones become ``&``.
    """
    first = lines[0].strip()
    k = 1
    while k < len(lines) and _is_continuation(lines[k]):
        k += 1
    params = [line.strip() for line in lines[1:k]]
    if not params:
        return lines

    url_end = first.rfind(" HTTP/")
    if url_end == -1:
        url_end = len(first)
    query = "".join(params)
    if query.startswith("?") and query.count("?") > 1:
        query = "?" + query[1:].replace("?", "&")
    return [first[:url_end] + query + first[url_end:]] + lines[k:]


def fold_multiline_urls(files: tuple[SourceFile, ...]) -> tuple[SourceFile, ...]:
    """Join multi-line query strings under a request line."""

    def _fold(source: SourceFile, block: Block) -> Block:
        lines = _split_lines(block.content)
        if len(lines) <= 1 or not is_request_line(lines[0]):
            return block
        folded = fold_line(lines)
        if folded is lines:
            return block
        logger.debug("Folded multi-line URL in block %d: %s", block.id, folded[0])
        return replace(block, content=_join_lines(folded))

    return _map_blocks(files, _fold)


def repair_request_line(line: str) -> str:
    """Upper-case the verb, default to GET and add a missing HTTP version.

    ``get /x`` -> ``GET /x HTTP/1.1``; ``/x HTTP/1.1`` -> ``GET /x HTTP/1.1``.
    """
    line = line.strip()
    parts = line.split()
    if parts[0].upper() in METHODS:
        if parts[0] != parts[0].upper():
            parts[0] = parts[0].upper()
            line = " ".join(parts)
    else:
        line = "GET " + line
    if " HTTP/" not in line:
        line += " HTTP/1.1"
    return line


def validate_request_lines(files: tuple[SourceFile, ...]) -> tuple[SourceFile, ...]:
    """Repair the first line of every block that is not a response."""

    def _validate(source: SourceFile, block: Block) -> Block:
        lines = _split_lines(block.content)
        if is_status_line(lines[0]):
            return block
        repaired = repair_request_line(lines[0])
        if repaired == lines[0]:
            return block
        logger.debug("Validated block %d: %r -> %r", block.id, lines[0], repaired)
        return replace(block, content=_join_lines([repaired] + lines[1:]))

    return _map_blocks(files, _validate)


def build_requests(files: tuple[SourceFile, ...]) -> tuple[SourceFile, ...]:
    """Attach a ParsedRequest to every request block.

    A block that fails to build keeps its error and the others go on.
    """

    def _build(source: SourceFile, block: Block) -> Block:
        if not is_request_line(_split_lines(block.content)[0]):
            return block
        try:
            request = build_request(block.content)
        except RequestBuildError as e:
            logger.debug("%s: block %d: %s", source.file_path, block.id, e)
            return replace(block, error=str(e))
        return replace(block, request=request)

    return _map_blocks(files, _build)


STAGES = (
    strip_comments,
    substitute_variables,
    split_blocks,
    normalize_blocks,
    fold_multiline_urls,
    validate_request_lines,
    build_requests,
    attach_expected_responses,
)


def parse_sources(
    files: tuple[SourceFile, ...],
    log: logging.Logger | None = None,
) -> tuple[SourceFile, ...]:
    """Run every stage over freshly loaded SourceFiles."""
    log = log or logger
    for stage in STAGES:
        log.debug("Running parse stage %s", stage.__name__)
        files = stage(files)
    return files


def parse_text(text: str, file_path: str = "<string>") -> SourceFile:
    """Parse a single request file given as a string."""
    return parse_sources((SourceFile(raw_content=text, file_path=file_path),))[0]


def process_http_files(
    config: RunConfig,
    log: logging.Logger | None = None,
) -> tuple[SourceFile, ...]:
    """Load the configured request files and parse them."""
    return parse_sources(load_sources(config, log), log)
