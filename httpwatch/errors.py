"""httpwatch errors - exception hierarchy.

``ConfigError`` is fatal before anything runs. ``ParseError`` aborts one
pass over the source files but leaves the watcher armed.
``RequestBuildError`` is confined to a single block.
"""


class HttpWatchError(Exception):
    """Base class for every error raised by httpwatch."""


class ConfigError(HttpWatchError):
    """Invalid or inconsistent run configuration."""


class NotFoundError(ConfigError):
    """A configured file or folder does not exist."""


class EmptyResultError(HttpWatchError):
    """A folder scan found no request files."""


class ParseError(HttpWatchError):
    """A source file could not be turned into blocks."""

    def __init__(self, message: str, file_path: str, block_id: int | None = None):
        self.file_path = file_path
        self.block_id = block_id
        location = file_path if block_id is None else f"{file_path}, block {block_id}"
        super().__init__(f"{message} ({location})")


class EmptyFileError(ParseError):
    """The source file has no content."""


class UnreadableFileError(ParseError):
    """The source file could not be read or is not valid UTF-8."""


class NoBlocksError(ParseError):
    """Splitting the source file produced no non-empty block."""


class MalformedResponseError(ParseError):
    """An expected-response block has an invalid status line or header."""


class RequestBuildError(HttpWatchError):
    """A block's text could not be turned into a request."""
