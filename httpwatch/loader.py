"""httpwatch loader - locate and read request files."""

from __future__ import annotations

import logging
from pathlib import Path

from httpwatch.config import RunConfig, has_http_extension
from httpwatch.errors import EmptyResultError, NotFoundError, UnreadableFileError
from httpwatch.models import SourceFile

logger = logging.getLogger(__name__)


def _files_in(directory: Path) -> list[Path]:
    """Request files directly inside directory, in listing order."""
    return [
        entry
        for entry in sorted(directory.iterdir())
        if entry.is_file() and has_http_extension(entry)
    ]


def resolve_source_paths(config: RunConfig, cwd: str | Path | None = None) -> list[Path]:
    """Work out which files a run reads.

    Resolution order:
      1. --http-file, read directly
      2. --http-folder, every .http/.rest file in it (no recursion)
      3. the first .http/.rest file in the working directory
    """
    if config.http_file:
        path = Path(config.http_file).absolute()
        if not path.is_file():
            raise NotFoundError(f"http file does not exist: {config.http_file}")
        return [path]

    if config.http_folder:
        folder = Path(config.http_folder).absolute()
        if not folder.is_dir():
            raise NotFoundError(f"http folder does not exist: {config.http_folder}")
        paths = _files_in(folder)
        if not paths:
            raise EmptyResultError(f"no .http files found in directory {folder}")
        return paths

    directory = Path(cwd) if cwd is not None else Path.cwd()
    paths = _files_in(directory.absolute())[:1]
    if not paths:
        raise EmptyResultError("no .http file found in the current directory")
    return paths


def load_sources(
    config: RunConfig,
    log: logging.Logger | None = None,
    cwd: str | Path | None = None,
) -> tuple[SourceFile, ...]:
    """Read every resolved file into a SourceFile with no blocks yet."""
    log = log or logger
    log.debug("Reading http files...")
    sources = []
    for path in resolve_source_paths(config, cwd):
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NotFoundError(f"http file does not exist: {path}") from None
        except UnicodeDecodeError as e:
            raise UnreadableFileError(f"file is not valid UTF-8: {e.reason} at byte {e.start}", str(path)) from None
        except OSError as e:
            raise UnreadableFileError(f"cannot read file: {e.strerror or e}", str(path)) from None
        log.debug("Read %s (%d bytes)", path, len(content))
        sources.append(SourceFile(raw_content=content, file_path=str(path)))
    return tuple(sources)
