"""httpwatch runner - send every parsed request in order and compare."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import requests

from httpwatch.config import RunConfig
from httpwatch.errors import HttpWatchError
from httpwatch.executor import RequestResult, execute_request
from httpwatch.models import Block, SourceFile
from httpwatch.parser import process_http_files

logger = logging.getLogger(__name__)

STATUS_MISMATCH = "Response Status mismatch"


@dataclass(frozen=True)
class Comparison:
    """Outcome of checking an observed status against the expected one."""

    ok: bool
    expected: str
    got: str
    message: str = ""


@dataclass(frozen=True)
class RunRecord:
    """One executed block, as handed to the display layer."""

    file_path: str
    block_id: int
    method: str
    url: str
    label: str = ""
    status: str | None = None
    error: str | None = None
    elapsed_ms: float = 0
    comparison: Comparison | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and (self.comparison is None or self.comparison.ok)


def compare_status(block: Block, result: RequestResult) -> Comparison | None:
    """Compare the observed status line with the block's expected one.

    Only the status is checked; expected headers and body are informational.
    """
    expected = block.expected_response
    if expected is None or not expected.status_text:
        return None
    if expected.status == result.status:
        return Comparison(ok=True, expected=expected.status, got=result.status)
    return Comparison(
        ok=False,
        expected=expected.status,
        got=result.status,
        message=STATUS_MISMATCH,
    )


class Runner:
    """Issues the requests of a parsed file set one at a time.

    ``transport`` has the signature of ``execute_request`` and must not
    raise. The inter-request wait is applied between requests, never
    before the first one.
    """

    def __init__(
        self,
        config: RunConfig,
        transport: Callable[..., RequestResult] = execute_request,
        sleep: Callable[[float], None] = time.sleep,
        session_factory: Callable[[], requests.Session] = requests.Session,
        log: logging.Logger | None = None,
    ):
        self.config = config
        self._transport = transport
        self._sleep = sleep
        self._session_factory = session_factory
        self._log = log or logger

    def run(
        self,
        files: tuple[SourceFile, ...],
        on_record: Callable[[RunRecord], None] | None = None,
    ) -> list[RunRecord]:
        records: list[RunRecord] = []
        sent = 0
        with self._session_factory() as session:
            for source in files:
                for block in sorted(source.blocks, key=lambda b: b.id):
                    if block.error is not None:
                        record = RunRecord(
                            file_path=source.file_path,
                            block_id=block.id,
                            method="",
                            url="",
                            label=block.label,
                            error=block.error,
                        )
                    elif block.request is not None:
                        if sent:
                            self._sleep(self.config.wait_time)
                        sent += 1
                        record = self._send(source, block, session)
                    else:
                        continue
                    records.append(record)
                    if on_record is not None:
                        on_record(record)
        return records

    def _send(self, source: SourceFile, block: Block, session: requests.Session) -> RunRecord:
        request = block.request
        self._log.debug("Sending block %d of %s:\n%s", block.id, source.file_path, request.to_wire())
        for directive in block.directives:
            if directive.startswith("// @note"):
                self._log.debug("Note: %s", directive[len("// @note") :].strip())

        result = self._transport(
            method=request.method,
            url=request.url,
            headers=request.headers,
            body=request.body,
            timeout=self.config.timeout,
            allow_redirects=not block.has_directive("no-redirect"),
            session=None if block.has_directive("no-cookie-jar") else session,
        )
        if result.error:
            self._log.debug("Request for block %d failed: %s", block.id, result.error)
            return RunRecord(
                file_path=source.file_path,
                block_id=block.id,
                method=request.method,
                url=request.url,
                label=block.label,
                error=result.error,
                elapsed_ms=result.elapsed_ms,
            )
        self._log.debug("Received for block %d:\n%s", block.id, result.to_wire())
        if block.expected_response is not None:
            self._log.debug("Expected for block %d:\n%s", block.id, block.expected_response.to_wire())
        return RunRecord(
            file_path=source.file_path,
            block_id=block.id,
            method=request.method,
            url=request.url,
            label=block.label,
            status=result.status,
            elapsed_ms=result.elapsed_ms,
            comparison=compare_status(block, result),
        )


def run_cycle(
    config: RunConfig,
    runner: Runner,
    on_record: Callable[[RunRecord], None] | None = None,
    on_error: Callable[[HttpWatchError], None] | None = None,
    log: logging.Logger | None = None,
) -> list[RunRecord] | None:
    """Load, parse and run from scratch.

    Loader and parser errors are passed to on_error and None is returned,
    so a watcher calling this stays alive.
    """
    log = log or logger
    try:
        files = process_http_files(config, log)
    except HttpWatchError as e:
        if on_error is not None:
            on_error(e)
        else:
            log.error("Run aborted: %s", e)
        return None
    return runner.run(files, on_record)
