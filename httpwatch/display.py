"""httpwatch display - one console line per executed request."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import click

from httpwatch.runner import RunRecord


def format_record(record: RunRecord, color: bool = True) -> str:
    """Format a RunRecord as a single line.

    Completed:  GET    200 OK        12ms http://host/path  [label]
    Mismatch:   [X][ Response Status mismatch ] Expected: [ .. ] Got: [ .. ]
    Failed:     file.http: <error>
    """

    def style(text, **kwargs):
        return click.style(text, **kwargs) if color else text

    label = f"  {style(record.label, fg='magenta')}" if record.label else ""

    if record.error is not None:
        name = Path(record.file_path).name
        where = f"{name} #{record.block_id}"
        return f"{where}: {style(record.error, fg='red')}{label}"

    comparison = record.comparison
    if comparison is not None and not comparison.ok:
        line = (
            f"[X][ {comparison.message} ] Expected: [ {comparison.expected} ] "
            f"Got: [ {comparison.got} ] {record.method} {record.url}"
        )
        return style(line, fg="red") + label

    return (
        f"{style(f'{record.method:<6}', fg='blue', bold=True)} "
        f"{style(f'{record.status:<12}', fg='green')} "
        f"{style(f'{int(record.elapsed_ms):3d}ms', fg='yellow')} "
        f"{style(record.url, fg='bright_black')}"
        f"{label}"
    )


def format_run_header(run_number: int, now: datetime | None = None, color: bool = True) -> str:
    """``[3] 04:12 PM`` heading printed before each run."""
    now = now or datetime.now()
    text = f"[{run_number}] {now.strftime('%I:%M %p')} "
    return click.style(text, fg="cyan", bold=True, underline=True) if color else text


def format_done(color: bool = True) -> str:
    return click.style("done.", fg="bright_black") if color else "done."


def format_error(error: Exception, color: bool = True) -> str:
    text = f"ERROR: {error}"
    return click.style(text, fg="red") if color else text


def summarize(records: list[RunRecord]) -> str:
    """``3 requests, 1 failed, 1 mismatched``"""
    failed = sum(1 for r in records if r.error is not None)
    mismatched = sum(
        1 for r in records if r.comparison is not None and not r.comparison.ok
    )
    noun = "request" if len(records) == 1 else "requests"
    return f"{len(records)} {noun}, {failed} failed, {mismatched} mismatched"
