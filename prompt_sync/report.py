"""Render reports as human-readable text (via rich) or JSON."""

from __future__ import annotations

import json

from rich.console import Console
from rich.markup import escape

from prompt_sync.models import Record, Report, Status

STATUS_STYLES = {
    Status.OK: "green",
    Status.CREATED: "green",
    Status.REPLACED: "green",
    Status.WOULD_CREATE: "cyan",
    Status.WOULD_REPLACE: "cyan",
    Status.SKIPPED: "dim",
    Status.MISSING: "yellow",
    Status.BROKEN: "yellow",
    Status.CONFLICT: "yellow",
    Status.ERROR: "red",
}


def render_json(report: Report) -> str:
    return json.dumps(report.to_dict(), indent=2)


def render_text(report: Report, console: Console, show_records: bool) -> None:
    """Print the summary, then every record or only the errors.

    Every line is printed unwrapped so each record stays greppable on one line.
    """
    s = report.summary
    console.print(f"command: {escape(report.command)}")
    console.print(f"total: {s.total}")
    console.print(
        f"ok={s.ok} missing={s.missing} broken={s.broken} conflict={s.conflict} "
        f"created={s.created} replaced={s.replaced} would_create={s.would_create} "
        f"would_replace={s.would_replace} skipped={s.skipped} errors={s.errors}",
        soft_wrap=True,
    )

    for record in report.records:
        if show_records or record.status is Status.ERROR:
            console.print(format_record(record), soft_wrap=True)


def format_record(record: Record) -> str:
    """One line of rich markup: ``[STATUS] source -> target (message)``."""
    style = STATUS_STYLES[record.status]
    label = escape(f"[{record.status.value}]")
    message = escape(record.message or "")
    return (
        f"[{style}]{label}[/] {escape(str(record.source))} -> "
        f"{escape(str(record.target))} ({message})"
    )
