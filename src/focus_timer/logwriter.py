"""Append-only CSV work logs, one file per calendar day."""

from __future__ import annotations

import asyncio
import csv
import io
import logging
from collections import defaultdict
from datetime import date
from pathlib import Path
from typing import Iterable, Sequence

from .config import Settings
from .errors import PartialWriteError
from .models import TimeEntry

logger = logging.getLogger(__name__)

CSV_COLUMNS = ("Date", "StartTime", "EndTime", "DurationSeconds", "AppName", "WindowTitle", "ProjectTag")
CSV_HEADER = ",".join(CSV_COLUMNS)
DATE_FMT = "%Y-%m-%d"
TIME_FMT = "%H:%M:%S"
ENCODING = "utf-8"


def log_path_for(log_directory: Path, day: date) -> Path:
    """``{log_directory}/{YYYY}/{MM}/{YYYY-MM-DD}-worklog.csv``"""
    return (
        Path(log_directory)
        / f"{day.year:04d}"
        / f"{day.month:02d}"
        / f"{day.strftime(DATE_FMT)}-worklog.csv"
    )


def format_row(entry: TimeEntry) -> str:
    """Render a closed entry as one CSV line, without the line terminator."""
    if entry.end_time is None:
        raise ValueError("Cannot format an open time entry")
    buffer = io.StringIO()
    csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n").writerow(
        (
            entry.start_time.strftime(DATE_FMT),
            entry.start_time.strftime(TIME_FMT),
            entry.end_time.strftime(TIME_FMT),
            int(round(entry.duration_seconds)),
            entry.app_name,
            entry.window_title,
            entry.project_tag,
        )
    )
    return buffer.getvalue()[:-2]


def encode_rows(rows: Sequence[str]) -> bytes:
    # window titles can carry unpaired surrogates
    return "".join(f"{row}\n" for row in rows).encode(ENCODING, errors="replace")


class EntryLogWriter:
    """Writes completed entries to CSV log files organised by date."""

    async def write_entries(self, entries: Iterable[TimeEntry], settings: Settings) -> int:
        """Append ``entries`` to their daily logs and return the number of rows written.

        Every date group is attempted; if any of them fails a
        ``PartialWriteError`` is raised once the others have been written.
        """
        batch = list(entries)
        if not batch:
            logger.info("No entries to write.")
            return 0

        log_directory = settings.log_directory
        if log_directory is None:
            logger.warning("Log directory is not configured; %d entries not written.", len(batch))
            return 0

        written = 0
        failed: list[date] = []
        for day, group in self._group_by_date(batch).items():
            path = log_path_for(log_directory, day)
            try:
                rows = self._format_rows(group)
                if not rows:
                    continue
                await asyncio.to_thread(self._append_rows, path, encode_rows(rows))
            except Exception:
                logger.exception("Failed to write %d entries to %s", len(group), path)
                failed.append(day)
                continue
            written += len(rows)
            logger.debug("Wrote %d entries to %s", len(rows), path)

        if failed:
            raise PartialWriteError(failed, written)
        return written

    @staticmethod
    def _group_by_date(entries: Sequence[TimeEntry]) -> dict[date, list[TimeEntry]]:
        groups: defaultdict[date, list[TimeEntry]] = defaultdict(list)
        for entry in entries:
            groups[entry.start_time.date()].append(entry)
        return dict(sorted(groups.items()))

    @staticmethod
    def _format_rows(entries: Sequence[TimeEntry]) -> list[str]:
        rows: list[str] = []
        for entry in entries:
            if entry.end_time is None:
                logger.warning(
                    "Skipping open entry started at %s in %s", entry.start_time, entry.app_name
                )
                continue
            rows.append(format_row(entry))
        return rows

    @staticmethod
    def _append_rows(path: Path, body: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("ab") as handle:
            if handle.tell() == 0:
                body = f"{CSV_HEADER}\n".encode(ENCODING) + body
            handle.write(body)
            handle.flush()
