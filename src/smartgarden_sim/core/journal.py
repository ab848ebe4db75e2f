"""Append-only event journal fed by the package's logging tree.

The simulation logs through stdlib ``logging``; the journal is a
``logging.Handler`` that an external collaborator attaches to collect
``(level, category, message)`` entries, optionally mirrored to a text file.
The category of a record is the last segment of its logger name, so a
record from ``smartgarden_sim.controllers.watering`` lands in ``watering``.

Delivery problems (a full disk, a closed file) go through
``logging.Handler.handleError`` and never reach the simulation.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

ROOT_LOGGER_NAME = "smartgarden_sim"


@dataclass(frozen=True)
class JournalEntry:
    """One journal line.

    Attributes:
        timestamp: Wall-clock time the record was created.
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        category: Subsystem category derived from the logger name.
        message: Formatted log message.
    """

    timestamp: datetime
    level: str
    category: str
    message: str

    def format(self) -> str:
        """Render as a single journal line."""
        stamp = f"{self.timestamp:%Y-%m-%d %H:%M:%S}"
        return f"[{stamp}] [{self.level}] [{self.category}] {self.message}"


def category_for(logger_name: str) -> str:
    """Derive a journal category from a logger name."""
    return logger_name.rsplit(".", 1)[-1]


class EventJournal(logging.Handler):
    """Logging handler collecting simulation records as journal entries."""

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        max_entries: int = 10_000,
        level: int = logging.INFO,
    ) -> None:
        """Initialize journal.

        Args:
            path: Optional text file entries are appended to.
            max_entries: Maximum entries kept in memory.
            level: Minimum level recorded.
        """
        super().__init__(level=level)
        self._entries: deque[JournalEntry] = deque(maxlen=max_entries)
        self._entries_lock = threading.Lock()
        self._path = Path(path) if path is not None else None
        self._attached_to: logging.Logger | None = None

    @property
    def path(self) -> Path | None:
        """File entries are mirrored to, if any."""
        return self._path

    def emit(self, record: logging.LogRecord) -> None:
        """Store a log record as a journal entry."""
        try:
            entry = JournalEntry(
                timestamp=datetime.fromtimestamp(record.created),
                level=record.levelname,
                category=getattr(record, "category", None) or category_for(record.name),
                message=record.getMessage(),
            )
            with self._entries_lock:
                self._entries.append(entry)
            if self._path is not None:
                with self._path.open("a", encoding="utf-8") as f:
                    f.write(entry.format() + "\n")
        except Exception:
            self.handleError(record)

    def log(self, level: int | str, category: str, message: str) -> None:
        """Write an entry through the package logger tree.

        Args:
            level: Logging level number or name.
            category: Journal category; also used as the child logger name.
            message: Entry text.
        """
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                level = logging.INFO
        logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{category.lower()}")
        logger.log(level, message, extra={"category": category})

    def entries(
        self,
        *,
        category: str | None = None,
        level: str | None = None,
    ) -> list[JournalEntry]:
        """Return recorded entries, optionally filtered.

        Args:
            category: Keep only entries of this category (case-insensitive).
            level: Keep only entries of this level name.

        Returns:
            Matching entries, oldest first.
        """
        with self._entries_lock:
            selected = list(self._entries)
        if category is not None:
            selected = [e for e in selected if e.category.lower() == category.lower()]
        if level is not None:
            selected = [e for e in selected if e.level == level.upper()]
        return selected

    def clear(self) -> None:
        """Drop all in-memory entries."""
        with self._entries_lock:
            self._entries.clear()

    def attach(self, logger_name: str = ROOT_LOGGER_NAME) -> EventJournal:
        """Attach to a logger (the package root by default).

        The logger level is lowered to the journal level if needed so that
        records reach the handler.

        Returns:
            self, for chaining.
        """
        logger = logging.getLogger(logger_name)
        if self not in logger.handlers:
            logger.addHandler(self)
        if logger.level == logging.NOTSET or logger.level > self.level:
            logger.setLevel(self.level)
        self._attached_to = logger
        return self

    def detach(self) -> None:
        """Remove the handler from the logger it was attached to."""
        if self._attached_to is not None:
            self._attached_to.removeHandler(self)
            self._attached_to = None
