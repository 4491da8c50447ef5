"""LedgerStore — append-only remember/schedule logs, optionally mirrored to SQLite."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import TYPE_CHECKING, TypeVar

import aiosqlite

from jabber.ledger.models import MemoryNote, ScheduleEntry

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_NOTES = """
CREATE TABLE IF NOT EXISTS memory_notes (
    text TEXT NOT NULL,
    created_at TEXT NOT NULL,
    session_id TEXT
)
"""

_CREATE_SCHEDULE = """
CREATE TABLE IF NOT EXISTS schedule_entries (
    title TEXT NOT NULL,
    "when" TEXT NOT NULL,
    created_at TEXT NOT NULL,
    session_id TEXT
)
"""

_E = TypeVar("_E", MemoryNote, ScheduleEntry)


def _select(entries: Iterable[_E], session_id: str | None, limit: int | None) -> list[_E]:
    """Filter by session and keep the newest *limit* entries, oldest first."""
    selected = [e for e in entries if session_id is None or e.session_id == session_id]
    if limit is not None:
        selected = selected[-limit:] if limit > 0 else []
    return selected


class LedgerStore:
    """Two independent append-only logs: remembered notes and schedule entries.

    Entries live in memory. Pass *db_path* to also write every append to
    SQLite and reload the newest entries on first use, so the ledgers
    survive a restart. Each log keeps at most *max_entries* items; the
    oldest are dropped first.
    """

    def __init__(self, max_entries: int = 200, db_path: Path | None = None) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._db_path = db_path
        self._notes: deque[MemoryNote] = deque(maxlen=max_entries)
        self._schedule: deque[ScheduleEntry] = deque(maxlen=max_entries)
        self._loaded = db_path is None
        self._initialised = False
        self._lock = asyncio.Lock()

    @property
    def persistent(self) -> bool:
        return self._db_path is not None

    @property
    def note_count(self) -> int:
        return len(self._notes)

    @property
    def schedule_count(self) -> int:
        return len(self._schedule)

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        assert self._db_path is not None
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            await db.execute(_CREATE_NOTES)
            await db.execute(_CREATE_SCHEDULE)
            await db.commit()
            self._initialised = True
        return db

    async def _ensure_loaded(self) -> None:
        """Populate the in-memory logs from SQLite once. Caller holds the lock."""
        if self._loaded:
            return
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT text, created_at, session_id FROM memory_notes "
                "ORDER BY rowid DESC LIMIT ?",
                (self._max_entries,),
            )
            note_rows = await cursor.fetchall()
            cursor = await db.execute(
                'SELECT title, "when", created_at, session_id FROM schedule_entries '
                "ORDER BY rowid DESC LIMIT ?",
                (self._max_entries,),
            )
            schedule_rows = await cursor.fetchall()
        finally:
            await db.close()

        self._notes.extend(MemoryNote.from_row(r) for r in reversed(note_rows))
        self._schedule.extend(ScheduleEntry.from_row(r) for r in reversed(schedule_rows))
        self._loaded = True
        logger.info(
            "Loaded ledger from %s: %d note(s), %d schedule entr(ies)",
            self._db_path,
            len(self._notes),
            len(self._schedule),
        )

    async def _persist(self, table: str, columns: str, row: tuple) -> None:
        """Insert *row* and trim the table to the newest ``max_entries`` rows."""
        if self._db_path is None:
            return
        placeholders = ", ".join("?" for _ in row)
        db = await self._connect()
        try:
            await db.execute(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", row)
            await db.execute(
                f"DELETE FROM {table} WHERE rowid NOT IN "
                f"(SELECT rowid FROM {table} ORDER BY rowid DESC LIMIT ?)",
                (self._max_entries,),
            )
            await db.commit()
        finally:
            await db.close()

    # -- Notes -----------------------------------------------------------------

    async def add_note(self, text: str, session_id: str | None = None) -> MemoryNote:
        """Append a note. Raises ``ValueError`` if *text* is blank.

        A note identical to the session's previous note is not stored
        again; the existing entry is returned instead.
        """
        text = (text or "").strip()
        if not text:
            raise ValueError("Note text must not be empty")

        async with self._lock:
            await self._ensure_loaded()
            previous = _select(self._notes, session_id, 1)
            if previous and previous[0].text == text:
                logger.info("Skipped duplicate note (session=%s)", session_id)
                return previous[0]

            note = MemoryNote(text=text, session_id=session_id)
            await self._persist("memory_notes", "text, created_at, session_id", note.to_row())
            self._notes.append(note)

        logger.info("Remembered note (session=%s, total=%d)", session_id, len(self._notes))
        return note

    async def list_notes(
        self, session_id: str | None = None, limit: int | None = None
    ) -> list[MemoryNote]:
        """Return notes oldest first, optionally for one session and capped to the newest *limit*."""
        async with self._lock:
            await self._ensure_loaded()
            return _select(self._notes, session_id, limit)

    # -- Schedule --------------------------------------------------------------

    async def add_schedule(
        self, title: str, when: str, session_id: str | None = None
    ) -> ScheduleEntry:
        """Append a schedule entry. Raises ``ValueError`` if title or when is blank."""
        title = (title or "").strip()
        when = (when or "").strip()
        if not title or not when:
            raise ValueError("Schedule entries need both a title and a when")

        entry = ScheduleEntry(title=title, when=when, session_id=session_id)
        async with self._lock:
            await self._ensure_loaded()
            await self._persist(
                "schedule_entries", 'title, "when", created_at, session_id', entry.to_row()
            )
            self._schedule.append(entry)

        logger.info("Scheduled entry (session=%s, total=%d)", session_id, len(self._schedule))
        return entry

    async def list_schedule(
        self, session_id: str | None = None, limit: int | None = None
    ) -> list[ScheduleEntry]:
        async with self._lock:
            await self._ensure_loaded()
            return _select(self._schedule, session_id, limit)
