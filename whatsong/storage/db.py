from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Protocol

from whatsong.errors import NotFound, StorageError, UnsupportedVersion
from whatsong.schemas import Event, Report
from whatsong.youtube.client import VideoInfo
from whatsong.youtube.ids import extract_video_id

logger = logging.getLogger(__name__)

EVENT_COLUMNS = "sequence, source_id, reported_at, duration_seconds, title, version"


class MetadataResolver(Protocol):
    def fetch(self, video_id: str) -> VideoInfo: ...


class EventStore:
    """
    Append-only log of play events, ordered by a store-assigned sequence.

    Every operation opens its own connection and closes it before returning.
    Writers are serialized by an in-process lock; readers never take it.
    """

    def __init__(self, db_path: Path | str, resolver: MetadataResolver, supported_version: int = 1):
        self.db_path = Path(db_path)
        self.resolver = resolver
        self.supported_version = supported_version
        self._write_lock = threading.Lock()

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            con = sqlite3.connect(self.db_path, timeout=30)
        except (OSError, sqlite3.Error) as ex:
            raise StorageError(f"cannot open db {self.db_path}: {ex}") from ex

        con.row_factory = sqlite3.Row
        try:
            con.execute("PRAGMA synchronous=FULL")
            yield con
        except (sqlite3.Error, OverflowError) as ex:
            raise StorageError(str(ex)) from ex
        finally:
            con.close()

    def init_db(self) -> None:
        with self._conn() as con:
            con.execute("PRAGMA journal_mode=WAL")
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS events (
                  sequence INTEGER PRIMARY KEY AUTOINCREMENT,
                  source_id TEXT NOT NULL CHECK (length(source_id) > 0),
                  reported_at INTEGER NOT NULL,
                  duration_seconds INTEGER NOT NULL CHECK (duration_seconds >= 0),
                  title TEXT NOT NULL CHECK (length(title) > 0),
                  version INTEGER NOT NULL
                )
                """
            )

            # The log is never rewritten
            con.execute(
                """
                CREATE TRIGGER IF NOT EXISTS events_no_update
                BEFORE UPDATE ON events
                BEGIN SELECT RAISE(ABORT, 'events are append-only'); END
                """
            )
            con.execute(
                """
                CREATE TRIGGER IF NOT EXISTS events_no_delete
                BEFORE DELETE ON events
                BEGIN SELECT RAISE(ABORT, 'events are append-only'); END
                """
            )
            con.commit()

    # ---------------------------------------------------------
    # Writes
    # ---------------------------------------------------------
    def insert(self, report: Report) -> Event:
        if report.version != self.supported_version:
            logger.warning(
                "invalid version: %s. only '%s' is supported", report.version, self.supported_version
            )
            raise UnsupportedVersion(expected=self.supported_version, got=report.version)

        video_id = extract_video_id(report.source_url)

        # Network round trip happens before the write lock is taken
        info = self.resolver.fetch(video_id)

        with self._write_lock, self._conn() as con:
            cur = con.execute(
                """
                INSERT INTO events (source_id, reported_at, duration_seconds, title, version)
                VALUES (?, ?, ?, ?, ?)
                """,
                (video_id, int(report.reported_at_ms), int(info.duration_seconds), info.title, report.version),
            )
            con.commit()
            sequence = int(cur.lastrowid)

        event = Event(
            sequence=sequence,
            source_id=video_id,
            reported_at=int(report.reported_at_ms),
            duration_seconds=int(info.duration_seconds),
            title=info.title,
            version=report.version,
        )
        logger.info("recorded #%s %s %r (%ss)", sequence, video_id, info.title, info.duration_seconds)
        return event

    # ---------------------------------------------------------
    # Reads
    # ---------------------------------------------------------
    def _latest(self, n: int) -> List[Event]:
        with self._conn() as con:
            rows = con.execute(
                f"SELECT {EVENT_COLUMNS} FROM events ORDER BY sequence DESC LIMIT ?",
                (int(n),),
            ).fetchall()
        return [Event(**dict(r)) for r in rows]

    def current(self) -> Event:
        logger.debug("getting the current song")
        latest = self._latest(1)
        if not latest:
            raise NotFound("current")
        return latest[0]

    def previous(self) -> Event:
        logger.debug("getting the previous song")
        latest = self._latest(2)
        if len(latest) < 2:
            raise NotFound("previous")
        return latest[1]

    def all(self) -> List[Event]:
        logger.debug("getting all of the songs")
        with self._conn() as con:
            rows = con.execute(f"SELECT {EVENT_COLUMNS} FROM events ORDER BY sequence ASC").fetchall()
        return [Event(**dict(r)) for r in rows]
