"""
Persistent store for probes, watermarks and play sessions.

Wraps a single DuckDB connection. UTC instants are written as naive UTC
TIMESTAMPs and re-attached to UTC on read; local session endpoints are kept
as ISO strings so each endpoint keeps its own offset.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import duckdb

from PlayLog.database import create_schema, get_connection
from PlayLog.errors import StoreError
from PlayLog.models import LatestPointer, PlaySession, Probe

log = logging.getLogger(__name__)

SESSION_COLUMNS = [
    "record_id", "window_id", "game_id", "game_name", "local_date",
    "start_utc", "end_utc", "start_local", "end_local", "utc_date",
    "duration_minutes", "block_count", "probe_count", "played_blocks",
]


def _to_db_ts(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db_ts(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc)


def _fetch_dicts(cursor) -> List[Dict[str, Any]]:
    columns = [d[0] for d in cursor.description]
    return [dict(zip(columns, row)) for row in cursor.fetchall()]


class PlaytimeStore:
    """put / get / scan operations over the PlayLog tables."""

    def __init__(self, conn: duckdb.DuckDBPyConnection):
        self.conn = conn

    @classmethod
    def open(cls, db_path: Path | str | None = None) -> "PlaytimeStore":
        try:
            conn = get_connection(db_path)
            create_schema(conn)
        except duckdb.Error as e:
            raise StoreError(f"Could not open store at {db_path}: {e}") from e
        return cls(conn)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @contextmanager
    def transaction(self):
        """Groups several writes; rolled back as a whole if any of them fails."""
        self.conn.begin()
        try:
            yield self
        except Exception:
            self.conn.rollback()
            raise
        try:
            self.conn.commit()
        except duckdb.Error as e:
            raise StoreError(f"Commit failed: {e}") from e

    # --- LatestPointer ---

    def get_latest(self, game_id: str) -> Optional[LatestPointer]:
        try:
            cursor = self.conn.execute(
                "SELECT game_id, game_name, cumulative_minutes, last_check_time "
                "FROM playtime_latest WHERE game_id = ?",
                [game_id],
            )
            rows = _fetch_dicts(cursor)
        except duckdb.Error as e:
            raise StoreError(f"Failed to read watermark for game {game_id}: {e}") from e
        if not rows:
            return None
        row = rows[0]
        row["last_check_time"] = _from_db_ts(row["last_check_time"])
        return LatestPointer(**row)

    def put_latest(self, pointer: LatestPointer) -> None:
        try:
            self.conn.execute(
                "INSERT OR REPLACE INTO playtime_latest (game_id, game_name, cumulative_minutes, last_check_time) "
                "VALUES (?, ?, ?, ?)",
                [pointer.game_id, pointer.game_name, pointer.cumulative_minutes, _to_db_ts(pointer.last_check_time)],
            )
        except duckdb.Error as e:
            raise StoreError(f"Failed to write watermark for game {pointer.game_id}: {e}") from e

    # --- Probes ---

    def put_probe(self, probe: Probe) -> None:
        # Probes are append-only: a replayed write for the same id is ignored.
        try:
            self.conn.execute(
                "INSERT OR IGNORE INTO playtime_probes "
                "(probe_id, game_id, game_name, check_time, delta_minutes, cumulative_minutes) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                [
                    probe.probe_id, probe.game_id, probe.game_name,
                    _to_db_ts(probe.check_time), probe.delta_minutes, probe.cumulative_minutes,
                ],
            )
        except duckdb.Error as e:
            raise StoreError(f"Failed to write probe {probe.probe_id}: {e}") from e

    def scan_probes(self, start_utc: datetime, end_utc: datetime) -> List[Probe]:
        """Probes with start_utc <= check_time <= end_utc, oldest first."""
        try:
            cursor = self.conn.execute(
                "SELECT game_id, game_name, check_time, delta_minutes, cumulative_minutes "
                "FROM playtime_probes WHERE check_time >= ? AND check_time <= ? "
                "ORDER BY check_time, probe_id",
                [_to_db_ts(start_utc), _to_db_ts(end_utc)],
            )
            rows = _fetch_dicts(cursor)
        except duckdb.Error as e:
            raise StoreError(f"Failed to scan probes in [{start_utc}, {end_utc}]: {e}") from e
        for row in rows:
            row["check_time"] = _from_db_ts(row["check_time"])
        return [Probe(**row) for row in rows]

    # --- Sessions ---

    def replace_window_sessions(self, window_id: str, sessions: Iterable[PlaySession]) -> int:
        """
        Upserts the session set of one processing window in a single transaction.
        Records of the window whose keys are not in the new set are removed, so a
        re-run converges on exactly the sessions it produced.
        """
        sessions = list(sessions)
        keys = [s.record_id for s in sessions]
        try:
            with self.transaction():
                for s in sessions:
                    self.conn.execute(
                        f"INSERT OR REPLACE INTO play_sessions ({', '.join(SESSION_COLUMNS)}) "
                        f"VALUES ({', '.join('?' for _ in SESSION_COLUMNS)})",
                        [
                            s.record_id, s.window_id, s.game_id, s.game_name, s.local_date,
                            _to_db_ts(s.start_utc), _to_db_ts(s.end_utc),
                            s.start_local.isoformat(), s.end_local.isoformat(), s.utc_date,
                            s.duration_minutes, s.block_count, s.probe_count, s.played_blocks,
                        ],
                    )
                if keys:
                    placeholders = ', '.join('?' for _ in keys)
                    self.conn.execute(
                        f"DELETE FROM play_sessions WHERE window_id = ? AND record_id NOT IN ({placeholders})",
                        [window_id, *keys],
                    )
                else:
                    self.conn.execute("DELETE FROM play_sessions WHERE window_id = ?", [window_id])
        except duckdb.Error as e:
            raise StoreError(f"Failed to persist sessions for window {window_id}: {e}") from e
        log.debug(f"Persisted {len(sessions)} sessions for window {window_id}")
        return len(sessions)

    def _select_sessions(self, where: str, params: list) -> List[PlaySession]:
        try:
            cursor = self.conn.execute(
                f"SELECT {', '.join(SESSION_COLUMNS)} FROM play_sessions WHERE {where} "
                "ORDER BY start_utc, record_id",
                params,
            )
            rows = _fetch_dicts(cursor)
        except duckdb.Error as e:
            raise StoreError(f"Failed to read sessions ({where}): {e}") from e
        sessions = []
        for row in rows:
            row.pop("utc_date")
            row["played_blocks"] = row["played_blocks"] or 0
            row["start_utc"] = _from_db_ts(row["start_utc"])
            row["end_utc"] = _from_db_ts(row["end_utc"])
            sessions.append(PlaySession(**row))
        return sessions

    def scan_sessions(self, start_date: date, end_date: date) -> List[PlaySession]:
        """Sessions whose local_date falls in [start_date, end_date], by start_utc."""
        return self._select_sessions("local_date BETWEEN ? AND ?", [start_date, end_date])

    def window_sessions(self, window_id: str) -> List[PlaySession]:
        return self._select_sessions("window_id = ?", [window_id])

    def get_session(self, record_id: str) -> Optional[PlaySession]:
        found = self._select_sessions("record_id = ?", [record_id])
        return found[0] if found else None

    # --- Metadata ---

    def get_meta(self, key: str) -> Optional[str]:
        try:
            row = self.conn.execute("SELECT value FROM metadata WHERE key = ?", [key]).fetchone()
        except duckdb.Error as e:
            raise StoreError(f"Failed to read metadata '{key}': {e}") from e
        return row[0] if row else None

    def set_meta(self, key: str, value: str) -> None:
        try:
            self.conn.execute("INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)", [key, value])
        except duckdb.Error as e:
            raise StoreError(f"Failed to write metadata '{key}': {e}") from e
