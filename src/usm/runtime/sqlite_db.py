# src/usm/runtime/sqlite_db.py
from __future__ import annotations

import json
import os
import random
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

Json = Dict[str, Any]

_SYNC_VALUES = ("OFF", "NORMAL", "FULL", "EXTRA")

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS meta (
      key TEXT PRIMARY KEY,
      value TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS ledger_snapshot (
      id INTEGER PRIMARY KEY CHECK (id = 1),
      snapshot_json TEXT NOT NULL,
      written_ts_ms INTEGER NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS ledger_events (
      seq INTEGER PRIMARY KEY AUTOINCREMENT,
      op TEXT NOT NULL,
      name TEXT NOT NULL,
      event_json TEXT NOT NULL,
      ts_s INTEGER NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_ledger_events_name ON ledger_events(name);",
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _canon_json(obj: Any) -> str:
    # Amounts are Python ints; json keeps them exact at any size.
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    raw = str(os.environ.get(name, "")).strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


def _synchronous_mode(mode: Optional[str] = None) -> str:
    """PRAGMA synchronous for a node mode (USM_MODE when not given).

    prod -> FULL, dev/testnet -> NORMAL. USM_SQLITE_SYNCHRONOUS overrides
    with one of OFF, NORMAL, FULL or EXTRA.
    """
    mode = (mode or os.environ.get("USM_MODE") or "prod").strip().lower()
    default = "FULL" if mode == "prod" else "NORMAL"
    raw = (os.environ.get("USM_SQLITE_SYNCHRONOUS") or default).strip().upper()
    return raw if raw in _SYNC_VALUES else default


class SqliteDB:
    """One SQLite file holding the ledger snapshot and its event log.

    Connections are opened per use and never shared across threads. SQLite
    admits a single writer, so write_tx() retries BEGIN IMMEDIATE with
    bounded, jittered backoff and then fails closed.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str, mode: Optional[str] = None) -> None:
        self.path = str(path)
        self.mode = mode

    def _open(self) -> sqlite3.Connection:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        timeout_ms = _env_int("USM_SQLITE_CONNECT_TIMEOUT_MS", 30_000)
        con = sqlite3.connect(
            self.path,
            timeout=timeout_ms / 1000.0,
            isolation_level=None,  # explicit BEGIN/COMMIT
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        journal = con.execute("PRAGMA journal_mode=WAL;").fetchone()
        got = str(journal[0]).lower() if journal is not None else ""
        if got and got != "wal":
            con.close()
            raise RuntimeError(f"sqlite journal_mode is '{got}', expected 'wal'")

        con.execute(f"PRAGMA synchronous={_synchronous_mode(self.mode)};")
        con.execute("PRAGMA foreign_keys=ON;")
        con.execute(f"PRAGMA busy_timeout={max(0, _env_int('USM_SQLITE_BUSY_TIMEOUT_MS', timeout_ms))};")
        return con

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._open()
        try:
            yield con
        finally:
            con.close()

    def init_schema(self) -> None:
        with self.write_tx() as con:
            for stmt in _SCHEMA:
                con.execute(stmt)

            row = con.execute("SELECT value FROM meta WHERE key='schema_version';").fetchone()
            if row is None:
                con.execute(
                    "INSERT INTO meta(key, value) VALUES('schema_version', ?);",
                    (str(self.SCHEMA_VERSION),),
                )
                return

            have = str(row["value"]).strip()
            if have != str(self.SCHEMA_VERSION):
                raise RuntimeError(
                    f"sqlite schema_version mismatch: have={have} want={self.SCHEMA_VERSION}. Refuse to start."
                )

    @staticmethod
    def _writer_busy(e: sqlite3.OperationalError) -> bool:
        msg = str(e).lower()
        return "database is locked" in msg or "database is busy" in msg

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """BEGIN IMMEDIATE ... COMMIT, rolled back if the body raises.

        Tunables (ms): USM_SQLITE_WRITE_DEADLINE_MS, USM_SQLITE_WRITE_BACKOFF_BASE_MS,
        USM_SQLITE_WRITE_BACKOFF_MAX_MS.
        """
        deadline = _now_ms() + max(250, _env_int("USM_SQLITE_WRITE_DEADLINE_MS", 30_000))
        base_s = max(1, _env_int("USM_SQLITE_WRITE_BACKOFF_BASE_MS", 5)) / 1000.0
        cap_s = max(base_s, _env_int("USM_SQLITE_WRITE_BACKOFF_MAX_MS", 250) / 1000.0)

        with self.connection() as con:
            attempt = 0
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    if not self._writer_busy(e) or _now_ms() >= deadline:
                        raise
                    delay = min(cap_s, base_s * (2.0 ** min(attempt, 8)))
                    time.sleep(delay * (0.5 + random.random()))
                    attempt += 1

            try:
                yield con
            except Exception:
                con.execute("ROLLBACK;")
                raise
            con.execute("COMMIT;")


class SqliteLedgerStore:
    """Latest ledger snapshot plus an append-only event log.

    commit() overwrites the snapshot and appends the call's events in one
    write transaction, so a crash never leaves one without the other.
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM ledger_snapshot WHERE id=1;").fetchone() is not None

    def read(self) -> Json:
        with self._db.connection() as con:
            row = con.execute("SELECT snapshot_json FROM ledger_snapshot WHERE id=1;").fetchone()
        if row is None:
            raise FileNotFoundError(f"no ledger snapshot in {self._db.path}")
        snap = json.loads(str(row["snapshot_json"]))
        if not isinstance(snap, dict):
            raise ValueError("ledger snapshot is not a JSON object")
        return snap

    def commit(self, st: Json, events: Sequence[Json] = (), *, op: str = "", ts_s: int = 0) -> None:
        if not isinstance(st, dict):
            raise ValueError("ledger snapshot must be a dict")
        payload = _canon_json(st)
        rows = [(str(op), str(ev.get("event") or ""), _canon_json(ev), int(ts_s)) for ev in events]

        with self._db.write_tx() as con:
            con.execute(
                """
                INSERT INTO ledger_snapshot(id, snapshot_json, written_ts_ms) VALUES(1, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                  snapshot_json=excluded.snapshot_json,
                  written_ts_ms=excluded.written_ts_ms;
                """,
                (payload, _now_ms()),
            )
            if rows:
                con.executemany(
                    "INSERT INTO ledger_events(op, name, event_json, ts_s) VALUES(?, ?, ?, ?);",
                    rows,
                )

    def recent_events(self, limit: int = 50, *, name: str = "") -> List[Json]:
        """Newest-first events, each annotated with seq, op and ts_s."""
        lim = max(1, int(limit))
        sql = "SELECT seq, op, event_json, ts_s FROM ledger_events"
        args: tuple = ()
        if name:
            sql += " WHERE name=?"
            args = (str(name),)
        sql += " ORDER BY seq DESC LIMIT ?;"

        with self._db.connection() as con:
            rows = con.execute(sql, args + (lim,)).fetchall()

        out: List[Json] = []
        for r in rows:
            ev = json.loads(str(r["event_json"]))
            ev["seq"] = int(r["seq"])
            ev["op"] = str(r["op"])
            ev["ts_s"] = int(r["ts_s"])
            out.append(ev)
        return out
