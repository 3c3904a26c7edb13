from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from story_reel.common.auth import hash_password, new_session_token, verify_password

SCHEMA = """
CREATE TABLE IF NOT EXISTS accounts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS sessions (
    token TEXT PRIMARY KEY,
    account_id INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    FOREIGN KEY(account_id) REFERENCES accounts(id) ON DELETE CASCADE
);
CREATE TABLE IF NOT EXISTS stories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    account_id INTEGER NOT NULL,
    title TEXT NOT NULL,
    data TEXT NOT NULL,
    created_at TEXT NOT NULL,
    FOREIGN KEY(account_id) REFERENCES accounts(id) ON DELETE CASCADE
);
CREATE TABLE IF NOT EXISTS asset_cache (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    kind TEXT NOT NULL CHECK (kind IN ('image', 'audio')),
    fingerprint TEXT NOT NULL,
    reference TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE(kind, fingerprint)
);
"""


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    """
    SQLite file holding accounts, sessions, story history and the asset cache.

    Every call opens its own connection, so one instance can be shared by
    concurrent requests; SQLite serializes the writes.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """One connection per call; commits on success, always closed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.path, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON;")
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def init(self) -> None:
        with self.connect() as conn:
            conn.executescript(SCHEMA)

    # -------------------------------
    # Accounts & sessions
    # -------------------------------
    def create_account(self, username: str, password: str) -> int:
        username = (username or "").strip()
        if not username:
            raise ValueError("Username and password required")
        pw_hash = hash_password(password)
        with self.connect() as conn:
            try:
                cur = conn.execute(
                    "INSERT INTO accounts (username, password_hash, created_at) VALUES (?, ?, ?)",
                    (username, pw_hash, utc_now()),
                )
                return int(cur.lastrowid)
            except sqlite3.IntegrityError as exc:
                raise ValueError("Username already exists") from exc

    def authenticate(self, username: str, password: str) -> Optional[int]:
        username = (username or "").strip()
        if not username or not password:
            return None
        with self.connect() as conn:
            row = conn.execute(
                "SELECT id, password_hash FROM accounts WHERE username = ?",
                (username,),
            ).fetchone()
        if not row:
            return None
        if verify_password(password, row["password_hash"]):
            return int(row["id"])
        return None

    def create_session(self, account_id: int) -> str:
        token = new_session_token()
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO sessions (token, account_id, created_at) VALUES (?, ?, ?)",
                (token, account_id, utc_now()),
            )
        return token

    def account_for_token(self, token: str) -> Optional[sqlite3.Row]:
        if not token:
            return None
        with self.connect() as conn:
            return conn.execute(
                "SELECT a.id, a.username FROM sessions s "
                "JOIN accounts a ON a.id = s.account_id WHERE s.token = ?",
                (token,),
            ).fetchone()

    def delete_session(self, token: str) -> None:
        if not token:
            return
        with self.connect() as conn:
            conn.execute("DELETE FROM sessions WHERE token = ?", (token,))

    # -------------------------------
    # Story history
    # -------------------------------
    def save_story(self, account_id: int, title: str, scenes: List[Dict[str, Any]]) -> int:
        with self.connect() as conn:
            cur = conn.execute(
                "INSERT INTO stories (account_id, title, data, created_at) VALUES (?, ?, ?, ?)",
                (account_id, title, json.dumps(scenes, ensure_ascii=False), utc_now()),
            )
            return int(cur.lastrowid)

    def list_stories(self, account_id: int) -> List[sqlite3.Row]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT id, title, created_at FROM stories WHERE account_id = ? "
                "ORDER BY created_at DESC, id DESC",
                (account_id,),
            ).fetchall()
        return list(rows)

    def get_story_scenes(self, account_id: int, story_id: int) -> Optional[List[Dict[str, Any]]]:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT data FROM stories WHERE id = ? AND account_id = ?",
                (story_id, account_id),
            ).fetchone()
        if not row:
            return None
        return json.loads(row["data"])
