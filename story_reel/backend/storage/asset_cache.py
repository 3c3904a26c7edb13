from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from story_reel.common.db import Database, utc_now
from story_reel.common.models import AssetCacheEntry, AssetKind

logger = logging.getLogger(__name__)


class StorageConflict(Exception):
    """A reference is already stored for this (kind, fingerprint)."""

    def __init__(self, kind: AssetKind, fingerprint: str):
        super().__init__(f"{kind.value} asset already cached for {fingerprint}")
        self.kind = kind
        self.fingerprint = fingerprint


class AssetCacheStore:
    """
    Persistent (kind, fingerprint) -> reference map on the asset_cache table.

    Entries are never evicted or expired.
    """

    def __init__(self, database: Database):
        self.database = database

    def lookup(self, kind: AssetKind, fingerprint: str) -> Optional[str]:
        with self.database.connect() as conn:
            row = conn.execute(
                "SELECT reference FROM asset_cache WHERE kind = ? AND fingerprint = ?",
                (kind.value, fingerprint),
            ).fetchone()
        return row["reference"] if row else None

    def store(self, kind: AssetKind, fingerprint: str, reference: str) -> None:
        try:
            with self.database.connect() as conn:
                conn.execute(
                    "INSERT INTO asset_cache (kind, fingerprint, reference, created_at) "
                    "VALUES (?, ?, ?, ?)",
                    (kind.value, fingerprint, reference, utc_now()),
                )
        except sqlite3.IntegrityError as exc:
            raise StorageConflict(kind, fingerprint) from exc
        logger.debug("Cached %s asset %s", kind.value, fingerprint)

    def get_entry(self, kind: AssetKind, fingerprint: str) -> Optional[AssetCacheEntry]:
        with self.database.connect() as conn:
            row = conn.execute(
                "SELECT kind, fingerprint, reference, created_at FROM asset_cache "
                "WHERE kind = ? AND fingerprint = ?",
                (kind.value, fingerprint),
            ).fetchone()
        if not row:
            return None
        return AssetCacheEntry(
            kind=AssetKind(row["kind"]),
            fingerprint=row["fingerprint"],
            reference=row["reference"],
            created_at=row["created_at"],
        )

    def count(self, kind: Optional[AssetKind] = None) -> int:
        with self.database.connect() as conn:
            if kind is None:
                row = conn.execute("SELECT COUNT(*) AS n FROM asset_cache").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM asset_cache WHERE kind = ?",
                    (kind.value,),
                ).fetchone()
        return int(row["n"])
