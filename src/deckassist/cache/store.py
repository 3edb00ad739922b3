"""Persistent TTL content cache backed by SQLite."""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Callable
from pathlib import Path

from deckassist.cache.stats import CacheEntry, TranslationCacheEntry
from deckassist.types import CacheType

logger = logging.getLogger(__name__)

_DEFAULT_DB_PATH = Path.home() / ".deckassist" / "cache.db"


class ContentCache:
    """SQLite-backed cache of opaque values (text or bytes).

    Rows are unique on (key, type). Expired rows are logically absent: a read
    that touches one deletes it, and ``clear_expired`` sweeps the rest.
    """

    def __init__(
        self,
        db_path: Path | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db_path = db_path or _DEFAULT_DB_PATH
        self._clock = clock
        if str(self._db_path) != ":memory:":
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.row_factory = sqlite3.Row
        self._create_tables()

    # ── Generic entries ──

    def set(
        self,
        key: str,
        value: str | bytes,
        type: CacheType = CacheType.OTHER,
        ttl: float | None = None,
    ) -> CacheEntry:
        """Insert or replace the (key, type) row. ``ttl`` is in seconds.

        Bytes are stored as a BLOB and come back from ``get`` as bytes.
        """
        now = self._clock()
        entry = CacheEntry(
            key=key,
            type=CacheType(type),
            value=value,
            created_at=now,
            expires_at=now + ttl if ttl is not None else None,
        )
        self._conn.execute(
            """INSERT INTO cache (id, key, value, type, created_at, expires_at)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(key, type) DO UPDATE SET
                   value = excluded.value,
                   created_at = excluded.created_at,
                   expires_at = excluded.expires_at""",
            (
                entry.id, entry.key, entry.value, entry.type.value,
                entry.created_at, entry.expires_at,
            ),
        )
        self._conn.commit()
        return entry

    def get_entry(self, key: str, type: CacheType = CacheType.OTHER) -> CacheEntry | None:
        row = self._conn.execute(
            "SELECT * FROM cache WHERE key = ? AND type = ?", (key, CacheType(type).value)
        ).fetchone()
        if row is None:
            return None
        entry = self._row_to_entry(row)
        if entry.is_expired(self._clock()):
            self.delete(key, type)
            return None
        return entry

    def get(self, key: str, type: CacheType = CacheType.OTHER) -> str | bytes | None:
        """Return the cached value, or None when absent or expired."""
        entry = self.get_entry(key, type)
        return entry.value if entry else None

    def delete(self, key: str, type: CacheType = CacheType.OTHER) -> bool:
        cursor = self._conn.execute(
            "DELETE FROM cache WHERE key = ? AND type = ?", (key, CacheType(type).value)
        )
        self._conn.commit()
        return cursor.rowcount > 0

    def clear_by_type(self, type: CacheType) -> int:
        cursor = self._conn.execute("DELETE FROM cache WHERE type = ?", (CacheType(type).value,))
        self._conn.commit()
        return cursor.rowcount

    def clear_all(self) -> int:
        cursor = self._conn.execute("DELETE FROM cache")
        self._conn.commit()
        return cursor.rowcount

    def clear_expired(self) -> int:
        """Delete rows of every type (and translations) whose expiry has passed."""
        now = self._clock()
        cursor = self._conn.execute(
            "DELETE FROM cache WHERE expires_at IS NOT NULL AND expires_at < ?", (now,)
        )
        removed = cursor.rowcount
        cursor = self._conn.execute(
            "DELETE FROM translation_cache WHERE expires_at IS NOT NULL AND expires_at < ?",
            (now,),
        )
        removed += cursor.rowcount
        self._conn.commit()
        if removed:
            logger.info("Swept %d expired cache rows", removed)
        return removed

    # ── Translations ──

    def set_translation(
        self,
        text: str,
        source_language: str,
        target_language: str,
        translated_text: str,
        ttl: float | None = None,
    ) -> TranslationCacheEntry:
        now = self._clock()
        entry = TranslationCacheEntry(
            text=text,
            source_language=source_language,
            target_language=target_language,
            translated_text=translated_text,
            created_at=now,
            expires_at=now + ttl if ttl is not None else None,
        )
        self._conn.execute(
            """INSERT INTO translation_cache
               (id, text, source_language, target_language, translated_text,
                created_at, expires_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(text, source_language, target_language) DO UPDATE SET
                   translated_text = excluded.translated_text,
                   created_at = excluded.created_at,
                   expires_at = excluded.expires_at""",
            (
                entry.id, entry.text, entry.source_language, entry.target_language,
                entry.translated_text, entry.created_at, entry.expires_at,
            ),
        )
        self._conn.commit()
        return entry

    def get_translation(
        self, text: str, source_language: str, target_language: str
    ) -> str | None:
        params = (text, source_language, target_language)
        row = self._conn.execute(
            """SELECT * FROM translation_cache
               WHERE text = ? AND source_language = ? AND target_language = ?""",
            params,
        ).fetchone()
        if row is None:
            return None
        expires_at = row["expires_at"]
        if expires_at is not None and expires_at < self._clock():
            self._conn.execute(
                """DELETE FROM translation_cache
                   WHERE text = ? AND source_language = ? AND target_language = ?""",
                params,
            )
            self._conn.commit()
            return None
        return row["translated_text"]

    def clear_translations(self) -> int:
        cursor = self._conn.execute("DELETE FROM translation_cache")
        self._conn.commit()
        return cursor.rowcount

    # ── Introspection ──

    @property
    def entry_count(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) FROM cache").fetchone()
        return row[0]

    @property
    def translation_count(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) FROM translation_cache").fetchone()
        return row[0]

    def count_by_type(self) -> dict[str, int]:
        rows = self._conn.execute("SELECT type, COUNT(*) FROM cache GROUP BY type").fetchall()
        return {row[0]: row[1] for row in rows}

    def close(self) -> None:
        self._conn.close()

    def _create_tables(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS cache (
                id TEXT PRIMARY KEY,
                key TEXT NOT NULL,
                value BLOB NOT NULL,
                type TEXT NOT NULL,
                created_at REAL NOT NULL,
                expires_at REAL,
                UNIQUE (key, type)
            )
        """)
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS translation_cache (
                id TEXT PRIMARY KEY,
                text TEXT NOT NULL,
                source_language TEXT NOT NULL,
                target_language TEXT NOT NULL,
                translated_text TEXT NOT NULL,
                created_at REAL NOT NULL,
                expires_at REAL,
                UNIQUE (text, source_language, target_language)
            )
        """)
        self._conn.execute("CREATE INDEX IF NOT EXISTS idx_cache_expires ON cache (expires_at)")
        self._conn.commit()

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> CacheEntry:
        return CacheEntry(
            id=row["id"],
            key=row["key"],
            type=CacheType(row["type"]),
            value=row["value"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
        )
