"""
Storage Interfaces

RESPONSIBILITY: The two narrow interfaces the engine consumes
- Evidence source: all entries of a case, ordered by (created_at, id)
- Setting store: named string values, last write wins

WHAT THIS LAYER MUST NOT DO:
============================
- Interpret entries (no filtering, no severity)
- Re-sort beyond the (created_at, id) contract
- Parse cache payloads (the cache layer owns (de)serialization)

The upstream ordering contract is load-bearing: partitioning and
fingerprinting rely on it and never re-sort by timestamp themselves.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Optional, Union
import json
import sqlite3

from ..contracts.base import iso_millis
from ..contracts.evidence import EvidenceEntry


# =============================================================================
# SETTING STORE
# =============================================================================

class SettingStore(ABC):
    """Key-value store of named string settings."""

    @abstractmethod
    def get_setting(self, key: str) -> Optional[str]:
        """Return the stored value, or None when absent."""

    @abstractmethod
    def set_setting(self, key: str, value: str) -> None:
        """Insert or overwrite."""

    @abstractmethod
    def delete_setting(self, key: str) -> None:
        """Remove the key if present."""


class InMemorySettingStore(SettingStore):

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get_setting(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set_setting(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete_setting(self, key: str) -> None:
        self._values.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._values)


class SqliteSettingStore(SettingStore):
    """
    Settings persisted in an `app_settings` table.

    One connection per operation; no transactional semantics beyond
    a single upsert.
    """

    def __init__(self, db_path: Union[str, Path]):
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with self._get_conn() as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS app_settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            ''')

    @contextmanager
    def _get_conn(self):
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def get_setting(self, key: str) -> Optional[str]:
        with self._get_conn() as conn:
            row = conn.execute(
                'SELECT value FROM app_settings WHERE key = ?', (key,)
            ).fetchone()
        return row['value'] if row else None

    def set_setting(self, key: str, value: str) -> None:
        with self._get_conn() as conn:
            conn.execute('''
                INSERT INTO app_settings (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
            ''', (key, value))

    def delete_setting(self, key: str) -> None:
        with self._get_conn() as conn:
            conn.execute('DELETE FROM app_settings WHERE key = ?', (key,))


# =============================================================================
# EVIDENCE SOURCE
# =============================================================================

class EvidenceSource(ABC):
    """Ordered evidence log of a case."""

    @abstractmethod
    def list_evidence(self, case_id: int) -> List[EvidenceEntry]:
        """All entries of the case, ordered by (created_at asc, id asc)."""


class InMemoryEvidenceSource(EvidenceSource):

    def __init__(self):
        self._cases: Dict[int, List[EvidenceEntry]] = {}

    def add_entry(self, case_id: int, entry: EvidenceEntry) -> EvidenceEntry:
        self._cases.setdefault(case_id, []).append(entry)
        return entry

    def list_evidence(self, case_id: int) -> List[EvidenceEntry]:
        entries = self._cases.get(case_id, [])
        return sorted(entries, key=lambda e: (e.created_at, e.id))


class SqliteEvidenceSource(EvidenceSource):
    """Evidence persisted in an `incident_logs` table, metadata as JSON."""

    def __init__(self, db_path: Union[str, Path]):
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with self._get_conn() as conn:
            conn.executescript('''
                CREATE TABLE IF NOT EXISTS incident_logs (
                    id INTEGER PRIMARY KEY,
                    incident_id INTEGER NOT NULL,
                    type TEXT NOT NULL,
                    title TEXT,
                    content TEXT NOT NULL,
                    file_url TEXT,
                    metadata TEXT,
                    is_ai INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS incident_logs_incident_id_idx
                    ON incident_logs(incident_id);
                CREATE INDEX IF NOT EXISTS incident_logs_created_at_idx
                    ON incident_logs(created_at);
            ''')

    @contextmanager
    def _get_conn(self):
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def add_entry(self, case_id: int, entry: EvidenceEntry) -> EvidenceEntry:
        with self._get_conn() as conn:
            conn.execute('''
                INSERT OR REPLACE INTO incident_logs
                (id, incident_id, type, title, content, file_url, metadata, is_ai, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                entry.id,
                case_id,
                entry.type,
                entry.title,
                entry.content,
                entry.file_url,
                json.dumps(dict(entry.metadata), sort_keys=True) if entry.metadata else None,
                int(entry.is_ai),
                iso_millis(entry.created_at),
            ))
        return entry

    def list_evidence(self, case_id: int) -> List[EvidenceEntry]:
        # iso_millis strings sort chronologically, so text order is time order
        with self._get_conn() as conn:
            rows = conn.execute('''
                SELECT * FROM incident_logs
                WHERE incident_id = ?
                ORDER BY created_at ASC, id ASC
            ''', (case_id,)).fetchall()
        return [self._row_to_entry(row) for row in rows]

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> EvidenceEntry:
        metadata = None
        if row['metadata']:
            try:
                metadata = json.loads(row['metadata'])
            except ValueError:
                metadata = None
        return EvidenceEntry.from_dict({
            'id': row['id'],
            'created_at': row['created_at'],
            'type': row['type'],
            'title': row['title'],
            'content': row['content'],
            'file_url': row['file_url'],
            'metadata': metadata,
            'is_ai': bool(row['is_ai']),
        })
