"""Durable save slots and autosave for chess sessions."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional
import json
import logging
import math
import os
import re
import tempfile
import threading

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Json

from .errors import CorruptSnapshot, NotFound, StorageError, ValidationError
from .models import Snapshot
from .models.snapshot import now_ms

logger = logging.getLogger(__name__)

SLOT_COUNT = 3
AUTOSAVE_KEY = 'autosave'


class MemoryBackend:
    """In-process key/value backend, mostly for tests."""

    def __init__(self):
        self._data: Dict[str, Dict[str, str]] = {}
        self._lock = threading.Lock()

    def get(self, namespace: str, key: str) -> Any:
        with self._lock:
            raw = self._data.get(namespace, {}).get(key)
        return None if raw is None else json.loads(raw)

    def set(self, namespace: str, key: str, value: Any) -> None:
        encoded = json.dumps(value)
        with self._lock:
            self._data.setdefault(namespace, {})[key] = encoded

    def delete(self, namespace: str, key: str) -> None:
        with self._lock:
            self._data.get(namespace, {}).pop(key, None)


class FileBackend:
    """One JSON document per namespace, replaced atomically on every write."""

    def __init__(self, directory):
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def _path(self, namespace: str) -> Path:
        safe = re.sub(r'[^A-Za-z0-9_.-]', '_', namespace) or 'default'
        return self.directory / f'{safe}.json'

    def _read_document(self, namespace: str) -> Dict[str, Any]:
        path = self._path(namespace)
        try:
            text = path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StorageError(f'Cannot read {path}: {exc}') from exc
        try:
            document = json.loads(text)
        except ValueError:
            logger.warning('Discarding unreadable storage file %s', path)
            return {}
        if not isinstance(document, dict):
            logger.warning('Discarding malformed storage file %s', path)
            return {}
        return document

    def _write_document(self, namespace: str, document: Dict[str, Any]) -> None:
        path = self._path(namespace)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=str(self.directory), suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as handle:
                json.dump(document, handle)
            os.replace(tmp_name, path)
        except OSError as exc:
            raise StorageError(f'Cannot write {path}: {exc}') from exc

    def get(self, namespace: str, key: str) -> Any:
        with self._lock:
            return self._read_document(namespace).get(key)

    def set(self, namespace: str, key: str, value: Any) -> None:
        with self._lock:
            document = self._read_document(namespace)
            document[key] = value
            self._write_document(namespace, document)

    def delete(self, namespace: str, key: str) -> None:
        with self._lock:
            document = self._read_document(namespace)
            if key in document:
                del document[key]
                self._write_document(namespace, document)


@dataclass(frozen=True)
class DbConfig:
    dsn: str
    table: str = 'chess_session_kv'


def get_db_config() -> Optional[DbConfig]:
    """Load database configuration from environment."""
    dsn = os.environ.get('CHESS_DATABASE_URL') or os.environ.get('DATABASE_URL')
    if not dsn:
        return None
    return DbConfig(dsn=dsn, table=os.environ.get('CHESS_DATABASE_TABLE', 'chess_session_kv'))


class PostgresBackend:
    """Key/value rows in Postgres, one row per namespace and key."""

    def __init__(self, config: Optional[DbConfig] = None):
        config = config or get_db_config()
        if not config:
            raise StorageError('Database configuration missing')
        self.config = config

    def _connect(self) -> psycopg.Connection:
        return psycopg.connect(self.config.dsn, row_factory=dict_row)

    def _execute(self, query, params, fetch: bool = False):
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    return cur.fetchone() if fetch else None
        except psycopg.Error as exc:  # pragma: no cover - database connectivity
            raise StorageError(str(exc)) from exc

    def create_table(self) -> None:
        query = sql.SQL(
            """
            create table if not exists {table} (
                namespace text not null,
                key text not null,
                payload jsonb not null,
                updated_at timestamptz not null default now(),
                primary key (namespace, key)
            )
            """
        ).format(table=sql.Identifier(self.config.table))
        self._execute(query, None)

    def get(self, namespace: str, key: str) -> Any:
        query = sql.SQL(
            "select payload from {table} where namespace = %s and key = %s limit 1"
        ).format(table=sql.Identifier(self.config.table))
        row = self._execute(query, (namespace, key), fetch=True)
        return row.get('payload') if row else None

    def set(self, namespace: str, key: str, value: Any) -> None:
        query = sql.SQL(
            """
            insert into {table} (namespace, key, payload)
            values (%(namespace)s, %(key)s, %(payload)s)
            on conflict (namespace, key) do update
            set
                payload = excluded.payload,
                updated_at = now()
            """
        ).format(table=sql.Identifier(self.config.table))
        self._execute(query, {'namespace': namespace, 'key': key, 'payload': Json(value)})

    def delete(self, namespace: str, key: str) -> None:
        query = sql.SQL(
            "delete from {table} where namespace = %s and key = %s"
        ).format(table=sql.Identifier(self.config.table))
        self._execute(query, (namespace, key))


def slot_key(slot: Any) -> str:
    """Return the storage key for a manual save slot (1..SLOT_COUNT)."""
    if isinstance(slot, bool) or not isinstance(slot, int) or not 1 <= slot <= SLOT_COUNT:
        raise ValidationError(f'Save slot must be between 1 and {SLOT_COUNT}, got {slot!r}')
    return f'slot-{slot}'


class SnapshotStore:
    """Manual save slots plus one autosave slot for a single namespace.

    Saving overwrites unconditionally; asking the user for confirmation is the
    caller's job. Records that fail validation are logged, removed and
    reported as empty.
    """

    def __init__(self, backend, namespace: str = 'default',
                 clock: Callable[[], int] = now_ms):
        self.backend = backend
        self.namespace = namespace
        self._clock = clock
        self._last_saved_at = 0

    def _read(self, key: str) -> Optional[Snapshot]:
        raw = self.backend.get(self.namespace, key)
        if raw is None:
            return None
        try:
            return Snapshot.from_dict(raw)
        except CorruptSnapshot as exc:
            logger.warning('Discarding corrupt snapshot %s/%s: %s', self.namespace, key, exc)
            self.backend.delete(self.namespace, key)
            return None

    def _write(self, key: str, snapshot: Snapshot) -> Snapshot:
        saved_at = max(self._clock(), self._last_saved_at)
        existing = self.backend.get(self.namespace, key)
        if isinstance(existing, dict):
            previous = existing.get('saved_at')
            if (isinstance(previous, (int, float)) and not isinstance(previous, bool)
                    and math.isfinite(previous)):
                saved_at = max(saved_at, math.ceil(previous))
        self._last_saved_at = saved_at
        stamped = snapshot.stamped(saved_at)
        self.backend.set(self.namespace, key, stamped.to_dict())
        return stamped

    def save(self, slot: int, snapshot: Snapshot) -> Snapshot:
        """Write ``snapshot`` to ``slot`` and return the stamped copy."""
        key = slot_key(slot)
        stamped = self._write(key, snapshot)
        logger.info('Saved %d plies to %s/%s', len(snapshot.move_history), self.namespace, key)
        return stamped

    def load(self, slot: int) -> Snapshot:
        key = slot_key(slot)
        snapshot = self._read(key)
        if snapshot is None:
            raise NotFound(f'Slot {slot} is empty')
        return snapshot

    def peek(self, slot: int) -> Optional[Snapshot]:
        return self._read(slot_key(slot))

    def delete(self, slot: int) -> None:
        key = slot_key(slot)
        self.backend.delete(self.namespace, key)
        logger.info('Deleted %s/%s', self.namespace, key)

    def list_slots(self) -> Dict[int, Optional[Snapshot]]:
        return {slot: self.peek(slot) for slot in range(1, SLOT_COUNT + 1)}

    def autosave(self, snapshot: Snapshot) -> Snapshot:
        return self._write(AUTOSAVE_KEY, snapshot)

    def try_restore_autosave(self) -> Optional[Snapshot]:
        """Return the autosave, or ``None`` if missing, corrupt or empty."""
        snapshot = self._read(AUTOSAVE_KEY)
        if snapshot is None or snapshot.is_empty:
            return None
        return snapshot

    def clear_autosave(self) -> None:
        self.backend.delete(self.namespace, AUTOSAVE_KEY)
