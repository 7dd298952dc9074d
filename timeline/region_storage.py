"""
Immersion Timeline - Region Storage Module

Key-value stores for custom overrides and the AI resolution cache.
Every backend implements the same RegionStore interface so the inference
engine never touches ambient global state and tests can inject memory stores.

Backends:
- MemoryRegionStore:    process-local dict
- JSONRegionStore:      one bulk JSON object on disk
- KeyedFileRegionStore: one JSON file per period
- DatabaseRegionStore:  Postgres table (region_overrides / region_cache)
"""

import os
import json
import time
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Callable
from urllib.parse import quote, unquote

from config import CACHE_TTL_SECONDS, REGION_DATA_DIR, get_store_backend
from region_models import RegionMappingEntry

logger = logging.getLogger(__name__)


class RegionStore(ABC):
    """Abstract interface for period -> RegionMappingEntry storage"""

    @abstractmethod
    def get(self, period: str) -> Optional[RegionMappingEntry]:
        """Get the entry stored under the exact period key"""
        pass

    @abstractmethod
    def set(self, period: str, entry: RegionMappingEntry):
        """Store or overwrite an entry"""
        pass

    @abstractmethod
    def delete(self, period: str):
        """Remove one entry (no-op if absent)"""
        pass

    @abstractmethod
    def clear(self):
        """Remove all entries"""
        pass

    @abstractmethod
    def list(self) -> Dict[str, RegionMappingEntry]:
        """All entries keyed by period"""
        pass

    def find_key(self, period: str) -> Optional[str]:
        """Exact key if present, else a case-insensitive match, else None"""
        if not period:
            return None
        if self.get(period) is not None:
            return period
        lower = period.lower()
        for key in self.list():
            if key.lower() == lower:
                return key
        return None

    def __len__(self):
        return len(self.list())


def _stamp(entry: RegionMappingEntry) -> RegionMappingEntry:
    """Copy of entry with updated_at filled in"""
    copy = RegionMappingEntry.from_dict(entry.to_dict())
    if copy.updated_at is None:
        copy.updated_at = time.time()
    return copy


class MemoryRegionStore(RegionStore):
    """In-memory store. Entries are copied in and out."""

    def __init__(self, initial: Dict[str, RegionMappingEntry] = None):
        self._entries: Dict[str, dict] = {}
        for period, entry in (initial or {}).items():
            self.set(period, entry)

    def get(self, period: str) -> Optional[RegionMappingEntry]:
        data = self._entries.get(period)
        return RegionMappingEntry.from_dict(data) if data is not None else None

    def set(self, period: str, entry: RegionMappingEntry):
        self._entries[period] = _stamp(entry).to_dict()

    def delete(self, period: str):
        self._entries.pop(period, None)

    def clear(self):
        self._entries.clear()

    def list(self) -> Dict[str, RegionMappingEntry]:
        return {p: RegionMappingEntry.from_dict(d) for p, d in self._entries.items()}


class JSONRegionStore(RegionStore):
    """
    Bulk JSON object on disk: {"<period>": {countries, timeframe, ...}, ...}

    The file is re-read on every access so writes from other processes are
    observed. A corrupt file reads as empty (cache miss) and is logged.
    """

    def __init__(self, filepath: str):
        self.filepath = filepath
        directory = os.path.dirname(os.path.abspath(filepath))
        os.makedirs(directory, exist_ok=True)

    def _load(self) -> Dict[str, dict]:
        if not os.path.exists(self.filepath):
            return {}
        try:
            with open(self.filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (ValueError, OSError) as e:
            logger.warning(f"Region store {self.filepath} unreadable, treating as empty: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Region store {self.filepath} is not a JSON object, treating as empty")
            return {}
        return data

    def _save(self, data: Dict[str, dict]):
        tmp_path = f"{self.filepath}.tmp"
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.filepath)

    def _parse(self, period: str, raw) -> Optional[RegionMappingEntry]:
        try:
            return RegionMappingEntry.from_dict(raw)
        except ValueError:
            logger.warning(f"Ignoring corrupt region entry '{period}' in {self.filepath}")
            return None

    def get(self, period: str) -> Optional[RegionMappingEntry]:
        raw = self._load().get(period)
        if raw is None:
            return None
        return self._parse(period, raw)

    def set(self, period: str, entry: RegionMappingEntry):
        data = self._load()
        data[period] = _stamp(entry).to_dict()
        self._save(data)

    def delete(self, period: str):
        data = self._load()
        if period in data:
            del data[period]
            self._save(data)

    def clear(self):
        self._save({})

    def list(self) -> Dict[str, RegionMappingEntry]:
        entries = {}
        for period, raw in self._load().items():
            entry = self._parse(period, raw)
            if entry is not None:
                entries[period] = entry
        return entries


class KeyedFileRegionStore(RegionStore):
    """One JSON file per period inside a directory. Corrupt files are skipped."""

    SUFFIX = ".json"

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, period: str) -> str:
        return os.path.join(self.directory, quote(period, safe='') + self.SUFFIX)

    def _read(self, path: str) -> Optional[RegionMappingEntry]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return RegionMappingEntry.from_dict(json.load(f))
        except FileNotFoundError:
            return None
        except (ValueError, OSError) as e:
            logger.warning(f"Ignoring corrupt region entry file {path}: {e}")
            return None

    def get(self, period: str) -> Optional[RegionMappingEntry]:
        return self._read(self._path(period))

    def set(self, period: str, entry: RegionMappingEntry):
        with open(self._path(period), 'w', encoding='utf-8') as f:
            json.dump(_stamp(entry).to_dict(), f, indent=2, ensure_ascii=False)

    def delete(self, period: str):
        try:
            os.remove(self._path(period))
        except FileNotFoundError:
            pass

    def clear(self):
        for name in os.listdir(self.directory):
            if name.endswith(self.SUFFIX):
                os.remove(os.path.join(self.directory, name))

    def list(self) -> Dict[str, RegionMappingEntry]:
        entries = {}
        for name in sorted(os.listdir(self.directory)):
            if not name.endswith(self.SUFFIX):
                continue
            entry = self._read(os.path.join(self.directory, name))
            if entry is not None:
                entries[unquote(name[:-len(self.SUFFIX)])] = entry
        return entries


class DatabaseRegionStore(RegionStore):
    """Postgres-backed store bound to region_overrides or region_cache"""

    def __init__(self, table: str):
        from db import REGION_TABLES
        if table not in REGION_TABLES:
            raise ValueError(f"Unsupported region table: {table}")
        self.table = table

    @staticmethod
    def _row_to_entry(row) -> RegionMappingEntry:
        return RegionMappingEntry.from_dict(dict(row))

    def get(self, period: str) -> Optional[RegionMappingEntry]:
        from psycopg2.extras import RealDictCursor
        from db import get_db
        with get_db() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(f"SELECT * FROM {self.table} WHERE period = %s LIMIT 1", (period,))
                row = cur.fetchone()
                return self._row_to_entry(row) if row else None

    def set(self, period: str, entry: RegionMappingEntry):
        from psycopg2.extras import Json
        from db import get_db
        entry = _stamp(entry)
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(f"""
                    INSERT INTO {self.table}
                    (period, countries, timeframe, description, source, confidence, type, updated_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (period) DO UPDATE SET
                        countries = EXCLUDED.countries,
                        timeframe = EXCLUDED.timeframe,
                        description = EXCLUDED.description,
                        source = EXCLUDED.source,
                        confidence = EXCLUDED.confidence,
                        type = EXCLUDED.type,
                        updated_at = EXCLUDED.updated_at
                """, (
                    period, Json(entry.countries), entry.timeframe, entry.description,
                    entry.source, entry.confidence, entry.type, entry.updated_at
                ))

    def delete(self, period: str):
        from db import get_db
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(f"DELETE FROM {self.table} WHERE period = %s", (period,))

    def clear(self):
        from db import get_db
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(f"DELETE FROM {self.table}")

    def list(self) -> Dict[str, RegionMappingEntry]:
        from psycopg2.extras import RealDictCursor
        from db import get_db
        with get_db() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(f"SELECT * FROM {self.table} ORDER BY period")
                return {row['period']: self._row_to_entry(row) for row in cur.fetchall()}

    def find_key(self, period: str) -> Optional[str]:
        from db import get_db
        if not period:
            return None
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT period FROM {self.table} WHERE period = %s OR LOWER(period) = LOWER(%s) "
                    f"ORDER BY (period = %s) DESC LIMIT 1",
                    (period, period, period)
                )
                row = cur.fetchone()
                return row[0] if row else None


class ResolutionCache(RegionStore):
    """
    AI resolution cache on top of any RegionStore.

    AI-sourced entries older than ttl_seconds are evicted on read.
    Cached results are provisional - the engine never reports them as
    more certain than the entry itself says.
    """

    def __init__(self, store: RegionStore, ttl_seconds: float = CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def _expired(self, entry: RegionMappingEntry) -> bool:
        if entry.source not in (None, "ai") or entry.updated_at is None:
            return False
        return self.clock() - entry.updated_at > self.ttl_seconds

    def get(self, period: str) -> Optional[RegionMappingEntry]:
        entry = self.store.get(period)
        if entry is None:
            return None
        if self._expired(entry):
            logger.info(f"Cache entry for '{period}' expired, evicting")
            self.store.delete(period)
            return None
        return entry

    def set(self, period: str, entry: RegionMappingEntry):
        entry = RegionMappingEntry.from_dict(entry.to_dict())
        entry.updated_at = self.clock()
        if not entry.source:
            entry.source = "ai"
        self.store.set(period, entry)

    def delete(self, period: str):
        self.store.delete(period)

    def clear(self):
        self.store.clear()

    def list(self) -> Dict[str, RegionMappingEntry]:
        return {p: e for p, e in self.store.list().items() if not self._expired(e)}

    def stats(self) -> Dict:
        """Entry count, approximate size (KB), oldest and newest write times"""
        entries = self.list()
        total_bytes = sum(len(json.dumps(e.to_dict())) for e in entries.values())
        timestamps = [e.updated_at for e in entries.values() if e.updated_at is not None]
        return {
            "entries": len(entries),
            "size_kb": round(total_bytes / 1024, 1),
            "oldest": min(timestamps) if timestamps else None,
            "newest": max(timestamps) if timestamps else None,
        }


def create_store(name: str, backend: str = None) -> RegionStore:
    """
    Build a store for "overrides" or "cache" using the configured backend.
    """
    backend = backend or get_store_backend()
    if backend == "memory":
        return MemoryRegionStore()
    if backend == "database":
        return DatabaseRegionStore("region_overrides" if name == "overrides" else "region_cache")
    if backend == "files":
        return KeyedFileRegionStore(os.path.join(REGION_DATA_DIR, f"region_{name}"))
    return JSONRegionStore(os.path.join(REGION_DATA_DIR, f"region_{name}.json"))
