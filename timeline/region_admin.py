"""
Immersion Timeline - Region Admin Service

Business logic behind the region admin endpoints: listing every known
mapping, editing custom overrides, managing the AI cache, conflict checks,
suggestions, stats and bulk import/export. Routes stay thin and call in here.
"""

import logging
from typing import Optional, List, Dict, Any, Union

from region_models import RegionMappingEntry, RegionInputError, codes_from_input, text_from_input
from region_tables import ISO_A2_TO_NAME, suggest_periods
from region_transfer import import_entries, export_json, export_csv

logger = logging.getLogger(__name__)

ROW_SOURCES = ("static", "custom", "ai-cache")
EXPORT_FORMATS = ("json", "csv")


class RegionAdmin:
    """Admin operations over an InferenceEngine's tables and stores"""

    def __init__(self, engine):
        self.engine = engine

    @property
    def overrides(self):
        return self.engine.overrides

    @property
    def cache(self):
        return self.engine.cache

    # ==================== Listing ====================

    @staticmethod
    def _row(period: str, entry: RegionMappingEntry, source: str) -> Dict[str, Any]:
        row = {
            "period": period,
            "countries": list(entry.countries),
            "timeframe": entry.timeframe,
            "description": entry.description,
            "source": source,
            "unknownCodes": entry.unknown_codes(ISO_A2_TO_NAME),
        }
        if entry.confidence:
            row["confidence"] = entry.confidence
        if entry.updated_at is not None:
            row["updatedAt"] = entry.updated_at
        return row

    def list_rows(self, source: str = None, query: str = None) -> List[Dict[str, Any]]:
        """
        Every mapping the engine knows, tagged static / custom / ai-cache.
        Optional source filter and case-insensitive period substring filter.
        """
        if source and source not in ROW_SOURCES:
            raise RegionInputError(f"Unknown source filter: {source}")

        rows = []
        if source in (None, "static"):
            for period, countries in self.engine.static_table.items():
                entry = RegionMappingEntry(countries=countries,
                                           timeframe=self.engine.timeframes.get(period, ""))
                rows.append(self._row(period, entry, "static"))
        if source in (None, "custom"):
            rows.extend(self._row(p, e, "custom") for p, e in self.overrides.list().items())
        if source in (None, "ai-cache"):
            rows.extend(self._row(p, e, "ai-cache") for p, e in self.cache.list().items())

        if query:
            needle = query.strip().lower()
            rows = [r for r in rows if needle in r["period"].lower()]
        return sorted(rows, key=lambda r: (r["period"].lower(), ROW_SOURCES.index(r["source"])))

    # ==================== Custom overrides ====================

    def get_custom(self, period: str) -> Optional[RegionMappingEntry]:
        return self.overrides.get(period)

    def save_custom(self, period: str, countries: Union[str, List[str]],
                    timeframe: str = "", description: str = "") -> Dict[str, Any]:
        """
        Create or replace a custom override.
        Unknown-but-well-formed codes are kept and reported, not rejected.
        """
        period = text_from_input(period, "period")
        if not period:
            raise RegionInputError("Period name is required")
        codes = codes_from_input(countries)

        entry = RegionMappingEntry(
            countries=codes,
            timeframe=text_from_input(timeframe, "timeframe"),
            description=text_from_input(description, "description"),
            source="custom",
        )
        self.overrides.set(period, entry)
        logger.info(f"Saved custom region mapping '{period}': {codes}")

        row = self._row(period, self.overrides.get(period) or entry, "custom")
        row["conflicts"] = [c for c in self.find_conflicts(period) if c["source"] != "custom"]
        return row

    def delete_custom(self, period: str):
        self.overrides.delete(period)
        logger.info(f"Deleted custom region mapping '{period}'")

    def clear_custom(self) -> int:
        count = len(self.overrides)
        self.overrides.clear()
        logger.info(f"Cleared {count} custom region mappings")
        return count

    # ==================== AI cache ====================

    def list_cache(self) -> List[Dict[str, Any]]:
        return self.list_rows(source="ai-cache")

    def delete_cache(self, period: str):
        self.engine.evict(period)

    def clear_cache(self) -> int:
        count = len(self.cache)
        self.cache.clear()
        logger.info(f"Cleared {count} cached AI resolutions")
        return count

    # ==================== Checks ====================

    def find_conflicts(self, period: str) -> List[Dict[str, str]]:
        """Existing mappings whose key matches period case-insensitively"""
        lower = (period or "").strip().lower()
        if not lower:
            return []

        found = []
        for name in self.engine.static_table:
            if name.lower() == lower:
                found.append({"source": "static", "period": name})
        for name in self.overrides.list():
            if name.lower() == lower:
                found.append({"source": "custom", "period": name})
        for name in self.cache.list():
            if name.lower() == lower:
                found.append({"source": "ai-cache", "period": name})
        return found

    def suggest(self, period: str) -> List[str]:
        known = (list(self.engine.static_table) + list(self.engine.temporal_table)
                 + list(self.overrides.list()))
        return suggest_periods(period, known)

    def stats(self) -> Dict[str, Any]:
        cache_stats = self.cache.stats() if hasattr(self.cache, "stats") else {"entries": len(self.cache)}
        return {
            "static": len(self.engine.static_table),
            "temporal": len(self.engine.temporal_table),
            "custom": len(self.overrides),
            "cache": cache_stats,
            "inFlight": self.engine.in_flight(),
        }

    # ==================== Import / export ====================

    def import_json(self, text: str) -> List[str]:
        """Import custom overrides. Raises RegionImportError before any write."""
        return import_entries(self.overrides, text)

    def export(self, fmt: str = "json") -> str:
        if fmt not in EXPORT_FORMATS:
            raise RegionInputError(f"Unsupported export format: {fmt}")
        entries = self.overrides.list()
        return export_csv(entries) if fmt == "csv" else export_json(entries)
