"""
Bulk import/export of region mappings.

Import accepts either an array of {period, countries, timeframe?, description?}
or an object keyed by period. Everything is parsed and validated before the
first write, so a rejected payload leaves the store untouched.
"""

import io
import csv
import json
import logging
from typing import Dict, List

from region_models import RegionMappingEntry, RegionImportError, parse_codes, normalize_codes

logger = logging.getLogger(__name__)

CSV_HEADER = ("period", "countries", "timeframe", "description")


def _parse_item(period, item) -> RegionMappingEntry:
    # Anything other than a list or code string imports as no countries
    countries = item.get("countries")
    if isinstance(countries, str):
        countries = parse_codes(countries)
    else:
        countries = normalize_codes(countries if isinstance(countries, list) else [])

    return RegionMappingEntry(
        countries=countries,
        timeframe=item.get("timeframe") if isinstance(item.get("timeframe"), str) else "",
        description=item.get("description") if isinstance(item.get("description"), str) else "",
        source="custom",
    )


def parse_import_json(text: str) -> Dict[str, RegionMappingEntry]:
    """
    Parse an import payload into period -> entry.
    Raises RegionImportError on invalid JSON, wrong shape, or no usable entries.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise RegionImportError(f"Invalid JSON: {e}")

    entries: Dict[str, RegionMappingEntry] = {}
    if isinstance(data, list):
        for item in data:
            if not isinstance(item, dict):
                continue
            period = item.get("period")
            if not isinstance(period, str) or not period.strip():
                continue
            entries[period.strip()] = _parse_item(period, item)
    elif isinstance(data, dict):
        for period, item in data.items():
            if not period.strip() or not isinstance(item, dict):
                continue
            entries[period.strip()] = _parse_item(period, item)
    else:
        raise RegionImportError("Import must be a JSON array or object")

    if not entries:
        raise RegionImportError("No valid entries found")
    return entries


def import_entries(store, text: str) -> List[str]:
    """Parse the whole payload, then write every entry. Returns imported periods."""
    entries = parse_import_json(text)
    for period, entry in entries.items():
        store.set(period, entry)
    logger.info(f"Imported {len(entries)} region mappings")
    return list(entries.keys())


def export_json(entries: Dict[str, RegionMappingEntry]) -> str:
    rows = [
        {
            "period": period,
            "countries": list(entry.countries),
            "timeframe": entry.timeframe,
            "description": entry.description,
        }
        for period, entry in entries.items()
    ]
    return json.dumps(rows, indent=2, ensure_ascii=False)


def export_csv(entries: Dict[str, RegionMappingEntry]) -> str:
    """Unquoted header, every data field quoted, codes space-joined"""
    buf = io.StringIO()
    buf.write(",".join(CSV_HEADER) + "\n")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for period, entry in entries.items():
        writer.writerow([period, " ".join(entry.countries), entry.timeframe, entry.description])
    return buf.getvalue().rstrip("\n")
