"""
Static region tables for Immersion Timeline.

Maps historical periods / empires to the ISO 3166-1 alpha-2 codes of the
modern countries that made up (or were significantly influenced by) that era.
Read-only at runtime - user changes go to the custom override store.
"""

import difflib
from typing import Dict, List, Optional, Iterable

from config import SUGGESTION_CUTOFF, SUGGESTION_LIMIT


REGION_MAPPINGS: Dict[str, List[str]] = {
    "Roman Empire":    ["IT", "FR", "ES", "GR", "TR", "EG", "GB"],
    "Viking Age":      ["NO", "SE", "DK", "IS", "GB", "IE"],
    "British Empire":  ["GB", "IN", "CA", "AU", "ZA", "NZ"],
    "Medieval Europe": ["FR", "DE", "IT", "ES", "GB"],
    "Ancient Greece":  ["GR", "TR", "IT"],
}

# Display timeframes for the static entries
REGION_TIMEFRAMES: Dict[str, str] = {
    "Roman Empire":    "27 BC-476 AD",
    "Viking Age":      "793-1066 AD",
    "British Empire":  "1583-1997",
    "Medieval Europe": "500-1500 AD",
    "Ancient Greece":  "800 BC-146 BC",
}

# ISO alpha-2 -> country name, for every code the map can render.
# Codes outside this set are still accepted, just flagged in the admin UI.
ISO_A2_TO_NAME: Dict[str, str] = {
    "AU": "Australia", "CA": "Canada", "DE": "Germany", "DK": "Denmark", "EG": "Egypt",
    "ES": "Spain", "FR": "France", "GB": "United Kingdom", "GR": "Greece", "IE": "Ireland",
    "IN": "India", "IS": "Iceland", "IT": "Italy", "NO": "Norway", "NZ": "New Zealand",
    "SE": "Sweden", "TR": "Turkey", "ZA": "South Africa", "RS": "Serbia", "BG": "Bulgaria",
    "HU": "Hungary", "RO": "Romania", "SA": "Saudi Arabia", "IQ": "Iraq", "SY": "Syria",
    "LY": "Libya", "TN": "Tunisia", "DZ": "Algeria", "JO": "Jordan", "MN": "Mongolia",
    "CN": "China", "RU": "Russia", "KZ": "Kazakhstan", "KG": "Kyrgyzstan", "UZ": "Uzbekistan",
    "TM": "Turkmenistan", "AF": "Afghanistan", "IR": "Iran", "UA": "Ukraine", "PL": "Poland",
    "CZ": "Czech Republic", "AT": "Austria", "CH": "Switzerland", "NL": "Netherlands",
    "BE": "Belgium", "PT": "Portugal", "LB": "Lebanon", "IL": "Israel", "MA": "Morocco",
    "NG": "Nigeria", "ET": "Ethiopia", "KE": "Kenya", "US": "United States of America",
    "MX": "Mexico", "BR": "Brazil", "AR": "Argentina", "PE": "Peru", "CO": "Colombia",
    "JP": "Japan", "KR": "South Korea", "VN": "Vietnam", "TH": "Thailand", "ID": "Indonesia",
    "PK": "Pakistan", "MM": "Myanmar", "PH": "Philippines", "MY": "Malaysia",
}


def find_static_key(period: str, table: Dict[str, List[str]] = None) -> Optional[str]:
    """
    Find the table key for a period.

    Exact match first, then a case-insensitive scan. Returns None if absent.
    """
    table = REGION_MAPPINGS if table is None else table
    if not period:
        return None
    if period in table:
        return period
    lower = period.lower()
    for key in table:
        if key.lower() == lower:
            return key
    return None


def get_countries_for_period(period: str, table: Dict[str, List[str]] = None) -> List[str]:
    """
    Returns country codes for a period from the static table.

    Resolution order:
     1. Exact key match
     2. Case-insensitive key match
     3. A bare 2-character string is treated as a code already
     4. Empty list - caller should try the next resolution step
    """
    table = REGION_MAPPINGS if table is None else table
    if not period:
        return []

    key = find_static_key(period, table)
    if key:
        return list(table[key])

    if len(period.strip()) == 2 and period.strip().isalpha():
        return [period.strip().upper()]

    return []


def get_known_period_names() -> List[str]:
    """All built-in period names (static + temporal), for autocomplete"""
    from temporal_regions import TEMPORAL_MODIFIERS
    names = list(TEMPORAL_MODIFIERS.keys())
    for name in REGION_MAPPINGS:
        if name not in names:
            names.append(name)
    return names


def suggest_periods(period: str, known: Iterable[str] = None,
                    limit: int = SUGGESTION_LIMIT, cutoff: float = SUGGESTION_CUTOFF) -> List[str]:
    """
    "Did you mean" - close matches for a period among known names.

    Comparison is case-insensitive; returned names keep their original casing.
    An exact (case-insensitive) match is not a suggestion.
    """
    if not period or not period.strip():
        return []
    known = list(known) if known is not None else get_known_period_names()
    by_lower = {}
    for name in known:
        by_lower.setdefault(name.lower(), name)

    query = period.strip().lower()
    matches = difflib.get_close_matches(query, list(by_lower.keys()), n=limit + 1, cutoff=cutoff)
    return [by_lower[m] for m in matches if m != query][:limit]


def is_known_code(code: str) -> bool:
    return code.upper() in ISO_A2_TO_NAME
