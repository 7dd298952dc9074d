"""
Immersion Timeline - Location Hint Extraction

Pulls country codes out of free text (era names, media titles, descriptions)
using city names, battle/event patterns and civilization names.
Patterns are plain regexes checked in order; every match contributes.
"""

import re
from typing import List, Tuple


# Known city -> ISO alpha-2 code
CITY_TO_COUNTRY = {
    "rome": "IT", "florence": "IT", "venice": "IT", "naples": "IT", "milan": "IT",
    "paris": "FR", "versailles": "FR", "lyon": "FR",
    "london": "GB", "edinburgh": "GB", "oxford": "GB",
    "berlin": "DE", "munich": "DE", "hamburg": "DE", "vienna": "AT",
    "moscow": "RU", "leningrad": "RU", "stalingrad": "RU", "saint petersburg": "RU",
    "st. petersburg": "RU", "st petersburg": "RU",
    "beijing": "CN", "peking": "CN", "shanghai": "CN", "xian": "CN", "nanjing": "CN",
    "tokyo": "JP", "kyoto": "JP", "osaka": "JP",
    "cairo": "EG", "alexandria": "EG",
    "athens": "GR", "sparta": "GR", "corinth": "GR",
    "carthage": "TN", "istanbul": "TR", "constantinople": "TR", "byzantium": "TR",
    "new york": "US", "washington": "US", "boston": "US", "philadelphia": "US",
    "baghdad": "IQ", "babylon": "IQ", "nineveh": "IQ",
    "jerusalem": "IL", "bethlehem": "IL",
    "damascus": "SY", "aleppo": "SY",
    "delhi": "IN", "agra": "IN", "bombay": "IN", "mumbai": "IN", "calcutta": "IN",
    "amsterdam": "NL", "antwerp": "BE", "brussels": "BE",
    "madrid": "ES", "seville": "ES", "barcelona": "ES", "toledo": "ES",
    "lisbon": "PT", "samarkand": "UZ", "bukhara": "UZ",
    "timbuktu": "ML",
}

# Battle / event name -> involved countries
EVENT_PATTERNS: List[Tuple[str, List[str]]] = [
    (r'\bstalingrad\b', ["RU", "DE"]),
    (r'\bconstantinople\b', ["TR", "GR"]),
    (r'\bpearl harbor\b', ["US", "JP"]),
    (r'\bwaterloo\b', ["BE", "FR", "GB", "NL"]),
    (r'\bgettysburg\b', ["US"]),
    (r'\btrafalgar\b', ["GB", "FR", "ES"]),
    (r'\bd-day\b|normandy landing', ["FR", "DE", "GB", "US", "CA"]),
    (r'\bhiroshima\b|\bnagasaki\b', ["JP", "US"]),
    (r'\bthermopylae\b', ["GR", "IR"]),
    (r'\bhastings\b', ["GB", "FR"]),
    (r'\bamerican revolution', ["US", "GB"]),
    (r'\bfrench revolution', ["FR"]),
    (r'\brussian? revolution', ["RU"]),
    (r'\bcivil war\b', ["US"]),
    (r'\bcrimean\b', ["UA", "RU", "TR", "GB", "FR"]),
    (r'\bspanish armada\b', ["ES", "GB"]),
    (r'\bnapoleon.{0,20}russia', ["FR", "RU"]),
    (r'\bsamurai\b', ["JP"]),
    (r'\bpharaoh|\bsphinx|\bpyramid', ["EG"]),
    (r'\bviking.{0,20}raid', ["NO", "SE", "DK", "GB"]),
    (r'\bcrusad', ["IL", "LB", "SY", "FR", "DE", "GB"]),
    (r'\bblack plague\b|\bblack death\b', ["FR", "DE", "IT", "GB", "ES"]),
    (r'\bopium war\b', ["CN", "GB"]),
    (r'\bboxer rebellion\b', ["CN", "GB", "US", "DE", "FR"]),
]

# Country / civilization names -> ISO codes
CIVILIZATION_PATTERNS: List[Tuple[str, List[str]]] = [
    (r'\brome\b|\broman\b', ["IT"]),
    (r'\bgreek\b|\bgreece\b|\bhellen', ["GR"]),
    (r'\begypt(ian)?\b', ["EG"]),
    (r'\bpersia(n)?\b', ["IR"]),
    (r'\bchina\b|\bchinese\b', ["CN"]),
    (r'\bjapan(ese)?\b', ["JP"]),
    (r'\bmesopotamia(n)?\b', ["IQ", "SY"]),
    (r'\bbabylon(ian)?\b', ["IQ"]),
    (r'\baztec\b', ["MX"]),
    (r'\binca\b', ["PE"]),
    (r'\bmaya(n)?\b', ["MX", "GT", "BZ"]),
    (r'\bindian?\b|\bindus\b', ["IN"]),
    (r'\bscandinavia(n)?\b', ["NO", "SE", "DK"]),
    (r'\bviking(s)?\b', ["NO", "SE", "DK"]),
    (r'\bbyzantin(e|um)\b', ["TR", "GR"]),
    (r'\bottoman\b', ["TR"]),
    (r'\bmongol(s|ian)?\b', ["MN", "CN"]),
    (r'\bkievan rus\b', ["UA", "RU"]),
    (r'\bamerica(n)?\b|\busa\b', ["US"]),
    (r'\bbengal\b|\bkolkata\b', ["IN", "BD"]),
    (r'\bkhmer\b', ["KH"]),
    (r'\bmughal\b', ["IN", "PK", "AF"]),
    (r'\b(song|tang|ming|qing) dynasty\b', ["CN"]),
]


def _add_all(found: List[str], codes: List[str]):
    for code in codes:
        if code not in found:
            found.append(code)


def extract_countries_from_text(text: str) -> List[str]:
    """
    Extract country codes from text via city names, event patterns and
    civilization names. Returns unique codes in first-seen order.
    """
    if not text:
        return []

    found: List[str] = []
    lower = text.lower()

    for city, code in CITY_TO_COUNTRY.items():
        if re.search(r'\b' + re.escape(city) + r'\b', lower):
            _add_all(found, [code])

    for pattern, codes in EVENT_PATTERNS:
        if re.search(pattern, lower):
            _add_all(found, codes)

    for pattern, codes in CIVILIZATION_PATTERNS:
        if re.search(pattern, lower):
            _add_all(found, codes)

    return found


def extract_era_keywords(era: str) -> List[str]:
    """Keyword-only pass over an era name: events and civilizations, no city names."""
    if not era:
        return []

    found: List[str] = []
    lower = era.lower()
    for pattern, codes in EVENT_PATTERNS + CIVILIZATION_PATTERNS:
        if re.search(pattern, lower):
            _add_all(found, codes)
    return found
