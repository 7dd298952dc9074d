"""
Year-aware historical region mappings.

Each entry defines:
- default: countries at the period's peak / best-known extent
- periods: ordered temporal slices, first match wins

A slice matches one of three ways:
- before: the query's end year is strictly before this value
- after:  the query's start year is strictly after this value
- range:  [start, end] overlaps the query's [start_year, end_year]

A matching slice either replaces the country list ("countries") or edits
the default ("remove" then "add").

Year convention: negative = BC (e.g. -27 = 27 BC), positive = AD.
"""

from typing import Dict, List, Optional, Tuple, Any


DEFAULT_NOTE = "Default mapping (peak period)"


TEMPORAL_MODIFIERS: Dict[str, Dict[str, Any]] = {

    "Roman Empire": {
        "default": [
            "IT", "FR", "ES", "GR", "TR", "EG", "GB", "DE", "AT", "CH",
            "PT", "MA", "TN", "LY", "IL", "SY", "LB", "RO", "BG", "RS", "AL", "HR",
        ],
        "periods": [
            {"before": -509, "countries": ["IT"],
             "note": "Regal Rome - city-state on the Tiber"},
            {"range": (-509, -27), "remove": ["GB", "DE", "AT", "CH", "TN", "LY", "MA"],
             "note": "Roman Republic - Italy + Sicily + early provinces"},
            {"range": (-27, 117),
             "note": "Imperial peak (Augustus to Trajan) - maximum expansion"},
            {"range": (117, 285), "remove": ["GB", "DE"],
             "note": "Post-Trajan contraction"},
            {"range": (285, 395),
             "note": "Diocletian Tetrarchy - unified empire still intact"},
            {"range": (395, 476), "countries": ["IT", "ES", "FR", "GB", "PT", "AT"],
             "note": "Western Roman Empire only (395-476 AD)"},
            {"after": 476, "countries": ["TR", "GR", "EG", "SY", "LB", "IL", "BG", "RS", "RO", "IT"],
             "note": "Byzantine (Eastern Roman) continuation after 476"},
        ],
    },

    "Viking Age": {
        "default": ["NO", "SE", "DK", "IS", "GB", "IE", "FR", "RU"],
        "periods": [
            {"range": (793, 850), "countries": ["NO", "SE", "DK", "GB", "IE"],
             "note": "Early raids - Scandinavian homelands + coastal British Isles"},
            {"range": (851, 910),
             "note": "Expansion - Normandy raids, Kievan Rus beginnings, Iceland settled"},
            {"range": (911, 999), "add": ["UA", "BY", "IT", "ES", "MA"],
             "note": "Peak influence - Varangian routes, Normandy duchy"},
            {"range": (1000, 1066), "add": ["GL", "US"],
             "note": "Late Viking - Leif Erikson reaches Vinland"},
            {"after": 1066, "countries": ["NO", "SE", "DK", "IS", "GB", "FR"],
             "note": "Post-Conquest - Viking identity fading into Norman/Scandinavian kingdoms"},
        ],
    },

    "British Empire": {
        "default": [
            "GB", "IN", "CA", "AU", "ZA", "NZ", "NG", "KE", "EG", "PK", "BD",
            "MY", "SG", "GH", "ZW", "ZM", "UG", "TZ", "SD", "IR", "IQ", "JO", "IL", "PG", "FJ", "MT", "CY",
        ],
        "periods": [
            {"range": (1583, 1700), "countries": ["GB", "US", "CA", "IE", "IN", "JM"],
             "note": "Early colonial - Virginia, East India Company beginnings"},
            {"range": (1700, 1783), "remove": ["ZA", "AU", "NZ", "NG", "KE", "SD", "TZ"], "add": ["US"],
             "note": "First Empire - American colonies"},
            {"range": (1783, 1850), "remove": ["US"], "add": ["AU", "ZA", "NZ"],
             "note": "Second Empire - loss of America; expansion in Asia-Pacific"},
            {"range": (1850, 1920),
             "note": "Imperial zenith"},
            {"range": (1920, 1947),
             "note": "Peak territory - post-WWI League mandates included"},
            {"range": (1947, 1970),
             "remove": ["IN", "PK", "BD", "MY", "SG", "GH", "NG", "ZW", "UG", "TZ", "KE", "SD"],
             "note": "Decolonization - South Asian independence, African nations follow"},
            {"after": 1970, "countries": ["GB", "AU", "CA", "NZ", "FJ", "PG", "MT", "CY"],
             "note": "Commonwealth remnants"},
        ],
    },

    "Mongol Empire": {
        "default": [
            "MN", "CN", "RU", "KZ", "KG", "UZ", "TM", "AF", "IR", "UA",
            "PL", "HU", "IQ", "SY", "TR", "KR", "VN", "MM",
        ],
        "periods": [
            {"range": (1206, 1227), "countries": ["MN", "CN", "KZ", "KG", "UZ", "TM", "AF", "IR", "RU"],
             "note": "Genghis Khan conquests - Central Asia and Northern China"},
            {"range": (1227, 1259),
             "note": "Rapid expansion under successors - Poland, Hungary, Persia, Korea"},
            {"range": (1260, 1294), "remove": ["HU", "PL", "SY", "TR"],
             "note": "Four stable khanates under Kublai Khan"},
            {"range": (1294, 1368), "remove": ["HU", "PL", "SY", "TR", "KR", "VN", "MM"],
             "note": "Fragmentation - Yuan, Ilkhanate, Chagatai Khanate, Golden Horde"},
            {"after": 1368, "countries": ["MN", "KZ", "KG", "UZ", "TM", "RU"],
             "note": "Post-Yuan collapse - successor khanates only"},
        ],
    },

    "Ottoman Empire": {
        "default": [
            "TR", "GR", "BG", "RS", "RO", "HU", "EG", "IL", "LB", "SY",
            "IQ", "SA", "JO", "LY", "TN", "DZ", "AL", "MK", "BA", "ME",
        ],
        "periods": [
            {"range": (1299, 1453), "countries": ["TR", "GR", "BG", "RS", "MK", "AL"],
             "note": "Early Ottoman - Anatolia and the Balkans before Constantinople"},
            {"range": (1453, 1520), "add": ["RO", "EG", "SY", "IL", "LB"],
             "note": "Post-Constantinople - expansion into Levant and North Africa"},
            {"range": (1520, 1683),
             "note": "Ottoman zenith - Suleiman the Magnificent"},
            {"range": (1683, 1800), "remove": ["HU", "RO"],
             "note": "Beginning of decline - Hungary ceded after Vienna"},
            {"range": (1800, 1878), "remove": ["GR", "RS", "BG", "MK", "AL"],
             "note": "Nationalist independence movements - western Balkans lost"},
            {"after": 1878, "countries": ["TR", "EG", "SY", "IL", "LB", "IQ", "SA", "JO", "LY", "TN", "DZ"],
             "note": "Late Ottoman - Anatolia + Arab provinces"},
        ],
    },

    "World War I": {
        "default": [
            "FR", "DE", "GB", "IT", "RU", "AT", "TR", "HU", "RS", "BG",
            "RO", "BE", "US", "CA", "AU", "NZ", "IN", "GR", "PL",
        ],
        "periods": [
            {"range": (1914, 1915), "countries": ["FR", "DE", "GB", "RU", "AT", "TR", "HU", "RS", "BG", "BE"],
             "note": "Opening phase - Western Front, Eastern Front, Gallipoli"},
            {"range": (1915, 1917), "add": ["RO", "GR", "IT"],
             "note": "Middle phase - Italy and Romania join the Entente"},
            {"range": (1917, 1918), "add": ["US"], "remove": ["RU"],
             "note": "US entry (April 1917); Russia exits after Revolution"},
        ],
    },

    "World War II": {
        "default": [
            "DE", "FR", "GB", "IT", "RU", "US", "JP", "CN", "PL", "NL",
            "BE", "NO", "DK", "GR", "HU", "RO", "BG", "AU", "CA", "NZ", "IN", "PH", "MY", "ID",
        ],
        "periods": [
            {"range": (1939, 1941),
             "countries": ["DE", "FR", "GB", "IT", "RU", "PL", "NL", "BE", "NO", "DK", "GR", "HU", "RO", "BG"],
             "note": "European theater - before Operation Barbarossa and Pearl Harbor"},
            {"range": (1941, 1942), "add": ["US", "JP", "CN", "AU", "PH", "MY", "ID"],
             "note": "Global war - Pacific theater opens"},
            {"range": (1942, 1945),
             "note": "Full global conflict - all major theaters active"},
        ],
    },

    "Cold War": {
        "default": [
            "US", "RU", "DE", "GB", "FR", "PL", "CZ", "HU", "RO", "BG",
            "CN", "KR", "KP", "VN", "CU", "AF",
        ],
        "periods": [
            {"range": (1947, 1955), "countries": ["US", "RU", "GB", "FR", "DE", "KR", "KP", "CN"],
             "note": "Early Cold War - Berlin blockade, Korean War, NATO & Warsaw Pact"},
            {"range": (1955, 1962), "add": ["CU", "VN", "PL", "CZ", "HU", "RO", "BG"],
             "note": "Escalation - Cuban Missile Crisis, space race"},
            {"range": (1962, 1975), "add": ["VN", "AF", "CL", "BR", "EG", "SY", "AO", "ET"],
             "note": "Proxy wars - Vietnam, Middle East, Latin American coups"},
            {"range": (1975, 1991),
             "note": "Late Cold War - Soviet-Afghan War, Glasnost"},
            {"after": 1991, "countries": ["US", "RU"],
             "note": "Post-Cold War - Soviet dissolution"},
        ],
    },

    "Ancient Egypt": {
        "default": ["EG", "SD", "LY", "IL", "SY", "LB"],
        "periods": [
            {"range": (-3100, -2181), "countries": ["EG"],
             "note": "Old Kingdom - pyramid age"},
            {"range": (-2181, -2055), "countries": ["EG"],
             "note": "First Intermediate Period"},
            {"range": (-2055, -1650), "countries": ["EG", "SD"],
             "note": "Middle Kingdom - Nubia incorporated"},
            {"range": (-1650, -1550), "countries": ["EG"],
             "note": "Hyksos period"},
            {"range": (-1550, -1070), "countries": ["EG", "SD", "IL", "SY", "LB"],
             "note": "New Kingdom - imperial expansion into Levant and Nubia"},
            {"range": (-1070, -332), "countries": ["EG", "SD"],
             "note": "Late Period"},
            {"after": -332, "countries": ["EG"],
             "note": "Ptolemaic Egypt"},
        ],
    },

    "Ancient Greece": {
        "default": ["GR", "TR", "IT", "SY", "EG", "IL", "AF", "IR", "PK", "IN"],
        "periods": [
            {"range": (-800, -480), "countries": ["GR", "TR", "IT", "FR", "LY"],
             "note": "Archaic period - city-state formation, colonial expansion"},
            {"range": (-480, -323), "countries": ["GR", "TR", "IT"],
             "note": "Classical period - Persian Wars, Peloponnesian War"},
            {"range": (-323, -146),
             "note": "Hellenistic era - Alexander's conquests"},
            {"after": -146, "countries": ["GR", "TR"],
             "note": "Roman province of Achaea"},
        ],
    },

    "Medieval Europe": {
        "default": [
            "FR", "DE", "IT", "ES", "GB", "PT", "PL", "CZ", "AT", "CH",
            "BE", "NL", "HU", "RO", "DK", "SE", "NO",
        ],
        "periods": [
            {"range": (500, 800), "countries": ["FR", "DE", "IT", "ES", "GB", "BE", "NL"],
             "note": "Early Medieval - Frankish Kingdom, Anglo-Saxon England"},
            {"range": (800, 1000), "add": ["PL", "CZ", "HU", "DK", "NO", "SE"],
             "note": "Carolingian era - Christianisation of Eastern Europe"},
            {"range": (1000, 1300),
             "note": "High Medieval - feudalism, Crusades"},
            {"range": (1300, 1500),
             "note": "Late Medieval - Black Death, Hundred Years' War"},
        ],
    },

    "Silk Road": {
        "default": ["CN", "KZ", "UZ", "TM", "IR", "TR", "IQ", "SY", "IL", "IT", "GR", "IN", "PK", "AF", "KG"],
        "periods": [
            {"range": (-200, 200), "countries": ["CN", "KZ", "UZ", "TM", "IR", "IQ", "SY", "TR", "GR", "IT"],
             "note": "Han Dynasty to Roman Empire - primary east-west overland axis"},
            {"range": (200, 600), "add": ["IN", "PK", "AF"],
             "note": "Byzantine-Sassanid era"},
            {"range": (600, 1200),
             "note": "Islamic Golden Age"},
            {"range": (1200, 1400), "add": ["MN", "RU", "UA"],
             "note": "Mongol Pax"},
            {"after": 1400, "countries": ["CN", "IN", "IR", "TR", "IT"],
             "note": "Maritime routes rising - overland Silk Road declining"},
        ],
    },

    "Feudal Japan": {
        "default": ["JP"],
        "periods": [
            {"range": (1185, 1336), "countries": ["JP"], "note": "Kamakura Shogunate"},
            {"range": (1336, 1573), "countries": ["JP"], "note": "Muromachi / Sengoku"},
            {"range": (1573, 1615), "countries": ["JP"], "note": "Azuchi-Momoyama"},
            {"range": (1615, 1868), "countries": ["JP"], "note": "Edo Period"},
        ],
    },

    "Han Dynasty": {
        "default": ["CN", "VN", "KR", "MN", "KZ"],
        "periods": [
            {"range": (-206, 9), "note": "Western Han - Silk Road opened"},
            {"range": (9, 25), "countries": ["CN"], "note": "Xin Dynasty interregnum"},
            {"range": (25, 220), "countries": ["CN", "VN", "KR", "MN"], "note": "Eastern Han"},
        ],
    },

    "Byzantine Empire": {
        "default": ["TR", "GR", "BG", "RS", "RO", "EG", "IL", "LB", "SY", "IT", "AL"],
        "periods": [
            {"range": (395, 565), "note": "Early Byzantine - Justinian reconquests"},
            {"range": (565, 717), "remove": ["EG", "IL", "SY", "LB"],
             "note": "Arab conquests - loss of Levant and North Africa"},
            {"range": (717, 1071), "remove": ["IT", "RO"],
             "note": "Middle Byzantine - Macedonian dynasty"},
            {"range": (1071, 1204), "remove": ["BG", "RS", "RO"],
             "note": "Seljuk pressure - Manzikert"},
            {"range": (1204, 1261), "countries": ["GR"],
             "note": "Latin occupation of Constantinople"},
            {"after": 1261, "countries": ["TR", "GR"],
             "note": "Palaiologos dynasty - rump state until 1453"},
        ],
    },

    "Crusades": {
        "default": ["IL", "LB", "SY", "JO", "TR", "GR", "EG", "FR", "DE", "GB", "IT"],
        "periods": [
            {"range": (1095, 1149), "countries": ["IL", "LB", "SY", "JO", "TR", "FR", "DE", "GB", "IT"],
             "note": "First and Second Crusades - Jerusalem captured (1099)"},
            {"range": (1149, 1189), "add": ["EG"],
             "note": "Crusader states at greatest extent; Saladin rises"},
            {"range": (1189, 1291),
             "note": "Later Crusades"},
            {"after": 1291, "countries": ["CY", "GR", "FR"],
             "note": "Fall of Acre - remnants in Cyprus and Rhodes only"},
        ],
    },

    "Napoleonic Era": {
        "default": [
            "FR", "DE", "IT", "ES", "PT", "PL", "NL", "BE", "AT", "RU",
            "GB", "DK", "NO", "SY", "EG",
        ],
        "periods": [
            {"range": (1789, 1799), "countries": ["FR", "BE", "NL", "DE", "IT"],
             "note": "French Revolutionary Wars"},
            {"range": (1799, 1807), "note": "Consulate and early Empire - Austerlitz, Trafalgar"},
            {"range": (1807, 1812), "note": "Continental System - Peninsular War"},
            {"range": (1812, 1815), "add": ["RU"], "note": "Russian campaign to Waterloo"},
        ],
    },

    "Colonial Americas": {
        "default": [
            "US", "CA", "MX", "BR", "AR", "PE", "CO", "VE", "CL", "BO",
            "PY", "UY", "CU", "DO", "HT", "ES", "PT", "GB", "FR", "NL",
        ],
        "periods": [
            {"range": (1492, 1580), "countries": ["MX", "PE", "CO", "VE", "CU", "ES", "PT", "BR"],
             "note": "Early colonisation - Aztec and Inca Empires conquered"},
            {"range": (1580, 1700), "add": ["US", "CA", "GB", "FR", "NL"],
             "note": "English, French, Dutch North American colonies"},
            {"range": (1700, 1776), "note": "Peak colonial era"},
            {"range": (1776, 1830), "note": "Independence era"},
            {"after": 1830,
             "countries": ["US", "CA", "MX", "BR", "AR", "PE", "CO", "CL", "VE", "BO", "PY", "UY", "CU", "DO", "HT"],
             "note": "Post-colonial independent nations"},
        ],
    },
}


def _overlaps(start: int, end: int, range_start: int, range_end: int) -> bool:
    return start <= range_end and end >= range_start


def find_temporal_key(era: str, table: Dict[str, Dict[str, Any]] = None) -> Optional[str]:
    """Case-insensitive key lookup in the temporal table"""
    table = TEMPORAL_MODIFIERS if table is None else table
    if not era:
        return None
    lower = era.strip().lower()
    for key in table:
        if key.lower() == lower:
            return key
    return None


def resolve_temporal_region(era: str, start_year: Optional[int], end_year: Optional[int],
                            table: Dict[str, Dict[str, Any]] = None) -> Optional[Tuple[List[str], str]]:
    """
    Resolve year-aware countries for a named period.

    Returns (countries, note), or None if the era is not a temporal key.
    Without a year range, the default (peak period) mapping is returned.
    """
    table = TEMPORAL_MODIFIERS if table is None else table
    key = find_temporal_key(era, table)
    if not key:
        return None

    mapping = table[key]
    if start_year is None or end_year is None:
        return list(mapping["default"]), DEFAULT_NOTE

    for period in mapping["periods"]:
        if "before" in period:
            matches = end_year < period["before"]
        elif "after" in period:
            matches = start_year > period["after"]
        elif "range" in period:
            matches = _overlaps(start_year, end_year, *period["range"])
        else:
            matches = False

        if not matches:
            continue

        if "countries" in period:
            return list(period["countries"]), period["note"]

        countries = list(mapping["default"])
        if period.get("remove"):
            countries = [c for c in countries if c not in period["remove"]]
        for code in period.get("add", []):
            if code not in countries:
                countries.append(code)
        return countries, period["note"]

    return list(mapping["default"]), DEFAULT_NOTE
