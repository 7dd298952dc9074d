"""
Immersion Timeline - Region Models

Data types shared by the region-inference pipeline:
- RegionMappingEntry: a resolved or user-defined period -> countries mapping
- InferenceResult: one answer from the inference engine

Includes code normalization and full dict serialization.
"""

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any, Iterable


ISO_CODE_PATTERN = re.compile(r'^[A-Z]{2}$')


class RegionInputError(ValueError):
    """Malformed period or no parseable country codes. Never persisted."""


class RegionImportError(ValueError):
    """Bulk import payload rejected before any write."""


class Confidence(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class InferenceSource(Enum):
    """Which resolution step produced a result"""
    TEMPORAL = "temporal"
    HARDCODED = "hardcoded"
    CUSTOM = "custom"
    AI = "ai"
    TITLE_ANALYSIS = "title-analysis"
    MANUAL = "manual"
    FALLBACK = "fallback"


def normalize_codes(codes: Iterable) -> List[str]:
    """
    Uppercase, keep only 2-letter tokens, drop duplicates (first wins).

    Non-string items are ignored rather than rejected.
    """
    seen = []
    for code in codes or []:
        if not isinstance(code, str):
            continue
        code = code.strip().upper()
        if ISO_CODE_PATTERN.match(code) and code not in seen:
            seen.append(code)
    return seen


def parse_codes(raw: str) -> List[str]:
    """Parse a comma/space separated code list, e.g. 'no, se dk'"""
    if not raw:
        return []
    return normalize_codes(re.split(r'[,\s]+', raw))


def codes_from_input(value: Any) -> List[str]:
    """
    Codes from user input: a code string or a list/tuple of codes.
    Raises RegionInputError for any other type, or if nothing parses.
    """
    if isinstance(value, str):
        codes = parse_codes(value)
    elif isinstance(value, (list, tuple)):
        codes = normalize_codes(value)
    else:
        raise RegionInputError("countries must be a list or a string of ISO codes")
    if not codes:
        raise RegionInputError("At least one valid ISO code is required")
    return codes


def text_from_input(value: Any, field_name: str) -> str:
    """Stripped text from user input; None counts as empty"""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise RegionInputError(f"{field_name} must be a string")
    return value.strip()


def coerce_confidence(value: Any, default: Confidence = Confidence.MEDIUM) -> Confidence:
    """Map a loose string onto Confidence, falling back to default"""
    if isinstance(value, Confidence):
        return value
    try:
        return Confidence(str(value).lower())
    except ValueError:
        return default


@dataclass
class RegionMappingEntry:
    """A period's countries plus display metadata and provenance"""

    countries: List[str] = field(default_factory=list)
    timeframe: str = ""
    description: str = ""

    # Provenance (optional, persisted when known)
    source: Optional[str] = None
    confidence: Optional[str] = None
    type: Optional[str] = None
    updated_at: Optional[float] = None

    def __post_init__(self):
        self.countries = normalize_codes(self.countries)
        self.timeframe = self.timeframe or ""
        self.description = self.description or ""

    def unknown_codes(self, known: Iterable[str]) -> List[str]:
        """Codes that are well-formed but not in the known set (flag, don't reject)"""
        known = set(known)
        return [c for c in self.countries if c not in known]

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "countries": list(self.countries),
            "timeframe": self.timeframe,
            "description": self.description,
        }
        if self.source:
            data["source"] = self.source
        if self.confidence:
            data["confidence"] = self.confidence
        if self.type:
            data["type"] = self.type
        if self.updated_at is not None:
            data["updated_at"] = self.updated_at
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegionMappingEntry":
        """Deserialize, tolerating missing or mistyped fields"""
        if not isinstance(data, dict):
            raise ValueError("Region entry must be an object")

        countries = data.get("countries", [])
        if isinstance(countries, str):
            countries = parse_codes(countries)
        elif not isinstance(countries, list):
            countries = []

        updated_at = data.get("updated_at")
        if not isinstance(updated_at, (int, float)):
            updated_at = None

        return cls(
            countries=countries,
            timeframe=data.get("timeframe") if isinstance(data.get("timeframe"), str) else "",
            description=data.get("description") if isinstance(data.get("description"), str) else "",
            source=data.get("source") if isinstance(data.get("source"), str) else None,
            confidence=data.get("confidence") if isinstance(data.get("confidence"), str) else None,
            type=data.get("type") if isinstance(data.get("type"), str) else None,
            updated_at=updated_at,
        )


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class InferenceResult:
    """Output of one inference call. Immutable once returned."""

    countries: List[str]
    confidence: Confidence
    source: InferenceSource
    reasoning: str = ""
    suggestions: Optional[List[str]] = None
    inferred_at: int = field(default_factory=_now_ms)

    @property
    def resolved(self) -> bool:
        return len(self.countries) > 0

    def to_entry(self, timeframe: str = "", description: str = "") -> RegionMappingEntry:
        """Convert into a storable entry, e.g. when the user accepts it as an override"""
        return RegionMappingEntry(
            countries=list(self.countries),
            timeframe=timeframe,
            description=description or self.reasoning,
            source=self.source.value,
            confidence=self.confidence.value,
            updated_at=self.inferred_at / 1000.0,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "countries": list(self.countries),
            "confidence": self.confidence.value,
            "source": self.source.value,
            "reasoning": self.reasoning,
            "inferredAt": self.inferred_at,
        }
        if self.suggestions:
            data["suggestions"] = list(self.suggestions)
        return data


def fallback_result(reasoning: str, suggestions: Optional[List[str]] = None) -> InferenceResult:
    """The result every failure path degrades to"""
    return InferenceResult(
        countries=[],
        confidence=Confidence.LOW,
        source=InferenceSource.FALLBACK,
        reasoning=reasoning,
        suggestions=suggestions or None,
    )
