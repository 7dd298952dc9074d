"""
AI Region Resolver for Immersion Timeline

Two halves of the same contract:
  1. lookup_period() - server side. Asks Claude which modern countries a
     period covers and normalizes the answer. Backs GET /api/region-lookup.
  2. RegionResolverClient - what the inference engine calls. Plain HTTP GET
     against that endpoint with a timeout; every failure becomes a
     ResolverError with a kind the engine can report.

Response shape (both halves):
    {"type": "country"|"empire"|"era", "countries": [...], "timeframe": "...",
     "description": "...", "confidence"?: ..., "reasoning"?: ..., "suggestions"?: [...]}
"""

import os
import re
import json
import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

import requests

from config import (
    REGION_LOOKUP_URL, AI_TIMEOUT_SECONDS, AI_MODEL, AI_MAX_TOKENS, TITLE_MAX_CHARS
)
from region_models import normalize_codes

logger = logging.getLogger(__name__)

# Try to import anthropic
try:
    import anthropic
    ANTHROPIC_AVAILABLE = True
except ImportError:
    ANTHROPIC_AVAILABLE = False

VALID_TYPES = ("country", "empire", "era")


# ---------------------------------------------------------------------------
# Prompt (sent to Claude)
# ---------------------------------------------------------------------------

REGION_LOOKUP_PROMPT = """You are a historical geography expert. Given: "{period}"{year_hint}
Determine:
  1. Is this a specific COUNTRY, an EMPIRE/KINGDOM, or a historical ERA/PERIOD?
  2. What modern-day country codes (ISO 3166-1 alpha-2) should be highlighted on a map?
  3. What timeframe does this represent?
Respond ONLY with valid JSON, no markdown:
{{
"type": "country" | "empire" | "era",
"countries": ["US", "FR", "GB"],
"timeframe": "793-1066 AD",
"description": "Brief context (max 20 words)"
}}
Examples:
  - "France" -> {{"type":"country","countries":["FR"],"timeframe":"","description":"Modern European nation"}}
  - "Aztec Empire" -> {{"type":"empire","countries":["MX"],"timeframe":"1345-1521","description":"Pre-Columbian Mesoamerican civilization in central Mexico"}}
  - "Silk Road" -> {{"type":"era","countries":["CN","KZ","UZ","IR","TR","IT"],"timeframe":"130 BC-1453 AD","description":"Ancient trade routes connecting East and West"}}"""


class ResolverError(Exception):
    """AI resolver call failed. kind: timeout | network | http | malformed | unavailable"""

    def __init__(self, kind: str, message: str = "", status: int = None):
        super().__init__(message or kind)
        self.kind = kind
        self.status = status

    @property
    def label(self) -> str:
        if self.kind == "http" and self.status:
            return f"http {self.status}"
        return self.kind


@dataclass
class AIResolution:
    """Normalized resolver answer"""

    countries: List[str] = field(default_factory=list)
    type: str = "era"
    timeframe: str = ""
    description: str = ""
    confidence: Optional[str] = None
    reasoning: str = ""
    suggestions: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type,
            "countries": list(self.countries),
            "timeframe": self.timeframe,
            "description": self.description,
        }
        if self.confidence:
            data["confidence"] = self.confidence
        if self.reasoning:
            data["reasoning"] = self.reasoning
        if self.suggestions:
            data["suggestions"] = list(self.suggestions)
        return data


def parse_resolution(data: Any) -> AIResolution:
    """
    Normalize a resolver payload. Unknown types become "era", countries are
    filtered to 2-letter strings and uppercased, missing strings become "".
    Raises ResolverError("malformed") if data is not an object.
    """
    if not isinstance(data, dict):
        raise ResolverError("malformed", "Resolver response is not a JSON object")

    kind = data.get("type")
    confidence = data.get("confidence")
    suggestions = data.get("suggestions")

    return AIResolution(
        countries=normalize_codes(data.get("countries") if isinstance(data.get("countries"), list) else []),
        type=kind if kind in VALID_TYPES else "era",
        timeframe=data.get("timeframe") if isinstance(data.get("timeframe"), str) else "",
        description=data.get("description") if isinstance(data.get("description"), str) else "",
        confidence=confidence if confidence in ("high", "medium", "low") else None,
        reasoning=data.get("reasoning") if isinstance(data.get("reasoning"), str) else "",
        suggestions=[s for s in suggestions if isinstance(s, str)] if isinstance(suggestions, list) else None,
    )


def strip_code_fences(text: str) -> str:
    """Remove ```json ... ``` wrapping the model sometimes adds"""
    text = re.sub(r'^```(?:json)?\s*', '', text.strip(), flags=re.IGNORECASE)
    text = re.sub(r'\s*```\s*$', '', text)
    return text.strip()


def build_prompt(period: str, start_year: int = None, end_year: int = None, title: str = None) -> str:
    hints = []
    if start_year is not None and end_year is not None:
        hints.append(f"Years: {start_year} to {end_year} (negative = BC)")
    if title:
        hints.append(f"Media title: \"{title[:TITLE_MAX_CHARS]}\"")
    year_hint = ("\n" + "\n".join(hints)) if hints else ""
    return REGION_LOOKUP_PROMPT.format(period=period, year_hint=year_hint)


def lookup_period(period: str, start_year: int = None, end_year: int = None,
                  title: str = None, client=None) -> AIResolution:
    """
    Ask Claude for a period's countries.

    Raises ResolverError("unavailable") without an API key or SDK, and
    ResolverError("network") if the upstream call fails. Unparseable model
    output is not an error: it yields an empty "era" resolution.
    """
    if client is None:
        if not ANTHROPIC_AVAILABLE:
            raise ResolverError("unavailable", "Anthropic SDK not installed")
        if not os.environ.get("ANTHROPIC_API_KEY"):
            raise ResolverError("unavailable", "ANTHROPIC_API_KEY not configured")
        client = anthropic.Anthropic()

    prompt = build_prompt(period, start_year, end_year, title)
    try:
        response = client.messages.create(
            model=AI_MODEL,
            max_tokens=AI_MAX_TOKENS,
            messages=[{"role": "user", "content": prompt}],
        )
        raw = response.content[0].text if response.content else ""
    except Exception as e:
        logger.error(f"Region lookup upstream error for '{period}': {e}")
        raise ResolverError("network", str(e))

    try:
        resolution = parse_resolution(json.loads(strip_code_fences(raw)))
    except (json.JSONDecodeError, ResolverError):
        logger.warning(f"Region lookup returned unparseable output for '{period}'")
        return AIResolution()

    logger.info(f"Region lookup: '{period}' -> {resolution.countries} ({resolution.type})")
    return resolution


class RegionResolverClient:
    """HTTP client for the region-lookup endpoint"""

    def __init__(self, endpoint: str = None, timeout: float = None, session: requests.Session = None):
        self.endpoint = endpoint or REGION_LOOKUP_URL
        self.timeout = AI_TIMEOUT_SECONDS if timeout is None else timeout
        self.session = session or requests.Session()

    def resolve(self, period: str, start_year: int = None, end_year: int = None,
                title: str = None) -> AIResolution:
        """
        GET <endpoint>?period=... and normalize the answer.
        Raises ResolverError on timeout, network failure, non-2xx or bad JSON.
        """
        params = {"period": period}
        if start_year is not None:
            params["startYear"] = str(start_year)
        if end_year is not None:
            params["endYear"] = str(end_year)
        if title:
            params["title"] = title[:TITLE_MAX_CHARS]

        logger.info(f"Calling region resolver for '{period}'")
        try:
            response = self.session.get(self.endpoint, params=params, timeout=self.timeout)
        except requests.Timeout as e:
            raise ResolverError("timeout", f"Resolver timed out after {self.timeout}s: {e}")
        except requests.RequestException as e:
            raise ResolverError("network", str(e))

        if not 200 <= response.status_code < 300:
            raise ResolverError("http", f"Resolver returned {response.status_code}",
                                status=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ResolverError("malformed", f"Resolver returned invalid JSON: {e}")

        return parse_resolution(data)
