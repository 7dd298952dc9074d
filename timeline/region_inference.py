"""
Immersion Timeline - Region Inference Engine

Resolves a free-text era (plus optional year range and title) to ISO country
codes for map highlighting.

Resolution pipeline, first match wins:
  1. Custom override store        -> custom,    high
  2. Static REGION_MAPPINGS       -> hardcoded, high
  3. Temporal table / keywords    -> temporal,  medium
  4. Resolution cache (prior AI)  -> ai,        cached confidence
  5. AI resolver (network)        -> ai or title-analysis
  6. Fallback                     -> fallback,  low, no countries

infer() never raises. Step 5 is the only network call, and concurrent
callers for the same period share one in-flight request.
"""

import time
import logging
import threading
from concurrent.futures import Future
from typing import Optional, List, Dict, Any, Union

from region_models import (
    InferenceResult, InferenceSource, Confidence, RegionMappingEntry,
    RegionInputError, coerce_confidence, fallback_result, codes_from_input, text_from_input
)
from region_tables import REGION_MAPPINGS, REGION_TIMEFRAMES, find_static_key, suggest_periods
from temporal_regions import TEMPORAL_MODIFIERS, resolve_temporal_region
from text_analysis import extract_countries_from_text, extract_era_keywords
from region_ai import ResolverError

logger = logging.getLogger(__name__)


def title_confidence(count: int, start_year: Optional[int], end_year: Optional[int]) -> Confidence:
    """Confidence for codes found only in the title/description"""
    if start_year is None or end_year is None:
        return Confidence.LOW
    span = end_year - start_year
    if span <= 50 and count <= 5:
        return Confidence.HIGH
    if span < 100:
        return Confidence.MEDIUM
    return Confidence.LOW


class InferenceEngine:
    """
    Layered region resolver.

    Stores and resolver are injected:
        overrides - RegionStore of user-defined mappings
        cache     - RegionStore (usually ResolutionCache) of prior AI results
        resolver  - object with resolve(period, start_year, end_year, title) -> AIResolution
    """

    def __init__(self, overrides, cache, resolver,
                 static_table: Dict[str, List[str]] = None,
                 temporal_table: Dict[str, Dict[str, Any]] = None,
                 timeframes: Dict[str, str] = None):
        self.overrides = overrides
        self.cache = cache
        self.resolver = resolver
        self.static_table = REGION_MAPPINGS if static_table is None else static_table
        self.temporal_table = TEMPORAL_MODIFIERS if temporal_table is None else temporal_table
        self.timeframes = REGION_TIMEFRAMES if timeframes is None else timeframes

        self._lock = threading.Lock()
        self._in_flight: Dict[str, Future] = {}

    # ==================== Public API ====================

    def infer(self, era: str, start_year: int = None, end_year: int = None,
              title: str = None, description: str = None) -> InferenceResult:
        """Resolve an era to countries. Never raises."""
        t0 = time.perf_counter()
        period = (era or "").strip()
        if not period:
            return fallback_result("No era given")

        try:
            result = self._infer(period, start_year, end_year, title, description)
        except Exception as e:
            logger.error(f"Inference failed for '{period}': {e}", exc_info=True)
            result = fallback_result(f"Resolution error for \"{period}\" ({type(e).__name__})")

        elapsed = (time.perf_counter() - t0) * 1000
        logger.info(
            f"[inference] {result.source.value}: '{period}' -> {len(result.countries)} countries, "
            f"confidence={result.confidence.value} ({elapsed:.0f}ms)"
        )
        return result

    def manual_override(self, period: str, codes: Union[str, List[str]],
                        timeframe: str = "", description: str = "") -> InferenceResult:
        """
        Store user-supplied codes as a custom override, bypassing inference.
        Raises RegionInputError on a blank period, a non-text field or no parseable codes.
        """
        period = text_from_input(period, "period")
        if not period:
            raise RegionInputError("Period name is required")
        countries = codes_from_input(codes)
        timeframe = text_from_input(timeframe, "timeframe")
        description = text_from_input(description, "description")

        result = InferenceResult(
            countries=countries,
            confidence=Confidence.HIGH,
            source=InferenceSource.MANUAL,
            reasoning=f"Manual override for \"{period}\"",
        )
        self.overrides.set(period, result.to_entry(timeframe=timeframe, description=description))
        logger.info(f"Manual override stored for '{period}': {countries}")
        return result

    def evict(self, period: str):
        """Drop a cached AI result so the next infer() re-resolves it"""
        self.cache.delete((period or "").strip())
        logger.info(f"Evicted cached resolution for '{period}'")

    def in_flight(self) -> List[str]:
        with self._lock:
            return list(self._in_flight.keys())

    # ==================== Pipeline ====================

    def _infer(self, period, start_year, end_year, title, description) -> InferenceResult:
        result = (
            self._from_override(period)
            or self._from_static(period)
            or self._from_temporal(period, start_year, end_year)
            or self._from_keywords(period)
            or self._from_cache(period)
        )
        if result:
            return result
        return self._resolve_shared(period, start_year, end_year, title, description)

    def _from_override(self, period: str) -> Optional[InferenceResult]:
        key = self.overrides.find_key(period)
        if not key:
            return None
        entry = self.overrides.get(key)
        if not entry or not entry.countries:
            return None
        return InferenceResult(
            countries=list(entry.countries),
            confidence=Confidence.HIGH,
            source=InferenceSource.CUSTOM,
            reasoning=f"Custom mapping for \"{key}\"",
        )

    def _from_static(self, period: str) -> Optional[InferenceResult]:
        key = find_static_key(period, self.static_table)
        if key:
            reasoning = f"Hardcoded mapping for \"{key}\""
            if self.timeframes.get(key):
                reasoning += f" ({self.timeframes[key]})"
            return InferenceResult(
                countries=list(self.static_table[key]),
                confidence=Confidence.HIGH,
                source=InferenceSource.HARDCODED,
                reasoning=reasoning,
            )

        # Bare ISO alpha-2 code
        if len(period) == 2 and period.isalpha():
            return InferenceResult(
                countries=[period.upper()],
                confidence=Confidence.HIGH,
                source=InferenceSource.HARDCODED,
                reasoning=f"\"{period}\" is already a country code",
            )
        return None

    def _from_temporal(self, period, start_year, end_year) -> Optional[InferenceResult]:
        resolved = resolve_temporal_region(period, start_year, end_year, self.temporal_table)
        if not resolved:
            return None
        countries, note = resolved
        return InferenceResult(
            countries=countries,
            confidence=Confidence.MEDIUM,
            source=InferenceSource.TEMPORAL,
            reasoning=note,
        )

    def _from_keywords(self, period: str) -> Optional[InferenceResult]:
        countries = extract_era_keywords(period)
        if not countries:
            return None
        return InferenceResult(
            countries=countries,
            confidence=Confidence.MEDIUM,
            source=InferenceSource.TEMPORAL,
            reasoning=f"Matched historical keywords in \"{period}\"",
        )

    def _from_cache(self, period: str) -> Optional[InferenceResult]:
        entry = self.cache.get(period)
        if not entry or not entry.countries:
            return None
        reasoning = entry.description or f"Cached AI resolution for \"{period}\""
        return InferenceResult(
            countries=list(entry.countries),
            confidence=coerce_confidence(entry.confidence, Confidence.MEDIUM),
            source=InferenceSource.AI,
            reasoning=reasoning,
        )

    # ==================== AI step (de-duplicated) ====================

    def _resolve_shared(self, period, start_year, end_year, title, description) -> InferenceResult:
        """
        One resolver call per period at a time. Later callers wait on the
        first caller's future and get the same result.
        """
        with self._lock:
            future = self._in_flight.get(period)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[period] = future

        if not owner:
            logger.info(f"Joining in-flight resolution for '{period}'")
            return future.result()

        try:
            # A previous owner may have cached its result after our first cache read
            result = self._from_cache(period) or self._resolve_with_ai(
                period, start_year, end_year, title, description
            )
        except Exception as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                self._in_flight.pop(period, None)

    def _resolve_with_ai(self, period, start_year, end_year, title, description) -> InferenceResult:
        text = " ".join(t for t in (title, description) if t)
        text_countries = extract_countries_from_text(text)

        failure = "empty"
        try:
            resolution = self.resolver.resolve(period, start_year=start_year,
                                               end_year=end_year, title=title)
        except ResolverError as e:
            logger.warning(f"Resolver {e.label} for '{period}': {e}")
            resolution = None
            failure = e.label

        if resolution is not None and resolution.countries:
            confidence = coerce_confidence(resolution.confidence, Confidence.MEDIUM)
            self.cache.set(period, RegionMappingEntry(
                countries=resolution.countries,
                timeframe=resolution.timeframe,
                description=resolution.description,
                source=InferenceSource.AI.value,
                confidence=confidence.value,
                type=resolution.type,
            ))
            suggestions = [", ".join(text_countries)] if text_countries else resolution.suggestions
            return InferenceResult(
                countries=list(resolution.countries),
                confidence=confidence,
                source=InferenceSource.AI,
                reasoning=resolution.reasoning or resolution.description
                or f"AI inference for \"{period}\"",
                suggestions=suggestions or None,
            )

        if text_countries:
            return InferenceResult(
                countries=text_countries,
                confidence=title_confidence(len(text_countries), start_year, end_year),
                source=InferenceSource.TITLE_ANALYSIS,
                reasoning=f"Extracted location hints from title/description (resolver: {failure})",
            )

        known = list(self.static_table) + list(self.temporal_table) + list(self.overrides.list())
        return fallback_result(
            f"No mapping found for \"{period}\" (resolver: {failure})",
            suggestions=suggest_periods(period, known),
        )
