"""
Unit tests for region data types and code normalization.
"""

import dataclasses

import pytest
from region_models import (
    RegionMappingEntry, InferenceResult, Confidence, InferenceSource,
    RegionInputError, normalize_codes, parse_codes, codes_from_input, text_from_input,
    coerce_confidence, fallback_result
)


class TestCodeNormalization:
    """Codes are uppercased, two letters, de-duplicated in order."""

    def test_normalize_filters_and_dedups(self):
        assert normalize_codes(["no", "se", "NO", "xyz", 5, " dk "]) == ["NO", "SE", "DK"]

    def test_normalize_handles_none(self):
        assert normalize_codes(None) == []

    def test_parse_mixed_separators(self):
        assert parse_codes("no, se dk,,is") == ["NO", "SE", "DK", "IS"]

    def test_parse_empty(self):
        assert parse_codes("") == []

    def test_codes_from_input(self):
        assert codes_from_input("fr, be") == ["FR", "BE"]
        assert codes_from_input(("fr", "de")) == ["FR", "DE"]
        for bad in (5, None, {"FR": True}, "zzz 1", []):
            with pytest.raises(RegionInputError):
                codes_from_input(bad)

    def test_text_from_input(self):
        assert text_from_input("  Gaul ", "period") == "Gaul"
        assert text_from_input(None, "timeframe") == ""
        with pytest.raises(RegionInputError):
            text_from_input(7, "period")

    def test_coerce_confidence(self):
        assert coerce_confidence("HIGH") == Confidence.HIGH
        assert coerce_confidence(Confidence.LOW) == Confidence.LOW
        assert coerce_confidence("certain") == Confidence.MEDIUM
        assert coerce_confidence(None, Confidence.LOW) == Confidence.LOW


class TestRegionMappingEntry:

    def test_post_init_normalizes(self):
        entry = RegionMappingEntry(countries=["fr", "FR", "de"], timeframe=None)
        assert entry.countries == ["FR", "DE"]
        assert entry.timeframe == ""

    def test_unknown_codes_are_flagged_not_dropped(self):
        entry = RegionMappingEntry(countries=["NO", "ZZ"])
        assert entry.countries == ["NO", "ZZ"]
        assert entry.unknown_codes({"NO", "SE"}) == ["ZZ"]

    def test_from_dict_accepts_code_string(self):
        entry = RegionMappingEntry.from_dict({"countries": "cn kz, uz", "timeframe": 42})
        assert entry.countries == ["CN", "KZ", "UZ"]
        assert entry.timeframe == ""

    def test_from_dict_rejects_non_object(self):
        with pytest.raises(ValueError):
            RegionMappingEntry.from_dict(["CN"])

    def test_to_dict_omits_unknown_provenance(self):
        data = RegionMappingEntry(countries=["GR"], timeframe="800 BC").to_dict()
        assert data == {"countries": ["GR"], "timeframe": "800 BC", "description": ""}


class TestInferenceResult:

    def test_is_frozen(self):
        result = InferenceResult(["IT"], Confidence.HIGH, InferenceSource.HARDCODED)
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.countries = ["FR"]

    def test_to_dict_shape(self):
        result = InferenceResult(["IT"], Confidence.HIGH, InferenceSource.CUSTOM, reasoning="r",
                                 inferred_at=1700000000000)
        assert result.to_dict() == {
            "countries": ["IT"],
            "confidence": "high",
            "source": "custom",
            "reasoning": "r",
            "inferredAt": 1700000000000,
        }

    def test_to_entry_carries_provenance(self):
        result = InferenceResult(["IT"], Confidence.HIGH, InferenceSource.MANUAL, inferred_at=5000)
        entry = result.to_entry(timeframe="1500s")
        assert entry.source == "manual"
        assert entry.confidence == "high"
        assert entry.timeframe == "1500s"
        assert entry.updated_at == 5.0

    def test_fallback_result(self):
        result = fallback_result("nothing", suggestions=[])
        assert result.countries == []
        assert result.confidence == Confidence.LOW
        assert result.source == InferenceSource.FALLBACK
        assert result.suggestions is None
        assert not result.resolved
