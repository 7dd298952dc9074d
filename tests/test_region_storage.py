"""
Tests for the region stores and the TTL resolution cache.
"""

import json

import pytest
from region_models import RegionMappingEntry, InferenceSource
from region_inference import InferenceEngine
from fakes import FakeResolver
from region_storage import (
    MemoryRegionStore, JSONRegionStore, KeyedFileRegionStore, DatabaseRegionStore,
    ResolutionCache, create_store
)


class TestMemoryRegionStore:

    def setup_method(self):
        self.store = MemoryRegionStore()

    def test_set_get_normalizes_codes(self):
        self.store.set("Norse", RegionMappingEntry(countries=["no", "se", "NO"]))
        entry = self.store.get("Norse")
        assert entry.countries == ["NO", "SE"]
        assert entry.updated_at is not None

    def test_entries_are_copied(self):
        entry = RegionMappingEntry(countries=["FR"])
        self.store.set("Gaul", entry)
        entry.countries.append("DE")
        assert self.store.get("Gaul").countries == ["FR"]

    def test_find_key(self):
        self.store.set("Edo Period", RegionMappingEntry(countries=["JP"]))
        assert self.store.find_key("Edo Period") == "Edo Period"
        assert self.store.find_key("edo period") == "Edo Period"
        assert self.store.find_key("Meiji") is None

    def test_delete_absent_is_noop(self):
        self.store.delete("missing")
        assert len(self.store) == 0

    def test_clear(self):
        self.store.set("A", RegionMappingEntry(countries=["FR"]))
        self.store.set("B", RegionMappingEntry(countries=["DE"]))
        self.store.clear()
        assert self.store.list() == {}


class TestJSONRegionStore:

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "overrides.json"
        JSONRegionStore(str(path)).set("Silk Road", RegionMappingEntry(countries=["cn", "kz"]))

        entry = JSONRegionStore(str(path)).get("Silk Road")
        assert entry.countries == ["CN", "KZ"]
        assert "Silk Road" in json.loads(path.read_text())

    def test_observes_external_writes(self, tmp_path):
        path = tmp_path / "overrides.json"
        store = JSONRegionStore(str(path))
        path.write_text(json.dumps({"Gaul": {"countries": ["FR"]}}))
        assert store.get("Gaul").countries == ["FR"]

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("{not json")
        store = JSONRegionStore(str(path))

        assert store.get("anything") is None
        assert store.list() == {}

        store.set("Gaul", RegionMappingEntry(countries=["FR"]))
        assert store.get("Gaul").countries == ["FR"]

    def test_undecodable_bytes_read_as_empty(self, tmp_path):
        path = tmp_path / "overrides.json"
        path.write_bytes(b"\xff\xfe\xff")
        store = JSONRegionStore(str(path))

        assert store.get("Roman Empire") is None
        assert store.find_key("Roman Empire") is None
        assert store.list() == {}

    def test_undecodable_store_keeps_static_hits(self, tmp_path):
        path = tmp_path / "overrides.json"
        path.write_bytes(b"\xff\xfe")
        engine = InferenceEngine(
            overrides=JSONRegionStore(str(path)),
            cache=ResolutionCache(MemoryRegionStore()),
            resolver=FakeResolver(fail_kind="network"),
        )

        result = engine.infer("Roman Empire")
        assert result.source == InferenceSource.HARDCODED
        assert result.countries == ["IT", "FR", "ES", "GR", "TR", "EG", "GB"]

    def test_corrupt_entry_is_skipped(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({"Bad": "nope", "Good": {"countries": ["IT"]}}))
        store = JSONRegionStore(str(path))
        assert list(store.list().keys()) == ["Good"]
        assert store.get("Bad") is None


class TestKeyedFileRegionStore:

    def test_round_trip_with_unsafe_key(self, tmp_path):
        store = KeyedFileRegionStore(str(tmp_path / "entries"))
        store.set("Edo / Tokugawa", RegionMappingEntry(countries=["jp"]))

        assert store.get("Edo / Tokugawa").countries == ["JP"]
        assert list(store.list().keys()) == ["Edo / Tokugawa"]

    def test_corrupt_file_skipped(self, tmp_path):
        directory = tmp_path / "entries"
        store = KeyedFileRegionStore(str(directory))
        store.set("Gaul", RegionMappingEntry(countries=["FR"]))
        (directory / "Broken.json").write_text("[[[")
        (directory / "Garbled.json").write_bytes(b"\xff\xfe")

        assert list(store.list().keys()) == ["Gaul"]
        assert store.get("Broken") is None

    def test_delete_and_clear(self, tmp_path):
        store = KeyedFileRegionStore(str(tmp_path / "entries"))
        store.set("A", RegionMappingEntry(countries=["FR"]))
        store.set("B", RegionMappingEntry(countries=["DE"]))
        store.delete("A")
        store.delete("A")
        assert list(store.list().keys()) == ["B"]
        store.clear()
        assert store.list() == {}


class TestResolutionCache:

    def setup_method(self):
        self.now = [1000.0]
        self.cache = ResolutionCache(MemoryRegionStore(), ttl_seconds=60, clock=lambda: self.now[0])

    def test_set_defaults_to_ai_source(self):
        self.cache.set("Chavin", RegionMappingEntry(countries=["PE"]))
        entry = self.cache.get("Chavin")
        assert entry.source == "ai"
        assert entry.updated_at == 1000.0

    def test_ai_entry_expires(self):
        self.cache.set("Chavin", RegionMappingEntry(countries=["PE"]))
        self.now[0] += 61
        assert self.cache.get("Chavin") is None
        assert self.cache.store.get("Chavin") is None

    def test_non_ai_entry_does_not_expire(self):
        self.cache.set("Gaul", RegionMappingEntry(countries=["FR"], source="custom"))
        self.now[0] += 10000
        assert self.cache.get("Gaul").countries == ["FR"]

    def test_list_hides_expired(self):
        self.cache.set("Old", RegionMappingEntry(countries=["PE"]))
        self.now[0] += 50
        self.cache.set("New", RegionMappingEntry(countries=["MX"]))
        self.now[0] += 20
        assert list(self.cache.list().keys()) == ["New"]

    def test_stats(self):
        self.cache.set("A", RegionMappingEntry(countries=["PE"]))
        self.now[0] += 5
        self.cache.set("B", RegionMappingEntry(countries=["MX"]))

        stats = self.cache.stats()
        assert stats["entries"] == 2
        assert stats["oldest"] == 1000.0
        assert stats["newest"] == 1005.0
        assert stats["size_kb"] >= 0

    def test_stats_empty(self):
        assert self.cache.stats() == {"entries": 0, "size_kb": 0.0, "oldest": None, "newest": None}


class TestCreateStore:

    def test_memory_backend(self):
        assert isinstance(create_store("overrides", backend="memory"), MemoryRegionStore)

    def test_database_store_rejects_unknown_table(self):
        with pytest.raises(ValueError):
            DatabaseRegionStore("media")
