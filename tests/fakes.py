"""
Test doubles shared by the suites: a scripted resolver, a recording media
client and a fake requests response.
"""

import threading

from region_ai import AIResolution, ResolverError
from region_inference import InferenceEngine
from region_storage import MemoryRegionStore, ResolutionCache


class FakeResolver:
    """Returns a fixed resolution, or raises a ResolverError of the given kind."""

    def __init__(self, countries=None, fail_kind=None, status=None, gate=None, **fields):
        self.countries = countries or []
        self.fail_kind = fail_kind
        self.status = status
        self.gate = gate
        self.fields = fields
        self.calls = []
        self._lock = threading.Lock()

    def resolve(self, period, start_year=None, end_year=None, title=None):
        with self._lock:
            self.calls.append(period)
        if self.gate is not None:
            self.gate.wait(5)
        if self.fail_kind:
            raise ResolverError(self.fail_kind, f"fake {self.fail_kind}", status=self.status)
        return AIResolution(countries=list(self.countries), **self.fields)


class RecordingMediaClient:
    def __init__(self, fail_ids=()):
        self.fail_ids = set(fail_ids)
        self.updates = {}

    def update_media(self, media_id, payload):
        if media_id in self.fail_ids:
            return False
        self.updates[media_id] = payload
        return True


class FakeResponse:
    def __init__(self, status_code=200, payload=None, bad_json=False):
        self.status_code = status_code
        self.payload = payload
        self.bad_json = bad_json

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value")
        return self.payload


def make_engine(resolver=None, **kwargs):
    """Engine over memory stores, unreachable resolver by default"""
    return InferenceEngine(
        overrides=MemoryRegionStore(),
        cache=ResolutionCache(MemoryRegionStore()),
        resolver=resolver or FakeResolver(fail_kind="network"),
        **kwargs
    )
