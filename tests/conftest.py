"""Shared fixtures for the WiFi heatmap test suite."""

import os

# Qt must not try to open a display when tests run headless
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from wifi_heatmap.data_models import AccessPointReading, FloorDimensions, LocationFix, Sample
from wifi_heatmap.wifi_scanner import WiFiScanError


@pytest.fixture
def dimensions():
    return FloorDimensions(500, 500)


@pytest.fixture
def make_sample():
    def _make(x, y, strength, **kwargs):
        return Sample(x, y, strength, **kwargs)
    return _make


@pytest.fixture
def fix():
    def _fix(latitude, longitude):
        return LocationFix(latitude, longitude)
    return _fix


class FakeScanner:
    """Scanner double returning queued results; exceptions in the queue are raised."""

    def __init__(self, results=None, ranging=None):
        self.results = list(results or [])
        self.ranging = ranging or []
        self.scan_calls = 0

    def scan(self):
        self.scan_calls += 1
        if not self.results:
            return [AccessPointReading("Office", -55, bssid="AA-BB-CC-00-00-01")]
        result = self.results.pop(0)
        if isinstance(result, WiFiScanError):
            raise result
        return result

    def range_responders(self, readings):
        return self.ranging


@pytest.fixture
def fake_scanner():
    return FakeScanner()


@pytest.fixture
def make_scanner():
    return FakeScanner
