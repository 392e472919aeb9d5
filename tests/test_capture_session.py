"""Tests for the capture session: preconditions, capture ticks, GPS routing and rendering."""

import subprocess

import pytest

from wifi_heatmap.capture_session import (CaptureSession, NoCurrentFloorError, NoMarkerPlacedError,
                                          NotCapturingError, PermissionDeniedError)
from wifi_heatmap.config_manager import SurveySettings
from wifi_heatmap.data_models import AccessPointReading, RangingResult
from wifi_heatmap.floor_registry import FloorPlanRegistry
from wifi_heatmap.location_service import SimulatedLocationStream
from wifi_heatmap.wifi_scanner import ScanPermissionError, WiFiScanError, WiFiScanner


@pytest.fixture
def registry():
    registry = FloorPlanRegistry()
    registry.create_blank_floor()
    return registry


@pytest.fixture
def stream(qapp):
    return SimulatedLocationStream([(10.0, 20.0), (10.0001, 20.0)])


@pytest.fixture
def messages():
    return []


@pytest.fixture
def make_session(qapp, registry, stream, messages):
    sessions = []

    def _make(scanner, **kwargs):
        kwargs.setdefault("location_stream", stream)
        session = CaptureSession(registry, scanner, **kwargs)
        session.validation_failed.connect(messages.append)
        sessions.append(session)
        return session

    yield _make
    for session in sessions:
        session.close()


@pytest.fixture
def session(make_session, fake_scanner):
    return make_session(fake_scanner)


@pytest.fixture
def capturing(session):
    session.place_marker(100, 100)
    assert session.start_capturing()
    return session


class TestPreconditions:

    def test_start_without_marker(self, session, messages):
        assert session.start_capturing() is False
        assert not session.is_capturing
        assert not session.timer.isActive()
        assert messages == ["Please place a marker on the floor plan before capturing."]
        assert isinstance(session.last_error, NoMarkerPlacedError)

    def test_start_without_floor(self, make_session, fake_scanner, messages):
        session = make_session(fake_scanner)
        session.registry = FloorPlanRegistry()
        assert session.start_capturing() is False
        assert isinstance(session.last_error, NoCurrentFloorError)
        assert session.place_marker(10, 10) is False

    def test_start_without_permission(self, make_session, fake_scanner, messages):
        session = make_session(fake_scanner, permission_check=lambda: False)
        session.place_marker(100, 100)
        assert session.start_capturing() is False
        assert isinstance(session.last_error, PermissionDeniedError)
        assert messages[0].startswith("Permission denied")

    def test_capture_now_requires_capturing(self, session, messages):
        session.place_marker(100, 100)
        assert session.capture_now() is None
        assert isinstance(session.last_error, NotCapturingError)
        assert messages == ["Start capturing before adding data points."]
        assert len(session.registry.current.samples) == 0


class TestCapturing:

    def test_start_capturing(self, capturing):
        assert capturing.is_capturing
        assert capturing.timer.isActive()
        assert capturing.timer.interval() == 5000
        assert capturing.status == "Capturing"
        assert capturing.last_error is None

    def test_tick_records_sample_at_marker(self, capturing):
        captured = []
        capturing.sample_captured.connect(captured.append)

        sample = capturing.capture_tick()
        assert sample.position == (100, 100)
        assert sample.strength == -55
        assert sample.distance is None
        assert captured == [sample]
        assert capturing.registry.current.samples.all() == (sample,)
        assert capturing.session_samples == (sample,)
        assert capturing.status == "Signal: -55 dBm"

    def test_status_sequence(self, capturing):
        statuses = []
        capturing.status_changed.connect(statuses.append)
        capturing.capture_tick()
        assert statuses == ["Scanning...", "Signal: -55 dBm"]

    def test_scan_failure_keeps_capturing(self, make_session, make_scanner):
        session = make_session(make_scanner([WiFiScanError("throttled")]))
        session.place_marker(100, 100)
        session.start_capturing()

        assert session.capture_tick() is None
        assert session.status == "Error"
        assert session.is_capturing
        assert isinstance(session.last_error, WiFiScanError)

        assert session.capture_tick() is not None
        assert len(session.registry.current.samples) == 1

    def test_permission_failure_stops_capturing(self, make_session, make_scanner, messages):
        session = make_session(make_scanner([ScanPermissionError("denied by policy")]))
        session.place_marker(100, 100)
        session.start_capturing()

        assert session.capture_tick() is None
        assert not session.is_capturing
        assert not session.timer.isActive()
        assert session.status == "Error"
        assert messages == ["Permission denied: denied by policy"]

    def test_undecodable_scan_keeps_capturing(self, make_session, monkeypatch):
        def run_with_latin1_ssid(cmd, **kwargs):
            raise UnicodeDecodeError("utf-8", b'[{"SSID":"caf\xe9","RSSI":-50}]', 13, 14, "invalid continuation byte")

        monkeypatch.setattr(subprocess, "run", run_with_latin1_ssid)
        session = make_session(WiFiScanner(command=["scan-wlans"]))
        session.place_marker(100, 100)
        session.start_capturing()

        assert session.capture_tick() is None
        assert session.status == "Error"
        assert session.is_capturing
        assert isinstance(session.last_error, WiFiScanError)

    def test_no_networks(self, make_session, make_scanner):
        session = make_session(make_scanner([[]]))
        session.place_marker(100, 100)
        session.start_capturing()
        assert session.capture_tick() is None
        assert session.status == "No networks found"
        assert len(session.registry.current.samples) == 0

    def test_rtt_measurement(self, make_session, make_scanner):
        readings = [AccessPointReading("Office", -48),
                    AccessPointReading("Lab", -62, bssid="9C-00", is_rtt_responder=True)]
        ranging = [RangingResult("9C-00", -62, 3500, 0.55)]
        session = make_session(make_scanner([readings], ranging=ranging))
        session.place_marker(100, 100)
        session.start_capturing()

        sample = session.capture_tick()
        assert sample.strength == -62
        assert sample.distance == pytest.approx(3.5)
        assert sample.quality == 0.55
        assert session.status == "Signal: -62 dBm, Distance: 3.50 m"

    def test_stop_cancels_timer(self, capturing):
        capturing.stop_capturing()
        assert not capturing.is_capturing
        assert not capturing.timer.isActive()
        assert capturing.status == "Idle"
        assert capturing.capture_tick() is None
        assert len(capturing.registry.current.samples) == 0

    def test_restart_resets_session_samples(self, capturing):
        capturing.capture_tick()
        capturing.stop_capturing()
        capturing.start_capturing()
        assert capturing.session_samples == ()
        assert len(capturing.registry.current.samples) == 1

    def test_capture_now(self, capturing):
        sample = capturing.capture_now()
        assert sample is not None
        assert capturing.is_capturing

    def test_timer_drives_capture(self, make_session, fake_scanner, qtbot):
        session = make_session(fake_scanner, settings=SurveySettings(scan_interval_ms=500))
        session.place_marker(50, 50)
        with qtbot.waitSignal(session.sample_captured, timeout=3000):
            session.start_capturing()
        assert fake_scanner.scan_calls >= 1


class TestLifecycle:

    def test_context_manager_subscribes(self, session, stream):
        with session:
            assert session.is_open
            assert stream.subscriber_count == 1
        assert not session.is_open
        assert stream.subscriber_count == 0

    def test_context_manager_releases_on_exception(self, capturing, stream):
        with pytest.raises(RuntimeError):
            with capturing:
                raise RuntimeError("renderer crashed")
        assert stream.subscriber_count == 0
        assert not capturing.is_capturing
        assert not capturing.timer.isActive()

    def test_open_twice_subscribes_once(self, session, stream):
        session.open()
        session.open()
        assert stream.subscriber_count == 1
        session.close()
        assert stream.subscriber_count == 0

    def test_session_without_stream(self, make_session, fake_scanner):
        session = make_session(fake_scanner, location_stream=None)
        with session:
            assert not session.is_open


class TestLocationRouting:

    def test_fix_moves_marker(self, session, stream):
        with session:
            stream.advance()
            session.place_marker(100, 100)
            assert session.registry.current.tracker.anchor.gps_fix == (10.0, 20.0)
            stream.advance()
        x, y = session.marker_position
        assert x == pytest.approx(100)
        assert y == pytest.approx(80)

    def test_marker_without_fix_stays_put(self, session, stream):
        with session:
            session.place_marker(100, 100)
            stream.advance()
        assert session.marker_position == (100, 100)

    def test_fixes_only_move_current_floor(self, session, stream, registry):
        with session:
            stream.advance()
            session.place_marker(100, 100)
            registry.create_blank_floor()
            stream.advance()
        assert registry.get("Floor 1").tracker.marker_position == (100, 100)
        assert registry.get("Floor 2").tracker.marker_position is None


class TestFloors:

    def test_select_floor_stops_capturing(self, capturing, registry):
        registry.add_floor("Upper")
        registry.select("Floor 1")
        capturing.select_floor("Upper")
        assert not capturing.is_capturing
        assert registry.current_id == "Upper"
        assert capturing.marker_position is None

    def test_clear_floor(self, capturing):
        capturing.capture_tick()
        assert capturing.render_model().cells
        capturing.clear_floor("Floor 1")
        assert len(capturing.registry.current.samples) == 0
        assert capturing.render_model().cells == []


class TestRenderModel:

    def test_cells_are_cached_per_version(self, capturing, monkeypatch):
        calls = []
        rasterize = capturing.generator.rasterize

        def counting_rasterize(*args, **kwargs):
            calls.append(args)
            return rasterize(*args, **kwargs)

        monkeypatch.setattr(capturing.generator, "rasterize", counting_rasterize)
        capturing.capture_tick()

        first = capturing.render_model()
        second = capturing.render_model()
        assert len(calls) == 1
        assert [(c.x, c.y) for c in first.cells] == [(c.x, c.y) for c in second.cells]
        assert first.cells is not second.cells

        capturing.capture_tick()
        capturing.render_model()
        assert len(calls) == 2

    def test_render_model_contents(self, capturing):
        capturing.capture_tick()
        model = capturing.render_model()
        assert model.marker_position == (100, 100)
        assert model.dimensions == capturing.registry.current.dimensions
        assert all(cell.opacity == 0.7 for cell in model.cells)

    def test_unknown_floor(self, session):
        assert session.render_model("Basement") is None


class TestSettings:

    def test_apply_settings(self, capturing, stream, registry):
        capturing.capture_tick()
        before = capturing.render_model()

        settings = SurveySettings(sensitivity=80, high_accuracy=False, scan_interval_ms=1000,
                                  max_distance=20, opacity=0.5, color_scheme="hsl", validate_bounds=True)
        capturing.apply_settings(settings)

        assert capturing.timer.interval() == 1000
        assert registry.current.tracker.sensitivity == 80
        assert registry.validate_bounds
        assert not stream.high_accuracy
        assert capturing.generator.opacity == 0.5

        after = capturing.render_model()
        assert len(after.cells) < len(before.cells)
        assert all(cell.opacity == 0.5 for cell in after.cells)

    def test_settings_language(self, capturing, messages):
        capturing.apply_settings(SurveySettings(language="es_ES"))
        capturing.stop_capturing()
        capturing.capture_now()
        assert messages[-1] != "Start capturing before adding data points."

    def test_rejected_settings_leave_session_unchanged(self, capturing):
        previous = capturing.settings
        generator = capturing.generator
        bad = SurveySettings(scan_interval_ms=1000)
        bad.cell_size = 0

        with pytest.raises(ValueError):
            capturing.apply_settings(bad)
        assert capturing.settings is previous
        assert capturing.generator is generator
        assert capturing.timer.interval() == 5000

    def test_invalid_stored_settings_still_start_session(self, make_session, fake_scanner):
        settings = SurveySettings.from_dict({"cell_size": 0, "opacity": 3, "max_distance": -5})
        session = make_session(fake_scanner, settings=settings)
        assert session.generator.cell_size == 10
        assert session.generator.opacity == 0.7
        assert session.generator.interpolator.max_distance == 50
