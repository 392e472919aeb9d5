"""Tests for location streams and subscriptions."""

import math

import pytest
from PyQt5.QtCore import QDateTime, QObject, pyqtSignal
from PyQt5.QtPositioning import QGeoCoordinate, QGeoPositionInfo

from wifi_heatmap import location_service
from wifi_heatmap.location_service import (HIGH_ACCURACY_INTERVAL_MS, LOW_ACCURACY_INTERVAL_MS,
                                           METERS_PER_DEGREE_LAT, LocationStream, LocationUnavailableError,
                                           QtLocationStream, SimulatedLocationStream, location_subscription,
                                           walk_waypoints)


class RecordingStream(LocationStream):

    def __init__(self):
        super().__init__()
        self.started = 0
        self.stopped = 0

    def _start(self):
        self.started += 1

    def _stop(self):
        self.stopped += 1


class TestSubscriptions:

    def test_source_runs_while_subscribed(self):
        stream = RecordingStream()
        first = stream.subscribe(lambda fix: None)
        second = stream.subscribe(lambda fix: None)
        assert stream.started == 1
        assert stream.subscriber_count == 2

        stream.unsubscribe(first)
        assert stream.stopped == 0
        stream.unsubscribe(second)
        assert stream.stopped == 1
        assert stream.subscriber_count == 0

    def test_unknown_handle_is_ignored(self):
        stream = RecordingStream()
        stream.unsubscribe(42)
        assert stream.stopped == 0

    def test_fixes_and_errors_reach_subscribers(self, fix):
        stream = RecordingStream()
        fixes, errors = [], []
        stream.subscribe(fixes.append, errors.append)
        stream.subscribe(fixes.append)

        stream._deliver_fix(fix(1, 2))
        stream._deliver_error(LocationUnavailableError("lost"))
        assert len(fixes) == 2
        assert len(errors) == 1

    def test_failed_start_does_not_leak_subscriber(self):
        class BrokenStream(LocationStream):
            def _start(self):
                raise LocationUnavailableError("no source")

        stream = BrokenStream()
        with pytest.raises(LocationUnavailableError):
            stream.subscribe(lambda fix: None)
        assert stream.subscriber_count == 0

    def test_context_manager_releases_on_exception(self):
        stream = RecordingStream()
        with pytest.raises(RuntimeError):
            with location_subscription(stream, lambda fix: None):
                assert stream.subscriber_count == 1
                raise RuntimeError("boom")
        assert stream.subscriber_count == 0
        assert stream.stopped == 1


class TestWalkWaypoints:

    def test_north_walk(self):
        waypoints = walk_waypoints((10.0, 20.0), 0, step_m=1.0, steps=3)
        assert len(waypoints) == 4
        assert waypoints[0] == (10.0, 20.0)
        assert waypoints[3][0] == pytest.approx(10.0 + 3 / METERS_PER_DEGREE_LAT)
        assert waypoints[3][1] == pytest.approx(20.0)

    def test_east_walk(self):
        waypoints = walk_waypoints((0.0, 0.0), 90, step_m=2.0, steps=1)
        assert waypoints[1][0] == pytest.approx(0.0, abs=1e-12)
        assert waypoints[1][1] == pytest.approx(2.0 / METERS_PER_DEGREE_LAT)
        assert not math.isnan(waypoints[1][1])


class TestSimulatedLocationStream:

    def test_advance_replays_waypoints(self, qapp):
        stream = SimulatedLocationStream([(1.0, 2.0), (3.0, 4.0)])
        fixes = []
        stream.subscribe(fixes.append)
        for _ in range(3):
            stream.advance()
        assert [(f.latitude, f.longitude) for f in fixes] == [(1.0, 2.0), (3.0, 4.0), (3.0, 4.0)]
        assert fixes[0].accuracy == 5.0

    def test_timer_follows_subscription(self, qapp):
        stream = SimulatedLocationStream([(1.0, 2.0)])
        handle = stream.subscribe(lambda fix: None)
        assert stream.timer.isActive()
        stream.unsubscribe(handle)
        assert not stream.timer.isActive()

    def test_accuracy_sets_interval(self, qapp):
        stream = SimulatedLocationStream([(1.0, 2.0)])
        stream.set_high_accuracy(False)
        assert stream.timer.interval() == LOW_ACCURACY_INTERVAL_MS
        stream.set_high_accuracy(True)
        assert stream.timer.interval() == HIGH_ACCURACY_INTERVAL_MS

    def test_timer_delivers_fixes(self, qtbot):
        stream = SimulatedLocationStream([(1.0, 2.0), (3.0, 4.0)], interval_ms=10)
        fixes = []
        with location_subscription(stream, fixes.append):
            qtbot.waitUntil(lambda: len(fixes) >= 2, timeout=2000)
        assert (fixes[1].latitude, fixes[1].longitude) == (3.0, 4.0)

    def test_requires_waypoints(self, qapp):
        with pytest.raises(ValueError):
            SimulatedLocationStream([])


class FakePositionSource(QObject):
    positionUpdated = pyqtSignal(QGeoPositionInfo)
    updateTimeout = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.interval = None
        self.running = False

    def setPreferredPositioningMethods(self, methods):
        self.methods = methods

    def setUpdateInterval(self, interval):
        self.interval = interval

    def startUpdates(self):
        self.running = True

    def stopUpdates(self):
        self.running = False

    def sourceName(self):
        return "fake"


class TestQtLocationStream:

    @pytest.fixture
    def source_factory(self, monkeypatch):
        created = []

        class FakeSourceFactory:
            SatellitePositioningMethods = 1
            AllPositioningMethods = 2

            @staticmethod
            def createDefaultSource(parent):
                source = FakePositionSource(parent)
                created.append(source)
                return source

        monkeypatch.setattr(location_service, "QGeoPositionInfoSource", FakeSourceFactory)
        return created

    def test_no_source_available(self, qapp, monkeypatch):
        class NoSource:
            @staticmethod
            def createDefaultSource(parent):
                return None

        monkeypatch.setattr(location_service, "QGeoPositionInfoSource", NoSource)
        with pytest.raises(LocationUnavailableError):
            QtLocationStream()

    def test_position_updates_become_fixes(self, qapp, source_factory):
        stream = QtLocationStream()
        source = source_factory[0]
        assert source.interval == HIGH_ACCURACY_INTERVAL_MS

        fixes, errors = [], []
        with location_subscription(stream, fixes.append, errors.append):
            assert source.running
            info = QGeoPositionInfo(QGeoCoordinate(47.62, -122.35), QDateTime.currentDateTime())
            info.setAttribute(QGeoPositionInfo.HorizontalAccuracy, 4.0)
            source.positionUpdated.emit(info)
            source.positionUpdated.emit(QGeoPositionInfo())
            source.updateTimeout.emit()
        assert not source.running

        assert len(fixes) == 1
        assert fixes[0].latitude == pytest.approx(47.62)
        assert fixes[0].accuracy == 4.0
        assert isinstance(errors[0], LocationUnavailableError)

    def test_low_accuracy_interval(self, qapp, source_factory):
        stream = QtLocationStream()
        stream.set_high_accuracy(False)
        assert source_factory[0].interval == LOW_ACCURACY_INTERVAL_MS
