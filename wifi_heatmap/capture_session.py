#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# -----------------------------------------------------------------------------
# WiFi Heatmap
#
# wifi_heatmap/capture_session.py
#
# Description:
# Survey session for the WiFi Heatmap engine. Routes GPS fixes to the current
# floor's position tracker, runs the periodic capture timer that turns WiFi
# scans into samples, and builds the per-floor render model on demand.
# -----------------------------------------------------------------------------

from typing import Callable, Dict, List, Optional, Tuple

from PyQt5.QtCore import QObject, QTimer, pyqtSignal

from .color_mapper import ColorMapper
from .config_manager import SurveySettings
from .data_models import HeatmapCell, HeatmapError, LocationFix, RenderModel, Sample
from .floor_registry import FloorPlanRegistry
from .heatmap_generator import HeatmapGenerator
from .i18n_manager import I18nManager
from .location_service import LocationStream
from .signal_interpolator import SignalInterpolator
from .wifi_scanner import ScanPermissionError, WiFiScanError, select_measurement


class CaptureError(HeatmapError):
    """
    Precondition failure of a capture action. Carries the translation key of
    the message shown to the user.
    """
    message_key = "scan_failed"

    def __init__(self, message="", **kwargs):
        super().__init__(message or self.message_key)
        self.kwargs = kwargs


class NoMarkerPlacedError(CaptureError):
    message_key = "no_marker_placed"


class NoCurrentFloorError(CaptureError):
    message_key = "no_current_floor"


class NotCapturingError(CaptureError):
    message_key = "not_capturing"


class PermissionDeniedError(CaptureError):
    message_key = "permission_denied"


class CaptureSession(QObject):
    """
    One survey session over a floor plan registry.

    All work happens on the Qt event loop: GPS fixes, capture timer ticks and
    user actions are handled one at a time. Use the session as a context
    manager (or pair open/close) so the location subscription is always
    released.
    """

    sample_captured = pyqtSignal(object)   # Emitted with each new Sample
    status_changed = pyqtSignal(str)       # Emitted to update the scan status indicator
    validation_failed = pyqtSignal(str)    # Emitted with a user-facing message

    def __init__(self, registry: FloorPlanRegistry, scanner, location_stream: Optional[LocationStream] = None,
                 settings: Optional[SurveySettings] = None, i18n_manager: Optional[I18nManager] = None,
                 permission_check: Optional[Callable[[], bool]] = None, debug_mode=False, parent=None):
        """
        Args:
            registry: Floors surveyed in this session
            scanner: Object with scan() and range_responders(readings), such as
                WiFiScanner or ScanSimulator
            location_stream: GPS fix source; without one no marker ever moves
            settings: Initial settings snapshot
            i18n_manager: Translator for user-facing messages
            permission_check: Returns False when location/WiFi permission is missing
            debug_mode: Print debug traces
        """
        super().__init__(parent)
        self.registry = registry
        self.scanner = scanner
        self.location_stream = location_stream
        self.i18n = i18n_manager or I18nManager(lang_code="en_US", debug_mode=debug_mode)
        self.permission_check = permission_check
        self.debug_mode = debug_mode

        self.settings = settings or SurveySettings()
        self.generator = self._build_generator(self.settings)

        self.timer = QTimer(self)
        self.timer.setInterval(self.settings.scan_interval_ms)
        self.timer.timeout.connect(self.capture_tick)

        self.latest_fix: Optional[LocationFix] = None
        self.last_error: Optional[Exception] = None
        self._capturing = False
        self._status = self.i18n.get_string("status_idle")
        self._session_samples: List[Sample] = []
        self._fix_handle = None
        self._cell_cache: Dict[str, Tuple[int, List[HeatmapCell]]] = {}

        self.registry.validate_bounds = self.settings.validate_bounds

    @staticmethod
    def _build_generator(settings: SurveySettings) -> HeatmapGenerator:
        return HeatmapGenerator(
            interpolator=SignalInterpolator(max_distance=settings.max_distance),
            color_mapper=ColorMapper(settings.color_scheme),
            cell_size=settings.cell_size,
            opacity=settings.opacity
        )

    # --- Lifecycle ---------------------------------------------------------

    def open(self):
        """Subscribe to the location stream. Safe to call more than once."""
        if self.location_stream is None or self._fix_handle is not None:
            return
        self.location_stream.set_high_accuracy(self.settings.high_accuracy)
        self._fix_handle = self.location_stream.subscribe(self._on_fix, self._on_location_error)
        if self.debug_mode:
            print("DEBUG: Capture session opened, location tracking started")

    def close(self):
        """Stop capturing and release the location subscription."""
        try:
            self.stop_capturing()
        finally:
            if self._fix_handle is not None:
                self.location_stream.unsubscribe(self._fix_handle)
                self._fix_handle = None
                if self.debug_mode:
                    print("DEBUG: Capture session closed, location tracking stopped")

    @property
    def is_open(self) -> bool:
        return self._fix_handle is not None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # --- Location ----------------------------------------------------------

    def _on_fix(self, fix: LocationFix):
        self.latest_fix = fix
        floor = self.registry.current
        if floor is None:
            return
        floor.tracker.set_sensitivity(self.settings.sensitivity)
        floor.tracker.update(fix)

    def _on_location_error(self, error: Exception):
        print(f"Warning: {self.i18n.get_string('location_error', reason=error)}")

    def place_marker(self, x: float, y: float) -> bool:
        """
        Place the marker on the current floor and anchor it to the latest GPS fix.

        Returns:
            False if there is no current floor
        """
        floor = self.registry.current
        if floor is None:
            self._report(NoCurrentFloorError())
            return False
        floor.tracker.set_sensitivity(self.settings.sensitivity)
        floor.tracker.place_marker(x, y, self.latest_fix)
        return True

    @property
    def marker_position(self) -> Optional[Tuple[float, float]]:
        floor = self.registry.current
        return floor.tracker.marker_position if floor is not None else None

    # --- Capturing ---------------------------------------------------------

    @property
    def is_capturing(self) -> bool:
        return self._capturing

    @property
    def status(self) -> str:
        return self._status

    @property
    def session_samples(self) -> Tuple[Sample, ...]:
        """Samples captured since capturing was last started."""
        return tuple(self._session_samples)

    def _set_status(self, status: str):
        self._status = status
        self.status_changed.emit(status)

    def _report(self, error: CaptureError):
        self.last_error = error
        message = self.i18n.get_string(error.message_key, **error.kwargs)
        if self.debug_mode:
            print(f"DEBUG: {type(error).__name__}: {message}")
        self.validation_failed.emit(message)

    def _check_can_capture(self):
        if self.permission_check is not None and not self.permission_check():
            raise PermissionDeniedError(reason="location and WiFi access are required")
        floor = self.registry.current
        if floor is None:
            raise NoCurrentFloorError()
        if floor.tracker.marker_position is None:
            raise NoMarkerPlacedError()

    def start_capturing(self) -> bool:
        """
        Start the periodic capture timer.

        Returns:
            True if capturing is active, False if a precondition failed (the
            reason is emitted through validation_failed and kept in last_error)
        """
        if self._capturing:
            return True
        try:
            self._check_can_capture()
        except CaptureError as e:
            self._report(e)
            return False

        self.last_error = None
        self._capturing = True
        self._session_samples = []
        self.timer.start(self.settings.scan_interval_ms)
        self._set_status(self.i18n.get_string("status_capturing"))
        if self.debug_mode:
            print(f"DEBUG: Capturing started every {self.settings.scan_interval_ms} ms")
        return True

    def stop_capturing(self):
        """Stop the capture timer. No tick runs after this returns."""
        self.timer.stop()
        if self._capturing:
            self._capturing = False
            self._set_status(self.i18n.get_string("status_idle"))
            if self.debug_mode:
                print(f"DEBUG: Capturing stopped after {len(self._session_samples)} samples")

    def capture_tick(self) -> Optional[Sample]:
        """
        Scan once and record a sample at the current marker position.

        Scan failures skip the tick and leave capturing active; a permission
        failure stops capturing.

        Returns:
            The captured Sample, or None if this tick produced no sample
        """
        if not self._capturing:
            return None
        floor = self.registry.current
        if floor is None or floor.tracker.marker_position is None:
            return None
        x, y = floor.tracker.marker_position

        self._set_status(self.i18n.get_string("status_scanning"))
        try:
            readings = self.scanner.scan()
        except ScanPermissionError as e:
            self.stop_capturing()
            self._set_status(self.i18n.get_string("status_error"))
            self._report(PermissionDeniedError(reason=str(e)))
            return None
        except WiFiScanError as e:
            self.last_error = e
            print(f"Warning: {self.i18n.get_string('scan_failed', reason=e)}")
            self._set_status(self.i18n.get_string("status_error"))
            return None

        if not readings:
            self._set_status(self.i18n.get_string("status_no_networks"))
            return None

        ranging_results = []
        if any(reading.is_rtt_responder for reading in readings):
            try:
                ranging_results = self.scanner.range_responders(readings)
            except WiFiScanError as e:
                if self.debug_mode:
                    print(f"DEBUG: RTT ranging failed, falling back to RSSI: {e}")

        measurement = select_measurement(readings, ranging_results)
        sample = Sample(x, y, measurement.strength, distance=measurement.distance, quality=measurement.quality)
        try:
            self.registry.add_sample(floor.floor_id, sample)
        except ValueError as e:
            self.last_error = e
            print(f"Warning: Sample rejected: {e}")
            self._set_status(self.i18n.get_string("status_error"))
            return None

        self._session_samples.append(sample)
        if measurement.distance is not None:
            status = self.i18n.get_string("status_signal_distance", strength=f"{measurement.strength:g}",
                                          distance=f"{measurement.distance:.2f}")
        else:
            status = self.i18n.get_string("status_signal", strength=f"{measurement.strength:g}")
        self._set_status(status)

        if self.debug_mode:
            print(f"DEBUG: Captured {sample} on floor '{floor.floor_id}'")
        self.sample_captured.emit(sample)
        return sample

    def capture_now(self) -> Optional[Sample]:
        """Add a data point immediately instead of waiting for the next tick."""
        if not self._capturing:
            self._report(NotCapturingError())
            return None
        return self.capture_tick()

    # --- Floors and settings -----------------------------------------------

    def select_floor(self, floor_id):
        """Switch the current floor. Capturing stops, markers stay per floor."""
        self.stop_capturing()
        return self.registry.select(floor_id)

    def clear_floor(self, floor_id):
        self.registry.clear_samples(floor_id)
        self._cell_cache.pop(floor_id, None)

    def apply_settings(self, settings: SurveySettings):
        """
        Apply a new settings snapshot to the running session.
        Heatmaps are rebuilt lazily with the new parameters.
        """
        generator = self._build_generator(settings)
        self.settings = settings
        self.generator = generator
        self._cell_cache.clear()
        self.registry.validate_bounds = settings.validate_bounds
        for floor in self.registry:
            floor.tracker.set_sensitivity(settings.sensitivity)

        self.timer.setInterval(settings.scan_interval_ms)
        if self.location_stream is not None:
            self.location_stream.set_high_accuracy(settings.high_accuracy)
        self.i18n.set_language(settings.language)
        if self.debug_mode:
            print(f"DEBUG: Settings applied: {settings.to_dict()}")

    # --- Rendering ---------------------------------------------------------

    def render_model(self, floor_id=None) -> Optional[RenderModel]:
        """
        Build the renderer input for a floor (the current one by default).
        Cells are recomputed only when the floor's samples changed.
        """
        floor = self.registry.get(floor_id) if floor_id is not None else self.registry.current
        if floor is None:
            return None

        version = floor.samples.version
        cached = self._cell_cache.get(floor.floor_id)
        if cached is None or cached[0] != version:
            cells = self.generator.rasterize(floor.dimensions, floor.samples.all())
            self._cell_cache[floor.floor_id] = (version, cells)
        else:
            cells = cached[1]

        return RenderModel(floor.dimensions, list(cells), floor.tracker.marker_position)
