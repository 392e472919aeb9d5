#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# -----------------------------------------------------------------------------
# WiFi Heatmap
#
# main.py
#
# Description:
# Entry point for a headless WiFi heatmap survey. Loads configuration, sets up
# internationalization, walks a simulated GPS track across a floor plan while
# capturing simulated scans, and prints the resulting heatmap.
# -----------------------------------------------------------------------------

import argparse
import os
import sys

import numpy as np
from PyQt5.QtCore import QCoreApplication, QTimer

from wifi_heatmap.capture_session import CaptureSession
from wifi_heatmap.color_mapper import normalize_strength
from wifi_heatmap.config_manager import ConfigManager, SurveySettings
from wifi_heatmap.floor_registry import FloorPlanRegistry, FloorPlanImageError, load_floor_plan_image
from wifi_heatmap.i18n_manager import I18nManager
from wifi_heatmap.location_service import SimulatedLocationStream, walk_waypoints
from wifi_heatmap.project_manager import ProjectManager
from wifi_heatmap.scan_simulator import ScanSimulator

START_POSITION = (47.6205, -122.3493)


def _parse_args(argv):
    parser = argparse.ArgumentParser(description="Run a simulated WiFi heatmap survey.")
    parser.add_argument("--duration", type=float, default=30.0, help="Survey length in seconds")
    parser.add_argument("--floor-image", help="Floor plan image; a blank 500x500 floor is used if omitted")
    parser.add_argument("--scan-interval", type=int, help="Capture interval in milliseconds")
    parser.add_argument("--bearing", type=float, default=45.0, help="Walking direction in degrees, 0 is north")
    parser.add_argument("--seed", type=int, default=7, help="Random seed of the scan simulator")
    parser.add_argument("--save", help="Save the survey to this .whm file")
    return parser.parse_args(argv)


def print_heatmap(session, out=sys.stdout):
    """Print the current floor's strength grid with one character per cell."""
    floor = session.registry.current
    grid = session.generator.strength_grid(floor.dimensions, floor.samples.all())
    for row in grid:
        line = []
        for strength in row:
            if np.isnan(strength):
                line.append(" ")
            else:
                normalized = normalize_strength(strength)
                line.append("#" if normalized > 0.7 else "+" if normalized > 0.4 else ".")
        out.write("".join(line).rstrip() + "\n")


def main(argv=None):
    """
    Main entry point for the WiFi heatmap survey.
    Initializes configuration and i18n, runs the simulated survey on the Qt
    event loop and prints a summary when the survey ends.
    """
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    app = QCoreApplication(sys.argv[:1])

    # Set WIFI_HEATMAP_DEBUG=1 (or True/true) in your environment to enable debug logging.
    debug_mode = os.environ.get("WIFI_HEATMAP_DEBUG", "0").lower() in ("1", "true")
    if debug_mode:
        print("DEBUG: WIFI_HEATMAP_DEBUG environment variable detected. Debug mode is ON.")

    home_dir = os.path.expanduser("~")
    config_file_path = os.path.join(home_dir, ".WiFi-Heatmap", "config.json")
    if debug_mode:
        print(f"DEBUG: Configuration file path: {config_file_path}")

    config_manager = ConfigManager(config_file_path)
    settings = SurveySettings.from_config(config_manager)
    if args.scan_interval:
        settings = SurveySettings.from_dict(dict(settings.to_dict(), scan_interval_ms=args.scan_interval))
    i18n_manager = I18nManager(settings.language, debug_mode=debug_mode)

    registry = FloorPlanRegistry(validate_bounds=settings.validate_bounds, debug_mode=debug_mode)
    if args.floor_image:
        try:
            registry.add_floor("Floor 1", plan_image=load_floor_plan_image(args.floor_image))
        except FloorPlanImageError as e:
            print(f"Error: {e}")
            return 1
    else:
        registry.create_blank_floor()
    floor = registry.current

    steps = int(args.duration) + 1
    location_stream = SimulatedLocationStream(
        walk_waypoints(START_POSITION, args.bearing, step_m=0.4, steps=steps),
        debug_mode=debug_mode
    )
    scanner = ScanSimulator(
        position_provider=lambda: registry.current.tracker.marker_position,
        floor_width=floor.dimensions.width,
        floor_height=floor.dimensions.height,
        failure_rate=0.05,
        seed=args.seed
    )

    session = CaptureSession(registry, scanner, location_stream, settings=settings,
                             i18n_manager=i18n_manager, debug_mode=debug_mode)
    session.validation_failed.connect(lambda message: print(f"Error: {message}"))
    if debug_mode:
        session.status_changed.connect(lambda status: print(f"DEBUG: Status: {status}"))

    with session:
        location_stream.advance()  # First fix, so the marker can be anchored
        session.place_marker(floor.dimensions.width * 0.2, floor.dimensions.height * 0.8)
        if not session.start_capturing():
            return 1
        QTimer.singleShot(int(args.duration * 1000), app.quit)
        app.exec_()

    model = session.render_model()
    summary = session.generator.coverage_summary(floor.samples.all())
    print(f"Floor '{floor.floor_id}' ({floor.dimensions}): {summary['count']} samples, "
          f"{len(model.cells)} heatmap cells")
    if summary['count']:
        print(f"Signal min/mean/max: {summary['min']:.0f} / {summary['mean']:.1f} / {summary['max']:.0f} dBm")
    if model.marker_position:
        print(f"Marker at ({model.marker_position[0]:.1f}, {model.marker_position[1]:.1f})")
    print_heatmap(session)

    if args.save:
        if ProjectManager.save_project(registry, args.save):
            print(f"Survey saved to {args.save}")
        else:
            return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
