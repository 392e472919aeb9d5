#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# -----------------------------------------------------------------------------
# WiFi Heatmap
#
# wifi_heatmap/wifi_scanner.py
#
# Description:
# Live WiFi scanning module that executes a platform scan script, parses its
# JSON output into AccessPointReading objects, and reduces one scan (plus
# optional RTT ranging) into a single measurement for a heatmap sample.
# -----------------------------------------------------------------------------

import os
import platform
import subprocess
import json
from typing import List, Optional, Sequence

from .data_models import AccessPointReading, HeatmapError, RangingResult


class WiFiScanError(HeatmapError):
    """Exception raised for WiFi scanning errors."""
    pass


class ScanPermissionError(WiFiScanError):
    """Raised when the platform refuses the scan for lack of permission."""
    pass


class Measurement:
    """
    The signal figures extracted from one scan tick.
    """
    def __init__(self, strength, distance=None, quality=0.0):
        self.strength = strength
        self.distance = distance  # meters, only when RTT ranging succeeded
        self.quality = quality


def calculate_signal_quality(rssi: float, distance_mm: float) -> float:
    """
    Combine RSSI and ranged distance into a quality between 0 (worst) and 1 (best).
    RSSI is normalized over -100..-30 dBm, distance over 0..50 m (closer is better).
    """
    normalized_rssi = min(max((rssi + 100) / 70.0, 0.0), 1.0)
    distance_m = distance_mm / 1000.0
    normalized_distance = 1.0 - min(max(distance_m / 50.0, 0.0), 1.0)
    return (0.7 * normalized_rssi) + (0.3 * normalized_distance)


def select_measurement(readings: Sequence[AccessPointReading],
                       ranging_results: Sequence[RangingResult] = ()) -> Optional[Measurement]:
    """
    Reduce a scan to the measurement recorded for the current marker position.

    When any reading is an RTT responder and ranging returned results, the
    result with the best signal quality wins. Otherwise the strongest reading
    is used, without distance.

    Returns:
        Measurement, or None when the scan found no networks
    """
    if not readings:
        return None

    if any(reading.is_rtt_responder for reading in readings) and ranging_results:
        best = ranging_results[0]
        for result in ranging_results[1:]:
            if result.signal_quality > best.signal_quality:
                best = result
        return Measurement(best.rssi, best.distance_m, best.signal_quality)

    strongest = readings[0]
    for reading in readings[1:]:
        if reading.level > strongest.level:
            strongest = reading
    return Measurement(strongest.level, None, 0.0)


class WiFiScanner:
    """
    Live WiFi scanner that executes platform-specific scripts for scanning.

    Supports:
    - Linux: Shell script using nmcli
    - Any platform: a custom command printing the same JSON list
    """

    def __init__(self, command: Optional[List[str]] = None, timeout: int = 30, debug_mode=False):
        """
        Initialize the WiFi scanner with platform detection.

        Args:
            command: Command to run instead of the bundled platform script
            timeout: Maximum time to wait for scan completion (seconds)
            debug_mode: Print debug traces
        """
        self.platform = platform.system()
        self.script_dir = self._get_script_directory()
        self.script_path = os.path.join(self.script_dir, "get-wlans.sh")
        self.command = command
        self.timeout = timeout
        self.debug_mode = debug_mode

    def _get_script_directory(self) -> str:
        """Get the absolute path to the scripts directory."""
        current_dir = os.path.dirname(os.path.abspath(__file__))
        return os.path.join(os.path.dirname(current_dir), 'scripts')

    def _build_command(self) -> List[str]:
        if self.command:
            return list(self.command)
        if self.platform == "Windows":
            raise WiFiScanError("No bundled scan script for Windows; configure a scan command")
        if not os.path.exists(self.script_path):
            raise WiFiScanError(f"Shell script not found: {self.script_path}")
        return ["/bin/bash", self.script_path]

    def scan(self) -> List[AccessPointReading]:
        """
        Perform a WiFi scan and return list of detected access points.

        Raises:
            ScanPermissionError: If the platform denied the scan
            WiFiScanError: If scanning fails or times out
        """
        cmd = self._build_command()
        if self.debug_mode:
            print(f"DEBUG: Executing: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True
            )
            scan_data = json.loads(result.stdout)
        except UnicodeDecodeError as e:
            raise WiFiScanError(f"Scan output is not valid UTF-8: {e}")
        except json.JSONDecodeError as e:
            raise WiFiScanError(f"Failed to parse scan output as JSON: {e}")
        except subprocess.TimeoutExpired:
            raise WiFiScanError(f"WiFi scan timed out after {self.timeout} seconds")
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").lower()
            if e.returncode == 126 or "permission denied" in stderr or "not authorized" in stderr:
                raise ScanPermissionError(f"WiFi scan not permitted: {e.stderr}")
            raise WiFiScanError(f"Scan script failed with exit code {e.returncode}: {e.stderr}")
        except OSError as e:
            raise WiFiScanError(f"Unable to run scan command: {e}")

        readings = self._parse_scan_data(scan_data)
        if self.debug_mode:
            print(f"DEBUG: Scan completed. Found {len(readings)} access points.")
        return readings

    def range_responders(self, readings: Sequence[AccessPointReading]) -> List[RangingResult]:
        """
        Run RTT ranging against the 802.11mc responders in a scan.
        Desktop platforms expose no ranging API, so no results are returned.
        """
        return []

    def _parse_scan_data(self, scan_data) -> List[AccessPointReading]:
        """
        Parse scan JSON data into AccessPointReading objects.

        Args:
            scan_data: List of dictionaries from scan script output

        Returns:
            List of AccessPointReading objects
        """
        if not isinstance(scan_data, list):
            raise WiFiScanError(f"Expected a JSON list from the scan script, got {type(scan_data).__name__}")

        readings = []
        for entry in scan_data:
            try:
                # Handle different script output formats
                ssid = entry.get("SSID", entry.get("ssid", "Unknown"))
                bssid = entry.get("BSSID", entry.get("bssid"))
                level = int(entry.get("RSSI", entry.get("level", -100)))
                frequency = entry.get("Frequency", entry.get("frequency"))
                quality = entry.get("Quality", entry.get("quality"))
                distance = entry.get("distance")
                is_rtt_responder = bool(entry.get("is80211mcResponder", False))

                readings.append(AccessPointReading(
                    ssid=ssid,
                    level=level,
                    bssid=bssid,
                    frequency=int(frequency) if frequency else None,
                    distance=distance,
                    quality=quality,
                    is_rtt_responder=is_rtt_responder
                ))
            except (AttributeError, TypeError, ValueError) as e:
                print(f"Warning: Failed to parse AP entry {entry}: {e}")
                continue

        return readings

    def is_available(self) -> bool:
        """
        Check if WiFi scanning is available on this platform.

        Returns:
            True if scanning should work, False otherwise
        """
        if self.command:
            return True
        if self.platform == "Windows" or not os.path.exists(self.script_path):
            return False
        try:
            subprocess.run(["/bin/bash", "--version"], capture_output=True, timeout=5)
            return True
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return False
