#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# -----------------------------------------------------------------------------
# WiFi Heatmap
#
# wifi_heatmap/scan_simulator.py
#
# Description:
# Simulated WiFi scanner. Produces spatially consistent scan results from a
# set of simulated access points placed on the floor plan, so a survey can be
# run without radio hardware.
# -----------------------------------------------------------------------------

import math
import random
from typing import Callable, List, Optional, Sequence, Tuple

from .data_models import AccessPointReading, RangingResult
from .wifi_scanner import WiFiScanError, calculate_signal_quality


class ScanSimulator:
    """
    Generates simulated scan results using a log-distance path loss model.

    The scanner position is read from ``position_provider`` on every scan,
    typically the current marker position of the active floor.
    """

    # Simulated deployment - positions are fractions of the floor size
    PRIMARY_NETWORKS = [
        {"ssid": "WLANS", "bssid": "9C-A2-F4-10-20-8E", "rel_x": 0.25, "rel_y": 0.25,
         "base_power": -30, "frequency": 2412, "rtt": False},
        {"ssid": "WLANS", "bssid": "9C-A2-F4-10-20-8F", "rel_x": 0.75, "rel_y": 0.30,
         "base_power": -34, "frequency": 5500, "rtt": True},
        {"ssid": "WLANS-Guest", "bssid": "A6-A2-F4-10-21-8E", "rel_x": 0.50, "rel_y": 0.75,
         "base_power": -32, "frequency": 2437, "rtt": False},
    ]

    BACKGROUND_NETWORKS = [
        "SpectrumSetup-78", "HomeBase", "DIRECT-AA-HP DeskJet 4200 series", "{Hidden}", "Public_Access"
    ]

    def __init__(self, position_provider: Callable[[], Optional[Tuple[float, float]]],
                 floor_width=500, floor_height=500, meters_per_pixel=0.05,
                 path_loss_exponent=3.0, noise_db=2.0, failure_rate=0.0, seed=None):
        """
        Initialize the simulator.

        Args:
            position_provider: Returns the current (x, y) plan position, or None
            floor_width: Width of the floor plan in pixels
            floor_height: Height of the floor plan in pixels
            meters_per_pixel: Physical size of one plan pixel
            path_loss_exponent: Log-distance path loss exponent (3 is typical indoors)
            noise_db: Standard deviation of the gaussian noise added to each level
            failure_rate: Probability that a scan raises WiFiScanError
            seed: Random seed for reproducible results
        """
        self.position_provider = position_provider
        self.floor_width = floor_width
        self.floor_height = floor_height
        self.meters_per_pixel = meters_per_pixel
        self.path_loss_exponent = path_loss_exponent
        self.noise_db = noise_db
        self.failure_rate = failure_rate
        self.random = random.Random(seed)

        self.ap_locations = [
            dict(network, x=network["rel_x"] * floor_width, y=network["rel_y"] * floor_height)
            for network in self.PRIMARY_NETWORKS
        ]

    def _distance_m(self, ap, x, y) -> float:
        distance_pixels = math.hypot(x - ap["x"], y - ap["y"])
        return max(distance_pixels * self.meters_per_pixel, 1.0)

    def _level_at(self, ap, x, y) -> int:
        distance_m = self._distance_m(ap, x, y)
        path_loss = 10 * self.path_loss_exponent * math.log10(distance_m)
        level = ap["base_power"] - path_loss + self.random.gauss(0, self.noise_db)
        return int(round(max(-100, min(-20, level))))

    def scan(self) -> List[AccessPointReading]:
        """
        Simulate one scan at the current position.

        Raises:
            WiFiScanError: With probability failure_rate, to mimic throttled scans
        """
        if self.failure_rate and self.random.random() < self.failure_rate:
            raise WiFiScanError("Simulated scan throttled")

        position = self.position_provider()
        if position is None:
            return []
        x, y = position

        readings = []
        for ap in self.ap_locations:
            level = self._level_at(ap, x, y)
            if level <= -95:
                continue  # Out of range
            readings.append(AccessPointReading(
                ssid=ap["ssid"],
                level=level,
                bssid=ap["bssid"],
                frequency=ap["frequency"],
                is_rtt_responder=ap["rtt"]
            ))

        # A few weak neighbor networks appear at random
        for ssid in self.random.sample(self.BACKGROUND_NETWORKS, self.random.randint(0, 2)):
            readings.append(AccessPointReading(
                ssid=ssid,
                level=self.random.randint(-92, -80),
                bssid=f"AC-67-B2-{self.random.randint(0x10, 0xFF):02X}-{self.random.randint(0x10, 0xFF):02X}-01",
                frequency=self.random.choice([2412, 2437, 2462])
            ))

        return readings

    def range_responders(self, readings: Sequence[AccessPointReading]) -> List[RangingResult]:
        """Simulated RTT ranging against the responders present in a scan."""
        position = self.position_provider()
        if position is None:
            return []
        x, y = position

        results = []
        responders = {reading.bssid: reading for reading in readings if reading.is_rtt_responder}
        for ap in self.ap_locations:
            reading = responders.get(ap["bssid"])
            if reading is None:
                continue
            distance_mm = int(self._distance_m(ap, x, y) * 1000)
            results.append(RangingResult(
                bssid=ap["bssid"],
                rssi=reading.level,
                distance_mm=distance_mm,
                signal_quality=calculate_signal_quality(reading.level, distance_mm)
            ))
        return results
