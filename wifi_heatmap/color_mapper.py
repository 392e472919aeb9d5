#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# -----------------------------------------------------------------------------
# WiFi Heatmap
#
# wifi_heatmap/color_mapper.py
#
# Description:
# Maps signal strength to display colors for the heatmap overlay and the
# signal indicators.
# -----------------------------------------------------------------------------

from typing import List, Tuple

from PyQt5.QtGui import QColor


SCHEME_BANDS = "bands"
SCHEME_HSL = "hsl"


def normalize_strength(strength: float) -> float:
    """Normalize dBm into [0, 1], where -100 dBm is 0 and -30 dBm is 1."""
    normalized = (strength + 100) / 70
    return min(max(normalized, 0.0), 1.0)


class ColorMapper:
    """
    Maps signal strength (dBm) to a QColor.

    Two schemes are available:
    - "bands" (default): discrete strong / medium / weak colors
        - Green: normalized > 0.7 (Strong)
        - Blue: normalized > 0.4 (Medium)
        - Red: otherwise (Weak)
    - "hsl": continuous hue ramp from blue (weak) to red (strong)
    """

    # (lower normalized bound, label, color)
    SIGNAL_BANDS = [
        (0.7, "Strong", "#00C781"),
        (0.4, "Medium", "#33A1FD"),
        (None, "Weak", "#FF4949"),
    ]

    def __init__(self, scheme: str = SCHEME_BANDS):
        if scheme not in (SCHEME_BANDS, SCHEME_HSL):
            raise ValueError(f"Unknown color scheme: {scheme}")
        self.scheme = scheme

    def color_for(self, strength: float) -> QColor:
        normalized = normalize_strength(strength)
        if self.scheme == SCHEME_HSL:
            hue = (1 - normalized) * 240
            return QColor.fromHslF(hue / 360, 1.0, 0.5)

        for lower, _label, color in self.SIGNAL_BANDS:
            if lower is None or normalized > lower:
                return QColor(color)
        return QColor(self.SIGNAL_BANDS[-1][2])

    def legend(self) -> List[Tuple[str, QColor, str]]:
        """
        Legend entries for the discrete bands.

        Returns:
            List of (label, color, dBm range description) tuples, strongest first
        """
        entries = []
        upper_dbm = None
        for lower, label, color in self.SIGNAL_BANDS:
            lower_dbm = None if lower is None else lower * 70 - 100
            if upper_dbm is None:
                description = f"> {lower_dbm:g} dBm"
            elif lower_dbm is None:
                description = f"<= {upper_dbm:g} dBm"
            else:
                description = f"{lower_dbm:g} to {upper_dbm:g} dBm"
            entries.append((label, QColor(color), description))
            upper_dbm = lower_dbm
        return entries


def signal_quality_percent(dbm: float) -> float:
    """
    Convert dBm to a quality percentage.
    -50 dBm or higher is 100%, -100 dBm or lower is 0%, linear in between.
    """
    if dbm >= -50:
        return 100.0
    if dbm <= -100:
        return 0.0
    return 2 * (dbm + 100)


def signal_bars(quality: float) -> int:
    """Number of indicator arcs (0-3) to light for a quality percentage."""
    if quality >= 75:
        return 3
    if quality >= 40:
        return 2
    if quality >= 15:
        return 1
    return 0
