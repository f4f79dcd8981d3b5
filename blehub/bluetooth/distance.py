"""
Distance estimation for iBeacon proximity tags.

Provides iBeacon frame parsing and the empirical path-loss curve used to
turn RSSI and a calibrated 1 m power into meters.
"""

from __future__ import annotations

import math
from typing import Optional

from .constants import (
    APPLE_COMPANY_ID,
    DISTANCE_UNKNOWN,
    IBEACON_DATA_LENGTH,
    IBEACON_SUBTYPE,
    IBEACON_SUBTYPE_LENGTH,
)
from .models import ProximityTag

# Empirical curve coefficients for ratios >= 1
CURVE_COEFFICIENT = 0.89976
CURVE_EXPONENT = 7.7095
CURVE_OFFSET = 0.111


def estimate_distance(rssi: int, measured_power: int) -> float:
    """
    Estimate distance to a beacon in meters.

    Args:
        rssi: Received signal strength (dBm).
        measured_power: Calibrated RSSI at 1 meter (dBm).

    Returns:
        Distance truncated to one decimal place, or -1 when rssi is 0.
    """
    if rssi == 0 or measured_power == 0:
        return DISTANCE_UNKNOWN

    ratio = rssi / measured_power
    if ratio < 1.0:
        distance = ratio ** 10
    else:
        distance = CURVE_COEFFICIENT * ratio ** CURVE_EXPONENT + CURVE_OFFSET

    return math.trunc(distance * 10) / 10


def is_ibeacon(manufacturer_data: Optional[bytes]) -> bool:
    """Check whether manufacturer data (company id included) is an iBeacon frame."""
    if not manufacturer_data or len(manufacturer_data) < IBEACON_DATA_LENGTH:
        return False
    return (
        int.from_bytes(manufacturer_data[0:2], 'little') == APPLE_COMPANY_ID
        and manufacturer_data[2] == IBEACON_SUBTYPE
        and manufacturer_data[3] == IBEACON_SUBTYPE_LENGTH
    )


def parse_ibeacon(manufacturer_data: Optional[bytes]) -> Optional[ProximityTag]:
    """
    Parse an iBeacon frame.

    Layout: company id (2), subtype (1), length (1), proximity uuid (16),
    major BE (2), minor BE (2), measured power int8 (1).
    """
    if not is_ibeacon(manufacturer_data):
        return None

    return ProximityTag(
        uuid=manufacturer_data[4:20].hex(),
        major=int.from_bytes(manufacturer_data[20:22], 'big'),
        minor=int.from_bytes(manufacturer_data[22:24], 'big'),
        measured_power=int.from_bytes(manufacturer_data[24:25], 'big', signed=True),
    )
