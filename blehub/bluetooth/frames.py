"""
Decoders for vendor specific advertisement payloads.

Each decoder takes the raw service data bytes and returns a dict of named
readings, or None when the payload is not a frame it understands (wrong
frame type or too short). Decoders never raise on short input.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .constants import (
    EDDYSTONE_URL_FRAME,
    EDDYSTONE_URL_SCHEMES,
    UNIT_JIN,
    UNIT_KG,
    UNIT_LBS,
    UNIT_UNKNOWN,
    XIAOMI_BATTERY,
    XIAOMI_COMPOSITE_TYPE_PRODUCT,
    XIAOMI_CONDUCTIVITY,
    XIAOMI_HUMIDITY,
    XIAOMI_ILLUMINANCE,
    XIAOMI_MOISTURE,
    XIAOMI_PRODUCT_NAMES,
    XIAOMI_RECORD_OFFSET,
    XIAOMI_SHORT_HEADER_PRODUCTS,
    XIAOMI_SHORT_RECORD_OFFSET,
    XIAOMI_SWITCH_TEMPERATURE,
    XIAOMI_TEMPERATURE,
    XIAOMI_TEMPERATURE_HUMIDITY,
)


def _u16le(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + 2], 'little')


def _s16le(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + 2], 'little', signed=True)


def _u16be(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + 2], 'big')


def _wrap_signed_byte(value: float) -> float:
    """Apply the single byte two's complement correction used by temperatures."""
    if value >= 128:
        value -= 256
    return value


def _is_bit_set(value: int, bit: int) -> bool:
    return (value & (1 << bit)) != 0


def _round_weight(value: float) -> float:
    """Round to 2 decimals, exact binary halves round up."""
    return float(Decimal(value).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


# =============================================================================
# STANDARD SERVICES AND CHARACTERISTICS
# =============================================================================

def parse_temperature(data: bytes) -> Optional[dict]:
    """Temperature service (0x1809): centi-degrees, or whole degrees in one byte."""
    if not data:
        return None
    temp = _u16le(data, 0) / 100 if len(data) == 2 else data[0]
    return {'temp': _wrap_signed_byte(temp)}


def parse_battery(data: bytes) -> Optional[dict]:
    """Battery service (0x180f): percentage."""
    if not data:
        return None
    return {'battery': data[0]}


def parse_pressure(data: bytes) -> Optional[dict]:
    """Pressure characteristic (0x2a6d): uint32 in 0.1 Pa."""
    if len(data) < 4:
        return None
    return {'pressure': int.from_bytes(data[:4], 'little') / 10}


def parse_temperature_characteristic(data: bytes) -> Optional[dict]:
    """Temperature characteristic (0x2a6e): signed, 0.01 degrees C."""
    if len(data) < 2:
        return None
    return {'temp': _s16le(data, 0) / 100}


def parse_humidity(data: bytes) -> Optional[dict]:
    """Humidity characteristic (0x2a6f) in 0.01 %."""
    if len(data) < 2:
        return None
    return {'humidity': _u16le(data, 0) / 100}


def parse_alert_level(data: bytes) -> Optional[dict]:
    if not data:
        return None
    return {'alert': data[0]}


def parse_digital(data: bytes) -> Optional[dict]:
    if not data:
        return None
    return {'digital': data[0] != 0}


def parse_analog(data: bytes) -> Optional[dict]:
    if not data:
        return None
    value = data[0]
    if len(data) > 1:
        value |= data[1] << 8
    return {'analog': value}


def parse_unclassified(data: bytes) -> dict:
    """0xffff is not a standard service, the bytes are forwarded as 'data'."""
    if len(data) == 1:
        return {'data': data[0]}
    return {'data': ','.join(str(b) for b in data)}


# =============================================================================
# THERMOMETERS
# =============================================================================

def parse_atc_thermometer(data: bytes) -> Optional[dict]:
    """
    Custom firmware thermometer frame (0x181a).

    pvvx layout (15+ bytes): MAC[0:6], temp LE s16 x0.01, humidity LE x0.01,
    battery mV LE, battery %, counter, flags.
    atc1441 layout (13 bytes): MAC[0:6], temp BE x0.1, humidity %, battery %,
    battery mV BE.
    """
    if len(data) >= 15:
        voltage = _u16le(data, 10)
        return {
            'temp': _u16le(data, 6) / 100,
            'humidity': _u16le(data, 8) / 100,
            # some firmware revisions already report volts
            'battery_voltage': voltage / 1000 if voltage > 1000 else voltage,
            'battery': data[12],
            'counter': data[13],
            'flg': data[14],
        }
    if len(data) == 13:
        return {
            'temp': _u16be(data, 6) / 10,
            'humidity': data[8],
            'battery': data[9],
            'battery_voltage': _u16be(data, 10) / 1000,
        }
    return None


# =============================================================================
# SCALES
# =============================================================================

def parse_scale_v2(data: bytes) -> Optional[dict]:
    """Body composition scale (0x181b), Xiaomi Mi Scale v2 frame."""
    if len(data) < 4:
        return None

    weight = _u16le(data, len(data) - 2) / 100
    flags = data[0]
    if _is_bit_set(flags, 4):
        unit = UNIT_JIN
    elif flags & 0x0F == 0x03:
        unit = UNIT_LBS
    elif flags & 0x0F == 0x02:
        unit = UNIT_KG
        weight = weight / 2
    else:
        unit = UNIT_UNKNOWN

    status = data[1]
    return {
        'weight': _round_weight(weight),
        'unit': unit,
        'impedance': _u16le(data, len(data) - 4),
        'isStabilized': _is_bit_set(status, 5),
        'loadRemoved': _is_bit_set(status, 7),
        'impedanceMeasured': _is_bit_set(status, 1),
    }


def parse_scale_v1(data: bytes) -> Optional[dict]:
    """
    Weight scale (0x181d), Xiaomi Mi Scale v1 frame.

    Status byte bits: 0 lbs, 4 jin, 5 stabilized, 7 weight removed.
    Followed by weight LE x0.01 and a timestamp.
    """
    if len(data) < 10:
        return None

    weight = _u16le(data, 1) * 0.01
    status = data[0]
    if _is_bit_set(status, 0):
        unit = UNIT_LBS
    elif _is_bit_set(status, 4):
        unit = UNIT_JIN
    else:
        unit = UNIT_KG
        weight = weight / 2

    return {
        'weight': _round_weight(weight),
        'unit': unit,
        'isStabilized': _is_bit_set(status, 5),
        'loadRemoved': _is_bit_set(status, 7),
        'year': _u16le(data, 3),
        'month': data[5],
        'day': data[6],
        'hour': data[7],
        'minute': data[8],
        'second': data[9],
    }


# =============================================================================
# XIAOMI MIBEACON
# =============================================================================

def _parse_xiaomi_object(object_type, value: bytes, length: int, readings: dict) -> None:
    """Decode one MiBeacon object into readings. Short values are skipped."""
    if object_type == XIAOMI_SWITCH_TEMPERATURE:
        if len(value) >= 2:
            readings['switch'] = value[0] != 0
            readings['temp'] = value[1]
    elif object_type == XIAOMI_TEMPERATURE:
        if len(value) >= 2:
            readings['temp'] = _s16le(value, 0) / 10
    elif object_type == XIAOMI_HUMIDITY:
        if len(value) >= 2:
            readings['humidity'] = _u16le(value, 0) / 10
    elif object_type == XIAOMI_BATTERY:
        if len(value) >= 1:
            readings['battery'] = value[0]
    elif object_type == XIAOMI_TEMPERATURE_HUMIDITY:
        if len(value) >= 4:
            readings['temp'] = _s16le(value, 0) / 10
            readings['humidity'] = _u16le(value, 2) / 10
    elif object_type == XIAOMI_CONDUCTIVITY:
        if length == 2 and len(value) >= 2:
            readings['conductivity'] = _u16le(value, 0)
    elif object_type == XIAOMI_ILLUMINANCE:
        if length == 3 and len(value) >= 3:
            readings['illuminance'] = int.from_bytes(value[:3], 'little')
    elif object_type == XIAOMI_MOISTURE:
        if length == 1 and len(value) >= 1:
            readings['moisture'] = value[0]


def parse_xiaomi(data: bytes) -> Optional[dict]:
    """
    Xiaomi MiBeacon service data (0xfe95).

    Header: frame control (LE u16), product id (LE u16), frame counter. The
    object record follows the MAC and capability fields; its offset depends
    on the product. Object layout: type, declared length at +2, value at +3.
    """
    if len(data) < 5:
        return None

    product_id = _u16le(data, 2)
    readings = {
        'frameControl': _u16le(data, 0),
        'productId': product_id,
        'counter': data[4],
    }
    if product_id in XIAOMI_PRODUCT_NAMES:
        readings['productName'] = XIAOMI_PRODUCT_NAMES[product_id]

    if product_id in XIAOMI_SHORT_HEADER_PRODUCTS:
        offset = XIAOMI_SHORT_RECORD_OFFSET
    else:
        offset = XIAOMI_RECORD_OFFSET

    # Header only, no object attached
    if len(data) < offset + 3:
        return readings

    if product_id == XIAOMI_COMPOSITE_TYPE_PRODUCT:
        object_type = f'{data[offset]}-{data[offset + 1]}'
    else:
        object_type = data[offset]

    _parse_xiaomi_object(object_type, data[offset + 3:], data[offset + 2], readings)
    return readings


# =============================================================================
# WEARABLES
# =============================================================================

def parse_step_counter(data: bytes) -> Optional[dict]:
    """Mi Band style step counter (0xfee0), optional heart rate at byte 4."""
    if len(data) < 2:
        return None
    readings = {'steps': _u16le(data, 0)}
    if len(data) == 5:
        readings['heartRate'] = data[4]
    return readings


# =============================================================================
# EDDYSTONE
# =============================================================================

def parse_eddystone(data: bytes) -> Optional[dict]:
    """Eddystone (0xfeaa). Only URL frames are decoded."""
    if len(data) < 3 or data[0] != EDDYSTONE_URL_FRAME:
        return None

    rssi = _wrap_signed_byte(data[1])
    url_type = data[2]
    prefix = EDDYSTONE_URL_SCHEMES[url_type] if url_type < len(EDDYSTONE_URL_SCHEMES) else ''
    return {
        'url': prefix + data[3:].decode('latin-1'),
        'rssi@1m': rssi,
    }
