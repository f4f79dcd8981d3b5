"""
Bluetooth-specific constants for the advertisement bridge.
"""

from __future__ import annotations

# =============================================================================
# TIMING
# =============================================================================

# Identical service data is re-published at most once per this window (seconds)
PAYLOAD_REPEAT_INTERVAL = 60

# Cumulative JSON states kept, least recently updated dropped first
MAX_CUMULATIVE_STATES = 1000

# Presence sweep period (seconds)
PRESENCE_CHECK_INTERVAL = 1.0

# Settle delay before the first scan start attempt (seconds)
SCAN_START_DELAY = 1.0

# Retry period for a scanner that failed to start (seconds)
SCAN_RETRY_INTERVAL = 1.0

# =============================================================================
# PRESENCE STATES
# =============================================================================

STATE_HOME = 'home'
STATE_NOT_HOME = 'not_home'

STATUS_ONLINE = 'online'
STATUS_OFFLINE = 'offline'

PRESENCE_PRESENT = '1'
PRESENCE_ABSENT = '0'

# Distance value reported when it cannot be estimated
DISTANCE_UNKNOWN = -1

# =============================================================================
# UUIDS
# =============================================================================

# Bluetooth base UUID; 16-bit UUIDs occupy characters 4-8
BLUETOOTH_BASE_UUID_SUFFIX = '-0000-1000-8000-00805f9b34fb'

# =============================================================================
# MANUFACTURERS
# =============================================================================

APPLE_COMPANY_ID = 0x004C
ESPRUINO_COMPANY_ID = 0x0590

# iBeacon layout inside Apple manufacturer data (company id included)
IBEACON_SUBTYPE = 0x02
IBEACON_SUBTYPE_LENGTH = 0x15
IBEACON_DATA_LENGTH = 25

# =============================================================================
# ATTRIBUTE NAMES
# =============================================================================

ATTRIBUTE_NAMES = {
    # https://www.bluetooth.com/specifications/gatt/services/
    '1801': 'Generic Attribute',
    '1809': 'Temperature',
    '180a': 'Device Information',
    '180f': 'Battery Service',
    # https://github.com/atc1441/ATC_MiThermometer#advertising-format-of-the-custom-firmware
    '181a': 'ATC_MiThermometer',
    '181b': 'Body Composition',
    '181c': 'User Data',
    '181d': 'Weight Scale',
    # https://www.bluetooth.com/specifications/gatt/characteristics/
    '2a2b': 'Current Time',
    '2a6d': 'Pressure',
    '2a6e': 'Temperature',
    '2a6f': 'Humidity',
    # https://www.bluetooth.com/specifications/assigned-numbers/16-bit-uuids-for-members/
    'fe0f': 'Philips',
    'fe95': 'Xiaomi',
    'fe9f': 'Google',
    'feaa': 'Google Eddystone',

    '6e400001b5a3f393e0a9e50e24dcca9e': 'nus',
    '6e400002b5a3f393e0a9e50e24dcca9e': 'nus_tx',
    '6e400003b5a3f393e0a9e50e24dcca9e': 'nus_rx',
}

# =============================================================================
# XIAOMI MIBEACON
# =============================================================================

XIAOMI_PRODUCT_NAMES = {
    0x005D: 'HHCCPOT002',
    0x0098: 'HHCCJCY01',
    0x01D8: 'Stratos',
    0x02DF: 'JQJCY01YM',
    0x03B6: 'YLKG08YL',
    0x03BC: 'GCLS002',
    0x040A: 'WX08ZM',
    0x045B: 'LYWSD02',
    0x055B: 'LYWSD03MMC',
    0x0576: 'CGD1',
    0x0347: 'CGG1',
    0x01AA: 'LYWSDCGQ',
    0x03DD: 'MUE4094RT',
    0x07F6: 'MJYD02YLA',
    0x0387: 'MHOC401',
    0x0113: 'YM-K1501EU',
}

# Products whose object record starts one byte earlier
XIAOMI_SHORT_HEADER_PRODUCTS = (0x01AA, 0x055B)

# Product whose object type is reported as a two byte composite key
XIAOMI_COMPOSITE_TYPE_PRODUCT = 0x0113

XIAOMI_RECORD_OFFSET = 12
XIAOMI_SHORT_RECORD_OFFSET = 11

# Object types
XIAOMI_SWITCH_TEMPERATURE = '5-16'
XIAOMI_TEMPERATURE = 0x04
XIAOMI_HUMIDITY = 0x06
XIAOMI_ILLUMINANCE = 0x07
XIAOMI_MOISTURE = 0x08
XIAOMI_CONDUCTIVITY = 0x09
XIAOMI_BATTERY = 0x0A
XIAOMI_TEMPERATURE_HUMIDITY = 0x0D

# =============================================================================
# SCALES
# =============================================================================

UNIT_KG = 'kg'
UNIT_LBS = 'lbs'
UNIT_JIN = 'jin'
UNIT_UNKNOWN = '???'

# =============================================================================
# EDDYSTONE
# =============================================================================

EDDYSTONE_URL_FRAME = 0x10

EDDYSTONE_URL_SCHEMES = [
    'http://www.',
    'https://www.',
    'http://',
    'https://',
]
