"""Unit tests for service data decoding."""

import pytest

from blehub.bluetooth.attributes import (
    HANDLERS,
    decode_attribute,
    lookup,
    normalize_uuid,
)
from blehub.bluetooth import frames


# =============================================================================
# SAMPLE PAYLOADS
# =============================================================================

# pvvx custom firmware: MAC, 23.45C, 56.78%, 2987mV, 87%, counter 5, flags 4
PVVX_SAMPLE = bytes.fromhex('a4c1381122332909') + bytes.fromhex('2e16') + bytes.fromhex('ab0b') + bytes([87, 5, 4])

# atc1441 firmware: MAC, 21.3C (BE 213), 45%, 90%, 2950mV (BE)
ATC_SAMPLE = bytes.fromhex('a4c138112233') + bytes.fromhex('00d5') + bytes([45, 90]) + bytes.fromhex('0b86') + bytes([7])

# LYWSDCGQ temperature+humidity object, offset 11: 21.5C, 45.2%
XIAOMI_TEMP_HUMIDITY = bytes.fromhex('5020aa01' + '01' + '112233445566' + '0d1004' + 'd700c401')


class TestDecodeAttribute:
    """Tests for the decode lookup chain."""

    def test_handler_result_returned(self):
        """A registered handler produces readings."""
        assert decode_attribute('180f', bytes([0x5A])) == {'battery': 90}

    def test_handler_without_result_passes_payload_through(self):
        """A handler that cannot decode returns the original payload object."""
        payload = bytes([0x00, 0x01])  # not an Eddystone URL frame
        assert decode_attribute('feaa', payload) is payload

    def test_generic_name_wraps_payload(self):
        """Known services without a handler are wrapped under their name."""
        payload = bytes([1, 2, 3])
        assert decode_attribute('fe9f', payload) == {'Google': payload}

    def test_advertised_service_first_byte(self):
        """Operator defined services report the first byte."""
        services = {'abcd': {'name': 'level'}}
        assert decode_attribute('abcd', bytes([42, 7]), services) == {'level': 42}

    def test_unknown_identifier_passthrough(self):
        """Unknown identifiers return the payload unchanged."""
        payload = bytes([9, 9])
        assert decode_attribute('1234', payload) is payload

    def test_handler_takes_priority_over_name(self):
        """1809 has both a name and a handler; the handler wins."""
        assert decode_attribute('1809', bytes([0xE8, 0x00])) == {'temp': 2.32}

    def test_decode_is_deterministic(self):
        """Same input always gives the same output."""
        first = decode_attribute('fe95', XIAOMI_TEMP_HUMIDITY)
        second = decode_attribute('fe95', XIAOMI_TEMP_HUMIDITY)
        assert first == second
        assert first is not second

    @pytest.mark.parametrize('identifier', sorted(HANDLERS))
    def test_short_payloads_never_raise(self, identifier):
        """Every handler tolerates truncated payloads."""
        for length in range(0, 16):
            result = decode_attribute(identifier, bytes(range(1, length + 1)))
            assert isinstance(result, (dict, bytes))


class TestLookup:
    """Tests for reverse name lookup."""

    def test_known_name(self):
        assert lookup('Battery Service') == '180f'

    def test_first_match_wins(self):
        """'Temperature' names both 1809 and 2a6e; the service comes first."""
        assert lookup('Temperature') == '1809'

    def test_unknown_name_returned(self):
        assert lookup('Flux Capacitor') == 'Flux Capacitor'


class TestNormalizeUuid:
    """Tests for UUID normalization."""

    def test_base_uuid_shortened(self):
        assert normalize_uuid('0000181A-0000-1000-8000-00805F9B34FB') == '181a'

    def test_vendor_uuid_stripped(self):
        assert normalize_uuid('6E400001-B5A3-F393-E0A9-E50E24DCCA9E') == '6e400001b5a3f393e0a9e50e24dcca9e'

    def test_short_uuid_kept(self):
        assert normalize_uuid('FE95') == 'fe95'


class TestTemperature:
    """Tests for the temperature service and characteristic."""

    def test_two_byte_temperature(self):
        assert frames.parse_temperature(bytes([0xE8, 0x00])) == {'temp': 2.32}

    def test_single_byte_temperature(self):
        assert frames.parse_temperature(bytes([21])) == {'temp': 21}

    def test_single_byte_negative(self):
        assert frames.parse_temperature(bytes([0xFB])) == {'temp': -5}

    def test_sign_correction_applies_after_scaling(self):
        """0x3200 / 100 = 128.0, which wraps to -128."""
        assert frames.parse_temperature(bytes([0x00, 0x32])) == {'temp': -128.0}

    def test_characteristic(self):
        assert frames.parse_temperature_characteristic(bytes([0x34, 0x08])) == {'temp': 21.0}

    def test_characteristic_negative(self):
        """Test the characteristic is a signed 16-bit value."""
        assert frames.parse_temperature_characteristic(bytes([0x38, 0xFF])) == {'temp': -2.0}

    def test_empty(self):
        assert frames.parse_temperature(b'') is None


class TestSimpleCharacteristics:
    """Tests for single value characteristics."""

    def test_battery(self):
        assert frames.parse_battery(bytes([0x5A])) == {'battery': 90}

    def test_humidity(self):
        assert frames.parse_humidity(bytes([0x88, 0x13])) == {'humidity': 50.0}

    def test_pressure_little_endian_uint32(self):
        # 1013250 dPa -> 101325.0 Pa
        assert frames.parse_pressure((1013250).to_bytes(4, 'little')) == {'pressure': 101325.0}

    def test_pressure_short(self):
        assert frames.parse_pressure(bytes([1, 2])) is None

    def test_alert_level(self):
        assert frames.parse_alert_level(bytes([2])) == {'alert': 2}

    def test_digital(self):
        assert frames.parse_digital(bytes([0])) == {'digital': False}
        assert frames.parse_digital(bytes([3])) == {'digital': True}

    def test_analog_one_and_two_bytes(self):
        assert frames.parse_analog(bytes([0x10])) == {'analog': 16}
        assert frames.parse_analog(bytes([0x10, 0x01])) == {'analog': 272}

    def test_unclassified_single_byte(self):
        assert frames.parse_unclassified(bytes([7])) == {'data': 7}

    def test_unclassified_multi_byte(self):
        assert frames.parse_unclassified(bytes([1, 2, 255])) == {'data': '1,2,255'}


class TestAtcThermometer:
    """Tests for custom firmware thermometer frames."""

    def test_pvvx_layout(self):
        result = frames.parse_atc_thermometer(PVVX_SAMPLE)
        assert result == {
            'temp': 23.45,
            'humidity': 56.78,
            'battery_voltage': 2.987,
            'battery': 87,
            'counter': 5,
            'flg': 4,
        }

    def test_pvvx_voltage_already_in_volts(self):
        """Voltages of 1000 or less are passed through."""
        sample = bytearray(PVVX_SAMPLE)
        sample[10:12] = (3).to_bytes(2, 'little')
        assert frames.parse_atc_thermometer(bytes(sample))['battery_voltage'] == 3

    def test_atc1441_layout(self):
        result = frames.parse_atc_thermometer(ATC_SAMPLE[:13])
        assert result == {
            'temp': 21.3,
            'humidity': 45,
            'battery': 90,
            'battery_voltage': 2.95,
        }

    def test_other_length(self):
        assert frames.parse_atc_thermometer(bytes(14)) is None


class TestScales:
    """Tests for Mi Scale frames."""

    def test_v2_kg_weight_halved(self):
        data = bytes([0x02, 0x20]) + bytes(7) + (500).to_bytes(2, 'little') + (6000).to_bytes(2, 'little')
        result = frames.parse_scale_v2(data)
        assert result['weight'] == 30.0
        assert result['unit'] == 'kg'
        assert result['impedance'] == 500
        assert result['isStabilized'] is True
        assert result['loadRemoved'] is False
        assert result['impedanceMeasured'] is False

    def test_v2_exact_half_rounds_up(self):
        """Test 6025 halved to 30.125 kg is reported as 30.13."""
        data = bytes([0x02, 0x20]) + bytes(7) + (0).to_bytes(2, 'little') + (6025).to_bytes(2, 'little')
        assert frames.parse_scale_v2(data)['weight'] == 30.13

    @pytest.mark.parametrize('raw,expected', [(625, 3.13), (225, 1.13), (6000, 30.0)])
    def test_v2_kg_rounding(self, raw, expected):
        data = bytes([0x02, 0x20, 0, 0]) + raw.to_bytes(2, 'little')
        assert frames.parse_scale_v2(data)['weight'] == expected

    def test_v2_jin(self):
        data = bytes([0x12, 0x82]) + (0).to_bytes(2, 'little') + (12345).to_bytes(2, 'little')
        result = frames.parse_scale_v2(data)
        assert result['unit'] == 'jin'
        assert result['weight'] == 123.45
        assert result['loadRemoved'] is True
        assert result['impedanceMeasured'] is True

    def test_v2_lbs(self):
        data = bytes([0x03, 0x00, 0, 0]) + (15000).to_bytes(2, 'little')
        assert frames.parse_scale_v2(data)['unit'] == 'lbs'

    def test_v2_unknown_unit(self):
        data = bytes([0x01, 0x00, 0, 0, 0, 0])
        assert frames.parse_scale_v2(data)['unit'] == '???'

    def test_v2_short(self):
        assert frames.parse_scale_v2(bytes(3)) is None

    def test_v1_kg_with_timestamp(self):
        data = bytes([0x20]) + (14000).to_bytes(2, 'little') + (2024).to_bytes(2, 'little') + bytes([5, 17, 8, 30, 15])
        result = frames.parse_scale_v1(data)
        assert result == {
            'weight': 70.0,
            'unit': 'kg',
            'isStabilized': True,
            'loadRemoved': False,
            'year': 2024,
            'month': 5,
            'day': 17,
            'hour': 8,
            'minute': 30,
            'second': 15,
        }

    def test_v1_exact_half_rounds_up(self):
        data = bytes([0x20]) + (6025).to_bytes(2, 'little') + bytes(7)
        assert frames.parse_scale_v1(data)['weight'] == 30.13

    def test_v1_lbs_takes_priority_over_jin(self):
        data = bytes([0x11]) + (15000).to_bytes(2, 'little') + bytes(7)
        result = frames.parse_scale_v1(data)
        assert result['unit'] == 'lbs'
        assert result['weight'] == 150.0

    def test_v1_short(self):
        assert frames.parse_scale_v1(bytes(9)) is None


class TestXiaomi:
    """Tests for MiBeacon frames."""

    def test_header_and_product_name(self):
        result = frames.parse_xiaomi(bytes.fromhex('50205b0509'))
        assert result == {
            'frameControl': 0x2050,
            'productId': 0x055B,
            'counter': 9,
            'productName': 'LYWSD03MMC',
        }

    def test_unknown_product_has_no_name(self):
        result = frames.parse_xiaomi(bytes.fromhex('5020341201'))
        assert 'productName' not in result

    def test_temperature_humidity_short_offset(self):
        result = frames.parse_xiaomi(XIAOMI_TEMP_HUMIDITY)
        assert result['productName'] == 'LYWSDCGQ'
        assert result['temp'] == 21.5
        assert result['humidity'] == 45.2

    def _frame(self, product_id, object_bytes):
        header = bytes([0x50, 0x20]) + product_id.to_bytes(2, 'little') + bytes([1])
        return header + bytes(7) + object_bytes

    def test_negative_temperature(self):
        data = self._frame(0x0098, bytes([0x04, 0x10, 0x02]) + (-25).to_bytes(2, 'little', signed=True))
        assert frames.parse_xiaomi(data)['temp'] == -2.5

    def test_battery(self):
        data = self._frame(0x0098, bytes([0x0A, 0x10, 0x01, 77]))
        assert frames.parse_xiaomi(data)['battery'] == 77

    def test_conductivity(self):
        data = self._frame(0x0098, bytes([0x09, 0x10, 0x02]) + (350).to_bytes(2, 'little'))
        assert frames.parse_xiaomi(data)['conductivity'] == 350

    def test_illuminance(self):
        data = self._frame(0x0098, bytes([0x07, 0x10, 0x03]) + (70000).to_bytes(3, 'little'))
        assert frames.parse_xiaomi(data)['illuminance'] == 70000

    def test_moisture(self):
        data = self._frame(0x0098, bytes([0x08, 0x10, 0x01, 33]))
        assert frames.parse_xiaomi(data)['moisture'] == 33

    def test_exact_length_mismatch_ignored(self):
        """Conductivity with a declared length other than 2 is skipped."""
        data = self._frame(0x0098, bytes([0x09, 0x10, 0x03]) + bytes([1, 2, 3]))
        result = frames.parse_xiaomi(data)
        assert 'conductivity' not in result
        assert result['productName'] == 'HHCCJCY01'

    def test_composite_switch_temperature(self):
        data = self._frame(0x0113, bytes([5, 16, 2, 1, 40]))
        result = frames.parse_xiaomi(data)
        assert result['productName'] == 'YM-K1501EU'
        assert result['switch'] is True
        assert result['temp'] == 40

    def test_truncated_value(self):
        data = self._frame(0x0098, bytes([0x0D, 0x10, 0x04, 0x01]))
        result = frames.parse_xiaomi(data)
        assert 'temp' not in result
        assert 'humidity' not in result

    def test_too_short(self):
        assert frames.parse_xiaomi(bytes(4)) is None


class TestStepCounter:
    """Tests for step counter frames."""

    def test_steps_only(self):
        assert frames.parse_step_counter(bytes([0x10, 0x27, 0, 0])) == {'steps': 10000}

    def test_steps_with_heart_rate(self):
        assert frames.parse_step_counter(bytes([0x10, 0x27, 0, 0, 72])) == {'steps': 10000, 'heartRate': 72}


class TestEddystone:
    """Tests for Eddystone URL frames."""

    def test_url_frame(self):
        data = bytes([0x10, 0xEB, 0x03]) + b'espruino.com'
        assert frames.parse_eddystone(data) == {'url': 'https://espruino.com', 'rssi@1m': -21}

    def test_unknown_scheme(self):
        data = bytes([0x10, 0x10, 0x09]) + b'x'
        assert frames.parse_eddystone(data) == {'url': 'x', 'rssi@1m': 16}

    def test_other_frame_type(self):
        assert frames.parse_eddystone(bytes([0x00, 0xEB, 0x03, 0x00])) is None
