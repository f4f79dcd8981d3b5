"""
blehub: bridge Bluetooth LE advertisements to MQTT.
"""

__version__ = '0.1.0'
