"""
Live sensor connection modules.

Each module inherits from SensorSource and implements connect()/disconnect(),
dispatching parsed samples to subscribers.
"""

from .serial_source import SerialSensorSource, parse_line

__all__ = [
    "SerialSensorSource",
    "parse_line",
]
