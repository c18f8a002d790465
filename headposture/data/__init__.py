"""Data models and sensor source layer."""

from .models import (
    PostureState,
    PostureDirection,
    CalibrationOutcome,
    AccelSample,
    Orientation,
    CalibrationProfile,
    CalibrationRun,
    CalibrationProgress,
    CalibrationResult,
    MovementState,
    PostureReading,
    SessionStats,
)
from .source import SensorSource, MockSensorSource
from .codec import decode_accel_packet, encode_accel_packet

__all__ = [
    "PostureState",
    "PostureDirection",
    "CalibrationOutcome",
    "AccelSample",
    "Orientation",
    "CalibrationProfile",
    "CalibrationRun",
    "CalibrationProgress",
    "CalibrationResult",
    "MovementState",
    "PostureReading",
    "SessionStats",
    "SensorSource",
    "MockSensorSource",
    "decode_accel_packet",
    "encode_accel_packet",
]
