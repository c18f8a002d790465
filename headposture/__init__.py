"""Live head posture classification from a head-worn accelerometer."""

from .config import MonitorConfig
from .data.models import (
    AccelSample,
    CalibrationOutcome,
    CalibrationProfile,
    CalibrationResult,
    MovementState,
    Orientation,
    PostureDirection,
    PostureReading,
    PostureState,
    SessionStats,
)
from .data.source import MockSensorSource, SensorSource
from .detection import MovementDetector, PostureClassifier
from .events import Event, EventBus, EventType
from .features import SmoothingWindow, estimate_orientation
from .monitor import PostureMonitor, create_mock_monitor
from .session import SessionTracker
from .state_machines import CalibrationEngine, CalibrationState

__version__ = "0.1.0"

__all__ = [
    "MonitorConfig",
    "AccelSample",
    "CalibrationOutcome",
    "CalibrationProfile",
    "CalibrationResult",
    "MovementState",
    "Orientation",
    "PostureDirection",
    "PostureReading",
    "PostureState",
    "SessionStats",
    "MockSensorSource",
    "SensorSource",
    "MovementDetector",
    "PostureClassifier",
    "Event",
    "EventBus",
    "EventType",
    "SmoothingWindow",
    "estimate_orientation",
    "PostureMonitor",
    "create_mock_monitor",
    "SessionTracker",
    "CalibrationEngine",
    "CalibrationState",
]
