"""
Monitor configuration.

Module-level defaults plus a ``MonitorConfig`` dataclass that groups them.
Angles are in degrees, variances in degrees squared, times in seconds unless
the name says otherwise.
"""

from dataclasses import dataclass, fields
from typing import Mapping

from .data.models import PostureDirection, PostureState

# Smoothing
WINDOW_SIZE = 20                      # samples per axis (~0.4s at 50 Hz)

# Movement detection
MOVEMENT_THRESHOLD = 0.05             # variance above this means moving
MOVEMENT_MIN_SAMPLES = 5
STILLNESS_REMINDER_SECONDS = 60
MAX_SAMPLE_GAP = 1.0                  # longer gaps count as this much still time

# Classification
CLASSIFY_MIN_SAMPLES = 3

# Calibration
CALIBRATION_REQUIRED_SAMPLES = 50
CALIBRATION_DURATION_MS = 5000
CALIBRATION_TICK_MS = 100
CALIBRATION_SUCCESS_RATIO = 0.8       # fraction of required samples needed
CALIBRATION_GATE_FACTOR = 2.0         # stillness gate = movement threshold * factor

# Threshold derivation: (std multiplier, floor)
PITCH_STD_MIN = 3.0
ROLL_STD_MIN = 2.5
GOOD_PITCH = (1.5, 12.0)
WARNING_PITCH = (2.5, 22.0)
BAD_PITCH = (3.5, 32.0)
GOOD_ROLL = (1.5, 10.0)
WARNING_ROLL = (2.5, 18.0)

# Session
SESSION_TICK_SECONDS = 1.0

POSTURE_SCORES = {
    PostureState.GOOD: 100,
    PostureState.WARNING: 70,
    PostureState.NEUTRAL: 50,
    PostureState.BAD: 30,
    PostureState.CALIBRATING: 0,
}

MESSAGES = {
    "analyzing": "Analyzing posture...",
    "good": "Good posture! Keep it up!",
    "neutral": "Posture is okay. Could be improved.",
    "uncalibrated": "Calibrate to start posture monitoring.",
    "calibrating": "Calibrating... hold your head in a comfortable upright position.",
    (PostureState.BAD, PostureDirection.FORWARD): "You're leaning forward too far! Sit up straight.",
    (PostureState.BAD, PostureDirection.BACKWARD): "Head tilted too far back!",
    (PostureState.BAD, PostureDirection.RIGHT): "Head tilted too far to the right!",
    (PostureState.BAD, PostureDirection.LEFT): "Head tilted too far to the left!",
    (PostureState.WARNING, PostureDirection.FORWARD): "Slight forward lean detected. Adjust your posture.",
    (PostureState.WARNING, PostureDirection.BACKWARD): "Slight backward lean detected. Adjust your posture.",
    (PostureState.WARNING, PostureDirection.RIGHT): "Head tilted to the right. Center your head.",
    (PostureState.WARNING, PostureDirection.LEFT): "Head tilted to the left. Center your head.",
}


@dataclass
class MonitorConfig:
    """Tunable parameters for one monitoring session."""
    window_size: int = WINDOW_SIZE
    movement_threshold: float = MOVEMENT_THRESHOLD
    movement_min_samples: int = MOVEMENT_MIN_SAMPLES
    stillness_reminder_seconds: int = STILLNESS_REMINDER_SECONDS
    max_sample_gap: float = MAX_SAMPLE_GAP
    classify_min_samples: int = CLASSIFY_MIN_SAMPLES
    calibration_required_samples: int = CALIBRATION_REQUIRED_SAMPLES
    calibration_duration_ms: int = CALIBRATION_DURATION_MS
    calibration_tick_ms: int = CALIBRATION_TICK_MS
    calibration_success_ratio: float = CALIBRATION_SUCCESS_RATIO
    invert_pitch: bool = False
    merge_neutral_into_warning: bool = True
    keep_profile_on_disconnect: bool = False

    @classmethod
    def from_dict(cls, data: Mapping) -> "MonitorConfig":
        """Build a config from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        config = cls(**{k: v for k, v in data.items() if k in known})
        config.validate()
        return config

    @property
    def calibration_gate(self) -> float:
        return self.movement_threshold * CALIBRATION_GATE_FACTOR

    def validate(self) -> None:
        if self.window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {self.window_size}")
        if self.movement_threshold <= 0:
            raise ValueError(f"movement_threshold must be > 0, got {self.movement_threshold}")
        if self.calibration_required_samples < 1:
            raise ValueError(
                f"calibration_required_samples must be >= 1, got {self.calibration_required_samples}"
            )
        if self.calibration_duration_ms <= 0 or self.calibration_tick_ms <= 0:
            raise ValueError("calibration timings must be positive")
        if not 0.0 < self.calibration_success_ratio <= 1.0:
            raise ValueError(
                f"calibration_success_ratio must be in (0, 1], got {self.calibration_success_ratio}"
            )
        if self.max_sample_gap <= 0:
            raise ValueError(f"max_sample_gap must be > 0, got {self.max_sample_gap}")
