"""
Data models and types for the head posture monitor.

Defines the value types passed between the estimator, calibration engine,
detectors, session tracker and the presentation collaborator.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Mapping, Optional
import numpy as np


class PostureState(Enum):
    """Live posture classification."""
    CALIBRATING = "calibrating"
    NEUTRAL = "neutral"
    GOOD = "good"
    WARNING = "warning"
    BAD = "bad"


class PostureDirection(Enum):
    """Which way the head deviates from the baseline."""
    FORWARD = "forward"
    BACKWARD = "backward"
    LEFT = "left"
    RIGHT = "right"


class CalibrationOutcome(Enum):
    """How a calibration run ended."""
    COMPLETE = "complete"
    FAILED = "failed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class AccelSample:
    """
    Single accelerometer reading from the head-worn sensor.

    Values are in g. The timestamp is optional; sources that know when the
    sample was taken should set it (seconds, monotonic or Unix).
    """
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    timestamp: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Mapping, timestamp: Optional[float] = None) -> "AccelSample":
        """
        Build a sample from an ``{'x':.., 'y':.., 'z':..}`` mapping.

        Missing or null axes become 0.0 rather than rejecting the sample.
        """
        def axis(key):
            value = data.get(key)
            return 0.0 if value is None else float(value)

        return cls(x=axis("x"), y=axis("y"), z=axis("z"), timestamp=timestamp)

    @property
    def vector(self) -> np.ndarray:
        """Acceleration as numpy array."""
        return np.array([self.x, self.y, self.z])


@dataclass(frozen=True)
class Orientation:
    """Head orientation derived from one accelerometer sample."""
    pitch: float  # degrees, forward tilt positive
    roll: float  # degrees, right tilt positive
    yaw: float  # degrees, unused for classification
    magnitude: float  # g


@dataclass(frozen=True)
class CalibrationProfile:
    """
    Personal baseline and thresholds produced by a successful calibration.

    There is no dedicated bad-roll threshold: the classifier compares roll
    deviation against ``bad_pitch_threshold`` as well.
    """
    baseline_pitch: float
    baseline_roll: float
    pitch_std: float
    roll_std: float
    good_pitch_threshold: float
    warning_pitch_threshold: float
    bad_pitch_threshold: float
    good_roll_threshold: float
    warning_roll_threshold: float
    sample_count: int = 0

    def to_dict(self) -> dict:
        return {
            "baseline_pitch": round(self.baseline_pitch, 2),
            "baseline_roll": round(self.baseline_roll, 2),
            "pitch_std": round(self.pitch_std, 3),
            "roll_std": round(self.roll_std, 3),
            "thresholds": {
                "good_pitch": round(self.good_pitch_threshold, 2),
                "warning_pitch": round(self.warning_pitch_threshold, 2),
                "bad_pitch": round(self.bad_pitch_threshold, 2),
                "good_roll": round(self.good_roll_threshold, 2),
                "warning_roll": round(self.warning_roll_threshold, 2),
            },
            "sample_count": self.sample_count,
        }


@dataclass
class CalibrationRun:
    """In-progress calibration data. Discarded when the run ends."""
    required_samples: int
    started_at: float
    pitch_samples: list = field(default_factory=list)
    roll_samples: list = field(default_factory=list)

    @property
    def samples_collected(self) -> int:
        return len(self.pitch_samples)


@dataclass(frozen=True)
class CalibrationProgress:
    """Structured progress report; message formatting is left to the UI."""
    percent_complete: float
    samples_collected: int
    samples_required: int
    seconds_remaining: float

    @property
    def samples_remaining(self) -> int:
        return max(0, self.samples_required - self.samples_collected)


@dataclass(frozen=True)
class CalibrationResult:
    """Result of a finished, failed or aborted calibration run."""
    outcome: CalibrationOutcome
    profile: Optional[CalibrationProfile] = None
    samples_collected: int = 0
    samples_required: int = 0

    @property
    def success(self) -> bool:
        return self.outcome == CalibrationOutcome.COMPLETE


@dataclass(frozen=True)
class MovementState:
    """Stillness/motion status. ``reminder`` is set only when the stillness reminder fires."""
    is_moving: bool = False
    still_seconds: int = 0
    reminder: bool = False


@dataclass(frozen=True)
class PostureReading:
    """Classifier output for one smoothed sample."""
    state: PostureState
    message: str
    direction: Optional[PostureDirection] = None
    pitch_deviation: float = 0.0
    roll_deviation: float = 0.0


@dataclass(frozen=True)
class SessionStats:
    """
    Snapshot of time spent per posture bucket.

    ``warning_seconds`` includes neutral time when the tracker merges the two
    buckets; ``neutral_seconds`` is always reported on its own.
    """
    good_seconds: int
    warning_seconds: int
    neutral_seconds: int
    bad_seconds: int
    elapsed: timedelta
    posture_score: int = 0
    neutral_merged: bool = True

    @property
    def tracked_seconds(self) -> int:
        total = self.good_seconds + self.warning_seconds + self.bad_seconds
        if not self.neutral_merged:
            total += self.neutral_seconds
        return total

    def percentages(self) -> dict:
        """Integer share of tracked time per bucket (floor division)."""
        buckets = {
            "good": self.good_seconds,
            "warning": self.warning_seconds,
            "bad": self.bad_seconds,
        }
        if not self.neutral_merged:
            buckets["neutral"] = self.neutral_seconds

        total = self.tracked_seconds
        if total == 0:
            return {name: 0 for name in buckets}
        return {name: seconds * 100 // total for name, seconds in buckets.items()}

    def to_dict(self) -> dict:
        return {
            "good_seconds": self.good_seconds,
            "warning_seconds": self.warning_seconds,
            "neutral_seconds": self.neutral_seconds,
            "bad_seconds": self.bad_seconds,
            "elapsed_seconds": int(self.elapsed.total_seconds()),
            "posture_score": self.posture_score,
            "percentages": self.percentages(),
        }
