"""
Movement and posture detection over the smoothing windows.

MovementDetector: variance-based stillness/motion with a one-shot
stillness reminder.

PostureClassifier: deviation-from-baseline classification. Priority is
bad > warning > good > neutral; bad and warning trigger on either axis
while good needs both axes inside their good range. There is no hysteresis.
"""

from typing import Optional
import logging

from .. import config
from ..data.models import (
    CalibrationProfile,
    MovementState,
    PostureDirection,
    PostureReading,
    PostureState,
)
from ..features import SmoothingWindow

logger = logging.getLogger(__name__)


class MovementDetector:
    """
    Tracks whether the head is moving and for how long it has been still.

    Still time advances by the elapsed sample time passed to ``update``. The
    reminder fires once when still time reaches ``reminder_seconds`` and is
    re-armed only after the head moves again.
    """

    def __init__(
        self,
        movement_threshold: float = config.MOVEMENT_THRESHOLD,
        min_samples: int = config.MOVEMENT_MIN_SAMPLES,
        reminder_seconds: int = config.STILLNESS_REMINDER_SECONDS,
    ):
        self.movement_threshold = movement_threshold
        self.min_samples = min_samples
        self.reminder_seconds = reminder_seconds

        self.state = MovementState()
        self._still_time = 0.0
        self._reminder_armed = True

    def update(
        self,
        pitch_window: SmoothingWindow,
        roll_window: SmoothingWindow,
        elapsed: float = 1.0,
    ) -> MovementState:
        if len(pitch_window) < self.min_samples or len(roll_window) < self.min_samples:
            # Insufficient data: keep the previous state, drop any one-shot flag
            if self.state.reminder:
                self.state = MovementState(self.state.is_moving, self.state.still_seconds)
            return self.state

        is_moving = (
            pitch_window.variance() > self.movement_threshold
            or roll_window.variance() > self.movement_threshold
        )

        reminder = False
        if is_moving:
            self._still_time = 0.0
            self._reminder_armed = True
        else:
            self._still_time += max(0.0, elapsed)
            if self._reminder_armed and self._still_time >= self.reminder_seconds:
                self._reminder_armed = False
                reminder = True
                logger.info("Still for %d seconds, stretch reminder due", int(self._still_time))

        self.state = MovementState(
            is_moving=is_moving,
            still_seconds=int(self._still_time),
            reminder=reminder,
        )
        return self.state

    def reset(self) -> None:
        self.state = MovementState()
        self._still_time = 0.0
        self._reminder_armed = True


class PostureClassifier:
    """Classifies smoothed pitch/roll against a calibration profile."""

    def __init__(self, min_samples: int = config.CLASSIFY_MIN_SAMPLES, messages: Optional[dict] = None):
        self.min_samples = min_samples
        self.messages = messages or config.MESSAGES

    def classify(
        self,
        pitch_window: SmoothingWindow,
        roll_window: SmoothingWindow,
        profile: CalibrationProfile,
    ) -> PostureReading:
        if len(pitch_window) < self.min_samples or len(roll_window) < self.min_samples:
            return PostureReading(PostureState.NEUTRAL, self.messages["analyzing"])
        return self.classify_angles(pitch_window.average(), roll_window.average(), profile)

    def classify_angles(
        self,
        avg_pitch: float,
        avg_roll: float,
        profile: CalibrationProfile,
    ) -> PostureReading:
        pitch_offset = avg_pitch - profile.baseline_pitch
        roll_offset = avg_roll - profile.baseline_roll
        pitch_dev = abs(pitch_offset)
        roll_dev = abs(roll_offset)

        # Roll has no bad threshold of its own; it shares the pitch one.
        if pitch_dev > profile.bad_pitch_threshold or roll_dev > profile.bad_pitch_threshold:
            state = PostureState.BAD
        elif pitch_dev > profile.warning_pitch_threshold or roll_dev > profile.warning_roll_threshold:
            state = PostureState.WARNING
        elif pitch_dev <= profile.good_pitch_threshold and roll_dev <= profile.good_roll_threshold:
            return PostureReading(PostureState.GOOD, self.messages["good"], None, pitch_dev, roll_dev)
        else:
            return PostureReading(PostureState.NEUTRAL, self.messages["neutral"], None, pitch_dev, roll_dev)

        direction = self._direction(pitch_offset, roll_offset)
        return PostureReading(
            state=state,
            message=self.messages[(state, direction)],
            direction=direction,
            pitch_deviation=pitch_dev,
            roll_deviation=roll_dev,
        )

    @staticmethod
    def _direction(pitch_offset: float, roll_offset: float) -> PostureDirection:
        if abs(pitch_offset) >= abs(roll_offset):
            return PostureDirection.FORWARD if pitch_offset > 0 else PostureDirection.BACKWARD
        return PostureDirection.RIGHT if roll_offset > 0 else PostureDirection.LEFT
