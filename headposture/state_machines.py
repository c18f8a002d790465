"""
Calibration State Machine

Guided, timed baseline collection for the head posture monitor:

IDLE → COLLECTING → {COMPLETE | FAILED} → IDLE

COMPLETE and FAILED are resting states: a new run may start from either,
and ``reset()`` returns the engine to IDLE. Cancelling goes straight to IDLE.

Samples are only accepted while the head is still (stillness gate on the
smoothing-window variances). A run ends when enough samples were accepted or
the collection window elapses; runs with too few accepted samples fail and
never produce a partial profile. Cancelling a run is an abort, not a failure.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional
import logging
import time

import numpy as np

from . import config
from .data.models import (
    CalibrationOutcome,
    CalibrationProfile,
    CalibrationProgress,
    CalibrationResult,
    CalibrationRun,
    Orientation,
)
from .features import SmoothingWindow

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------

class CalibrationState(Enum):
    IDLE = "IDLE"
    COLLECTING = "COLLECTING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


# ---------------------------------------------------------------------
# THRESHOLD DERIVATION
# ---------------------------------------------------------------------

def _scaled(std: float, rule: tuple) -> float:
    multiplier, floor = rule
    return max(std * multiplier, floor)


def derive_profile(pitch_samples, roll_samples) -> CalibrationProfile:
    """
    Build a calibration profile from accepted pitch/roll samples.

    Thresholds scale with the population standard deviation but never drop
    below the fixed floors, so good < warning < bad holds on both axes.
    """
    pitch = np.asarray(pitch_samples, dtype=float)
    roll = np.asarray(roll_samples, dtype=float)

    pitch_std = float(np.std(pitch))
    roll_std = float(np.std(roll))
    pitch_mult = max(pitch_std, config.PITCH_STD_MIN)
    roll_mult = max(roll_std, config.ROLL_STD_MIN)

    return CalibrationProfile(
        baseline_pitch=float(np.mean(pitch)),
        baseline_roll=float(np.mean(roll)),
        pitch_std=pitch_std,
        roll_std=roll_std,
        good_pitch_threshold=_scaled(pitch_mult, config.GOOD_PITCH),
        warning_pitch_threshold=_scaled(pitch_mult, config.WARNING_PITCH),
        bad_pitch_threshold=_scaled(pitch_mult, config.BAD_PITCH),
        good_roll_threshold=_scaled(roll_mult, config.GOOD_ROLL),
        warning_roll_threshold=_scaled(roll_mult, config.WARNING_ROLL),
        sample_count=len(pitch),
    )


# ---------------------------------------------------------------------
# CALIBRATION ENGINE
# ---------------------------------------------------------------------

class CalibrationEngine:
    """
    Collects stillness-gated pitch/roll samples and derives a profile.

    The engine never reads the sensor itself: the owner pushes orientations
    (after updating the smoothing windows) through ``add_sample`` and polls
    ``check_timeout``/``progress`` from its periodic tick.
    """

    def __init__(
        self,
        required_samples: int = config.CALIBRATION_REQUIRED_SAMPLES,
        duration_ms: int = config.CALIBRATION_DURATION_MS,
        stillness_gate: float = config.MOVEMENT_THRESHOLD * config.CALIBRATION_GATE_FACTOR,
        success_ratio: float = config.CALIBRATION_SUCCESS_RATIO,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.required_samples = required_samples
        self.duration = duration_ms / 1000.0
        self.stillness_gate = stillness_gate
        self.success_ratio = success_ratio
        self._clock = clock

        self.state = CalibrationState.IDLE
        self.last_result: Optional[CalibrationResult] = None
        self._run: Optional[CalibrationRun] = None
        self._rejected = 0

    @property
    def is_collecting(self) -> bool:
        return self.state == CalibrationState.COLLECTING

    @property
    def min_samples(self) -> float:
        return self.success_ratio * self.required_samples

    def start(self, now: Optional[float] = None) -> bool:
        if self.is_collecting:
            return False

        now = self._clock() if now is None else now
        self._run = CalibrationRun(required_samples=self.required_samples, started_at=now)
        self._rejected = 0
        self.state = CalibrationState.COLLECTING
        logger.info(
            "Calibration started (required=%d, duration=%.1fs)",
            self.required_samples, self.duration,
        )
        return True

    def add_sample(
        self,
        orientation: Orientation,
        pitch_window: SmoothingWindow,
        roll_window: SmoothingWindow,
        now: Optional[float] = None,
    ) -> Optional[CalibrationResult]:
        """
        Offer one sample to the running calibration.

        The windows must already contain ``orientation``. Returns the result
        when this sample finishes the run, otherwise None.
        """
        if not self.is_collecting:
            return None

        now = self._clock() if now is None else now
        run = self._run

        if (pitch_window.variance() < self.stillness_gate
                and roll_window.variance() < self.stillness_gate):
            run.pitch_samples.append(orientation.pitch)
            run.roll_samples.append(orientation.roll)
        else:
            self._rejected += 1
            logger.debug(
                "Calibration sample rejected (pitch var=%.3f, roll var=%.3f)",
                pitch_window.variance(), roll_window.variance(),
            )

        if run.samples_collected >= run.required_samples:
            return self._finish()
        return self.check_timeout(now)

    def check_timeout(self, now: Optional[float] = None) -> Optional[CalibrationResult]:
        """Finish the run if the collection window has elapsed."""
        if not self.is_collecting:
            return None

        now = self._clock() if now is None else now
        if now - self._run.started_at >= self.duration:
            return self._finish()
        return None

    def progress(self, now: Optional[float] = None) -> Optional[CalibrationProgress]:
        if not self.is_collecting:
            return None

        now = self._clock() if now is None else now
        run = self._run
        percent = min(100.0, 100.0 * run.samples_collected / run.required_samples)
        return CalibrationProgress(
            percent_complete=percent,
            samples_collected=run.samples_collected,
            samples_required=run.required_samples,
            seconds_remaining=max(0.0, self.duration - (now - run.started_at)),
        )

    def cancel(self) -> Optional[CalibrationResult]:
        """Abort a running calibration. Returns None when nothing was running."""
        if not self.is_collecting:
            return None

        run = self._run
        self._run = None
        self.state = CalibrationState.IDLE
        result = CalibrationResult(
            outcome=CalibrationOutcome.ABORTED,
            samples_collected=run.samples_collected,
            samples_required=run.required_samples,
        )
        self.last_result = result
        logger.info("Calibration aborted after %d samples", run.samples_collected)
        return result

    def _finish(self) -> CalibrationResult:
        run = self._run
        self._run = None

        if run.samples_collected < self.min_samples:
            self.state = CalibrationState.FAILED
            result = CalibrationResult(
                outcome=CalibrationOutcome.FAILED,
                samples_collected=run.samples_collected,
                samples_required=run.required_samples,
            )
            logger.warning(
                "Calibration failed: %d/%d still samples (%d rejected as movement)",
                run.samples_collected, run.required_samples, self._rejected,
            )
        else:
            self.state = CalibrationState.COMPLETE
            profile = derive_profile(run.pitch_samples, run.roll_samples)
            result = CalibrationResult(
                outcome=CalibrationOutcome.COMPLETE,
                profile=profile,
                samples_collected=run.samples_collected,
                samples_required=run.required_samples,
            )
            logger.info(
                "Calibration successful (n=%d, pitch=%.1f±%.2f, roll=%.1f±%.2f)",
                profile.sample_count, profile.baseline_pitch, profile.pitch_std,
                profile.baseline_roll, profile.roll_std,
            )

        self.last_result = result
        return result

    def reset(self) -> None:
        self.state = CalibrationState.IDLE
        self._run = None
        self._rejected = 0
        self.last_result = None
