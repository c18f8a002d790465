"""
Session time accounting.

Counts seconds spent in each posture bucket while a sensor is connected.
Neutral time is kept on its own counter and, by default, also reported
inside the warning bucket.
"""

from datetime import timedelta
from typing import Callable, Optional
import time

import pandas as pd

from . import config
from .data.models import PostureState, SessionStats


def format_duration(elapsed: timedelta) -> str:
    """Format a session duration as ``m:ss``."""
    total = max(0, int(elapsed.total_seconds()))
    return f"{total // 60}:{total % 60:02d}"


class SessionTracker:
    def __init__(
        self,
        merge_neutral_into_warning: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.merge_neutral_into_warning = merge_neutral_into_warning
        self._clock = clock

        self.start_time: Optional[float] = None
        self.good_seconds = 0
        self.warning_seconds = 0
        self.neutral_seconds = 0
        self.bad_seconds = 0
        self._timeline: list[tuple[int, PostureState]] = []

    def reset(self, now: Optional[float] = None) -> None:
        """Clear all counters and restart the session clock."""
        self.start_time = self._clock() if now is None else now
        self.good_seconds = 0
        self.warning_seconds = 0
        self.neutral_seconds = 0
        self.bad_seconds = 0
        self._timeline.clear()

    def tick(self, status: PostureState) -> None:
        """Account one second to the bucket for ``status``."""
        if self.start_time is None:
            self.reset()

        if status == PostureState.GOOD:
            self.good_seconds += 1
        elif status == PostureState.WARNING:
            self.warning_seconds += 1
        elif status == PostureState.NEUTRAL:
            self.neutral_seconds += 1
        elif status == PostureState.BAD:
            self.bad_seconds += 1
        else:
            # Calibrating time is not posture time
            return

        self._timeline.append((len(self._timeline), status))

    def elapsed(self, now: Optional[float] = None) -> timedelta:
        if self.start_time is None:
            return timedelta(0)
        now = self._clock() if now is None else now
        return timedelta(seconds=max(0.0, now - self.start_time))

    def snapshot(self, current: Optional[PostureState] = None, now: Optional[float] = None) -> SessionStats:
        warning = self.warning_seconds
        if self.merge_neutral_into_warning:
            warning += self.neutral_seconds

        return SessionStats(
            good_seconds=self.good_seconds,
            warning_seconds=warning,
            neutral_seconds=self.neutral_seconds,
            bad_seconds=self.bad_seconds,
            elapsed=self.elapsed(now),
            posture_score=config.POSTURE_SCORES.get(current, 0) if current else 0,
            neutral_merged=self.merge_neutral_into_warning,
        )

    def to_frame(self) -> pd.DataFrame:
        """Per-second posture timeline, one row per counted second."""
        frame = pd.DataFrame(
            [(second, status.value) for second, status in self._timeline],
            columns=["second", "status"],
        )
        frame["status"] = frame["status"].astype("category")
        return frame

    def summary_frame(self) -> pd.DataFrame:
        """Seconds and share of tracked time per posture status."""
        timeline = self.to_frame()
        counts = timeline["status"].value_counts().rename("seconds")
        summary = counts.to_frame()
        total = int(summary["seconds"].sum())
        summary["share"] = summary["seconds"] / total if total else 0.0
        return summary.sort_values("seconds", ascending=False)
