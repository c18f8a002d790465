from datetime import timedelta

import pytest

from headposture.data.models import PostureState
from headposture.session import SessionTracker, format_duration

from conftest import FakeClock


@pytest.fixture
def clock():
    return FakeClock(start=0.0)


@pytest.fixture
def tracker(clock):
    tracker = SessionTracker(clock=clock)
    tracker.reset()
    return tracker


def tick_all(tracker, clock, statuses):
    for status in statuses:
        clock.advance(1.0)
        tracker.tick(status)


def test_ticks_land_in_matching_buckets(tracker, clock):
    tick_all(tracker, clock, [PostureState.GOOD] * 3 + [PostureState.BAD] * 2 + [PostureState.WARNING])
    stats = tracker.snapshot()
    assert stats.good_seconds == 3
    assert stats.bad_seconds == 2
    assert stats.warning_seconds == 1
    assert stats.elapsed == timedelta(seconds=6)


def test_neutral_merged_into_warning_by_default(tracker, clock):
    tick_all(tracker, clock, [PostureState.NEUTRAL, PostureState.NEUTRAL, PostureState.WARNING])
    stats = tracker.snapshot()
    assert stats.warning_seconds == 3
    assert stats.neutral_seconds == 2
    assert stats.tracked_seconds == 3


def test_separate_neutral_bucket(clock):
    tracker = SessionTracker(merge_neutral_into_warning=False, clock=clock)
    tracker.reset()
    tick_all(tracker, clock, [PostureState.NEUTRAL, PostureState.WARNING, PostureState.GOOD, PostureState.GOOD])
    stats = tracker.snapshot()
    assert stats.warning_seconds == 1
    assert stats.neutral_seconds == 1
    assert stats.tracked_seconds == 4
    assert stats.percentages() == {"good": 50, "warning": 25, "bad": 0, "neutral": 25}


def test_calibrating_time_is_not_counted(tracker, clock):
    tick_all(tracker, clock, [PostureState.CALIBRATING] * 5)
    assert tracker.snapshot().tracked_seconds == 0
    assert tracker.to_frame().empty


def test_percentages_floor(tracker, clock):
    tick_all(tracker, clock, [PostureState.GOOD, PostureState.WARNING, PostureState.BAD])
    assert tracker.snapshot().percentages() == {"good": 33, "warning": 33, "bad": 33}


def test_empty_percentages(tracker):
    assert tracker.snapshot().percentages() == {"good": 0, "warning": 0, "bad": 0}


def test_reset_clears_counters_and_clock(tracker, clock):
    tick_all(tracker, clock, [PostureState.GOOD] * 4)
    tracker.reset()
    stats = tracker.snapshot()
    assert stats.good_seconds == 0
    assert stats.elapsed == timedelta(0)


def test_posture_score_follows_current_status(tracker):
    assert tracker.snapshot(current=PostureState.GOOD).posture_score == 100
    assert tracker.snapshot(current=PostureState.WARNING).posture_score == 70
    assert tracker.snapshot(current=PostureState.NEUTRAL).posture_score == 50
    assert tracker.snapshot(current=PostureState.BAD).posture_score == 30
    assert tracker.snapshot().posture_score == 0


def test_elapsed_before_reset_is_zero():
    assert SessionTracker().elapsed() == timedelta(0)


def test_timeline_frame(tracker, clock):
    tick_all(tracker, clock, [PostureState.GOOD, PostureState.GOOD, PostureState.BAD])
    frame = tracker.to_frame()
    assert list(frame.columns) == ["second", "status"]
    assert list(frame["second"]) == [0, 1, 2]
    assert list(frame["status"].astype(str)) == ["good", "good", "bad"]

    summary = tracker.summary_frame()
    assert summary.loc["good", "seconds"] == 2
    assert summary.loc["bad", "share"] == pytest.approx(1 / 3)


@pytest.mark.parametrize("seconds,text", [
    (0, "0:00"),
    (9, "0:09"),
    (75, "1:15"),
    (3600, "60:00"),
])
def test_format_duration(seconds, text):
    assert format_duration(timedelta(seconds=seconds)) == text
