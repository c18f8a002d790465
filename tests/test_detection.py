import pytest

from headposture.data.models import PostureDirection, PostureState
from headposture.detection import MovementDetector, PostureClassifier
from headposture.features import SmoothingWindow
from headposture.state_machines import derive_profile


@pytest.fixture
def profile():
    # Perfectly still calibration at the origin: floor thresholds 12/22/32 and 10/18
    return derive_profile([0.0] * 50, [0.0] * 50)


@pytest.fixture
def classifier():
    return PostureClassifier()


def windows_with(pitch_values, roll_values=None):
    pitch = SmoothingWindow()
    roll = SmoothingWindow()
    roll_values = roll_values if roll_values is not None else [0.0] * len(pitch_values)
    for p, r in zip(pitch_values, roll_values):
        pitch.push(p)
        roll.push(r)
    return pitch, roll


# ---------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------

def test_small_deviation_is_good(classifier, profile):
    reading = classifier.classify_angles(5.0, 2.0, profile)
    assert reading.state == PostureState.GOOD
    assert reading.direction is None
    assert reading.pitch_deviation == pytest.approx(5.0)
    assert reading.roll_deviation == pytest.approx(2.0)


def test_large_forward_deviation_is_bad_forward(classifier, profile):
    reading = classifier.classify_angles(45.0, 0.0, profile)
    assert reading.state == PostureState.BAD
    assert reading.direction == PostureDirection.FORWARD
    assert "leaning forward" in reading.message


def test_large_backward_deviation_is_bad_backward(classifier, profile):
    reading = classifier.classify_angles(-45.0, 0.0, profile)
    assert reading.state == PostureState.BAD
    assert reading.direction == PostureDirection.BACKWARD
    assert "back" in reading.message


def test_roll_uses_pitch_bad_threshold(classifier, profile):
    warning = classifier.classify_angles(0.0, 25.0, profile)
    assert warning.state == PostureState.WARNING
    assert warning.direction == PostureDirection.RIGHT

    bad = classifier.classify_angles(0.0, -35.0, profile)
    assert bad.state == PostureState.BAD
    assert bad.direction == PostureDirection.LEFT


def test_warning_on_pitch(classifier, profile):
    reading = classifier.classify_angles(25.0, 0.0, profile)
    assert reading.state == PostureState.WARNING
    assert reading.direction == PostureDirection.FORWARD


def test_larger_axis_picks_message(classifier, profile):
    reading = classifier.classify_angles(25.0, -30.0, profile)
    assert reading.state == PostureState.WARNING
    assert reading.direction == PostureDirection.LEFT


def test_between_good_and_warning_is_neutral(classifier, profile):
    reading = classifier.classify_angles(15.0, 0.0, profile)
    assert reading.state == PostureState.NEUTRAL
    assert reading.direction is None


def test_good_needs_both_axes(classifier, profile):
    assert classifier.classify_angles(3.0, 12.0, profile).state == PostureState.NEUTRAL


def test_good_boundary_is_inclusive(classifier, profile):
    assert classifier.classify_angles(12.0, 10.0, profile).state == PostureState.GOOD


def test_deviation_is_relative_to_baseline(classifier):
    profile = derive_profile([20.0] * 50, [5.0] * 50)
    assert classifier.classify_angles(25.0, 7.0, profile).state == PostureState.GOOD
    assert classifier.classify_angles(-15.0, 5.0, profile).state == PostureState.BAD


def test_classify_uses_window_average(classifier, profile):
    pitch, roll = windows_with([40.0, 50.0, 45.0])
    reading = classifier.classify(pitch, roll, profile)
    assert reading.state == PostureState.BAD
    assert reading.pitch_deviation == pytest.approx(45.0)


def test_too_few_samples_is_analyzing(classifier, profile):
    pitch, roll = windows_with([45.0, 45.0])
    reading = classifier.classify(pitch, roll, profile)
    assert reading.state == PostureState.NEUTRAL
    assert reading.message == classifier.messages["analyzing"]


# ---------------------------------------------------------------------
# Movement detector
# ---------------------------------------------------------------------

def test_insufficient_samples_leave_state_unchanged():
    detector = MovementDetector()
    pitch, roll = windows_with([10.0, -10.0, 10.0, -10.0])
    state = detector.update(pitch, roll)
    assert state.is_moving is False
    assert state.still_seconds == 0


def test_alternating_pitch_is_moving():
    detector = MovementDetector()
    pitch, roll = windows_with([10.0, -10.0, 10.0, -10.0, 10.0])
    assert detector.update(pitch, roll).is_moving


def test_roll_variance_alone_is_moving():
    detector = MovementDetector()
    pitch, roll = windows_with([0.0] * 5, [1.0, -1.0, 1.0, -1.0, 1.0])
    assert detector.update(pitch, roll).is_moving


def test_stillness_reminder_fires_once():
    detector = MovementDetector()
    pitch, roll = SmoothingWindow(), SmoothingWindow()
    for value in [10.0, -10.0, 10.0, -10.0, 10.0]:
        pitch.push(value)
        roll.push(0.0)
    assert detector.update(pitch, roll).is_moving

    reminders = 0
    states = []
    for _ in range(100):
        pitch.push(0.0)
        roll.push(0.0)
        state = detector.update(pitch, roll, elapsed=1.0)
        states.append(state)
        reminders += state.reminder

    assert reminders == 1
    assert states[-1].is_moving is False
    assert states[-1].still_seconds == 81
    fired = [s for s in states if s.reminder][0]
    assert fired.still_seconds == 60


def test_movement_resets_still_time_and_rearms_reminder():
    detector = MovementDetector(reminder_seconds=3)
    still_pitch, still_roll = windows_with([0.0] * 5)
    moving_pitch, moving_roll = windows_with([5.0, -5.0] * 3)

    fired = [detector.update(still_pitch, still_roll, 1.0).reminder for _ in range(6)]
    assert fired.count(True) == 1

    state = detector.update(moving_pitch, moving_roll, 1.0)
    assert state.is_moving and state.still_seconds == 0

    fired = [detector.update(still_pitch, still_roll, 1.0).reminder for _ in range(6)]
    assert fired.count(True) == 1


def test_still_time_accumulates_fractional_elapsed():
    detector = MovementDetector()
    pitch, roll = windows_with([0.0] * 5)
    for _ in range(60):
        state = detector.update(pitch, roll, elapsed=0.02)
    assert state.still_seconds == 1
