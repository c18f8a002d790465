"""
Orientation features from head-worn accelerometer samples.

- Pitch/roll/yaw estimated from the gravity vector (no gyro fusion)
- Fixed-capacity smoothing windows for pitch and roll history

Math module instead of NumPy for per-sample scalars.
"""

from collections import deque
import math

from .config import WINDOW_SIZE
from .data.models import AccelSample, Orientation


def estimate_orientation(sample: AccelSample, invert_pitch: bool = False) -> Orientation:
    """
    Estimate head orientation from a single accelerometer sample.

    Pitch is positive for forward tilt (``atan2(x, sqrt(y² + z²))``). Sensors
    mounted the other way round can pass ``invert_pitch=True``. Angles are
    left in atan2's [-180, 180] range.
    """
    x = sample.x or 0.0
    y = sample.y or 0.0
    z = sample.z or 0.0

    magnitude = math.sqrt(x * x + y * y + z * z)
    pitch = math.degrees(math.atan2(x, math.sqrt(y * y + z * z)))
    if invert_pitch:
        pitch = -pitch
    roll = math.degrees(math.atan2(y, z))
    yaw = math.degrees(math.atan2(y, x))

    return Orientation(pitch=pitch, roll=roll, yaw=yaw, magnitude=magnitude)


class SmoothingWindow:
    """
    FIFO history of the most recent values for one axis.

    Oldest value is evicted once capacity is reached. Variance is the
    population variance; direct computation is fast enough for small windows.
    """

    def __init__(self, capacity: int = WINDOW_SIZE):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._values = deque(maxlen=capacity)

    def push(self, value: float) -> None:
        self._values.append(float(value))

    def average(self) -> float:
        n = len(self._values)
        if n == 0:
            return 0.0
        return sum(self._values) / n

    def variance(self) -> float:
        n = len(self._values)
        if n < 2:
            return 0.0
        mean = sum(self._values) / n
        return sum((v - mean) ** 2 for v in self._values) / n

    def values(self) -> list:
        """Copy of the window contents, oldest first."""
        return list(self._values)

    def clear(self) -> None:
        self._values.clear()

    @property
    def is_full(self) -> bool:
        return len(self._values) >= self.capacity

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"SmoothingWindow(capacity={self.capacity}, size={len(self)})"
