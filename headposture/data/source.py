"""
Sensor source abstraction and mock implementation.

Defines the push interface the posture monitor subscribes to and provides a
mock source producing synthetic head-worn accelerometer samples for testing
and development. Live sensor implementations should inherit from the base
SensorSource class.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional
import logging
import math

import numpy as np

from .models import AccelSample

logger = logging.getLogger(__name__)

SampleCallback = Callable[[AccelSample], None]
ConnectionCallback = Callable[[bool], None]


class SensorSource(ABC):
    """
    Abstract base class for accelerometer sources.

    Sources push samples to subscribers as they arrive. Subclasses implement
    connect()/disconnect() and call ``_dispatch`` for every sample and
    ``_set_connected`` when the link changes. Sources that must be read
    (serial ports, mocks) also override ``pump``.
    """

    def __init__(self):
        self._sample_callbacks: List[SampleCallback] = []
        self._connection_callbacks: List[ConnectionCallback] = []
        self._connected = False

    @abstractmethod
    def connect(self) -> None:
        pass

    @abstractmethod
    def disconnect(self) -> None:
        pass

    @property
    def is_active(self) -> bool:
        """Whether the source is connected and able to deliver samples."""
        return self._connected

    def subscribe(self, callback: SampleCallback) -> None:
        if callback not in self._sample_callbacks:
            self._sample_callbacks.append(callback)

    def unsubscribe(self, callback: SampleCallback) -> None:
        if callback in self._sample_callbacks:
            self._sample_callbacks.remove(callback)

    def add_connection_listener(self, callback: ConnectionCallback) -> None:
        if callback not in self._connection_callbacks:
            self._connection_callbacks.append(callback)

    def remove_connection_listener(self, callback: ConnectionCallback) -> None:
        if callback in self._connection_callbacks:
            self._connection_callbacks.remove(callback)

    @property
    def subscriber_count(self) -> int:
        return len(self._sample_callbacks)

    def pump(self, max_samples: int = 1) -> int:
        """
        Let pull-style sources deliver pending samples.

        Push-only sources deliver on their own and return 0.
        """
        return 0

    def _dispatch(self, sample: AccelSample) -> None:
        for callback in list(self._sample_callbacks):
            try:
                callback(sample)
            except Exception:
                logger.exception("Sample callback %r failed", callback)

    def _set_connected(self, connected: bool) -> None:
        if connected == self._connected:
            return
        self._connected = connected
        for callback in list(self._connection_callbacks):
            try:
                callback(connected)
            except Exception:
                logger.exception("Connection callback %r failed", callback)


class MockSensorSource(SensorSource):
    """
    Mock head-worn sensor for testing and development.

    Simulates a gravity vector for a few head postures with Gaussian noise,
    plus an optional nodding motion. Samples are only produced when
    ``emit`` is called, so tests control timing exactly.
    """

    SAMPLE_RATE = 50.0  # Hz

    # Head tilt (pitch, roll) in degrees for each simulated posture
    POSTURE_ANGLES = {
        "upright": (0.0, 0.0),
        "slouching": (35.0, 0.0),
        "leaning_back": (-35.0, 0.0),
        "tilted_left": (0.0, -25.0),
        "tilted_right": (0.0, 25.0),
        "looking_down": (15.0, 0.0),
    }

    def __init__(
        self,
        sample_rate: float = SAMPLE_RATE,
        noise_level: float = 0.002,  # accelerometer noise std dev (g)
        nod_amplitude: float = 10.0,  # degrees while moving
        seed: Optional[int] = None,
    ):
        super().__init__()
        self.sample_rate = sample_rate
        self.sample_interval = 1.0 / sample_rate
        self.noise_level = noise_level
        self.nod_amplitude = nod_amplitude

        self._rng = np.random.default_rng(seed)
        self._time = 0.0
        self._posture = "upright"
        self._moving = False

    def connect(self) -> None:
        self._set_connected(True)

    def disconnect(self) -> None:
        self._set_connected(False)

    @property
    def posture(self) -> str:
        return self._posture

    def set_posture(self, posture: str) -> None:
        if posture not in self.POSTURE_ANGLES:
            raise ValueError(f"Unknown posture {posture!r}, expected one of {sorted(self.POSTURE_ANGLES)}")
        self._posture = posture

    def set_moving(self, moving: bool) -> None:
        self._moving = moving

    def generate(self) -> AccelSample:
        """Generate the next sample without dispatching it."""
        self._time += self.sample_interval
        pitch, roll = self.POSTURE_ANGLES[self._posture]

        if self._moving:
            # ~1 Hz nod
            pitch += self.nod_amplitude * math.sin(2 * math.pi * self._time)

        p = math.radians(pitch)
        r = math.radians(roll)
        accel = np.array([
            math.sin(p),
            math.cos(p) * math.sin(r),
            math.cos(p) * math.cos(r),
        ])
        accel += self._rng.normal(0, self.noise_level, 3)

        return AccelSample(
            x=float(accel[0]),
            y=float(accel[1]),
            z=float(accel[2]),
            timestamp=self._time,
        )

    def emit(self, n: int = 1) -> List[AccelSample]:
        """Generate and dispatch ``n`` samples. Does nothing while disconnected."""
        samples = []
        if not self._connected:
            return samples
        for _ in range(n):
            sample = self.generate()
            self._dispatch(sample)
            samples.append(sample)
        return samples

    def push(self, sample: AccelSample) -> None:
        """Dispatch a caller-supplied sample."""
        if self._connected:
            self._dispatch(sample)

    def pump(self, max_samples: int = 1) -> int:
        return len(self.emit(max_samples))
