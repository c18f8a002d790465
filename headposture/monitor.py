"""
Main posture monitoring orchestrator.

Coordinates all system components:
- Sample intake from the sensor source
- Orientation estimation and smoothing
- Guided calibration
- Posture classification and movement detection
- Session statistics
- Event emission to the presentation layer

Every entry point runs under one lock, so a sample is fully processed
before the next one (or a timer tick) touches the shared windows.
"""

import asyncio
import logging
import threading
import time
from typing import Callable, Optional

from . import config as defaults
from .config import MonitorConfig
from .data.models import (
    AccelSample,
    CalibrationProfile,
    CalibrationProgress,
    CalibrationResult,
    MovementState,
    PostureReading,
    PostureState,
    SessionStats,
)
from .data.source import MockSensorSource, SensorSource
from .detection import MovementDetector, PostureClassifier
from .events import EventBus, EventType
from .features import SmoothingWindow, estimate_orientation
from .session import SessionTracker, format_duration
from .state_machines import CalibrationEngine

logger = logging.getLogger(__name__)


class PostureMonitor:
    """
    Head posture monitoring pipeline.

    Subscribes to a SensorSource while it is connected and turns each
    sample into orientation, calibration, posture and movement events.
    Timer work (1 Hz session stats, 100 ms calibration progress) is exposed
    as ``tick``/``tick_calibration`` and scheduled by ``run``.
    """

    def __init__(
        self,
        source: SensorSource,
        config: Optional[MonitorConfig] = None,
        bus: Optional[EventBus] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize monitor.

        Args:
            source: Sensor source (mock or live)
            config: Tunable parameters (None for defaults)
            bus: Event bus shared with the presentation layer
            clock: Monotonic time source, injectable for tests
        """
        self.config = config or MonitorConfig()
        self.config.validate()
        self.source = source
        self.bus = bus or EventBus()
        self._clock = clock
        self._lock = threading.RLock()

        # Smoothing
        self.pitch_window = SmoothingWindow(self.config.window_size)
        self.roll_window = SmoothingWindow(self.config.window_size)

        # Calibration
        self.calibration = CalibrationEngine(
            required_samples=self.config.calibration_required_samples,
            duration_ms=self.config.calibration_duration_ms,
            stillness_gate=self.config.calibration_gate,
            success_ratio=self.config.calibration_success_ratio,
            clock=clock,
        )
        self.profile: Optional[CalibrationProfile] = None

        # Detection
        self.movement = MovementDetector(
            movement_threshold=self.config.movement_threshold,
            min_samples=self.config.movement_min_samples,
            reminder_seconds=self.config.stillness_reminder_seconds,
        )
        self.classifier = PostureClassifier(min_samples=self.config.classify_min_samples)

        # Session
        self.session = SessionTracker(
            merge_neutral_into_warning=self.config.merge_neutral_into_warning,
            clock=clock,
        )

        # State tracking
        self.posture_state = PostureState.NEUTRAL
        self.last_reading: Optional[PostureReading] = None
        self.connected = False
        self._opened = False
        self._last_sample_time: Optional[float] = None
        self._sample_count = 0

        # Timer tasks
        self.running = False
        self._tasks: list = []
        self._stop_requested = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Start following the source's connection state."""
        with self._lock:
            if self._opened:
                return
            self._opened = True
            self.source.add_connection_listener(self._on_connection_change)
            if self.source.is_active:
                self.connect()

    def close(self) -> None:
        """Tear down: disconnect, stop following the source, cancel timers. Safe to call twice."""
        with self._lock:
            self.disconnect()
            if self._opened:
                self.source.remove_connection_listener(self._on_connection_change)
                self._opened = False
        self.stop()

    def _on_connection_change(self, connected: bool) -> None:
        if connected:
            self.connect()
        else:
            self.disconnect()

    def connect(self) -> None:
        """Subscribe to samples and start a fresh session."""
        with self._lock:
            if self.connected:
                return
            self.connected = True
            self.source.subscribe(self.handle_sample)
            self._reset_tracking()
            self.session.reset()
            self.posture_state = PostureState.NEUTRAL
            logger.info("Sensor connected, session started")
            self.bus.publish(EventType.CONNECTION, True)

    def disconnect(self) -> None:
        """Unsubscribe, abort any calibration and end the session."""
        with self._lock:
            if not self.connected:
                return
            self.connected = False
            self.source.unsubscribe(self.handle_sample)

            aborted = self.calibration.cancel()
            if aborted is not None:
                logger.info("Calibration aborted by disconnect")

            if not self.config.keep_profile_on_disconnect:
                self.profile = None
            self.posture_state = PostureState.NEUTRAL
            self.last_reading = None
            self._reset_tracking()
            logger.info("Sensor disconnected after %d samples", self._sample_count)
            self.bus.publish(EventType.CONNECTION, False)

    def _reset_tracking(self) -> None:
        self.pitch_window.clear()
        self.roll_window.clear()
        self.movement.reset()
        self._last_sample_time = None

    # ------------------------------------------------------------------
    # Calibration
    # ------------------------------------------------------------------

    @property
    def is_calibrated(self) -> bool:
        return self.profile is not None

    @property
    def is_calibrating(self) -> bool:
        return self.calibration.is_collecting

    def start_calibration(self) -> bool:
        """Begin a calibration run. Requires an active sensor source."""
        with self._lock:
            if not self.connected or not self.source.is_active:
                logger.warning("Cannot calibrate: sensor is not connected")
                return False
            if not self.calibration.start(self._clock()):
                return False
            self.posture_state = PostureState.CALIBRATING
            self.bus.publish(EventType.CALIBRATION_PROGRESS, self.calibration.progress(self._clock()))
            return True

    def cancel_calibration(self) -> Optional[CalibrationResult]:
        """Abort the running calibration. No result event is published."""
        with self._lock:
            result = self.calibration.cancel()
            if result is not None:
                self.posture_state = PostureState.NEUTRAL
            return result

    def _finish_calibration(self, result: CalibrationResult) -> None:
        if result.success:
            self.profile = result.profile
        # A failed recalibration keeps the previous profile, if any
        self.posture_state = PostureState.NEUTRAL
        self.bus.publish(EventType.CALIBRATION_RESULT, result)

    # ------------------------------------------------------------------
    # Sample pipeline
    # ------------------------------------------------------------------

    def handle_sample(self, sample: AccelSample) -> None:
        """Process one accelerometer sample (source callback)."""
        with self._lock:
            if not self.connected:
                return

            orientation = estimate_orientation(sample, invert_pitch=self.config.invert_pitch)
            self.pitch_window.push(orientation.pitch)
            self.roll_window.push(orientation.roll)
            self._sample_count += 1
            self.bus.publish(EventType.ORIENTATION, orientation)

            elapsed = self._sample_elapsed(sample)

            if self.calibration.is_collecting:
                result = self.calibration.add_sample(
                    orientation, self.pitch_window, self.roll_window, self._clock()
                )
                if result is not None:
                    self._finish_calibration(result)
                return

            state = self.movement.update(self.pitch_window, self.roll_window, elapsed)
            self.bus.publish(EventType.MOVEMENT, state)
            if state.reminder:
                self.bus.publish(EventType.STILLNESS_REMINDER, state)

            if self.profile is not None:
                reading = self.classifier.classify(self.pitch_window, self.roll_window, self.profile)
                self.last_reading = reading
                self.posture_state = reading.state
                self.bus.publish(EventType.POSTURE, reading)

    def _sample_elapsed(self, sample: AccelSample) -> float:
        """Seconds since the previous sample, clamped to [0, max_sample_gap]."""
        now = sample.timestamp if sample.timestamp is not None else self._clock()
        last = self._last_sample_time
        self._last_sample_time = now
        if last is None:
            return 0.0
        return min(max(0.0, now - last), self.config.max_sample_gap)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def tick(self) -> Optional[SessionStats]:
        """1 Hz session tick: account the current status and publish stats."""
        with self._lock:
            if not self.connected:
                return None
            status = self._scored_state()
            if status is not None:
                self.session.tick(status)
            stats = self.session.snapshot(current=status)
            self.bus.publish(EventType.SESSION_STATS, stats)
            return stats

    def tick_calibration(self) -> Optional[CalibrationProgress]:
        """Calibration tick: finish on timeout, otherwise publish progress."""
        with self._lock:
            if not self.calibration.is_collecting:
                return None
            now = self._clock()
            result = self.calibration.check_timeout(now)
            if result is not None:
                self._finish_calibration(result)
                return None
            progress = self.calibration.progress(now)
            self.bus.publish(EventType.CALIBRATION_PROGRESS, progress)
            return progress

    async def _periodic(self, interval: float, callback: Callable) -> None:
        while True:
            await asyncio.sleep(interval)
            callback()

    async def run(self) -> None:
        """Run the periodic ticks until ``stop`` is called."""
        if self.running:
            return
        self.running = True
        self._stop_requested = False
        self._tasks = [
            asyncio.create_task(self._periodic(defaults.SESSION_TICK_SECONDS, self.tick)),
            asyncio.create_task(
                self._periodic(self.config.calibration_tick_ms / 1000.0, self.tick_calibration)
            ),
        ]
        try:
            await asyncio.gather(*self._tasks)
        except asyncio.CancelledError:
            if not self._stop_requested:
                raise
        finally:
            # gather() does not cancel the other tick when one raises
            tasks, self._tasks = self._tasks, []
            for task in tasks:
                task.cancel()
            self.running = False

    def stop(self) -> None:
        """Cancel the periodic ticks. Must be called from the event loop thread."""
        self._stop_requested = True
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        self.running = False

    def run_until(self, duration: float, verbose: bool = True, report_every: float = 5.0) -> None:
        """
        Blocking loop for pull-style sources: pump samples and drive the ticks.

        Args:
            duration: Run time in seconds
            verbose: Log a status line every ``report_every`` seconds
            report_every: Seconds between status lines
        """
        sample_rate = getattr(self.source, "sample_rate", 50.0)
        start = self._clock()
        next_tick = start + defaults.SESSION_TICK_SECONDS
        next_calibration_tick = start + self.config.calibration_tick_ms / 1000.0
        next_report = start + report_every

        try:
            while self._clock() - start < duration:
                self.source.pump(1)
                now = self._clock()

                if now >= next_calibration_tick:
                    self.tick_calibration()
                    next_calibration_tick = now + self.config.calibration_tick_ms / 1000.0
                if now >= next_tick:
                    self.tick()
                    next_tick += defaults.SESSION_TICK_SECONDS
                if verbose and now >= next_report:
                    status = self.get_status()
                    logger.info(
                        "%s  posture=%s score=%d moving=%s still=%ds",
                        status["elapsed"], status["posture"], status["posture_score"],
                        status["movement"]["is_moving"], status["movement"]["still_seconds"],
                    )
                    next_report += report_every

                # Maintain sample rate timing
                time.sleep(1.0 / sample_rate)
        except KeyboardInterrupt:
            logger.info("Interrupted by user")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def _scored_state(self) -> Optional[PostureState]:
        # Only classified time counts; uncalibrated and calibrating time does not
        if not self.connected or self.profile is None or self.is_calibrating:
            return None
        return self.posture_state

    @property
    def posture_score(self) -> int:
        return defaults.POSTURE_SCORES.get(self._scored_state(), 0)

    @property
    def movement_state(self) -> MovementState:
        return self.movement.state

    def get_status(self) -> dict:
        """Get current monitor status."""
        with self._lock:
            stats = self.session.snapshot(current=self._scored_state())
            status = {
                "connected": self.connected,
                "calibrated": self.is_calibrated,
                "calibrating": self.is_calibrating,
                "samples_processed": self._sample_count,
                "posture": self.posture_state.value,
                "message": self._status_message(),
                "posture_score": self.posture_score,
                "movement": {
                    "is_moving": self.movement.state.is_moving,
                    "still_seconds": self.movement.state.still_seconds,
                },
                "elapsed": format_duration(stats.elapsed) if self.connected else "0:00",
                "session": stats.to_dict(),
            }
            if self.profile is not None:
                status["profile"] = self.profile.to_dict()
            return status

    def _status_message(self) -> str:
        if self.is_calibrating:
            return defaults.MESSAGES["calibrating"]
        if not self.is_calibrated:
            return defaults.MESSAGES["uncalibrated"]
        if self.last_reading is not None:
            return self.last_reading.message
        return defaults.MESSAGES["analyzing"]


def create_mock_monitor(
    config: Optional[MonitorConfig] = None,
    sample_rate: float = 50.0,
    seed: Optional[int] = None,
) -> PostureMonitor:
    """
    Create a monitor wired to a connected mock source.

    Convenience function for testing and development.
    """
    source = MockSensorSource(sample_rate=sample_rate, seed=seed)
    monitor = PostureMonitor(source, config=config)
    monitor.open()
    source.connect()
    return monitor


def create_serial_monitor(
    port: str,
    baudrate: int = 115200,
    config: Optional[MonitorConfig] = None,
) -> PostureMonitor:
    """Create a monitor reading from a serial sensor bridge."""
    from .data.live import SerialSensorSource

    source = SerialSensorSource(port=port, baudrate=baudrate)
    monitor = PostureMonitor(source, config=config)
    monitor.open()
    source.connect()
    return monitor
