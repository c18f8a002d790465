import math

import pytest

from headposture.config import MonitorConfig
from headposture.data.models import AccelSample
from headposture.data.source import MockSensorSource
from headposture.events import EventBus
from headposture.monitor import PostureMonitor


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def sample_at(pitch=0.0, roll=0.0, timestamp=None):
    """Gravity-only sample for a head tilted by ``pitch``/``roll`` degrees."""
    p = math.radians(pitch)
    r = math.radians(roll)
    return AccelSample(
        x=math.sin(p),
        y=math.cos(p) * math.sin(r),
        z=math.cos(p) * math.cos(r),
        timestamp=timestamp,
    )


class EventRecorder:
    def __init__(self, bus):
        self.events = []
        bus.subscribe(self.events.append)

    def of(self, event_type):
        return [e.payload for e in self.events if e.event_type == event_type]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def source():
    return MockSensorSource(seed=7)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def recorder(bus):
    return EventRecorder(bus)


@pytest.fixture
def monitor(source, bus, clock, recorder):
    mon = PostureMonitor(source, config=MonitorConfig(), bus=bus, clock=clock)
    mon.open()
    source.connect()
    yield mon
    mon.close()


@pytest.fixture
def calibrated_monitor(monitor, source):
    monitor.start_calibration()
    for _ in range(60):
        source.push(sample_at(0.0, 0.0))
    assert monitor.is_calibrated
    return monitor
