import logging
import re
import time
from typing import Optional

import serial

from ..models import AccelSample
from ..source import SensorSource

logger = logging.getLogger(__name__)

LINE_REGEX = re.compile(
    r"ACCEL(?: \(g\))?:\s*"
    r"X=(?P<x>-?\d+\.?\d*),?\s+"
    r"Y=(?P<y>-?\d+\.?\d*),?\s+"
    r"Z=(?P<z>-?\d+\.?\d*)",
    re.IGNORECASE,
)

# Plain "x,y,z" lines
CSV_REGEX = re.compile(
    r"^\s*(?P<x>-?\d+\.?\d*)\s*,\s*(?P<y>-?\d+\.?\d*)\s*,\s*(?P<z>-?\d+\.?\d*)\s*$"
)


def parse_line(line: str, timestamp: Optional[float] = None) -> Optional[AccelSample]:
    """Parse one text line from the sensor bridge. Returns None for non-sample lines."""
    match = LINE_REGEX.search(line) or CSV_REGEX.match(line)
    if not match:
        return None
    return AccelSample(
        x=float(match.group("x")),
        y=float(match.group("y")),
        z=float(match.group("z")),
        timestamp=timestamp,
    )


class SerialSensorSource(SensorSource):
    """
    Accelerometer samples from a serial/USB sensor bridge.

    The bridge prints one sample per line, in g. ``poll`` reads a single line
    and dispatches it; ``pump`` drains several lines in one call.
    """

    def __init__(self, port, baudrate=115200, timeout=1.0, reset_delay=2.0):
        super().__init__()
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.reset_delay = reset_delay
        self.ser = None

        self._read_count = 0
        self._skipped_count = 0

    def connect(self):
        if self.ser is not None:
            return
        self.ser = serial.Serial(self.port, self.baudrate, timeout=self.timeout)
        if self.reset_delay:
            time.sleep(self.reset_delay)  # board resets when the port opens
        self.ser.reset_input_buffer()
        logger.info("Connected to sensor bridge on %s @ %d baud", self.port, self.baudrate)
        self._set_connected(True)

    def disconnect(self):
        if self.ser:
            self.ser.close()
            self.ser = None
            logger.info("Disconnected from %s", self.port)
        self._set_connected(False)

    def poll(self) -> Optional[AccelSample]:
        """Read one line and dispatch it if it holds a sample."""
        if self.ser is None:
            return None

        try:
            line = self.ser.readline().decode(errors="ignore")
        except serial.SerialException:
            logger.exception("Serial read failed on %s", self.port)
            self.disconnect()
            return None

        sample = parse_line(line, timestamp=time.monotonic())
        if sample is None:
            if line.strip():
                self._skipped_count += 1
                logger.debug("Skipping unparsable line: %r", line.strip())
            return None

        self._read_count += 1
        self._dispatch(sample)
        return sample

    def pump(self, max_samples: int = 50) -> int:
        """Poll up to ``max_samples`` lines; returns the number of samples dispatched."""
        dispatched = 0
        for _ in range(max_samples):
            if self.ser is None:
                break
            if self.poll() is not None:
                dispatched += 1
        return dispatched

    def get_status(self) -> dict:
        total = self._read_count + self._skipped_count
        return {
            "connected": self.is_active,
            "port": self.port,
            "baudrate": self.baudrate,
            "successful_reads": self._read_count,
            "skipped_lines": self._skipped_count,
            "success_rate": self._read_count / max(1, total),
        }
