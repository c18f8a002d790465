"""
Raw accelerometer payload decoding.

The sensor packs one sample as three little-endian signed 16-bit integers
(x, y, z) at ±2 g full scale, i.e. 16384 counts per g.
"""

from typing import Optional

import numpy as np

from .models import AccelSample

COUNTS_PER_G = 16384.0  # ±2g range
PACKET_SIZE = 6


def decode_accel_packet(data: bytes, timestamp: Optional[float] = None) -> AccelSample:
    """
    Decode a raw accelerometer notification into an AccelSample.

    Payloads shorter than 6 bytes decode to a zero sample; trailing bytes
    beyond the first 6 are ignored.
    """
    if len(data) < PACKET_SIZE:
        return AccelSample(timestamp=timestamp)

    counts = np.frombuffer(bytes(data[:PACKET_SIZE]), dtype="<i2").astype(float)
    x, y, z = counts / COUNTS_PER_G
    return AccelSample(x=float(x), y=float(y), z=float(z), timestamp=timestamp)


def encode_accel_packet(sample: AccelSample) -> bytes:
    """Inverse of ``decode_accel_packet``, clipping to the int16 range."""
    counts = np.clip(
        np.round(sample.vector * COUNTS_PER_G),
        -32768, 32767,
    )
    return counts.astype("<i2").tobytes()
