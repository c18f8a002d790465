"""Movement and posture detection."""

from .detector import MovementDetector, PostureClassifier

__all__ = [
    "MovementDetector",
    "PostureClassifier",
]
