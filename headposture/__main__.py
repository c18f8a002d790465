"""
Command line runner.

    python -m headposture --seconds 30                 # mock sensor
    python -m headposture --serial /dev/ttyUSB0        # serial bridge
"""

import argparse
import logging
import sys

from .config import MonitorConfig
from .events import EventType
from .monitor import create_mock_monitor, create_serial_monitor


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="headposture", description="Live head posture monitor")
    parser.add_argument("--serial", metavar="PORT", help="Serial port of the sensor bridge (default: mock sensor)")
    parser.add_argument("--baudrate", type=int, default=115200)
    parser.add_argument("--seconds", type=float, default=30.0, help="Run time in seconds")
    parser.add_argument("--no-calibrate", action="store_true", help="Skip the initial calibration")
    parser.add_argument("--mock-posture", default="upright", help="Posture simulated after calibration")
    parser.add_argument("--invert-pitch", action="store_true")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = MonitorConfig(invert_pitch=args.invert_pitch)
    if args.serial:
        monitor = create_serial_monitor(args.serial, baudrate=args.baudrate, config=config)
    else:
        monitor = create_mock_monitor(config=config, seed=args.seed)

    def on_result(event):
        result = event.payload
        if result.success:
            print(f"Calibrated: {result.profile.to_dict()}")
            if not args.serial:
                monitor.source.set_posture(args.mock_posture)
        else:
            print(f"Calibration failed ({result.samples_collected}/{result.samples_required} still samples)")

    def on_reminder(event):
        print(f"You've been still for {event.payload.still_seconds} seconds. Time to stretch!")

    monitor.bus.subscribe(on_result, EventType.CALIBRATION_RESULT)
    monitor.bus.subscribe(on_reminder, EventType.STILLNESS_REMINDER)

    try:
        if not args.no_calibrate:
            monitor.start_calibration()
        monitor.run_until(args.seconds)
        status = monitor.get_status()
        print(f"Session {status['elapsed']}: {status['session']['percentages']}")
    finally:
        monitor.close()
        monitor.source.disconnect()
    return 0


if __name__ == "__main__":
    sys.exit(main())
