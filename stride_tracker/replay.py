#!/usr/bin/env python3
"""
Replay a recorded running session through the cadence and distance estimators.

Refeeds the recorded IMU samples and GPS fixes in timestamp order and fires the
cadence tick on the recorded timeline instead of wall time, so a session can be
re-analysed (for example with another detector or a freshly fitted stride model)
without going for another run.

Session file (.json or .json.gz):
    {
        "sensor_samples": [{"accelX": .., "accelY": .., "accelZ": ..,
                            "gyroX": .., "gyroY": .., "gyroZ": ..,
                            "timestamp": .., "heartRate": ..}, ...],
        "gps_fixes": [{"latitude": .., "longitude": .., "horizontalAccuracy": ..,
                       "timestamp": .., ...}, ...],
        "calibration_records": [{"totalSteps": .., "averageCadence": ..,
                                 "elapsedSeconds": .., "measuredAt": ..}, ...],
        "stride_model": {"alpha": .., "beta": .., "rSquared": ..,
                         "createdAt": .., "sampleCount": ..}
    }
"""

import argparse
import gzip
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .cadence import CadenceEstimator
from .calibration import CalibrationHistory
from .config import DEFAULT_CONFIG
from .detectors import get_detector
from .distance import DistanceAccumulator
from .errors import RecordDecodeError, ReplayError
from .geo import path_length
from .serialization import (
    decode_calibration_record,
    decode_gps_fix,
    decode_sensor_sample,
    decode_stride_model,
    encode_stride_model,
)
from .session import WorkoutSession
from .stride_model import StrideModelFitter

logger = logging.getLogger(__name__)


@dataclass
class ReplayEvent:
    timestamp: float
    kind: str
    payload: Any


class ReplayTask:
    """Stand-in for PeriodicTask: the replay loop fires it on recorded time."""

    def __init__(self, interval, callback, name='replay-task'):
        self.interval = interval
        self.callback = callback
        self.name = name
        self.cancelled = False

    def fire(self):
        if not self.cancelled:
            return self.callback()
        return None

    def cancel(self):
        self.cancelled = True


class ReplayTaskFactory:
    def __init__(self):
        self.task = None

    def __call__(self, interval, callback, name='replay-task'):
        self.task = ReplayTask(interval, callback, name)
        return self.task


def load_session(path: Path) -> Dict:
    opener = gzip.open if path.suffix == ".gz" else open
    try:
        with opener(path, "rt", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise ReplayError(f"Cannot read session {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ReplayError(f"Session {path} is not a JSON object")
    return data


def build_events(data: Dict) -> List[ReplayEvent]:
    events: List[ReplayEvent] = []
    for payload in data.get("sensor_samples") or []:
        sample = decode_sensor_sample(payload)
        events.append(ReplayEvent(sample.timestamp, "sample", sample))
    for payload in data.get("gps_fixes") or []:
        fix = decode_gps_fix(payload)
        events.append(ReplayEvent(fix.timestamp, "gps", fix))

    if not events:
        raise ReplayError("Session has no samples to replay")

    # Stable sort keeps recorded order for identical timestamps
    events.sort(key=lambda ev: ev.timestamp)
    return events


def resolve_stride_model(data: Dict, fitter: StrideModelFitter):
    """Prefer refitting from recorded calibration records, fall back to the stored model."""
    records = [decode_calibration_record(p) for p in data.get("calibration_records") or []]
    if records:
        history = CalibrationHistory(fitter)
        history.load(records)
        model = history.recalculate()
        if model is not None:
            return model
    if data.get("stride_model"):
        return decode_stride_model(data["stride_model"])
    return None


def replay_session(data: Dict, detector_type: str = "state_machine",
                   use_stride_model: bool = True) -> Tuple[Dict, List[float]]:
    config = DEFAULT_CONFIG
    factory = ReplayTaskFactory()
    estimator = CadenceEstimator(
        config,
        detector=get_detector(detector_type) if detector_type != "state_machine" else None,
        task_factory=factory,
    )
    session = WorkoutSession(config, estimator, DistanceAccumulator(config))

    model = resolve_stride_model(data, StrideModelFitter(config)) if use_stride_model else None
    events = build_events(data)

    rolling: List[float] = []
    session.start()
    if model is not None:
        session.set_stride_model(model)

    next_tick = events[0].timestamp + config.update_interval_seconds
    for event in events:
        while event.timestamp >= next_tick:
            update = factory.task.fire() if factory.task else None
            if update is not None and update.cadence > 0:
                rolling.append(update.cadence)
            next_tick += config.update_interval_seconds

        if event.kind == "sample":
            session.add_sample(event.payload)
        else:
            session.add_location(event.payload)

    update = factory.task.fire() if factory.task else None
    if update is not None and update.cadence > 0:
        rolling.append(update.cadence)

    summary = session.stop().to_dict()
    summary["stride_model"] = encode_stride_model(model) if model is not None else None
    summary["detector"] = estimator.detector.name
    summary["path"] = [
        {"latitude": p.latitude, "longitude": p.longitude, "timestamp": p.timestamp}
        for p in session.path
    ]
    summary["path_length"] = path_length(session.path)
    return summary, rolling


def describe_rolling(rolling: List[float]) -> Optional[Dict[str, float]]:
    if not rolling:
        return None
    values = np.asarray(rolling, dtype=float)
    return {
        "mean": float(values.mean()),
        "std": float(values.std()),
        "min": float(values.min()),
        "max": float(values.max()),
    }


def print_summary(summary: Dict, rolling_stats: Optional[Dict[str, float]]) -> None:
    print("=" * 60)
    print("SESSION REPLAY SUMMARY")
    print("=" * 60)
    print(f"Detector:           {summary['detector']}")
    print(f"Samples:            {summary['sample_count']} over {summary['duration_seconds']:.1f}s")
    print(f"Final cadence:      {summary['cadence']:.1f} SPM")
    print(f"Steps:              {summary['total_steps']}")
    print(f"Distance:           {summary['total_distance']:.1f} m "
          f"(GPS {summary['gps_distance']:.1f} m, pedometer {summary['pedometer_distance']:.1f} m)")
    print(f"Path points:        {summary['path_points']} ({summary['path_length']:.1f} m along the path)")
    if rolling_stats:
        print(f"Rolling cadence:    {rolling_stats['mean']:.1f} ± {rolling_stats['std']:.1f} SPM "
              f"(range {rolling_stats['min']:.1f}-{rolling_stats['max']:.1f})")
    model = summary.get("stride_model")
    if model:
        print(f"Stride model:       {model['alpha']:.5f} x cadence + {model['beta']:.4f} "
              f"(R² {model['rSquared']:.3f}, n={model['sampleCount']})")
    else:
        print("Stride model:       none (pedometer fallback disabled)")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay a recorded running session")
    parser.add_argument(
        "session",
        type=Path,
        help="Path to session .json[.gz] file",
    )
    parser.add_argument(
        "--detector",
        choices=["state_machine", "threshold"],
        default="state_machine",
        help="Footstrike detector (default: state_machine)",
    )
    parser.add_argument(
        "--no-stride-model",
        action="store_true",
        help="Ignore recorded calibration data (GPS-only distance)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Optional JSON file for the summary and path",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        data = load_session(args.session)
        summary, rolling = replay_session(
            data,
            detector_type=args.detector,
            use_stride_model=not args.no_stride_model,
        )
    except (ReplayError, RecordDecodeError) as exc:
        logger.error("%s", exc)
        print(f"✗ Replay failed: {exc}", file=sys.stderr)
        return 1

    rolling_stats = describe_rolling(rolling)
    print_summary(summary, rolling_stats)

    if args.output:
        summary["rolling_cadence"] = rolling_stats
        args.output.write_text(json.dumps(summary, indent=2), encoding="utf-8")
        print(f"✓ Summary written to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
