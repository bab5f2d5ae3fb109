"""
Domain records exchanged between the host application and the estimators.

All records are immutable. Timestamps are float seconds (epoch or any monotonic
origin, as long as one session uses the same origin); calendar times on persisted
records are timezone-aware datetimes.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import total_ordering
from enum import Enum
from typing import Optional

from .config import CALIBRATION_DISTANCE_METERS


def utc_now():
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SensorSample:
    """One inertial reading from the wrist/ankle device."""

    accel_x: float  # g
    accel_y: float
    accel_z: float
    gyro_x: float   # rad/s
    gyro_y: float
    gyro_z: float
    timestamp: float
    heart_rate: Optional[float] = None  # bpm, absent when HealthKit has no reading

    @property
    def accel_magnitude(self):
        return math.sqrt(self.accel_x ** 2 + self.accel_y ** 2 + self.accel_z ** 2)

    @property
    def gyro_magnitude(self):
        return math.sqrt(self.gyro_x ** 2 + self.gyro_y ** 2 + self.gyro_z ** 2)

    @property
    def has_timestamp(self):
        """False for samples whose timestamp is missing or not a finite number."""
        return isinstance(self.timestamp, (int, float)) and math.isfinite(self.timestamp)


@dataclass(frozen=True)
class GPSFix:
    """
    One location fix.

    A negative (or missing) horizontal_accuracy means the receiver had no fix; the
    coordinates of such a record are not meaningful.
    """

    latitude: float
    longitude: float
    timestamp: float
    horizontal_accuracy: float = -1.0
    altitude: float = 0.0
    vertical_accuracy: float = -1.0
    speed: float = -1.0
    course: float = -1.0

    @property
    def has_fix(self):
        return (
            self.horizontal_accuracy is not None
            and self.horizontal_accuracy >= 0
            and math.isfinite(self.latitude)
            and math.isfinite(self.longitude)
        )


@dataclass(frozen=True)
class Coordinate:
    """Path point kept for display."""

    latitude: float
    longitude: float
    timestamp: float


@dataclass(frozen=True)
class CalibrationRecord:
    """Result of one fixed-length calibration run."""

    total_steps: int
    average_cadence: float
    elapsed_seconds: float
    measured_at: datetime = field(default_factory=utc_now)
    known_distance: float = CALIBRATION_DISTANCE_METERS

    @property
    def step_length(self):
        if self.total_steps <= 0:
            return 0.0
        return self.known_distance / self.total_steps


@dataclass(frozen=True)
class StrideModel:
    """Linear stride model: stride_length = alpha * cadence + beta."""

    alpha: float
    beta: float
    r_squared: float
    sample_count: int
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class CadenceUpdate:
    """Notification published after every rolling or final cadence computation."""

    cadence: float
    total_steps: int
    new_steps: int
    interval_seconds: float
    sample_count: int
    timestamp: Optional[float]
    final: bool = False


@total_ordering
class SignalQuality(Enum):
    """GPS signal bands ordered from worst to best."""

    NONE = 0
    POOR = 1
    FAIR = 2
    GOOD = 3
    EXCELLENT = 4

    def __lt__(self, other):
        if not isinstance(other, SignalQuality):
            return NotImplemented
        return self.value < other.value
