"""
Tuning constants for cadence, stride calibration and distance fusion.

Every estimator takes its thresholds from a TrackerConfig. The defaults below are
the values validated on ankle/wrist traces at 20-50 Hz; pass a TrackerConfig with
overrides to experiment without touching the estimators.
"""

from dataclasses import dataclass, replace


# Cadence window / scheduling
WINDOW_SECONDS = 10.0          # sliding window kept for rolling cadence
UPDATE_INTERVAL_SECONDS = 3.0  # rolling cadence republish period
MIN_CADENCE_SAMPLES = 20       # ~1 s at 20 Hz

# Footstrike detection (state machine)
STRIKE_GYRO_Z_THRESHOLD = -2.0  # rad/s, rapid backward rotation at ground contact

# Alternate threshold detector (comparison only)
THRESHOLD_ACCEL_X_MIN = 1.5     # g
THRESHOLD_MIN_SPACING = 0.35    # seconds between accepted peaks

# Plausible cadence range (SPM, both feet)
MIN_SPM = 60.0
MAX_SPM = 300.0

# A single-ankle sensor sees one leg's strikes only
STEPS_PER_PEAK = 2

# Stride model
MIN_FIT_RECORDS = 5
MIN_STRIDE_METERS = 0.3
MAX_STRIDE_METERS = 1.2
CALIBRATION_DISTANCE_METERS = 100.0

# GPS quality bands (horizontal accuracy, meters)
ACCURACY_EXCELLENT = 10.0
ACCURACY_GOOD = 20.0
ACCURACY_FAIR = 50.0

# GPS sanity checks
MAX_REALISTIC_SPEED = 15.0     # m/s (54 km/h), faster means a reacquisition jump
GPS_STALE_SECONDS = 10.0       # fixes older than this no longer count as "GPS available"

# Calibration run acceptance
MIN_CALIBRATION_STEPS = 20
MIN_CALIBRATION_SECONDS = 10.0


@dataclass(frozen=True)
class TrackerConfig:
    """Bundle of thresholds shared by the estimators."""

    window_seconds: float = WINDOW_SECONDS
    update_interval_seconds: float = UPDATE_INTERVAL_SECONDS
    min_cadence_samples: int = MIN_CADENCE_SAMPLES
    strike_gyro_z_threshold: float = STRIKE_GYRO_Z_THRESHOLD
    threshold_accel_x_min: float = THRESHOLD_ACCEL_X_MIN
    threshold_min_spacing: float = THRESHOLD_MIN_SPACING
    min_spm: float = MIN_SPM
    max_spm: float = MAX_SPM
    steps_per_peak: int = STEPS_PER_PEAK
    min_fit_records: int = MIN_FIT_RECORDS
    min_stride_meters: float = MIN_STRIDE_METERS
    max_stride_meters: float = MAX_STRIDE_METERS
    calibration_distance_meters: float = CALIBRATION_DISTANCE_METERS
    accuracy_excellent: float = ACCURACY_EXCELLENT
    accuracy_good: float = ACCURACY_GOOD
    accuracy_fair: float = ACCURACY_FAIR
    max_realistic_speed: float = MAX_REALISTIC_SPEED
    gps_stale_seconds: float = GPS_STALE_SECONDS
    min_calibration_steps: int = MIN_CALIBRATION_STEPS
    min_calibration_seconds: float = MIN_CALIBRATION_SECONDS

    def with_overrides(self, **overrides):
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)


DEFAULT_CONFIG = TrackerConfig()
