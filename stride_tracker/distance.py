"""
DistanceAccumulator - cumulative running distance from GPS with pedometer fallback.

GPS (ground truth when the signal is good, ~1 Hz) is the primary source: the
great-circle distance between consecutive accepted fixes is added to the total.
When GPS is weak or missing and a personal stride model is bound, cadence updates
are turned into distance instead:

    increment = predicted_stride(cadence) * (cadence / 60) * elapsed_seconds

Only one source is credited per interval. A pedometer credit drops the GPS anchor,
so the next GPS increment starts from the first good fix after the fallback period
instead of spanning (and double counting) it. In the other direction, a pedometer
credit only covers the part of its interval after the last GPS credit.

Fixes without a usable accuracy still go on the path for display, but they never
count towards distance or become the anchor.

Signal quality bands (horizontal accuracy):
    < 0 m   NONE       no fix
    < 10 m  EXCELLENT
    < 20 m  GOOD
    < 50 m  FAIR
    >= 50 m POOR
"""

import logging
import math
import threading
from enum import Enum

from .config import DEFAULT_CONFIG
from .geo import haversine_distance
from .models import Coordinate, SignalQuality
from .stride_model import predict_stride

logger = logging.getLogger(__name__)


class IncrementSource(Enum):
    GPS = 'gps'
    PEDOMETER = 'pedometer'


def evaluate_signal_quality(fix, config=DEFAULT_CONFIG):
    """
    Classify a fix by horizontal accuracy.

    Args:
        fix (GPSFix or None): location fix

    Returns:
        SignalQuality
    """
    if fix is None or not fix.has_fix:
        return SignalQuality.NONE
    accuracy = fix.horizontal_accuracy
    if accuracy < config.accuracy_excellent:
        return SignalQuality.EXCELLENT
    if accuracy < config.accuracy_good:
        return SignalQuality.GOOD
    if accuracy < config.accuracy_fair:
        return SignalQuality.FAIR
    return SignalQuality.POOR


class DistanceAccumulator:
    """
    Thread-safe fused distance accumulator.

    total_distance never decreases within a session; every numeric guard fails
    closed to "no contribution".
    """

    def __init__(self, config=DEFAULT_CONFIG, stride_model=None):
        self.config = config

        # Distance state
        self._total_distance = 0.0
        self._gps_distance = 0.0
        self._pedometer_distance = 0.0
        self._path = []
        self._last_accepted_fix = None
        self._last_source = None
        self._current_speed = 0.0
        self._last_gps_credit_time = None

        # Latest fix of any quality (drives the fallback decision)
        self._latest_fix = None
        self._latest_quality = SignalQuality.NONE

        self._stride_model = stride_model

        # Diagnostics
        self.rejected_jumps = 0
        self.path_only_fixes = 0

        self.lock = threading.Lock()

    # ------------------------------------------------------------------
    # Published values
    # ------------------------------------------------------------------

    @property
    def total_distance(self):
        with self.lock:
            return self._total_distance

    @property
    def path(self):
        with self.lock:
            return list(self._path)

    @property
    def current_speed(self):
        with self.lock:
            return self._current_speed

    @property
    def stride_model(self):
        with self.lock:
            return self._stride_model

    @property
    def last_source(self):
        with self.lock:
            return self._last_source

    def evaluate_signal_quality(self, fix):
        return evaluate_signal_quality(fix, self.config)

    # ------------------------------------------------------------------
    # GPS path
    # ------------------------------------------------------------------

    def add_location(self, fix):
        """
        Add a GPS fix: extend the path and, for good fixes, the distance.

        Args:
            fix (GPSFix): new location fix

        Returns:
            float: distance credited by this fix (meters, >= 0)
        """
        quality = self.evaluate_signal_quality(fix)

        with self.lock:
            self._latest_fix = fix
            self._latest_quality = quality

            if not (math.isfinite(fix.latitude) and math.isfinite(fix.longitude)):
                logger.debug("GPS: unusable coordinates, fix dropped")
                return 0.0

            self._path.append(Coordinate(fix.latitude, fix.longitude, fix.timestamp))

            if quality < SignalQuality.GOOD:
                self.path_only_fixes += 1
                logger.debug(
                    "GPS: %s signal (accuracy %s m), path only",
                    quality.name.lower(), fix.horizontal_accuracy
                )
                return 0.0

            previous = self._last_accepted_fix
            self._last_accepted_fix = fix
            if previous is None:
                return 0.0

            increment = haversine_distance(
                previous.latitude, previous.longitude,
                fix.latitude, fix.longitude
            )
            time_delta = fix.timestamp - previous.timestamp

            if not self._is_plausible(increment, time_delta):
                # Re-anchored on the new fix, the jump itself is not counted
                self.rejected_jumps += 1
                logger.warning(
                    "GPS: rejected jump of %.1fm over %.2fs", increment, time_delta
                )
                return 0.0

            self._total_distance += increment
            self._gps_distance += increment
            self._current_speed = increment / time_delta
            self._last_source = IncrementSource.GPS
            self._last_gps_credit_time = fix.timestamp
            total = self._total_distance

        logger.debug("GPS distance: +%.1fm (total %.2fkm)", increment, total / 1000)
        return increment

    def _is_plausible(self, increment, time_delta):
        if not math.isfinite(increment) or increment < 0:
            return False
        if not time_delta > 0:
            return False
        return increment / time_delta < self.config.max_realistic_speed

    # ------------------------------------------------------------------
    # Pedometer fallback
    # ------------------------------------------------------------------

    def set_stride_model(self, model):
        """Bind (or with None, unbind) the stride model used for fallback. Latest wins."""
        with self.lock:
            self._stride_model = model
        if model is not None:
            logger.info(
                "Stride model bound: alpha=%.5f beta=%.4f (n=%d)",
                model.alpha, model.beta, model.sample_count
            )

    def gps_available(self, timestamp=None):
        """True while the latest fix is good and, if a timestamp is given, recent."""
        with self.lock:
            return self._gps_available(timestamp)

    def _gps_available(self, timestamp):
        if self._latest_fix is None or self._latest_quality < SignalQuality.GOOD:
            return False
        if timestamp is not None:
            age = timestamp - self._latest_fix.timestamp
            if age > self.config.gps_stale_seconds:
                return False
        return True

    def on_cadence_update(self, cadence, elapsed_seconds, timestamp=None):
        """
        Credit pedometer distance for an interval when GPS cannot.

        Args:
            cadence (float): steps per minute, 0 means unknown
            elapsed_seconds (float): interval covered by this cadence
            timestamp (float, optional): end of the interval, used for GPS staleness
                and to skip seconds GPS already covered

        Returns:
            float: distance credited (meters, >= 0)
        """
        if not (math.isfinite(cadence) and cadence > 0):
            return 0.0
        if not (math.isfinite(elapsed_seconds) and elapsed_seconds > 0):
            return 0.0

        with self.lock:
            model = self._stride_model
            if model is None or self._gps_available(timestamp):
                return 0.0

            if timestamp is not None and self._last_gps_credit_time is not None:
                # Seconds up to the last GPS credit are already paid for
                uncovered = timestamp - self._last_gps_credit_time
                elapsed_seconds = min(elapsed_seconds, max(0.0, uncovered))
                if not elapsed_seconds > 0:
                    return 0.0

            stride = predict_stride(
                model, cadence,
                self.config.min_stride_meters, self.config.max_stride_meters
            )
            increment = stride * (cadence / 60.0) * elapsed_seconds
            if not (math.isfinite(increment) and increment > 0):
                return 0.0

            self._total_distance += increment
            self._pedometer_distance += increment
            self._last_source = IncrementSource.PEDOMETER
            # Next GPS increment must not span the interval just credited
            self._last_accepted_fix = None
            total = self._total_distance

        logger.debug(
            "Pedometer distance: +%.1fm at %.0f SPM (stride %.2fm, total %.2fkm)",
            increment, cadence, stride, total / 1000
        )
        return increment

    # ------------------------------------------------------------------
    # Lifecycle / introspection
    # ------------------------------------------------------------------

    def reset_distance(self):
        """Zero distance and clear the path. The stride model stays bound."""
        with self.lock:
            self._total_distance = 0.0
            self._gps_distance = 0.0
            self._pedometer_distance = 0.0
            self._path = []
            self._last_accepted_fix = None
            self._latest_fix = None
            self._latest_quality = SignalQuality.NONE
            self._last_source = None
            self._last_gps_credit_time = None
            self._current_speed = 0.0
            self.rejected_jumps = 0
            self.path_only_fixes = 0
        logger.debug("Distance reset")

    def get_state(self):
        """Get current state - thread safe"""
        with self.lock:
            return {
                'distance': self._total_distance,
                'gps_distance': self._gps_distance,
                'pedometer_distance': self._pedometer_distance,
                'path_points': len(self._path),
                'current_speed': self._current_speed,
                'signal_quality': self._latest_quality.name.lower(),
                'last_source': self._last_source.value if self._last_source else None,
                'has_stride_model': self._stride_model is not None,
                'rejected_jumps': self.rejected_jumps,
                'path_only_fixes': self.path_only_fixes,
            }
