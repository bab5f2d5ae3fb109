"""
Threshold footstrike detector from an earlier iteration of the watch app.

Kept for offline comparison against the state machine on recorded traces. It is
never selected by default: its thresholds were tuned for a different mount and have
not been re-validated on live data.
"""

from ..config import THRESHOLD_ACCEL_X_MIN, THRESHOLD_MIN_SPACING
from .base import PeakDetector


class ThresholdDetector(PeakDetector):
    """Peak = strong X impact while Y and gyro Z are both negative, with a refractory gap."""

    name = 'threshold'

    def __init__(self, accel_x_min=THRESHOLD_ACCEL_X_MIN, min_spacing=THRESHOLD_MIN_SPACING):
        self.accel_x_min = accel_x_min
        self.min_spacing = min_spacing

    def detect(self, samples):
        peaks = []
        last_peak_time = None

        for index, sample in enumerate(samples):
            if sample.accel_x < self.accel_x_min:
                continue
            if sample.accel_y >= 0 or sample.gyro_z >= 0:
                continue
            if last_peak_time is not None and sample.timestamp - last_peak_time < self.min_spacing:
                continue
            peaks.append(index)
            last_peak_time = sample.timestamp

        return peaks
