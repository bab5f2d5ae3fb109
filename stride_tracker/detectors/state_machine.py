"""
Three-state footstrike detector for an ankle/wrist mounted IMU.

Sensor axes (ankle mount):
- X: sole direction, carries the landing impact
- Y: body-forward direction, positive during forward swing
- Z: sagittal rotation axis, gyro Z swings positive then sharply negative at contact

Only the first strong negative gyro Z excursion after a swing phase is taken as a
footstrike; later negative excursions are ignored until gyro Z turns positive again.
"""

from enum import Enum

from ..config import STRIKE_GYRO_Z_THRESHOLD
from .base import PeakDetector


class DetectorState(Enum):
    WAITING_FOR_SWING_START = 'waiting_for_swing_start'
    WAITING_FOR_STRIKE = 'waiting_for_strike'
    COOLDOWN = 'cooldown'


class StateMachineDetector(PeakDetector):
    """Canonical detector: swing start -> first strike -> cooldown."""

    name = 'state_machine'

    def __init__(self, strike_threshold=STRIKE_GYRO_Z_THRESHOLD):
        """
        Args:
            strike_threshold (float): gyro Z (rad/s) at or below which a strike is recorded
        """
        self.strike_threshold = strike_threshold

    def detect(self, samples):
        peaks = []
        state = DetectorState.WAITING_FOR_SWING_START

        for index, sample in enumerate(samples):
            if state is DetectorState.WAITING_FOR_SWING_START:
                if sample.gyro_z > 0 and sample.accel_y > 0:
                    state = DetectorState.WAITING_FOR_STRIKE

            elif state is DetectorState.WAITING_FOR_STRIKE:
                if sample.gyro_z <= self.strike_threshold:
                    peaks.append(index)
                    state = DetectorState.COOLDOWN

            elif state is DetectorState.COOLDOWN:
                if sample.gyro_z > 0:
                    state = DetectorState.WAITING_FOR_SWING_START

        return peaks
