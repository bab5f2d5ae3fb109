"""
Abstract base class for footstrike peak detectors.

All detector implementations must inherit from PeakDetector and implement
detect(). Detectors are stateless between calls: every call walks the given
samples from a fresh initial state, so the same instance can be shared by the
rolling window and the end-of-session pass.
"""

from abc import ABC, abstractmethod


class PeakDetector(ABC):
    """
    Finds footstrike events in a time-ordered list of SensorSample.

    This interface allows different detection strategies (state machine,
    threshold) to be used interchangeably by the cadence estimator.
    """

    name = 'base'

    @abstractmethod
    def detect(self, samples):
        """
        Detect footstrike peaks.

        Args:
            samples (list[SensorSample]): Samples sorted by timestamp

        Returns:
            list[int]: Indices into `samples` of the detected peaks, ascending
        """
        pass
