"""
Pluggable footstrike detector implementations.

This module provides a factory function to instantiate the detectors, which all
conform to the PeakDetector interface.

Example usage:
    detector = get_detector('state_machine')
    peaks = detector.detect(samples)
"""

from .base import PeakDetector


def get_detector(detector_type='state_machine', **kwargs):
    """
    Factory function to get detector implementation by name.

    Args:
        detector_type (str): Detector type - options:
            - 'state_machine': swing/strike/cooldown gyro Z detector (default, canonical)
            - 'threshold': accel X impact detector with 0.35 s spacing (comparison only)
        **kwargs: Additional arguments passed to detector constructor

    Returns:
        PeakDetector instance

    Raises:
        ValueError: If detector_type is not recognized
    """
    if detector_type == 'state_machine':
        from .state_machine import StateMachineDetector
        return StateMachineDetector(**kwargs)
    elif detector_type == 'threshold':
        from .threshold import ThresholdDetector
        return ThresholdDetector(**kwargs)
    else:
        raise ValueError(f"Unknown detector type: {detector_type}. Use 'state_machine' or 'threshold'")


__all__ = ['PeakDetector', 'get_detector']
