"""
Running cadence, personal stride model and fused distance from wrist IMU + GPS.

Example usage:
    session = WorkoutSession()
    session.set_stride_model(model)
    session.start()
    session.add_sample(sample)      # 20-50 Hz
    session.add_location(fix)       # ~1 Hz
    summary = session.stop()
"""

from .cadence import CadenceEstimator
from .calibration import CalibrationHistory, CalibrationSession
from .config import DEFAULT_CONFIG, TrackerConfig
from .detectors import get_detector
from .distance import DistanceAccumulator, IncrementSource, evaluate_signal_quality
from .errors import (
    MalformedFieldError,
    MissingFieldError,
    RecordDecodeError,
    ReplayError,
    StrideTrackerError,
)
from .models import (
    CadenceUpdate,
    CalibrationRecord,
    Coordinate,
    GPSFix,
    SensorSample,
    SignalQuality,
    StrideModel,
)
from .scheduler import PeriodicTask
from .session import SessionSummary, WorkoutSession
from .stride_model import StrideModelFitter, interpret_r_squared, predict_stride

__version__ = '0.1.0'

__all__ = [
    'CadenceEstimator',
    'CadenceUpdate',
    'CalibrationHistory',
    'CalibrationRecord',
    'CalibrationSession',
    'Coordinate',
    'DEFAULT_CONFIG',
    'DistanceAccumulator',
    'GPSFix',
    'IncrementSource',
    'MalformedFieldError',
    'MissingFieldError',
    'PeriodicTask',
    'RecordDecodeError',
    'ReplayError',
    'SensorSample',
    'SessionSummary',
    'SignalQuality',
    'StrideModel',
    'StrideModelFitter',
    'StrideTrackerError',
    'TrackerConfig',
    'WorkoutSession',
    'evaluate_signal_quality',
    'get_detector',
    'interpret_r_squared',
    'predict_stride',
]
