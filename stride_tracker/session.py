"""
WorkoutSession - owns the estimators for one running session.

The host builds one WorkoutSession per user profile (no module-level singletons)
and feeds it samples and fixes from whatever delivery context it has. Rolling
cadence updates are forwarded to the distance accumulator so weak-GPS stretches
are covered by the stride model.
"""

import logging
import threading
from dataclasses import asdict, dataclass

from .cadence import CadenceEstimator
from .config import DEFAULT_CONFIG
from .distance import DistanceAccumulator

logger = logging.getLogger(__name__)


@dataclass
class SessionSummary:
    cadence: float
    total_steps: int
    total_distance: float
    gps_distance: float
    pedometer_distance: float
    path_points: int
    sample_count: int
    duration_seconds: float

    def to_dict(self):
        return asdict(self)


class WorkoutSession:
    """
    Wires a CadenceEstimator and a DistanceAccumulator together.

    Args:
        config (TrackerConfig): shared thresholds
        cadence_estimator (CadenceEstimator, optional): injected estimator
        distance_accumulator (DistanceAccumulator, optional): injected accumulator
    """

    def __init__(self, config=DEFAULT_CONFIG, cadence_estimator=None, distance_accumulator=None):
        self.config = config
        self.cadence_estimator = cadence_estimator or CadenceEstimator(config)
        self.distance_accumulator = distance_accumulator or DistanceAccumulator(config)
        self.cadence_estimator.add_listener(self._on_cadence_update)

        self.active = False
        self._samples = []
        self._samples_lock = threading.Lock()

    # Host-facing outputs

    @property
    def current_cadence(self):
        return self.cadence_estimator.current_cadence

    @property
    def current_steps(self):
        return self.cadence_estimator.current_steps

    @property
    def total_distance(self):
        return self.distance_accumulator.total_distance

    @property
    def path(self):
        return self.distance_accumulator.path

    def set_stride_model(self, model):
        self.distance_accumulator.set_stride_model(model)

    # Lifecycle

    def start(self):
        with self._samples_lock:
            self._samples = []
        self.distance_accumulator.reset_distance()
        self.cadence_estimator.start()
        self.active = True
        logger.info("Workout session started")

    def stop(self):
        """Stop monitoring, compute the final cadence and return the summary."""
        if not self.active:
            return self.summary()
        self.active = False
        self.cadence_estimator.stop()
        with self._samples_lock:
            samples = list(self._samples)
        self.cadence_estimator.finalize(samples)
        summary = self.summary()
        logger.info(
            "Workout session stopped: %.1f SPM, %d steps, %.1fm",
            summary.cadence, summary.total_steps, summary.total_distance
        )
        return summary

    # Ingestion

    def add_sample(self, sample):
        if not self.active or not sample.has_timestamp:
            return
        self.cadence_estimator.add_sample(sample)
        with self._samples_lock:
            self._samples.append(sample)

    def add_location(self, fix):
        if not self.active:
            return
        self.distance_accumulator.add_location(fix)

    def _on_cadence_update(self, update):
        if update.final:
            return
        self.distance_accumulator.on_cadence_update(
            update.cadence, update.interval_seconds, update.timestamp
        )

    # Reporting

    def summary(self):
        with self._samples_lock:
            timestamps = [s.timestamp for s in self._samples]
        duration = max(timestamps) - min(timestamps) if timestamps else 0.0
        state = self.distance_accumulator.get_state()
        return SessionSummary(
            cadence=self.cadence_estimator.current_cadence,
            total_steps=self.cadence_estimator.current_steps,
            total_distance=state['distance'],
            gps_distance=state['gps_distance'],
            pedometer_distance=state['pedometer_distance'],
            path_points=state['path_points'],
            sample_count=len(timestamps),
            duration_seconds=duration,
        )
