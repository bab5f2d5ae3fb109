"""
Stride calibration: fixed-course runs and the record history behind the model.

A calibration run collects every IMU sample while a private DistanceAccumulator
measures GPS distance. Once the course length (100 m) is covered the host is
notified, stops the run and gets a CalibrationRecord back. Records go into a
CalibrationHistory, which refits the StrideModel after every change and binds the
result into the live DistanceAccumulator.

Precondition: a calibration run and live monitoring never run concurrently for
the same profile. Nothing here enforces it.
"""

import logging
import time

from .cadence import CadenceEstimator
from .config import DEFAULT_CONFIG
from .distance import DistanceAccumulator
from .models import CalibrationRecord, utc_now
from .stride_model import StrideModelFitter, interpret_r_squared

logger = logging.getLogger(__name__)


class CalibrationSession:
    """
    One fixed-course calibration run.

    Args:
        config (TrackerConfig): thresholds (course length, minimum steps/seconds)
        cadence_estimator (CadenceEstimator): used only for its cadence/step math
        distance_accumulator (DistanceAccumulator): private GPS distance tracker
        on_course_complete (callable): called once with the distance when the
            course length is reached
        clock (callable): seconds source for elapsed time, time.time by default
    """

    def __init__(self, config=DEFAULT_CONFIG, cadence_estimator=None,
                 distance_accumulator=None, on_course_complete=None, clock=time.time):
        self.config = config
        self.cadence_estimator = cadence_estimator or CadenceEstimator(config)
        self.distance_accumulator = distance_accumulator or DistanceAccumulator(config)
        self.on_course_complete = on_course_complete
        self.clock = clock

        self.is_calibrating = False
        self.has_reached_course = False
        self.start_time = None
        self.samples = []

    @property
    def current_distance(self):
        return self.distance_accumulator.total_distance

    def elapsed_time(self, now=None):
        if self.start_time is None:
            return 0.0
        now = self.clock() if now is None else now
        return max(0.0, now - self.start_time)

    def start_calibration(self, start_time=None):
        """Begin a new run, discarding anything collected by a previous one."""
        self.reset_calibration()
        self.distance_accumulator.reset_distance()
        self.is_calibrating = True
        self.start_time = self.clock() if start_time is None else start_time
        logger.info(
            "Calibration started (%.0fm course)", self.config.calibration_distance_meters
        )

    def add_sample(self, sample):
        if not self.is_calibrating or not sample.has_timestamp:
            return
        self.samples.append(sample)

    def add_location(self, fix):
        """Feed a GPS fix; fires on_course_complete once the course is covered."""
        if not self.is_calibrating:
            return
        self.distance_accumulator.add_location(fix)
        distance = self.distance_accumulator.total_distance

        if distance >= self.config.calibration_distance_meters and not self.has_reached_course:
            self.has_reached_course = True
            logger.info("Calibration course reached (%.1fm)", distance)
            if self.on_course_complete is not None:
                try:
                    self.on_course_complete(distance)
                except Exception:
                    logger.exception("Course-complete callback failed")

    def stop_calibration(self, end_time=None):
        """
        Finish the run and build its record.

        Args:
            end_time (float, optional): end of the run on the same clock as start

        Returns:
            CalibrationRecord or None when the run was not started, collected no
            samples, or is too short (fewer than 20 steps or 10 seconds)
        """
        if not self.is_calibrating or self.start_time is None:
            logger.warning("Calibration stop requested but no run is active")
            return None

        elapsed = self.elapsed_time(end_time)
        self.is_calibrating = False

        if not self.samples:
            logger.warning("Calibration failed: no sensor samples collected")
            return None

        cadence = self.cadence_estimator.compute_cadence(self.samples)
        steps = self.cadence_estimator.count_steps(self.samples)
        logger.info(
            "Calibration analysed: %d steps, %.1f SPM, %d samples, %.1fs",
            steps, cadence, len(self.samples), elapsed
        )

        if steps < self.config.min_calibration_steps or elapsed < self.config.min_calibration_seconds:
            logger.warning(
                "Calibration rejected: %d steps, %.1fs (need %d steps, %.0fs)",
                steps, elapsed,
                self.config.min_calibration_steps, self.config.min_calibration_seconds
            )
            return None
        if cadence <= 0:
            logger.warning("Calibration rejected: cadence could not be determined")
            return None

        return CalibrationRecord(
            total_steps=steps,
            average_cadence=cadence,
            elapsed_seconds=elapsed,
            measured_at=utc_now(),
            known_distance=self.config.calibration_distance_meters,
        )

    def reset_calibration(self):
        self.is_calibrating = False
        self.has_reached_course = False
        self.start_time = None
        self.samples = []


class CalibrationHistory:
    """
    Calibration records (newest first) and the stride model fitted from them.

    Persistence is the host's job: pass on_model_changed to be told whenever the
    model is replaced or cleared.

    Args:
        fitter (StrideModelFitter): OLS fitter
        distance_accumulator (DistanceAccumulator, optional): receives the model
        on_model_changed (callable, optional): called with the new model or None
    """

    def __init__(self, fitter=None, distance_accumulator=None, on_model_changed=None):
        self.fitter = fitter or StrideModelFitter()
        self.distance_accumulator = distance_accumulator
        self.on_model_changed = on_model_changed
        self.records = []
        self.stride_model = None

    def load(self, records, stride_model=None):
        """Restore persisted records (any order) and model without refitting."""
        self.records = sorted(records, key=lambda r: r.measured_at, reverse=True)
        self.stride_model = stride_model
        self._bind(stride_model)

    def add_record(self, record):
        self.records.insert(0, record)
        return self.recalculate()

    def remove_record(self, index):
        """Remove the record at `index` (0 = newest). Out-of-range indices are ignored."""
        if not 0 <= index < len(self.records):
            logger.warning("No calibration record at index %d", index)
            return self.stride_model
        del self.records[index]
        return self.recalculate()

    def recalculate(self):
        """
        Refit after a change to the records.

        Below the minimum fit size the model is cleared. A failed fit (no cadence
        spread) keeps the previous model.
        """
        if len(self.records) < self.fitter.config.min_fit_records:
            if self.stride_model is not None:
                logger.info("Stride model cleared: only %d records", len(self.records))
            self._replace(None)
            return None

        model = self.fitter.fit(self.records)
        if model is None:
            logger.warning("Stride model refit failed, keeping previous model")
            return self.stride_model

        logger.info("Stride model fit quality: %s", interpret_r_squared(model.r_squared))
        self._replace(model)
        return model

    def _replace(self, model):
        changed = model is not self.stride_model
        self.stride_model = model
        self._bind(model)
        if changed and self.on_model_changed is not None:
            try:
                self.on_model_changed(model)
            except Exception:
                logger.exception("Stride model change callback failed")

    def _bind(self, model):
        if self.distance_accumulator is not None:
            self.distance_accumulator.set_stride_model(model)
