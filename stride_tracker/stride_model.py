"""
Personal stride model: ordinary least squares fit of step length against cadence.

    stride = alpha * cadence + beta
    alpha  = sum[(x - x_mean)(y - y_mean)] / sum[(x - x_mean)^2]
    beta   = y_mean - alpha * x_mean
    R^2    = 1 - SSres / SStot

x is the average cadence of a calibration run, y its average step length
(course length / steps). Fitting needs at least five runs with some spread in
cadence; anything less returns None instead of a model.

Precondition: fitting and live monitoring never run concurrently for the same
profile, so the fitter holds no lock.
"""

import logging
import math

import numpy as np

from .config import DEFAULT_CONFIG
from .models import StrideModel, utc_now

logger = logging.getLogger(__name__)

R_SQUARED_LABELS = (
    (0.9, 'excellent'),
    (0.7, 'good'),
    (0.5, 'fair'),
    (0.3, 'low'),
)


class StrideModelFitter:
    """Fits and applies StrideModel instances."""

    def __init__(self, config=DEFAULT_CONFIG, clock=utc_now):
        self.config = config
        self.clock = clock

    def fit(self, records):
        """
        Fit a stride model from calibration records.

        Args:
            records (list[CalibrationRecord]): completed calibration runs

        Returns:
            StrideModel or None if there are too few records or no cadence spread
        """
        records = list(records)
        if len(records) < self.config.min_fit_records:
            logger.info(
                "Stride fit skipped: %d records < %d required",
                len(records), self.config.min_fit_records
            )
            return None

        x = np.array([r.average_cadence for r in records], dtype=float)
        y = np.array([r.step_length for r in records], dtype=float)
        if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
            logger.warning("Stride fit skipped: non-finite cadence or step length in records")
            return None

        x_mean = x.mean()
        y_mean = y.mean()
        dx = x - x_mean
        dy = y - y_mean

        denominator = float(np.sum(dx * dx))
        if denominator <= 0:
            logger.warning("Stride fit failed: all cadence values identical (variance = 0)")
            return None

        alpha = float(np.sum(dx * dy)) / denominator
        beta = float(y_mean - alpha * x_mean)

        residuals = y - (alpha * x + beta)
        ss_res = float(np.sum(residuals * residuals))
        ss_tot = float(np.sum(dy * dy))
        r_squared = 1.0 - ss_res / ss_tot if ss_tot > 0 else 0.0

        model = StrideModel(
            alpha=alpha,
            beta=beta,
            r_squared=r_squared,
            sample_count=len(records),
            created_at=self.clock(),
        )
        logger.info(
            "Stride model fitted: alpha=%.5f beta=%.4f R2=%.3f (%s, n=%d)",
            alpha, beta, r_squared, interpret_r_squared(r_squared), len(records)
        )
        return model

    def predict(self, model, cadence):
        """
        Predict stride length for a cadence, clamped to plausible human bounds.

        Args:
            model (StrideModel): fitted model
            cadence (float): steps per minute

        Returns:
            float: stride length in meters within [min_stride, max_stride]
        """
        return predict_stride(
            model, cadence,
            self.config.min_stride_meters, self.config.max_stride_meters
        )


def predict_stride(model, cadence, min_stride=DEFAULT_CONFIG.min_stride_meters,
                   max_stride=DEFAULT_CONFIG.max_stride_meters):
    """Clamped alpha * cadence + beta; non-finite results fall to min_stride."""
    raw = model.alpha * cadence + model.beta
    if not math.isfinite(raw):
        return min_stride
    return min(max_stride, max(min_stride, raw))


def interpret_r_squared(r_squared):
    """Human label for the goodness of fit."""
    for threshold, label in R_SQUARED_LABELS:
        if r_squared >= threshold:
            return label
    return 'very low'
