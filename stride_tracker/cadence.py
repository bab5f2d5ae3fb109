"""
CadenceEstimator - rolling and session-final running cadence from IMU samples.

Samples arrive from a high-frequency producer (20-50 Hz) through add_sample().
While monitoring is active a periodic task calls tick() every few seconds, which
recomputes cadence over the last `window_seconds` of samples, counts footstrikes
not seen by an earlier tick and notifies listeners.

Calculation (both feet, ankle-worn sensor sees one leg):
1. Detect footstrike peaks (state machine detector by default)
2. Completed strides only: total steps = (peaks - 1) x 2
3. Running time = last peak - first peak (seconds)
4. SPM = total steps / running time x 60, rejected outside [60, 300]

Every "not enough data" outcome resolves to cadence 0, which callers must read as
"unknown" rather than as a measurement.
"""

import functools
import logging
import threading
from collections import deque

from .config import DEFAULT_CONFIG
from .detectors import get_detector
from .models import CadenceUpdate
from .scheduler import start_periodic_task

logger = logging.getLogger(__name__)


class CadenceEstimator:
    """
    Sliding-window cadence and step counter.

    Thread safety: the lock is held only while appending/evicting samples and while
    swapping published values. Peak detection runs on a snapshot outside the lock.

    Stale callbacks: start() and stop() bump a generation counter. The periodic task
    is created with the generation it belongs to, and a tick carrying an older
    generation returns without touching published state.

    Args:
        config (TrackerConfig): thresholds (window length, tick interval, SPM bounds)
        detector (PeakDetector): footstrike detector, state machine if omitted
        task_factory (callable): (interval, callback, name) -> handle with cancel()
    """

    def __init__(self, config=DEFAULT_CONFIG, detector=None, task_factory=start_periodic_task):
        self.config = config
        self.detector = detector or get_detector(
            'state_machine', strike_threshold=config.strike_gyro_z_threshold
        )
        self._task_factory = task_factory

        # Window buffer, kept sorted by timestamp
        self._buffer = deque()
        self._latest_timestamp = None
        self._cutoff = None

        # Step counting across overlapping windows
        self._counted_peaks = set()
        self._total_steps = 0

        # Published values
        self._current_cadence = 0.0
        self._last_tick_timestamp = None

        # Scheduling
        self._generation = 0
        self._task = None
        self._monitoring = False
        self._listeners = []

        # Diagnostics
        self.samples_received = 0
        self.out_of_order_samples = 0
        self.ticks_run = 0
        self.stale_ticks_ignored = 0

        self.lock = threading.Lock()

    # ------------------------------------------------------------------
    # Published values
    # ------------------------------------------------------------------

    @property
    def current_cadence(self):
        with self.lock:
            return self._current_cadence

    @property
    def current_steps(self):
        with self.lock:
            return self._total_steps

    @property
    def is_monitoring(self):
        with self.lock:
            return self._monitoring

    def add_listener(self, callback):
        """Register callback(CadenceUpdate), called after every tick and finalize()."""
        with self.lock:
            if callback not in self._listeners:
                self._listeners.append(callback)

    def remove_listener(self, callback):
        with self.lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # Monitoring lifecycle
    # ------------------------------------------------------------------

    def start(self):
        """Reset all cadence state and begin periodic ticking."""
        with self.lock:
            previous_task = self._task
            self._generation += 1
            generation = self._generation
            self._buffer.clear()
            self._latest_timestamp = None
            self._cutoff = None
            self._counted_peaks.clear()
            self._total_steps = 0
            self._current_cadence = 0.0
            self._last_tick_timestamp = None
            self._monitoring = True
            self._task = None

        if previous_task is not None:
            previous_task.cancel()

        task = self._task_factory(
            self.config.update_interval_seconds,
            functools.partial(self.tick, generation),
            'cadence-tick',
        )
        with self.lock:
            if self._generation == generation:
                self._task = task
                task = None
        if task is not None:
            # stop() or start() raced us while the task was being created
            task.cancel()

        logger.info("Cadence monitoring started (generation %d)", generation)

    def stop(self):
        """
        Stop periodic ticking and clear the window.

        Counted peaks and the cumulative step count survive so the host can still
        read the final totals. Calling stop() twice is harmless.
        """
        with self.lock:
            if not self._monitoring and self._task is None:
                return
            self._generation += 1
            self._monitoring = False
            self._buffer.clear()
            self._latest_timestamp = None
            self._cutoff = None
            task = self._task
            self._task = None

        if task is not None:
            task.cancel()
        logger.info("Cadence monitoring stopped (%d steps counted)", self.current_steps)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def add_sample(self, sample):
        """
        Append one sample to the window and evict samples older than the window.

        "Now" is the newest timestamp seen, so replayed sessions behave exactly like
        live ones. Slightly late samples are inserted in timestamp order; samples
        already older than the window are dropped.
        """
        if not sample.has_timestamp:
            logger.debug("Dropping sample without a usable timestamp")
            return
        timestamp = sample.timestamp

        with self.lock:
            self.samples_received += 1

            if self._latest_timestamp is None or timestamp > self._latest_timestamp:
                self._latest_timestamp = timestamp
            self._cutoff = self._latest_timestamp - self.config.window_seconds

            if timestamp < self._cutoff:
                return

            if self._buffer and timestamp < self._buffer[-1].timestamp:
                self.out_of_order_samples += 1
                self._insert_sorted(sample)
            else:
                self._buffer.append(sample)

            while self._buffer and self._buffer[0].timestamp < self._cutoff:
                self._buffer.popleft()

    def _insert_sorted(self, sample):
        # Late samples are rare and land near the tail, so scan from the right
        position = len(self._buffer)
        while position > 0 and self._buffer[position - 1].timestamp > sample.timestamp:
            position -= 1
        self._buffer.insert(position, sample)

    def snapshot(self):
        """Copy of the current window buffer."""
        with self.lock:
            return list(self._buffer)

    # ------------------------------------------------------------------
    # Periodic recomputation
    # ------------------------------------------------------------------

    def tick(self, generation=None):
        """
        Recompute cadence over the window and count newly seen footstrikes.

        Args:
            generation (int, optional): generation the caller was scheduled under.
                A stale generation makes the call a no-op.

        Returns:
            CadenceUpdate or None if the call was stale
        """
        with self.lock:
            if generation is not None and generation != self._generation:
                self.stale_ticks_ignored += 1
                return None
            current_generation = self._generation
            samples = list(self._buffer)

        peaks = self.detector.detect(samples)
        cadence = self._cadence_from_peaks(samples, peaks)
        peak_times = [samples[i].timestamp for i in peaks]

        with self.lock:
            if current_generation != self._generation:
                # stop()/start() ran while we were computing
                self.stale_ticks_ignored += 1
                return None

            # A late sample can move a strike by up to one sample period
            tolerance = self._sample_period(samples)
            new_peaks = [t for t in peak_times if not self._already_counted(t, tolerance)]
            self._counted_peaks.update(peak_times)
            if self._cutoff is not None:
                # Peaks older than the window can never be detected again
                self._counted_peaks = {t for t in self._counted_peaks if t >= self._cutoff}

            new_steps = len(new_peaks) * self.config.steps_per_peak
            self._total_steps += new_steps
            self._current_cadence = cadence
            self.ticks_run += 1

            newest = samples[-1].timestamp if samples else None
            interval = self._tick_interval(samples, newest)
            if newest is not None:
                self._last_tick_timestamp = newest

            update = CadenceUpdate(
                cadence=cadence,
                total_steps=self._total_steps,
                new_steps=new_steps,
                interval_seconds=interval,
                sample_count=len(samples),
                timestamp=newest,
            )
            listeners = list(self._listeners)

        logger.debug(
            "Rolling cadence: %.1f SPM (%d samples, +%d steps, total %d)",
            cadence, len(samples), new_steps, update.total_steps
        )
        self._notify(listeners, update)
        return update

    def _already_counted(self, peak_time, tolerance):
        if peak_time in self._counted_peaks:
            return True
        return any(abs(peak_time - counted) <= tolerance for counted in self._counted_peaks)

    @staticmethod
    def _sample_period(samples):
        if len(samples) < 2:
            return 0.0
        return (samples[-1].timestamp - samples[0].timestamp) / (len(samples) - 1)

    def _tick_interval(self, samples, newest):
        if newest is None:
            return 0.0
        if self._last_tick_timestamp is not None and newest > self._last_tick_timestamp:
            return newest - self._last_tick_timestamp
        if self._last_tick_timestamp is not None:
            # No new samples since the previous tick
            return 0.0
        span = newest - samples[0].timestamp
        return min(self.config.update_interval_seconds, max(0.0, span))

    def _notify(self, listeners, update):
        for callback in listeners:
            try:
                callback(update)
            except Exception:
                logger.exception("Cadence listener %r failed", callback)

    # ------------------------------------------------------------------
    # Cadence math
    # ------------------------------------------------------------------

    def compute_cadence(self, samples):
        """
        Average cadence over a list of samples.

        Args:
            samples (list[SensorSample]): any order, sorted here by timestamp

        Returns:
            float: steps per minute (both feet), or 0.0 when indeterminate
        """
        ordered = self._ordered(samples)
        peaks = self.detector.detect(ordered)
        return self._cadence_from_peaks(ordered, peaks)

    def _cadence_from_peaks(self, samples, peaks):
        if len(samples) < self.config.min_cadence_samples:
            logger.debug("Cadence unknown: %d samples < %d", len(samples), self.config.min_cadence_samples)
            return 0.0

        if len(peaks) < 2:
            logger.debug("Cadence unknown: %d peaks detected", len(peaks))
            return 0.0

        elapsed = samples[peaks[-1]].timestamp - samples[peaks[0]].timestamp
        if not elapsed > 0:
            logger.debug("Cadence unknown: non-positive peak span %.3fs", elapsed)
            return 0.0

        total_steps = (len(peaks) - 1) * self.config.steps_per_peak
        spm = (total_steps / elapsed) * 60.0

        if not (self.config.min_spm <= spm <= self.config.max_spm):
            logger.debug("Rejecting implausible cadence %.1f SPM", spm)
            return 0.0

        return spm

    def count_steps(self, samples):
        """Completed steps over a full sample list: max(0, peaks - 1) x 2."""
        peaks = self.detector.detect(self._ordered(samples))
        return max(0, len(peaks) - 1) * self.config.steps_per_peak

    @staticmethod
    def _ordered(samples):
        samples = [s for s in samples if s.has_timestamp]
        timestamps = [s.timestamp for s in samples]
        if all(a <= b for a, b in zip(timestamps, timestamps[1:])):
            return samples
        return sorted(samples, key=lambda s: s.timestamp)

    def finalize(self, all_samples):
        """
        Replace the rolling estimate with cadence over the whole session.

        Args:
            all_samples (list[SensorSample]): every sample recorded in the session

        Returns:
            float: final cadence (0.0 if indeterminate)
        """
        samples = self._ordered(all_samples)
        cadence = self.compute_cadence(samples)

        with self.lock:
            self._current_cadence = cadence
            update = CadenceUpdate(
                cadence=cadence,
                total_steps=self._total_steps,
                new_steps=0,
                interval_seconds=0.0,
                sample_count=len(samples),
                timestamp=samples[-1].timestamp if samples else None,
                final=True,
            )
            listeners = list(self._listeners)

        logger.info("Final cadence: %.1f SPM (%d samples)", cadence, len(samples))
        self._notify(listeners, update)
        return cadence

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_state(self):
        """Get current state - thread safe"""
        with self.lock:
            return {
                'cadence': self._current_cadence,
                'total_steps': self._total_steps,
                'buffer_size': len(self._buffer),
                'counted_peaks': len(self._counted_peaks),
                'monitoring': self._monitoring,
                'generation': self._generation,
                'latest_timestamp': self._latest_timestamp,
            }

    def get_diagnostics(self):
        with self.lock:
            return {
                'samples_received': self.samples_received,
                'out_of_order_samples': self.out_of_order_samples,
                'ticks_run': self.ticks_run,
                'stale_ticks_ignored': self.stale_ticks_ignored,
                'detector': self.detector.name,
            }
