"""
Cancellable repeating task used to drive periodic recomputation.

The task runs its callback on a daemon thread every `interval` seconds until
cancel() is called. cancel() never blocks on a callback that is already running;
callers that must ignore such an in-flight callback pair the task with a
generation token (see CadenceEstimator).
"""

import logging
import threading

logger = logging.getLogger(__name__)


class PeriodicTask(threading.Thread):
    """Background thread invoking `callback()` at a fixed interval."""

    def __init__(self, interval, callback, name='periodic-task'):
        super().__init__(daemon=True, name=name)
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.interval = interval
        self.callback = callback
        self.stop_event = threading.Event()
        self.runs = 0
        self.failures = 0

    def run(self):
        # wait() returns True once cancelled, so the first run happens after one interval
        while not self.stop_event.wait(self.interval):
            try:
                self.callback()
                self.runs += 1
            except Exception:
                self.failures += 1
                logger.exception("Periodic task %s callback failed", self.name)

    def cancel(self):
        """Stop future runs. Safe to call more than once and from the callback itself."""
        self.stop_event.set()

    @property
    def cancelled(self):
        return self.stop_event.is_set()


def start_periodic_task(interval, callback, name='periodic-task'):
    """Default task factory: build and start a PeriodicTask."""
    task = PeriodicTask(interval, callback, name=name)
    task.start()
    return task
