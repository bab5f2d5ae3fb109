"""Shared fixtures: synthetic gait traces and a manually driven task factory."""

import pytest

from stride_tracker.models import GPSFix, SensorSample

# 32 Hz keeps every timestamp exactly representable (i / 32)
DT = 1.0 / 32


def make_gait(cycles, period=1.0, start_cycle=0, dt=DT):
    """
    Ankle-like trace with one footstrike per cycle.

    Each cycle: swing (gyro Z +, accel Y +) for the first half, a strike
    (gyro Z -3.0) at mid-cycle followed by a weaker second negative excursion
    (-2.5) and a small negative recovery. Strike k lands at
    (start_cycle + k + 0.5) * period.
    """
    per_cycle = int(round(period / dt))
    strike_at = per_cycle // 2
    samples = []
    for i in range(start_cycle * per_cycle, (start_cycle + cycles) * per_cycle):
        phase = i % per_cycle
        if phase < strike_at:
            gyro_z, accel_y = 1.5, 0.4
        elif phase == strike_at:
            gyro_z, accel_y = -3.0, -0.5
        elif phase == strike_at + 1:
            gyro_z, accel_y = -2.5, -0.3
        else:
            gyro_z, accel_y = -0.4, -0.1
        samples.append(SensorSample(
            accel_x=1.0, accel_y=accel_y, accel_z=0.1,
            gyro_x=0.0, gyro_y=0.0, gyro_z=gyro_z,
            timestamp=i * dt,
        ))
    return samples


def make_fix(latitude, longitude, timestamp, accuracy=5.0):
    return GPSFix(
        latitude=latitude,
        longitude=longitude,
        timestamp=timestamp,
        horizontal_accuracy=accuracy,
    )


class FakeTask:
    def __init__(self, interval, callback, name):
        self.interval = interval
        self.callback = callback
        self.name = name
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeTaskFactory:
    """Records created tasks instead of starting threads."""

    def __init__(self):
        self.tasks = []

    def __call__(self, interval, callback, name='task'):
        task = FakeTask(interval, callback, name)
        self.tasks.append(task)
        return task

    @property
    def latest(self):
        return self.tasks[-1]


@pytest.fixture
def gait():
    return make_gait


@pytest.fixture
def fix():
    return make_fix


@pytest.fixture
def task_factory():
    return FakeTaskFactory()
