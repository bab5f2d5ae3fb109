import pytest

from stride_tracker.cadence import CadenceEstimator
from stride_tracker.distance import DistanceAccumulator
from stride_tracker.models import SensorSample, StrideModel
from stride_tracker.session import WorkoutSession

STEP_DEG = 0.0001


@pytest.fixture
def model():
    return StrideModel(alpha=0.005, beta=0.05, r_squared=0.9, sample_count=5)


@pytest.fixture
def session(task_factory):
    estimator = CadenceEstimator(task_factory=task_factory)
    return WorkoutSession(cadence_estimator=estimator, distance_accumulator=DistanceAccumulator())


def test_pedometer_covers_missing_gps(session, task_factory, gait, model):
    session.set_stride_model(model)
    session.start()
    samples = gait(cycles=10, period=0.5)
    for sample in samples:
        session.add_sample(sample)

    update = task_factory.latest.callback()
    assert update.cadence == pytest.approx(240.0)
    assert update.interval_seconds == pytest.approx(3.0)
    # 0.005 * 240 + 0.05 = 1.25 m, clamped to 1.2 m; 4 steps/s over 3 s
    assert session.total_distance == pytest.approx(14.4)

    summary = session.stop()
    assert summary.cadence == pytest.approx(240.0)
    assert summary.total_steps == 20
    assert summary.pedometer_distance == pytest.approx(14.4)
    assert summary.gps_distance == 0.0
    assert summary.sample_count == len(samples)
    assert summary.duration_seconds == samples[-1].timestamp


def test_good_gps_suppresses_pedometer(session, task_factory, gait, fix, model):
    session.set_stride_model(model)
    session.start()
    for sample in gait(cycles=10, period=0.5):
        session.add_sample(sample)
    for i in range(5):
        session.add_location(fix(i * STEP_DEG, 0.0, float(i)))

    task_factory.latest.callback()
    summary = session.stop()
    assert summary.pedometer_distance == 0.0
    assert summary.gps_distance == pytest.approx(summary.total_distance)
    assert summary.path_points == 5


def test_inputs_ignored_while_inactive(session, gait, fix):
    for sample in gait(cycles=3):
        session.add_sample(sample)
    session.add_location(fix(0.0, 0.0, 0.0))

    summary = session.summary()
    assert summary.sample_count == 0
    assert summary.path_points == 0
    assert session.cadence_estimator.snapshot() == []


def test_stop_twice_returns_same_summary(session, gait):
    session.start()
    for sample in gait(cycles=6, period=0.5):
        session.add_sample(sample)
    first = session.stop()
    second = session.stop()
    assert first == second
    assert not session.active


def test_restart_clears_previous_session(session, task_factory, gait, fix):
    session.start()
    for sample in gait(cycles=6, period=0.5):
        session.add_sample(sample)
    session.add_location(fix(0.0, 0.0, 0.0))
    session.add_location(fix(STEP_DEG, 0.0, 1.0))
    task_factory.latest.callback()
    session.stop()

    session.start()
    assert session.current_steps == 0
    assert session.total_distance == 0.0
    assert session.path == []
    assert session.summary().sample_count == 0


def test_summary_as_dict(session):
    data = session.summary().to_dict()
    assert set(data) == {
        'cadence', 'total_steps', 'total_distance', 'gps_distance',
        'pedometer_distance', 'path_points', 'sample_count', 'duration_seconds',
    }


def test_samples_without_timestamp_do_not_break_stop(session, gait):
    session.start()
    for sample in gait(cycles=4, period=1.0):
        session.add_sample(sample)
    session.add_sample(SensorSample(0, 0, 0, 0, 0, 0, timestamp=None))

    summary = session.stop()
    assert summary.sample_count == 128
    assert summary.cadence == pytest.approx(120.0)
    assert summary.duration_seconds == 127 / 32
