import math

import pytest

from stride_tracker.distance import DistanceAccumulator, IncrementSource, evaluate_signal_quality
from stride_tracker.geo import haversine_distance, path_length
from stride_tracker.models import GPSFix, SignalQuality, StrideModel

# 0.0001 degree of latitude is ~11.1 m
STEP_DEG = 0.0001
STEP_METERS = haversine_distance(0.0, 0.0, STEP_DEG, 0.0)


@pytest.fixture
def model():
    return StrideModel(alpha=0.005, beta=0.05, r_squared=0.9, sample_count=5)


@pytest.fixture
def accumulator():
    return DistanceAccumulator()


class TestSignalQuality:

    @pytest.mark.parametrize('accuracy, quality', [
        (-1.0, SignalQuality.NONE),
        (0.0, SignalQuality.EXCELLENT),
        (9.9, SignalQuality.EXCELLENT),
        (10.0, SignalQuality.GOOD),
        (19.9, SignalQuality.GOOD),
        (20.0, SignalQuality.FAIR),
        (49.9, SignalQuality.FAIR),
        (50.0, SignalQuality.POOR),
        (500.0, SignalQuality.POOR),
    ])
    def test_bands(self, fix, accuracy, quality):
        assert evaluate_signal_quality(fix(0.0, 0.0, 0.0, accuracy=accuracy)) is quality

    def test_missing_fix(self):
        assert evaluate_signal_quality(None) is SignalQuality.NONE

    def test_non_finite_coordinates(self):
        broken = GPSFix(latitude=math.nan, longitude=0.0, timestamp=0.0, horizontal_accuracy=5.0)
        assert evaluate_signal_quality(broken) is SignalQuality.NONE

    def test_ordering(self):
        assert SignalQuality.EXCELLENT >= SignalQuality.GOOD
        assert SignalQuality.FAIR < SignalQuality.GOOD
        assert SignalQuality.GOOD > SignalQuality.POOR
        assert SignalQuality.NONE <= SignalQuality.NONE
        assert not SignalQuality.POOR > SignalQuality.FAIR
        assert max(SignalQuality) is SignalQuality.EXCELLENT


class TestGPSDistance:

    def test_two_excellent_fixes(self, accumulator, fix):
        assert accumulator.add_location(fix(0.0, 0.0, 0.0)) == 0.0
        increment = accumulator.add_location(fix(STEP_DEG, 0.0, 1.0))
        assert increment == pytest.approx(11.12, abs=0.01)
        assert accumulator.total_distance == increment
        assert accumulator.current_speed == pytest.approx(increment)
        assert accumulator.last_source is IncrementSource.GPS
        assert len(accumulator.path) == 2

    def test_weak_fixes_only_extend_path(self, accumulator, fix):
        accumulator.add_location(fix(0.0, 0.0, 0.0, accuracy=60.0))
        accumulator.add_location(fix(STEP_DEG, 0.0, 1.0, accuracy=60.0))
        accumulator.add_location(fix(2 * STEP_DEG, 0.0, 2.0, accuracy=30.0))
        assert accumulator.total_distance == 0.0
        assert len(accumulator.path) == 3
        assert accumulator.get_state()['path_only_fixes'] == 3

    def test_fair_fix_does_not_become_anchor(self, accumulator, fix):
        accumulator.add_location(fix(0.0, 0.0, 0.0))
        accumulator.add_location(fix(STEP_DEG, 0.0, 1.0, accuracy=30.0))
        accumulator.add_location(fix(2 * STEP_DEG, 0.0, 2.0))
        assert accumulator.total_distance == pytest.approx(2 * STEP_METERS)

    def test_no_fix_is_shown_on_path_only(self, accumulator, fix):
        accumulator.add_location(fix(1.0, 2.0, 0.0, accuracy=-1.0))
        assert len(accumulator.path) == 1
        state = accumulator.get_state()
        assert state['signal_quality'] == 'none'
        assert state['path_only_fixes'] == 1
        assert accumulator.total_distance == 0.0

    def test_no_fix_never_becomes_anchor(self, accumulator, fix):
        accumulator.add_location(fix(0.0, 0.0, 0.0, accuracy=-1.0))
        assert accumulator.add_location(fix(STEP_DEG, 0.0, 1.0)) == 0.0
        assert accumulator.add_location(fix(2 * STEP_DEG, 0.0, 2.0)) == pytest.approx(STEP_METERS)
        assert len(accumulator.path) == 3

    def test_non_finite_coordinates_stay_off_path(self, accumulator):
        broken = GPSFix(latitude=math.nan, longitude=0.0, timestamp=0.0, horizontal_accuracy=-1.0)
        assert accumulator.add_location(broken) == 0.0
        assert accumulator.path == []

    def test_reset_then_single_fix(self, accumulator, fix):
        accumulator.add_location(fix(0.0, 0.0, 0.0))
        accumulator.add_location(fix(STEP_DEG, 0.0, 1.0))
        accumulator.reset_distance()
        assert accumulator.total_distance == 0.0
        assert accumulator.path == []

        accumulator.add_location(fix(5 * STEP_DEG, 0.0, 10.0))
        assert accumulator.total_distance == 0.0
        assert len(accumulator.path) == 1

    def test_jump_is_rejected_and_reanchors(self, accumulator, fix):
        accumulator.add_location(fix(0.0, 0.0, 0.0))
        # ~1.1 km in one second
        assert accumulator.add_location(fix(0.01, 0.0, 1.0)) == 0.0
        assert accumulator.get_state()['rejected_jumps'] == 1

        increment = accumulator.add_location(fix(0.01 + STEP_DEG, 0.0, 2.0))
        assert increment == pytest.approx(STEP_METERS)
        assert accumulator.total_distance == pytest.approx(STEP_METERS)

    def test_non_increasing_timestamp_is_rejected(self, accumulator, fix):
        accumulator.add_location(fix(0.0, 0.0, 5.0))
        assert accumulator.add_location(fix(STEP_DEG, 0.0, 5.0)) == 0.0
        assert accumulator.total_distance == 0.0

    def test_distance_never_decreases(self, accumulator, fix):
        track = [
            (0.0, 0.0, 5.0), (STEP_DEG, 0.0, 5.0), (0.05, 0.0, 5.0),
            (0.05, STEP_DEG, 80.0), (0.0, 0.0, -1.0), (0.05, 0.0, 3.0),
        ]
        totals = []
        for i, (lat, lon, accuracy) in enumerate(track):
            accumulator.add_location(fix(lat, lon, float(i), accuracy=accuracy))
            totals.append(accumulator.total_distance)
        assert totals == sorted(totals)

    def test_path_length_matches_excellent_track(self, accumulator, fix):
        for i in range(5):
            accumulator.add_location(fix(i * STEP_DEG, 0.0, float(i)))
        assert path_length(accumulator.path) == pytest.approx(accumulator.total_distance)


class TestPedometerFallback:

    def test_fallback_without_gps(self, accumulator, model):
        accumulator.set_stride_model(model)
        increment = accumulator.on_cadence_update(180.0, 3.0)
        # 0.95 m stride * 3 steps/s * 3 s
        assert increment == pytest.approx(8.55)
        assert accumulator.total_distance == pytest.approx(8.55)
        assert accumulator.last_source is IncrementSource.PEDOMETER

    def test_no_model_no_fallback(self, accumulator):
        assert accumulator.on_cadence_update(180.0, 3.0) == 0.0

    def test_no_fallback_while_gps_is_good(self, accumulator, model, fix):
        accumulator.set_stride_model(model)
        accumulator.add_location(fix(0.0, 0.0, 100.0))
        assert accumulator.gps_available(105.0)
        assert accumulator.on_cadence_update(180.0, 3.0, timestamp=105.0) == 0.0

    def test_fallback_with_weak_gps(self, accumulator, model, fix):
        accumulator.set_stride_model(model)
        accumulator.add_location(fix(0.0, 0.0, 100.0, accuracy=35.0))
        assert accumulator.on_cadence_update(180.0, 3.0, timestamp=101.0) == pytest.approx(8.55)

    def test_fallback_with_stale_gps(self, accumulator, model, fix):
        accumulator.set_stride_model(model)
        accumulator.add_location(fix(0.0, 0.0, 100.0))
        assert not accumulator.gps_available(115.0)
        assert accumulator.on_cadence_update(180.0, 3.0, timestamp=115.0) == pytest.approx(8.55)

    def test_no_double_count_after_fallback(self, accumulator, model, fix):
        accumulator.set_stride_model(model)
        accumulator.add_location(fix(0.0, 0.0, 0.0))
        accumulator.on_cadence_update(180.0, 3.0, timestamp=20.0)

        # First good fix after the gap only re-anchors
        assert accumulator.add_location(fix(0.001, 0.0, 21.0)) == 0.0
        increment = accumulator.add_location(fix(0.001 + STEP_DEG, 0.0, 22.0))
        assert increment == pytest.approx(STEP_METERS)

        state = accumulator.get_state()
        assert state['pedometer_distance'] == pytest.approx(8.55)
        assert state['gps_distance'] == pytest.approx(STEP_METERS)
        assert accumulator.total_distance == pytest.approx(8.55 + STEP_METERS)

    def test_fallback_skips_seconds_gps_already_credited(self, accumulator, model, fix):
        accumulator.set_stride_model(model)
        for i in range(95, 101):
            accumulator.add_location(fix((i - 95) * STEP_DEG, 0.0, float(i)))
        accumulator.add_location(fix(6 * STEP_DEG, 0.0, 101.0, accuracy=60.0))

        # Interval 99-102, GPS credited up to 100: only 2 s are left
        increment = accumulator.on_cadence_update(180.0, 3.0, timestamp=102.0)
        assert increment == pytest.approx(0.95 * 3 * 2)

    def test_fallback_fully_covered_by_gps(self, accumulator, model, fix):
        accumulator.set_stride_model(model)
        accumulator.add_location(fix(0.0, 0.0, 0.0))
        accumulator.add_location(fix(STEP_DEG, 0.0, 1.0))
        accumulator.add_location(fix(STEP_DEG, 0.0, 1.5, accuracy=60.0))
        assert accumulator.on_cadence_update(180.0, 3.0, timestamp=1.0) == 0.0
        assert accumulator.get_state()['pedometer_distance'] == 0.0

    @pytest.mark.parametrize('cadence, elapsed', [
        (0.0, 3.0),
        (math.nan, 3.0),
        (-120.0, 3.0),
        (180.0, 0.0),
        (180.0, math.inf),
    ])
    def test_unusable_updates_contribute_nothing(self, accumulator, model, cadence, elapsed):
        accumulator.set_stride_model(model)
        assert accumulator.on_cadence_update(cadence, elapsed) == 0.0
        assert accumulator.total_distance == 0.0

    def test_reset_keeps_model(self, accumulator, model):
        accumulator.set_stride_model(model)
        accumulator.on_cadence_update(180.0, 3.0)
        accumulator.reset_distance()
        assert accumulator.total_distance == 0.0
        assert accumulator.stride_model is model

    def test_unbinding_model_stops_fallback(self, accumulator, model):
        accumulator.set_stride_model(model)
        accumulator.set_stride_model(None)
        assert accumulator.on_cadence_update(180.0, 3.0) == 0.0
