#!/usr/bin/env python3
"""
Unit tests for GPS and inertial sample processing.
"""

import math
import unittest
import sys
import os

import numpy as np

# Add package to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from cycle_fusion.math.utils import haversine_distance, calculate_bearing, wrap_degrees, vector_magnitude
from cycle_fusion.sensors import (
    CalibrationProfile,
    GeoHistory,
    GeoSample,
    GeoSampleValidator,
    InertialMotionEstimator,
    InertialSample,
    MotionCalibrator,
    ValidationResult,
    WindowedSpeedSmoother,
    is_cycling_motion,
)
from cycle_fusion.sensors.gps import derive_speed

class TestGeodesy(unittest.TestCase):
    """Test distance and bearing helpers."""

    def test_haversine_london_paris(self):
        """Test a known long-distance pair."""
        distance = haversine_distance(51.5007, -0.1246, 48.8566, 2.3522)
        self.assertAlmostEqual(distance, 343000, delta=3430)

    def test_haversine_short_hop(self):
        """Test a ~15 m diagonal hop at the equator."""
        distance = haversine_distance(0.0, 0.0, 0.0001, 0.0001)
        self.assertAlmostEqual(distance, 15.72, delta=0.05)

    def test_haversine_zero(self):
        self.assertEqual(haversine_distance(45.0, 7.0, 45.0, 7.0), 0.0)

    def test_bearing_cardinal_directions(self):
        """Test bearings to the four cardinal points."""
        self.assertAlmostEqual(calculate_bearing(0, 0, 1, 0), 0.0, places=6)
        self.assertAlmostEqual(calculate_bearing(0, 0, 0, 1), 90.0, places=6)
        self.assertAlmostEqual(calculate_bearing(0, 0, -1, 0), 180.0, places=6)
        self.assertAlmostEqual(calculate_bearing(0, 0, 0, -1), 270.0, places=6)

    def test_bearing_range(self):
        """Test that bearings always land in [0, 360)."""
        rng = np.random.default_rng(1)
        for _ in range(200):
            lat1, lat2 = rng.uniform(-80, 80, 2)
            lon1, lon2 = rng.uniform(-180, 180, 2)
            bearing = calculate_bearing(lat1, lon1, lat2, lon2)
            self.assertGreaterEqual(bearing, 0.0)
            self.assertLess(bearing, 360.0)

    def test_wrap_degrees(self):
        self.assertAlmostEqual(wrap_degrees(-90.0), 270.0)
        self.assertAlmostEqual(wrap_degrees(360.0), 0.0)
        self.assertAlmostEqual(wrap_degrees(720.5), 0.5)

    def test_vector_magnitude(self):
        self.assertAlmostEqual(vector_magnitude([3.0, 4.0, 12.0]), 13.0)

class TestGeoHistory(unittest.TestCase):
    """Test GeoHistory class."""

    def test_bounded_eviction(self):
        """Test that the oldest fix is evicted first."""
        history = GeoHistory(capacity=3)
        for i in range(5):
            history.append(GeoSample(latitude=i, longitude=0.0, timestamp_ms=i * 1000))

        self.assertEqual(len(history), 3)
        self.assertEqual([s.latitude for s in history], [2, 3, 4])
        self.assertEqual(history.last.latitude, 4)
        self.assertEqual(history.previous.latitude, 3)

    def test_empty_history(self):
        history = GeoHistory()

        self.assertFalse(history)
        self.assertIsNone(history.last)
        self.assertIsNone(history.previous)
        self.assertEqual(history.samples(), ())

    def test_default_capacity(self):
        self.assertEqual(GeoHistory().capacity, 100)

    def test_window(self):
        """Test time-window selection."""
        history = GeoHistory()
        for t in (0, 3000, 4000, 8000):
            history.append(GeoSample(latitude=0.0, longitude=0.0, timestamp_ms=t))

        recent = history.window(8000, 5000)
        self.assertEqual([s.timestamp_ms for s in recent], [4000, 8000])

class TestGeoSampleValidator(unittest.TestCase):
    """Test GPS jump rejection."""

    def setUp(self):
        """Set up test fixtures."""
        self.validator = GeoSampleValidator()
        self.history = GeoHistory()

    def test_empty_history_accepts(self):
        """Test that the first fix is always accepted."""
        candidate = GeoSample(latitude=10.0, longitude=10.0, timestamp_ms=0)
        self.assertEqual(self.validator.validate(self.history, candidate), ValidationResult.ACCEPTED)

    def test_rejects_teleport(self):
        """Test that a ~157 km hop in one second is rejected."""
        self.history.append(GeoSample(latitude=0.0, longitude=0.0, timestamp_ms=0))
        candidate = GeoSample(latitude=1.0, longitude=1.0, timestamp_ms=1000)

        self.assertEqual(self.validator.validate(self.history, candidate),
                         ValidationResult.REJECTED_AS_JUMP)

        rejection = self.validator.inspect(self.history, candidate)
        self.assertIs(rejection.sample, candidate)
        self.assertGreater(rejection.distance, 150000)
        self.assertAlmostEqual(rejection.elapsed, 1.0)

    def test_accepts_plausible_hop(self):
        """Test that a ~15 m hop in one second is accepted."""
        self.history.append(GeoSample(latitude=0.0, longitude=0.0, timestamp_ms=0))
        candidate = GeoSample(latitude=0.0001, longitude=0.0001, timestamp_ms=1000)

        self.assertEqual(self.validator.validate(self.history, candidate), ValidationResult.ACCEPTED)

    def test_accepts_when_too_close_in_time(self):
        """Test that fixes under 0.1 s apart are not judged."""
        self.history.append(GeoSample(latitude=0.0, longitude=0.0, timestamp_ms=0))
        candidate = GeoSample(latitude=1.0, longitude=1.0, timestamp_ms=50)

        self.assertEqual(self.validator.validate(self.history, candidate), ValidationResult.ACCEPTED)

    def test_reported_speed_bounds_distance(self):
        """Test the speed-based limit: 2 m/s allows 8 m in one second."""
        self.history.append(GeoSample(latitude=0.0, longitude=0.0, speed=2.0, timestamp_ms=0))

        near = GeoSample(latitude=0.00005, longitude=0.0, timestamp_ms=1000)      # ~5.6 m
        far = GeoSample(latitude=0.0001, longitude=0.0001, timestamp_ms=1000)     # ~15.7 m

        self.assertEqual(self.validator.validate(self.history, near), ValidationResult.ACCEPTED)
        self.assertEqual(self.validator.validate(self.history, far), ValidationResult.REJECTED_AS_JUMP)

    def test_absolute_jump_threshold(self):
        """Test that >20 m is rejected even when speed would allow it."""
        self.history.append(GeoSample(latitude=0.0, longitude=0.0, speed=20.0, timestamp_ms=0))
        candidate = GeoSample(latitude=0.0002, longitude=0.0, timestamp_ms=2000)  # ~22 m

        rejection = self.validator.inspect(self.history, candidate)
        self.assertIsNotNone(rejection)
        self.assertAlmostEqual(rejection.limit, 20.0)

    def test_max_plausible_speed(self):
        last = GeoSample(latitude=0.0, longitude=0.0, speed=4.0)
        self.assertAlmostEqual(self.validator.max_plausible_speed(last), 11.0)

        unknown = GeoSample(latitude=0.0, longitude=0.0)
        self.assertAlmostEqual(self.validator.max_plausible_speed(unknown), 30.0)

class TestWindowedSpeedSmoother(unittest.TestCase):
    """Test WindowedSpeedSmoother class."""

    def setUp(self):
        """Set up test fixtures."""
        self.smoother = WindowedSpeedSmoother()
        self.history = GeoHistory()

    def test_sparse_history_keeps_previous(self):
        """Test that fewer than two samples never resets to zero."""
        self.assertEqual(self.smoother.update(self.history, 3.2), 3.2)

        self.history.append(GeoSample(latitude=0.0, longitude=0.0, timestamp_ms=0))
        self.assertEqual(self.smoother.update(self.history, 3.2), 3.2)

    def test_gap_keeps_previous(self):
        """Test that a long gap leaves one sample in the window."""
        self.history.append(GeoSample(latitude=0.0, longitude=0.0, timestamp_ms=0))
        self.history.append(GeoSample(latitude=0.0001, longitude=0.0, timestamp_ms=10000))

        self.assertEqual(self.smoother.update(self.history, 4.0), 4.0)

    def test_distance_over_time(self):
        """Test smoothed speed over consecutive samples."""
        for i in range(3):
            self.history.append(GeoSample(latitude=0.0001 * i, longitude=0.0, timestamp_ms=i * 1000))

        step = haversine_distance(0.0, 0.0, 0.0001, 0.0)
        self.assertAlmostEqual(self.smoother.update(self.history, 0.0), step, places=6)

    def test_old_samples_excluded(self):
        """Test that samples outside the window do not count."""
        self.history.append(GeoSample(latitude=0.01, longitude=0.0, timestamp_ms=0))
        self.history.append(GeoSample(latitude=0.0, longitude=0.0, timestamp_ms=6000))
        self.history.append(GeoSample(latitude=0.0001, longitude=0.0, timestamp_ms=8000))

        step = haversine_distance(0.0, 0.0, 0.0001, 0.0)
        self.assertAlmostEqual(self.smoother.update(self.history, 0.0), step / 2.0, places=6)

    def test_zero_elapsed_keeps_previous(self):
        self.history.append(GeoSample(latitude=0.0, longitude=0.0, timestamp_ms=1000))
        self.history.append(GeoSample(latitude=0.0001, longitude=0.0, timestamp_ms=1000))

        self.assertEqual(self.smoother.update(self.history, 1.5), 1.5)

class TestDeriveSpeed(unittest.TestCase):
    """Test derive_speed helper."""

    def test_derived_speed(self):
        a = GeoSample(latitude=0.0, longitude=0.0, timestamp_ms=0)
        b = GeoSample(latitude=0.0001, longitude=0.0, timestamp_ms=2000)

        expected = haversine_distance(0.0, 0.0, 0.0001, 0.0) / 2.0
        self.assertAlmostEqual(derive_speed(a, b), expected)

    def test_unordered_fixes(self):
        a = GeoSample(latitude=0.0, longitude=0.0, timestamp_ms=1000)
        b = GeoSample(latitude=0.0001, longitude=0.0, timestamp_ms=1000)

        self.assertIsNone(derive_speed(a, b))

class TestInertialSample(unittest.TestCase):
    """Test InertialSample class."""

    def test_vectors(self):
        sample = InertialSample(accel_x=1.0, accel_y=2.0, accel_z=2.0,
                                gyro_x=0.1, gyro_y=0.2, gyro_z=0.3)

        np.testing.assert_array_equal(sample.acceleration, [1.0, 2.0, 2.0])
        np.testing.assert_array_equal(sample.rotation_rate, [0.1, 0.2, 0.3])
        self.assertAlmostEqual(sample.magnitude, 3.0)

class TestCyclingPattern(unittest.TestCase):
    """Test the pedaling heuristic."""

    def test_pedaling(self):
        self.assertTrue(is_cycling_motion(InertialSample(0.5, 3.0, 2.0)))
        self.assertTrue(is_cycling_motion(InertialSample(-0.5, -3.0, -2.0)))

    def test_vertical_oscillation_out_of_band(self):
        self.assertFalse(is_cycling_motion(InertialSample(0.5, 1.0, 2.0)))
        self.assertFalse(is_cycling_motion(InertialSample(0.5, 9.0, 2.0)))

    def test_no_forward_motion(self):
        self.assertFalse(is_cycling_motion(InertialSample(0.5, 3.0, 0.5)))

    def test_too_much_sway(self):
        self.assertFalse(is_cycling_motion(InertialSample(4.0, 3.0, 2.0)))

class TestMotionCalibrator(unittest.TestCase):
    """Test MotionCalibrator class."""

    def setUp(self):
        """Set up test fixtures."""
        self.calibrator = MotionCalibrator()
        self.profile = CalibrationProfile()
        self.calibrator.start(self.profile)

    def _feed(self, count, low=9.0, high=11.0):
        completed = []
        for i in range(count):
            completed.append(self.calibrator.add_sample(self.profile, low if i % 2 else high))
        return completed

    def test_completes_after_exact_sample_count(self):
        """Test that calibration flips exactly once at 50 samples."""
        completed = self._feed(49)
        self.assertFalse(any(completed))
        self.assertTrue(self.profile.is_calibrating)
        self.assertFalse(self.profile.is_complete)

        self.assertTrue(self.calibrator.add_sample(self.profile, 9.0))
        self.assertFalse(self.profile.is_calibrating)
        self.assertTrue(self.profile.is_complete)
        self.assertEqual(self.profile.completed, 1)

    def test_threshold_from_population_stddev(self):
        """Test threshold = 1.5 * population standard deviation."""
        self._feed(50)

        # Alternating 11/9 has mean 10 and population stddev 1
        self.assertAlmostEqual(self.profile.noise_threshold, 1.5)
        self.assertAlmostEqual(self.profile.baseline, 10.0)
        self.assertEqual(self.profile.sample_buffer, [])

    def test_threshold_stable_after_completion(self):
        """Test that further samples leave the threshold alone."""
        self._feed(50)
        threshold = self.profile.noise_threshold

        completed = self._feed(100, low=0.0, high=50.0)

        self.assertFalse(any(completed))
        self.assertEqual(self.profile.noise_threshold, threshold)
        self.assertEqual(self.profile.completed, 1)

    def test_recalibration_keeps_old_threshold_until_done(self):
        """Test that a restart keeps the previous threshold in force."""
        self._feed(50)
        threshold = self.profile.noise_threshold

        self.calibrator.start(self.profile)
        self.assertTrue(self.profile.is_calibrating)
        self.assertFalse(self.profile.is_complete)

        self._feed(49, low=10.0, high=10.0)
        self.assertEqual(self.profile.noise_threshold, threshold)

        self.calibrator.add_sample(self.profile, 10.0)
        self.assertAlmostEqual(self.profile.noise_threshold, 0.0)
        self.assertEqual(self.profile.completed, 2)

    def test_not_calibrating_ignores_samples(self):
        profile = CalibrationProfile()
        self.assertFalse(self.calibrator.add_sample(profile, 9.8))
        self.assertEqual(profile.sample_buffer, [])

class TestInertialMotionEstimator(unittest.TestCase):
    """Test InertialMotionEstimator class."""

    def setUp(self):
        """Set up test fixtures."""
        self.estimator = InertialMotionEstimator()
        self.baseline = 9.81
        self.noise = 0.2

    def _pedal(self, t_ms):
        return InertialSample(accel_x=1.0, accel_y=6.0, accel_z=10.0, timestamp_ms=t_ms)

    def test_first_sample_has_no_speed(self):
        state = self.estimator.update(self._pedal(0), self.noise, self.baseline)

        self.assertEqual(state.speed, 0.0)
        self.assertEqual(state.confidence, 0.0)
        self.assertTrue(state.is_cycling)
        self.assertTrue(state.is_moving)

    def test_pedaling_builds_speed_and_confidence(self):
        """Test steady pedaling bursts."""
        for i in range(4):
            state = self.estimator.update(self._pedal(i * 20), self.noise, self.baseline)

        excess = abs(math.sqrt(1.0 + 36.0 + 100.0) - self.baseline) - self.noise
        self.assertEqual(len(self.estimator.speed_buffer), 3)
        self.assertAlmostEqual(state.speed, excess * 0.02)

        # Identical increments have zero variance
        self.assertAlmostEqual(state.confidence, 1.0)

    def test_idle_sample(self):
        """Test that a resting device is neither moving nor pedaling."""
        self.estimator.update(InertialSample(0.0, 0.0, 9.81, timestamp_ms=0), self.noise, self.baseline)
        state = self.estimator.update(InertialSample(0.0, 0.0, 9.81, timestamp_ms=20),
                                      self.noise, self.baseline)

        self.assertFalse(state.is_moving)
        self.assertFalse(state.is_cycling)
        self.assertEqual(state.speed, 0.0)

    def test_non_cycling_confidence_is_capped(self):
        for i in range(4):
            self.estimator.update(self._pedal(i * 20), self.noise, self.baseline)
        state = self.estimator.update(InertialSample(0.0, 0.0, 9.81, timestamp_ms=100),
                                      self.noise, self.baseline)

        self.assertAlmostEqual(state.confidence, 0.3)

    def test_buffer_is_bounded(self):
        for i in range(30):
            self.estimator.update(self._pedal(i * 20), self.noise, self.baseline)

        self.assertEqual(len(self.estimator.speed_buffer), 10)

    def test_reset(self):
        for i in range(5):
            self.estimator.update(self._pedal(i * 20), self.noise, self.baseline)
        self.estimator.reset()

        self.assertEqual(len(self.estimator.speed_buffer), 0)
        self.assertIsNone(self.estimator.last_timestamp_ms)
        self.assertEqual(self.estimator.state.speed, 0.0)

if __name__ == '__main__':
    unittest.main()
