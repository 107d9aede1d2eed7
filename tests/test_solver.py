#!/usr/bin/env python3
"""
Test Suite for the Firing-Solution Solver

Tests cover:
1. Fixed-point intercept iteration
2. Convergence (idempotence of one more pass)
3. Angular uncertainty and its floor
4. Solving against a locked track
5. Degenerate and unreachable geometry
"""

import math

import pytest

from gunnery.config import FireControlConfig
from gunnery.physics import Vector2D
from gunnery.solver import (
    FiringSolutionSolver,
    TargetEstimate,
    intercept_step,
    solve_intercept,
)
from gunnery.tracking import ScanHit, TargetTrack


ORIGIN = Vector2D(0, 0)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def solver():
    """Solver with the default configuration."""
    return FiringSolutionSolver.from_config(FireControlConfig())


# =============================================================================
# INTERCEPT ITERATION TESTS
# =============================================================================

class TestSolveIntercept:
    """Tests for the fixed-point intercept iteration."""

    def test_stationary_target(self):
        """Aim straight at a target that does not move."""
        aim, flight = solve_intercept(
            ORIGIN, Vector2D(2000, 0), Vector2D.zero(), Vector2D.zero(), 1000.0
        )
        assert aim == Vector2D(2000, 0)
        assert flight == pytest.approx(2.0)

    def test_crossing_target_leads(self):
        """A target crossing at 50 m/s is led on its side of travel."""
        aim, flight = solve_intercept(
            ORIGIN, Vector2D(1000, 0), Vector2D(0, 50), Vector2D.zero(), 1000.0
        )
        assert aim.y > 0
        assert 1.0 <= flight <= 1.01
        assert aim.y == pytest.approx(50 * flight)
        assert aim.magnitude / 1000.0 == pytest.approx(flight)

    def test_converged_solution_is_a_fixed_point(self):
        """One more pass does not move a converged aim point."""
        position, velocity, acceleration = Vector2D(1500, 400), Vector2D(-80, 120), Vector2D(5, -10)
        aim, flight = solve_intercept(ORIGIN, position, velocity, acceleration, 1000.0)
        again, _ = intercept_step(ORIGIN, position, velocity, acceleration, 1000.0, flight)
        assert again.distance_to(aim) < 1e-6

    def test_flight_time_consistent_with_aim(self):
        """Returned flight time is the travel time to the returned aim point."""
        aim, flight = solve_intercept(
            Vector2D(100, 100), Vector2D(900, -300), Vector2D(30, 30), Vector2D(0, 20), 800.0
        )
        assert (aim - Vector2D(100, 100)).magnitude / 800.0 == pytest.approx(flight)

    def test_invalid_projectile_speed(self):
        """Non-positive projectile speed is an error."""
        with pytest.raises(ValueError):
            solve_intercept(ORIGIN, Vector2D(1, 0), Vector2D.zero(), Vector2D.zero(), 0.0)

    def test_target_on_top_of_shooter(self):
        """Zero range gives a zero flight time, not an error."""
        aim, flight = solve_intercept(ORIGIN, ORIGIN, Vector2D.zero(), Vector2D.zero(), 1000.0)
        assert aim == ORIGIN
        assert flight == 0.0


# =============================================================================
# SOLVER TESTS
# =============================================================================

class TestFiringSolutionSolver:
    """Tests for the full firing solution."""

    def test_estimate_fields(self, solver):
        """Estimate carries solve time and intercept time."""
        estimate = solver.solve(ORIGIN, Vector2D(2000, 0), Vector2D.zero(), now=5.0)
        assert isinstance(estimate, TargetEstimate)
        assert estimate.solve_time == 5.0
        assert estimate.flight_time == pytest.approx(2.0)
        assert estimate.intercept_time == pytest.approx(7.0)
        assert estimate.bearing_from(ORIGIN) == pytest.approx(0.0)

    def test_uncertainty_from_lateral_acceleration(self, solver):
        """Cone half-width is the angle a full lateral burn would move the aim."""
        estimate = solver.solve(ORIGIN, Vector2D(2000, 0), Vector2D.zero())
        lateral_offset = 0.5 * 60.0 * 2.0 ** 2
        assert estimate.angular_uncertainty == pytest.approx(math.atan2(lateral_offset, 2000))

    def test_uncertainty_floor(self, solver):
        """Very short flights use the minimum cone."""
        estimate = solver.solve(ORIGIN, Vector2D(10, 0), Vector2D.zero())
        assert estimate.angular_uncertainty == pytest.approx(math.radians(1.0))

    def test_uses_acceleration_estimate(self, solver):
        """A known target acceleration bends the aim point."""
        plain = solver.solve(ORIGIN, Vector2D(2000, 0), Vector2D.zero())
        bent = solver.solve(ORIGIN, Vector2D(2000, 0), Vector2D.zero(), Vector2D(0, 30))
        assert bent.aim_point.y > plain.aim_point.y
        assert bent.aim_point.y == pytest.approx(0.5 * 30 * bent.flight_time ** 2)

    def test_unreachable_target_is_finite(self, solver):
        """A target outrunning the rounds still yields a finite estimate."""
        estimate = solver.solve(ORIGIN, Vector2D(1000, 0), Vector2D(2000, 0))
        assert estimate.aim_point.is_finite()
        assert math.isfinite(estimate.flight_time)
        assert 0 <= estimate.angular_uncertainty <= math.pi

    def test_distant_accelerating_target_is_finite(self, solver):
        """Acceleration outgrowing the projectile's reach stops at the last finite pass."""
        estimate = solver.solve(ORIGIN, Vector2D(15000, 0), Vector2D(-100, 0), Vector2D(60, 0))
        assert estimate.is_finite()
        assert estimate.aim_point.x > 15000
        assert estimate.aim_point.y == pytest.approx(0.0)
        assert 0 <= estimate.angular_uncertainty <= math.pi

    def test_diverging_intercept_keeps_last_finite_pass(self):
        """The returned pair is a consistent finite iterate."""
        aim, flight = solve_intercept(
            ORIGIN, Vector2D(15000, 0), Vector2D(-100, 0), Vector2D(60, 0), 1000.0
        )
        assert aim.is_finite()
        assert math.isfinite(flight)
        assert flight > 15.0

    def test_fallback_aims_at_target(self, solver):
        """The fallback estimate points at the target with the widest cone."""
        estimate = solver.fallback(ORIGIN, Vector2D(3000, 4000), now=2.0)
        assert estimate.aim_point == Vector2D(3000, 4000)
        assert estimate.flight_time == pytest.approx(5000 / solver.projectile_speed)
        assert estimate.angular_uncertainty == pytest.approx(math.pi)
        assert estimate.solve_time == 2.0
        assert estimate.is_finite()

    def test_estimate_finiteness(self):
        """Any non-finite field makes the estimate unusable."""
        assert TargetEstimate(Vector2D(1, 2), 0.0, 1.0, 0.1).is_finite()
        assert not TargetEstimate(Vector2D(math.nan, 2), 0.0, 1.0, 0.1).is_finite()
        assert not TargetEstimate(Vector2D(1, 2), 0.0, math.inf, 0.1).is_finite()

    @pytest.mark.parametrize("kwargs", [
        {"projectile_speed": 0.0, "lateral_acceleration": 60.0},
        {"projectile_speed": 1000.0, "lateral_acceleration": 60.0, "iterations": 0},
    ])
    def test_invalid_construction(self, kwargs):
        """Speed and iteration count are validated."""
        with pytest.raises(ValueError):
            FiringSolutionSolver(**kwargs)


class TestSolveTrack:
    """Tests for solving against a locked track."""

    def test_extrapolates_track_to_now(self, solver):
        """An old hit is moved forward to the current time before solving."""
        track = TargetTrack.create(ScanHit(Vector2D(0, 1000), Vector2D(100, 0), 0.0))
        estimate = solver.solve_track(track, ORIGIN, now=0.5)
        expected = solver.solve(ORIGIN, Vector2D(50, 1000), Vector2D(100, 0), now=0.5)
        assert estimate.aim_point == expected.aim_point
        assert estimate.flight_time == pytest.approx(expected.flight_time)

    def test_uses_track_acceleration(self, solver):
        """Acceleration between the two newest hits feeds the solution."""
        track = TargetTrack.create(ScanHit(Vector2D(2000, 0), Vector2D(0, 0), 0.0))
        track.add(ScanHit(Vector2D(2000, 0), Vector2D(0, 1), 0.1))
        estimate = solver.solve_track(track, ORIGIN, now=0.1)
        assert estimate.aim_point.y > 0.5 * 10 * estimate.flight_time ** 2 * 0.99
