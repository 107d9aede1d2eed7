#!/usr/bin/env python3
"""
Test Suite for the Per-Tick Ship Loop

Tests cover:
1. Idle behavior without a target
2. Engagement of a detected target
3. Radio telemetry acquisition
4. Tick skipping at long range
5. Degenerate inputs never raising
"""

import math

import pytest

from gunnery.config import FireControlConfig
from gunnery.physics import Vector2D
from gunnery.search import Detection, SearchMode
from gunnery.ship import Ship, ShipCommands, ShipSensors
from gunnery.solver import TargetEstimate


TICK = 1.0 / 60.0


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def config():
    """Default fire-control configuration."""
    return FireControlConfig()


@pytest.fixture
def ship(config):
    """Fresh ship at the origin."""
    return Ship(config)


def sensors(t=0.0, **kwargs):
    """Sensor report at time t with overrides."""
    return ShipSensors(time=t, **kwargs)


def finite_commands(commands: ShipCommands) -> bool:
    """True if every numeric command is finite."""
    values = [
        commands.radar.heading,
        commands.radar.width,
        commands.torque,
        commands.acceleration.x,
        commands.acceleration.y,
    ]
    if commands.turn_rate is not None:
        values.append(commands.turn_rate)
    return all(math.isfinite(v) for v in values)


# =============================================================================
# IDLE TESTS
# =============================================================================

class TestIdle:
    """Tests with nothing to engage."""

    def test_no_detection(self, ship, config):
        """Sweeps, holds fire and reports the radio channel."""
        commands = ship.tick(sensors())
        assert ship.mode == SearchMode.SWEEP
        assert not commands.fire
        assert commands.estimate is None
        assert commands.decision is None
        assert commands.radio_channel == config.radio_channel
        assert commands.radar.width == pytest.approx(config.sweep_beam_width)

    def test_idle_brakes(self, ship):
        """Without a target the ship comes to rest."""
        commands = ship.tick(sensors(velocity=Vector2D(10, 0)))
        assert commands.acceleration == Vector2D(-60, 0)

    def test_idle_holds_heading(self, ship):
        """Without a target the ship does not start turning."""
        commands = ship.tick(sensors(heading=1.0))
        assert commands.torque == 0.0

    def test_many_empty_ticks(self, ship):
        """Long runs of nothing stay in sweep."""
        for step in range(120):
            commands = ship.tick(sensors(step * TICK))
            assert not commands.fire
        assert ship.mode == SearchMode.SWEEP


# =============================================================================
# ENGAGEMENT TESTS
# =============================================================================

class TestEngagement:
    """Tests with a detected target."""

    def test_fires_on_aligned_target(self, ship):
        """Target dead ahead in range: lock, solve and fire."""
        commands = ship.tick(sensors(detection=Detection(Vector2D(2000, 0), Vector2D(0, 0))))
        assert ship.mode == SearchMode.TRACK
        assert commands.estimate is not None
        assert commands.estimate.aim_point == Vector2D(2000, 0)
        assert commands.fire
        assert commands.weapon == 0

    def test_no_fire_while_reloading(self, ship):
        """Reload blocks the trigger even with a perfect solution."""
        commands = ship.tick(sensors(
            detection=Detection(Vector2D(2000, 0), Vector2D(0, 0)),
            reload_ticks=3
        ))
        assert commands.estimate is not None
        assert not commands.fire
        assert commands.decision.reason == "RELOADING"

    def test_turns_toward_target(self, ship):
        """A target off the nose commands torque toward it."""
        commands = ship.tick(sensors(detection=Detection(Vector2D(0, 2000), Vector2D(0, 0))))
        assert commands.torque > 0
        assert not commands.fire

    def test_leads_crossing_target(self, ship):
        """The aim point is ahead of a crossing target."""
        commands = ship.tick(sensors(detection=Detection(Vector2D(1000, 0), Vector2D(0, 50))))
        assert commands.estimate.aim_point.y > 0
        assert commands.estimate.flight_time == pytest.approx(1.0, abs=0.01)

    def test_thrust_toward_target(self, ship):
        """At rest the ship accelerates along its nose toward the target."""
        commands = ship.tick(sensors(detection=Detection(Vector2D(2000, 0), Vector2D(0, 0))))
        assert commands.acceleration == Vector2D(60, 0)


# =============================================================================
# TELEMETRY TESTS
# =============================================================================

class TestTelemetry:
    """Tests for radio-fed targeting."""

    def test_telemetry_acquires(self, ship):
        """A radio report locks without any radar return."""
        commands = ship.tick(sensors(telemetry=[2500.0, 0.0, 0.0, 0.0]))
        assert ship.mode == SearchMode.TRACK
        assert commands.estimate.aim_point == Vector2D(2500, 0)

    @pytest.mark.parametrize("payload", [[1.0, 2.0], [math.nan, 0.0, 0.0, 0.0]])
    def test_malformed_telemetry_ignored(self, ship, payload):
        """Garbage on the radio does not raise or lock."""
        commands = ship.tick(sensors(telemetry=payload))
        assert ship.mode == SearchMode.SWEEP
        assert finite_commands(commands)


# =============================================================================
# TICK SKIPPING TESTS
# =============================================================================

class TestTickSkipping:
    """Tests for skipping work while closing from far out."""

    def test_skips_bounded_run(self, ship, config):
        """At most max_skipped_ticks in a row are skipped."""
        far = Detection(Vector2D(10000, 0), Vector2D(0, 0))
        fast = Vector2D(config.max_closing_speed + 40, 0)
        pattern = []
        for step in range(7):
            commands = ship.tick(sensors(
                step * TICK,
                velocity=fast,
                detection=far if step == 0 else None
            ))
            pattern.append(commands.skipped)
        assert pattern == [True, True, True, True, True, False, True]

    def test_skipped_tick_coasts(self, ship, config):
        """Skipped ticks command nothing."""
        commands = ship.tick(sensors(
            velocity=Vector2D(config.max_closing_speed + 40, 0),
            detection=Detection(Vector2D(10000, 0), Vector2D(0, 0))
        ))
        assert commands.skipped
        assert commands.acceleration == Vector2D(0, 0)
        assert commands.torque == 0.0
        assert not commands.fire

    def test_no_skip_when_slow(self, ship):
        """Slow ships never skip."""
        commands = ship.tick(sensors(
            velocity=Vector2D(100, 0),
            detection=Detection(Vector2D(10000, 0), Vector2D(0, 0))
        ))
        assert not commands.skipped

    def test_no_skip_in_range(self, ship, config):
        """Targets near gun range are always worked."""
        commands = ship.tick(sensors(
            velocity=Vector2D(config.max_closing_speed + 40, 0),
            detection=Detection(Vector2D(2000, 0), Vector2D(0, 0))
        ))
        assert not commands.skipped


# =============================================================================
# DEGENERATE INPUT TESTS
# =============================================================================

class TestDegenerateInputs:
    """The loop always produces finite commands."""

    def test_repeated_timestamp(self, ship):
        """Two ticks with the same time do not raise."""
        detection = Detection(Vector2D(1500, 300), Vector2D(-20, 10))
        first = ship.tick(sensors(1.0, detection=detection))
        second = ship.tick(sensors(1.0, detection=detection))
        assert finite_commands(first)
        assert finite_commands(second)

    def test_target_on_top_of_ship(self, ship):
        """Zero range yields a finite solution."""
        commands = ship.tick(sensors(detection=Detection(Vector2D(0, 0), Vector2D(0, 0))))
        assert finite_commands(commands)
        assert commands.estimate.aim_point.is_finite()

    def test_target_faster_than_rounds(self, ship):
        """An outrunning target does not blow up the solver."""
        commands = ship.tick(sensors(detection=Detection(Vector2D(1000, 0), Vector2D(2000, 0))))
        assert finite_commands(commands)
        assert not commands.fire

    def test_distant_accelerating_target(self, ship):
        """A far target accelerating away keeps every command finite."""
        own_velocity = Vector2D(50, 0)
        first = ship.tick(sensors(
            0.0,
            velocity=own_velocity,
            detection=Detection(Vector2D(15000, 0), Vector2D(-100, 0))
        ))
        second = ship.tick(sensors(
            TICK,
            position=own_velocity * TICK,
            velocity=own_velocity,
            detection=Detection(
                Vector2D(15000 - 100 * TICK + 0.5 * 60 * TICK ** 2, 0),
                Vector2D(-100 + 60 * TICK, 0)
            )
        ))
        assert ship.scanner.track.acceleration.x == pytest.approx(60.0)
        for commands in (first, second):
            assert not commands.skipped
            assert finite_commands(commands)
            assert commands.estimate.is_finite()
            assert not commands.fire

    def test_non_finite_solution_falls_back_to_target(self, ship, monkeypatch):
        """An unusable solution is replaced by aiming straight at the target."""
        broken = TargetEstimate(Vector2D(math.nan, math.nan), 0.0, math.nan, math.nan)
        monkeypatch.setattr(ship.solver, "solve_track", lambda track, origin, now: broken)
        commands = ship.tick(sensors(detection=Detection(Vector2D(0, 2000), Vector2D(0, 0))))
        assert finite_commands(commands)
        assert commands.estimate.aim_point == Vector2D(0, 2000)
        assert commands.estimate.angular_uncertainty == pytest.approx(math.pi)
