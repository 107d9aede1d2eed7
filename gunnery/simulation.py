#!/usr/bin/env python3
"""
Closed-Loop Engagement Simulation for the Gunnery fire-control core.

A minimal 2D world to exercise a Ship end to end:
- Agent body that obeys the commanded torque/turn rate/acceleration within
  the configured limits
- Scripted target (initial state plus an optional acceleration profile)
- Directional radar returning a (optionally noisy) detection when the
  target is inside the commanded beam and radar range
- Optional radio telemetry relaying the true target state
- Projectiles with reload, lifetime, and swept-segment hit detection

The world is deliberately simple: it is a test harness, not a physics
engine. Trajectories are recorded as numpy arrays for analysis.

Usage:
    sim = create_scenario("crossing", seed=7)
    result = sim.run(max_ticks=1200)
    print(result.hits, result.shots_fired)
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import numpy as np

from .config import FireControlConfig
from .physics import Vector2D, angle_diff, wrap_angle
from .search import Detection, RadarCommand, TelemetryMessage
from .ship import Ship, ShipCommands, ShipSensors

logger = logging.getLogger(__name__)


AccelerationProfile = Callable[[float], Vector2D]

DEFAULT_RADAR_RANGE = 20_000.0  # m
DEFAULT_HIT_RADIUS = 10.0  # m
DEFAULT_RELOAD_TICKS = 4


# =============================================================================
# WORLD OBJECTS
# =============================================================================

@dataclass
class Body:
    """Kinematic state of a simulated object."""
    position: Vector2D = field(default_factory=Vector2D.zero)
    velocity: Vector2D = field(default_factory=Vector2D.zero)
    heading: float = 0.0
    angular_velocity: float = 0.0

    def advance(self, acceleration: Vector2D, dt: float) -> None:
        """Semi-implicit Euler step for the linear state."""
        self.velocity = self.velocity + acceleration * dt
        self.position = self.position + self.velocity * dt


@dataclass
class Projectile:
    """A round in flight."""
    position: Vector2D
    velocity: Vector2D
    expires_at: float
    closest_approach: float = math.inf


@dataclass
class EngagementResult:
    """
    Summary of a simulation run.

    Attributes:
        ticks: Ticks simulated.
        shots_fired: Rounds fired.
        hits: Rounds that passed within the hit radius of the target.
        first_lock_tick: Tick the first lock was acquired, or None.
        closest_approach: Smallest distance any round came to the target (m).
        agent_positions: (ticks, 2) array of agent positions.
        target_positions: (ticks, 2) array of target positions.
        skipped_ticks: Ticks on which the ship skipped its solver.
    """
    ticks: int
    shots_fired: int
    hits: int
    first_lock_tick: Optional[int]
    closest_approach: float
    agent_positions: np.ndarray
    target_positions: np.ndarray
    skipped_ticks: int = 0

    @property
    def hit_rate(self) -> float:
        """Fraction of rounds fired that hit."""
        if self.shots_fired == 0:
            return 0.0
        return self.hits / self.shots_fired

    def separation(self) -> np.ndarray:
        """Agent-to-target distance at every recorded tick (m)."""
        return np.linalg.norm(self.target_positions - self.agent_positions, axis=1)

    def minimum_separation(self) -> float:
        """Closest the agent itself came to the target (m)."""
        separation = self.separation()
        if separation.size == 0:
            return math.inf
        return float(separation.min())


def segment_point_distance(start: Vector2D, end: Vector2D, point: Vector2D) -> float:
    """Distance from point to the segment start-end."""
    segment = end - start
    length_squared = segment.magnitude_squared
    if length_squared == 0:
        return start.distance_to(point)
    t = max(0.0, min(1.0, (point - start).dot(segment) / length_squared))
    return (start + segment * t).distance_to(point)


def weave(amplitude: float, period: float, direction: Optional[Vector2D] = None) -> AccelerationProfile:
    """
    Sinusoidal acceleration profile.

    Args:
        amplitude: Peak acceleration (m/s^2).
        period: Seconds per full weave.
        direction: Axis of the weave (default +Y).
    """
    axis = (direction or Vector2D.unit_y()).normalized()
    omega = 2.0 * math.pi / period

    def profile(t: float) -> Vector2D:
        return axis * (amplitude * math.sin(omega * t))

    return profile


# =============================================================================
# ENGAGEMENT SIMULATION
# =============================================================================

class EngagementSimulation:
    """
    One agent Ship against one scripted target.
    """

    def __init__(
        self,
        config: Optional[FireControlConfig] = None,
        target: Optional[Body] = None,
        target_acceleration: Optional[AccelerationProfile] = None,
        agent: Optional[Body] = None,
        radar_enabled: bool = True,
        radio_enabled: bool = False,
        broadcast_channel: Optional[int] = None,
        radar_range: float = DEFAULT_RADAR_RANGE,
        position_noise: float = 0.0,
        velocity_noise: float = 0.0,
        hit_radius: float = DEFAULT_HIT_RADIUS,
        reload_ticks: int = DEFAULT_RELOAD_TICKS,
        projectile_lifetime: Optional[float] = None,
        seed: int = 0
    ):
        """
        Initialize simulation.

        Args:
            config: Fire-control configuration shared by ship and world limits.
            target: Initial target state (default: 2 km ahead, stationary).
            target_acceleration: Target acceleration as a function of time.
            agent: Initial agent state (default: origin, at rest, heading 0).
            radar_enabled: Whether the radar returns detections.
            radio_enabled: Whether telemetry is broadcast.
            broadcast_channel: Channel the telemetry goes out on (default:
                the channel in config).
            radar_range: Maximum detection range (m).
            position_noise: Std-dev of radar position noise (m).
            velocity_noise: Std-dev of radar velocity noise (m/s).
            hit_radius: Round-to-target distance that counts as a hit (m).
            reload_ticks: Ticks between shots.
            projectile_lifetime: Seconds a round flies (default: twice the
                time to cross max_range).
            seed: Seed for the radar noise generator.
        """
        self.config = config or FireControlConfig()
        self.ship = Ship(self.config)
        self.agent = agent or Body()
        self.target = target or Body(position=Vector2D(2000.0, 0.0))
        self.target_acceleration = target_acceleration
        self.radar_enabled = radar_enabled
        self.radio_enabled = radio_enabled
        if broadcast_channel is None:
            broadcast_channel = self.config.radio_channel
        self.broadcast_channel = broadcast_channel
        self.radar_range = radar_range
        self.position_noise = position_noise
        self.velocity_noise = velocity_noise
        self.hit_radius = hit_radius
        self.reload_ticks = reload_ticks
        if projectile_lifetime is None:
            projectile_lifetime = 2.0 * self.config.max_range / self.config.projectile_speed
        self.projectile_lifetime = projectile_lifetime
        self.rng = random.Random(seed)

        self.tick_count = 0
        self.time = 0.0
        self.radar = RadarCommand(heading=0.0, width=self.config.sweep_beam_width)
        self.listening_channel = self.config.radio_channel
        self.reload_remaining = 0
        self.projectiles: List[Projectile] = []

        self.shots_fired = 0
        self.hits = 0
        self.skipped_ticks = 0
        self.first_lock_tick: Optional[int] = None
        self.closest_approach = math.inf
        self._agent_track: List[tuple[float, float]] = []
        self._target_track: List[tuple[float, float]] = []

    # -------------------------------------------------------------------------
    # Sensors
    # -------------------------------------------------------------------------

    def _detect(self) -> Optional[Detection]:
        if not self.radar_enabled:
            return None
        offset = self.target.position - self.agent.position
        distance = offset.magnitude
        if distance == 0 or distance > self.radar_range:
            return None
        if abs(angle_diff(self.radar.heading, offset.angle())) > self.radar.width / 2:
            return None

        position = self.target.position
        velocity = self.target.velocity
        if self.position_noise > 0:
            position = position + Vector2D(
                self.rng.gauss(0.0, self.position_noise),
                self.rng.gauss(0.0, self.position_noise)
            )
        if self.velocity_noise > 0:
            velocity = velocity + Vector2D(
                self.rng.gauss(0.0, self.velocity_noise),
                self.rng.gauss(0.0, self.velocity_noise)
            )
        return Detection(position, velocity)

    def _telemetry(self) -> Optional[list[float]]:
        if not self.radio_enabled or self.listening_channel != self.broadcast_channel:
            return None
        return TelemetryMessage(self.target.position, self.target.velocity).to_payload()

    def sensors(self) -> ShipSensors:
        """Build this tick's sensor report for the ship."""
        return ShipSensors(
            time=self.time,
            position=self.agent.position,
            velocity=self.agent.velocity,
            heading=self.agent.heading,
            angular_velocity=self.agent.angular_velocity,
            detection=self._detect(),
            telemetry=self._telemetry(),
            reload_ticks=self.reload_remaining
        )

    # -------------------------------------------------------------------------
    # Actuation
    # -------------------------------------------------------------------------

    def _apply_rotation(self, commands: ShipCommands, dt: float) -> None:
        alpha = self.config.max_angular_acceleration
        w = self.agent.angular_velocity
        if commands.turn_rate is not None:
            dw = max(-alpha * dt, min(alpha * dt, commands.turn_rate - w))
        else:
            dw = max(-alpha, min(alpha, commands.torque)) * dt
        self.agent.angular_velocity = w + dw
        self.agent.heading = wrap_angle(self.agent.heading + self.agent.angular_velocity * dt)

    def _apply_thrust(self, commands: ShipCommands, dt: float) -> None:
        acceleration = commands.acceleration
        if not acceleration.is_finite():
            logger.warning(f"Ignoring non-finite acceleration {acceleration}")
            acceleration = Vector2D.zero()
        magnitude = acceleration.magnitude
        if magnitude > self.config.max_acceleration:
            acceleration = acceleration * (self.config.max_acceleration / magnitude)
        self.agent.advance(acceleration, dt)

    def _apply_fire(self, commands: ShipCommands) -> None:
        if commands.fire and self.reload_remaining == 0:
            self.projectiles.append(Projectile(
                position=self.agent.position,
                velocity=Vector2D.from_angle(self.agent.heading, self.config.projectile_speed),
                expires_at=self.time + self.projectile_lifetime
            ))
            self.shots_fired += 1
            self.reload_remaining = self.reload_ticks
        elif self.reload_remaining > 0:
            self.reload_remaining -= 1

    def _advance_projectiles(self, dt: float) -> None:
        remaining = []
        for projectile in self.projectiles:
            start = projectile.position
            end = start + projectile.velocity * dt
            miss = segment_point_distance(start, end, self.target.position)
            self.closest_approach = min(self.closest_approach, miss)
            if miss <= self.hit_radius:
                self.hits += 1
                logger.info(f"Hit at t={self.time:.2f}s ({miss:.1f}m)")
                continue
            projectile.position = end
            if self.time + dt < projectile.expires_at:
                remaining.append(projectile)
        self.projectiles = remaining

    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------

    def step(self) -> ShipCommands:
        """Advance the world by one tick."""
        dt = self.config.tick_length
        commands = self.ship.tick(self.sensors())

        if self.first_lock_tick is None and self.ship.scanner.track is not None:
            self.first_lock_tick = self.tick_count
        if commands.skipped:
            self.skipped_ticks += 1

        self.radar = commands.radar
        self.listening_channel = commands.radio_channel
        self._apply_fire(commands)
        self._apply_rotation(commands, dt)
        self._apply_thrust(commands, dt)

        target_acceleration = Vector2D.zero()
        if self.target_acceleration is not None:
            target_acceleration = self.target_acceleration(self.time)
        self.target.advance(target_acceleration, dt)

        self._advance_projectiles(dt)

        self._agent_track.append(self.agent.position.to_tuple())
        self._target_track.append(self.target.position.to_tuple())
        self.tick_count += 1
        self.time = self.tick_count * dt
        return commands

    def run(self, max_ticks: int, stop_after_hits: Optional[int] = None) -> EngagementResult:
        """
        Run until max_ticks or until stop_after_hits rounds have hit.

        Returns:
            EngagementResult for the whole run so far.
        """
        for _ in range(max_ticks):
            self.step()
            if stop_after_hits is not None and self.hits >= stop_after_hits:
                break
        return self.result()

    def result(self) -> EngagementResult:
        """Summarize the run so far."""
        return EngagementResult(
            ticks=self.tick_count,
            shots_fired=self.shots_fired,
            hits=self.hits,
            first_lock_tick=self.first_lock_tick,
            closest_approach=self.closest_approach,
            agent_positions=np.array(self._agent_track, dtype=float).reshape(-1, 2),
            target_positions=np.array(self._target_track, dtype=float).reshape(-1, 2),
            skipped_ticks=self.skipped_ticks
        )


# =============================================================================
# SCENARIOS
# =============================================================================

def _stationary(config: FireControlConfig, seed: int) -> EngagementSimulation:
    return EngagementSimulation(
        config=config,
        target=Body(position=Vector2D(2000.0, 0.0)),
        seed=seed
    )


def _crossing(config: FireControlConfig, seed: int) -> EngagementSimulation:
    return EngagementSimulation(
        config=config,
        target=Body(position=Vector2D(2500.0, -500.0), velocity=Vector2D(0.0, 100.0)),
        position_noise=1.0,
        seed=seed
    )


def _weaving(config: FireControlConfig, seed: int) -> EngagementSimulation:
    return EngagementSimulation(
        config=config,
        target=Body(position=Vector2D(-1500.0, 2000.0), velocity=Vector2D(50.0, 0.0)),
        target_acceleration=weave(amplitude=config.max_acceleration, period=6.0),
        position_noise=2.0,
        velocity_noise=0.5,
        seed=seed
    )


def _distant(config: FireControlConfig, seed: int) -> EngagementSimulation:
    return EngagementSimulation(
        config=config,
        target=Body(position=Vector2D(12_000.0, 3000.0), velocity=Vector2D(-30.0, 0.0)),
        seed=seed
    )


def _radio(config: FireControlConfig, seed: int) -> EngagementSimulation:
    return EngagementSimulation(
        config=config,
        target=Body(position=Vector2D(0.0, 2500.0), velocity=Vector2D(80.0, 0.0)),
        radar_enabled=False,
        radio_enabled=True,
        seed=seed
    )


SCENARIOS: Dict[str, Callable[[FireControlConfig, int], EngagementSimulation]] = {
    "stationary": _stationary,
    "crossing": _crossing,
    "weaving": _weaving,
    "distant": _distant,
    "radio": _radio,
}


def create_scenario(
    name: str,
    config: Optional[FireControlConfig] = None,
    seed: int = 0
) -> EngagementSimulation:
    """
    Build a named engagement.

    Raises:
        KeyError: If the scenario name is unknown.
    """
    if name not in SCENARIOS:
        raise KeyError(f"Scenario '{name}' not found; choose from {sorted(SCENARIOS)}")
    return SCENARIOS[name](config or FireControlConfig(), seed)
