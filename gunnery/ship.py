"""
Per-tick control loop for the Gunnery fire-control core.

A Ship is invoked once per tick with what the environment reports
(ShipSensors) and answers with everything it wants done (ShipCommands):

    scan/radio -> track -> firing solution -> {attitude, thrust, fire gate}

No step raises for missing detections, degenerate timing or unreachable
targets; each degrades to a safe command so a full ShipCommands is always
produced.

Usage:
    ship = Ship(FireControlConfig())
    commands = ship.tick(sensors)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .attitude import AttitudeController
from .config import FireControlConfig
from .firecontrol import FireControlGate, FireDecision
from .intercept import InterceptController
from .physics import Vector2D
from .search import Detection, RadarCommand, ScanController, SearchMode, TelemetryMessage
from .solver import FiringSolutionSolver, TargetEstimate

logger = logging.getLogger(__name__)


# =============================================================================
# INTERFACE TYPES
# =============================================================================

@dataclass
class ShipSensors:
    """
    Everything the environment reports to the ship for one tick.

    Attributes:
        time: Current time (s).
        position: Own position (m).
        velocity: Own velocity (m/s).
        heading: Own heading (rad).
        angular_velocity: Own spin (rad/s).
        detection: Radar return for the beam commanded last tick, if any.
        telemetry: Raw radio payload ``[x, y, vx, vy]`` received on the
            configured channel, if any.
        reload_ticks: Ticks until the gun can fire again.
    """
    time: float
    position: Vector2D = field(default_factory=Vector2D.zero)
    velocity: Vector2D = field(default_factory=Vector2D.zero)
    heading: float = 0.0
    angular_velocity: float = 0.0
    detection: Optional[Detection] = None
    telemetry: Optional[Sequence[float]] = None
    reload_ticks: int = 0


@dataclass
class ShipCommands:
    """
    Everything the ship asks the environment to do this tick.

    Attributes:
        radar: Radar heading and beam width.
        radio_channel: Channel to listen on.
        torque: Angular acceleration (rad/s^2).
        turn_rate: Direct angular velocity command, when set it takes
            precedence over torque.
        acceleration: Linear acceleration (m/s^2).
        fire: Whether to fire.
        weapon: Gun the fire decision applies to.
        estimate: Firing solution used this tick, if one was computed.
        decision: Fire-gate outcome, if evaluated.
        skipped: True if the expensive work was skipped this tick.
    """
    radar: RadarCommand
    radio_channel: int
    torque: float = 0.0
    turn_rate: Optional[float] = None
    acceleration: Vector2D = field(default_factory=Vector2D.zero)
    fire: bool = False
    weapon: int = 0
    estimate: Optional[TargetEstimate] = None
    decision: Optional[FireDecision] = None
    skipped: bool = False


# =============================================================================
# SHIP
# =============================================================================

class Ship:
    """
    Fire-control and guidance loop for one armed agent.

    Owns the scan controller (and through it the single target lock),
    the solver, both steering controllers and the fire gate. All state is
    mutated only inside ``tick``.
    """

    def __init__(self, config: Optional[FireControlConfig] = None):
        """
        Initialize the loop.

        Args:
            config: Fire-control configuration (defaults if omitted).
        """
        self.config = config or FireControlConfig()
        self.scanner = ScanController(self.config)
        self.solver = FiringSolutionSolver.from_config(self.config)
        self.attitude = AttitudeController.from_config(self.config)
        self.intercept = InterceptController.from_config(self.config)
        self.gate = FireControlGate.from_config(self.config)
        self.ticks_skipped = 0

    @property
    def mode(self) -> SearchMode:
        return self.scanner.mode

    def tick(self, sensors: ShipSensors) -> ShipCommands:
        """
        Run one control cycle.

        Args:
            sensors: This tick's environment report.

        Returns:
            ShipCommands for this tick.
        """
        now = sensors.time
        telemetry = None
        if sensors.telemetry is not None:
            telemetry = TelemetryMessage.from_payload(sensors.telemetry)

        radar = self.scanner.update(now, sensors.position, sensors.detection, telemetry)
        commands = ShipCommands(
            radar=radar,
            radio_channel=self.config.radio_channel,
            weapon=self.config.weapon_index
        )

        track = self.scanner.track
        if track is None:
            # Nothing to engage: come to rest and hold heading
            self.ticks_skipped = 0
            commands.acceleration = self.intercept.hold(
                sensors.velocity, self.config.tick_length
            ).acceleration
            hold = self.attitude.command(
                sensors.heading, sensors.angular_velocity, sensors.heading
            )
            commands.torque = hold.torque
            commands.turn_rate = hold.turn_rate
            return commands

        distance = track.position.distance_to(sensors.position)
        if self._should_skip(distance, sensors.velocity.magnitude):
            logger.debug(f"Skipping tick {self.ticks_skipped}: target at {distance:.0f}m")
            commands.skipped = True
            return commands

        estimate = self.solver.solve_track(track, sensors.position, now)
        if not estimate.is_finite():
            logger.warning(f"Non-finite firing solution {estimate}, aiming at the target")
            estimate = self.solver.fallback(sensors.position, track.predict(now), now)
        commands.estimate = estimate

        aim_heading = estimate.bearing_from(sensors.position)
        aim_heading += self.gate.jitter(estimate.angular_uncertainty)
        rotation = self.attitude.command(
            sensors.heading, sensors.angular_velocity, aim_heading
        )
        commands.torque = rotation.torque
        commands.turn_rate = rotation.turn_rate

        decision = self.gate.evaluate(
            sensors.position, sensors.heading, estimate, sensors.reload_ticks
        )
        commands.decision = decision
        commands.fire = decision.fire

        thrust = self.intercept.command(
            sensors.position, sensors.velocity, sensors.heading, estimate.aim_point
        )
        commands.acceleration = thrust.acceleration

        return commands

    def _should_skip(self, distance: float, speed: float) -> bool:
        """
        Decide whether to skip the solver and controllers this tick.

        Only while the target is well out of range, the ship is already at
        top closing speed, and fewer than max_skipped_ticks have been
        skipped in a row.
        """
        should_skip = (
            distance > self.config.max_range * self.config.skip_range_factor
            and speed >= self.config.max_closing_speed
            and self.ticks_skipped < self.config.max_skipped_ticks
        )
        if should_skip:
            self.ticks_skipped += 1
        else:
            self.ticks_skipped = 0
        return should_skip
