"""
Firing-solution solver for the Gunnery fire-control core.

Finds where to aim a constant-speed projectile so that it meets a target
moving with constant acceleration:

    P = p + v*t + 0.5*a*t^2
    t = |P - shooter| / projectile_speed

The two equations are solved by fixed-point iteration on t. For realistic
speed ratios against a slow, gently accelerating target each pass shrinks
the error by roughly target_speed / projectile_speed. Convergence is not
guaranteed otherwise: a target that outruns the projectile, or one whose
acceleration term 0.5*a*t^2 outgrows the distance the projectile covers
in t, pushes t upward every pass until it overflows. The solver therefore
keeps the last finite iterate and stops as soon as a pass goes non-finite;
if not even the first pass is finite it aims at the target's current
position.

Besides the aim point the solver estimates how wide the firing cone may
be: it re-evaluates the aim point assuming the target spends its whole
lateral acceleration budget to either side and takes the larger angular
deviation as the cone half-width.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .config import FireControlConfig
from .physics import Vector2D, angle_diff, kinematic_position
from .tracking import TargetTrack

logger = logging.getLogger(__name__)


# =============================================================================
# TARGET ESTIMATE
# =============================================================================

@dataclass(frozen=True)
class TargetEstimate:
    """
    Firing solution for the current tick.

    Attributes:
        aim_point: Where the projectile meets the target (m).
        solve_time: Time the solution was computed (s).
        flight_time: Projectile travel time to the aim point (s).
        angular_uncertainty: Half-width of the acceptable firing cone (rad).
    """
    aim_point: Vector2D
    solve_time: float
    flight_time: float
    angular_uncertainty: float

    @property
    def intercept_time(self) -> float:
        """Absolute time at which a round fired now reaches the aim point."""
        return self.solve_time + self.flight_time

    def bearing_from(self, origin: Vector2D) -> float:
        """Heading from origin to the aim point (rad)."""
        return (self.aim_point - origin).angle()

    def is_finite(self) -> bool:
        """True if the aim point, flight time and cone are all usable."""
        return (
            self.aim_point.is_finite()
            and math.isfinite(self.flight_time)
            and math.isfinite(self.angular_uncertainty)
        )


# =============================================================================
# INTERCEPT ITERATION
# =============================================================================

def intercept_step(
    origin: Vector2D,
    target_position: Vector2D,
    target_velocity: Vector2D,
    target_acceleration: Vector2D,
    projectile_speed: float,
    flight_time: float
) -> Tuple[Vector2D, float]:
    """
    One fixed-point pass: aim at where the target is after flight_time,
    then re-time the shot to that point.

    Returns:
        Tuple of (aim_point, new_flight_time).
    """
    aim_point = kinematic_position(
        target_position, target_velocity, target_acceleration, flight_time
    )
    return aim_point, (aim_point - origin).magnitude / projectile_speed


def solve_intercept(
    origin: Vector2D,
    target_position: Vector2D,
    target_velocity: Vector2D,
    target_acceleration: Vector2D,
    projectile_speed: float,
    iterations: int = 100
) -> Tuple[Vector2D, float]:
    """
    Solve the intercept problem by a fixed number of refinement passes.

    Args:
        origin: Where the projectile is fired from (m).
        target_position: Target position now (m).
        target_velocity: Target velocity now (m/s).
        target_acceleration: Assumed constant target acceleration (m/s^2).
        projectile_speed: Projectile speed (m/s), positive.
        iterations: Refinement passes after the seed, at least one.

    Returns:
        Tuple of (aim_point, flight_time) where flight_time is the travel
        time to aim_point. Both are finite whenever the inputs are: the
        last finite iterate is returned if the iteration diverges, and the
        target's current position if no pass is finite.
    """
    if projectile_speed <= 0:
        raise ValueError("projectile_speed must be positive")

    # Seed with the time to reach the target where it is now
    aim_point = target_position
    flight_time = (target_position - origin).magnitude / projectile_speed

    for step in range(iterations + 1):
        next_aim, next_time = intercept_step(
            origin, target_position, target_velocity, target_acceleration,
            projectile_speed, flight_time
        )
        if not (next_aim.is_finite() and math.isfinite(next_time)):
            logger.debug(f"intercept diverged after {step} passes, flight {flight_time:.3g}s")
            break
        aim_point, flight_time = next_aim, next_time
    return aim_point, flight_time


# =============================================================================
# FIRING SOLUTION SOLVER
# =============================================================================

class FiringSolutionSolver:
    """
    Computes the aim point and firing cone against a tracked target.
    """

    def __init__(
        self,
        projectile_speed: float,
        lateral_acceleration: float,
        iterations: int = 100,
        min_angular_uncertainty: float = math.radians(1.0)
    ):
        """
        Initialize solver.

        Args:
            projectile_speed: Projectile speed (m/s).
            lateral_acceleration: Unknown sideways acceleration the target
                may apply during the projectile's flight (m/s^2).
            iterations: Fixed number of refinement passes.
            min_angular_uncertainty: Floor of the firing cone half-width (rad).
        """
        if projectile_speed <= 0:
            raise ValueError("projectile_speed must be positive")
        if iterations < 1:
            raise ValueError("iterations must be at least 1")
        self.projectile_speed = projectile_speed
        self.lateral_acceleration = max(0.0, lateral_acceleration)
        self.iterations = iterations
        self.min_angular_uncertainty = max(0.0, min_angular_uncertainty)

    @classmethod
    def from_config(cls, config: FireControlConfig) -> FiringSolutionSolver:
        """Build a solver from a fire-control configuration."""
        return cls(
            projectile_speed=config.projectile_speed,
            lateral_acceleration=config.max_acceleration,
            iterations=config.solver_iterations,
            min_angular_uncertainty=config.min_angular_uncertainty
        )

    def solve(
        self,
        origin: Vector2D,
        target_position: Vector2D,
        target_velocity: Vector2D,
        target_acceleration: Optional[Vector2D] = None,
        now: float = 0.0
    ) -> TargetEstimate:
        """
        Compute the firing solution against a target state.

        Args:
            origin: Own position (m).
            target_position: Target position now (m).
            target_velocity: Target velocity now (m/s).
            target_acceleration: Target acceleration estimate (m/s^2).
            now: Current time (s), stamped on the estimate.

        Returns:
            TargetEstimate for this tick.
        """
        acceleration = target_acceleration or Vector2D.zero()

        aim_point, flight_time = solve_intercept(
            origin, target_position, target_velocity, acceleration,
            self.projectile_speed, self.iterations
        )

        uncertainty = self.angular_uncertainty(
            origin, target_position, target_velocity, acceleration,
            aim_point, flight_time
        )

        logger.debug(
            f"aim {aim_point} flight {flight_time:.3f}s "
            f"cone {math.degrees(uncertainty):.2f}deg"
        )

        return TargetEstimate(
            aim_point=aim_point,
            solve_time=now,
            flight_time=flight_time,
            angular_uncertainty=uncertainty
        )

    def solve_track(
        self,
        track: TargetTrack,
        origin: Vector2D,
        now: float
    ) -> TargetEstimate:
        """
        Compute the firing solution against a locked track.

        The track's newest hit is extrapolated to ``now`` first, so a hit
        that is a few ticks old is not aimed at as if it were current.
        """
        return self.solve(
            origin,
            track.predict(now),
            track.velocity_at(now),
            track.acceleration,
            now
        )

    def angular_uncertainty(
        self,
        origin: Vector2D,
        target_position: Vector2D,
        target_velocity: Vector2D,
        target_acceleration: Vector2D,
        aim_point: Vector2D,
        flight_time: float
    ) -> float:
        """
        Half-width of the firing cone around the nominal aim direction.

        The target's acceleration is offset by +/- lateral_acceleration
        perpendicular to the line of sight; the larger angle between the
        nominal and the offset aim directions is the uncertainty.

        Returns:
            Angle in radians, never below min_angular_uncertainty.
        """
        line_of_sight = target_position - origin
        lateral = line_of_sight.normalized().perpendicular() * self.lateral_acceleration

        nominal = (aim_point - origin).angle()
        worst = 0.0
        for offset in (lateral, -lateral):
            offset_point = kinematic_position(
                target_position, target_velocity,
                target_acceleration + offset, flight_time
            )
            if not offset_point.is_finite():
                # Unreachable geometry; fall back to the widest sensible cone
                return math.pi
            worst = max(worst, abs(angle_diff(nominal, (offset_point - origin).angle())))

        if not math.isfinite(worst):
            return math.pi
        return max(worst, self.min_angular_uncertainty)

    def fallback(
        self,
        origin: Vector2D,
        target_position: Vector2D,
        now: float = 0.0
    ) -> TargetEstimate:
        """
        Estimate that aims straight at the target with the widest cone.

        Used by the ship loop whenever a computed estimate is not finite.
        """
        flight_time = (target_position - origin).magnitude / self.projectile_speed
        return TargetEstimate(
            aim_point=target_position,
            solve_time=now,
            flight_time=flight_time,
            angular_uncertainty=math.pi
        )
