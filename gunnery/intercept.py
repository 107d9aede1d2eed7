"""
Translational intercept control for the Gunnery fire-control core.

Steers the ship's linear acceleration toward a point (normally the current
aim point). Each tick it decides between two things:

- Pursue: accelerate along a blend of the ship's heading and the
  correction that turns the velocity toward the point.
- Brake: accelerate against the velocity, when slowing down to passing
  speed would take as long as reaching the point at the current speed.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from .config import FireControlConfig
from .physics import Vector2D

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThrustCommand:
    """
    Linear acceleration command for one tick.

    Attributes:
        acceleration: Commanded acceleration vector (m/s^2).
        braking: True when the command opposes the current velocity.
    """
    acceleration: Vector2D
    braking: bool = False


class InterceptController:
    """
    Chooses between pursuing and braking toward a target point.
    """

    def __init__(self, max_acceleration: float, passing_speed: float = 200.0):
        """
        Initialize controller.

        Args:
            max_acceleration: Linear acceleration authority (m/s^2).
            passing_speed: Speed the ship may still have when it reaches
                the point (m/s).
        """
        if max_acceleration <= 0:
            raise ValueError("max_acceleration must be positive")
        self.max_acceleration = max_acceleration
        self.passing_speed = max(0.0, passing_speed)

    @classmethod
    def from_config(cls, config: FireControlConfig) -> InterceptController:
        return cls(config.max_acceleration, config.passing_speed)

    def command(
        self,
        position: Vector2D,
        velocity: Vector2D,
        heading: float,
        target_point: Vector2D
    ) -> ThrustCommand:
        """
        Compute the acceleration command toward target_point.

        Args:
            position: Own position (m).
            velocity: Own velocity (m/s).
            heading: Own heading (rad).
            target_point: Point to close on (m).

        Returns:
            ThrustCommand for this tick.
        """
        a_max = self.max_acceleration
        to_target = target_point - position
        distance = to_target.magnitude
        speed = velocity.magnitude
        forward = Vector2D.from_angle(heading)

        if speed > 0:
            velocity_direction = velocity / speed
            correction = to_target.normalized() - velocity_direction
            blended = (forward + correction).normalized()
            if blended.magnitude == 0:
                blended = forward
            pursue = blended * a_max

            seconds_to_stop = speed / a_max
            seconds_to_passing_speed = seconds_to_stop - self.passing_speed / a_max
            seconds_to_intercept = distance / speed
            should_brake = seconds_to_passing_speed >= seconds_to_intercept
        else:
            # No velocity reference: push along the nose
            velocity_direction = Vector2D.zero()
            pursue = forward * a_max
            seconds_to_passing_speed = -math.inf
            seconds_to_intercept = math.inf
            should_brake = False

        logger.debug(
            f"distance {distance:.1f}m speed {speed:.1f}m/s "
            f"to passing speed {seconds_to_passing_speed:.2f}s "
            f"to intercept {seconds_to_intercept:.2f}s brake {should_brake}"
        )

        if should_brake:
            return ThrustCommand(acceleration=-velocity_direction * a_max, braking=True)
        return ThrustCommand(acceleration=pursue)

    def hold(self, velocity: Vector2D, tick_length: float) -> ThrustCommand:
        """
        Decelerate toward rest without overshooting zero in one tick.

        Used when there is nothing to pursue.
        """
        speed = velocity.magnitude
        if speed == 0:
            return ThrustCommand(acceleration=Vector2D.zero())
        magnitude = min(self.max_acceleration, speed / tick_length)
        return ThrustCommand(acceleration=velocity * (-magnitude / speed), braking=True)
