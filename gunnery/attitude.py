"""
Attitude control for the Gunnery fire-control core.

Turns a desired heading into a torque command. The controller is
bang-bang: it spins up at full angular acceleration toward the target
heading and starts braking at full counter-torque as soon as the time to
kill the current spin reaches the time to coast onto the target. Close to
alignment, when the coast time drops below one tick, it hands over to a
direct turn-rate command instead of torque so the last fraction of a
degree does not oscillate.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from .config import FireControlConfig
from .physics import angle_diff, time_to_stop

logger = logging.getLogger(__name__)

# Angular speeds below this are treated as not spinning (rad/s)
SPIN_EPSILON = 1e-9


@dataclass(frozen=True)
class AttitudeCommand:
    """
    Rotation command for one tick.

    Attributes:
        torque: Commanded angular acceleration (rad/s^2), signed.
        turn_rate: Commanded angular velocity (rad/s) during the terminal
            approach, otherwise None.
        braking: True when the torque opposes the current spin.
        angle_error: Signed heading error the command was computed for (rad).
    """
    torque: float = 0.0
    turn_rate: Optional[float] = None
    braking: bool = False
    angle_error: float = 0.0

    @property
    def is_terminal(self) -> bool:
        """True when the fine heading corrector is in charge."""
        return self.turn_rate is not None


class AttitudeController:
    """
    Time-optimal heading controller with an analytic switching surface.
    """

    def __init__(self, max_angular_acceleration: float, tick_length: float):
        """
        Initialize controller.

        Args:
            max_angular_acceleration: Torque authority (rad/s^2).
            tick_length: Control period (s).
        """
        if max_angular_acceleration <= 0:
            raise ValueError("max_angular_acceleration must be positive")
        if tick_length <= 0:
            raise ValueError("tick_length must be positive")
        self.max_angular_acceleration = max_angular_acceleration
        self.tick_length = tick_length

    @classmethod
    def from_config(cls, config: FireControlConfig) -> AttitudeController:
        return cls(config.max_angular_acceleration, config.tick_length)

    def command(
        self,
        heading: float,
        angular_velocity: float,
        desired_heading: float
    ) -> AttitudeCommand:
        """
        Compute the rotation command toward a desired heading.

        Args:
            heading: Current heading (rad).
            angular_velocity: Current spin (rad/s), positive counter-clockwise.
            desired_heading: Heading to settle on (rad).

        Returns:
            AttitudeCommand for this tick.
        """
        error = angle_diff(heading, desired_heading)
        alpha = self.max_angular_acceleration

        seconds_to_stop = time_to_stop(angular_velocity, alpha)
        if abs(angular_velocity) > SPIN_EPSILON:
            seconds_to_target = error / angular_velocity
        else:
            # Not spinning: the target is never reached by coasting
            seconds_to_target = math.inf

        should_brake = (
            seconds_to_stop > 0
            and seconds_to_target > 0
            and seconds_to_stop >= seconds_to_target
        )

        logger.debug(
            f"heading error {math.degrees(error):.3f}deg "
            f"spin {math.degrees(angular_velocity):.2f}deg/s "
            f"to stop {seconds_to_stop:.3f}s to target {seconds_to_target:.3f}s "
            f"brake {should_brake}"
        )

        if should_brake:
            return AttitudeCommand(
                torque=-math.copysign(alpha, angular_velocity),
                braking=True,
                angle_error=error
            )

        if 0 <= seconds_to_target < self.tick_length:
            return AttitudeCommand(
                torque=0.0,
                turn_rate=error / self.tick_length,
                angle_error=error
            )

        if error == 0:
            return AttitudeCommand(angle_error=error)

        return AttitudeCommand(torque=math.copysign(alpha, error), angle_error=error)
