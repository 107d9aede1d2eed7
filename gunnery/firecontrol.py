#!/usr/bin/env python3
"""
Fire Control Gate for the Gunnery fire-control core.

This module implements:
- The fire/no-fire decision from range, alignment and reload state
- Aim dithering across the firing cone between shots
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from .config import FireControlConfig
from .physics import Vector2D, angle_diff
from .solver import TargetEstimate

logger = logging.getLogger(__name__)


# =============================================================================
# FIRE DECISION
# =============================================================================

@dataclass(frozen=True)
class FireDecision:
    """
    Outcome of the fire-control gate for one tick.

    Attributes:
        fire: Whether to pull the trigger this tick.
        weapon: Index of the gun the decision applies to.
        reloading: Gun is still reloading.
        in_range: Aim point is within maximum effective range.
        in_arc: Nose is inside the firing cone around the aim direction.
        range_to_target: Distance to the aim point (m).
        angle_error: Absolute angle between heading and aim direction (rad).
    """
    fire: bool
    weapon: int
    reloading: bool
    in_range: bool
    in_arc: bool
    range_to_target: float
    angle_error: float

    @property
    def reason(self) -> str:
        """Short human-readable explanation."""
        if self.fire:
            return "FIRE"
        if self.reloading:
            return "RELOADING"
        if not self.in_range:
            return f"OUT OF RANGE ({self.range_to_target:.0f} m)"
        return f"OFF ARC ({math.degrees(self.angle_error):.2f} deg)"


# =============================================================================
# FIRE CONTROL GATE
# =============================================================================

class FireControlGate:
    """
    Decides when the gun fires and where inside the cone to aim.

    The aim dither walks a phase in [-1, 1] by ``jitter_increment`` after
    every shot, reversing at the ends, so successive rounds spread across
    the firing cone instead of all going dead center.
    """

    def __init__(
        self,
        max_range: float,
        weapon_index: int = 0,
        jitter_increment: float = 0.2,
        jitter_enabled: bool = True
    ):
        """
        Initialize gate.

        Args:
            max_range: Maximum effective range (m).
            weapon_index: Gun to issue decisions for.
            jitter_increment: Dither phase step per shot fired.
            jitter_enabled: Whether to dither at all.
        """
        self.max_range = max_range
        self.weapon_index = weapon_index
        self.jitter_enabled = jitter_enabled
        self.jitter_increment = abs(jitter_increment)
        self.jitter_phase = 0.0
        self.weapon_ready = False

    @classmethod
    def from_config(cls, config: FireControlConfig) -> FireControlGate:
        return cls(
            max_range=config.max_range,
            weapon_index=config.weapon_index,
            jitter_increment=config.jitter_increment,
            jitter_enabled=config.jitter_enabled
        )

    def jitter(self, angular_uncertainty: float) -> float:
        """
        Aim offset to add to the aim bearing this tick (rad).

        Always within +/- angular_uncertainty.
        """
        if not self.jitter_enabled:
            return 0.0
        return angular_uncertainty * self.jitter_phase

    def evaluate(
        self,
        position: Vector2D,
        heading: float,
        estimate: TargetEstimate,
        reload_ticks: int = 0
    ) -> FireDecision:
        """
        Decide whether to fire this tick.

        Args:
            position: Own position (m).
            heading: Own heading (rad).
            estimate: This tick's firing solution.
            reload_ticks: Ticks until the gun can fire again.

        Returns:
            FireDecision. The dither phase advances only when it says fire.
        """
        offset = estimate.aim_point - position
        distance = offset.magnitude
        error = abs(angle_diff(heading, offset.angle()))

        reloading = reload_ticks > 0
        in_range = distance <= self.max_range
        in_arc = error <= estimate.angular_uncertainty

        self.weapon_ready = not reloading and in_range and in_arc

        decision = FireDecision(
            fire=self.weapon_ready,
            weapon=self.weapon_index,
            reloading=reloading,
            in_range=in_range,
            in_arc=in_arc,
            range_to_target=distance,
            angle_error=error
        )

        logger.debug(
            f"{decision.reason}: range {distance:.0f}/{self.max_range:.0f}m "
            f"error {math.degrees(error):.2f}/"
            f"{math.degrees(estimate.angular_uncertainty):.2f}deg"
        )

        if decision.fire:
            self._advance_jitter()

        return decision

    def _advance_jitter(self) -> None:
        self.jitter_phase += self.jitter_increment
        if self.jitter_phase >= 1.0 or self.jitter_phase <= -1.0:
            self.jitter_phase = max(-1.0, min(1.0, self.jitter_phase))
            self.jitter_increment = -self.jitter_increment
