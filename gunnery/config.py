"""
Fire-control configuration for the Gunnery control core.

A single parameter object carries every tunable the tracking, solver,
steering and fire-control components read. Build one with keyword
arguments, derive variants with ``with_overrides``, or load one from a
JSON file:

    config = load_config(Path("configs/fighter.json"))
    fast_rounds = config.with_overrides(projectile_speed=2000.0)
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Union

from .physics import TAU


# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_TICK_LENGTH = 1.0 / 60.0
DEFAULT_PROJECTILE_SPEED = 1000.0  # m/s
DEFAULT_MAX_ACCELERATION = 60.0  # m/s^2
DEFAULT_MAX_ANGULAR_ACCELERATION = TAU  # rad/s^2
DEFAULT_MAX_RANGE = 3000.0  # m
DEFAULT_PASSING_SPEED = 200.0  # m/s


@dataclass(frozen=True)
class FireControlConfig:
    """
    Physical constants and tuning for one armed agent.

    Attributes:
        projectile_speed: Muzzle speed of the gun (m/s).
        max_acceleration: Own maximum linear acceleration (m/s^2).
        max_angular_acceleration: Own maximum angular acceleration (rad/s^2).
        tick_length: Length of one control cycle (s).
        max_range: Maximum effective gun range (m).
        passing_speed: Speed below which the ship stops braking (m/s).
        match_acceleration_factor: A detection implying more than this
            multiple of max_acceleration is not the tracked target.
        solver_iterations: Fixed number of intercept refinement passes.
        min_angular_uncertainty: Floor of the firing cone half-width (rad).
        jitter_increment: Phase step of the aim dither per shot fired.
        jitter_enabled: Whether to dither the aim inside the firing cone.
        sweep_increment: Radar heading advance per tick while searching (rad).
        sweep_beam_width: Radar beam width while searching (rad).
        track_beam_width: Radar beam width while locked (rad).
        close_track_beam_width: Beam width when the target is very close (rad).
        close_track_distance: Range under which the close beam is used (m).
        expiry_margin_ticks: Ticks added to one sweep period before a
            track without hits expires.
        history_size: Number of hits kept per track.
        weapon_index: Gun that fire decisions are issued for.
        radio_channel: Channel telemetry is received on.
        skip_range_factor: Tick skipping only beyond this multiple of max_range.
        max_closing_speed_factor: Tick skipping only above this multiple of
            max_acceleration in own speed (m/s).
        max_skipped_ticks: Consecutive ticks that may be skipped.
    """
    projectile_speed: float = DEFAULT_PROJECTILE_SPEED
    max_acceleration: float = DEFAULT_MAX_ACCELERATION
    max_angular_acceleration: float = DEFAULT_MAX_ANGULAR_ACCELERATION
    tick_length: float = DEFAULT_TICK_LENGTH
    max_range: float = DEFAULT_MAX_RANGE
    passing_speed: float = DEFAULT_PASSING_SPEED
    match_acceleration_factor: float = 10.0
    solver_iterations: int = 100
    min_angular_uncertainty: float = math.radians(1.0)
    jitter_increment: float = 0.2
    jitter_enabled: bool = True
    sweep_increment: float = math.radians(10.0)
    sweep_beam_width: float = math.radians(10.0)
    track_beam_width: float = math.radians(30.0)
    close_track_beam_width: float = math.radians(120.0)
    close_track_distance: float = 100.0
    expiry_margin_ticks: float = 4.0
    history_size: int = 8
    weapon_index: int = 0
    radio_channel: int = 2
    skip_range_factor: float = 1.3
    max_closing_speed_factor: float = 6.0
    max_skipped_ticks: int = 5

    def __post_init__(self) -> None:
        """Reject configurations the control loop cannot run with."""
        for field in fields(self):
            _check_type(field.name, getattr(self, field.name), field.default)

        for name in (
            "projectile_speed",
            "max_acceleration",
            "max_angular_acceleration",
            "tick_length",
            "sweep_increment",
            "sweep_beam_width",
            "track_beam_width",
            "close_track_beam_width",
        ):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be positive, got {value!r}")

        for name in (
            "max_range",
            "passing_speed",
            "match_acceleration_factor",
            "min_angular_uncertainty",
            "jitter_increment",
            "close_track_distance",
            "expiry_margin_ticks",
            "skip_range_factor",
            "max_closing_speed_factor",
        ):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be non-negative, got {value!r}")

        if self.solver_iterations < 1:
            raise ValueError("solver_iterations must be at least 1")
        if self.history_size < 2:
            raise ValueError("history_size must be at least 2")
        if self.max_skipped_ticks < 0:
            raise ValueError("max_skipped_ticks must be non-negative")
        if self.weapon_index < 0:
            raise ValueError("weapon_index must be non-negative")

    @property
    def match_acceleration_bound(self) -> float:
        """Largest target acceleration a detection may imply (m/s^2)."""
        return self.match_acceleration_factor * self.max_acceleration

    @property
    def sweep_period(self) -> float:
        """Seconds for the search sweep to cover a full circle."""
        # 1e-9 keeps 2*pi / 10deg at exactly 36 steps
        return self.tick_length * math.ceil(TAU / self.sweep_increment - 1e-9)

    @property
    def expiry_window(self) -> float:
        """Seconds a track survives without a new hit."""
        return self.sweep_period + self.tick_length * self.expiry_margin_ticks

    @property
    def max_closing_speed(self) -> float:
        """Own speed treated as practical top speed for tick skipping (m/s)."""
        return self.max_closing_speed_factor * self.max_acceleration

    def with_overrides(self, **changes: Any) -> FireControlConfig:
        """
        Return a validated copy with some fields replaced.

        Raises:
            ValueError: If a key is not a configuration field or a value
                is out of range.
        """
        _check_keys(changes)
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> FireControlConfig:
        """Create from a dictionary; missing keys keep their defaults."""
        _check_keys(data)
        return cls(**data)


def _check_type(name: str, value: Any, default: Any) -> None:
    """Values must have the kind of their default; ints pass for floats."""
    if isinstance(default, bool):
        valid = isinstance(value, bool)
        kind = "a boolean"
    elif isinstance(default, int):
        valid = isinstance(value, int) and not isinstance(value, bool)
        kind = "an integer"
    else:
        valid = isinstance(value, (int, float)) and not isinstance(value, bool)
        kind = "a number"
    if not valid:
        raise ValueError(f"{name} must be {kind}, got {value!r}")


def _check_keys(data: Dict[str, Any]) -> None:
    known = {f.name for f in fields(FireControlConfig)}
    for key in data:
        if key not in known:
            raise ValueError(f"Unknown fire-control setting '{key}'")


def load_config(path: Union[str, Path]) -> FireControlConfig:
    """
    Load a configuration from a JSON object file.

    Args:
        path: Path to a JSON file whose top level is an object of
            FireControlConfig field names.

    Returns:
        Validated FireControlConfig.
    """
    with open(path, "r") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return FireControlConfig.from_dict(data)
