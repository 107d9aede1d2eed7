"""Gunnery fire-control and guidance core package."""

from .attitude import (
    AttitudeCommand,
    AttitudeController,
)

from .config import (
    FireControlConfig,
    load_config,
)

from .firecontrol import (
    FireControlGate,
    FireDecision,
)

from .intercept import (
    InterceptController,
    ThrustCommand,
)

from .physics import (
    Vector2D,
    angle_diff,
    kinematic_position,
    wrap_angle,
)

from .search import (
    Detection,
    Lock,
    RadarCommand,
    ScanController,
    SearchMode,
    Sweep,
    TelemetryMessage,
)

from .ship import (
    Ship,
    ShipCommands,
    ShipSensors,
)

from .solver import (
    FiringSolutionSolver,
    TargetEstimate,
    solve_intercept,
)

from .tracking import (
    ScanHit,
    TargetTrack,
)

__all__ = [
    # Attitude module
    "AttitudeCommand",
    "AttitudeController",
    # Config module
    "FireControlConfig",
    "load_config",
    # Fire control module
    "FireControlGate",
    "FireDecision",
    # Intercept module
    "InterceptController",
    "ThrustCommand",
    # Physics module
    "Vector2D",
    "angle_diff",
    "kinematic_position",
    "wrap_angle",
    # Search module
    "Detection",
    "Lock",
    "RadarCommand",
    "ScanController",
    "SearchMode",
    "Sweep",
    "TelemetryMessage",
    # Ship module
    "Ship",
    "ShipCommands",
    "ShipSensors",
    # Solver module
    "FiringSolutionSolver",
    "TargetEstimate",
    "solve_intercept",
    # Tracking module
    "ScanHit",
    "TargetTrack",
]
