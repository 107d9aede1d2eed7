#!/usr/bin/env python3
"""
Planar Kinematics for the Gunnery Fire-Control Core

Implements the 2D geometry the control loop works in:
- 2D vector operations
- Heading arithmetic (wrapping, shortest signed angle)
- Constant-acceleration motion (p = p0 + v*t + 0.5*a*t^2)

Headings are measured counter-clockwise from +X in radians.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


TAU = 2.0 * math.pi


# =============================================================================
# VECTOR2D CLASS
# =============================================================================

@dataclass(frozen=True)
class Vector2D:
    """
    2D vector for positions, velocities, accelerations and directions.

    All units in SI (meters, m/s, m/s^2) unless otherwise specified.
    """
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Vector2D) -> Vector2D:
        """Vector addition."""
        return Vector2D(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vector2D) -> Vector2D:
        """Vector subtraction."""
        return Vector2D(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> Vector2D:
        """Scalar multiplication."""
        return Vector2D(self.x * scalar, self.y * scalar)

    def __rmul__(self, scalar: float) -> Vector2D:
        """Right scalar multiplication."""
        return self.__mul__(scalar)

    def __truediv__(self, scalar: float) -> Vector2D:
        """Scalar division."""
        if scalar == 0:
            raise ValueError("Cannot divide vector by zero")
        return Vector2D(self.x / scalar, self.y / scalar)

    def __neg__(self) -> Vector2D:
        """Negation."""
        return Vector2D(-self.x, -self.y)

    def __eq__(self, other: object) -> bool:
        """Equality check with tolerance."""
        if not isinstance(other, Vector2D):
            return False
        eps = 1e-10
        return abs(self.x - other.x) < eps and abs(self.y - other.y) < eps

    def dot(self, other: Vector2D) -> float:
        """Dot product."""
        return self.x * other.x + self.y * other.y

    @property
    def magnitude(self) -> float:
        """Vector magnitude (length)."""
        return math.hypot(self.x, self.y)

    @property
    def magnitude_squared(self) -> float:
        """Squared magnitude (avoids sqrt for comparisons)."""
        return self.x**2 + self.y**2

    def normalized(self) -> Vector2D:
        """Return unit vector in same direction, or zero for the zero vector."""
        mag = self.magnitude
        if mag == 0:
            return Vector2D(0.0, 0.0)
        return self / mag

    def distance_to(self, other: Vector2D) -> float:
        """Distance to another point."""
        return (self - other).magnitude

    def angle(self) -> float:
        """Heading of this vector in radians, in (-pi, pi]."""
        return math.atan2(self.y, self.x)

    def perpendicular(self) -> Vector2D:
        """Counter-clockwise perpendicular of the same length."""
        return Vector2D(-self.y, self.x)

    def is_finite(self) -> bool:
        """True if neither component is NaN or infinite."""
        return math.isfinite(self.x) and math.isfinite(self.y)

    def to_tuple(self) -> tuple[float, float]:
        """Convert to tuple."""
        return (self.x, self.y)

    @classmethod
    def from_angle(cls, angle_rad: float, length: float = 1.0) -> Vector2D:
        """Vector of the given length pointing along a heading."""
        return cls(math.cos(angle_rad) * length, math.sin(angle_rad) * length)

    @classmethod
    def zero(cls) -> Vector2D:
        """Zero vector."""
        return cls(0.0, 0.0)

    @classmethod
    def unit_y(cls) -> Vector2D:
        """Unit vector along heading pi/2."""
        return cls(0.0, 1.0)

    def __repr__(self) -> str:
        return f"Vector2D({self.x:.6g}, {self.y:.6g})"


# =============================================================================
# HEADING ARITHMETIC
# =============================================================================

def wrap_angle(angle_rad: float) -> float:
    """Wrap an angle into [0, 2*pi)."""
    wrapped = angle_rad % TAU
    # -1e-18 % TAU rounds to TAU
    if wrapped >= TAU:
        wrapped = 0.0
    return wrapped


def angle_diff(from_rad: float, to_rad: float) -> float:
    """
    Shortest signed rotation that takes from_rad onto to_rad.

    Positive means counter-clockwise.

    Returns:
        Angle in radians in (-pi, pi].
    """
    diff = (to_rad - from_rad) % TAU
    if diff > math.pi:
        diff -= TAU
    return diff


# =============================================================================
# CONSTANT-ACCELERATION MOTION
# =============================================================================

def kinematic_position(
    position: Vector2D,
    velocity: Vector2D,
    acceleration: Vector2D,
    dt: float
) -> Vector2D:
    """
    Position after dt seconds of constant acceleration.

    p = p0 + v*dt + 0.5*a*dt^2

    dt may be negative to extrapolate backwards.
    """
    return position + velocity * dt + acceleration * (0.5 * dt * dt)


def time_to_stop(speed: float, max_deceleration: float) -> float:
    """
    Time to kill a speed (linear or angular) under full counter-acceleration.

    Returns:
        Seconds, or infinity if max_deceleration is not positive.
    """
    if max_deceleration <= 0:
        return math.inf
    return abs(speed) / max_deceleration
