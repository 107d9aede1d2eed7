"""
Target tracking for the Gunnery fire-control core.

A TargetTrack keeps a short history of sensor hits on one object and turns
it into a kinematic estimate:

- Velocity comes straight from the newest hit.
- Acceleration is the finite difference of velocity between the two
  newest hits.
- New detections are gated against what a bounded adversary could
  physically have done since the last hit.

Time is always passed in explicitly (monotonic seconds); the track never
reads a clock.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional

from .config import FireControlConfig
from .physics import Vector2D, kinematic_position

logger = logging.getLogger(__name__)


DEFAULT_EXPIRY_WINDOW = FireControlConfig().expiry_window
DEFAULT_ACCELERATION_BOUND = FireControlConfig().match_acceleration_bound
DEFAULT_HISTORY_SIZE = FireControlConfig().history_size


# =============================================================================
# SCAN HIT
# =============================================================================

@dataclass(frozen=True)
class ScanHit:
    """
    One recorded sensor return.

    Attributes:
        position: Detected position (m).
        velocity: Detected velocity (m/s).
        timestamp: Time the return was received (s).
    """
    position: Vector2D
    velocity: Vector2D
    timestamp: float

    def acceleration_since(self, earlier: ScanHit) -> Vector2D:
        """
        Mean acceleration between an earlier hit and this one.

        Returns zero when the time gap is not positive.
        """
        dt = self.timestamp - earlier.timestamp
        if dt <= 0:
            return Vector2D.zero()
        return (self.velocity - earlier.velocity) / dt


# =============================================================================
# TARGET TRACK
# =============================================================================

@dataclass
class TargetTrack:
    """
    Bounded hit history for a single tracked object.

    Only the two newest hits feed the estimate; older ones are kept so the
    history can be inspected.

    Attributes:
        hits: Recorded hits, newest last. Never empty.
        last_seen: Timestamp of the newest hit (s).
        expiry_window: Seconds without a hit before the track expires.
        acceleration_bound: Largest target acceleration a matching
            detection may imply (m/s^2).
        track_id: Sequence number of the acquisition, for logging.
    """
    hits: Deque[ScanHit]
    last_seen: float
    expiry_window: float = DEFAULT_EXPIRY_WINDOW
    acceleration_bound: float = DEFAULT_ACCELERATION_BOUND
    track_id: int = 0

    def __post_init__(self) -> None:
        if not self.hits:
            raise ValueError("A track needs at least one hit")
        if self.expiry_window <= 0:
            raise ValueError("expiry_window must be positive")

    @classmethod
    def create(
        cls,
        hit: ScanHit,
        expiry_window: float = DEFAULT_EXPIRY_WINDOW,
        acceleration_bound: float = DEFAULT_ACCELERATION_BOUND,
        history_size: int = DEFAULT_HISTORY_SIZE,
        track_id: int = 0
    ) -> TargetTrack:
        """
        Open a track on its first hit.

        Args:
            hit: The detection that started the track.
            expiry_window: Seconds the track survives without a hit.
            acceleration_bound: Gate for matching later detections (m/s^2).
            history_size: Maximum hits retained (>= 2).
            track_id: Identifier for logging.
        """
        return cls(
            hits=deque([hit], maxlen=max(2, history_size)),
            last_seen=hit.timestamp,
            expiry_window=expiry_window,
            acceleration_bound=acceleration_bound,
            track_id=track_id
        )

    @classmethod
    def from_config(
        cls,
        hit: ScanHit,
        config: FireControlConfig,
        track_id: int = 0
    ) -> TargetTrack:
        """Open a track using the windows and bounds of a configuration."""
        return cls.create(
            hit,
            expiry_window=config.expiry_window,
            acceleration_bound=config.match_acceleration_bound,
            history_size=config.history_size,
            track_id=track_id
        )

    @property
    def latest(self) -> ScanHit:
        """Newest hit."""
        return self.hits[-1]

    @property
    def previous(self) -> Optional[ScanHit]:
        """Second newest hit, if any."""
        if len(self.hits) < 2:
            return None
        return self.hits[-2]

    @property
    def position(self) -> Vector2D:
        """Position at the newest hit."""
        return self.latest.position

    @property
    def velocity(self) -> Vector2D:
        """Velocity at the newest hit."""
        return self.latest.velocity

    @property
    def acceleration(self) -> Vector2D:
        """
        Acceleration between the two newest hits.

        Zero with fewer than two hits or a non-positive time gap.
        """
        previous = self.previous
        if previous is None:
            return Vector2D.zero()
        return self.latest.acceleration_since(previous)

    def matches(self, candidate: ScanHit) -> bool:
        """
        Check whether a detection plausibly belongs to this track.

        A candidate is rejected when:
        - it is not strictly newer than the newest hit,
        - its velocity change implies more than acceleration_bound, or
        - its position is further from the zero-acceleration extrapolation
          than acceleration_bound * dt.

        Args:
            candidate: The new detection.

        Returns:
            True if the candidate should be added to this track.
        """
        last = self.latest
        dt = candidate.timestamp - last.timestamp
        if dt <= 0:
            logger.debug(f"track {self.track_id}: rejected, dt={dt:.4f}s")
            return False

        implied = (candidate.velocity - last.velocity) / dt
        if implied.magnitude > self.acceleration_bound:
            logger.debug(
                f"track {self.track_id}: rejected, implied acceleration "
                f"{implied.magnitude:.1f} > {self.acceleration_bound:.1f}"
            )
            return False

        predicted = self.predict(candidate.timestamp, ignore_acceleration=True)
        deviation = candidate.position.distance_to(predicted)
        tolerance = self.acceleration_bound * dt
        if deviation > tolerance:
            logger.debug(
                f"track {self.track_id}: rejected, position off by "
                f"{deviation:.1f}m > {tolerance:.1f}m"
            )
            return False

        return True

    def add(self, hit: ScanHit) -> None:
        """Record a matching hit."""
        self.hits.append(hit)
        self.last_seen = hit.timestamp

    def predict(self, t: float, ignore_acceleration: bool = False) -> Vector2D:
        """
        Predict the target position at time t.

        Args:
            t: Absolute time (s). May lie before the newest hit.
            ignore_acceleration: Extrapolate at constant velocity.

        Returns:
            Predicted position (m).
        """
        acceleration = Vector2D.zero() if ignore_acceleration else self.acceleration
        dt = t - self.latest.timestamp
        return kinematic_position(self.position, self.velocity, acceleration, dt)

    def velocity_at(self, t: float, ignore_acceleration: bool = False) -> Vector2D:
        """Predict the target velocity at time t."""
        if ignore_acceleration:
            return self.velocity
        return self.velocity + self.acceleration * (t - self.latest.timestamp)

    def expired(self, now: float) -> bool:
        """True once expiry_window has elapsed since the last hit."""
        return now - self.last_seen >= self.expiry_window
