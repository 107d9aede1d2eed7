"""
Radar search and lock management for the Gunnery fire-control core.

The ScanController owns the single target lock and decides where the radar
looks each tick. It is in one of two states:

- Sweep: no lock. The radar heading steps around the circle with a narrow
  beam until something is detected.
- Lock: a TargetTrack is held. The radar follows the track's predicted
  position one tick ahead. The beam opens up when the target is very close
  (so angular overshoot does not lose it) and narrows at range.

Detections arrive from the radar (gated against the track) or as radio
telemetry (trusted, never gated).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Sequence, Union

from .config import FireControlConfig
from .physics import Vector2D, wrap_angle
from .tracking import ScanHit, TargetTrack

logger = logging.getLogger(__name__)


# =============================================================================
# SENSOR INPUTS
# =============================================================================

@dataclass(frozen=True)
class Detection:
    """
    A radar return for one object.

    Attributes:
        position: Detected position (m).
        velocity: Detected velocity (m/s).
    """
    position: Vector2D
    velocity: Vector2D

    def is_finite(self) -> bool:
        """True if no component is NaN or infinite."""
        return self.position.is_finite() and self.velocity.is_finite()

    def at(self, timestamp: float) -> ScanHit:
        """Stamp the return with the time it was received."""
        return ScanHit(self.position, self.velocity, timestamp)


@dataclass(frozen=True)
class TelemetryMessage:
    """
    Target position and velocity relayed over the radio.

    The payload layout on the wire is ``[x, y, vx, vy]``.
    """
    position: Vector2D
    velocity: Vector2D

    @classmethod
    def from_payload(cls, payload: Sequence[float]) -> Optional[TelemetryMessage]:
        """
        Parse a radio payload.

        Returns:
            The message, or None if the payload is short or not finite.
        """
        if payload is None or len(payload) < 4:
            logger.warning(f"Dropping short telemetry payload: {payload!r}")
            return None
        try:
            values = [float(v) for v in payload[:4]]
        except (TypeError, ValueError):
            logger.warning(f"Dropping non-numeric telemetry payload: {payload!r}")
            return None
        if not all(math.isfinite(v) for v in values):
            logger.warning(f"Dropping non-finite telemetry payload: {payload!r}")
            return None
        return cls(Vector2D(values[0], values[1]), Vector2D(values[2], values[3]))

    def to_payload(self) -> list[float]:
        """Encode as ``[x, y, vx, vy]``."""
        return [self.position.x, self.position.y, self.velocity.x, self.velocity.y]

    def as_detection(self) -> Detection:
        return Detection(self.position, self.velocity)


# =============================================================================
# SEARCH STATE
# =============================================================================

class SearchMode(Enum):
    """Radar search modes."""
    SWEEP = auto()  # No lock, stepping the beam around
    TRACK = auto()  # Following a locked track


@dataclass
class Sweep:
    """Searching state: the heading the beam will look along next."""
    heading: float = 0.0


@dataclass
class Lock:
    """Locked state: the track being followed."""
    track: TargetTrack


SearchState = Union[Sweep, Lock]


@dataclass(frozen=True)
class RadarCommand:
    """
    Where the radar should look this tick.

    Attributes:
        heading: Beam center heading (rad).
        width: Full beam width (rad).
    """
    heading: float
    width: float


# =============================================================================
# SCAN CONTROLLER
# =============================================================================

class ScanController:
    """
    Manages acquisition, tracking and loss of the single target lock.

    Call ``update`` once per tick with whatever arrived from the radar and
    radio; it returns the radar command for the next return.
    """

    def __init__(self, config: Optional[FireControlConfig] = None):
        """
        Initialize in sweep mode.

        Args:
            config: Fire-control configuration (defaults if omitted).
        """
        self.config = config or FireControlConfig()
        self.state: SearchState = Sweep()
        self.acquisitions = 0

    @property
    def mode(self) -> SearchMode:
        """Current search mode."""
        if isinstance(self.state, Lock):
            return SearchMode.TRACK
        return SearchMode.SWEEP

    @property
    def track(self) -> Optional[TargetTrack]:
        """The locked track, or None while sweeping."""
        if isinstance(self.state, Lock):
            return self.state.track
        return None

    def update(
        self,
        now: float,
        own_position: Vector2D,
        detection: Optional[Detection] = None,
        telemetry: Optional[TelemetryMessage] = None
    ) -> RadarCommand:
        """
        Process this tick's detections and choose the next radar command.

        Args:
            now: Current time (s).
            own_position: Own position (m), for the nearer-target rule and
                for pointing the beam.
            detection: Radar return this tick, if any.
            telemetry: Radio report this tick, if any.

        Returns:
            RadarCommand for the next tick.
        """
        if telemetry is not None:
            self._accept_telemetry(telemetry.as_detection().at(now))

        if detection is not None:
            if detection.is_finite():
                self._process_detection(detection.at(now), own_position)
            else:
                logger.warning(f"Ignoring non-finite radar return: {detection!r}")

        track = self.track
        if track is not None and track.expired(now):
            logger.info(
                f"Lost track {track.track_id}: no hit for {now - track.last_seen:.3f}s"
            )
            # Resume the sweep from where the target was last seen
            last_bearing = (track.position - own_position).angle()
            self.state = Sweep(heading=wrap_angle(last_bearing))

        return self._radar_command(now, own_position)

    def drop(self) -> None:
        """Forget the current lock and resume sweeping."""
        self.state = Sweep()

    # -------------------------------------------------------------------------
    # Detection handling
    # -------------------------------------------------------------------------

    def _open_track(self, hit: ScanHit) -> None:
        self.acquisitions += 1
        track = TargetTrack.from_config(hit, self.config, track_id=self.acquisitions)
        self.state = Lock(track)
        logger.info(f"Acquired track {track.track_id} at {hit.position}")

    def _accept_telemetry(self, hit: ScanHit) -> None:
        track = self.track
        if track is None:
            self._open_track(hit)
        elif hit.timestamp > track.latest.timestamp:
            track.add(hit)

    def _process_detection(self, hit: ScanHit, own_position: Vector2D) -> None:
        track = self.track
        if track is None:
            self._open_track(hit)
            return

        if hit.timestamp <= track.latest.timestamp:
            # Already updated this tick (by telemetry)
            return

        if track.matches(hit):
            track.add(hit)
            return

        candidate_range = hit.position.distance_to(own_position)
        track_range = track.position.distance_to(own_position)
        if candidate_range < track_range:
            logger.info(
                f"Switching from track {track.track_id} ({track_range:.0f}m) "
                f"to nearer contact ({candidate_range:.0f}m)"
            )
            self._open_track(hit)
        else:
            logger.debug(f"Discarding unmatched return at {candidate_range:.0f}m")

    # -------------------------------------------------------------------------
    # Beam steering
    # -------------------------------------------------------------------------

    def _radar_command(self, now: float, own_position: Vector2D) -> RadarCommand:
        if isinstance(self.state, Lock):
            predicted = self.state.track.predict(now + self.config.tick_length)
            offset = predicted - own_position
            if offset.magnitude < self.config.close_track_distance:
                width = self.config.close_track_beam_width
            else:
                width = self.config.track_beam_width
            return RadarCommand(heading=wrap_angle(offset.angle()), width=width)

        heading = self.state.heading
        self.state.heading = wrap_angle(heading + self.config.sweep_increment)
        return RadarCommand(heading=heading, width=self.config.sweep_beam_width)
