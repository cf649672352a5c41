"""Manual tilt input: smooths discrete key presses into an analog board tilt.

Held directions push the tilt target by a fixed increment per tick; an axis
with nothing held eases back toward level. The mouse path maps the pointer
position straight onto the tilt with a small centre deadzone.
"""
from __future__ import annotations

from dataclasses import dataclass

from . import constants
from .marble import LEVEL, TiltVector, clamp


@dataclass(frozen=True)
class TiltKeys:
    """Directional keys held during a tick."""

    up: bool = False
    down: bool = False
    left: bool = False
    right: bool = False

    @property
    def any(self) -> bool:
        return self.up or self.down or self.left or self.right


class TiltInput:
    def __init__(
        self,
        max_tilt: float = constants.MAX_TILT,
        speed: float = constants.TILT_SPEED,
        decay: float = constants.TILT_DECAY,
        deadzone: float = constants.DEADZONE,
    ) -> None:
        self.max_tilt = float(max_tilt)
        self.speed = float(speed)
        self.decay = float(decay)
        self.deadzone = float(deadzone)
        self.tilt = LEVEL

    def reset(self) -> None:
        self.tilt = LEVEL

    def update(self, keys: TiltKeys) -> TiltVector:
        """Advance one tick of keyboard smoothing and return the new tilt."""
        pitch, roll = self.tilt
        # Up tips the far edge down (marble rolls toward -z), left rolls it toward -x
        if keys.up:
            pitch = max(pitch - self.speed, -self.max_tilt)
        if keys.down:
            pitch = min(pitch + self.speed, self.max_tilt)
        if keys.left:
            roll = min(roll + self.speed, self.max_tilt)
        if keys.right:
            roll = max(roll - self.speed, -self.max_tilt)
        if not (keys.up or keys.down):
            pitch *= self.decay
        if not (keys.left or keys.right):
            roll *= self.decay
        self.tilt = TiltVector(pitch, roll)
        return self.tilt

    def from_pointer(self, nx: float, ny: float) -> TiltVector:
        """Set the tilt from a pointer position normalized to [-1, 1] on both axes."""
        nx = clamp(nx, -1.0, 1.0)
        ny = clamp(ny, -1.0, 1.0)
        pitch = 0.0 if abs(ny) < self.deadzone else ny * self.max_tilt
        roll = 0.0 if abs(nx) < self.deadzone else -nx * self.max_tilt
        self.tilt = TiltVector(pitch, roll)
        return self.tilt
