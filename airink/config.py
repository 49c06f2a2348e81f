"""
Config Module - Pipeline Tunables
=================================
Holds every tunable of the gesture-to-ink pipeline in one validated
dataclass. Values can be overridden from environment variables (loaded
from a .env file by the entry script).
"""

import os
import math
from dataclasses import dataclass, fields
from typing import Tuple, Optional, Mapping


Color = Tuple[int, int, int]

DEFAULT_INK_COLOR: Color = (17, 17, 17)  # '#111' in BGR


def validate_color(name: str, color) -> Color:
    """Check a BGR color triple and return it as a tuple of ints."""
    try:
        values = tuple(int(c) for c in color)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a (b, g, r) triple, got {color!r}")
    if len(values) != 3 or not all(0 <= c <= 255 for c in values):
        raise ValueError(f"{name} must hold three values in 0..255, got {color!r}")
    return values


@dataclass
class PipelineConfig:
    """
    Tunables for one capture session.

    Attributes:
        finger_cos_threshold: A finger counts as extended when the cosine of
            the PIP->TIP / PIP->MCP angle is at or below this value
        thumb_ratio: Thumb is extended when |TIP-IP| > ratio * |TIP-MCP|
        start_frames: Dwell to enter draw mode
        stop_frames: Dwell to leave draw mode
        default_frames: Dwell for every other transition
        smoothing: Exponential smoothing weight for stroke points
        movement_epsilon: Minimum fingertip travel (normalized) to accept a point
        draw_width: Pen width in display units
        erase_width: Eraser width in display units
        draw_color: BGR ink color
        clear_cooldown: Seconds between two clear actions
        mirror_x: Mirror the horizontal axis (selfie view)
    """
    finger_cos_threshold: float = -0.6
    thumb_ratio: float = 0.7
    start_frames: int = 3
    stop_frames: int = 3
    default_frames: int = 2
    smoothing: float = 0.35
    movement_epsilon: float = 0.003
    draw_width: float = 3
    erase_width: float = 16
    draw_color: Color = DEFAULT_INK_COLOR
    clear_cooldown: float = 0.8
    mirror_x: bool = False

    def __post_init__(self):
        if not -1.0 <= self.finger_cos_threshold <= 1.0:
            raise ValueError("finger_cos_threshold must be within [-1, 1]")
        if not self.thumb_ratio > 0:
            raise ValueError("thumb_ratio must be positive")
        for name in ('start_frames', 'stop_frames', 'default_frames'):
            value = getattr(self, name)
            if isinstance(value, bool) or not float(value).is_integer():
                raise ValueError(f"{name} must be a whole number of frames")
            if value < 1:
                raise ValueError(f"{name} must be at least 1")
            setattr(self, name, int(value))
        if not 0.0 < self.smoothing <= 1.0:
            raise ValueError("smoothing must be within (0, 1]")
        if not (math.isfinite(self.movement_epsilon) and self.movement_epsilon >= 0):
            raise ValueError("movement_epsilon must be a non-negative number")
        if self.draw_width <= 0 or self.erase_width <= 0:
            raise ValueError("brush widths must be positive")
        if self.clear_cooldown < 0:
            raise ValueError("clear_cooldown must not be negative")
        self.draw_color = validate_color('draw_color', self.draw_color)

    @property
    def movement_epsilon_sq(self) -> float:
        """Squared movement threshold used by the movement gate."""
        return self.movement_epsilon ** 2

    @classmethod
    def from_env(
        cls,
        prefix: str = "AIRINK_",
        environ: Optional[Mapping[str, str]] = None
    ) -> "PipelineConfig":
        """
        Build a config from environment variables.

        Each field maps to PREFIX + FIELD_NAME in upper case, e.g.
        AIRINK_SMOOTHING=0.5 or AIRINK_DRAW_COLOR=0,0,255. Unset
        variables keep their defaults.

        Args:
            prefix: Variable name prefix
            environ: Mapping to read from (defaults to os.environ)
        """
        env = os.environ if environ is None else environ
        overrides = {}

        for f in fields(cls):
            raw = env.get(prefix + f.name.upper())
            if raw is None or raw.strip() == '':
                continue
            raw = raw.strip()

            if f.name == 'mirror_x':
                overrides[f.name] = raw.lower() in ('1', 'true', 'yes', 'on')
            elif f.name == 'draw_color':
                overrides[f.name] = tuple(part.strip() for part in raw.split(','))
            elif f.name.endswith('_frames'):
                overrides[f.name] = int(raw)
            else:
                overrides[f.name] = float(raw)

        return cls(**overrides)
