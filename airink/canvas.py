"""
Canvas Module - Strokes and Ink Surface
=======================================
Accumulates smoothed fingertip points into strokes and rasterizes them
onto a BGRA surface. Erase strokes cut through existing ink instead of
painting over it.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import List, Tuple, Optional, Callable, Sequence

import cv2
import numpy as np

from airink.config import Color, DEFAULT_INK_COLOR, validate_color


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrokePoint:
    """A normalized stroke point stamped with a monotonic time."""
    x: float
    y: float
    t: float


@dataclass
class StrokeConfig:
    """
    Options for a new stroke.

    Attributes:
        color: BGR ink color (ignored when erasing)
        width: Line width in display units, before pixel-density scaling
        erase: Cut existing ink instead of painting
    """
    color: Color = DEFAULT_INK_COLOR
    width: float = 3
    erase: bool = False

    def __post_init__(self):
        if not self.width > 0:
            raise ValueError(f"stroke width must be positive, got {self.width!r}")
        self.color = validate_color('color', self.color)


@dataclass
class Stroke:
    """
    One continuous ink path.

    Points are appended only while the stroke is active. close() turns
    the point list into a tuple, after which the stroke is read-only.
    """
    points: List[StrokePoint] = field(default_factory=list)
    width: float = 3
    color: Color = DEFAULT_INK_COLOR
    erase: bool = False

    @property
    def closed(self) -> bool:
        return isinstance(self.points, tuple)

    def add_point(self, point: StrokePoint):
        if self.closed:
            raise RuntimeError("cannot add points to a finished stroke")
        self.points.append(point)

    def close(self):
        self.points = tuple(self.points)

    def is_empty(self) -> bool:
        return len(self.points) == 0


class MovementGate:
    """
    Drops fingertip samples that barely moved since the last accepted one,
    so a hand held still does not pile up identical points.
    """

    def __init__(self, epsilon_sq: float = 0.003 ** 2):
        self.epsilon_sq = epsilon_sq
        self._last: Optional[Tuple[float, float]] = None

    def accept(self, x: float, y: float) -> bool:
        """True (and remember the point) if it moved more than epsilon."""
        if self._last is not None:
            dx = x - self._last[0]
            dy = y - self._last[1]
            if dx * dx + dy * dy <= self.epsilon_sq:
                return False
        self._last = (x, y)
        return True

    def reset(self):
        """Forget the last point; the next sample is always accepted."""
        self._last = None


class StrokeBuffer:
    """
    Holds the single active stroke between begin() and end().

    Each pushed point after the first is pulled toward the raw sample
    from the previous smoothed point:

        smoothed = previous + smoothing * (raw - previous)

    a one-pole low-pass over the point sequence.
    """

    def __init__(self, smoothing: float = 0.35, clock: Callable[[], float] = time.monotonic):
        self.smoothing = smoothing
        self._clock = clock
        self.current: Optional[Stroke] = None
        self._last: Optional[StrokePoint] = None

    @property
    def is_active(self) -> bool:
        return self.current is not None

    def begin(self, config: Optional[StrokeConfig] = None) -> Stroke:
        """
        Start a new empty stroke. An unfinished previous stroke is dropped
        from the buffer (whatever was already rendered stays rendered).
        """
        config = config or StrokeConfig()
        self.current = Stroke(width=config.width, color=config.color, erase=config.erase)
        self._last = None
        logger.debug("Stroke begin (width=%s, erase=%s)", config.width, config.erase)
        return self.current

    def push(self, x: float, y: float) -> Optional[StrokePoint]:
        """
        Append a point to the active stroke. Ignored when no stroke is active.

        Returns:
            The stored (smoothed) point, or None if ignored
        """
        if self.current is None:
            return None

        if self._last is not None:
            w = self.smoothing
            x = self._last.x + w * (x - self._last.x)
            y = self._last.y + w * (y - self._last.y)

        point = StrokePoint(x, y, self._clock())
        self.current.add_point(point)
        self._last = point
        return point

    def end(self) -> Optional[Stroke]:
        """Detach and return the finished stroke (None if idle)."""
        stroke = self.current
        self.current = None
        self._last = None

        if stroke is None:
            return None

        stroke.close()
        logger.debug("Stroke end (%d points)", len(stroke.points))
        return stroke


class CanvasRenderer:
    """
    Rasterizes strokes onto a BGRA surface.

    The backing surface is display size times pixel density. resize() must
    run whenever the display geometry changes (the constructor runs it once);
    a size change reallocates the surface and so wipes it.
    """

    def __init__(self, display_width: float, display_height: float, pixel_ratio: float = 1.0):
        """
        Args:
            display_width: Displayed surface width
            display_height: Displayed surface height
            pixel_ratio: Device pixels per display unit (clamped to >= 1)
        """
        self.display_width = display_width
        self.display_height = display_height
        self.pixel_ratio = max(1.0, float(pixel_ratio or 1.0))

        self.width = 0
        self.height = 0
        self.surface: Optional[np.ndarray] = None

        self.resize()

    def resize(self, display_width: Optional[float] = None, display_height: Optional[float] = None):
        """
        Recompute backing pixel dimensions from the displayed size.

        Args:
            display_width: New displayed width (keeps the current one if None)
            display_height: New displayed height (keeps the current one if None)
        """
        if display_width is not None:
            self.display_width = display_width
        if display_height is not None:
            self.display_height = display_height

        if not (self.display_width > 0 and self.display_height > 0):
            raise ValueError(
                f"display size must be positive, got {self.display_width}x{self.display_height}"
            )

        width = int(round(self.display_width * self.pixel_ratio))
        height = int(round(self.display_height * self.pixel_ratio))

        if self.surface is not None and (width, height) == (self.width, self.height):
            return

        self.width = width
        self.height = height
        self.surface = np.zeros((height, width, 4), dtype=np.uint8)

    def clear(self):
        """Wipe the whole surface."""
        self.surface[:] = 0

    def line_width(self, stroke: Stroke) -> int:
        """Stroke width in device pixels."""
        return max(1, int(round(stroke.width * self.pixel_ratio)))

    def to_pixels(self, points: Sequence[StrokePoint]) -> List[Tuple[int, int]]:
        """Map normalized points onto the current surface size."""
        return [
            (int(round(p.x * self.width)), int(round(p.y * self.height)))
            for p in points
        ]

    def draw_stroke(self, stroke: Optional[Stroke]) -> bool:
        """
        Draw a stroke as a round-jointed poly-line.

        Returns:
            False when nothing was drawn (no stroke, or fewer than 2 points)
        """
        if stroke is None or len(stroke.points) < 2:
            return False

        pixels = self.to_pixels(stroke.points)
        thickness = self.line_width(stroke)

        if stroke.erase:
            # Opaque brush through destination-out: covered pixels become empty
            mask = np.zeros((self.height, self.width), dtype=np.uint8)
            self._trace(mask, pixels, 255, thickness, cv2.LINE_8)
            self.surface[mask > 0] = 0
        else:
            self._trace(self.surface, pixels, (*stroke.color, 255), thickness, cv2.LINE_AA)

        return True

    @staticmethod
    def _trace(image: np.ndarray, pixels, color, thickness: int, line_type: int):
        for p1, p2 in zip(pixels[:-1], pixels[1:]):
            cv2.line(image, p1, p2, color, thickness, line_type)

        # Round joins and caps
        radius = thickness // 2
        if radius > 0:
            for p in pixels:
                cv2.circle(image, p, radius, color, -1, line_type)

    def has_content(self) -> bool:
        """Check if any ink is on the surface."""
        return bool(self.surface[:, :, 3].any())

    def overlay_on_frame(self, frame: np.ndarray, alpha: float = 0.85) -> np.ndarray:
        """
        Blend the ink surface over a BGR video frame.

        Args:
            frame: BGR video frame
            alpha: Opacity of the ink (0-1)

        Returns:
            New frame with the ink on top
        """
        canvas = self.surface
        if frame.shape[:2] != canvas.shape[:2]:
            canvas = cv2.resize(canvas, (frame.shape[1], frame.shape[0]))

        canvas_alpha = canvas[:, :, 3] / 255.0 * alpha
        canvas_bgr = canvas[:, :, :3]

        result = frame.copy()
        for c in range(3):
            result[:, :, c] = (
                result[:, :, c] * (1 - canvas_alpha) +
                canvas_bgr[:, :, c] * canvas_alpha
            ).astype(np.uint8)

        return result


class ColorPalette:
    """Predefined ink colors (BGR)."""

    INK = DEFAULT_INK_COLOR
    WHITE = (255, 255, 255)
    RED = (0, 0, 255)
    GREEN = (0, 255, 0)
    BLUE = (255, 0, 0)
    YELLOW = (0, 255, 255)
    MAGENTA = (255, 0, 255)
    ORANGE = (0, 165, 255)

    @classmethod
    def get_all(cls) -> List[Color]:
        """Get all palette colors."""
        return [
            cls.INK, cls.WHITE, cls.RED, cls.GREEN,
            cls.BLUE, cls.YELLOW, cls.MAGENTA, cls.ORANGE
        ]
