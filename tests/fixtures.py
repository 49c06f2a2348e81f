"""Synthetic 21-point hands for tests."""

from typing import List, Optional, Tuple

Point = Tuple[float, float]

CENTER = (0.5, 0.6)

FINGER_X = {'index': 0.44, 'middle': 0.50, 'ring': 0.56, 'pinky': 0.62}


def _finger(x: float, extended: bool) -> List[Point]:
    """MCP, PIP, DIP, TIP for one non-thumb finger."""
    mcp, pip = (x, 0.65), (x, 0.55)
    if extended:
        return [mcp, pip, (x, 0.49), (x, 0.43)]
    # Folded back: tip points toward the knuckle
    return [mcp, pip, (x + 0.03, 0.58), (x + 0.01, 0.62)]


def _thumb(extended: bool) -> List[Point]:
    """CMC, MCP, IP, TIP."""
    if extended:
        # Tip hooks back beside the MCP, far from the IP joint
        return [(0.42, 0.80), (0.38, 0.74), (0.34, 0.69), (0.40, 0.66)]
    return [(0.42, 0.80), (0.38, 0.74), (0.34, 0.69), (0.30, 0.64)]


def make_hand(
    thumb: bool = False,
    index: bool = False,
    middle: bool = False,
    ring: bool = False,
    pinky: bool = False,
    offset: Point = (0.0, 0.0),
    scale: float = 1.0,
    tip: Optional[Point] = None
) -> List[Point]:
    """
    Build one frame of landmarks with the given fingers extended.

    Args:
        offset: Translation applied to every point
        scale: Uniform scale about the middle of the hand
        tip: Place the index fingertip here (overrides offset)
    """
    points = [(0.5, 0.85)]
    points += _thumb(thumb)
    points += _finger(FINGER_X['index'], index)
    points += _finger(FINGER_X['middle'], middle)
    points += _finger(FINGER_X['ring'], ring)
    points += _finger(FINGER_X['pinky'], pinky)

    cx, cy = CENTER
    points = [(cx + scale * (x - cx), cy + scale * (y - cy)) for x, y in points]

    if tip is not None:
        offset = (tip[0] - points[8][0], tip[1] - points[8][1])

    return [(x + offset[0], y + offset[1]) for x, y in points]


def draw_hand(x: float, y: float = 0.5) -> List[Point]:
    """A pointing hand, shrunk so the fingertip can reach the frame edges."""
    return make_hand(index=True, scale=0.5, tip=(x, y))
