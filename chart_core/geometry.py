"""
Geometry utilities - rectangles and SVG-style path helpers.

Pure functions, no state:
- Rectangle overlap area (group membership)
- Path bounding boxes (hit-testing, selection, minimap, clipboard)
- Path translation (moving and pasting drawings)
- Freehand smoothing into quadratic segments
"""

import math
import re
from dataclasses import dataclass
from typing import Iterable, Sequence

# Numeric tokens in a path string, e.g. "M10,20 L-3.5 .25"
_NUMBER_RE = re.compile(r"[-+]?[0-9]*\.?[0-9]+")
# One command letter followed by its parameter text
_COMMAND_RE = re.compile(r"([a-zA-Z])([^a-zA-Z]*)")


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in world coordinates."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def cx(self) -> float:
        return self.x + self.width / 2

    @property
    def cy(self) -> float:
        return self.y + self.height / 2

    def contains_point(self, px: float, py: float, margin: float = 0) -> bool:
        """Check if a point is inside this rectangle (edges inclusive)."""
        return (
            self.x - margin <= px <= self.right + margin
            and self.y - margin <= py <= self.bottom + margin
        )

    def union(self, other: "Rect") -> "Rect":
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        return Rect(x, y, max(self.right, other.right) - x, max(self.bottom, other.bottom) - y)


def overlap_area(r1: Rect, r2: Rect) -> float:
    """Area of the intersection of two rectangles (0 if they only touch)."""
    left = max(r1.x, r2.x)
    right = min(r1.right, r2.right)
    top = max(r1.y, r2.y)
    bottom = min(r1.bottom, r2.bottom)
    if left < right and top < bottom:
        return (right - left) * (bottom - top)
    return 0


def bounding_rect(rects: Iterable[Rect]) -> Rect | None:
    """Union of rectangles, or None when there are none."""
    result = None
    for rect in rects:
        result = rect if result is None else result.union(rect)
    return result


def path_bounds(path: str) -> Rect:
    """
    Bounding box of a path.

    Every numeric token is read pairwise as (x, y); command letters are
    ignored. An empty path yields a zero rectangle at the origin.
    """
    numbers = [float(n) for n in _NUMBER_RE.findall(path or "")]
    xs = numbers[0::2]
    ys = numbers[1::2]
    if not xs:
        return Rect(0, 0, 0, 0)
    min_x, max_x = min(xs), max(xs)
    if ys:
        min_y, max_y = min(ys), max(ys)
    else:
        min_y = max_y = 0
    return Rect(min_x, min_y, max_x - min_x, max_y - min_y)


def _round2(value: float) -> str:
    """Round half-up to two decimals and format in plain notation without trailing zeros."""
    rounded = math.floor(value * 100 + 0.5) / 100
    return f"{rounded:.2f}".rstrip("0").rstrip(".")


def shift_path(path: str, dx: float, dy: float) -> str:
    """
    Translate every coordinate of a path by (dx, dy).

    Parameters alternate x, y within each command. Results are rounded to
    two decimals so repeated moves do not accumulate float noise. The
    output is "<cmd> <n> <n> ..." separated by single spaces.
    """
    parts: list[str] = []
    for command, params in _COMMAND_RE.findall(path or ""):
        parts.append(command)
        coords = _NUMBER_RE.findall(params)
        for index, token in enumerate(coords):
            offset = dx if index % 2 == 0 else dy
            parts.append(_round2(float(token) + offset))
    return " ".join(parts)


def _fmt_point(x: float, y: float) -> str:
    return f"{_round2(x)},{_round2(y)}"


def polyline_path(points: Sequence[tuple[float, float]]) -> str:
    """Straight segments through ``points``: 'M x,y L x,y ...'."""
    if not points:
        return ""
    head = f"M{_fmt_point(*points[0])}"
    return " ".join([head] + [f"L{_fmt_point(x, y)}" for x, y in points[1:]])


def smooth_path(points: Sequence[tuple[float, float]]) -> str:
    """
    Smooth pointer samples into quadratic Bézier segments.

    Each interior sample becomes a control point and the midpoint to the
    next sample becomes the segment end; the last two samples close the
    curve exactly on the final point. Fewer than three samples fall back
    to a polyline.
    """
    if len(points) < 3:
        return polyline_path(points)

    segments = [f"M{_fmt_point(*points[0])}"]
    i = 1
    while i < len(points) - 2:
        (x1, y1), (x2, y2) = points[i], points[i + 1]
        segments.append(f"Q{_fmt_point(x1, y1)} {_fmt_point((x1 + x2) / 2, (y1 + y2) / 2)}")
        i += 1
    segments.append(f"Q{_fmt_point(*points[i])} {_fmt_point(*points[i + 1])}")
    return " ".join(segments)
