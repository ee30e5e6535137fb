"""
Reconstruction of closed polygon loops from unordered 2D segments.

The boundary extractor hands over a bag of segments in no particular
order.  This module snaps their endpoints to a scale‑aware grid, walks
them end to end into polylines and keeps the polylines that close on
themselves.  Each loop records its signed area (positive for
counter‑clockwise winding) and perimeter.

Traversal is greedy: starting from an unused segment, the loop is
extended from its head with the lowest‑index unused segment that shares
the head point, until no extension exists.  That is sufficient for the
clean silhouettes produced by a manifold top face, where every boundary
vertex has exactly two incident edges.  Endpoint lookups go through a
spatial hash so the walk stays near linear in the number of segments.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import debug_enabled

logger = logging.getLogger(__name__)

Point2 = Tuple[float, float]
Cell = Tuple[int, int]

DEFAULT_TOLERANCE: float = 1e-6


@dataclass
class Segment:
    """A 2D line segment, typically one boundary edge of the top face.

    Attributes:
        x1, y1: Start point.
        x2, y2: End point.
        layer: Optional tag describing where the segment came from.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    layer: Optional[str] = None


@dataclass
class Loop:
    """A polygon reconstructed from segments.

    ``points`` never repeats the first point at the end; closure is
    implicit when ``closed`` is true.
    """

    idx: int
    points: List[Point2]
    closed: bool
    area: float
    perimeter: float

    @property
    def edges(self) -> int:
        return len(self.points)


@dataclass
class LoopTrace:
    """Loops together with counts of what was thrown away on the way.

    Attributes:
        loops: Closed, non‑degenerate loops.
        dropped_segments: Segments removed as non‑finite or too short.
        open_loops: Walks that dead‑ended before returning to their start.
        discarded_loops: Closed walks rejected for having fewer than three
            points or (near) zero area.
        snap: Endpoint quantisation step.
        eq_tol: Distance under which two points are considered equal.
    """

    loops: List[Loop] = field(default_factory=list)
    dropped_segments: int = 0
    open_loops: int = 0
    discarded_loops: int = 0
    snap: float = 0.0
    eq_tol: float = 0.0


def polygon_area_2d(points: Sequence[Point2]) -> float:
    """Signed area of a closed polygon via the shoelace formula.

    Positive for counter‑clockwise order, negative for clockwise.  Fewer
    than three points give zero.
    """
    n = len(points)
    if n < 3:
        return 0.0
    area = 0.0
    for i in range(n):
        x0, y0 = points[i]
        x1, y1 = points[(i + 1) % n]
        area += x0 * y1 - x1 * y0
    return 0.5 * area


def loop_perimeter(points: Sequence[Point2]) -> float:
    """Length of the closed polyline, wrap‑around edge included."""
    n = len(points)
    total = 0.0
    for i in range(n):
        x0, y0 = points[i]
        x1, y1 = points[(i + 1) % n]
        total += math.hypot(x1 - x0, y1 - y0)
    return total


def _segment_is_finite(seg: Segment) -> bool:
    return all(math.isfinite(v) for v in (seg.x1, seg.y1, seg.x2, seg.y2))


def _snap_step(segments: Iterable[Segment]) -> float:
    """Grid step from the diagonal of the segment bounding box."""
    xs: List[float] = []
    ys: List[float] = []
    for seg in segments:
        xs.extend((seg.x1, seg.x2))
        ys.extend((seg.y1, seg.y2))
    if not xs:
        return 1e-6
    diag = math.hypot(max(xs) - min(xs), max(ys) - min(ys))
    if not math.isfinite(diag) or diag <= 0.0:
        return 1e-6
    return max(1e-6, diag * 1e-8)


class _EndpointIndex:
    """Spatial hash of segment endpoints with cells of size ``tol``.

    Two points within ``tol`` of each other on both axes always fall in
    the same or neighbouring cells, so a lookup only visits 3×3 cells.
    """

    def __init__(self, tol: float) -> None:
        self.tol = tol
        self.cells: Dict[Cell, List[Tuple[int, int]]] = {}

    def _cell(self, p: Point2) -> Cell:
        return (math.floor(p[0] / self.tol), math.floor(p[1] / self.tol))

    def add(self, p: Point2, seg_idx: int, end: int) -> None:
        self.cells.setdefault(self._cell(p), []).append((seg_idx, end))

    def candidates(self, p: Point2) -> Iterable[Tuple[int, int]]:
        cx, cy = self._cell(p)
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                yield from self.cells.get((cx + dx, cy + dy), ())


def trace_loops(segments: Sequence[Segment], tol: float = DEFAULT_TOLERANCE) -> LoopTrace:
    """Walk unordered segments into closed loops.

    Args:
        segments: Segments in any order and direction.
        tol: Minimum endpoint matching tolerance; the effective value is
            ``max(tol, 2 * snap)``.

    Returns:
        A :class:`LoopTrace`.  Its ``loops`` are closed, have at least
        three points and an absolute area above ``max(eq_tol, 1e-9)``;
        their ``idx`` is their position in the list.
    """
    finite = [seg for seg in segments if _segment_is_finite(seg)]
    snap = _snap_step(finite)
    eq_tol = max(tol, snap * 2.0)
    trace = LoopTrace(snap=snap, eq_tol=eq_tol, dropped_segments=len(segments) - len(finite))

    def q(v: float) -> float:
        return round(v / snap) * snap

    min_len = snap * 0.5
    clean: List[Tuple[Point2, Point2]] = []
    for seg in finite:
        p1 = (q(seg.x1), q(seg.y1))
        p2 = (q(seg.x2), q(seg.y2))
        if math.hypot(p2[0] - p1[0], p2[1] - p1[1]) < min_len:
            trace.dropped_segments += 1
            continue
        clean.append((p1, p2))

    index = _EndpointIndex(eq_tol)
    for i, (p1, p2) in enumerate(clean):
        index.add(p1, i, 0)
        index.add(p2, i, 1)

    def same(a: Point2, b: Point2) -> bool:
        return abs(a[0] - b[0]) <= eq_tol and abs(a[1] - b[1]) <= eq_tol

    used = [False] * len(clean)

    def next_segment(head: Point2) -> Optional[Tuple[int, int]]:
        best: Optional[Tuple[int, int]] = None
        for j, end in index.candidates(head):
            if used[j] or (best is not None and (j, end) >= best):
                continue
            if same(head, clean[j][end]):
                best = (j, end)
        return best

    min_area = max(eq_tol, 1e-9)
    for i, (start, end_pt) in enumerate(clean):
        if used[i]:
            continue
        used[i] = True
        pts: List[Point2] = [start, end_pt]
        while True:
            nxt = next_segment(pts[-1])
            if nxt is None:
                break
            j, end = nxt
            used[j] = True
            pts.append(clean[j][1 - end])

        closed = same(pts[0], pts[-1])
        if closed:
            pts.pop()
        else:
            trace.open_loops += 1
            continue
        if len(pts) < 3:
            trace.discarded_loops += 1
            continue
        area = polygon_area_2d(pts)
        if not math.isfinite(area) or abs(area) <= min_area:
            trace.discarded_loops += 1
            continue
        trace.loops.append(
            Loop(
                idx=len(trace.loops),
                points=pts,
                closed=True,
                area=area,
                perimeter=loop_perimeter(pts),
            )
        )

    if trace.open_loops or trace.dropped_segments:
        logger.warning(
            "trace_loops: %d open loops and %d degenerate segments discarded (kept %d loops)",
            trace.open_loops,
            trace.dropped_segments,
            len(trace.loops),
        )
    if debug_enabled():
        logger.debug(
            "trace_loops: segments=%d clean=%d loops=%d discarded=%d snap=%g eq_tol=%g",
            len(segments),
            len(clean),
            len(trace.loops),
            trace.discarded_loops,
            snap,
            eq_tol,
        )
    return trace


def build_loops_from_segments(segments: Sequence[Segment], tol: float = DEFAULT_TOLERANCE) -> List[Loop]:
    """Return only the closed loops reconstructed from ``segments``."""
    return trace_loops(segments, tol).loops


def find_outer_loop_index(loops: Sequence[Loop]) -> int:
    """Index of the loop with the largest absolute area (0 if none)."""
    outer = 0
    best = 0.0
    for i, loop in enumerate(loops):
        if abs(loop.area) > best:
            best = abs(loop.area)
            outer = i
    return outer
