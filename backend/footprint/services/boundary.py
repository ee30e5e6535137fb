"""
Boundary edge extraction for the selected top plane.

Every triangle of the top plane contributes its three edges.  Interior
edges are shared by two triangles and therefore appear twice; edges on
the silhouette or around a pocket belong to a single triangle and
appear once.  Counting edge occurrences in a hash map keyed by
quantised endpoints and keeping the edges seen exactly once yields the
outline as a bag of unordered 2D segments.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Tuple

from ..config import debug_enabled
from .loops import Segment
from .stl_parser import Triangle

logger = logging.getLogger(__name__)

GridKey = Tuple[int, int]

TOP_LAYER: str = "TOP"
RELATIVE_EPS: float = 1e-6


def xy_epsilon(max_dim: float) -> float:
    """Quantisation step for X/Y derived from the model's largest extent."""
    return max(1e-9, max_dim * RELATIVE_EPS)


def extract_boundary_segments(
    triangles: Sequence[Triangle],
    indices: Sequence[int],
    scale_to_in: float,
    max_dim: float,
    layer: str = TOP_LAYER,
) -> List[Segment]:
    """Return the boundary edges of a triangle subset as scaled 2D segments.

    Args:
        triangles: Full triangle list of the mesh.
        indices: Indices of the top‑plane triangles within ``triangles``.
        scale_to_in: Factor applied to every emitted coordinate.
        max_dim: Largest bounding box extent, used to size the grid.
        layer: Tag attached to each segment.

    Returns:
        Segments whose quantised edge occurs exactly once in the subset.
        Each keeps the direction in which its triangle traversed it.
    """
    eps = xy_epsilon(max_dim)

    def grid_key(x: float, y: float) -> GridKey:
        return (int(round(x / eps)), int(round(y / eps)))

    first_seen: Dict[Tuple[GridKey, GridKey], Tuple[GridKey, GridKey]] = {}
    counts: Dict[Tuple[GridKey, GridKey], int] = {}
    degenerate = 0
    for idx in indices:
        tri = triangles[idx]
        for p0, p1 in ((tri.a, tri.b), (tri.b, tri.c), (tri.c, tri.a)):
            ka = grid_key(p0[0], p0[1])
            kb = grid_key(p1[0], p1[1])
            if ka == kb:
                degenerate += 1
                continue
            key = (ka, kb) if ka < kb else (kb, ka)
            if key not in first_seen:
                first_seen[key] = (ka, kb)
            counts[key] = counts.get(key, 0) + 1

    factor = eps * scale_to_in
    segments: List[Segment] = []
    for key, (ka, kb) in first_seen.items():
        if counts[key] != 1:
            continue
        segments.append(
            Segment(
                x1=ka[0] * factor,
                y1=ka[1] * factor,
                x2=kb[0] * factor,
                y2=kb[1] * factor,
                layer=layer,
            )
        )

    if debug_enabled():
        logger.debug(
            "extract_boundary_segments: triangles=%d unique_edges=%d boundary=%d zero_length=%d eps_xy=%g",
            len(indices),
            len(first_seen),
            len(segments),
            degenerate,
            eps,
        )
    return segments
