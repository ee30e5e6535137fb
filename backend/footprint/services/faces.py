"""
STL → planar footprint pipeline.

This module chains the extraction stages together:

1. :func:`~.stl_parser.parse_stl` turns the upload into triangles.
2. :func:`~.scale.estimate_scale` picks the unit (or honours an override).
3. :func:`~.top_plane.select_top_plane` isolates the top face.
4. :func:`~.boundary.extract_boundary_segments` finds its outline edges.
5. :func:`~.loops.trace_loops` stitches the edges into closed loops.

The result is a :class:`~footprint.api.models.FacesOutput` in inches.
Fatal outcomes are raised as :class:`ParseFailure` or
:class:`GeometryFailure`; non‑fatal losses (degenerate segments, open
loops) are counted in the output metadata and logged.  The pipeline is
a pure function of its input bytes and keeps no state between calls.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..api.models import FacesLoop, FacesOutput, LoopPoint
from .boundary import extract_boundary_segments, xy_epsilon
from .errors import GeometryFailure, ParseFailure
from .loops import find_outer_loop_index, trace_loops
from .scale import compute_bounding_box, estimate_scale
from .stl_parser import MIN_STL_BYTES, parse_stl
from .top_plane import TopPlaneFailure, select_top_plane

logger = logging.getLogger(__name__)


def stl_to_faces(
    buf: bytes,
    unit_override: Optional[str] = None,
    max_triangles: Optional[int] = None,
) -> FacesOutput:
    """Extract the top‑face loops of an STL mesh.

    Args:
        buf: Raw STL bytes (binary or ASCII).
        unit_override: ``"in"`` or ``"mm"`` to skip unit inference;
            ``None`` or ``"auto"`` uses the size heuristic.
        max_triangles: Optional cap on the parsed triangle count.

    Returns:
        The footprint, with diagnostics in ``metadata``.

    Raises:
        ParseFailure: The buffer is too short, holds no triangles or
            exceeds ``max_triangles``.
        GeometryFailure: No top plane or no boundary segments were found.
        ValueError: ``unit_override`` is not a recognised unit.
    """
    size = len(buf) if buf else 0
    if size < MIN_STL_BYTES:
        raise ParseFailure(
            "buffer_too_short",
            f"STL buffer is too short ({size} bytes)",
            {"bytes": size, "minBytes": MIN_STL_BYTES},
        )

    triangles = parse_stl(buf)
    if not triangles:
        raise ParseFailure("no_triangles", "STL parse yielded 0 triangles", {"bytes": size})
    if max_triangles is not None and len(triangles) > max_triangles:
        raise ParseFailure(
            "too_many_triangles",
            f"STL has {len(triangles)} triangles; the limit is {max_triangles}",
            {"triangleCount": len(triangles), "maxTriangles": max_triangles},
        )

    override = (unit_override or "").strip().lower()
    if override in ("", "auto"):
        override = None

    bbox = compute_bounding_box(triangles)
    if bbox is None:
        raise GeometryFailure(
            "bbox_failed",
            "Could not compute a finite bounding box for the STL",
            {"triangleCount": len(triangles)},
        )
    scale = estimate_scale(triangles, override)

    selection = select_top_plane(triangles, bbox)
    if isinstance(selection, TopPlaneFailure):
        logger.info(
            "stl_to_faces: no top plane (max_z=%s eps_z=%s)", selection.max_z, selection.eps_z
        )
        raise GeometryFailure(
            selection.reason,
            "No near-horizontal triangles found at the top of the model",
            selection.to_diagnostics(),
        )

    segments = extract_boundary_segments(triangles, selection.indices, scale.scale_to_in, bbox.max_dim)
    if not segments:
        raise GeometryFailure(
            "no_boundary_segments",
            "No drawable geometry found in STL",
            {"triCountTop": len(selection.indices), "topPlaneZ": selection.plane_z},
        )

    trace = trace_loops(segments)
    loops = trace.loops
    metadata: Dict[str, Any] = {
        "triangleCount": len(triangles),
        "unitGuess": scale.unit_guess,
        "unitOverride": override,
        "scaleToIn": scale.scale_to_in,
        "maxDim": bbox.max_dim,
        "maxDimIn": bbox.max_dim * scale.scale_to_in,
        "epsXY": xy_epsilon(bbox.max_dim),
        "epsZ": selection.eps_z,
        "topPlaneZ": selection.plane_z,
        "topPlaneArea": selection.area,
        "triCountTop": len(selection.indices),
        "boundarySegmentCount": len(segments),
        "droppedSegments": trace.dropped_segments,
        "openLoops": trace.open_loops,
        "discardedLoops": trace.discarded_loops,
    }
    if not loops:
        logger.warning(
            "stl_to_faces: %d boundary segments produced no closed loops", len(segments)
        )

    return FacesOutput(
        units="in",
        outerLoopIndex=find_outer_loop_index(loops),
        loopsCount=len(loops),
        loops=[
            FacesLoop(
                idx=loop.idx,
                closed=loop.closed,
                area=loop.area,
                perimeter=loop.perimeter,
                edges=loop.edges,
                points=[LoopPoint(x=x, y=y) for x, y in loop.points],
            )
            for loop in loops
        ],
        metadata=metadata,
    )
