"""
Selection of the dominant top surface of a mesh.

A foam part's footprint is read off its top face.  This module picks
the triangles that make up that face: they must point (nearly) straight
up, sit at the very top of the model and, among the candidate Z levels
that survive, belong to the level with the largest total area.

The result is either a :class:`TopPlaneSelection` listing triangle
indices or a :class:`TopPlaneFailure` carrying the thresholds that were
applied so the caller can report why nothing qualified.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple, Union

from ..config import debug_enabled
from .scale import BoundingBox
from .stl_parser import Triangle, Vec3

logger = logging.getLogger(__name__)

# Triangles tilted more than this from horizontal are not top surface.
MAX_TILT_DEGREES: float = 8.0
COS_MAX_TILT: float = math.cos(math.radians(MAX_TILT_DEGREES))
# Width of the accepted Z band below the model maximum, in units of eps_z.
HEIGHT_BAND_FACTOR: float = 50.0
# Relative tolerance used for Z binning (scaled by the largest extent).
RELATIVE_EPS: float = 1e-6

_ZERO: Vec3 = (0.0, 0.0, 0.0)


def sub(a: Vec3, b: Vec3) -> Vec3:
    """Subtract two 3D vectors (a - b)."""
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def cross(a: Vec3, b: Vec3) -> Vec3:
    """Cross product ``a × b``."""
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def length(a: Vec3) -> float:
    return math.sqrt(a[0] * a[0] + a[1] * a[1] + a[2] * a[2])


def normalize(a: Vec3) -> Vec3:
    """Return ``a`` scaled to unit length, or the zero vector if degenerate."""
    d = length(a)
    if not math.isfinite(d) or d <= 1e-18:
        return _ZERO
    return (a[0] / d, a[1] / d, a[2] / d)


def triangle_area(a: Vec3, b: Vec3, c: Vec3) -> float:
    """Area of triangle ``abc`` (half the cross product magnitude)."""
    return length(cross(sub(b, a), sub(c, a))) / 2.0


def face_normal(tri: Triangle) -> Vec3:
    """Unit normal of a triangle.

    The stored normal is used when it is present, finite and non‑zero;
    otherwise the normal is derived from the vertex winding.  Degenerate
    triangles yield the zero vector.
    """
    if tri.normal is not None and all(math.isfinite(v) for v in tri.normal):
        n = normalize(tri.normal)
        if n != _ZERO:
            return n
    return normalize(cross(sub(tri.b, tri.a), sub(tri.c, tri.a)))


def z_epsilon(max_dim: float) -> float:
    """Scale‑aware Z tolerance derived from the model's largest extent."""
    return max(1e-9, max_dim * RELATIVE_EPS)


@dataclass
class TopPlaneSelection:
    """Triangles forming the top plane.

    Attributes:
        indices: Indices into the input triangle list.
        plane_z: Z level of the selected bin.
        area: Total area of the selected triangles.
        eps_z: Binning tolerance that was used.
        candidate_bins: Number of Z bins that had at least one candidate.
    """

    indices: List[int]
    plane_z: float
    area: float
    eps_z: float
    candidate_bins: int = 1


@dataclass
class TopPlaneFailure:
    """No triangle qualified as top surface."""

    reason: str
    max_z: float
    eps_z: float
    cos_max_tilt: float
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_diagnostics(self) -> Dict[str, Any]:
        diag = {
            "maxZ": self.max_z,
            "epsZ": self.eps_z,
            "cosMaxTilt": self.cos_max_tilt,
        }
        diag.update(self.extra)
        return diag


def select_top_plane(
    triangles: Sequence[Triangle],
    bbox: BoundingBox,
) -> Union[TopPlaneSelection, TopPlaneFailure]:
    """Pick the triangles that make up the model's top face.

    A triangle is a candidate when its unit normal is within
    ``MAX_TILT_DEGREES`` of +Z and its average vertex height lies within
    ``HEIGHT_BAND_FACTOR * eps_z`` of the model maximum.  Candidates are
    grouped by Z rounded to ``eps_z`` and the group with the largest
    accumulated area wins.

    Args:
        triangles: Parsed mesh triangles.
        bbox: Bounding box of ``triangles``.

    Returns:
        A :class:`TopPlaneSelection`, or a :class:`TopPlaneFailure` with
        reason ``"no_top_plane_triangles"`` when nothing qualified.
    """
    eps_z = z_epsilon(bbox.max_dim)
    z_max = bbox.max_z
    z_floor = z_max - eps_z * HEIGHT_BAND_FACTOR

    bins: Dict[int, Tuple[float, List[int]]] = {}
    tilted = 0
    low = 0
    for i, tri in enumerate(triangles):
        n = face_normal(tri)
        if not math.isfinite(n[2]) or n[2] < COS_MAX_TILT:
            tilted += 1
            continue
        z_avg = (tri.a[2] + tri.b[2] + tri.c[2]) / 3.0
        if z_avg < z_floor:
            low += 1
            continue
        area = triangle_area(tri.a, tri.b, tri.c)
        if not math.isfinite(area) or area <= 0.0:
            continue
        key = int(round(z_avg / eps_z))
        total, idxs = bins.get(key, (0.0, []))
        idxs.append(i)
        bins[key] = (total + area, idxs)

    if debug_enabled():
        logger.debug(
            "select_top_plane: triangles=%d tilted=%d below_band=%d bins=%d eps_z=%g",
            len(triangles),
            tilted,
            low,
            len(bins),
            eps_z,
        )

    if not bins:
        return TopPlaneFailure(
            reason="no_top_plane_triangles",
            max_z=z_max,
            eps_z=eps_z,
            cos_max_tilt=COS_MAX_TILT,
            extra={"tiltedCount": tilted, "belowBandCount": low},
        )

    best_key = 0
    best_area = -math.inf
    best_idxs: List[int] = []
    for key, (total, idxs) in bins.items():
        if total > best_area:
            best_key, best_area, best_idxs = key, total, idxs
    return TopPlaneSelection(
        indices=best_idxs,
        plane_z=best_key * eps_z,
        area=best_area,
        eps_z=eps_z,
        candidate_bins=len(bins),
    )
