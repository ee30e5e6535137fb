"""
Bounding boxes and unit inference for STL meshes.

STL files carry no unit metadata.  The footprint pipeline therefore
guesses the source unit from the size of the part: anything whose
largest extent exceeds 50 is assumed to be millimetres, anything else
inches.  The guess lives in :func:`guess_scale_to_inches` and is kept
separate from the rest of the pipeline so that an explicit unit chosen
by the user (see :func:`scale_for_unit`) can replace it without
touching parsing, plane selection or loop building.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Literal, Optional

import numpy as np

from .stl_parser import Triangle

logger = logging.getLogger(__name__)

UnitGuess = Literal["in", "mm", "?"]

MM_PER_INCH: float = 25.4
# Largest extent above which a model is assumed to be modelled in mm.
MM_THRESHOLD: float = 50.0


@dataclass(frozen=True)
class BoundingBox:
    """Axis‑aligned bounding box of a triangle list."""

    min_x: float
    min_y: float
    min_z: float
    max_x: float
    max_y: float
    max_z: float

    @property
    def span_x(self) -> float:
        return self.max_x - self.min_x

    @property
    def span_y(self) -> float:
        return self.max_y - self.min_y

    @property
    def span_z(self) -> float:
        return self.max_z - self.min_z

    @property
    def max_dim(self) -> float:
        return max(self.span_x, self.span_y, self.span_z)


@dataclass(frozen=True)
class ScaleEstimate:
    """Result of unit inference.

    Attributes:
        scale_to_in: Factor converting model coordinates to inches.
        unit_guess: ``"in"``, ``"mm"`` or ``"?"`` when no guess was possible.
    """

    scale_to_in: float
    unit_guess: UnitGuess


def compute_bounding_box(triangles: Iterable[Triangle]) -> Optional[BoundingBox]:
    """Compute the bounding box over every triangle vertex.

    Returns:
        The bounding box, or ``None`` when there are no vertices or any
        extent is not finite.
    """
    coords = [v for tri in triangles for v in tri.vertices]
    if not coords:
        return None
    arr = np.asarray(coords, dtype=np.float64)
    mins = arr.min(axis=0)
    maxs = arr.max(axis=0)
    if not (np.isfinite(mins).all() and np.isfinite(maxs).all()):
        return None
    return BoundingBox(
        min_x=float(mins[0]),
        min_y=float(mins[1]),
        min_z=float(mins[2]),
        max_x=float(maxs[0]),
        max_y=float(maxs[1]),
        max_z=float(maxs[2]),
    )


def guess_scale_to_inches(max_dim: float) -> ScaleEstimate:
    """Infer the model unit from its largest extent.

    Args:
        max_dim: Largest bounding box span in model units.

    Returns:
        ``mm`` with a factor of 1/25.4 when ``max_dim > 50``, ``in`` with
        a factor of 1 otherwise, and ``?`` with a factor of 1 when the
        extent is not a positive finite number.
    """
    if not math.isfinite(max_dim) or max_dim <= 0.0:
        return ScaleEstimate(scale_to_in=1.0, unit_guess="?")
    if max_dim > MM_THRESHOLD:
        return ScaleEstimate(scale_to_in=1.0 / MM_PER_INCH, unit_guess="mm")
    return ScaleEstimate(scale_to_in=1.0, unit_guess="in")


def scale_for_unit(unit: str) -> ScaleEstimate:
    """Return the scale for an explicitly chosen unit (``in`` or ``mm``).

    Raises:
        ValueError: If ``unit`` is not recognised.
    """
    norm = (unit or "").strip().lower()
    if norm == "in":
        return ScaleEstimate(scale_to_in=1.0, unit_guess="in")
    if norm == "mm":
        return ScaleEstimate(scale_to_in=1.0 / MM_PER_INCH, unit_guess="mm")
    raise ValueError(f"Unsupported unit: {unit}")


def estimate_scale(triangles: Iterable[Triangle], unit_override: Optional[str] = None) -> ScaleEstimate:
    """Triangle list → unit and scale‑to‑inches factor.

    When ``unit_override`` is ``"in"`` or ``"mm"`` the heuristic is
    bypassed; ``None`` or ``"auto"`` uses it.
    """
    if unit_override and unit_override.strip().lower() != "auto":
        return scale_for_unit(unit_override)
    bbox = compute_bounding_box(triangles)
    max_dim = bbox.max_dim if bbox is not None else float("nan")
    estimate = guess_scale_to_inches(max_dim)
    logger.debug("estimate_scale: max_dim=%s unit_guess=%s", max_dim, estimate.unit_guess)
    return estimate
