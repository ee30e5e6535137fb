"""
Pydantic data models for the footprint API.

``FacesOutput`` is the single artifact handed to the layout editor: the
top‑face loops of an uploaded STL expressed in inches.  Keeping the
schema here lets the extraction service and the HTTP routes share one
definition of the contract.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field


class LoopPoint(BaseModel):
    """Single 2D point of a loop, in inches."""

    x: float
    y: float


class FacesLoop(BaseModel):
    """One closed polygon of the footprint."""

    idx: int = Field(..., description="Position of the loop in the loops list")
    closed: bool = Field(..., description="Whether the loop closes on itself (always true for returned loops)")
    area: float = Field(
        ..., description="Signed shoelace area in square inches; positive means counter‑clockwise"
    )
    perimeter: float = Field(..., description="Loop length in inches including the closing edge")
    edges: int = Field(..., description="Number of edges, equal to the number of points")
    points: List[LoopPoint] = Field(..., description="Ordered loop vertices without a repeated closing point")


class FacesOutput(BaseModel):
    """Planar footprint extracted from an STL's top face."""

    units: Literal["in"] = Field(default="in", description="Unit of every coordinate, always inches")
    outerLoopIndex: int = Field(..., description="Index of the loop with the greatest absolute area")
    loopsCount: int = Field(..., description="Number of loops returned")
    loops: List[FacesLoop] = Field(default_factory=list, description="All closed loops, nested ones included")
    metadata: Dict[str, Any] | None = Field(
        default=None,
        description="Extraction diagnostics such as inferred unit, tolerances and discard counts",
    )
