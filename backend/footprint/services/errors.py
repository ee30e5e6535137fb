"""
Failure types raised by the STL footprint pipeline.

Individual stages never raise on bad geometry; they hand back empty
results or a typed failure record.  The pipeline in ``faces.py``
inspects those results and raises one of the exceptions below so that
request handlers can map them onto user‑facing upload errors.  Each
exception carries a short machine‑readable ``reason`` and a dictionary
of diagnostic values (thresholds, counts) describing what was seen.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class StlProcessingError(ValueError):
    """Base class for fatal pipeline failures.

    Attributes:
        reason: Short identifier such as ``"no_triangles"``.
        diagnostics: Values useful when investigating the failure.
    """

    kind = "processing_failure"

    def __init__(self, reason: str, message: str, diagnostics: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.reason = reason
        self.diagnostics: Dict[str, Any] = dict(diagnostics or {})

    def to_detail(self) -> Dict[str, Any]:
        """Return a JSON‑friendly description of the failure."""
        return {
            "error": self.kind,
            "reason": self.reason,
            "message": str(self),
            "diagnostics": self.diagnostics,
        }


class ParseFailure(StlProcessingError):
    """The buffer could not be turned into a usable triangle list."""

    kind = "parse_failure"


class GeometryFailure(StlProcessingError):
    """Triangles were parsed but no drawable footprint could be found."""

    kind = "geometry_failure"
