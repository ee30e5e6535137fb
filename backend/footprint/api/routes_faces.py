"""
Routes for STL footprint extraction.

The layout editor posts an STL file here and receives the part's top
face as a list of closed loops in inches.  Nothing is stored: the
upload is read into memory, run through the extraction pipeline in a
worker thread and discarded.  Pipeline failures are translated into
``422`` responses whose detail names the failure kind, its reason and
the diagnostic values gathered along the way.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from starlette.concurrency import run_in_threadpool

from ..config import max_triangles, max_upload_bytes
from ..services.errors import StlProcessingError
from ..services.faces import stl_to_faces
from .models import FacesOutput

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/stl/faces",
    response_model=FacesOutput,
    response_model_exclude_none=True,
)
async def extract_faces(
    file: UploadFile = File(...),
    units: str = Query(
        "auto",
        description="Source unit of the STL: 'auto' to infer from size, or 'in'/'mm' to force it.",
        pattern="^(auto|in|mm)$",
    ),
    includeDiagnostics: bool = Query(
        False,
        description="When true, include extraction diagnostics in the response metadata.",
    ),
) -> FacesOutput:
    """Convert an uploaded STL into its top‑face footprint loops.

    Returns:
        FacesOutput: The loops in inches.  ``metadata`` is present only
        when ``includeDiagnostics`` is set.

    Raises:
        HTTPException: 400 for an empty upload, 413 when the upload
            exceeds the configured size, 422 when the STL cannot be
            parsed or has no usable top face.
    """
    limit = max_upload_bytes()
    data = await file.read(limit + 1)
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(data) > limit:
        raise HTTPException(status_code=413, detail=f"Uploaded file exceeds {limit} bytes")

    logger.info("Extracting faces from %s (%d bytes, units=%s)", file.filename, len(data), units)
    try:
        faces = await run_in_threadpool(
            stl_to_faces,
            data,
            unit_override=units,
            max_triangles=max_triangles(),
        )
    except StlProcessingError as exc:
        logger.info("Faces extraction rejected %s: %s (%s)", file.filename, exc.reason, exc)
        raise HTTPException(status_code=422, detail=exc.to_detail())
    except Exception as exc:
        logger.exception("Faces extraction failed for %s: %s", file.filename, exc)
        raise HTTPException(status_code=500, detail=f"Failed to extract faces: {exc}")

    if not includeDiagnostics:
        faces.metadata = None
    return faces
