"""
Main application module for the footprint backend.

This file sets up the FastAPI application, configures CORS so the
layout editor can call the API from another origin and exposes a
simple health check endpoint.  The STL extraction router is included
under the ``/api`` namespace.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes_faces import router as faces_router


def create_app() -> FastAPI:
    """Factory to create and configure the FastAPI application.

    Returns:
        FastAPI: The configured FastAPI application instance.
    """
    app = FastAPI(title="STL footprint service")

    # Allow all origins by default.  In production you should restrict
    # this to the domains hosting the layout editor.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check endpoint for monitoring and deployment probes.
    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(faces_router, prefix="/api", tags=["faces"])

    return app


# Uvicorn imports this when running `uvicorn footprint.main:app` from
# within the backend directory.
app = create_app()
