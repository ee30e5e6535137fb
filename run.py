"""
Entry point for the STL footprint service.

Running this script with ``python run.py`` starts the FastAPI server
that exposes the footprint extraction API.  The application defined in
``backend/footprint/main.py`` is imported after adjusting the Python
path to include the ``backend`` directory.
"""

from __future__ import annotations

import sys
from pathlib import Path

import logging
import uvicorn

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def main() -> None:
    """Run the Uvicorn server hosting the footprint API."""
    # Make ``footprint`` importable when running from a source checkout.
    backend_dir = Path(__file__).resolve().parent / "backend"
    if str(backend_dir) not in sys.path:
        sys.path.append(str(backend_dir))

    from footprint.config import debug_enabled, server_host, server_port
    from footprint.main import app

    if debug_enabled():
        logging.getLogger().setLevel(logging.DEBUG)

    uvicorn.run(app, host=server_host(), port=server_port())


if __name__ == "__main__":
    main()
