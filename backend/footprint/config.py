"""
Runtime settings for the footprint backend.

Settings are read from environment variables each time they are
requested so that tests (and operators) can adjust them without
re‑importing modules.  Invalid values fall back to the defaults.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)

# Upload and mesh caps applied by the HTTP layer.  The extraction
# pipeline itself is unbounded, so untrusted uploads are limited here.
DEFAULT_MAX_UPLOAD_BYTES: int = 64 * 1024 * 1024
DEFAULT_MAX_TRIANGLES: int = 2_000_000

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %d", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r; using %d", name, raw, default)
        return default
    return value


def debug_enabled() -> bool:
    """Return True when verbose per‑stage logging has been requested.

    Controlled by the ``STL_DEBUG`` environment variable; any non‑empty
    value other than ``0``/``false``/``no`` enables it.
    """
    raw = (os.getenv("STL_DEBUG") or "").strip().lower()
    return raw not in {"", "0", "false", "no"}


def max_upload_bytes() -> int:
    """Largest accepted upload, from ``FOOTPRINT_MAX_UPLOAD_BYTES``."""
    return _int_from_env("FOOTPRINT_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)


def max_triangles() -> int:
    """Largest accepted triangle count, from ``FOOTPRINT_MAX_TRIANGLES``."""
    return _int_from_env("FOOTPRINT_MAX_TRIANGLES", DEFAULT_MAX_TRIANGLES)


def server_host() -> str:
    return os.getenv("FOOTPRINT_HOST") or DEFAULT_HOST


def server_port() -> int:
    return _int_from_env("FOOTPRINT_PORT", DEFAULT_PORT)
