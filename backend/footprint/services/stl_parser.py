"""
STL parsing for uploaded part meshes.

Both flavours of the STL format are supported:

- **Binary** – an 80‑byte header, a little‑endian ``uint32`` triangle
  count and one 50‑byte record per triangle (normal, three vertices and
  two attribute bytes).  Records are decoded in bulk with NumPy.
- **ASCII** – a line oriented ``solid``/``facet``/``vertex`` listing
  which is walked with a small state machine.

The parser is deliberately forgiving.  Malformed input never raises;
it simply yields fewer (possibly zero) triangles and the caller decides
whether that is fatal.  Truncated binary files stop at the last record
that fits completely in the buffer.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..config import debug_enabled

logger = logging.getLogger(__name__)

Vec3 = Tuple[float, float, float]

# Buffers shorter than this cannot hold even a minimal ASCII facet.
MIN_STL_BYTES: int = 20

BINARY_HEADER_BYTES: int = 80
BINARY_PREAMBLE_BYTES: int = 84
BINARY_RECORD_BYTES: int = 50

# Packed little‑endian layout of one binary facet record.
_BINARY_RECORD = np.dtype(
    [
        ("normal", "<f4", (3,)),
        ("vertices", "<f4", (3, 3)),
        ("attr", "<u2"),
    ]
)

_SOLID_TOKEN = re.compile(rb"^\s*solid(?:\s|$)", re.IGNORECASE)

# Some text editors prefix ASCII exports with a UTF-8 byte order mark.
_UTF8_BOM = b"\xef\xbb\xbf"


@dataclass
class Triangle:
    """A single mesh facet.

    Attributes:
        a: First vertex.
        b: Second vertex.
        c: Third vertex.
        normal: Face normal as stored in the file, or ``None`` when the
            file did not provide a usable one.
    """

    a: Vec3
    b: Vec3
    c: Vec3
    normal: Optional[Vec3] = None

    @property
    def vertices(self) -> Tuple[Vec3, Vec3, Vec3]:
        return (self.a, self.b, self.c)


def is_probably_binary_stl(buf: bytes) -> bool:
    """Guess whether ``buf`` holds a binary STL.

    A buffer is treated as binary when it is long enough to contain the
    binary preamble and its header does not start with the ``solid``
    keyword used by ASCII files.  A leading UTF-8 byte order mark is
    ignored.
    """
    if len(buf) < BINARY_PREAMBLE_BYTES:
        return False
    header = bytes(buf[:BINARY_HEADER_BYTES])
    if header.startswith(_UTF8_BOM):
        header = header[len(_UTF8_BOM):]
    return _SOLID_TOKEN.match(header) is None


def _declared_triangle_count(buf: bytes) -> int:
    return int(np.frombuffer(buf, dtype="<u4", count=1, offset=BINARY_HEADER_BYTES)[0])


def _has_exact_binary_size(buf: bytes) -> bool:
    if len(buf) < BINARY_PREAMBLE_BYTES:
        return False
    declared = _declared_triangle_count(buf)
    return len(buf) == BINARY_PREAMBLE_BYTES + declared * BINARY_RECORD_BYTES


def parse_binary_stl(buf: bytes) -> List[Triangle]:
    """Decode a binary STL buffer.

    The declared triangle count is honoured only as far as the buffer
    allows; a trailing partial record is silently ignored.  Normals of
    zero length or with non‑finite components are dropped so that
    downstream code recomputes them from the vertices.

    Args:
        buf: Raw file contents.

    Returns:
        The list of decoded triangles (possibly empty).
    """
    if len(buf) < BINARY_PREAMBLE_BYTES:
        return []
    declared = _declared_triangle_count(buf)
    available = (len(buf) - BINARY_PREAMBLE_BYTES) // BINARY_RECORD_BYTES
    count = min(declared, available)
    if count < declared:
        logger.warning(
            "Binary STL declares %d triangles but only %d complete records are present",
            declared,
            available,
        )
    if count <= 0:
        return []
    records = np.frombuffer(buf, dtype=_BINARY_RECORD, count=count, offset=BINARY_PREAMBLE_BYTES)
    normals = records["normal"].astype(np.float64)
    vertices = records["vertices"].astype(np.float64)
    usable = np.isfinite(normals).all(axis=1) & (np.abs(normals).sum(axis=1) > 0.0)

    triangles: List[Triangle] = []
    for verts, normal, ok in zip(vertices.tolist(), normals.tolist(), usable.tolist()):
        triangles.append(
            Triangle(
                a=tuple(verts[0]),
                b=tuple(verts[1]),
                c=tuple(verts[2]),
                normal=tuple(normal) if ok else None,
            )
        )
    return triangles


def _finite_triple(tokens: Sequence[str]) -> Optional[Vec3]:
    """Parse three floats, returning ``None`` unless all are finite."""
    if len(tokens) < 3:
        return None
    try:
        values = (float(tokens[0]), float(tokens[1]), float(tokens[2]))
    except ValueError:
        return None
    if not all(math.isfinite(v) for v in values):
        return None
    return values


def parse_ascii_stl(text: str) -> List[Triangle]:
    """Parse the text of an ASCII STL file.

    Recognised lines are ``facet normal nx ny nz``, ``vertex x y z`` and
    ``endfacet``; everything else (``solid``, ``outer loop``, comments,
    garbage) is skipped.  A facet is emitted on ``endfacet`` only when
    exactly three valid vertices were collected.  A complete facet left
    pending at the end of the text is emitted as well, which recovers
    files that lost their trailing ``endfacet``.
    """
    triangles: List[Triangle] = []
    if not text:
        return triangles

    pending_normal: Optional[Vec3] = None
    pending: List[Vec3] = []
    skipped = 0

    def flush() -> None:
        nonlocal pending_normal, pending, skipped
        if len(pending) == 3:
            triangles.append(Triangle(a=pending[0], b=pending[1], c=pending[2], normal=pending_normal))
        elif pending:
            skipped += 1
        pending = []
        pending_normal = None

    for raw in text.splitlines():
        tokens = raw.strip().lower().split()
        if not tokens:
            continue
        head = tokens[0]
        if head == "facet" and len(tokens) > 1 and tokens[1] == "normal":
            normal = _finite_triple(tokens[2:5])
            if normal is not None:
                pending_normal = normal
        elif head == "vertex":
            vertex = _finite_triple(tokens[1:4])
            if vertex is not None:
                pending.append(vertex)
        elif head == "endfacet":
            flush()

    if len(pending) == 3:
        flush()

    if skipped and debug_enabled():
        logger.debug("parse_ascii_stl: skipped %d incomplete facets", skipped)
    return triangles


def parse_stl(buf: bytes) -> List[Triangle]:
    """Parse an STL buffer of either flavour.

    Buffers too short to be an STL produce an empty list.  Files whose
    binary header happens to begin with ``solid`` are detected by their
    exact binary size when the ASCII pass finds nothing.

    Args:
        buf: Raw upload contents.

    Returns:
        A list of :class:`Triangle` objects, empty when nothing usable
        was found.
    """
    if not buf or len(buf) < MIN_STL_BYTES:
        return []
    if is_probably_binary_stl(buf):
        triangles = parse_binary_stl(buf)
        fmt = "binary"
    else:
        triangles = parse_ascii_stl(bytes(buf).decode("utf-8-sig", errors="replace"))
        fmt = "ascii"
        if not triangles and _has_exact_binary_size(buf):
            triangles = parse_binary_stl(buf)
            fmt = "binary (solid header)"
    if debug_enabled():
        logger.debug("parse_stl: format=%s bytes=%d triangles=%d", fmt, len(buf), len(triangles))
    return triangles
