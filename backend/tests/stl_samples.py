"""
Synthetic STL meshes for the footprint tests.

Meshes are described as lists of facets (three XYZ tuples wound
counter‑clockwise when seen from outside the part) and serialised to
binary or ASCII STL on demand.  Nothing here touches the code under
test.
"""

from __future__ import annotations

import struct
from typing import List, Optional, Sequence, Tuple

Vec3 = Tuple[float, float, float]
Facet = Tuple[Vec3, Vec3, Vec3]


def quad(p0: Vec3, p1: Vec3, p2: Vec3, p3: Vec3) -> List[Facet]:
    """Split the quad p0‑p1‑p2‑p3 into two facets with the same winding."""
    return [(p0, p1, p2), (p0, p2, p3)]


def facet_normal(facet: Facet) -> Vec3:
    a, b, c = facet
    u = (b[0] - a[0], b[1] - a[1], b[2] - a[2])
    v = (c[0] - a[0], c[1] - a[1], c[2] - a[2])
    n = (u[1] * v[2] - u[2] * v[1], u[2] * v[0] - u[0] * v[2], u[0] * v[1] - u[1] * v[0])
    d = (n[0] ** 2 + n[1] ** 2 + n[2] ** 2) ** 0.5
    if d == 0.0:
        return (0.0, 0.0, 0.0)
    return (n[0] / d, n[1] / d, n[2] / d)


def box_walls(x0: float, y0: float, x1: float, y1: float, z0: float, z1: float) -> List[Facet]:
    """The four vertical walls of an axis‑aligned box, facing outward."""
    facets: List[Facet] = []
    facets += quad((x0, y0, z0), (x1, y0, z0), (x1, y0, z1), (x0, y0, z1))
    facets += quad((x1, y1, z0), (x0, y1, z0), (x0, y1, z1), (x1, y1, z1))
    facets += quad((x0, y1, z0), (x0, y0, z0), (x0, y0, z1), (x0, y1, z1))
    facets += quad((x1, y0, z0), (x1, y1, z0), (x1, y1, z1), (x1, y0, z1))
    return facets


def box_facets(length: float, width: float, height: float) -> List[Facet]:
    """Closed rectangular prism with its lower corner at the origin."""
    facets: List[Facet] = []
    facets += quad((0.0, 0.0, height), (length, 0.0, height), (length, width, height), (0.0, width, height))
    facets += quad((0.0, 0.0, 0.0), (0.0, width, 0.0), (length, width, 0.0), (length, 0.0, 0.0))
    facets += box_walls(0.0, 0.0, length, width, 0.0, height)
    return facets


def pocketed_box_facets() -> List[Facet]:
    """A 10×8×2 block with a 4×4×1 pocket open to the top face.

    The top face is a conforming 3×3 grid of quads with the centre cell
    removed, so every interior edge is shared by exactly two facets.
    """
    xs = [0.0, 3.0, 7.0, 10.0]
    ys = [0.0, 2.0, 6.0, 8.0]
    top = 2.0
    floor = 1.0
    facets: List[Facet] = []
    for i in range(3):
        for j in range(3):
            if i == 1 and j == 1:
                continue
            facets += quad(
                (xs[i], ys[j], top),
                (xs[i + 1], ys[j], top),
                (xs[i + 1], ys[j + 1], top),
                (xs[i], ys[j + 1], top),
            )
    facets += quad((3.0, 2.0, floor), (7.0, 2.0, floor), (7.0, 6.0, floor), (3.0, 6.0, floor))
    facets += box_walls(3.0, 2.0, 7.0, 6.0, floor, top)
    facets += quad((0.0, 0.0, 0.0), (0.0, 8.0, 0.0), (10.0, 8.0, 0.0), (10.0, 0.0, 0.0))
    facets += box_walls(0.0, 0.0, 10.0, 8.0, 0.0, top)
    return facets


def binary_stl(
    facets: Sequence[Facet],
    declared: Optional[int] = None,
    header: bytes = b"binary footprint test part",
    zero_normals: bool = False,
) -> bytes:
    """Serialise facets as a binary STL.

    Args:
        facets: Facets to write.
        declared: Triangle count written to the header; defaults to the
            real count.  Use a larger value to simulate truncation.
        header: Up to 80 header bytes (padded with NULs).
        zero_normals: Write (0, 0, 0) instead of the computed normals.
    """
    count = len(facets) if declared is None else declared
    out = bytearray(header[:80].ljust(80, b"\0"))
    out += struct.pack("<I", count)
    for facet in facets:
        normal = (0.0, 0.0, 0.0) if zero_normals else facet_normal(facet)
        out += struct.pack("<3f", *normal)
        for v in facet:
            out += struct.pack("<3f", *v)
        out += b"\0\0"
    return bytes(out)


def ascii_stl(facets: Sequence[Facet], name: str = "part") -> str:
    """Serialise facets as an ASCII STL document."""
    lines = [f"solid {name}"]
    for facet in facets:
        n = facet_normal(facet)
        lines.append(f"  facet normal {n[0]:.6e} {n[1]:.6e} {n[2]:.6e}")
        lines.append("    outer loop")
        for v in facet:
            lines.append(f"      vertex {v[0]:.6f} {v[1]:.6f} {v[2]:.6f}")
        lines.append("    endloop")
        lines.append("  endfacet")
    lines.append(f"endsolid {name}")
    return "\n".join(lines) + "\n"
