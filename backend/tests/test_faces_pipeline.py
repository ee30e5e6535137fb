"""
End‑to‑end tests for the STL → footprint pipeline in faces.py.

Each test builds a small synthetic part, serialises it as STL and runs
it through ``stl_to_faces``.  They cover the reference block, a block
with a pocket, unit switching, idempotence and the failure taxonomy.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from footprint.services.errors import GeometryFailure, ParseFailure, StlProcessingError
from footprint.services.faces import stl_to_faces
from stl_samples import ascii_stl, binary_stl, box_facets, pocketed_box_facets


def _assert_loop_invariants(faces) -> None:
    assert faces.loopsCount == len(faces.loops)
    for i, loop in enumerate(faces.loops):
        assert loop.idx == i
        assert loop.closed
        assert len(loop.points) >= 3
        assert loop.edges == len(loop.points)
        assert abs(loop.area) > 0.0
    if faces.loops:
        outer = faces.loops[faces.outerLoopIndex]
        assert all(abs(outer.area) >= abs(lp.area) for lp in faces.loops)


@pytest.mark.parametrize("encode", [binary_stl, lambda f: ascii_stl(f).encode()])
def test_block_yields_single_loop(encode) -> None:
    """A 10×8×2 inch block produces one loop of area 80 and perimeter 36."""
    faces = stl_to_faces(encode(box_facets(10.0, 8.0, 2.0)))
    assert faces.units == "in"
    assert faces.loopsCount == 1
    assert faces.outerLoopIndex == 0
    loop = faces.loops[0]
    assert loop.area == pytest.approx(80.0, abs=0.01)
    assert loop.perimeter == pytest.approx(36.0, abs=0.01)
    assert loop.edges == 4
    xs = [p.x for p in loop.points]
    ys = [p.y for p in loop.points]
    assert min(xs) == pytest.approx(0.0, abs=1e-6)
    assert max(xs) == pytest.approx(10.0, abs=1e-6)
    assert max(ys) == pytest.approx(8.0, abs=1e-6)
    _assert_loop_invariants(faces)


def test_pocket_yields_outer_and_opposite_inner_loop() -> None:
    faces = stl_to_faces(binary_stl(pocketed_box_facets()))
    assert faces.loopsCount == 2
    outer = faces.loops[faces.outerLoopIndex]
    inner = faces.loops[1 - faces.outerLoopIndex]
    assert outer.area == pytest.approx(80.0, abs=0.01)
    assert inner.area == pytest.approx(-16.0, abs=0.01)
    assert inner.perimeter == pytest.approx(16.0, abs=0.01)
    _assert_loop_invariants(faces)


def test_millimetre_block_matches_inch_block() -> None:
    inch = stl_to_faces(binary_stl(box_facets(10.0, 8.0, 2.0)))
    mm = stl_to_faces(binary_stl(box_facets(254.0, 203.2, 50.8)))
    assert inch.metadata["unitGuess"] == "in"
    assert mm.metadata["unitGuess"] == "mm"
    assert mm.loops[0].area == pytest.approx(inch.loops[0].area, abs=0.01)
    assert mm.loops[0].perimeter == pytest.approx(inch.loops[0].perimeter, abs=0.01)


def test_small_millimetre_cube_needs_unit_override() -> None:
    """A 25.4 mm cube is below the 50 unit threshold and reads as inches."""
    inch_cube = stl_to_faces(binary_stl(box_facets(1.0, 1.0, 1.0)))
    mm_cube_guessed = stl_to_faces(binary_stl(box_facets(25.4, 25.4, 25.4)))
    mm_cube_forced = stl_to_faces(binary_stl(box_facets(25.4, 25.4, 25.4)), unit_override="mm")
    assert mm_cube_guessed.metadata["unitGuess"] == "in"
    assert mm_cube_guessed.loops[0].area == pytest.approx(25.4 * 25.4, rel=1e-5)
    assert mm_cube_forced.metadata["unitOverride"] == "mm"
    assert mm_cube_forced.loops[0].area == pytest.approx(inch_cube.loops[0].area, abs=1e-4)


def test_unit_override_is_normalised() -> None:
    buf = binary_stl(box_facets(254.0, 203.2, 50.8))
    auto = stl_to_faces(buf, unit_override=" Auto ")
    forced = stl_to_faces(buf, unit_override=" MM")
    assert auto.metadata["unitOverride"] is None
    assert auto.metadata["unitGuess"] == "mm"
    assert forced.metadata["unitOverride"] == "mm"
    assert forced.loops[0].area == pytest.approx(auto.loops[0].area, abs=1e-6)


def test_pipeline_is_idempotent() -> None:
    buf = binary_stl(pocketed_box_facets())
    assert stl_to_faces(buf).model_dump() == stl_to_faces(buf).model_dump()


def test_metadata_reports_stage_diagnostics() -> None:
    faces = stl_to_faces(binary_stl(pocketed_box_facets()))
    meta = faces.metadata
    assert meta["triangleCount"] == len(pocketed_box_facets())
    assert meta["triCountTop"] == 16
    assert meta["boundarySegmentCount"] == 16
    assert meta["topPlaneZ"] == pytest.approx(2.0, abs=1e-4)
    assert meta["topPlaneArea"] == pytest.approx(64.0)
    assert meta["openLoops"] == 0
    assert meta["droppedSegments"] == 0
    assert meta["unitOverride"] is None


def test_ascii_with_byte_order_mark_yields_block_loop() -> None:
    buf = b"\xef\xbb\xbf" + ascii_stl(box_facets(10.0, 8.0, 2.0)).encode()
    faces = stl_to_faces(buf)
    assert faces.loopsCount == 1
    assert faces.loops[0].area == pytest.approx(80.0, abs=0.01)
    assert faces.metadata["triangleCount"] == 12


def test_malformed_ascii_recovers() -> None:
    text = ascii_stl(box_facets(10.0, 8.0, 2.0))
    # Inject junk and drop the final endfacet/endsolid lines
    lines = text.splitlines()
    lines.insert(1, "garbage line 1 2 3")
    lines.insert(5, "vertex a b c")
    faces = stl_to_faces("\n".join(lines[:-3]).encode())
    assert faces.loopsCount == 1
    assert faces.loops[0].area == pytest.approx(80.0, abs=0.01)


def test_truncated_binary_still_processes() -> None:
    facets = box_facets(10.0, 8.0, 2.0)
    buf = binary_stl(facets[:2], declared=len(facets)) + b"\xff" * 30
    faces = stl_to_faces(buf)
    assert faces.loopsCount == 1
    assert faces.metadata["triangleCount"] == 2


def test_short_buffer_is_a_parse_failure() -> None:
    with pytest.raises(ParseFailure) as info:
        stl_to_faces(b"solid")
    assert info.value.reason == "buffer_too_short"


def test_no_triangles_is_a_parse_failure() -> None:
    with pytest.raises(ParseFailure) as info:
        stl_to_faces(b"solid empty\nendsolid empty\n")
    assert info.value.reason == "no_triangles"
    detail = info.value.to_detail()
    assert detail["error"] == "parse_failure"


def test_triangle_cap_is_enforced() -> None:
    with pytest.raises(ParseFailure) as info:
        stl_to_faces(binary_stl(box_facets(1.0, 1.0, 1.0)), max_triangles=6)
    assert info.value.reason == "too_many_triangles"
    assert info.value.diagnostics["triangleCount"] == 12


def test_downward_only_mesh_is_a_geometry_failure() -> None:
    bottom_only = box_facets(4.0, 4.0, 1.0)[2:4]
    with pytest.raises(GeometryFailure) as info:
        stl_to_faces(binary_stl(bottom_only))
    assert info.value.reason == "no_top_plane_triangles"
    assert "cosMaxTilt" in info.value.diagnostics
    assert isinstance(info.value, StlProcessingError)
