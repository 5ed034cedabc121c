"""Tests for rectangle and path helpers."""

from chart_core.geometry import (
    Rect,
    bounding_rect,
    overlap_area,
    path_bounds,
    polyline_path,
    shift_path,
    smooth_path,
)


def test_overlap_area() -> None:
    assert overlap_area(Rect(0, 0, 100, 100), Rect(50, 50, 100, 100)) == 2500
    # Touching edges do not count as overlap
    assert overlap_area(Rect(0, 0, 100, 100), Rect(100, 0, 100, 100)) == 0
    assert overlap_area(Rect(0, 0, 10, 10), Rect(500, 500, 10, 10)) == 0


def test_contains_point_is_inclusive() -> None:
    r = Rect(0, 0, 10, 10)
    assert r.contains_point(10, 10)
    assert not r.contains_point(11, 5)
    assert r.contains_point(15, 5, margin=5)


def test_bounding_rect() -> None:
    assert bounding_rect([]) is None
    b = bounding_rect([Rect(0, 0, 10, 10), Rect(20, -5, 10, 10)])
    assert (b.x, b.y, b.width, b.height) == (0, -5, 30, 15)


def test_path_bounds() -> None:
    b = path_bounds("M10,20 L30 5 Q-4,8 12,40")
    assert (b.x, b.y, b.right, b.bottom) == (-4, 5, 30, 40)


def test_path_bounds_empty() -> None:
    assert path_bounds("") == Rect(0, 0, 0, 0)


def test_shift_path() -> None:
    assert shift_path("M10 20 L30 40", 5, -5) == "M 15 15 L 35 35"
    assert shift_path("M10,20 Q1,2 3,4", 1, 1) == "M 11 21 Q 2 3 4 5"


def test_shift_path_rounds_float_noise() -> None:
    assert shift_path("M0.1 0.2", 0.2, 0.1) == "M 0.3 0.3"


def test_polyline_fallback() -> None:
    assert polyline_path([]) == ""
    assert smooth_path([(0, 0), (10, 10)]) == "M0,0 L10,10"


def test_smooth_path() -> None:
    assert smooth_path([(0, 0), (10, 10), (20, 0)]) == "M0,0 Q10,10 20,0"
    assert (
        smooth_path([(0, 0), (10, 10), (20, 0), (30, 10)])
        == "M0,0 Q10,10 15,5 Q20,0 30,10"
    )


def test_shift_path_large_coordinates_stay_plain() -> None:
    shifted = shift_path("M 0 0 L 2 2", 1e16, 0)
    assert "e" not in shifted
    assert shifted.startswith("M 10000000000000000 0 L ")
    # Still one x and one y per command
    assert len(shifted.split()) == 6
