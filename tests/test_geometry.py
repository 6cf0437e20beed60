from __future__ import annotations

import pytest

from person_tracking.utils import area, center, clamp, iou, union, xywh_to_xyxy, xyxy_to_xywh


def test_iou_identical_is_one():
    assert iou((10, 10, 20, 20), (10, 10, 20, 20)) == pytest.approx(1.0)


def test_iou_disjoint_and_touching_are_zero():
    assert iou((0, 0, 10, 10), (100, 100, 10, 10)) == 0.0
    assert iou((0, 0, 10, 10), (10, 0, 10, 10)) == 0.0


def test_iou_symmetric_and_bounded():
    pairs = [
        ((0, 0, 10, 10), (5, 5, 10, 10)),
        ((3, 4, 50, 20), (10, 0, 7, 90)),
        ((0, 0, 100, 100), (25, 25, 50, 50)),
    ]
    for a, b in pairs:
        v = iou(a, b)
        assert v == pytest.approx(iou(b, a))
        assert 0.0 <= v <= 1.0


def test_iou_half_overlap():
    # inter 50, union 150
    assert iou((0, 0, 10, 10), (5, 0, 10, 10)) == pytest.approx(50.0 / 150.0)


def test_iou_degenerate_is_zero():
    assert iou((0, 0, 0, 10), (0, 0, 10, 10)) == 0.0
    assert iou((0, 0, 10, 10), (0, 0, 10, -3)) == 0.0


def test_union_contains_both():
    assert union((0, 0, 10, 10), (20, 5, 10, 10)) == (0, 0, 30, 15)


def test_clamp_inside_is_identity():
    assert clamp((10, 10, 20, 20), 640, 480) == (10, 10, 20, 20)


def test_clamp_truncates_to_frame():
    assert clamp((-5, -5, 20, 20), 640, 480) == (0, 0, 15, 15)
    assert clamp((630, 470, 20, 20), 640, 480) == (630, 470, 10, 10)


def test_clamp_outside_collapses_to_edge_strip():
    x, y, w, h = clamp((700, 500, 20, 20), 640, 480)
    assert (x, y) == (639, 479)
    assert (w, h) == (1, 1)

    x, y, w, h = clamp((-50, 10, 20, 20), 640, 480)
    assert x == 0 and w == 1
    assert (y, h) == (10, 20)


def test_clamp_zero_size_expands_to_one():
    assert clamp((5, 5, 0, 0), 640, 480) == (5, 5, 1, 1)


def test_helpers():
    assert area((0, 0, 4, 5)) == 20.0
    assert area((0, 0, -1, 5)) == 0.0
    assert center((0, 0, 10, 20)) == (5.0, 10.0)
    assert xywh_to_xyxy((1, 2, 3, 4)) == (1, 2, 4, 6)
    assert xyxy_to_xywh((1, 2, 4, 6)) == (1, 2, 3, 4)
