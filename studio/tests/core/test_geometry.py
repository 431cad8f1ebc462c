"""Unit tests for core.geometry: coordinate conversion, containment, clamping."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from core.geometry import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    DisplayRect,
    clamp_origin,
    contains,
    to_canvas_space,
)
from schemas import LogoPlacement

pytestmark = pytest.mark.unit

coords = st.floats(min_value=-5000, max_value=5000, allow_nan=False)
sizes = st.floats(min_value=0, max_value=2000, allow_nan=False)


class TestCanvasSize:
    def test_a4_landscape_height(self):
        assert CANVAS_WIDTH == 1000
        assert CANVAS_HEIGHT == 707


class TestToCanvasSpace:
    def test_identity_when_displayed_at_logical_size(self):
        rect = DisplayRect(left=0, top=0, width=CANVAS_WIDTH, height=CANVAS_HEIGHT)
        assert to_canvas_space(250, 100, rect) == (250, 100)

    def test_half_size_display_doubles_coordinates(self):
        rect = DisplayRect(left=0, top=0, width=500, height=353.5)
        x, y = to_canvas_space(250, 160, rect)
        assert x == pytest.approx(500)
        assert y == pytest.approx(320)

    def test_offset_display_subtracts_origin(self):
        rect = DisplayRect(left=40, top=20, width=1000, height=707)
        assert to_canvas_space(140, 120, rect) == (100, 100)

    def test_custom_canvas_dimensions(self):
        rect = DisplayRect(left=0, top=0, width=100, height=100)
        assert to_canvas_space(50, 50, rect, canvas_width=800, canvas_height=600) == (
            400,
            300,
        )


class TestContains:
    box = LogoPlacement(url="logo.png", x=10, y=20, width=100, height=50)

    @pytest.mark.parametrize(
        ("x", "y"),
        [(10, 20), (110, 70), (60, 45), (10, 70), (110, 20)],
    )
    def test_inside_and_on_edges(self, x, y):
        assert contains(self.box, x, y)

    @pytest.mark.parametrize(
        ("x", "y"),
        [(9.9, 20), (110.1, 45), (60, 19.9), (60, 70.1)],
    )
    def test_outside(self, x, y):
        assert not contains(self.box, x, y)


class TestClampOrigin:
    def test_inside_is_unchanged(self):
        assert clamp_origin(100, 100, 200, 40) == (100, 100)

    def test_negative_pins_to_zero(self):
        assert clamp_origin(-30, -5, 200, 40) == (0, 0)

    def test_past_far_edge_pins_to_canvas_minus_size(self):
        assert clamp_origin(950, 700, 200, 40) == (800, 667)

    def test_box_larger_than_canvas_pins_to_origin(self):
        assert clamp_origin(30, 30, 1200, 800) == (0, 0)

    @given(x=coords, y=coords, w=sizes, h=sizes)
    def test_result_always_keeps_box_on_canvas(self, x, y, w, h):
        cx, cy = clamp_origin(x, y, w, h)
        assert cx >= 0 and cy >= 0
        if w <= CANVAS_WIDTH:
            assert cx + w <= CANVAS_WIDTH + 1e-9
        if h <= CANVAS_HEIGHT:
            assert cy + h <= CANVAS_HEIGHT + 1e-9

    @given(x=coords, y=coords, w=sizes, h=sizes)
    def test_clamping_is_idempotent(self, x, y, w, h):
        once = clamp_origin(x, y, w, h)
        assert clamp_origin(*once, w, h) == once
