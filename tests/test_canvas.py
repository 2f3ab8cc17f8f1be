"""
Unit tests for canvas module.
"""
import pytest
from PIL import Image, ImageDraw

from campaign_canvas.canvas import Canvas, Shadow, angle_endpoints, linear_gradient
from campaign_canvas.exceptions import CanvasUnavailableError

from conftest import decode_data_uri


class TestScopedState:
    """Tests for Canvas.scoped drawing state."""

    def test_state_restored_after_block(self):
        canvas = Canvas(10, 10)
        with canvas.scoped(alpha=0.5, shadow=Shadow()):
            assert canvas.state.alpha == 0.5
            assert canvas.state.shadow is not None
        assert canvas.state.alpha == 1.0
        assert canvas.state.shadow is None

    def test_nested_alpha_multiplies(self):
        canvas = Canvas(10, 10)
        with canvas.scoped(alpha=0.5):
            with canvas.scoped(alpha=0.5):
                assert canvas.state.alpha == pytest.approx(0.25)
            assert canvas.state.alpha == pytest.approx(0.5)

    def test_clear_shadow_in_inner_scope(self):
        canvas = Canvas(10, 10)
        with canvas.scoped(shadow=Shadow()):
            with canvas.scoped(clear_shadow=True):
                assert canvas.state.shadow is None
            assert canvas.state.shadow is not None

    def test_state_restored_on_exception(self):
        canvas = Canvas(10, 10)
        with pytest.raises(RuntimeError):
            with canvas.scoped(alpha=0.2, shadow=Shadow()):
                raise RuntimeError("boom")
        assert canvas.state.alpha == 1.0
        assert canvas.state.shadow is None


class TestCanvasPrimitives:
    """Tests for drawing primitives."""

    def test_non_positive_size_raises(self):
        with pytest.raises(CanvasUnavailableError):
            Canvas(0, 10)

    def test_fill(self):
        canvas = Canvas(4, 4)
        canvas.fill("#DC2626")
        assert canvas.get_pixel(0, 0) == (220, 38, 38, 255)

    def test_alpha_applies_to_fill(self):
        canvas = Canvas(4, 4)
        canvas.fill("#000000")
        with canvas.scoped(alpha=0.5):
            canvas.fill("#FFFFFF")
        r, g, b, a = canvas.get_pixel(1, 1)
        assert 120 <= r <= 135 and a == 255

    def test_clear_makes_transparent(self):
        canvas = Canvas(4, 4)
        canvas.fill("#FFFFFF")
        canvas.clear()
        assert canvas.get_pixel(2, 2)[3] == 0

    def test_draw_image_clips_negative_offset(self):
        canvas = Canvas(10, 10)
        canvas.draw_image(Image.new("RGB", (10, 10), (255, 0, 0)), -5, -5, 10, 10)
        assert canvas.get_pixel(0, 0) == (255, 0, 0, 255)
        assert canvas.get_pixel(4, 4) == (255, 0, 0, 255)
        assert canvas.get_pixel(5, 5)[3] == 0

    def test_draw_image_outside_is_noop(self):
        canvas = Canvas(10, 10)
        canvas.draw_image(Image.new("RGB", (5, 5), (255, 0, 0)), 20, 20, 5, 5)
        assert canvas.image.getbbox() is None

    def test_shadow_extends_beyond_shape(self):
        canvas = Canvas(60, 60)
        canvas.fill("#FFFFFF")
        layer = canvas.new_layer()
        ImageDraw.Draw(layer).rectangle((20, 20, 39, 39), fill=(255, 0, 0, 255))
        with canvas.scoped(shadow=Shadow("rgba(0,0,0,1)", blur=0, offset_x=0, offset_y=5)):
            canvas.composite(layer)
        assert canvas.get_pixel(30, 42)[:3] == (0, 0, 0)
        assert canvas.get_pixel(30, 30)[:3] == (255, 0, 0)
        assert canvas.get_pixel(30, 50)[:3] == (255, 255, 255)

    def test_data_uri_formats(self):
        canvas = Canvas(8, 6)
        canvas.fill("#336699")
        png = canvas.to_data_uri()
        jpeg = canvas.to_data_uri("JPEG")
        assert png.startswith("data:image/png;base64,")
        assert jpeg.startswith("data:image/jpeg;base64,")
        assert decode_data_uri(png).size == (8, 6)


class TestGradients:
    """Tests for linear_gradient and angle_endpoints."""

    def test_vertical_gradient_endpoints(self):
        img = linear_gradient((4, 100), [(0.0, (0, 0, 0, 255)), (1.0, (255, 255, 255, 255))], (0, 0), (0, 100))
        assert img.getpixel((2, 0))[0] < 10
        assert img.getpixel((2, 99))[0] > 245

    def test_three_stop_midpoint(self):
        stops = [(0.0, (0, 0, 0, 128)), (0.5, (0, 0, 0, 0)), (1.0, (0, 0, 0, 153))]
        img = linear_gradient((2, 201), stops, (0, 0), (0, 201))
        assert img.getpixel((0, 100))[3] <= 3

    def test_diagonal_gradient(self):
        img = linear_gradient((20, 20), [(0.0, (255, 0, 0, 255)), (1.0, (0, 0, 255, 255))], (0, 0), (20, 20))
        assert img.getpixel((0, 0))[0] > img.getpixel((19, 19))[0]

    def test_angle_zero_runs_left_to_right(self):
        start, end = angle_endpoints((0, 0, 100, 50), 0)
        assert start == pytest.approx((0, 25))
        assert end == pytest.approx((100, 25))

    def test_angle_ninety_runs_top_to_bottom(self):
        start, end = angle_endpoints((0, 0, 100, 50), 90)
        assert start == pytest.approx((50, 0), abs=1e-9)
        assert end == pytest.approx((50, 50), abs=1e-9)
