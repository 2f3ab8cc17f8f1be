"""
Unit tests for thumbnail module.
"""
import threading

import pytest

from campaign_canvas import thumbnail
from campaign_canvas.exceptions import CanvasUnavailableError
from campaign_canvas.thumbnail import (
    PreviewSession,
    make_thumbnail,
    placeholder_data_uri,
    thumbnail_size,
)

from conftest import decode_data_uri


def close_to(pixel, expected, tolerance=8):
    return all(abs(a - b) <= tolerance for a, b in zip(pixel, expected))


class TestThumbnailSize:
    """Tests for thumbnail_size function."""

    @pytest.mark.parametrize("project_size, expected", [
        ("12x12", (400, 400)),
        ("16x9", (400, 225)),
        ("9x16", (400, 711)),
        ("9x12", (400, 533)),
        ("garbage", (400, 400)),
    ])
    def test_aspect_ratios(self, project_size, expected):
        assert thumbnail_size(project_size, 400) == expected


class TestMakeThumbnail:
    """Tests for make_thumbnail function."""

    def test_renders_jpeg_at_thumbnail_size(self, campaign_image, campaign):
        uri = make_thumbnail(campaign_image, campaign, project_size="16x9", width=400)
        assert uri.startswith("data:image/jpeg;base64,")
        assert decode_data_uri(uri).size == (400, 225)

    def test_failure_returns_placeholder(self, unreachable_image, campaign):
        uri = make_thumbnail(unreachable_image, campaign, width=200)

        img = decode_data_uri(uri).convert("RGB")
        assert img.size == (200, 200)
        assert close_to(img.getpixel((0, 0)), (30, 41, 59))
        assert close_to(img.getpixel((199, 199)), (15, 23, 42))

    def test_canvas_error_returns_placeholder(self, campaign_image, campaign, monkeypatch):
        def broken(*args, **kwargs):
            raise CanvasUnavailableError("no surface")

        monkeypatch.setattr(thumbnail, "render_campaign_image", broken)
        uri = make_thumbnail(campaign_image, campaign, width=120)
        assert close_to(decode_data_uri(uri).convert("RGB").getpixel((0, 0)), (30, 41, 59))

    def test_placeholder_gradient_is_diagonal(self):
        img = decode_data_uri(placeholder_data_uri(100, 100)).convert("RGB")
        # Opposite corners of the other diagonal sit at the same gradient offset.
        assert close_to(img.getpixel((99, 0)), img.getpixel((0, 99)), tolerance=4)


class TestPreviewSession:
    """Tests for stale-render protection in PreviewSession."""

    def test_publishes_latest_render(self, campaign_image, campaign):
        session = PreviewSession(120, 120)
        canvas = session.render(campaign_image, campaign)
        assert canvas is not None
        assert session.canvas is canvas
        assert session.generation == 1

    def test_superseded_render_is_discarded(self, campaign_image, campaign, monkeypatch):
        session = PreviewSession(120, 120)

        def render_then_supersede(canvas, *args, **kwargs):
            # Simulates the preview being reconfigured mid-render.
            session.invalidate()
            return True

        monkeypatch.setattr(thumbnail, "render_campaign_image", render_then_supersede)

        assert session.render(campaign_image, campaign) is None
        assert session.canvas is None

    def test_slow_render_cannot_overwrite_newer_one(self, campaign_image, campaign, monkeypatch):
        session = PreviewSession(64, 64)
        started = threading.Event()
        release = threading.Event()
        calls = []

        def fake_render(canvas, image, *args, **kwargs):
            calls.append(image.id)
            if len(calls) == 1:
                started.set()
                release.wait(5)
            canvas.fill("#00FF00" if len(calls) > 1 else "#FF0000")
            return True

        monkeypatch.setattr(thumbnail, "render_campaign_image", fake_render)

        results = {}
        slow = threading.Thread(target=lambda: results.setdefault("slow", session.render(campaign_image, campaign)))
        slow.start()
        assert started.wait(5)

        fresh = session.render(campaign_image, campaign)
        release.set()
        slow.join(5)

        assert results["slow"] is None
        assert session.canvas is fresh
        assert fresh.get_pixel(0, 0)[:3] == (0, 255, 0)

    def test_resize_changes_next_canvas(self, campaign_image, campaign):
        session = PreviewSession(100, 100)
        session.resize(80, 40)
        canvas = session.render(campaign_image, campaign)
        assert (canvas.width, canvas.height) == (80, 40)
