"""
Unit tests for layout_analyzer module.
"""
import random
from types import SimpleNamespace

import pytest
from PIL import Image

from campaign_canvas import visual_analysis
from campaign_canvas.exceptions import LayoutAnalysisError, VisualAnalysisError
from campaign_canvas.layout_analyzer import (
    DARK_TEXT_COLOR,
    LIGHT_TEXT_COLOR,
    analyze_layout,
    grid_statistics,
    quietest_region,
)
from campaign_canvas.visual_analysis import VisualAnalysisResult


def noise_with_quiet_cell(row, col, gray=100, size=150, seed=7):
    """High-contrast noise everywhere except one uniform grid cell."""
    rng = random.Random(seed)
    img = Image.new("RGB", (size, size))
    img.putdata([
        (255, 255, 255) if rng.random() < 0.5 else (0, 0, 0)
        for _ in range(size * size)
    ])
    cell = size // 3
    img.paste(Image.new("RGB", (cell, cell), (gray, gray, gray)), (col * cell, row * cell))
    return img


class TestGridAnalysis:
    """Tests for grid-mode analysis."""

    def test_selects_uniform_cell(self, tmp_path):
        path = tmp_path / "noise.png"
        noise_with_quiet_cell(2, 0).save(path)

        suggestion = analyze_layout(str(path))

        assert suggestion["headline"]["verticalPosition"] == "bottom"
        assert suggestion["headline"]["rows"][0]["textAlign"] == "left"
        assert suggestion["subheadline"]["verticalPosition"] == "bottom"
        assert suggestion["subheadline"]["textAlign"] == "left"

    @pytest.mark.parametrize("row, col, position, align", [
        (0, 1, "top", "center"),
        (1, 2, "center", "right"),
        (1, 1, "center", "center"),
    ])
    def test_cell_to_position_mapping(self, row, col, position, align):
        suggestion = analyze_layout(noise_with_quiet_cell(row, col))
        assert suggestion["headline"]["verticalPosition"] == position
        assert suggestion["headline"]["rows"][0]["textAlign"] == align

    def test_dark_region_gets_light_text(self):
        suggestion = analyze_layout(noise_with_quiet_cell(0, 0, gray=40))
        row = suggestion["headline"]["rows"][0]
        assert row["fontColor"] == LIGHT_TEXT_COLOR
        assert row["shadowColor"] == "rgba(0,0,0,0.6)"
        assert row["shadowBlur"] == 10

    def test_light_region_gets_dark_text(self):
        suggestion = analyze_layout(noise_with_quiet_cell(0, 0, gray=220))
        assert suggestion["subheadline"]["fontColor"] == DARK_TEXT_COLOR
        assert suggestion["subheadline"]["shadowColor"] == "rgba(255,255,255,0.6)"

    def test_tie_prefers_top_left(self):
        stats = grid_statistics(Image.new("RGB", (300, 300), (90, 90, 90)))
        best = quietest_region(stats)
        assert (best.row, best.col) == (0, 0)

    def test_large_image_is_downsampled(self):
        img = Image.new("RGB", (1200, 600), (10, 10, 10))
        stats = grid_statistics(img)
        assert len(stats) == 9
        assert all(s.variance == pytest.approx(0) for s in stats)

    def test_luma_is_not_rounded(self):
        # 0.299*128 + 0.587*128 + 0.114*127 = 127.886, which 8-bit luma rounds to 128.
        img = Image.new("RGB", (150, 150), (128, 128, 127))

        stats = grid_statistics(img)
        suggestion = analyze_layout(img)

        assert stats[0].brightness == pytest.approx(127.886)
        assert suggestion["headline"]["rows"][0]["fontColor"] == LIGHT_TEXT_COLOR

    def test_unloadable_source_raises(self, tmp_path):
        with pytest.raises(LayoutAnalysisError):
            analyze_layout(str(tmp_path / "missing.png"))


class TestAIMode:
    """Tests for AI-mode analysis and its fallback."""

    def test_uses_ai_recommendation(self):
        result = VisualAnalysisResult(
            recommended_text_region="middle-right",
            recommended_text_color="dark",
            use_background_overlay=True,
        )
        suggestion = analyze_layout(
            noise_with_quiet_cell(0, 0), use_ai_mode=True, visual_analyzer=lambda img: result
        )
        assert suggestion["headline"]["verticalPosition"] == "center"
        assert suggestion["headline"]["rows"][0]["textAlign"] == "right"
        assert suggestion["headline"]["rows"][0]["fontColor"] == DARK_TEXT_COLOR
        # Overlay recommendations never turn on a background box.
        assert "useBackground" not in suggestion["subheadline"]

    def test_falls_back_to_grid(self):
        def failing(img):
            raise VisualAnalysisError("service down")

        suggestion = analyze_layout(
            noise_with_quiet_cell(2, 2), use_ai_mode=True, visual_analyzer=failing
        )
        assert suggestion["headline"]["verticalPosition"] == "bottom"
        assert suggestion["headline"]["rows"][0]["textAlign"] == "right"

    def test_unknown_region_defaults_to_top_left(self):
        result = VisualAnalysisResult(recommended_text_region="nowhere")
        suggestion = analyze_layout(
            noise_with_quiet_cell(2, 2), use_ai_mode=True, visual_analyzer=lambda img: result
        )
        assert suggestion["headline"]["verticalPosition"] == "top"
        assert suggestion["headline"]["rows"][0]["textAlign"] == "left"

    def test_unexpected_analyzer_error_falls_back_to_grid(self):
        def broken(img):
            raise TypeError("'int' object is not iterable")

        suggestion = analyze_layout(
            noise_with_quiet_cell(2, 0), use_ai_mode=True, visual_analyzer=broken
        )
        assert suggestion["headline"]["verticalPosition"] == "bottom"
        assert suggestion["headline"]["rows"][0]["textAlign"] == "left"

    def test_scalar_detection_field_from_gemini(self, monkeypatch):
        class FakeModels:
            def generate_content(self, **kwargs):
                return SimpleNamespace(
                    text='{"detectedFaces": 3, "recommendedTextRegion": "top-right"}'
                )

        client = SimpleNamespace(models=FakeModels())
        monkeypatch.setattr(visual_analysis, "_get_client", lambda: client)

        suggestion = analyze_layout(noise_with_quiet_cell(2, 0), use_ai_mode=True)

        assert suggestion["headline"]["verticalPosition"] == "top"
        assert suggestion["headline"]["rows"][0]["textAlign"] == "right"
