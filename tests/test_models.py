"""
Unit tests for models module.
"""
import pytest

from campaign_canvas.models import (
    BrandAssets,
    BrandLogo,
    Campaign,
    CTAButton,
    DesignSettings,
    HeadlineSettings,
    TEMPLATES,
    TextSettings,
    project_aspect_ratio,
    project_dimensions,
)


class TestTextSettings:
    """Tests for TextSettings.from_dict."""

    def test_missing_keys_take_fallback(self):
        fallback = TextSettings(font_size=50, font_color="#123456")
        settings = TextSettings.from_dict({"textAlign": "center"}, fallback)
        assert settings.font_size == 50
        assert settings.font_color == "#123456"
        assert settings.text_align == "center"

    def test_none_value_counts_as_missing(self):
        settings = TextSettings.from_dict({"fontFamily": None}, TextSettings(font_family="Georgia"))
        assert settings.font_family == "Georgia"

    def test_explicit_null_clears_shadow_color(self):
        fallback = TextSettings(shadow_color="rgba(0,0,0,0.5)")
        assert TextSettings.from_dict({"shadowColor": None}, fallback).shadow_color is None

    def test_invalid_choice_keeps_fallback(self):
        assert TextSettings.from_dict({"textAlign": "justify"}).text_align == "left"

    def test_background_opacity_clamped(self):
        assert TextSettings.from_dict({"backgroundOpacity": 3}).background_opacity == 1.0

    def test_round_trip_keys_are_camel_case(self):
        data = TextSettings().to_dict()
        assert "fontFamily" in data and "useBackground" in data


class TestHeadlineSettings:
    """Tests for HeadlineSettings.from_dict."""

    def test_extra_rows_inherit_last_base_row(self):
        base = HeadlineSettings(rows=(TextSettings(font_size=40),))
        headline = HeadlineSettings.from_dict({"rows": [{}, {"fontColor": "#000000"}]}, base)
        assert [r.font_size for r in headline.rows] == [40, 40]
        assert headline.rows[1].font_color == "#000000"

    def test_empty_base_uses_row_fallback(self):
        base = HeadlineSettings(rows=())
        fallback = TextSettings(font_size=77)
        headline = HeadlineSettings.from_dict({"rows": [{}]}, base, fallback)
        assert headline.rows[0].font_size == 77


class TestDesignSettings:
    """Tests for DesignSettings.from_dict."""

    def test_logo_size_clamped(self):
        assert DesignSettings.from_dict({"logoSize": 500}).logo_size == 150
        assert DesignSettings.from_dict({"logoSize": 10}).logo_size == 50

    def test_logo_opacity_clamped(self):
        assert DesignSettings.from_dict({"logoOpacity": -1}).logo_opacity == 0.0

    def test_cta_icons_capped(self):
        icons = [{"id": str(i), "dataUrl": "x.png"} for i in range(6)]
        cta = CTAButton.from_dict({"enabled": True, "icons": icons})
        assert len(cta.icons) == 4
        assert cta.enabled is True

    def test_unknown_logo_position_keeps_default(self):
        assert DesignSettings.from_dict({"logoPosition": "somewhere"}).logo_position == "top-right"


class TestProjectSizes:
    """Tests for project size helpers."""

    @pytest.mark.parametrize("size, expected", [
        ("12x12", 1.0),
        ("16x9", 16 / 9),
        ("9x16", 9 / 16),
        ("bogus", 1.0),
        ("4x0", 1.0),
    ])
    def test_aspect_ratio(self, size, expected):
        assert project_aspect_ratio(size) == pytest.approx(expected)

    def test_dimensions(self):
        assert project_dimensions("16x9") == (1024, 576)
        assert project_dimensions("unknown") == (1024, 1024)


class TestCampaignAndBrand:
    """Tests for Campaign and BrandAssets helpers."""

    def test_headline_rows(self):
        assert Campaign(headline="A\r\nB").headline_rows() == ["A", "B"]
        assert Campaign(headline="").headline_rows() == []

    def test_primary_logo_fallback(self):
        logos = [BrandLogo("a", "a.png"), BrandLogo("b", "b.png")]
        assert BrandAssets(logos=logos, primary_logo_index=1).primary_logo().name == "b"
        assert BrandAssets(logos=logos, primary_logo_index=7).primary_logo().name == "a"
        assert BrandAssets().primary_logo() is None


class TestTemplates:
    """Tests for the built-in design templates."""

    def test_ids_and_logo_placement(self):
        assert list(TEMPLATES) == ["t1", "t2", "t3", "t4"]
        assert [(t.design.logo_position, t.design.logo_size) for t in TEMPLATES.values()] == [
            ("top-right", 90),
            ("bottom-center", 80),
            ("bottom-right", 110),
            ("bottom-left", 100),
        ]

    @pytest.mark.parametrize("template_id", ["t1", "t2", "t3", "t4"])
    def test_headline_and_subheadline_share_position(self, template_id):
        design = TEMPLATES[template_id].design
        assert design.headline.vertical_position == design.headline.rows[0].vertical_position
        assert design.subheadline.vertical_position == design.headline.vertical_position
        assert design.subheadline.text_align == design.headline.rows[0].text_align
        assert design.cta_button.enabled is False
