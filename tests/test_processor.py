"""
Unit tests for processor and cli modules.
"""
import json

import pytest
import yaml
from PIL import Image

from campaign_canvas import cli, processor
from campaign_canvas.exceptions import LayoutAnalysisError
from campaign_canvas.models import RenderJob, UserPlan
from campaign_canvas.processor import MANIFEST_NAME, render_campaign


@pytest.fixture
def job(campaign, campaign_image, unreachable_image):
    """A job with one renderable image and one broken one."""
    campaign.images = [campaign_image, unreachable_image]
    return RenderJob(campaign=campaign, project_size="16x9")


class TestRenderCampaign:
    """Tests for render_campaign function."""

    def test_writes_outputs_and_manifest(self, job, tmp_path):
        manifest = render_campaign(job, tmp_path)

        out_dir = tmp_path / "summer-sale"
        assert (out_dir / "hero.png").exists()
        assert (out_dir / "hero-thumb.jpg").exists()
        # The placeholder is still written for a failed image.
        assert (out_dir / "missing.png").exists()

        with Image.open(out_dir / "hero.png") as img:
            assert img.size == (1024, 576)
        with Image.open(out_dir / "hero-thumb.jpg") as thumb:
            assert thumb.size == (400, 225)

        saved = json.loads((out_dir / MANIFEST_NAME).read_text(encoding="utf-8"))
        assert saved == manifest
        assert manifest["rendered"] == 1
        assert manifest["failed"] == 1
        assert [e["status"] for e in manifest["images"]] == ["rendered", "failed"]
        assert manifest["user_plan"] == UserPlan.CREATOR
        assert manifest["template"] is None

    def test_plan_override(self, job, tmp_path):
        manifest = render_campaign(job, tmp_path, user_plan=UserPlan.STARTER)
        assert manifest["user_plan"] == UserPlan.STARTER

    def test_analyze_folds_suggestion_into_override(self, job, tmp_path, monkeypatch):
        seen = []

        def fake_analyze(src, use_ai_mode=False):
            seen.append((src, use_ai_mode))
            if "does-not-exist" in src:
                raise LayoutAnalysisError("unreadable")
            return {"headline": {"verticalPosition": "top"}}

        original_render = processor.render_image
        rendered_designs = {}

        def spy_render(job, image, out_dir, user_plan):
            rendered_designs[image.id] = image.design
            return original_render(job, image, out_dir, user_plan)

        monkeypatch.setattr(processor, "analyze_layout", fake_analyze)
        monkeypatch.setattr(processor, "render_image", spy_render)

        manifest = render_campaign(job, tmp_path, analyze=True, use_ai=True)

        assert [flag for _, flag in seen] == [True, True]
        assert rendered_designs["hero"]["headline"]["verticalPosition"] == "top"
        assert rendered_designs["missing"] == {}
        assert [e["layout_suggestion_applied"] for e in manifest["images"]] == [True, False]
        # The caller's images are left untouched.
        assert job.campaign.images[0].design == {}


class TestCli:
    """End-to-end tests through cli.main."""

    def write_job(self, tmp_path, make_png, images):
        make_png("hero.png", (200, 120), (40, 90, 160))
        path = tmp_path / "job.yaml"
        path.write_text(yaml.safe_dump({
            "project_size": "16x9",
            "campaign": {"id": "launch", "headline": "Launch day"},
            "images": images,
        }), encoding="utf-8")
        return path

    def test_success_exit_code(self, tmp_path, make_png):
        job_path = self.write_job(tmp_path, make_png, [{"id": "hero", "src": "hero.png"}])
        out = tmp_path / "out"

        assert cli.main(["--job", str(job_path), "--output", str(out)]) == 0
        assert (out / "launch" / "hero.png").exists()

    def test_failed_image_exit_code(self, tmp_path, make_png):
        job_path = self.write_job(tmp_path, make_png, [
            {"id": "hero", "src": "hero.png"},
            {"id": "gone", "src": "gone.png"},
        ])
        out = tmp_path / "out"

        assert cli.main(["--job", str(job_path), "--output", str(out), "--plan", "Starter"]) == 1
        manifest = json.loads((out / "launch" / MANIFEST_NAME).read_text(encoding="utf-8"))
        assert manifest["user_plan"] == "Starter"
        assert manifest["failed"] == 1

    def test_analyze_flag_runs_grid_analysis(self, tmp_path, make_png):
        job_path = self.write_job(tmp_path, make_png, [{"id": "hero", "src": "hero.png"}])
        out = tmp_path / "out"

        assert cli.main(["--job", str(job_path), "--output", str(out), "--analyze"]) == 0
        manifest = json.loads((out / "launch" / MANIFEST_NAME).read_text(encoding="utf-8"))
        assert manifest["images"][0]["layout_suggestion_applied"] is True

    def test_rejects_unknown_plan(self, tmp_path):
        with pytest.raises(SystemExit):
            cli.parse_args(["--job", "j.yaml", "--output", str(tmp_path), "--plan", "Gold"])

    def test_ai_flag_parsed(self, tmp_path):
        args = cli.parse_args(["--job", "j.yaml", "--output", str(tmp_path), "--ai"])
        assert args.ai is True
        assert args.plan is None
