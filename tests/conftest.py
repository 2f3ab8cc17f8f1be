"""
Shared pytest fixtures for campaign canvas tests.
"""
import base64
import os
import sys
from io import BytesIO

import pytest
from PIL import Image

# Add the project root to the path so tests run without an install
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from campaign_canvas.models import Campaign, CampaignImage  # noqa: E402


def to_data_uri(img, fmt="PNG"):
    """Encode a PIL image as a base64 data URI."""
    buffer = BytesIO()
    img.save(buffer, format=fmt)
    mime = "image/png" if fmt == "PNG" else "image/jpeg"
    return f"data:{mime};base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def decode_data_uri(uri):
    """Decode a base64 data URI back into a PIL image."""
    _, _, payload = uri.partition(",")
    return Image.open(BytesIO(base64.b64decode(payload)))


@pytest.fixture
def make_png(tmp_path):
    """Factory writing a solid-color PNG and returning its path as a string."""
    def _make(name="bg.png", size=(480, 480), color=(128, 128, 128)):
        path = tmp_path / name
        Image.new("RGB", size, color).save(path, format="PNG")
        return str(path)
    return _make


@pytest.fixture
def gray_background(make_png):
    """A 480x480 mid-gray background image on disk."""
    return make_png("gray.png", (480, 480), (128, 128, 128))


@pytest.fixture
def campaign():
    """A campaign with a two-row headline and a subheadline."""
    return Campaign(
        headline="Summer\nSale",
        subheadline="Up to 50% off everything",
        description="Seasonal discount campaign",
        hashtags=["#summer", "#sale"],
        id="summer-sale",
    )


@pytest.fixture
def campaign_image(gray_background):
    """A campaign image backed by the gray background."""
    return CampaignImage(id="hero", src=gray_background)


@pytest.fixture
def unreachable_image(tmp_path):
    """A campaign image whose source does not exist."""
    return CampaignImage(id="missing", src=str(tmp_path / "does-not-exist.png"))
