from __future__ import annotations

"""
Media source resolution: turn a ``src`` string into a decoded Pillow image.

Sources may be ``data:`` URIs, ``http(s)`` URLs or filesystem paths. Video
sources are reduced to a still frame taken 100 ms in, which is what the
renderer and the layout analyzer draw. Every load runs under an explicit
timeout and every failure surfaces as ``MediaLoadError``.
"""

import base64
import binascii
import logging
import os
import re
import tempfile
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout, wait
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar
from urllib.parse import unquote_to_bytes, urlparse

import cv2
import requests
from PIL import Image, UnidentifiedImageError

from . import config
from .exceptions import MediaLoadError
from .models import CTAIcon


T = TypeVar("T")

_VIDEO_EXTENSIONS = (".mp4", ".webm", ".mov", ".m4v", ".ogv", ".ogg", ".avi", ".mkv")
_DATA_URI = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^,;]*)*?)(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)


@dataclass
class LoadedMedia:
    image: Image.Image
    is_video: bool = False

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size


@dataclass
class LoadedIcon:
    icon: CTAIcon
    image: Image.Image


def is_video_source(src: str) -> bool:
    """Guess whether ``src`` points at a video from its MIME type or extension."""
    if not src:
        return False
    if src.startswith("data:"):
        return src[5:].lower().startswith("video/")
    path = urlparse(src).path if "://" in src else src
    return path.lower().endswith(_VIDEO_EXTENSIONS)


def _run_with_timeout(fn: Callable[[], T], timeout: float, what: str) -> T:
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(fn)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout as exc:
        raise MediaLoadError(f"Timed out after {timeout:.1f}s loading {what}") from exc
    finally:
        # A stuck decode must not keep the caller waiting on shutdown.
        executor.shutdown(wait=False, cancel_futures=True)


def _describe(src: str) -> str:
    return src[:48] + "..." if len(src) > 48 else src


def _decode_data_uri(src: str) -> bytes:
    match = _DATA_URI.match(src)
    if not match:
        raise MediaLoadError("Malformed data URI")
    payload = match.group("data")
    if match.group("b64"):
        try:
            return base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as exc:
            raise MediaLoadError(f"Invalid base64 payload in data URI: {exc}") from exc
    return unquote_to_bytes(payload)


def read_source_bytes(src: str, timeout: float) -> bytes:
    """Fetch the raw bytes behind a data URI, URL or file path."""
    if src.startswith("data:"):
        return _decode_data_uri(src)

    if src.startswith(("http://", "https://")):
        try:
            response = requests.get(src, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise MediaLoadError(f"Failed to fetch {_describe(src)}: {exc}") from exc
        return response.content

    path = Path(src[7:] if src.startswith("file://") else src)
    if not path.exists():
        raise MediaLoadError(f"Media file not found at {path}")
    try:
        return path.read_bytes()
    except OSError as exc:
        raise MediaLoadError(f"Failed to read {path}: {exc}") from exc


def _decode_image(data: bytes, src: str) -> Image.Image:
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
        raise MediaLoadError(f"Failed to load image {_describe(src)}: {exc}") from exc
    return img


def load_image(src: str, timeout: Optional[float] = None) -> Image.Image:
    """Load a still image, raising ``MediaLoadError`` on any failure."""
    if not src:
        raise MediaLoadError("Empty image source")
    timeout = config.MEDIA_LOAD_TIMEOUT_S if timeout is None else timeout
    return _run_with_timeout(
        lambda: _decode_image(read_source_bytes(src, timeout), src),
        timeout,
        f"image {_describe(src)}",
    )


def _grab_frame(location: str, at_seconds: float) -> Image.Image:
    capture = cv2.VideoCapture(location)
    try:
        if not capture.isOpened():
            raise MediaLoadError(f"Failed to load video {_describe(location)}")
        capture.set(cv2.CAP_PROP_POS_MSEC, at_seconds * 1000.0)
        ok, frame = capture.read()
        if not ok or frame is None:
            raise MediaLoadError(f"Failed to seek video {_describe(location)} to {at_seconds:.1f}s")
        return Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
    finally:
        capture.release()


def load_video_frame(src: str, timeout: Optional[float] = None, at_seconds: float = 0.1) -> Image.Image:
    """Decode the frame at ``at_seconds`` of a video source."""
    if not src:
        raise MediaLoadError("Empty video source")
    timeout = config.MEDIA_LOAD_TIMEOUT_S if timeout is None else timeout

    def grab() -> Image.Image:
        if not src.startswith("data:"):
            return _grab_frame(src, at_seconds)
        # OpenCV only reads from paths or URLs, so spool the payload.
        data = _decode_data_uri(src)
        fd, tmp_path = tempfile.mkstemp(suffix=".mp4")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            return _grab_frame(tmp_path, at_seconds)
        finally:
            os.unlink(tmp_path)

    return _run_with_timeout(grab, timeout, f"video {_describe(src)}")


def load_media(src: str, timeout: Optional[float] = None, is_video: Optional[bool] = None) -> LoadedMedia:
    """Load a background source as a still image, taking a frame from videos."""
    video = is_video_source(src) if is_video is None else (is_video or is_video_source(src))
    if video:
        return LoadedMedia(load_video_frame(src, timeout), is_video=True)
    return LoadedMedia(load_image(src, timeout), is_video=False)


def load_icons(icons: Sequence[CTAIcon], timeout: Optional[float] = None) -> List[LoadedIcon]:
    """
    Load CTA icons concurrently, dropping any icon that fails or times out.

    The surviving icons keep their configured order.
    """
    if not icons:
        return []
    timeout = config.ICON_LOAD_TIMEOUT_S if timeout is None else timeout

    executor = ThreadPoolExecutor(max_workers=min(4, len(icons)))
    try:
        futures = [
            executor.submit(lambda i=icon: _decode_image(read_source_bytes(i.data_url, timeout), i.data_url))
            for icon in icons
        ]
        # One shared deadline for the whole set, not one per icon.
        done, _ = wait(futures, timeout=timeout)
        loaded: List[LoadedIcon] = []
        for icon, future in zip(icons, futures):
            if future not in done:
                logging.warning("CTA icon %s timed out after %.1fs; skipping it.", icon.id, timeout)
                continue
            try:
                loaded.append(LoadedIcon(icon=icon, image=future.result()))
            except MediaLoadError as exc:
                logging.warning("CTA icon %s failed to load (%s); skipping it.", icon.id, exc)
        return loaded
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
