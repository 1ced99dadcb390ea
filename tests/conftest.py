"""Shared test fixtures for vidnorm."""

import json
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from vidnorm.domain.models import (
    ContainerFormat,
    MediaDescriptor,
    StreamDescriptor,
    StreamKind,
)
from vidnorm.introspector.parsers import parse_ffprobe_output

FFPROBE_FIXTURES_DIR = Path(__file__).parent / "fixtures" / "ffprobe"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test isolation."""
    dir_path = tempfile.mkdtemp()
    yield Path(dir_path)
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture
def load_ffprobe_fixture() -> Callable[[str], dict]:
    """Return a loader for ffprobe JSON fixtures by name.

    The loader takes the fixture file name without the .json extension.
    """

    def _load(name: str) -> dict:
        fixture_path = FFPROBE_FIXTURES_DIR / f"{name}.json"
        return json.loads(fixture_path.read_text())

    return _load


@pytest.fixture
def media_from_fixture(
    load_ffprobe_fixture: Callable[[str], dict],
) -> Callable[..., MediaDescriptor]:
    """Return a factory parsing an ffprobe fixture into a MediaDescriptor."""

    def _parse(name: str, path: Path | None = None, **kwargs: Any) -> MediaDescriptor:
        data = load_ffprobe_fixture(name)
        return parse_ffprobe_output(path or Path(f"/media/{name}.bin"), data, **kwargs)

    return _parse


def _video(index: int = 0, **overrides: Any) -> StreamDescriptor:
    values: dict[str, Any] = {
        "index": index,
        "kind": StreamKind.VIDEO,
        "codec": "h264",
        "language": "und",
        "is_default": True,
        "duration_seconds": 60.0,
        "width": 1920,
        "height": 1080,
        "sample_aspect_ratio": (1, 1),
        "pixel_format": "yuv420p",
        "bit_depth": 8,
        "chroma_subsampling": 420,
        "color_primaries": "bt709",
        "color_transfer": "bt709",
        "color_space": "bt709",
        "color_range": "tv",
        "frame_rate": 30.0,
    }
    values.update(overrides)
    return StreamDescriptor(**values)


def _audio(index: int = 1, **overrides: Any) -> StreamDescriptor:
    values: dict[str, Any] = {
        "index": index,
        "kind": StreamKind.AUDIO,
        "codec": "aac",
        "language": "eng",
        "is_default": True,
        "duration_seconds": 60.0,
        "channels": 2,
        "channel_layout": "stereo",
        "sample_rate": 48000,
    }
    values.update(overrides)
    return StreamDescriptor(**values)


def _media(*streams: StreamDescriptor, **overrides: Any) -> MediaDescriptor:
    values: dict[str, Any] = {
        "path": Path("/media/input.mp4"),
        "container_format": ContainerFormat.MP4,
        "format_name": "mov,mp4,m4a,3gp,3g2,mj2",
        "streams": streams,
        "duration_seconds": 60.0,
        "start_time_offset": 0.0,
        "faststart": True,
    }
    values.update(overrides)
    return MediaDescriptor(**values)


@pytest.fixture
def video_stream() -> Callable[..., StreamDescriptor]:
    """Factory for an SDR 1080p30 H.264 video stream; keywords override fields."""
    return _video


@pytest.fixture
def audio_stream() -> Callable[..., StreamDescriptor]:
    """Factory for a stereo 48 kHz AAC audio stream; keywords override fields."""
    return _audio


@pytest.fixture
def make_media() -> Callable[..., MediaDescriptor]:
    """Factory for a faststart MP4 descriptor holding the given streams."""
    return _media


@pytest.fixture
def h264_aac_mp4(
    video_stream: Callable[..., StreamDescriptor],
    audio_stream: Callable[..., StreamDescriptor],
    make_media: Callable[..., MediaDescriptor],
) -> MediaDescriptor:
    """A plain H.264/AAC faststart MP4 that needs no work under defaults."""
    return make_media(video_stream(0), audio_stream(1))
