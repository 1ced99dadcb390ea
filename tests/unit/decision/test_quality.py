"""Tests for the quality and compression tables."""

import pytest

from vidnorm.decision.quality import (
    PRESET_ORDER,
    audio_bitrate_for,
    crf_for,
    preset_for,
)
from vidnorm.options.types import AudioQuality, VideoCompressionLevel, VideoQuality


def _ascending(enum_cls):
    return sorted(enum_cls, key=int)


class TestCrfMonotonicity:
    """Higher quality never raises the CRF."""

    @pytest.mark.parametrize("codec", ["h264", "hevc", "vp9", "av1"])
    def test_crf_decreases_with_quality(self, codec: str) -> None:
        crfs = [crf_for(codec, q) for q in _ascending(VideoQuality)]
        assert all(a > b for a, b in zip(crfs, crfs[1:], strict=False))

    def test_h264_medium(self) -> None:
        assert crf_for("h264", VideoQuality.MEDIUM) == 23

    def test_unsupported_codec(self) -> None:
        assert crf_for("mpeg2video", VideoQuality.MEDIUM) is None


class TestPresetMonotonicity:
    """Higher compression never selects a faster preset."""

    @pytest.mark.parametrize("codec", ["h264", "hevc"])
    def test_preset_slows_with_compression(self, codec: str) -> None:
        ranks = [
            PRESET_ORDER.index(preset_for(codec, level))
            for level in _ascending(VideoCompressionLevel)
        ]
        assert all(a < b for a, b in zip(ranks, ranks[1:], strict=False))

    def test_medium_is_medium(self) -> None:
        assert preset_for("h264", VideoCompressionLevel.MEDIUM) == "medium"

    @pytest.mark.parametrize("codec", ["vp9", "av1"])
    def test_other_encoders_have_no_preset(self, codec: str) -> None:
        assert preset_for(codec, VideoCompressionLevel.HIGHEST) is None


class TestAudioBitrate:
    """Tests for audio_bitrate_for."""

    @pytest.mark.parametrize("codec", ["aac", "opus", "mp3"])
    def test_bitrate_increases_with_quality(self, codec: str) -> None:
        rates = [audio_bitrate_for(codec, q, 2) for q in _ascending(AudioQuality)]
        assert all(a < b for a, b in zip(rates, rates[1:], strict=False))

    def test_scales_with_channels(self) -> None:
        assert audio_bitrate_for("aac", AudioQuality.MEDIUM, 2) == 256_000
        assert audio_bitrate_for("aac", AudioQuality.MEDIUM, 6) == 768_000

    def test_zero_channels_counts_as_one(self) -> None:
        assert audio_bitrate_for("aac", AudioQuality.MEDIUM, 0) == 128_000

    def test_opus_needs_less_than_aac(self) -> None:
        assert audio_bitrate_for("opus", AudioQuality.MEDIUM, 2) < audio_bitrate_for(
            "aac", AudioQuality.MEDIUM, 2
        )

    @pytest.mark.parametrize("codec", ["flac", "alac"])
    def test_lossless_has_no_bitrate(self, codec: str) -> None:
        assert audio_bitrate_for(codec, AudioQuality.HIGHEST, 2) is None
