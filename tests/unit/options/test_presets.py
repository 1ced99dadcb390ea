"""Tests for named option presets."""

import pytest

from vidnorm.domain.models import ContainerFormat
from vidnorm.options.presets import (
    PRESERVE,
    PRESETS,
    STANDARDIZED_H264_AAC_MP4,
    STANDARDIZED_HEVC_AAC_MP4,
    THUMBNAIL_STANDARD,
    get_preset,
)
from vidnorm.options.types import MetadataStrippingMode, ReencodeMode


class TestStandardizedPresets:
    """Tests for the standardized MP4 presets."""

    @pytest.mark.parametrize(
        "preset,codec",
        [(STANDARDIZED_H264_AAC_MP4, "h264"), (STANDARDIZED_HEVC_AAC_MP4, "hevc")],
    )
    def test_mp4_only(self, preset, codec) -> None:
        assert preset.result_formats == frozenset({ContainerFormat.MP4})
        assert preset.result_video_codecs == (codec,)
        assert preset.result_audio_codecs == ("aac",)

    def test_h264_preset_limits(self) -> None:
        p = STANDARDIZED_H264_AAC_MP4
        assert p.video_reencode_mode == ReencodeMode.ALWAYS
        assert p.audio_reencode_mode == ReencodeMode.IF_NEEDED
        assert p.metadata_stripping_mode == MetadataStrippingMode.THUMBNAIL_ONLY
        assert p.max_bits_per_channel == 8
        assert p.max_chroma_subsampling == 420
        assert p.max_frame_rate == 60
        assert p.max_channels == 2
        assert p.audio_sample_rate == 48000
        assert p.force_progressive_download is True
        assert p.force_progressive_frames is True
        assert p.remap_hdr_to_sdr is True
        assert p.force_square_pixels is True

    def test_preserve_keeps_unrecognized_streams(self) -> None:
        assert PRESERVE.try_preserve_unrecognized_streams is True
        assert PRESERVE.metadata_stripping_mode == MetadataStrippingMode.NONE

    def test_thumbnail_standard_timestamps(self) -> None:
        assert THUMBNAIL_STANDARD.image_timestamp == 5.0
        assert THUMBNAIL_STANDARD.image_timestamp_fraction == 0.3


class TestGetPreset:
    """Tests for get_preset."""

    def test_lookup_by_name(self) -> None:
        assert get_preset("preserve") is PRESERVE

    @pytest.mark.parametrize(
        "name",
        [
            "standardized-h264-aac-mp4",
            "STANDARDIZED_H264_AAC_MP4",
            "  Standardized-H264-AAC-MP4 ",
        ],
    )
    def test_name_normalization(self, name: str) -> None:
        assert get_preset(name) is STANDARDIZED_H264_AAC_MP4

    def test_unknown_preset_lists_available(self) -> None:
        with pytest.raises(KeyError, match="Available"):
            get_preset("nope")

    def test_registry_contains_all_presets(self) -> None:
        assert set(PRESETS) == {
            "standardized-h264-aac-mp4",
            "standardized-hevc-aac-mp4",
            "preserve",
        }
