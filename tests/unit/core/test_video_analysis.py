"""Tests for video stream analysis utilities."""

import pytest

from vidnorm.core.video_analysis import (
    HDRType,
    PixelFormatInfo,
    detect_hdr_type,
    is_known_sdr,
    parse_frame_rate,
    parse_pixel_format,
    yuv_pixel_format,
)


class TestParseFrameRate:
    """Tests for parse_frame_rate."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("30/1", 30.0),
            ("25", 25.0),
            ("0/0", None),
            ("30/0", None),
            ("abc", None),
            ("a/b", None),
            (None, None),
            ("", None),
        ],
    )
    def test_values(self, value, expected) -> None:
        assert parse_frame_rate(value) == expected

    def test_ntsc(self) -> None:
        assert parse_frame_rate("24000/1001") == pytest.approx(23.976, rel=1e-4)


class TestParsePixelFormat:
    """Tests for parse_pixel_format."""

    @pytest.mark.parametrize(
        "pix_fmt,expected",
        [
            ("yuv420p", PixelFormatInfo(8, 420, True)),
            ("yuvj422p", PixelFormatInfo(8, 422, True)),
            ("p010le", PixelFormatInfo(10, 420, True)),
            ("gbrp12le", PixelFormatInfo(12, 444, False)),
            ("YUV444P10LE", PixelFormatInfo(10, 444, True)),
        ],
    )
    def test_known(self, pix_fmt, expected) -> None:
        assert parse_pixel_format(pix_fmt) == expected

    def test_unknown_guessed_from_name(self) -> None:
        assert parse_pixel_format("yuva420p10be") == PixelFormatInfo(10, 420, True)
        assert parse_pixel_format("yuv422p14le") == PixelFormatInfo(14, 422, True)

    @pytest.mark.parametrize("pix_fmt", [None, "", "rgb24", "bayer_rggb8"])
    def test_unknown(self, pix_fmt) -> None:
        assert parse_pixel_format(pix_fmt) is None


class TestYuvPixelFormat:
    """Tests for yuv_pixel_format."""

    @pytest.mark.parametrize(
        "depth,subsampling,expected",
        [
            (8, 420, "yuv420p"),
            (10, 420, "yuv420p10le"),
            (12, 444, "yuv444p12le"),
            (10, 422, "yuv422p10le"),
        ],
    )
    def test_names(self, depth, subsampling, expected) -> None:
        assert yuv_pixel_format(depth, subsampling) == expected

    def test_round_trips_through_parser(self) -> None:
        info = parse_pixel_format(yuv_pixel_format(10, 422))
        assert (info.bit_depth, info.chroma_subsampling) == (10, 422)


class TestDetectHdrType:
    """Tests for detect_hdr_type."""

    def test_pq(self) -> None:
        assert detect_hdr_type("smpte2084", "bt2020", "bt2020nc") == HDRType.HDR10

    def test_hlg(self) -> None:
        assert detect_hdr_type("arib-std-b67", "bt2020", "bt2020nc") == HDRType.HLG

    def test_bt709(self) -> None:
        assert detect_hdr_type("bt709", "bt709", "bt709") == HDRType.NONE

    def test_untagged_is_sdr(self) -> None:
        assert detect_hdr_type(None, None, None) == HDRType.NONE
        assert detect_hdr_type("unknown", "unspecified", "") == HDRType.NONE

    def test_wide_gamut_with_sdr_transfer(self) -> None:
        assert detect_hdr_type("bt709", "bt2020", "bt2020nc") == HDRType.WIDE_GAMUT

    def test_unrecognized_transfer(self) -> None:
        assert detect_hdr_type("linear", "bt709", "bt709") == HDRType.WIDE_GAMUT

    def test_is_known_sdr(self) -> None:
        assert is_known_sdr("smpte170m", "smpte170m", "smpte170m")
        assert not is_known_sdr("smpte2084", "bt2020", "bt2020nc")
