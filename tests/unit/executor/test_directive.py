"""Tests for translating decision plans into ffmpeg directives."""

from pathlib import Path

import pytest

from vidnorm.decision.engine import resolve
from vidnorm.domain.models import ContainerFormat
from vidnorm.executor.directive import Directive, emit
from vidnorm.options.merge import OptionsOverride, merge_options
from vidnorm.options.presets import PRESERVE, STANDARDIZED_H264_AAC_MP4
from vidnorm.options.types import (
    MetadataStrippingMode,
    ProcessingOptions,
    ReencodeMode,
)

OUTPUT = Path("/out/result.mp4")

REQUIRED = ProcessingOptions(metadata_stripping_mode=MetadataStrippingMode.REQUIRED)


def _value_after(args, flag):
    args = list(args)
    return args[args.index(flag) + 1]


class TestEmitRemux:
    """Stream copy directives."""

    def test_noop_plan_rejected(self, h264_aac_mp4) -> None:
        plan = resolve(h264_aac_mp4, ProcessingOptions())
        with pytest.raises(ValueError, match="NOOP"):
            emit(plan, OUTPUT)

    def test_metadata_strip_remux(self, h264_aac_mp4) -> None:
        """Full argument list for a copy-only remux that strips metadata."""
        directive = emit(resolve(h264_aac_mp4, REQUIRED), OUTPUT)
        assert directive.args == (
            "-nostdin",
            "-hide_banner",
            "-y",
            "-noautorotate",
            "-i",
            "/media/input.mp4",
            "-map_chapters",
            "-1",
            "-map",
            "0",
            "-map_metadata:g",
            "-1",
            "-map_metadata:s:0",
            "-1",
            "-map_metadata:s:1",
            "-1",
            "-c:0",
            "copy",
            "-c:1",
            "copy",
            "-metadata:s:1",
            "language=eng",
            "-disposition:0",
            "default",
            "-disposition:1",
            "default",
            "-movflags",
            "+use_metadata_tags",
            "-xerror",
            "-f",
            "mp4",
        )
        assert directive.input_path == Path("/media/input.mp4")
        assert directive.output_path == OUTPUT
        assert directive.output_format == ContainerFormat.MP4
        assert directive.description == "remux input.mp4 -> mp4"

    def test_start_offset_preserved(self, media_from_fixture) -> None:
        media = media_from_fixture("interlaced_mpeg2_ts")
        opts = ProcessingOptions(result_formats=frozenset({ContainerFormat.MP4}))
        args = list(emit(resolve(media, opts), OUTPUT).args)
        assert args.index("-copyts") < args.index("-i")

    def test_start_offset_dropped_when_stripping(self, media_from_fixture) -> None:
        media = media_from_fixture("interlaced_mpeg2_ts")
        opts = ProcessingOptions(
            result_formats=frozenset({ContainerFormat.MP4}),
            metadata_stripping_mode=MetadataStrippingMode.REQUIRED,
        )
        assert "-copyts" not in emit(resolve(media, opts), OUTPUT).args

    def test_dropped_streams_are_unmapped(self, media_from_fixture) -> None:
        media = media_from_fixture("hevc_hdr10_mkv")
        directive = emit(resolve(media, ProcessingOptions()), Path("/out/result.mkv"))
        args = list(directive.args)
        assert ["-map", "0", "-map", "-0:2", "-map", "-0:3"] == args[
            args.index("-map") : args.index("-map") + 6
        ]
        assert "-movflags" not in args
        assert _value_after(args, "-f") == "matroska"
        assert "-copy_unknown" not in args

    def test_chapters_kept_unless_stripping(self, media_from_fixture) -> None:
        media = media_from_fixture("hevc_hdr10_mkv")
        plan = resolve(media, ProcessingOptions())
        assert _value_after(emit(plan, OUTPUT).args, "-map_chapters") == "0"

    def test_rotation_cleared(self, media_from_fixture) -> None:
        media = media_from_fixture("cover_art_rotated_mp4")
        args = list(emit(resolve(media, REQUIRED), OUTPUT).args)
        assert args[4:6] == ["-display_rotation:v:0", "0"]
        # Cover art is dropped along with the metadata
        assert "-0:2" in args
        assert "-disposition:2" not in args

    def test_rotation_untouched_otherwise(self, media_from_fixture) -> None:
        media = media_from_fixture("cover_art_rotated_mp4")
        opts = ProcessingOptions(force_progressive_download=True)
        directive = emit(resolve(media, opts), OUTPUT)
        assert not any(a.startswith("-display_rotation") for a in directive.args)

    def test_hevc_copy_into_mp4_tagged(
        self, make_media, video_stream, audio_stream
    ) -> None:
        media = make_media(video_stream(0, codec="hevc"), audio_stream(1))
        args = emit(resolve(media, REQUIRED), OUTPUT).args
        assert _value_after(args, "-tag:0") == "hvc1"

    def test_preferred_strips_stream_tags_when_rewriting(self, h264_aac_mp4) -> None:
        opts = ProcessingOptions(
            metadata_stripping_mode=MetadataStrippingMode.PREFERRED,
            audio_reencode_mode=ReencodeMode.ALWAYS,
        )
        args = list(emit(resolve(h264_aac_mp4, opts), OUTPUT).args)
        assert _value_after(args, "-map_metadata:g") == "-1"
        assert _value_after(args, "-map_metadata:s:0") == "-1"
        assert _value_after(args, "-map_metadata:s:1") == "-1"
        assert _value_after(args, "-metadata:s:1") == "language=eng"

    def test_copy_unknown_with_preserve(self, media_from_fixture) -> None:
        media = media_from_fixture("hevc_hdr10_mkv")
        opts = merge_options(
            PRESERVE,
            OptionsOverride(metadata_stripping_mode=MetadataStrippingMode.REQUIRED),
        )
        args = emit(resolve(media, opts), Path("/out/result.mkv")).args
        assert "-copy_unknown" in args
        assert args.index("-copy_unknown") < args.index("-xerror")


class TestEmitReencode:
    """Re-encode directives."""

    def test_broadcast_source(self, media_from_fixture) -> None:
        media = media_from_fixture("interlaced_mpeg2_ts")
        directive = emit(resolve(media, STANDARDIZED_H264_AAC_MP4), OUTPUT)
        args = list(directive.args)

        assert _value_after(args, "-c:0") == "libx264"
        assert _value_after(args, "-crf:0").isdigit()
        assert _value_after(args, "-filter:0").startswith("bwdif=")
        assert _value_after(args, "-c:1") == "aac"
        assert _value_after(args, "-metadata:s:1") == "language=ger"
        assert _value_after(args, "-movflags") == "+faststart+use_metadata_tags"
        assert directive.description == "reencode interlaced_mpeg2_ts.bin -> mp4"

    def test_hdr_color_tags(self, media_from_fixture) -> None:
        media = media_from_fixture("hevc_hdr10_mkv")
        args = emit(resolve(media, STANDARDIZED_H264_AAC_MP4), OUTPUT).args
        assert _value_after(args, "-color_trc:0") == "bt709"
        assert _value_after(args, "-ac:1") == "2"
        assert "-c:2" not in args
        assert "-0:2" in args

    def test_vp9_constant_quality(
        self, make_media, video_stream, audio_stream
    ) -> None:
        media = make_media(video_stream(0), audio_stream(1))
        opts = ProcessingOptions(result_formats=frozenset({ContainerFormat.WEBM}))
        directive = emit(resolve(media, opts), Path("/out/result.webm"))
        args = list(directive.args)
        assert _value_after(args, "-c:0") == "libvpx-vp9"
        assert _value_after(args, "-b:0") == "0"
        assert _value_after(args, "-c:1") == "libopus"
        assert _value_after(args, "-f") == "webm"
        assert "-movflags" not in args

    def test_video_language_und_not_written(self, media_from_fixture) -> None:
        media = media_from_fixture("interlaced_mpeg2_ts")
        args = emit(resolve(media, STANDARDIZED_H264_AAC_MP4), OUTPUT).args
        assert "-metadata:s:0" not in args


class TestDirective:
    """Tests for the Directive value object."""

    def test_argv_default_output(self) -> None:
        directive = Directive(
            args=("-i", "in.mkv"),
            input_path=Path("in.mkv"),
            output_path=Path("out.mp4"),
            description="test",
        )
        assert directive.argv("ffmpeg") == ["ffmpeg", "-i", "in.mkv", "out.mp4"]

    def test_argv_redirected_output(self) -> None:
        directive = Directive(
            args=("-i", "in.mkv"),
            input_path=Path("in.mkv"),
            output_path=Path("out.mp4"),
            description="test",
        )
        argv = directive.argv(Path("/usr/bin/ffmpeg"), Path("/tmp/partial.mp4"))
        assert argv == ["/usr/bin/ffmpeg", "-i", "in.mkv", "/tmp/partial.mp4"]
