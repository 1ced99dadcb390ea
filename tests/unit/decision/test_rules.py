"""Tests for the per-stream rule table and encode parameter builders."""

import pytest

from vidnorm.decision.rules import (
    STREAM_RULES,
    StreamContext,
    build_audio_params,
    build_subtitle_params,
    build_video_params,
    check_reencode_allowed,
    match_rule,
)
from vidnorm.decision.types import StreamAction
from vidnorm.domain.models import (
    ContainerFormat,
    FieldOrder,
    StreamDescriptor,
    StreamKind,
)
from vidnorm.exceptions import UnsupportedInputError
from vidnorm.options.types import (
    MetadataStrippingMode,
    ProcessingOptions,
    ReencodeMode,
    ResizeOptions,
)


PRESERVING = ProcessingOptions(try_preserve_unrecognized_streams=True)

@pytest.fixture
def context(make_media):
    """Factory for a StreamContext around one stream."""

    def _ctx(stream, options=None, target=ContainerFormat.MP4):
        return StreamContext(
            stream=stream,
            media=make_media(stream),
            options=options or ProcessingOptions(),
            target_format=target,
        )

    return _ctx


def _stream(kind, index=0, **kwargs):
    return StreamDescriptor(index=index, kind=kind, **kwargs)


class TestRuleTable:
    """Tests for the rule table itself."""

    def test_catch_all_is_last(self) -> None:
        assert STREAM_RULES[-1].name == "copy"
        assert STREAM_RULES[-1].action == StreamAction.COPY

    def test_rule_names_unique(self) -> None:
        names = [r.name for r in STREAM_RULES]
        assert len(names) == len(set(names))

    def test_no_matching_rule(self, context, video_stream) -> None:
        rules = tuple(r for r in STREAM_RULES if r.name != "copy")
        with pytest.raises(RuntimeError, match="no rule matched stream 0"):
            match_rule(context(video_stream()), rules)


class TestUnrecognizedStreams:
    """Attachments and data streams."""

    def test_dropped_unless_preserved(self, context) -> None:
        rule = match_rule(context(_stream(StreamKind.ATTACHMENT, codec="ttf")))
        assert rule.name == "unrecognized_not_preserved"
        assert rule.action == StreamAction.DROP

    def test_preserved_in_matroska(self, context) -> None:
        opts = ProcessingOptions(try_preserve_unrecognized_streams=True)
        rule = match_rule(
            context(_stream(StreamKind.ATTACHMENT), opts, ContainerFormat.MKV)
        )
        assert rule.name == "unrecognized_preserved"
        assert rule.action == StreamAction.COPY

    def test_dropped_when_container_cannot_carry(self, context) -> None:
        opts = ProcessingOptions(try_preserve_unrecognized_streams=True)
        rule = match_rule(context(_stream(StreamKind.OTHER), opts))
        assert rule.name == "unrecognized_unsupported_container"
        assert rule.forces_rewrite is False


class TestThumbnailStreams:
    """Cover art and attached pictures."""

    @pytest.mark.parametrize(
        "mode", [MetadataStrippingMode.THUMBNAIL_ONLY, MetadataStrippingMode.REQUIRED]
    )
    def test_stripped(self, context, video_stream, mode) -> None:
        cover = video_stream(2, codec="mjpeg", is_thumbnail=True)
        opts = ProcessingOptions(metadata_stripping_mode=mode)
        assert match_rule(context(cover, opts)).name == "thumbnail_stripped"

    def test_preferred_keeps_thumbnails(self, context, video_stream) -> None:
        cover = video_stream(2, codec="mjpeg", is_thumbnail=True)
        opts = ProcessingOptions(
            metadata_stripping_mode=MetadataStrippingMode.PREFERRED
        )
        assert match_rule(context(cover, opts)).name == "thumbnail"

    def test_kept_without_codec_checks(self, context, video_stream) -> None:
        """mjpeg is not an MP4 video codec, but cover art is copied anyway."""
        cover = video_stream(2, codec="mjpeg", is_thumbnail=True)
        opts = ProcessingOptions(video_reencode_mode=ReencodeMode.ALWAYS)
        rule = match_rule(context(cover, opts))
        assert rule.name == "thumbnail"
        assert rule.action == StreamAction.COPY

    def test_dropped_for_webm(self, context, video_stream) -> None:
        cover = video_stream(2, codec="mjpeg", is_thumbnail=True)
        rule = match_rule(context(cover, target=ContainerFormat.WEBM))
        assert rule.name == "thumbnail_unsupported_container"


class TestSubtitleStreams:
    """Subtitle copy, conversion and drop."""

    def test_dropped_unless_preserved(self, context) -> None:
        sub = _stream(StreamKind.SUBTITLE, codec="mov_text")
        rule = match_rule(context(sub))
        assert rule.name == "subtitle_not_preserved"
        assert rule.action == StreamAction.DROP
        assert rule.forces_rewrite is True

    def test_mov_text_copied_into_mp4(self, context) -> None:
        sub = _stream(StreamKind.SUBTITLE, codec="mov_text")
        assert match_rule(context(sub, PRESERVING)).name == "subtitle"

    def test_text_subtitle_converted(self, context) -> None:
        ctx = context(_stream(StreamKind.SUBTITLE, codec="subrip"), PRESERVING)
        rule = match_rule(ctx)
        assert rule.name == "subtitle_convert"
        assert build_subtitle_params(ctx).codec == "mov_text"

    def test_converted_to_srt_for_matroska(self, context) -> None:
        ctx = context(
            _stream(StreamKind.SUBTITLE, codec="mov_text"),
            PRESERVING,
            ContainerFormat.MKV,
        )
        assert match_rule(ctx).name == "subtitle_convert"
        assert build_subtitle_params(ctx).codec == "srt"

    def test_bitmap_subtitle_dropped(self, context) -> None:
        sub = _stream(StreamKind.SUBTITLE, codec="hdmv_pgs_subtitle")
        rule = match_rule(context(sub, PRESERVING))
        assert rule.name == "subtitle_unsupported_bitmap"
        assert rule.action == StreamAction.DROP

    def test_subtitle_conversion_ignores_never(self, context) -> None:
        opts = ProcessingOptions(
            video_reencode_mode=ReencodeMode.NEVER,
            audio_reencode_mode=ReencodeMode.NEVER,
            try_preserve_unrecognized_streams=True,
        )
        ctx = context(_stream(StreamKind.SUBTITLE, codec="subrip"), opts)
        check_reencode_allowed(ctx, match_rule(ctx))


class TestVideoRules:
    """Video stream rules."""

    def test_satisfied_stream_copied(self, context, video_stream) -> None:
        assert match_rule(context(video_stream())).name == "copy"

    def test_codec_not_permitted(self, context, video_stream) -> None:
        opts = ProcessingOptions(result_video_codecs=("hevc",))
        assert match_rule(context(video_stream(), opts)).name == (
            "video_codec_not_permitted"
        )

    def test_codec_not_accepted_by_target(self, context, video_stream) -> None:
        rule = match_rule(context(video_stream(codec="vp8")))
        assert rule.name == "video_codec_not_permitted"

    def test_codec_alias_permitted(self, context, video_stream) -> None:
        opts = ProcessingOptions(result_video_codecs=("avc1",))
        assert match_rule(context(video_stream(), opts)).name == "copy"

    def test_interlaced_only_with_progressive_frames(
        self, context, video_stream
    ) -> None:
        stream = video_stream(field_order=FieldOrder.TOP_FIRST)
        assert match_rule(context(stream)).name == "copy"
        opts = ProcessingOptions(force_progressive_frames=True)
        assert match_rule(context(stream, opts)).name == "deinterlace"

    def test_resize(self, context, video_stream) -> None:
        opts = ProcessingOptions(resize_options=ResizeOptions(1280, 720))
        assert match_rule(context(video_stream(), opts)).name == "resize"

    def test_hdr_only_with_remap(self, context, video_stream) -> None:
        stream = video_stream(
            color_transfer="smpte2084", color_primaries="bt2020"
        )
        assert match_rule(context(stream)).name == "copy"
        opts = ProcessingOptions(remap_hdr_to_sdr=True)
        assert match_rule(context(stream, opts)).name == "hdr_to_sdr"

    def test_frame_rate_tolerance(self, context, video_stream) -> None:
        opts = ProcessingOptions(max_frame_rate=30)
        assert match_rule(context(video_stream(frame_rate=30.005), opts)).name == (
            "copy"
        )
        assert match_rule(context(video_stream(frame_rate=59.94), opts)).name == (
            "max_frame_rate"
        )

    def test_still_image_ignores_frame_rate(self, context, video_stream) -> None:
        opts = ProcessingOptions(max_frame_rate=30)
        stream = video_stream(frame_rate=90000.0, is_still_image=True)
        assert match_rule(context(stream, opts)).name == "copy"

    def test_pixel_limits(self, context, video_stream) -> None:
        opts = ProcessingOptions(max_bits_per_channel=8)
        stream = video_stream(pixel_format="yuv420p10le", bit_depth=10)
        assert match_rule(context(stream, opts)).name == "pixel_format_limits"

    def test_square_pixels(self, context, video_stream) -> None:
        stream = video_stream(sample_aspect_ratio=(4, 3))
        assert match_rule(context(stream)).name == "copy"
        opts = ProcessingOptions(force_square_pixels=True)
        assert match_rule(context(stream, opts)).name == "square_pixels"

    def test_always(self, context, video_stream) -> None:
        opts = ProcessingOptions(video_reencode_mode=ReencodeMode.ALWAYS)
        assert match_rule(context(video_stream(), opts)).name == (
            "always_reencode_video"
        )

    def test_first_match_wins(self, context, video_stream) -> None:
        opts = ProcessingOptions(
            result_video_codecs=("hevc",),
            video_reencode_mode=ReencodeMode.ALWAYS,
        )
        assert match_rule(context(video_stream(), opts)).name == (
            "video_codec_not_permitted"
        )


class TestAudioRules:
    """Audio stream rules."""

    def test_removed(self, context, audio_stream) -> None:
        opts = ProcessingOptions(remove_audio_streams=True)
        rule = match_rule(context(audio_stream(), opts))
        assert rule.name == "remove_audio"
        assert rule.action == StreamAction.DROP

    def test_codec_not_accepted_by_webm(self, context, audio_stream) -> None:
        rule = match_rule(context(audio_stream(), target=ContainerFormat.WEBM))
        assert rule.name == "audio_codec_not_permitted"

    def test_channels(self, context, audio_stream) -> None:
        opts = ProcessingOptions(max_channels=2)
        assert match_rule(context(audio_stream(channels=6), opts)).name == (
            "max_channels"
        )
        assert match_rule(context(audio_stream(), opts)).name == "copy"

    def test_sample_rate_is_a_maximum(self, context, audio_stream) -> None:
        opts = ProcessingOptions(audio_sample_rate=48000)
        assert match_rule(context(audio_stream(sample_rate=96000), opts)).name == (
            "sample_rate"
        )
        assert match_rule(context(audio_stream(sample_rate=44100), opts)).name == (
            "copy"
        )

    def test_always(self, context, audio_stream) -> None:
        opts = ProcessingOptions(audio_reencode_mode=ReencodeMode.ALWAYS)
        assert match_rule(context(audio_stream(), opts)).name == (
            "always_reencode_audio"
        )


class TestCheckReencodeAllowed:
    """Tests for check_reencode_allowed."""

    def test_never_rejects_required_video_reencode(
        self, context, video_stream
    ) -> None:
        opts = ProcessingOptions(
            result_video_codecs=("hevc",), video_reencode_mode=ReencodeMode.NEVER
        )
        ctx = context(video_stream(), opts)
        with pytest.raises(UnsupportedInputError, match="re-encoding is disabled"):
            check_reencode_allowed(ctx, match_rule(ctx))

    def test_never_allows_copy(self, context, video_stream) -> None:
        opts = ProcessingOptions(video_reencode_mode=ReencodeMode.NEVER)
        ctx = context(video_stream(), opts)
        check_reencode_allowed(ctx, match_rule(ctx))

    def test_video_never_does_not_affect_audio(self, context, audio_stream) -> None:
        opts = ProcessingOptions(
            video_reencode_mode=ReencodeMode.NEVER, max_channels=2
        )
        ctx = context(audio_stream(channels=6), opts)
        check_reencode_allowed(ctx, match_rule(ctx))


class TestBuildVideoParams:
    """Tests for build_video_params."""

    def test_keeps_permitted_source_codec(self, context, video_stream) -> None:
        opts = ProcessingOptions(video_reencode_mode=ReencodeMode.ALWAYS)
        params = build_video_params(context(video_stream(), opts))
        assert params.codec == "h264"
        assert params.encoder == "libx264"
        assert params.crf == 23
        assert params.preset == "medium"
        assert params.profile == "high"
        assert params.filters == ("format=yuv420p",)
        assert params.codec_tag is None
        assert params.color_args == ()

    def test_first_encodable_permitted_codec(self, context, video_stream) -> None:
        opts = ProcessingOptions(result_video_codecs=("vp8", "hevc", "h264"))
        params = build_video_params(context(video_stream(codec="mpeg2video"), opts))
        assert params.codec == "hevc"
        assert params.codec_tag == "hvc1"

    def test_no_hvc1_tag_outside_iso_formats(self, context, video_stream) -> None:
        opts = ProcessingOptions(result_video_codecs=("hevc",))
        params = build_video_params(
            context(video_stream(), opts, target=ContainerFormat.MKV)
        )
        assert params.codec_tag is None

    def test_webm_picks_vp9(self, context, video_stream) -> None:
        params = build_video_params(
            context(video_stream(), target=ContainerFormat.WEBM)
        )
        assert params.codec == "vp9"
        assert params.crf == 32
        assert params.preset is None

    def test_no_encodable_codec(self, context, video_stream) -> None:
        opts = ProcessingOptions(result_video_codecs=("vp8",))
        with pytest.raises(UnsupportedInputError, match="None of the permitted"):
            build_video_params(context(video_stream(codec="h264"), opts))

    def test_collects_every_transform(self, context, video_stream) -> None:
        """Deinterlace, fps, scale, square pixels and pix_fmt in order."""
        opts = ProcessingOptions(
            force_progressive_frames=True,
            max_frame_rate=30,
            resize_options=ResizeOptions(640, 360),
            force_square_pixels=True,
            max_bits_per_channel=8,
        )
        stream = video_stream(
            codec="mpeg2video",
            width=720,
            height=576,
            sample_aspect_ratio=(16, 15),
            field_order=FieldOrder.TOP_FIRST,
            frame_rate=50.0,
        )
        params = build_video_params(context(stream, opts))
        assert params.filters == (
            "bwdif=mode=send_frame:parity=tff:deint=all",
            "fps=25",
            "scale=480x360",
            "setsar=1",
            "format=yuv420p",
        )

    def test_square_pixels_without_resize(self, context, video_stream) -> None:
        opts = ProcessingOptions(force_square_pixels=True)
        stream = video_stream(width=720, height=576, sample_aspect_ratio=(16, 15))
        params = build_video_params(context(stream, opts))
        assert params.filters == ("scale=768x576", "setsar=1", "format=yuv420p")

    def test_resize_without_square_pixels_keeps_sar(
        self, context, video_stream
    ) -> None:
        opts = ProcessingOptions(resize_options=ResizeOptions(1280, 720))
        params = build_video_params(context(video_stream(), opts))
        assert params.filters == ("scale=1280x720", "format=yuv420p")

    def test_hdr_tonemap(self, context, video_stream) -> None:
        opts = ProcessingOptions(remap_hdr_to_sdr=True, max_bits_per_channel=8)
        stream = video_stream(
            codec="hevc",
            pixel_format="yuv420p10le",
            bit_depth=10,
            color_transfer="smpte2084",
            color_primaries="bt2020",
            color_space="bt2020nc",
        )
        params = build_video_params(context(stream, opts))
        assert "tonemap=tonemap=mobius" in params.filters[-1]
        assert params.filters[-1].endswith("format=yuv420p")
        assert params.color_args == (
            "-color_trc",
            "bt709",
            "-color_primaries",
            "bt709",
            "-colorspace",
            "bt709",
        )
        assert params.profile == "main"

    def test_ten_bit_kept_without_limits(self, context, video_stream) -> None:
        opts = ProcessingOptions(video_reencode_mode=ReencodeMode.ALWAYS)
        stream = video_stream(codec="hevc", pixel_format="yuv420p10le", bit_depth=10)
        params = build_video_params(context(stream, opts))
        assert params.pixel_format == "yuv420p10le"
        assert params.profile == "main10"


class TestBuildAudioParams:
    """Tests for build_audio_params."""

    def test_downmix(self, context, audio_stream) -> None:
        opts = ProcessingOptions(max_channels=2)
        stream = audio_stream(codec="eac3", channels=6)
        params = build_audio_params(context(stream, opts))
        assert params.codec == "eac3"
        assert params.channels == 2
        assert params.sample_rate is None
        assert params.bitrate == 128_000

    def test_resample(self, context, audio_stream) -> None:
        opts = ProcessingOptions(audio_sample_rate=48000)
        params = build_audio_params(context(audio_stream(sample_rate=96000), opts))
        assert params.encoder == "aac"
        assert params.sample_rate == 48000
        assert params.channels is None
        assert params.bitrate == 256_000

    def test_webm_picks_opus(self, context, audio_stream) -> None:
        params = build_audio_params(
            context(audio_stream(), target=ContainerFormat.WEBM)
        )
        assert params.codec == "opus"
        assert params.encoder == "libopus"

    def test_unknown_channel_count_counts_as_stereo(
        self, context, audio_stream
    ) -> None:
        opts = ProcessingOptions(audio_reencode_mode=ReencodeMode.ALWAYS)
        params = build_audio_params(context(audio_stream(channels=None), opts))
        assert params.bitrate == 256_000

    def test_lossless_has_no_bitrate(self, context, audio_stream) -> None:
        opts = ProcessingOptions(
            result_audio_codecs=("flac",), audio_reencode_mode=ReencodeMode.ALWAYS
        )
        params = build_audio_params(
            context(audio_stream(codec="pcm_s16le"), opts)
        )
        assert params.codec == "flac"
        assert params.bitrate is None
