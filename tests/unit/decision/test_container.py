"""Tests for the container-level decision."""

from dataclasses import replace

import pytest

from vidnorm.decision.container import choose_target_format, decide_container
from vidnorm.decision.types import ContainerAction, StreamAction, StreamDecision
from vidnorm.domain.models import ContainerFormat, StreamKind
from vidnorm.options.types import MetadataStrippingMode, ProcessingOptions


def _decision(index, kind=StreamKind.VIDEO, action=StreamAction.COPY):
    return StreamDecision(
        input_index=index,
        kind=kind,
        action=action,
        rule="test",
        reason="test",
        output_index=None if action == StreamAction.DROP else index,
    )


@pytest.fixture
def copies():
    return [_decision(0), _decision(1, StreamKind.AUDIO)]


class TestChooseTargetFormat:
    """Tests for choose_target_format."""

    def test_keeps_permitted_writable_container(self, h264_aac_mp4) -> None:
        assert choose_target_format(h264_aac_mp4, ProcessingOptions()) == (
            ContainerFormat.MP4
        )

    def test_keeps_matroska(self, h264_aac_mp4) -> None:
        media = replace(h264_aac_mp4, container_format=ContainerFormat.MKV)
        assert choose_target_format(media, ProcessingOptions()) == ContainerFormat.MKV

    def test_unwritable_source_goes_to_mp4(self, h264_aac_mp4) -> None:
        media = replace(h264_aac_mp4, container_format=ContainerFormat.AVI)
        assert choose_target_format(media, ProcessingOptions()) == ContainerFormat.MP4

    def test_preference_order(self, h264_aac_mp4) -> None:
        opts = ProcessingOptions(
            result_formats=frozenset({ContainerFormat.WEBM, ContainerFormat.MKV})
        )
        assert choose_target_format(h264_aac_mp4, opts) == ContainerFormat.MKV

    def test_unknown_container(self, h264_aac_mp4) -> None:
        media = replace(h264_aac_mp4, container_format=None)
        opts = ProcessingOptions(result_formats=frozenset({ContainerFormat.WEBM}))
        assert choose_target_format(media, opts) == ContainerFormat.WEBM


class TestDecideContainer:
    """Tests for decide_container."""

    def test_noop_when_nothing_changes(self, h264_aac_mp4, copies) -> None:
        decision = decide_container(h264_aac_mp4, ProcessingOptions(), copies)
        assert decision.action == ContainerAction.NOOP
        assert decision.target_format == ContainerFormat.MP4
        assert decision.reasons == ()
        assert decision.faststart is False
        assert decision.map_chapters is True
        assert decision.preserve_start_time is True

    def test_container_not_permitted(self, h264_aac_mp4, copies) -> None:
        opts = ProcessingOptions(result_formats=frozenset({ContainerFormat.MKV}))
        decision = decide_container(h264_aac_mp4, opts, copies)
        assert decision.action == ContainerAction.REMUX
        assert decision.target_format == ContainerFormat.MKV
        assert "container mp4 is not a result format" in decision.reasons

    def test_dropped_stream_forces_remux(self, h264_aac_mp4) -> None:
        decisions = [_decision(0), _decision(1, StreamKind.AUDIO, StreamAction.DROP)]
        decision = decide_container(h264_aac_mp4, ProcessingOptions(), decisions)
        assert decision.action == ContainerAction.REMUX
        assert decision.reasons == ("streams dropped",)

    def test_drop_on_rewrite_only_does_not_force_remux(
        self, h264_aac_mp4, copies
    ) -> None:
        data = replace(
            _decision(2, StreamKind.OTHER, StreamAction.DROP), forces_rewrite=False
        )
        decision = decide_container(h264_aac_mp4, ProcessingOptions(), [*copies, data])
        assert decision.action == ContainerAction.NOOP
        assert decision.reasons == ()

    def test_reencode_wins_over_remux(self, h264_aac_mp4) -> None:
        decisions = [
            _decision(0, action=StreamAction.REENCODE),
            _decision(1, StreamKind.AUDIO, StreamAction.DROP),
        ]
        decision = decide_container(h264_aac_mp4, ProcessingOptions(), decisions)
        assert decision.action == ContainerAction.REENCODE

    def test_faststart_source_satisfies_progressive_download(
        self, h264_aac_mp4, copies
    ) -> None:
        opts = ProcessingOptions(force_progressive_download=True)
        decision = decide_container(h264_aac_mp4, opts, copies)
        assert decision.action == ContainerAction.NOOP

    def test_progressive_download_relocates_index(
        self, make_media, video_stream, audio_stream, copies
    ) -> None:
        media = make_media(video_stream(0), audio_stream(1), faststart=False)
        opts = ProcessingOptions(force_progressive_download=True)
        decision = decide_container(media, opts, copies)
        assert decision.action == ContainerAction.REMUX
        assert decision.faststart is True
        assert decision.reasons == ("progressive download layout required",)

    def test_progressive_download_ignored_for_matroska(
        self, make_media, video_stream, audio_stream, copies
    ) -> None:
        media = make_media(
            video_stream(0),
            audio_stream(1),
            container_format=ContainerFormat.MKV,
            faststart=False,
        )
        opts = ProcessingOptions(force_progressive_download=True)
        decision = decide_container(media, opts, copies)
        assert decision.action == ContainerAction.NOOP
        assert decision.faststart is False


class TestMetadataStripping:
    """Metadata stripping modes at the container level."""

    def test_required_forces_remux(self, h264_aac_mp4, copies) -> None:
        opts = ProcessingOptions(
            metadata_stripping_mode=MetadataStrippingMode.REQUIRED
        )
        decision = decide_container(h264_aac_mp4, opts, copies)
        assert decision.action == ContainerAction.REMUX
        assert decision.reasons == ("metadata stripping required",)
        assert decision.strip_global_metadata is True
        assert decision.strip_stream_metadata is True
        assert decision.map_chapters is False
        assert decision.preserve_start_time is False

    def test_preferred_does_not_force_remux(self, h264_aac_mp4, copies) -> None:
        opts = ProcessingOptions(
            metadata_stripping_mode=MetadataStrippingMode.PREFERRED
        )
        decision = decide_container(h264_aac_mp4, opts, copies)
        assert decision.action == ContainerAction.NOOP
        assert decision.strip_global_metadata is False
        assert decision.map_chapters is True

    def test_preferred_strips_when_rewriting(self, h264_aac_mp4) -> None:
        opts = ProcessingOptions(
            metadata_stripping_mode=MetadataStrippingMode.PREFERRED
        )
        decisions = [
            _decision(0, action=StreamAction.REENCODE),
            _decision(1, StreamKind.AUDIO),
        ]
        decision = decide_container(h264_aac_mp4, opts, decisions)
        assert decision.action == ContainerAction.REENCODE
        assert decision.strip_global_metadata is True
        assert decision.strip_stream_metadata is True
        assert decision.map_chapters is False
        assert decision.preserve_start_time is True

    @pytest.mark.parametrize(
        "mode", [MetadataStrippingMode.NONE, MetadataStrippingMode.THUMBNAIL_ONLY]
    )
    def test_other_modes_keep_metadata(self, h264_aac_mp4, mode) -> None:
        opts = ProcessingOptions(metadata_stripping_mode=mode)
        decisions = [_decision(0, action=StreamAction.REENCODE)]
        decision = decide_container(h264_aac_mp4, opts, decisions)
        assert decision.strip_global_metadata is False
        assert decision.map_chapters is True

    def test_required_clears_rotation(
        self, make_media, video_stream, audio_stream, copies
    ) -> None:
        media = make_media(video_stream(0, rotation_degrees=90), audio_stream(1))
        opts = ProcessingOptions(
            metadata_stripping_mode=MetadataStrippingMode.REQUIRED
        )
        assert decide_container(media, opts, copies).clear_rotation is True
        assert decide_container(media, ProcessingOptions(), copies).clear_rotation is (
            False
        )

    def test_unrotated_video_needs_no_clearing(self, h264_aac_mp4, copies) -> None:
        opts = ProcessingOptions(
            metadata_stripping_mode=MetadataStrippingMode.REQUIRED
        )
        assert decide_container(h264_aac_mp4, opts, copies).clear_rotation is False
