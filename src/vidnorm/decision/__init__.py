"""Stream and container decision engine."""

from vidnorm.decision.container import choose_target_format, decide_container
from vidnorm.decision.engine import resolve, resolve_stream, validate_source
from vidnorm.decision.rules import STREAM_RULES, Rule, StreamContext, match_rule
from vidnorm.decision.types import (
    AudioEncodeParams,
    ContainerAction,
    ContainerDecision,
    DecisionPlan,
    StreamAction,
    StreamDecision,
    SubtitleEncodeParams,
    VideoEncodeParams,
)

__all__ = [
    "AudioEncodeParams",
    "ContainerAction",
    "ContainerDecision",
    "DecisionPlan",
    "Rule",
    "STREAM_RULES",
    "StreamAction",
    "StreamContext",
    "StreamDecision",
    "SubtitleEncodeParams",
    "VideoEncodeParams",
    "choose_target_format",
    "decide_container",
    "match_rule",
    "resolve",
    "resolve_stream",
    "validate_source",
]
