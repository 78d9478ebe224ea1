"""Transcript inputs for the hierarchy engine.

Components:
- models: TranscriptLine, EligibilityMask, ExcludedRange and validators
- actors: Actor, ActorRegistry and speaker resolution
- speech_acts: cause/effect/roll labelling heuristics
"""

from causeway.transcript.actors import (
    DEFAULT_NARRATOR_NAMES,
    Actor,
    ActorRegistry,
    normalize_name,
)
from causeway.transcript.models import (
    EligibilityMask,
    ExcludedRange,
    ExclusionReason,
    TranscriptLine,
    validate_mask,
    validate_transcript,
)
from causeway.transcript.speech_acts import (
    CauseClassifier,
    CauseDetection,
    CauseType,
    EffectDetection,
    EffectType,
    HeuristicCauseClassifier,
    detect_cause,
    detect_effect,
    detect_roll_type,
)

__all__ = [
    # Models
    "TranscriptLine",
    "EligibilityMask",
    "ExcludedRange",
    "ExclusionReason",
    "validate_transcript",
    "validate_mask",
    # Actors
    "Actor",
    "ActorRegistry",
    "DEFAULT_NARRATOR_NAMES",
    "normalize_name",
    # Speech acts
    "CauseClassifier",
    "CauseDetection",
    "CauseType",
    "EffectDetection",
    "EffectType",
    "HeuristicCauseClassifier",
    "detect_cause",
    "detect_effect",
    "detect_roll_type",
]
