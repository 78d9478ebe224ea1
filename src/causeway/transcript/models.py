"""Transcript input models.

Defines the immutable inputs consumed by the hierarchy engine:
- TranscriptLine: one speech-act record with a stable 0-based index
- ExclusionReason: why a span of lines was excluded
- ExcludedRange: an inclusive excluded span with its reason
- EligibilityMask: boolean-per-line filter plus the ranges that produced it

Validation is strict: a transcript whose indices are not exactly 0..N-1 and
a mask whose length disagrees with its transcript are rejected before any
scoring happens.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from pydantic import BaseModel, Field, model_validator

from causeway.errors import MalformedMaskError, MalformedTranscriptError


class TranscriptLine(BaseModel):
    """A single transcript line."""

    model_config = {"frozen": True}

    line_index: int = Field(..., ge=0, description="Stable 0-based position in the transcript")
    author_name: str = Field(..., description="Speaker as written in the transcript")
    content: str = Field(default="", description="Spoken or typed text")
    timestamp: Optional[datetime] = Field(default=None, description="Wall-clock time, if known")


class ExclusionReason(str, Enum):
    """Reasons a transcript span is ineligible for linking."""

    OOC_HARD = "ooc_hard"
    """Conversation breaks and other clearly out-of-character talk."""

    OOC_SOFT = "ooc_soft"
    """Low-alternation stretches and long monologues."""

    COMBAT = "combat"
    """Roll-heavy action trades."""

    TRANSITION = "transition"
    NOISE = "noise"

    OOC_REFINED = "ooc_refined"
    """Out-of-character lines confirmed by an external classifier."""


class ExcludedRange(BaseModel):
    """An inclusive span of excluded transcript lines."""

    model_config = {"frozen": True}

    start_index: int = Field(..., ge=0)
    end_index: int = Field(..., ge=0)
    reason: ExclusionReason

    @model_validator(mode="after")
    def validate_bounds(self) -> "ExcludedRange":
        if self.end_index < self.start_index:
            raise ValueError(
                f"end_index {self.end_index} precedes start_index {self.start_index}"
            )
        return self

    def covers(self, line_index: int) -> bool:
        return self.start_index <= line_index <= self.end_index


class EligibilityMask(BaseModel):
    """Per-line usability filter supplied by an upstream masking step.

    Example:
        >>> mask = EligibilityMask.from_ranges(
        ...     10,
        ...     [ExcludedRange(start_index=2, end_index=4, reason="combat")],
        ... )
        >>> mask.is_eligible(3)
        False
        >>> mask.next_eligible(2)
        5
    """

    model_config = {"frozen": True}

    session_id: str = Field(default="session")
    eligible: List[bool] = Field(default_factory=list)
    excluded_ranges: List[ExcludedRange] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_ranges(self) -> "EligibilityMask":
        size = len(self.eligible)
        for excluded in self.excluded_ranges:
            if excluded.end_index >= size:
                raise ValueError(
                    f"excluded range {excluded.start_index}-{excluded.end_index} "
                    f"is outside a mask of {size} lines"
                )
            for index in range(excluded.start_index, excluded.end_index + 1):
                if self.eligible[index]:
                    raise ValueError(
                        f"line {index} is marked eligible but lies in excluded range "
                        f"{excluded.start_index}-{excluded.end_index} ({excluded.reason.value})"
                    )
        return self

    @classmethod
    def all_eligible(cls, line_count: int, session_id: str = "session") -> "EligibilityMask":
        """Mask that admits every line."""
        return cls(session_id=session_id, eligible=[True] * line_count)

    @classmethod
    def from_ranges(
        cls,
        line_count: int,
        ranges: Iterable[ExcludedRange],
        session_id: str = "session",
    ) -> "EligibilityMask":
        """Build a mask where every line inside any range is ineligible."""
        ranges = list(ranges)
        eligible = [True] * line_count
        for excluded in ranges:
            if excluded.end_index >= line_count:
                raise MalformedMaskError(
                    f"Excluded range {excluded.start_index}-{excluded.end_index} "
                    f"is outside a transcript of {line_count} lines",
                    details={"reason": excluded.reason.value},
                )
            for index in range(excluded.start_index, excluded.end_index + 1):
                eligible[index] = False
        return cls(session_id=session_id, eligible=eligible, excluded_ranges=ranges)

    def __len__(self) -> int:
        return len(self.eligible)

    def is_eligible(self, line_index: int) -> bool:
        """Whether a line may take part in linking. Out-of-range lines never do."""
        if line_index < 0 or line_index >= len(self.eligible):
            return False
        return self.eligible[line_index]

    def exclusion_reasons(self, line_index: int) -> List[ExclusionReason]:
        """Reasons recorded for an excluded line, in range order."""
        return [r.reason for r in self.excluded_ranges if r.covers(line_index)]

    def next_eligible(self, start_index: int, max_lines: int = 10) -> Optional[int]:
        """First eligible line at or after ``start_index`` within ``max_lines``."""
        end = min(len(self.eligible), start_index + max_lines)
        for index in range(max(0, start_index), end):
            if self.eligible[index]:
                return index
        return None

    def count_consecutive_eligible(self, start_index: int) -> int:
        count = 0
        index = start_index
        while self.is_eligible(index):
            count += 1
            index += 1
        return count

    def eligible_count(self) -> int:
        return sum(1 for flag in self.eligible if flag)


def validate_transcript(lines: Sequence[TranscriptLine]) -> None:
    """Reject transcripts whose indices are not exactly 0..N-1 in order.

    Raises:
        MalformedTranscriptError: On the first out-of-place line
    """
    for position, line in enumerate(lines):
        if line.line_index != position:
            raise MalformedTranscriptError(
                f"Line at position {position} has line_index {line.line_index}",
                details={"position": position, "line_index": line.line_index},
            )


def validate_mask(lines: Sequence[TranscriptLine], mask: EligibilityMask) -> None:
    """Reject a mask whose length differs from the transcript."""
    if len(mask) != len(lines):
        raise MalformedMaskError(
            f"Mask covers {len(mask)} lines but transcript has {len(lines)}",
            details={"mask_length": len(mask), "transcript_length": len(lines)},
        )
