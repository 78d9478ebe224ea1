"""Session bundle loading.

A session bundle is a JSON or YAML document holding everything one run
needs:

    session_id: s1
    transcript:            # or transcript_path: lines.jsonl
      - {line_index: 0, author_name: Kael, content: I search the room}
      - {line_index: 1, author_name: DM, content: You find a key}
    mask: [true, true]     # optional, defaults to every line eligible
    excluded_ranges: []    # optional
    actors:
      - {id: a1, canonical_name: Kael, aliases: [Sam]}
    narrator_names: [DM]

Relative ``transcript_path`` values resolve against the bundle's directory.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from causeway.errors import InputValidationError, MalformedMaskError, SessionLoadError
from causeway.transcript.actors import DEFAULT_NARRATOR_NAMES, Actor, ActorRegistry
from causeway.transcript.models import (
    EligibilityMask,
    ExcludedRange,
    TranscriptLine,
    validate_mask,
    validate_transcript,
)

logger = logging.getLogger(__name__)


class SessionBundle(BaseModel):
    """Validated inputs for one hierarchy run."""

    session_id: str
    transcript: List[TranscriptLine] = Field(default_factory=list)
    mask: EligibilityMask
    actors: List[Actor] = Field(default_factory=list)
    narrator_names: List[str] = Field(default_factory=lambda: list(DEFAULT_NARRATOR_NAMES))

    def registry(self) -> ActorRegistry:
        return ActorRegistry(self.actors, narrator_names=self.narrator_names)

    @property
    def eligible_count(self) -> int:
        return self.mask.eligible_count()


def read_structured_file(path: Path) -> Any:
    """Parse a JSON or YAML file, choosing by suffix."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SessionLoadError(f"Cannot read {path}: {exc}", details={"path": str(path)}) from exc
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            return yaml.safe_load(text)
        return json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise SessionLoadError(f"Cannot parse {path}: {exc}", details={"path": str(path)}) from exc


def load_transcript_jsonl(path: Path) -> List[TranscriptLine]:
    """Read one TranscriptLine per non-blank line of a JSONL file."""
    lines: List[TranscriptLine] = []
    try:
        raw_lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        raise SessionLoadError(f"Cannot read {path}: {exc}", details={"path": str(path)}) from exc
    for number, raw in enumerate(raw_lines, start=1):
        if not raw.strip():
            continue
        try:
            lines.append(TranscriptLine.model_validate(json.loads(raw)))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise SessionLoadError(
                f"Invalid transcript record at {path}:{number}: {exc}",
                details={"path": str(path), "line": number},
            ) from exc
    return lines


def build_mask(
    line_count: int,
    session_id: str,
    eligible: Optional[List[bool]] = None,
    excluded_ranges: Optional[List[Dict[str, Any]]] = None,
) -> EligibilityMask:
    """Mask from an explicit boolean list, from ranges, or all-eligible."""
    try:
        ranges = [ExcludedRange.model_validate(r) for r in excluded_ranges or []]
        if eligible is not None:
            return EligibilityMask(
                session_id=session_id, eligible=list(eligible), excluded_ranges=ranges
            )
    except ValidationError as exc:
        raise MalformedMaskError(f"Invalid eligibility mask: {exc}") from exc
    if ranges:
        return EligibilityMask.from_ranges(line_count, ranges, session_id=session_id)
    return EligibilityMask.all_eligible(line_count, session_id=session_id)


def load_session_bundle(path: Path) -> SessionBundle:
    """Load and validate a session bundle.

    Raises:
        SessionLoadError: If the file cannot be read or parsed
        InputValidationError: If the transcript, mask or actors are malformed
    """
    path = Path(path)
    payload = read_structured_file(path)
    if not isinstance(payload, dict):
        raise SessionLoadError(f"{path} does not contain a mapping", details={"path": str(path)})

    session_id = str(payload.get("session_id") or path.stem)

    if payload.get("transcript_path"):
        transcript_path = Path(payload["transcript_path"])
        if not transcript_path.is_absolute():
            transcript_path = path.parent / transcript_path
        transcript = load_transcript_jsonl(transcript_path)
    else:
        try:
            transcript = [TranscriptLine.model_validate(r) for r in payload.get("transcript") or []]
        except ValidationError as exc:
            raise InputValidationError(f"Invalid transcript record: {exc}") from exc
    validate_transcript(transcript)

    mask = build_mask(
        len(transcript),
        session_id,
        eligible=payload.get("mask"),
        excluded_ranges=payload.get("excluded_ranges"),
    )
    validate_mask(transcript, mask)

    try:
        actors = [Actor.model_validate(a) for a in payload.get("actors") or []]
    except ValidationError as exc:
        raise InputValidationError(f"Invalid actor record: {exc}") from exc

    bundle = SessionBundle(
        session_id=session_id,
        transcript=transcript,
        mask=mask,
        actors=actors,
        narrator_names=payload.get("narrator_names") or list(DEFAULT_NARRATOR_NAMES),
    )
    # Fail fast on duplicate actor ids
    bundle.registry()
    logger.info(
        f"Loaded session {session_id} from {path}: {len(transcript)} lines, "
        f"{bundle.eligible_count} eligible, {len(actors)} actors"
    )
    return bundle
