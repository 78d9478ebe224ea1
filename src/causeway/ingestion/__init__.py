"""Session input loading for the command line tools."""

from causeway.ingestion.session import (
    SessionBundle,
    build_mask,
    load_session_bundle,
    load_transcript_jsonl,
    read_structured_file,
)

__all__ = [
    "SessionBundle",
    "build_mask",
    "load_session_bundle",
    "load_transcript_jsonl",
    "read_structured_file",
]
