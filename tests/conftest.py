"""Shared test fixtures: transcripts, actor registries and session bundles."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Sequence, Tuple

import pytest

from causeway.transcript import Actor, ActorRegistry, EligibilityMask, TranscriptLine


def make_transcript(rows: Sequence[Tuple[str, str]]) -> List[TranscriptLine]:
    """Build transcript lines from (author, content) pairs."""
    return [
        TranscriptLine(line_index=index, author_name=author, content=content)
        for index, (author, content) in enumerate(rows)
    ]


# Four exchanges: the first two share "golden key", the last two share
# "guards"/"hallway", so round 2 forms two clusters and round 3 one beat.
FOUR_EXCHANGES = [
    ("Kael", "I search the chest for the golden key"),
    ("DM", "You find the golden key under a cloth"),
    ("Mira", "I open the vault with the golden key"),
    ("DM", "The vault opens and the golden key snaps"),
    ("Kael", "I listen at the hallway for guards"),
    ("DM", "You hear guards marching in the hallway"),
    ("Mira", "I sneak past the guards in the hallway"),
    ("DM", "You slip past the guards unseen in the hallway"),
]

# Three exchanges plus table chatter that anneal can absorb.
THREE_EXCHANGES_WITH_CHATTER = [
    ("Kael", "I search the chest for the golden key"),
    ("DM", "You find the golden key under a cloth"),
    ("Mira", "nice golden key"),
    ("Mira", "I open the door with the golden key"),
    ("DM", "The door opens onto a dark hallway"),
    ("Kael", "okay sounds creepy"),
    ("Kael", "I listen at the hallway for guards"),
    ("DM", "You hear guards marching in the hallway"),
    ("DM", "The guards carry torches down the hallway"),
]


@pytest.fixture
def registry() -> ActorRegistry:
    return ActorRegistry(
        [
            Actor(id="kael", canonical_name="Kael", aliases=["Sam"]),
            Actor(id="mira", canonical_name="Mira"),
        ],
        narrator_names=["DM"],
    )


@pytest.fixture
def four_exchanges() -> List[TranscriptLine]:
    return make_transcript(FOUR_EXCHANGES)


@pytest.fixture
def chatter_transcript() -> List[TranscriptLine]:
    return make_transcript(THREE_EXCHANGES_WITH_CHATTER)


@pytest.fixture
def full_mask():
    def _mask(lines: Sequence[TranscriptLine]) -> EligibilityMask:
        return EligibilityMask.all_eligible(len(lines), session_id="s1")

    return _mask


@pytest.fixture
def bundle_file(tmp_path: Path) -> Path:
    """Session bundle on disk holding the four-exchange transcript."""
    payload = {
        "session_id": "s1",
        "transcript": [
            {"line_index": i, "author_name": author, "content": content}
            for i, (author, content) in enumerate(FOUR_EXCHANGES)
        ],
        "actors": [
            {"id": "kael", "canonical_name": "Kael", "aliases": ["Sam"]},
            {"id": "mira", "canonical_name": "Mira"},
        ],
        "narrator_names": ["DM"],
    }
    path = tmp_path / "session.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep CAUSEWAY_* variables from the caller's shell out of every test."""
    for name in (
        "CAUSEWAY_ARTIFACTS_DIR",
        "CAUSEWAY_OUTLINE_TOP_K",
        "CAUSEWAY_WRITE_ARTIFACTS",
        "CAUSEWAY_MAX_ROUNDS",
        "CAUSEWAY_CONVERGE",
        "CAUSEWAY_USE_IDF",
    ):
        monkeypatch.delenv(name, raising=False)
