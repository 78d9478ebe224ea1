"""Actor registry and speaker resolution.

Speakers in a transcript are free text ("Sam (Kael)", "DM - Lauren"). The
registry maps them onto registered actors by normalized name containment and
answers whether a speaker is the narrator.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from causeway.errors import DuplicateActorError

logger = logging.getLogger(__name__)

DEFAULT_NARRATOR_NAMES = ("dm", "gm", "narrator")

_EDGE_PUNCTUATION = re.compile(r"^[^a-z0-9]+|[^a-z0-9]+$")
_WHITESPACE = re.compile(r"\s+")


def normalize_name(text: str) -> str:
    """Lowercase, trim edge punctuation and collapse whitespace."""
    text = text.lower().strip()
    text = _EDGE_PUNCTUATION.sub("", text)
    return _WHITESPACE.sub(" ", text)


class Actor(BaseModel):
    """A registered participant."""

    model_config = {"frozen": True}

    id: str = Field(..., min_length=1)
    canonical_name: str = Field(..., min_length=1)
    aliases: List[str] = Field(default_factory=list)

    def name_set(self) -> List[str]:
        names = [normalize_name(n) for n in [self.canonical_name, *self.aliases]]
        return [n for n in names if n]

    def mentioned_in(self, text: str) -> bool:
        normalized = normalize_name(text)
        if not normalized:
            return False
        return any(name in normalized for name in self.name_set())


class ActorRegistry:
    """Lookup over registered actors plus the narrator name set.

    Example:
        >>> registry = ActorRegistry(
        ...     [Actor(id="a1", canonical_name="Kael", aliases=["Sam"])],
        ...     narrator_names=["DM"],
        ... )
        >>> registry.match_speaker("Sam (Kael)").id
        'a1'
        >>> registry.is_narrator("DM")
        True
    """

    def __init__(
        self,
        actors: Iterable[Actor] = (),
        narrator_names: Iterable[str] = DEFAULT_NARRATOR_NAMES,
    ) -> None:
        self._actors: Dict[str, Actor] = {}
        for actor in actors:
            if actor.id in self._actors:
                raise DuplicateActorError(
                    f"Actor id '{actor.id}' is registered twice",
                    details={"actor_id": actor.id},
                )
            self._actors[actor.id] = actor
        self._narrator_names = frozenset(
            normalize_name(name) for name in narrator_names if normalize_name(name)
        )
        # (normalized name, actor id) sorted so the longest name wins
        self._names = sorted(
            ((name, actor.id) for actor in self._actors.values() for name in actor.name_set()),
            key=lambda item: (-len(item[0]), item[0], item[1]),
        )
        logger.debug(
            f"ActorRegistry with {len(self._actors)} actors, "
            f"{len(self._narrator_names)} narrator names"
        )

    @property
    def actors(self) -> List[Actor]:
        return list(self._actors.values())

    @property
    def narrator_names(self) -> frozenset:
        return self._narrator_names

    def get(self, actor_id: str) -> Optional[Actor]:
        return self._actors.get(actor_id)

    def is_narrator(self, speaker: str) -> bool:
        """Whether a speaker names the narrator, e.g. "DM" or "DM (Lauren)"."""
        normalized = normalize_name(speaker)
        if normalized in self._narrator_names:
            return True
        words = set(re.findall(r"[a-z0-9]+", normalized))
        return any(name in words for name in self._narrator_names if " " not in name)

    def match_speaker(self, speaker: str) -> Optional[Actor]:
        """Resolve a speaker to an actor; the longest contained name wins."""
        normalized = normalize_name(speaker)
        if not normalized:
            return None
        for name, actor_id in self._names:
            if name in normalized:
                return self._actors[actor_id]
        return None

    def mentioned_actors(self, text: str) -> List[Actor]:
        return [actor for actor in self._actors.values() if actor.mentioned_in(text)]

    def __len__(self) -> int:
        return len(self._actors)
