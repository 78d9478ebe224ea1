"""Hierarchy Run Parameters.

Defines the validated parameter set for one run:
- LinkerParams: Level-1 cause/effect pairing
- AbsorptionParams: anneal phase radius, capacity and threshold
- CompositionParams: Level-N node pairing
- LeverParams: optional two-lever evidence mode shared by both linkers
- HierarchyParams: the above plus round/level limits

Windows, radii, tau and steepness must be strictly positive. Parameters are
never silently defaulted: anything that fails validation raises
InvalidParametersError before a run starts.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from causeway.errors import InvalidParametersError
from causeway.hierarchy.scoring import LexicalSignals, lever_strength, locality_to_tau


class LinkerParams(BaseModel):
    """Level-1 linker configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    k_local: int = Field(default=8, gt=0, description="Forward narrator lines considered per cause")
    hill_tau: float = Field(default=8.0, gt=0, description="Distance at which the decay score is 0.5")
    hill_steepness: float = Field(default=2.2, gt=0, description="Hill exponent")
    beta_lex: float = Field(default=2.0, ge=0, description="Lexical boost weight")
    strong_min_score: float = Field(default=0.5, ge=0, description="Threshold for strong causes")
    weak_min_score: float = Field(default=0.75, ge=0, description="Threshold for weak causes")
    min_pair_strength: float = Field(default=0.0, ge=0, description="Floor applied to both thresholds")
    max_l1_span: int = Field(default=18, gt=0, description="Longest cause-to-effect line distance")
    strong_mass_cutoff: float = Field(
        default=0.7, ge=0, le=1, description="Classifier confidence that makes a cause strong"
    )
    leaf_mass: float = Field(default=1.0, gt=0, description="Base mass of a claimed level-1 link")

    ambient_mass_boost: bool = Field(
        default=False, description="Raise each link's base mass by the evidence of nearby links"
    )
    beta_lex_ll: float = Field(default=0.8, ge=0, description="Lexical boost weight between links")
    link_window: int = Field(default=18, gt=0, description="Largest center distance between boosting links")
    link_boost_damping: float = Field(default=0.15, ge=0, description="Scale applied to the summed boost")


class AbsorptionParams(BaseModel):
    """Anneal phase configuration.

    Radius and capacity grow with link mass:
    radius = radius_base + radius_per_mass * mass,
    capacity = floor(cap_base + cap_per_mass * mass).
    """

    model_config = {"frozen": True, "extra": "forbid"}

    radius_base: float = Field(default=4.0, gt=0)
    radius_per_mass: float = Field(default=1.0, ge=0)
    cap_base: float = Field(default=2.0, ge=0)
    cap_per_mass: float = Field(default=1.0, ge=0)
    min_ctx_strength: float = Field(default=0.5, ge=0)
    ctx_threshold_base: Optional[float] = Field(
        default=None,
        ge=0,
        description="Enables the mass-aware threshold base + per_log_mass * log(1 + singleton mass)",
    )
    ctx_threshold_per_log_mass: float = Field(default=0.0, ge=0)
    hill_tau: float = Field(default=8.0, gt=0)
    hill_steepness: float = Field(default=2.2, gt=0)
    beta_lex: float = Field(default=0.8, ge=0)
    include_context_text: bool = Field(
        default=False, description="Score against already absorbed context as well"
    )
    singleton_mass: float = Field(default=1.0, gt=0)


class CompositionParams(BaseModel):
    """Level-N linker configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    k_local_links: int = Field(default=8, gt=0, description="Forward nodes considered per node")
    max_forward_lines: int = Field(default=120, gt=0, description="Largest center distance considered")
    hill_tau: float = Field(default=30.0, gt=0)
    hill_steepness: float = Field(default=2.2, gt=0)
    beta_lex: float = Field(default=2.0, ge=0)
    min_bridge: float = Field(default=0.5, ge=0)
    t_link_base: Optional[float] = Field(
        default=None, ge=0, description="Threshold base; falls back to min_bridge"
    )
    t_link_k: float = Field(default=0.15, ge=0, description="Weight of log(1 + sqrt(mA * mB))")

    @property
    def threshold_base(self) -> float:
        return self.min_bridge if self.t_link_base is None else self.t_link_base


class LeverParams(BaseModel):
    """Two-lever evidence mode for the linkers.

    When set, both linkers score edges as
    strength = strength_scale * evidence ** coupling with
    evidence = 0.7 * distance + 0.3 * lexical, use tau = 4 + 4 * (1 - locality)
    in place of their own hill_tau, and the Level-N threshold becomes
    threshold_base + growth_resistance * log(1 + sqrt(mass_left * mass_right)).
    """

    model_config = {"frozen": True, "extra": "forbid"}

    locality: float = Field(default=0.7, ge=0, le=1, description="Higher is faster distance decay")
    coupling: float = Field(default=1.0, gt=0, description="Evidence to strength exponent")
    growth_resistance: float = Field(default=0.15, ge=0, description="Mass weight of the merge threshold")
    threshold_base: float = Field(default=1.0, ge=0)
    strength_scale: float = Field(default=2.0, gt=0)
    keyword_lex_bonus: float = Field(
        default=0.25, ge=0, description="Lexical multiplier per unit share of shared trigger words"
    )

    @property
    def hill_tau(self) -> float:
        return locality_to_tau(self.locality)

    def strength(self, distance_component: float, signals: LexicalSignals) -> float:
        return lever_strength(
            distance_component,
            signals,
            coupling=self.coupling,
            scale=self.strength_scale,
            keyword_bonus=self.keyword_lex_bonus,
        )


class HierarchyParams(BaseModel):
    """Complete parameter set for a hierarchy run.

    Example:
        >>> params = HierarchyParams.from_mapping({"max_rounds": 5, "linker": {"k_local": 6}})
        >>> params.linker.k_local
        6
    """

    model_config = {"frozen": True, "extra": "forbid"}

    linker: LinkerParams = Field(default_factory=LinkerParams)
    absorption: AbsorptionParams = Field(default_factory=AbsorptionParams)
    composition: CompositionParams = Field(default_factory=CompositionParams)
    levers: Optional[LeverParams] = Field(
        default=None, description="Switches both linkers to the two-lever evidence mode"
    )
    max_rounds: int = Field(default=3, ge=1, le=10)
    max_level: int = Field(default=3, ge=1, le=3)
    converge: bool = Field(default=True, description="Stop early once a round adds nothing")
    use_idf: bool = Field(default=False, description="IDF-weight lexical overlap")

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]] = None) -> "HierarchyParams":
        """Validate a plain mapping, raising InvalidParametersError on failure."""
        try:
            return cls.model_validate(dict(data or {}))
        except ValidationError as exc:
            raise InvalidParametersError(
                f"Invalid hierarchy parameters: {exc}",
                details={"errors": [_describe(err) for err in exc.errors()]},
            ) from exc


def _describe(error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg', 'invalid')}"


def resolve_params(
    params: Union[HierarchyParams, Mapping[str, Any], None],
) -> HierarchyParams:
    """Return a freshly validated parameter set.

    Instances are re-validated too, since ``model_copy(update=...)`` and
    ``model_construct`` skip validation.
    """
    if params is None:
        return HierarchyParams()
    if isinstance(params, HierarchyParams):
        return HierarchyParams.from_mapping(params.model_dump())
    return HierarchyParams.from_mapping(params)
