"""Parameter provenance.

A run is a pure function of its inputs and parameters, so the canonical
parameter JSON and its sha256 identify a result set for caching and replay.
"""

from __future__ import annotations

import hashlib
import json

from causeway.hierarchy.params import HierarchyParams
from causeway.hierarchy.types import Provenance

KERNEL_VERSION = "causeway-hier-v1"


def canonical_params_json(params: HierarchyParams) -> str:
    """Sorted-key, whitespace-free JSON of the parameter set."""
    return json.dumps(params.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))


def build_provenance(params: HierarchyParams) -> Provenance:
    params_json = canonical_params_json(params)
    return Provenance(
        kernel_version=KERNEL_VERSION,
        params_json=params_json,
        param_hash=hashlib.sha256(params_json.encode("utf-8")).hexdigest(),
    )
