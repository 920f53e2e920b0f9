"""
Data Models for the ANN index.

Defines:
1. HNSWParams - construction and query parameters, fixed per index
2. Neighbor - a single (internal_id, similarity) search hit
"""

import math
from typing import NamedTuple, Optional

from pydantic import BaseModel, Field


class HNSWParams(BaseModel):
    """Parameters of a hierarchical navigable small-world graph."""
    m: int = Field(
        16,
        description="Max links per node on upper layers (layer 0 allows 2*m)",
        ge=2,
    )
    ef_construction: int = Field(
        200,
        description="Candidate list size while inserting",
        ge=1,
    )
    ef_search: int = Field(
        50,
        description="Default candidate list size while querying",
        ge=1,
    )
    initial_capacity: int = Field(
        1024,
        description="Rows preallocated in the vector arena (grows by doubling)",
        ge=1,
    )
    seed: Optional[int] = Field(
        None,
        description="Seed for level assignment (None = nondeterministic)",
    )

    @property
    def max_links_layer0(self) -> int:
        return 2 * self.m

    @property
    def level_multiplier(self) -> float:
        return 1.0 / math.log(self.m)


class Neighbor(NamedTuple):
    """A search hit: arena id and cosine similarity (1 - cosine distance)."""
    internal_id: int
    similarity: float
