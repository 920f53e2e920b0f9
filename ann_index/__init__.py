"""
ANN Index Module

In-memory hierarchical navigable small-world graph for cosine
nearest-neighbour search over a single vector space.

Usage:
    from ann_index import HNSWIndex, HNSWParams

    index = HNSWIndex(dimension=768, params=HNSWParams(m=16))
    index.add(vector, 0)
    hits = index.search(query, k=10)
"""

from .hnsw import HNSWIndex
from .models import HNSWParams, Neighbor

__all__ = [
    "HNSWIndex",
    "HNSWParams",
    "Neighbor",
]
