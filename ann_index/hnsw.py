"""
HNSW Index - In-memory approximate nearest-neighbour search

A hierarchical navigable small-world graph over cosine distance for a
single collection. Nodes live in an arena and are addressed by their
sequential integer id; there is no structural removal (callers tombstone
ids and filter search results).

Design:
- Vectors are L2-normalised in float64 on insert and kept in a float32
  numpy matrix, so cosine distance is 1 - dot product and neighbour
  distances are computed in one matrix-vector product per expansion;
  products are taken in float64 and rounded to 6 decimals
- Level assignment: floor(-ln(U) * 1/ln(m)); layer 0 allows 2*m links,
  upper layers m
- Neighbour selection uses the diversity heuristic (a candidate is kept
  only if it is closer to the base node than to every neighbour kept so
  far); pruned candidates back-fill free slots to keep the graph connected
- Ties on distance are broken by id, i.e. earlier insertions win

Concurrency:
- add() is serialised by an internal lock
- search() never locks: neighbour lists are replaced, never mutated in
  place; the arena matrix is swapped only after its rows were copied; a
  node is linked into the graph only after its row and link table exist.
  A search started after add() returned therefore sees the new node.

Usage:
    from ann_index import HNSWIndex, HNSWParams

    index = HNSWIndex(dimension=3, params=HNSWParams(m=8, seed=7))
    index.add([1.0, 0.0, 0.0], 0)
    index.add([0.0, 1.0, 0.0], 1)
    hits = index.search([1.0, 0.1, 0.0], k=1)
    # [Neighbor(internal_id=0, similarity=0.995...)]
"""

import heapq
import logging
import math
import threading
from typing import Any, Optional, Sequence

import numpy as np

from .models import HNSWParams, Neighbor

logger = logging.getLogger(__name__)

# (distance, internal_id)
_Candidate = tuple[float, int]

# Distances are rounded so that vectors pointing the same way tie exactly
# instead of differing by float32 rounding noise.
_DISTANCE_DECIMALS = 6


class HNSWIndex:
    """
    Graph-based ANN index over cosine similarity.

    State: Empty until the first add(), Populated afterwards. There is no
    way back to Empty.
    """

    def __init__(self, dimension: int, params: Optional[HNSWParams] = None):
        """
        Initialize an empty index.

        Args:
            dimension: Length every inserted and queried vector must have.
            params: Graph parameters. Uses defaults if not provided.
        """
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")

        self.dimension = dimension
        self.params = params or HNSWParams()
        self._ef_search = self.params.ef_search
        self._rng = np.random.default_rng(self.params.seed)

        self._data = np.zeros(
            (self.params.initial_capacity, dimension), dtype=np.float32
        )
        self._levels: list[int] = []
        self._links: list[list[list[int]]] = []
        self._count = 0
        # (entry_point, max_level), published as one reference
        self._top: Optional[tuple[int, int]] = None

        self._write_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return self._count

    @property
    def is_empty(self) -> bool:
        return self._top is None

    @property
    def entry_point(self) -> Optional[int]:
        top = self._top
        return top[0] if top else None

    @property
    def max_level(self) -> int:
        top = self._top
        return top[1] if top else -1

    @property
    def ef_search(self) -> int:
        return self._ef_search

    def set_ef(self, ef: int) -> None:
        """Change the default query beam width."""
        if ef < 1:
            raise ValueError(f"ef must be at least 1, got {ef}")
        self._ef_search = ef

    def get_vector(self, internal_id: int) -> np.ndarray:
        """Return a copy of the stored (normalised) vector for an id."""
        if not 0 <= internal_id < self._count:
            raise IndexError(f"Unknown internal id {internal_id}")
        return self._data[internal_id].copy()

    def stats(self) -> dict[str, Any]:
        """Return graph statistics for diagnostics."""
        count = self._count
        layer_sizes: dict[int, int] = {}
        for level in self._levels[:count]:
            for layer in range(level + 1):
                layer_sizes[layer] = layer_sizes.get(layer, 0) + 1
        return {
            "count": count,
            "dimension": self.dimension,
            "capacity": self._data.shape[0],
            "entry_point": self.entry_point,
            "max_level": self.max_level,
            "layer_sizes": layer_sizes,
            "m": self.params.m,
            "ef_construction": self.params.ef_construction,
            "ef_search": self._ef_search,
        }

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    def add(self, vector: Sequence[float], internal_id: int) -> None:
        """
        Insert a vector under the next arena id.

        Args:
            vector: Vector of length ``dimension``.
            internal_id: Must equal ``len(index)``; ids are sequential.

        Raises:
            ValueError: On a dimension mismatch, non-finite values or an
                out-of-sequence id.
        """
        normalized = self._prepare(vector, "vector")

        with self._write_lock:
            if internal_id != self._count:
                raise ValueError(
                    f"internal_id must be {self._count} (sequential), got {internal_id}"
                )

            level = self._random_level()
            self._ensure_capacity(internal_id + 1)
            self._data[internal_id] = normalized
            self._levels.append(level)
            self._links.append([[] for _ in range(level + 1)])
            self._count = internal_id + 1

            top = self._top
            if top is None:
                self._top = (internal_id, level)
                return

            entry, max_level = top
            data = self._data
            limit = self._count
            query = data[internal_id]

            current = [(self._distance(query, entry, data), entry)]
            for layer in range(max_level, level, -1):
                current = self._search_layer(query, current, 1, layer, data, limit)[:1]

            for layer in range(min(level, max_level), -1, -1):
                found = self._search_layer(
                    query, current, self.params.ef_construction, layer, data, limit
                )
                found = [c for c in found if c[1] != internal_id]
                selected = self._select_neighbors(found, self.params.m, data)
                self._links[internal_id][layer] = [n for _, n in selected]
                for _, neighbour in selected:
                    self._connect(neighbour, internal_id, layer, data)
                if found:
                    current = found

            if level > max_level:
                self._top = (internal_id, level)

    def search(
        self,
        query: Sequence[float],
        k: int,
        ef: Optional[int] = None,
    ) -> list[Neighbor]:
        """
        Find the (approximately) k most similar vectors.

        Args:
            query: Query vector of length ``dimension``.
            k: Number of results wanted.
            ef: Beam width at layer 0; defaults to the index's ef_search.
                The effective width is max(ef, k).

        Returns:
            Up to k Neighbors ordered by similarity descending, ties by
            ascending id. Empty when the index is empty or k <= 0.
        """
        normalized = self._prepare(query, "query")
        if k <= 0:
            return []

        # Snapshot order matters: top, then count, then the arena.
        top = self._top
        if top is None:
            return []
        limit = self._count
        data = self._data

        entry, max_level = top
        beam = max(ef if ef is not None else self._ef_search, k)

        current = [(self._distance(normalized, entry, data), entry)]
        for layer in range(max_level, 0, -1):
            current = self._search_layer(normalized, current, 1, layer, data, limit)[:1]

        found = self._search_layer(normalized, current, beam, 0, data, limit)
        return [
            Neighbor(node, min(1.0, max(-1.0, 1.0 - dist)))
            for dist, node in found[:k]
        ]

    # -------------------------------------------------------------------------
    # Graph internals
    # -------------------------------------------------------------------------

    def _search_layer(
        self,
        query: np.ndarray,
        entry_points: list[_Candidate],
        ef: int,
        layer: int,
        data: np.ndarray,
        limit: int,
    ) -> list[_Candidate]:
        """Beam search on one layer; returns up to ef candidates, closest first."""
        visited = {node for _, node in entry_points}
        candidates = list(entry_points)
        heapq.heapify(candidates)
        # Max-heap on (distance, id) via negation: the root is the worst result.
        results = [(-dist, -node) for dist, node in entry_points]
        heapq.heapify(results)
        while len(results) > ef:
            heapq.heappop(results)

        while candidates:
            dist, node = heapq.heappop(candidates)
            worst_dist = -results[0][0]
            if len(results) >= ef and dist > worst_dist:
                break

            node_links = self._links[node]
            if layer >= len(node_links):
                continue
            neighbours = [
                n for n in node_links[layer] if n < limit and n not in visited
            ]
            if not neighbours:
                continue
            visited.update(neighbours)

            distances = self._distances(query, neighbours, data)
            for neighbour, neighbour_dist in zip(neighbours, distances):
                worst = (-results[0][0], -results[0][1])
                if len(results) < ef or (neighbour_dist, neighbour) < worst:
                    heapq.heappush(candidates, (neighbour_dist, neighbour))
                    heapq.heappush(results, (-neighbour_dist, -neighbour))
                    if len(results) > ef:
                        heapq.heappop(results)

        return sorted((-neg_dist, -neg_node) for neg_dist, neg_node in results)

    def _select_neighbors(
        self,
        candidates: list[_Candidate],
        max_links: int,
        data: np.ndarray,
    ) -> list[_Candidate]:
        """
        Diversity heuristic over candidates sorted by distance to the base.

        A candidate closer to an already selected neighbour than to the base
        node is skipped; skipped candidates fill any remaining slots.
        """
        if len(candidates) <= max_links:
            return list(candidates)

        selected: list[_Candidate] = []
        pruned: list[_Candidate] = []
        for dist, node in candidates:
            if len(selected) >= max_links:
                break
            if selected:
                selected_ids = [n for _, n in selected]
                to_selected = self._distances(data[node], selected_ids, data)
                if min(to_selected) < dist:
                    pruned.append((dist, node))
                    continue
            selected.append((dist, node))

        for item in pruned:
            if len(selected) >= max_links:
                break
            selected.append(item)

        return selected

    def _connect(self, node: int, new_node: int, layer: int, data: np.ndarray) -> None:
        """Add a back-link node -> new_node, re-pruning an overflowing list."""
        links = self._links[node][layer]
        max_links = self._max_links(layer)

        if len(links) < max_links:
            self._links[node][layer] = links + [new_node]
            return

        candidate_ids = links + [new_node]
        distances = self._distances(data[node], candidate_ids, data)
        candidates = sorted(zip(distances, candidate_ids))
        kept = self._select_neighbors(candidates, max_links, data)
        self._links[node][layer] = [n for _, n in kept]

    def _max_links(self, layer: int) -> int:
        return self.params.max_links_layer0 if layer == 0 else self.params.m

    def _random_level(self) -> int:
        uniform = 1.0 - self._rng.random()  # (0, 1]
        return int(-math.log(uniform) * self.params.level_multiplier)

    def _ensure_capacity(self, size: int) -> None:
        capacity = self._data.shape[0]
        if size <= capacity:
            return
        grown = np.zeros((max(size, capacity * 2), self.dimension), dtype=np.float32)
        grown[: self._count] = self._data[: self._count]
        self._data = grown

    # -------------------------------------------------------------------------
    # Distance helpers
    # -------------------------------------------------------------------------

    def _prepare(self, vector: Sequence[float], label: str) -> np.ndarray:
        array = np.asarray(vector, dtype=np.float64)
        if array.ndim != 1 or array.shape[0] != self.dimension:
            raise ValueError(
                f"{label} must have shape ({self.dimension},); received {array.shape}"
            )
        if not np.all(np.isfinite(array)):
            raise ValueError(f"{label} contains non-finite values")

        # Scale by the largest component first so the norm neither
        # underflows nor overflows.
        scale = float(np.max(np.abs(array)))
        if scale == 0.0:
            logger.warning(
                "Zero-magnitude %s: cosine similarity is undefined, scoring as 0", label
            )
            return array
        scaled = array / scale
        return scaled / np.linalg.norm(scaled)

    @staticmethod
    def _distance(query: np.ndarray, node: int, data: np.ndarray) -> float:
        dot = float(np.dot(data[node].astype(np.float64), query))
        return round(1.0 - dot, _DISTANCE_DECIMALS)

    @staticmethod
    def _distances(query: np.ndarray, nodes: list[int], data: np.ndarray) -> list[float]:
        dots = data[nodes].astype(np.float64) @ np.asarray(query, dtype=np.float64)
        return np.round(1.0 - dots, _DISTANCE_DECIMALS).tolist()
