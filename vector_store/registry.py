"""
Collection Registry - owner of collections, their indexes and records

Each collection is held as one entry combining its metadata, its
HNSWIndex and its record store, so the three can never drift apart.
The registry is the only code path that constructs VectorRecords, which
keeps the dimension and id-uniqueness rules in one place.

Design:
- Records live in an arena indexed by the same sequential integer id the
  HNSWIndex uses; deleting a record tombstones its slot (the graph node
  stays, search results pointing at it are filtered out)
- Mutations on one collection are serialised by that collection's lock;
  different collections never contend. The registry map has its own lock
  held only for membership changes
- Searches take no lock; they over-sample k * over_sample_factor
  candidates and widen the candidate count until k live matches are found
  or the whole graph was considered
- Ledger notifications are queued after the mutation is committed

Usage:
    from vector_store import CollectionRegistry

    registry = CollectionRegistry()
    cid = registry.create("papers", dimension=3)
    rid = registry.insert(cid, [1.0, 0.0, 0.0], {"title": "A"})
    hits = registry.search(cid, [1.0, 0.0, 0.0], k=1)
"""

import copy
import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

import numpy as np

from ann_index import HNSWIndex, HNSWParams

from .exceptions import (
    CollectionNotFoundError,
    DimensionMismatchError,
    InvalidNameError,
    InvalidVectorError,
)
from .ledger import EMPTY_CONTENT_HASH, LedgerSync, content_hash
from .metadata import MetadataFilter, matches_filter, validate_metadata
from .models import (
    Collection,
    LedgerCollection,
    RecordPage,
    SearchHit,
    VectorInput,
    VectorRecord,
    utc_now,
)

logger = logging.getLogger(__name__)

RESERVED_NAME = "default"

BatchItem = Union[VectorInput, Mapping[str, Any], tuple]

FLOAT32_MAX = float(np.finfo(np.float32).max)


@dataclass
class _CollectionEntry:
    """Metadata, index and record store of one collection."""
    collection: Collection
    index: HNSWIndex
    # Arena slot -> record, None once tombstoned
    slots: list[Optional[VectorRecord]] = field(default_factory=list)
    record_ids: dict[str, int] = field(default_factory=dict)
    content_hash: str = EMPTY_CONTENT_HASH
    deleted: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock)


class CollectionRegistry:
    """
    In-memory registry of collections.

    Thread-safe. All public methods either succeed or raise exactly one
    VectorEngineError subtype without leaving partial state behind.
    """

    def __init__(
        self,
        index_params: Optional[HNSWParams] = None,
        over_sample_factor: int = 2,
        ledger: Optional[LedgerSync] = None,
    ):
        """
        Initialize an empty registry.

        Args:
            index_params: HNSW parameters for every new collection's index.
            over_sample_factor: Candidate multiplier for filtered searches.
            ledger: Outbound ledger sync. None disables ledger notifications.
        """
        if over_sample_factor < 1:
            raise ValueError("over_sample_factor must be at least 1")

        self.index_params = index_params or HNSWParams()
        self.over_sample_factor = over_sample_factor
        self.ledger = ledger or LedgerSync()
        self._entries: dict[str, _CollectionEntry] = {}
        self._membership_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------

    def create(
        self,
        name: str,
        dimension: int,
        description: str = "",
        is_public: bool = True,
        allow_reserved_name: bool = False,
    ) -> str:
        """
        Create an empty collection.

        Args:
            name: Display name. "default" (any case) is reserved.
            dimension: Vector length for the collection, fixed forever.
            description: Free-text description.
            is_public: Visibility flag forwarded to the ledger.
            allow_reserved_name: Permit the reserved name.

        Returns:
            The new collection id.

        Raises:
            InvalidNameError: Empty or reserved name.
            DimensionMismatchError: dimension <= 0.
        """
        name = (name or "").strip()
        if not name:
            raise InvalidNameError(name, "name must not be empty")
        if name.lower() == RESERVED_NAME and not allow_reserved_name:
            raise InvalidNameError(name, "reserved; pass allow_reserved_name to use it")
        if dimension <= 0:
            raise DimensionMismatchError(
                dimension, dimension, f"Dimension must be positive, got {dimension}"
            )

        collection = Collection(
            id=str(uuid.uuid4()),
            name=name,
            description=description or "",
            dimension=dimension,
            is_public=is_public,
        )
        entry = _CollectionEntry(
            collection=collection,
            index=self._new_index(dimension),
        )
        with self._membership_lock:
            self._entries[collection.id] = entry

        logger.info(
            "Created collection %s (%s, dim=%d)", collection.id, name, dimension
        )
        self.ledger.notify_created(collection.model_copy())
        return collection.id

    def adopt(self, remote: LedgerCollection) -> Collection:
        """
        Register a ledger-known collection as an empty local shadow.

        Returns the existing collection unchanged if the id is already known.
        """
        if remote.dimension <= 0:
            raise DimensionMismatchError(
                remote.dimension,
                remote.dimension,
                f"Ledger collection {remote.id} has no usable dimension",
            )

        now = utc_now()
        collection = Collection(
            id=remote.id,
            name=remote.name or remote.id,
            description=remote.description,
            dimension=remote.dimension,
            is_public=remote.is_public,
            created=remote.created or now,
            updated=remote.updated or now,
            rehydrated=True,
            ledger_record_count=remote.record_count,
        )
        with self._membership_lock:
            existing = self._entries.get(remote.id)
            if existing is not None:
                return existing.collection.model_copy()
            self._entries[remote.id] = _CollectionEntry(
                collection=collection,
                index=self._new_index(remote.dimension),
            )

        logger.info("Adopted ledger collection %s as shadow", remote.id)
        return collection.model_copy()

    def get(self, collection_id: str) -> Optional[Collection]:
        """Return a snapshot of a collection, or None if unknown."""
        entry = self._entries.get(collection_id)
        if entry is None:
            return None
        return entry.collection.model_copy()

    def require(self, collection_id: str) -> Collection:
        """Return a snapshot of a collection or raise CollectionNotFoundError."""
        return self._require_entry(collection_id).collection.model_copy()

    def list_collections(self) -> list[Collection]:
        """Return snapshots of all local collections, oldest first."""
        with self._membership_lock:
            entries = list(self._entries.values())
        collections = [entry.collection.model_copy() for entry in entries]
        return sorted(collections, key=lambda c: c.created)

    def __contains__(self, collection_id: str) -> bool:
        return collection_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def delete_collection(self, collection_id: str) -> bool:
        """Remove a collection with its index and records. Irreversible."""
        with self._membership_lock:
            entry = self._entries.pop(collection_id, None)
        if entry is None:
            return False

        with entry.lock:
            entry.deleted = True
        logger.info("Deleted collection %s", collection_id)
        return True

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def insert(
        self,
        collection_id: str,
        vector: Sequence[float],
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """
        Insert one vector.

        Returns:
            The new record id.

        Raises:
            CollectionNotFoundError: Unknown (or concurrently deleted) collection.
            DimensionMismatchError: Vector length differs from the dimension.
            InvalidVectorError: Vector is not a flat sequence of finite numbers.
            InvalidMetadataError: Unsupported metadata value.
        """
        return self.insert_batch(collection_id, [(vector, metadata)])[0]

    def insert_batch(
        self,
        collection_id: str,
        items: Iterable[BatchItem],
    ) -> list[str]:
        """
        Insert several vectors atomically.

        Every item is validated before any is inserted; one ledger update is
        queued per batch.

        Args:
            collection_id: Target collection.
            items: VectorInput objects, {"vector", "metadata"} mappings or
                (vector, metadata) tuples.

        Returns:
            Record ids in input order.
        """
        entry = self._require_entry(collection_id)
        dimension = entry.collection.dimension
        prepared = [
            self._prepare_item(item, dimension, position)
            for position, item in enumerate(items)
        ]
        if not prepared:
            return []

        with entry.lock:
            if entry.deleted:
                raise CollectionNotFoundError(collection_id)

            record_ids: list[str] = []
            start_hash = entry.content_hash
            now = utc_now()
            try:
                for vector, metadata in prepared:
                    internal_id = len(entry.slots)
                    record = VectorRecord(
                        id=str(uuid.uuid4()),
                        vector=vector,
                        metadata=metadata,
                        timestamp=now,
                        internal_id=internal_id,
                    )
                    # The slot must exist before the node becomes reachable.
                    entry.slots.append(record)
                    entry.index.add(vector, internal_id)
                    entry.record_ids[record.id] = internal_id
                    entry.content_hash = content_hash(entry.content_hash, "insert", record.id)
                    record_ids.append(record.id)
            except ValueError as e:
                self._rollback(entry, record_ids, start_hash)
                raise InvalidVectorError(f"rejected by the index ({e})") from e

            self._touch(entry, len(record_ids), now)
            record_count = entry.collection.record_count
            digest = entry.content_hash

        logger.debug("Inserted %d record(s) into %s", len(record_ids), collection_id)
        self.ledger.notify_updated(collection_id, record_count, digest)
        return record_ids

    def get_record(self, collection_id: str, record_id: str) -> Optional[VectorRecord]:
        """Return a live record, or None if the record is unknown or deleted."""
        entry = self._require_entry(collection_id)
        internal_id = entry.record_ids.get(record_id)
        if internal_id is None:
            return None
        record = entry.slots[internal_id]
        return record.model_copy(deep=True) if record is not None else None

    def delete(self, collection_id: str, record_id: str) -> bool:
        """
        Tombstone a record.

        Returns:
            False if the collection or the record is unknown.
        """
        entry = self._entries.get(collection_id)
        if entry is None:
            return False

        with entry.lock:
            if entry.deleted:
                return False
            internal_id = entry.record_ids.pop(record_id, None)
            if internal_id is None:
                return False
            entry.slots[internal_id] = None
            entry.content_hash = content_hash(entry.content_hash, "delete", record_id)
            self._touch(entry, -1, utc_now())
            record_count = entry.collection.record_count
            digest = entry.content_hash

        logger.debug("Tombstoned record %s in %s", record_id, collection_id)
        self.ledger.notify_updated(collection_id, record_count, digest)
        return True

    def list_records(
        self,
        collection_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> RecordPage:
        """Return live records in insertion order."""
        if limit < 0 or offset < 0:
            raise ValueError("limit and offset must be non-negative")

        entry = self._require_entry(collection_id)
        with entry.lock:
            live = [record for record in entry.slots if record is not None]

        page = live[offset:offset + limit]
        return RecordPage(
            records=[record.model_copy(deep=True) for record in page],
            total=len(live),
            limit=limit,
            offset=offset,
            has_more=offset + len(page) < len(live),
        )

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def search(
        self,
        collection_id: str,
        query: Sequence[float],
        k: int = 10,
        metadata_filter: Optional[MetadataFilter] = None,
        ef: Optional[int] = None,
    ) -> list[SearchHit]:
        """
        Find the k most similar live records.

        Args:
            collection_id: Collection to search.
            query: Query vector of the collection's dimension.
            k: Maximum number of hits.
            metadata_filter: Mapping (equality, dotted paths) or predicate.
            ef: Beam width override for this query.

        Returns:
            Up to k hits, most similar first, ties in insertion order.
        """
        entry = self._require_entry(collection_id)
        vector = self._prepare_vector(query, entry.collection.dimension)
        if k <= 0:
            return []

        index = entry.index
        slots = entry.slots
        total = len(index)
        if total == 0:
            return []

        fetch = min(k * self.over_sample_factor, total)
        while True:
            hits: list[SearchHit] = []
            for neighbour in index.search(vector, fetch, ef=ef):
                if neighbour.internal_id >= len(slots):
                    continue
                record = slots[neighbour.internal_id]
                if record is None:
                    continue
                if not matches_filter(record.metadata, metadata_filter):
                    continue
                hits.append(SearchHit(
                    record_id=record.id,
                    score=neighbour.similarity,
                    metadata=copy.deepcopy(record.metadata),
                ))
                if len(hits) == k:
                    return hits

            if fetch >= total:
                return hits
            fetch = min(fetch * 2, total)

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def stats(self) -> dict[str, Any]:
        """Return collection and record counts."""
        collections = self.list_collections()
        return {
            "total_collections": len(collections),
            "total_records": sum(c.record_count for c in collections),
            "rehydrated_collections": sum(1 for c in collections if c.rehydrated),
            "collections": [
                {
                    "id": c.id,
                    "name": c.name,
                    "dimension": c.dimension,
                    "record_count": c.record_count,
                }
                for c in collections
            ],
        }

    # -------------------------------------------------------------------------
    # Internal methods
    # -------------------------------------------------------------------------

    def _require_entry(self, collection_id: str) -> _CollectionEntry:
        entry = self._entries.get(collection_id)
        if entry is None:
            raise CollectionNotFoundError(collection_id)
        return entry

    def _new_index(self, dimension: int) -> HNSWIndex:
        return HNSWIndex(dimension, self.index_params.model_copy())

    @staticmethod
    def _touch(entry: _CollectionEntry, delta: int, when) -> None:
        collection = entry.collection
        collection.record_count = max(0, collection.record_count + delta)
        collection.updated = when

    @staticmethod
    def _rollback(entry: _CollectionEntry, record_ids: list[str], start_hash: str) -> None:
        # Graph nodes cannot be removed: drop the slot of a node that never
        # made it into the index and tombstone the ones that did.
        if len(entry.slots) > len(entry.index):
            entry.slots.pop()
        for record_id in record_ids:
            entry.slots[entry.record_ids.pop(record_id)] = None
        entry.content_hash = start_hash
        logger.warning(
            "Rolled back batch of %d record(s) in %s", len(record_ids), entry.collection.id
        )

    @staticmethod
    def _prepare_vector(vector: Sequence[float], dimension: int) -> list[float]:
        try:
            array = np.asarray(vector, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidVectorError(f"not numeric ({e})") from e
        if array.ndim != 1:
            raise InvalidVectorError(f"expected a flat vector, got shape {array.shape}")
        if array.shape[0] != dimension:
            raise DimensionMismatchError(dimension, int(array.shape[0]))
        if not np.all(np.isfinite(array)):
            raise InvalidVectorError("contains NaN or infinite values")
        if np.any(np.abs(array) > FLOAT32_MAX):
            raise InvalidVectorError("contains values outside the float32 range")
        return array.tolist()

    def _prepare_item(
        self,
        item: BatchItem,
        dimension: int,
        position: int,
    ) -> tuple[list[float], dict[str, Any]]:
        if isinstance(item, VectorInput):
            vector, metadata = item.vector, item.metadata
        elif isinstance(item, Mapping):
            if "vector" not in item:
                raise InvalidVectorError(f"batch item {position} has no 'vector'")
            vector, metadata = item["vector"], item.get("metadata")
        else:
            vector, metadata = item
        return self._prepare_vector(vector, dimension), validate_metadata(metadata)
