"""
Ledger Sync - best-effort mirroring of collection metadata

The external ledger keeps collection metadata (never raw vectors) so that
a restarted engine can list collections it no longer holds in memory.
Writes to the ledger are decoupled from the core through an outbound
queue drained by a daemon worker thread:

- notify_created / notify_updated only enqueue and return immediately;
  they never block on the network and never raise
- the worker retries LedgerUnavailableError with exponential backoff and
  drops the message (with a warning) once retries are exhausted
- rehydrate() pulls ledger-known ids and adopts unknown ones into the
  registry as empty shadow collections

Usage:
    from vector_store.ledger import HttpLedgerClient, LedgerSync

    sync = LedgerSync(HttpLedgerClient("http://ledger:8080"))
    registry = CollectionRegistry(ledger=sync)
    ...
    sync.flush(timeout=5)
    sync.close()
"""

import hashlib
import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, Union

from .exceptions import (
    LedgerUnavailableError,
    VectorEngineError,
    format_error_chain,
    is_retryable,
)
from .http_client import get_json, post_json
from .models import (
    Collection,
    LedgerCollection,
    LedgerCreatePayload,
    LedgerUpdatePayload,
)

if TYPE_CHECKING:
    from .registry import CollectionRegistry

logger = logging.getLogger(__name__)

EMPTY_CONTENT_HASH = hashlib.sha256(b"").hexdigest()


def content_hash(previous: str, operation: str, record_id: str) -> str:
    """
    Advance a collection's opaque content hash by one mutation.

    The hash is a sha256 chain over every insert/delete applied to the
    collection, so two collections with the same history share a hash.
    """
    digest = hashlib.sha256()
    digest.update(previous.encode("utf-8"))
    digest.update(f"|{operation}|{record_id}".encode("utf-8"))
    return digest.hexdigest()


class LedgerClient(Protocol):
    """Transport to the external ledger. Failures raise LedgerUnavailableError."""

    def create_collection(self, payload: LedgerCreatePayload) -> None: ...

    def update_collection(self, payload: LedgerUpdatePayload) -> None: ...

    def list_collections(self) -> list[str]: ...

    def get_collection(self, collection_id: str) -> Optional[LedgerCollection]: ...


class HttpLedgerClient:
    """
    JSON-over-HTTP ledger client.

    Endpoints (relative to base_url):
        POST /collections              create
        POST /collections/{id}         update counts and content hash
        GET  /collections              list ids
        GET  /collections/{id}         metadata (404 = unknown)
    """

    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def create_collection(self, payload: LedgerCreatePayload) -> None:
        post_json(
            f"{self.base_url}/collections",
            payload.model_dump(mode="json", by_alias=True),
            timeout=self.timeout,
        )

    def update_collection(self, payload: LedgerUpdatePayload) -> None:
        post_json(
            f"{self.base_url}/collections/{payload.collection_id}",
            payload.model_dump(mode="json", by_alias=True),
            timeout=self.timeout,
        )

    def list_collections(self) -> list[str]:
        data = get_json(f"{self.base_url}/collections", timeout=self.timeout)
        items = data.get("collections", []) if isinstance(data, dict) else data
        ids: list[str] = []
        for item in items or []:
            if isinstance(item, str):
                ids.append(item)
            elif isinstance(item, dict):
                collection_id = item.get("collectionId") or item.get("id")
                if collection_id:
                    ids.append(str(collection_id))
        return ids

    def get_collection(self, collection_id: str) -> Optional[LedgerCollection]:
        try:
            data = get_json(
                f"{self.base_url}/collections/{collection_id}",
                timeout=self.timeout,
            )
        except LedgerUnavailableError as e:
            if e.status_code == 404:
                return None
            raise

        if not isinstance(data, dict):
            return None
        if "collectionId" not in data and "id" not in data:
            data = {**data, "collectionId": collection_id}
        elif "collectionId" not in data:
            data = {**data, "collectionId": data["id"]}
        return LedgerCollection.model_validate(data)


@dataclass
class _Message:
    operation: str
    payload: Union[LedgerCreatePayload, LedgerUpdatePayload]


_STOP = object()


class LedgerSync:
    """
    Fire-and-forget outbound queue to a LedgerClient.

    With no client configured every notification is a logged no-op.
    """

    def __init__(
        self,
        client: Optional[LedgerClient] = None,
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
        max_backoff_seconds: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the sync.

        Args:
            client: Ledger transport. None disables syncing.
            max_retries: Retries per message after the first attempt.
            backoff_seconds: Delay before the first retry; doubles per retry.
            max_backoff_seconds: Upper bound for a single delay.
            sleep: Sleep function (injectable for tests).
        """
        self.client = client
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self._sleep = sleep

        self._queue: queue.Queue = queue.Queue()
        self._worker: Optional[threading.Thread] = None
        self._worker_lock = threading.Lock()
        self._idle = threading.Condition()
        self._pending = 0
        self._closed = False

        self.sent = 0
        self.dropped = 0

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    @property
    def pending(self) -> int:
        return self._pending

    # -------------------------------------------------------------------------
    # Outbound notifications
    # -------------------------------------------------------------------------

    def notify_created(self, collection: Collection) -> None:
        """Queue a create message. Never blocks on the ledger, never raises."""
        if not self.is_configured:
            logger.debug("Ledger not configured, skipping create for %s", collection.id)
            return
        self._enqueue(_Message("create", LedgerCreatePayload.from_collection(collection)))

    def notify_updated(self, collection_id: str, record_count: int, digest: str) -> None:
        """Queue an update message. Never blocks on the ledger, never raises."""
        if not self.is_configured:
            return
        self._enqueue(_Message(
            "update",
            LedgerUpdatePayload(
                collection_id=collection_id,
                record_count=record_count,
                content_hash=digest,
            ),
        ))

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every queued message was delivered or dropped.

        Returns:
            True if the queue drained, False on timeout.
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout)

    def close(self, timeout: Optional[float] = 5.0) -> None:
        """Deliver what is queued, then stop the worker."""
        with self._worker_lock:
            if self._closed:
                return
            self._closed = True
            worker = self._worker

        if worker is not None and worker.is_alive():
            self._queue.put(_STOP)
            worker.join(timeout)
            if worker.is_alive():
                logger.warning("Ledger worker still busy after %.1fs; abandoning", timeout)

    # -------------------------------------------------------------------------
    # Rehydration
    # -------------------------------------------------------------------------

    def rehydrate(self, registry: "CollectionRegistry") -> list[str]:
        """
        Adopt ledger-known collections that are missing locally.

        Shadows carry the ledger's metadata but an empty index, since the
        ledger never stores raw vectors. Ledger errors are logged and
        yield an empty result.

        Returns:
            IDs of the collections adopted by this call.
        """
        if not self.is_configured:
            return []

        try:
            remote_ids = self.client.list_collections()
        except LedgerUnavailableError as e:
            logger.warning("Ledger unavailable, skipping rehydration: %s", e)
            return []

        adopted: list[str] = []
        for collection_id in remote_ids:
            if registry.get(collection_id) is not None:
                continue
            try:
                remote = self.client.get_collection(collection_id)
            except LedgerUnavailableError as e:
                logger.warning("Cannot fetch ledger collection %s: %s", collection_id, e)
                continue
            if remote is None:
                continue
            try:
                registry.adopt(remote)
            except VectorEngineError as e:
                logger.warning("Skipping ledger collection %s: %s", collection_id, e)
                continue
            adopted.append(collection_id)

        if adopted:
            logger.info("Rehydrated %d collection(s) from the ledger", len(adopted))
        return adopted

    # -------------------------------------------------------------------------
    # Worker
    # -------------------------------------------------------------------------

    def _enqueue(self, message: _Message) -> None:
        with self._worker_lock:
            if self._closed:
                logger.warning(
                    "Ledger sync closed, dropping %s for %s",
                    message.operation, message.payload.collection_id,
                )
                return
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(
                    target=self._run, name="ledger-sync", daemon=True
                )
                self._worker.start()
            with self._idle:
                self._pending += 1
            self._queue.put(message)

    def _run(self) -> None:
        while True:
            message = self._queue.get()
            if message is _STOP:
                return
            try:
                self._deliver(message)
            finally:
                with self._idle:
                    self._pending -= 1
                    self._idle.notify_all()

    def _deliver(self, message: _Message) -> None:
        collection_id = message.payload.collection_id
        for attempt in range(self.max_retries + 1):
            try:
                if message.operation == "create":
                    self.client.create_collection(message.payload)
                else:
                    self.client.update_collection(message.payload)
                self.sent += 1
                return
            except LedgerUnavailableError as e:
                if attempt >= self.max_retries or not is_retryable(e):
                    self.dropped += 1
                    logger.warning(
                        "Dropping ledger %s for %s after %d attempt(s):\n%s",
                        message.operation, collection_id, attempt + 1, format_error_chain(e),
                    )
                    return
                delay = min(self.backoff_seconds * (2 ** attempt), self.max_backoff_seconds)
                logger.info(
                    "Ledger %s for %s failed (%s), retrying in %.2fs",
                    message.operation, collection_id, e, delay,
                )
                self._sleep(delay)
            except Exception:
                # A faulty client must not kill the worker.
                self.dropped += 1
                logger.exception(
                    "Unexpected error delivering ledger %s for %s",
                    message.operation, collection_id,
                )
                return

    def stats(self) -> dict[str, Any]:
        return {
            "configured": self.is_configured,
            "pending": self._pending,
            "sent": self.sent,
            "dropped": self.dropped,
        }
