from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query

from chunking import ChunkingError, ChunkingResult
from ingestion import IngestionReport
from vector_store import (
    Collection,
    CollectionNotFoundError,
    RecordNotFoundError,
    RecordPage,
    VectorEngineError,
    VectorRecord,
    error_kind,
)

from .config import EngineConfig
from .engine import VectorEngine
from .models import (
    ChunkRequest,
    CollectionListResponse,
    CreateCollectionRequest,
    DeleteResponse,
    IngestRequest,
    InsertBatchRequest,
    InsertBatchResponse,
    InsertRequest,
    InsertResponse,
    InsertTextRequest,
    SearchRequest,
    SearchResponse,
)

STATUS_BY_KIND = {
    "NotFound": 404,
    "DimensionMismatch": 400,
    "InvalidName": 400,
    "InvalidStrategy": 400,
    "InvalidMetadata": 400,
    "InvalidVector": 400,
    "UnsupportedDocument": 415,
    "EmbeddingFailure": 502,
    "LedgerUnavailable": 503,
}


def _http_error(exc: Exception) -> HTTPException:
    kind = error_kind(exc)
    status = STATUS_BY_KIND.get(kind, 500)
    return HTTPException(status_code=status, detail={"error": kind, "message": str(exc)})


def create_app(
    config: EngineConfig | None = None,
    engine: VectorEngine | None = None,
) -> FastAPI:
    engine = engine or VectorEngine(config or EngineConfig.from_env())

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        engine.close()

    app = FastAPI(
        title="Vector Engine",
        version="1.0.0",
        description="In-memory vector collections with HNSW search and document ingestion.",
        lifespan=lifespan,
    )
    app.state.engine = engine

    @app.get("/health")
    def health() -> dict:
        return engine.health()

    @app.get("/stats")
    def stats() -> dict:
        return engine.stats()

    # Collections

    @app.post("/collections", response_model=Collection, status_code=201)
    def create_collection(request: CreateCollectionRequest) -> Collection:
        try:
            collection_id = engine.create_collection(
                request.name,
                dimension=request.dimension,
                description=request.description,
                is_public=request.is_public,
                allow_reserved_name=request.allow_reserved_name,
            )
            return engine.registry.require(collection_id)
        except VectorEngineError as exc:
            raise _http_error(exc) from exc

    @app.get("/collections", response_model=CollectionListResponse)
    def list_collections(sync: bool = True) -> CollectionListResponse:
        collections = engine.list_collections(sync=sync)
        return CollectionListResponse(collections=collections, total=len(collections))

    @app.get("/collections/{collection_id}", response_model=Collection)
    def get_collection(collection_id: str) -> Collection:
        collection = engine.get_collection(collection_id)
        if collection is None:
            raise _http_error(CollectionNotFoundError(collection_id))
        return collection

    @app.delete("/collections/{collection_id}", response_model=DeleteResponse)
    def delete_collection(collection_id: str) -> DeleteResponse:
        if not engine.delete_collection(collection_id):
            raise _http_error(CollectionNotFoundError(collection_id))
        return DeleteResponse(deleted=True)

    # Records

    @app.post(
        "/collections/{collection_id}/vectors",
        response_model=InsertResponse,
        status_code=201,
    )
    def insert(collection_id: str, request: InsertRequest) -> InsertResponse:
        try:
            record_id = engine.insert(collection_id, request.vector, request.metadata)
            return InsertResponse(record_id=record_id)
        except VectorEngineError as exc:
            raise _http_error(exc) from exc

    @app.post(
        "/collections/{collection_id}/vectors/batch",
        response_model=InsertBatchResponse,
        status_code=201,
    )
    def insert_batch(collection_id: str, request: InsertBatchRequest) -> InsertBatchResponse:
        try:
            return InsertBatchResponse(
                record_ids=engine.insert_batch(collection_id, request.items)
            )
        except VectorEngineError as exc:
            raise _http_error(exc) from exc

    @app.post(
        "/collections/{collection_id}/texts",
        response_model=InsertResponse,
        status_code=201,
    )
    def insert_text(collection_id: str, request: InsertTextRequest) -> InsertResponse:
        try:
            record_id = engine.insert_text(collection_id, request.text, request.metadata)
            return InsertResponse(record_id=record_id)
        except VectorEngineError as exc:
            raise _http_error(exc) from exc

    @app.get("/collections/{collection_id}/vectors", response_model=RecordPage)
    def list_records(
        collection_id: str,
        limit: int = Query(100, ge=0, le=10_000),
        offset: int = Query(0, ge=0),
    ) -> RecordPage:
        try:
            return engine.list_records(collection_id, limit=limit, offset=offset)
        except VectorEngineError as exc:
            raise _http_error(exc) from exc

    @app.get("/collections/{collection_id}/vectors/{record_id}", response_model=VectorRecord)
    def get_record(collection_id: str, record_id: str) -> VectorRecord:
        try:
            record = engine.get_record(collection_id, record_id)
            if record is None:
                raise RecordNotFoundError(collection_id, record_id)
            return record
        except VectorEngineError as exc:
            raise _http_error(exc) from exc

    @app.delete(
        "/collections/{collection_id}/vectors/{record_id}",
        response_model=DeleteResponse,
    )
    def delete_record(collection_id: str, record_id: str) -> DeleteResponse:
        if not engine.delete_record(collection_id, record_id):
            raise _http_error(RecordNotFoundError(collection_id, record_id))
        return DeleteResponse(deleted=True)

    # Search

    @app.post("/collections/{collection_id}/search", response_model=SearchResponse)
    def search(collection_id: str, request: SearchRequest) -> SearchResponse:
        if (request.vector is None) == (request.query is None):
            raise HTTPException(
                status_code=400,
                detail={"error": "BadRequest", "message": "Provide exactly one of 'vector' or 'query'"},
            )
        try:
            if request.vector is not None:
                hits = engine.search(
                    collection_id, request.vector, request.k, request.filter, request.ef
                )
            else:
                hits = engine.search_text(
                    collection_id, request.query, request.k, request.filter, request.ef
                )
            return SearchResponse(collection_id=collection_id, results=hits)
        except VectorEngineError as exc:
            raise _http_error(exc) from exc

    # Documents

    @app.post(
        "/ingest",
        response_model=IngestionReport,
        response_model_exclude={"chunks": {"__all__": {"embedding"}}},
    )
    def ingest(request: IngestRequest) -> IngestionReport:
        if (request.text is None) == (request.document is None):
            raise HTTPException(
                status_code=400,
                detail={"error": "BadRequest", "message": "Provide exactly one of 'text' or 'document'"},
            )
        try:
            if request.document is not None:
                return engine.ingest_source(
                    request.collection_id,
                    request.document.to_source(),
                    request.strategy,
                    embed=request.embed,
                    collection_name=request.collection_name,
                )
            return engine.ingest_document(
                request.collection_id,
                request.text,
                request.strategy,
                embed=request.embed,
                collection_name=request.collection_name,
            )
        except (VectorEngineError, ChunkingError) as exc:
            raise _http_error(exc) from exc
        except ValueError as exc:
            raise HTTPException(
                status_code=400,
                detail={"error": "BadRequest", "message": str(exc)},
            ) from exc

    @app.post("/chunk", response_model=ChunkingResult)
    def chunk(request: ChunkRequest) -> ChunkingResult:
        try:
            return engine.chunk(request.text, request.strategy)
        except ChunkingError as exc:
            raise _http_error(exc) from exc

    return app
