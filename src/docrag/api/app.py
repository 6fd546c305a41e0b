"""FastAPI application exposing docrag services."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote
from uuid import uuid4

import chromadb
from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from docrag.api.schemas import (
    DeletionResponse,
    DocumentListResponse,
    DocumentSummary,
    DocumentTextResponse,
    ErrorResponse,
    IngestionResponse,
    QueryRequest,
    QueryResponse,
    SourceModel,
)
from docrag.config import Settings, get_settings
from docrag.embeddings import ChromaKnowledgeStore, EmbeddingConfig, KnowledgeStore, LangChainEmbeddingClient
from docrag.errors import DocRAGError
from docrag.ingestion import IngestionConfig, IngestionPipeline
from docrag.metrics.observability import (
    PipelineMetrics,
    bind_correlation_id,
    clear_correlation_id,
    configure_logging,
    get_logger,
)
from docrag.retrieval import RetrievalConfig, VectorRetriever
from docrag.services import (
    BoundaryTimeouts,
    DocumentCatalog,
    GenerationConfig,
    PromptBuilder,
    PromptBuilderConfig,
    QueryService,
    QwenGenerator,
    TemplateGenerator,
)
from docrag.storage import LocalObjectStore, ObjectStore, S3ObjectStore

_READ_BLOCK = 1024 * 1024


@dataclass(frozen=True)
class AppDependencies:
    ingestion: IngestionPipeline
    query_service: QueryService
    catalog: DocumentCatalog
    store: KnowledgeStore


def build_object_store(settings: Settings) -> ObjectStore:
    if settings.object_store_backend == "s3":
        if not settings.s3_bucket:
            raise ValueError("DOCRAG_S3_BUCKET is required when the object store backend is s3")
        return S3ObjectStore(settings.s3_bucket, settings.s3_region, prefix=settings.s3_prefix)
    return LocalObjectStore(settings.resolved_object_store_dir, public_base_url=settings.public_base_url)


def build_dependencies(settings: Settings) -> AppDependencies:
    timeouts = BoundaryTimeouts(
        object_store=settings.object_store_timeout_seconds,
        embedding=settings.embedding_timeout_seconds,
        generation=settings.generation_timeout_seconds,
    )
    embedder = LangChainEmbeddingClient(
        EmbeddingConfig(
            model=settings.embedding_model,
            dim=settings.embedding_dim,
            use_model=settings.use_model_embeddings,
            normalize=True,
            max_input_chars=settings.embedding_max_input_chars,
        ),
    )
    chroma_client = None
    if settings.chroma_host:
        chroma_client = chromadb.HttpClient(
            host=settings.chroma_host,
            port=settings.chroma_port or 8000,
            ssl=settings.chroma_ssl,
        )
    store = ChromaKnowledgeStore(
        collection_name=settings.chroma_collection,
        client=chroma_client,
        persist_directory=None if chroma_client else settings.chroma_persist_dir,
        dimension=settings.embedding_dim,
    )
    object_store = build_object_store(settings)
    ingestion = IngestionPipeline(
        object_store=object_store,
        embedder=embedder,
        store=store,
        config=IngestionConfig(chunk_size=settings.chunk_size, chunk_overlap=settings.chunk_overlap),
        timeouts=timeouts,
    )
    retriever = VectorRetriever(
        embedder,
        store,
        RetrievalConfig(
            top_k=settings.retrieval_top_k,
            max_top_k=settings.retrieval_max_top_k,
            embedding_timeout_seconds=timeouts.embedding,
        ),
    )
    generator = QwenGenerator(
        GenerationConfig(
            model=settings.generator_model,
            max_new_tokens=settings.generator_max_new_tokens,
            temperature=settings.generator_temperature,
            use_model=settings.use_model_generator,
        ),
        fallback=TemplateGenerator(),
    )
    query_service = QueryService(
        retriever=retriever,
        generator=generator,
        prompt_builder=PromptBuilder(PromptBuilderConfig(delimiter=settings.context_delimiter)),
        generation_timeout_seconds=timeouts.generation,
    )
    catalog = DocumentCatalog(store=store, object_store=object_store, timeouts=timeouts)
    return AppDependencies(ingestion=ingestion, query_service=query_service, catalog=catalog, store=store)


def _content_disposition(kind: str, file_name: str) -> str:
    fallback = file_name.encode("ascii", "ignore").decode("ascii").replace('"', "") or "document"
    return f"{kind}; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name)}"


def create_app(*, settings: Settings | None = None, dependencies: AppDependencies | None = None) -> FastAPI:
    settings = settings or get_settings()
    deps = dependencies or build_dependencies(settings)

    configure_logging()
    logger = get_logger("api")
    app = FastAPI(title="docrag API", version="0.1.0")
    app.state.dependencies = deps

    # Optional CORS
    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_allow_origins),
            allow_credentials=settings.cors_allow_credentials,
            allow_methods=list(settings.cors_allow_methods),
            allow_headers=list(settings.cors_allow_headers),
        )

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):  # type: ignore[override]
        correlation_id = request.headers.get("X-Request-ID", uuid4().hex)
        request.state.correlation_id = correlation_id
        bind_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers["X-Correlation-ID"] = correlation_id
        return response

    def _error_response(request: Request, status_code: int, error: str, detail: str) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", uuid4().hex)
        payload = ErrorResponse(error=error, detail=detail, correlation_id=correlation_id)
        return JSONResponse(status_code=status_code, content=payload.model_dump())

    @app.exception_handler(DocRAGError)
    async def handle_docrag_error(request: Request, exc: DocRAGError) -> JSONResponse:
        log = logger.warning if exc.status_code < 500 else logger.error
        log("request.failed", error=exc.code, detail=exc.message, document_id=exc.document_id, stage=exc.stage)
        return _error_response(request, exc.status_code, exc.code, exc.message)

    # Starlette's class also catches routing 404/405 raised outside FastAPI.
    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error_response(request, exc.status_code, "http_error", str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        detail = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid')}"
            for error in exc.errors()
        )
        return _error_response(
            request, status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error", detail or "Invalid request"
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled.error", detail=str(exc))
        return _error_response(
            request, status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Internal Server Error"
        )

    def get_dependencies(request: Request) -> AppDependencies:
        return request.app.state.dependencies

    def get_ingestion(dep: AppDependencies = Depends(get_dependencies)) -> IngestionPipeline:
        return dep.ingestion

    def get_query_service(dep: AppDependencies = Depends(get_dependencies)) -> QueryService:
        return dep.query_service

    def get_catalog(dep: AppDependencies = Depends(get_dependencies)) -> DocumentCatalog:
        return dep.catalog

    def get_store(dep: AppDependencies = Depends(get_dependencies)) -> KnowledgeStore:
        return dep.store

    @app.post("/documents", response_model=IngestionResponse, status_code=status.HTTP_201_CREATED)
    async def upload_document(
        file: UploadFile = File(...),
        pipeline: IngestionPipeline = Depends(get_ingestion),
    ) -> IngestionResponse:
        file_name = file.filename or f"upload-{uuid4().hex}"
        buffer = bytearray()
        try:
            while True:
                block = await file.read(_READ_BLOCK)
                if not block:
                    break
                buffer.extend(block)
                if len(buffer) > settings.max_upload_bytes:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=f"File too large (>{settings.max_upload_size_mb}MB): {file_name}",
                    )
        finally:
            await file.close()
        result = await run_in_threadpool(pipeline.ingest, file_name, bytes(buffer), file.content_type)
        return IngestionResponse(
            document_id=result.document_id,
            file_name=result.file_name,
            chunks=result.chunk_count,
            text_length=result.text_length,
            file_url=result.file_url,
        )

    @app.post("/query", response_model=QueryResponse)
    def query_documents(
        payload: QueryRequest,
        service: QueryService = Depends(get_query_service),
    ) -> QueryResponse:
        answer = service.answer(payload.query, top_k=payload.top_k)
        return QueryResponse(
            query_id=answer.query_id,
            answer=answer.text,
            sources=[SourceModel.from_retrieved(source) for source in answer.sources],
            latency_ms=answer.latency_ms,
        )

    @app.get("/documents", response_model=DocumentListResponse)
    def list_documents(catalog: DocumentCatalog = Depends(get_catalog)) -> DocumentListResponse:
        documents = [DocumentSummary.from_metadata(metadata) for metadata in catalog.list_documents()]
        return DocumentListResponse(documents=documents)

    @app.get("/documents/{document_id}", response_model=DocumentTextResponse)
    def get_document(document_id: str, catalog: DocumentCatalog = Depends(get_catalog)) -> DocumentTextResponse:
        document = catalog.get_document(document_id)
        summary = DocumentSummary.from_metadata(document.metadata)
        return DocumentTextResponse(
            **summary.model_dump(exclude={"total_chunks"}),
            total_chunks=document.chunk_count,
            full_text=document.full_text,
        )

    @app.get("/documents/{document_id}/file")
    def download_document(
        document_id: str,
        view: bool = False,
        catalog: DocumentCatalog = Depends(get_catalog),
    ) -> Response:
        stored = catalog.open_file(document_id)
        metadata = stored.metadata
        media_type = metadata.file_type if "/" in metadata.file_type else "application/octet-stream"
        is_pdf = media_type == "application/pdf" or metadata.file_name.lower().endswith(".pdf")
        inline = view and is_pdf
        headers = {"Content-Disposition": _content_disposition("inline" if inline else "attachment", metadata.file_name)}
        if inline:
            headers["X-Content-Type-Options"] = "nosniff"
        return Response(content=stored.data, media_type=media_type, headers=headers)

    @app.delete("/documents/{document_id}", response_model=DeletionResponse)
    def delete_document(document_id: str, catalog: DocumentCatalog = Depends(get_catalog)) -> DeletionResponse:
        result = catalog.delete_document(document_id)
        return DeletionResponse(
            document_id=result.document_id,
            chunks_deleted=result.chunks_deleted,
            file_deleted=result.file_deleted,
        )

    @app.get("/metrics")
    def metrics(store: KnowledgeStore = Depends(get_store)) -> Response:
        try:
            PipelineMetrics.stored_chunk_count.set(store.count())
        except DocRAGError as exc:
            logger.warning("metrics.store_unavailable", detail=exc.message)
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        from docrag import __version__

        return {"status": "ok", "version": __version__, "environment": settings.environment}

    @app.head("/healthz")
    async def healthcheck_head() -> Response:
        return Response(status_code=status.HTTP_200_OK)

    @app.get("/livez")
    async def liveness() -> dict[str, str]:
        return {"status": "alive"}

    @app.get("/healthz/ready")
    def readiness(store: KnowledgeStore = Depends(get_store)) -> dict[str, str]:
        try:
            store.count()
            return {"status": "ready"}
        except DocRAGError as exc:
            return {"status": "error", "detail": exc.message}

    return app
