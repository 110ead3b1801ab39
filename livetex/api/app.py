"""
FastAPI application exposing the compile endpoint.

Endpoints:
    POST   /api/compile          {content} -> {artifact: base64 PDF}
    POST   /api/preview          {content} -> {html, segments}
    GET    /api/documents        -> [document]
    POST   /api/documents        {id?, title?, content} -> document
    GET    /api/documents/{id}   -> document
    DELETE /api/documents/{id}   -> {deleted: id}

Errors are returned as {error, reason?} with a non-2xx status:
    400  empty or missing content (the engine is never started)
    500  the engine ran and reported a problem, or produced no PDF
    503  the engine could not be launched or timed out
"""

import base64
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from loguru import logger

from livetex import __version__
from livetex.api.models import (
    CompileResponse,
    ContentRequest,
    DocumentRequest,
    DocumentResponse,
    ErrorResponse,
    PreviewResponse,
    SegmentResponse,
)
from livetex.config import LiveTexSettings, load_settings
from livetex.contexts.documents.store import (
    DocumentNotFoundError,
    DocumentStore,
    PersistenceFailure,
)
from livetex.contexts.preview.renderer import render_segments_async
from livetex.contexts.preview.segmenter import segment_math
from livetex.contexts.rendering.compiler import CompilerService, FailureReason, LatexCompiler

CONTEXT_PREFIX = "[api]"

STATUS_BY_REASON = {
    FailureReason.PROCESS_LAUNCH_FAILURE: 503,
    FailureReason.COMPILATION_ERROR: 500,
    FailureReason.OUTPUT_MISSING: 500,
}


def _error(status_code: int, message: str, reason: Optional[str] = None, errors=None) -> JSONResponse:
    body = ErrorResponse(error=message, reason=reason, errors=errors or [])
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app(
    compiler: Optional[CompilerService] = None,
    store: Optional[DocumentStore] = None,
    settings: Optional[LiveTexSettings] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        compiler: CompilerService for /api/compile (default: LatexCompiler from settings)
        store: Document store for /api/documents (default: settings.documents_path)
        settings: Resolved settings (default: load_settings())
    """
    settings = settings or load_settings()

    app = FastAPI(
        title="LiveTeX API",
        description="Compile LaTeX to PDF and render inline math previews",
        version=__version__,
    )
    app.state.compiler = compiler or LatexCompiler.from_settings(settings)
    app.state.store = store or DocumentStore(Path(settings.documents_path))

    @app.exception_handler(PersistenceFailure)
    async def persistence_failure_handler(request: Request, exc: PersistenceFailure):
        logger.error(f"{CONTEXT_PREFIX} {exc}")
        return _error(503, str(exc), reason="persistence_failure")

    @app.post(
        "/api/compile",
        response_model=CompileResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    )
    async def compile_endpoint(body: ContentRequest):
        if not body.content:
            return _error(400, "No content provided")

        outcome = await app.state.compiler.compile(body.content)
        if not outcome.ok:
            logger.info(f"{CONTEXT_PREFIX} compile failed: {outcome.reason.value}")
            return _error(
                STATUS_BY_REASON[outcome.reason],
                outcome.diagnostic_text,
                reason=outcome.reason.value,
                errors=outcome.errors,
            )

        return CompileResponse(
            artifact=base64.b64encode(outcome.artifact).decode("ascii"),
            warnings=outcome.warnings,
        )

    @app.post("/api/preview", response_model=PreviewResponse, responses={400: {"model": ErrorResponse}})
    async def preview_endpoint(body: ContentRequest):
        if body.content is None:
            return _error(400, "No content provided")

        rendered = await render_segments_async(segment_math(body.content))
        return PreviewResponse(
            html="".join(r.html for r in rendered),
            segments=[SegmentResponse(**r.to_dict()) for r in rendered],
        )

    @app.get("/api/documents", response_model=List[DocumentResponse])
    async def list_documents():
        return [asdict(doc) for doc in app.state.store.list_documents()]

    @app.get("/api/documents/{doc_id}", response_model=DocumentResponse)
    async def get_document(doc_id: str):
        doc = app.state.store.get_document(doc_id)
        if doc is None:
            raise HTTPException(status_code=404, detail=f"Document not found: {doc_id}")
        return asdict(doc)

    @app.post("/api/documents", response_model=DocumentResponse)
    async def save_document(body: DocumentRequest):
        try:
            doc = app.state.store.save_document(body.content, title=body.title, doc_id=body.id)
        except DocumentNotFoundError:
            raise HTTPException(status_code=404, detail=f"Document not found: {body.id}")
        return asdict(doc)

    @app.delete("/api/documents/{doc_id}")
    async def delete_document(doc_id: str):
        if not app.state.store.delete_document(doc_id):
            raise HTTPException(status_code=404, detail=f"Document not found: {doc_id}")
        return {"deleted": doc_id}

    return app
