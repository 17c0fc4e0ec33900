"""FastAPI application entrypoint for agentic-knowledge service mode."""

from __future__ import annotations

import asyncio
from functools import partial
from typing import Any, Callable, List, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import UnknownDocsetError
from ..errors import KnowledgeError
from ..sync import DocsetOutcome, DocsetStatus, DocsetSynchronizer


class HealthResponse(BaseModel):
    status: str


class SourceStatusModel(BaseModel):
    source_url: str
    source_type: str
    downloaded_at: str
    files_count: int


class DocsetStatusModel(BaseModel):
    docset_id: str
    docset_name: str
    local_path: Optional[str] = None
    initialized: bool
    total_files: int = 0
    last_activity: Optional[str] = None
    missing_sources: int = 0
    sources: List[Optional[SourceStatusModel]] = []
    error: Optional[str] = None


class RefreshRequest(BaseModel):
    force: bool = False


class SourceOutcomeModel(BaseModel):
    index: int
    kind: str
    locator: str
    status: str
    files_count: int
    error: Optional[str] = None
    warnings: List[str] = []


class RefreshResponse(BaseModel):
    docset_id: str
    status: str
    total_files: int
    message: Optional[str] = None
    sources: List[SourceOutcomeModel] = []


def _status_model(status: DocsetStatus) -> DocsetStatusModel:
    metadata = status.metadata
    return DocsetStatusModel(
        docset_id=status.docset_id,
        docset_name=status.docset_name,
        local_path=str(status.local_path) if status.local_path else None,
        initialized=status.initialized,
        total_files=metadata.total_files if metadata else 0,
        last_activity=metadata.last_activity if metadata else None,
        missing_sources=status.missing_sources,
        sources=[
            SourceStatusModel(
                source_url=source.source_url,
                source_type=source.source_type,
                downloaded_at=source.downloaded_at,
                files_count=source.files_count,
            )
            if source is not None
            else None
            for source in status.sources
        ],
        error=status.error,
    )


def _refresh_model(outcome: DocsetOutcome) -> RefreshResponse:
    return RefreshResponse(
        docset_id=outcome.docset_id,
        status=outcome.status.value,
        total_files=outcome.total_files,
        message=outcome.message,
        sources=[
            SourceOutcomeModel(
                index=source.index,
                kind=source.kind,
                locator=source.locator,
                status=source.status.value,
                files_count=source.files_count,
                error=source.error,
                warnings=list(source.warnings),
            )
            for source in outcome.sources
        ],
    )


def create_app(
    synchronizer_factory: Callable[[], DocsetSynchronizer] = DocsetSynchronizer,
) -> FastAPI:
    """Create the FastAPI application exposing docset status and refresh."""

    app = FastAPI(title="Agentic Knowledge Service", version="1.0.0")

    async def get_synchronizer() -> DocsetSynchronizer:
        return synchronizer_factory()

    async def _run_blocking(func: Callable[[], Any]) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/docsets", response_model=List[DocsetStatusModel])
    async def list_docsets(
        synchronizer: DocsetSynchronizer = Depends(get_synchronizer),
    ) -> List[DocsetStatusModel]:
        statuses = await _run_blocking(synchronizer.status)
        return [_status_model(status) for status in statuses]

    @app.post("/docsets/{docset_id}/refresh", response_model=RefreshResponse)
    async def refresh_docset(
        docset_id: str,
        payload: Optional[RefreshRequest] = None,
        synchronizer: DocsetSynchronizer = Depends(get_synchronizer),
    ) -> RefreshResponse:
        force = payload.force if payload is not None else False
        outcome = await _run_blocking(
            partial(synchronizer.refresh_docset, docset_id, force=force)
        )
        return _refresh_model(outcome)

    @app.exception_handler(UnknownDocsetError)
    async def unknown_docset_handler(_: Any, exc: UnknownDocsetError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.to_dict()})

    @app.exception_handler(KnowledgeError)
    async def knowledge_error_handler(_: Any, exc: KnowledgeError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": exc.to_dict()})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000, config_path: str | None = None
) -> None:  # pragma: no cover - integration path
    app = create_app(partial(DocsetSynchronizer, config_path))
    uvicorn.run(app, host=host, port=port)
