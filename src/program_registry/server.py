"""
program_registry HTTP server
============================

Endpoints:
- POST /upload-program          -> ingest a compiled program (multipart field "program")
- GET  /get-program             -> stored bytes for ?program_hash=
- GET  /get-metadata            -> version, layout and builtins for ?program_hash=
- GET  /resolve-layout          -> cheapest layout for ?builtin=a&builtin=b
- GET  /health                  -> liveness

Usage:
    uvicorn program_registry.server:app
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, File, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from program_registry import api
from program_registry.codes import ErrorCode
from program_registry.config import RegistryConfig, load_config
from program_registry.kernel.errors import ArtifactError, ProgramNotFoundError, RegistryError, StorageError
from program_registry.kernel.layouts import DEFAULT_CATALOG, LayoutCatalog
from program_registry.store.base import ProgramStore
from program_registry.store.sqlite import SqliteProgramStore

logger = logging.getLogger(__name__)


def _error_response(status_code: int, exc: RegistryError) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"code": exc.code.value, "detail": exc.message})


def create_app(
    store: Optional[ProgramStore] = None,
    catalog: LayoutCatalog = DEFAULT_CATALOG,
    config: Optional[RegistryConfig] = None,
) -> FastAPI:
    """Build the registry app.

    If no store is given, a SqliteProgramStore is opened on startup at the
    configured database path and closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_store = app.state.store is None
        if owns_store:
            settings = config or load_config()
            logger.info(f"Opening program store at {settings.database_path}")
            app.state.store = SqliteProgramStore(settings.database_path)
        yield
        if owns_store:
            logger.info("Closing program store")
            app.state.store.close()
            app.state.store = None

    app = FastAPI(
        title="Program Registry",
        description="Hash-addressed storage of compiled programs with layout metadata",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.catalog = catalog

    @app.exception_handler(ArtifactError)
    async def artifact_error_handler(request: Request, exc: ArtifactError):
        return _error_response(400, exc)

    @app.exception_handler(ProgramNotFoundError)
    async def not_found_handler(request: Request, exc: ProgramNotFoundError):
        return _error_response(404, exc)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        return _error_response(500, exc)

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    @app.post("/upload-program")
    def upload_program(request: Request, program: Optional[UploadFile] = File(None)):
        """Ingest a program. 201 when stored, 200 when it was already stored."""
        if program is None:
            return JSONResponse(
                status_code=400,
                content={
                    "code": ErrorCode.MALFORMED_ARTIFACT.value,
                    "detail": "multipart field 'program' is required",
                },
            )
        data = program.file.read()
        result = api.ingest(data, request.app.state.store, request.app.state.catalog)
        body = {
            "program_hash": result.hash,
            "version": int(result.version),
            "layout": result.layout,
            "builtins": result.builtins,
            "already_existed": result.already_existed,
        }
        return JSONResponse(status_code=200 if result.already_existed else 201, content=body)

    @app.get("/get-program")
    def get_program(request: Request, program_hash: str):
        """Download the stored program bytes as a JSON attachment."""
        record = api.fetch(program_hash, request.app.state.store)
        return Response(
            content=record.code,
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{program_hash}.json"'},
        )

    @app.get("/get-metadata")
    def get_metadata(request: Request, program_hash: str):
        metadata = api.get_metadata(program_hash, request.app.state.store)
        return {
            "version": int(metadata.version),
            "layout": metadata.layout,
            "builtins": list(metadata.builtins),
        }

    @app.get("/resolve-layout")
    def resolve_layout(request: Request, builtin: List[str] = Query(default=[])):
        return {"layout": api.resolve(builtin, request.app.state.catalog)}

    return app


app = create_app()
