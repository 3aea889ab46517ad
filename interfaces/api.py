import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from domain.blob import ByteRange
from domain.config import BlobStoreConfig
from domain.errors import (
    BlobNotFoundError,
    BlobStoreError,
    InvalidIdentifierError,
    InvalidRangeError,
    StagingConflictError,
)
from infrastructure.file_system_blob_repository import FileSystemBlobRepository

logger = logging.getLogger(__name__)


class PutResponseDTO(BaseModel):
    identifier: str = Field(..., description="Hex digest of the stored content")
    byte_count: int = Field(..., description="Number of bytes stored")


class BlobStatDTO(BaseModel):
    identifier: str
    size: int
    modified_at: datetime
    accessed_at: datetime
    changed_at: datetime


class StoreStatsDTO(BaseModel):
    total_blobs: int
    total_bytes: int


config: Optional[BlobStoreConfig] = None
blob_repository: Optional[FileSystemBlobRepository] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global blob_repository
    if config:
        blob_repository = FileSystemBlobRepository(config)
    yield
    blob_repository = None


app = FastAPI(
    title="Blob Store Server",
    description="Content-addressable blob storage",
    version="1.0.0",
    lifespan=lifespan
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"{request.method} {request.url.path}")
    return await call_next(request)


@app.exception_handler(BlobNotFoundError)
async def not_found_handler(request: Request, exc: BlobNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidIdentifierError)
@app.exception_handler(InvalidRangeError)
async def invalid_request_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(StagingConflictError)
async def staging_conflict_handler(request: Request, exc: StagingConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(BlobStoreError)
async def blob_store_error_handler(request: Request, exc: BlobStoreError):
    logger.error(f"Blob store error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(OSError)
async def os_error_handler(request: Request, exc: OSError):
    logger.exception(f"I/O error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": f"Storage error: {exc.strerror or exc}"})


def get_repository() -> FileSystemBlobRepository:
    if not blob_repository:
        raise HTTPException(status_code=500, detail="Server not properly configured")
    return blob_repository


@app.post("/blobs", status_code=201, response_model=PutResponseDTO)
async def put_blob(request: Request):
    """
    Store the raw request body.

    The body is streamed into a staging file while it is hashed, so uploads
    are never held in memory.
    """
    repository = get_repository()

    staging = repository.new_staging()
    await run_in_threadpool(staging.open)
    try:
        async for chunk in request.stream():
            if chunk:
                await run_in_threadpool(staging.write, chunk)
        await run_in_threadpool(staging.finish)
    finally:
        await run_in_threadpool(staging.close)

    result = await run_in_threadpool(repository.commit, staging)
    return PutResponseDTO(identifier=result.identifier, byte_count=result.byte_count)


@app.get("/blobs/{identifier}")
def download_blob(identifier: str, range_header: Optional[str] = Header(None, alias="range")):
    """
    Stream a blob. A ``Range: bytes=a-b`` header is answered with 206.
    """
    repository = get_repository()
    size = repository.stat(identifier).size

    byte_range = None
    if range_header:
        try:
            byte_range = ByteRange.from_http_header(range_header, size)
        except InvalidRangeError as e:
            raise HTTPException(
                status_code=416,
                detail=str(e),
                headers={"Content-Range": f"bytes */{size}"}
            )

    headers = {"Accept-Ranges": "bytes", "ETag": f'"{identifier}"'}
    status_code = 200
    if byte_range is None:
        headers["Content-Length"] = str(size)
    else:
        status_code = 206
        headers["Content-Length"] = str(byte_range.length)
        headers["Content-Range"] = f"bytes {byte_range.start}-{byte_range.end - 1}/{size}"

    return StreamingResponse(
        repository.get_stream(identifier, byte_range),
        status_code=status_code,
        media_type="application/octet-stream",
        headers=headers
    )


@app.head("/blobs/{identifier}")
def head_blob(identifier: str):
    repository = get_repository()
    if not repository.has(identifier):
        return Response(status_code=404)
    size = repository.stat(identifier).size
    return Response(
        status_code=200,
        headers={"Content-Length": str(size), "Accept-Ranges": "bytes", "ETag": f'"{identifier}"'}
    )


@app.get("/blobs/{identifier}/stat", response_model=BlobStatDTO)
def stat_blob(identifier: str):
    stat = get_repository().stat(identifier)
    return BlobStatDTO(
        identifier=stat.identifier,
        size=stat.size,
        modified_at=stat.modified_at,
        accessed_at=stat.accessed_at,
        changed_at=stat.changed_at
    )


@app.delete("/blobs/{identifier}", status_code=204)
def delete_blob(identifier: str):
    get_repository().delete(identifier)
    return Response(status_code=204)


@app.get("/stats", response_model=StoreStatsDTO)
def store_stats():
    stats = get_repository().get_store_stats()
    return StoreStatsDTO(**stats)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


def initialize_app(store_config: BlobStoreConfig) -> FastAPI:
    """Initialize the FastAPI application with configuration."""
    global config

    config = store_config

    # Create storage directories if they don't exist
    config.dir.mkdir(parents=True, exist_ok=True)
    config.tmp.mkdir(parents=True, exist_ok=True)

    return app
