"""
HTTP Gateway for chunkcord

Design Decision: API Framework
==============================

Options Considered:
1. FastAPI - Modern, fast, auto-docs, async support
2. Flask - Simple, widely used, but sync-focused
3. aiohttp - Async, but less features

Decision: FastAPI
- Native async support (the vault is asyncio end to end)
- Multipart uploads via UploadFile/Form
- Automatic OpenAPI documentation

API Design:
- POST /api/upload              multipart: file, botToken, channelId
- GET  /api/retrieve/{fileHash} query: fileSize, fileName, botToken, channelId
- GET/DELETE /api/files[...]    catalog records

Every vault failure maps to HTTP 500 with a body naming the error kind:
    {"error": "...", "kind": "IncompleteSet"}
"""

import logging
from pathlib import Path
from typing import Optional, List
from urllib.parse import quote
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, UploadFile, File, Form, Query, Request
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .. import __version__
from ..exceptions import ChunkcordError
from ..file.tags import is_valid_hash
from ..storage import FileRecord, init_catalog

logger = logging.getLogger(__name__)

# Global references (set when app is created)
_vault = None
_catalog = None


# === Pydantic Models ===

class FileDetails(BaseModel):
    """Details of an uploaded file."""
    filename: str
    filehash: str
    size: int
    mimetype: str


class UploadResponse(BaseModel):
    """Upload response."""
    message: str
    fileDetails: FileDetails


class CatalogEntry(BaseModel):
    """A file known to the catalog."""
    fileName: str
    fileHash: str
    fileSize: int
    mimetype: str
    channelId: str
    chunkCount: int
    uploadedAt: Optional[str] = None


def _entry(record: FileRecord) -> CatalogEntry:
    return CatalogEntry(
        fileName=record.file_name,
        fileHash=record.file_hash,
        fileSize=record.size,
        mimetype=record.mime_type,
        channelId=record.channel_id,
        chunkCount=record.chunk_count,
        uploadedAt=record.uploaded_at,
    )


def _check_hash(file_hash: str) -> str:
    file_hash = file_hash.strip().lower()
    if not is_valid_hash(file_hash):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file hash format. Expected 64 hex characters, got: {file_hash[:20]}..."
        )
    return file_hash


# === API Creation ===

def create_app(vault=None, catalog_dir: Optional[Path] = None,
               cors_origins: List[str] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        vault: ChannelVault instance doing the transfers
        catalog_dir: Directory for the file catalog (None = no catalog)
        cors_origins: Allowed CORS origins

    Returns:
        FastAPI application
    """
    global _vault
    _vault = vault

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handle startup and shutdown."""
        global _catalog
        logger.info("API server starting...")
        if catalog_dir is not None:
            _catalog = await init_catalog(catalog_dir)
        try:
            yield
        finally:
            if _catalog is not None:
                await _catalog.close()
                _catalog = None
            logger.info("API server stopping...")

    app = FastAPI(
        title="chunkcord API",
        description="Store files as chunked attachments in a messaging channel",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ChunkcordError)
    async def chunkcord_error_handler(request: Request, exc: ChunkcordError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.kind}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": str(exc), "kind": exc.kind},
        )

    # === Endpoints ===

    @app.get("/", tags=["General"])
    async def root():
        """API root - basic info."""
        return {
            "name": "chunkcord",
            "version": __version__,
            "backend": _vault.backend.name if _vault else None,
            "catalog": _catalog is not None,
        }

    @app.get("/stats", tags=["General"])
    async def get_stats():
        """Get transfer statistics."""
        if not _vault:
            raise HTTPException(status_code=503, detail="Vault not initialized")
        return _vault.get_stats()

    # === Transfers ===

    @app.post("/api/upload", response_model=UploadResponse, tags=["Transfers"])
    async def upload_file(
        file: Optional[UploadFile] = File(None),
        botToken: str = Form(""),
        channelId: str = Form(""),
    ):
        """Split a file into chunks and post them to a channel."""
        if not _vault:
            raise HTTPException(status_code=503, detail="Vault not initialized")

        if file is None:
            return JSONResponse(status_code=400, content={"error": "No file uploaded"})

        data = await file.read()
        filename = file.filename or "upload"
        mimetype = file.content_type or "application/octet-stream"

        logger.info(f"Upload request: {filename} ({len(data):,} bytes)")

        stored = await _vault.store(data, botToken, channelId)

        if _catalog is not None:
            await _catalog.add_file(FileRecord(
                file_hash=stored.file_hash,
                file_name=filename,
                size=stored.size,
                mime_type=mimetype,
                channel_id=stored.channel_id,
                chunk_count=stored.chunk_count,
            ))

        return UploadResponse(
            message="File uploaded successfully",
            fileDetails=FileDetails(
                filename=filename,
                filehash=stored.file_hash,
                size=stored.size,
                mimetype=mimetype,
            ),
        )

    @app.get("/api/retrieve/{fileHash}", tags=["Transfers"])
    async def retrieve_file(
        fileHash: str,
        botToken: str = Query(...),
        channelId: str = Query(...),
        fileSize: Optional[int] = Query(None, ge=0),
        fileName: Optional[str] = Query(None),
    ):
        """Locate a file's chunks in a channel and return the reassembled bytes."""
        if not _vault:
            raise HTTPException(status_code=503, detail="Vault not initialized")

        file_hash = _check_hash(fileHash)
        logger.info(f"Retrieve request: {file_hash[:16]}... ({fileName or 'unnamed'})")

        data = await _vault.retrieve(file_hash, botToken, channelId, expected_size=fileSize)

        media_type = "application/octet-stream"
        if _catalog is not None:
            record = await _catalog.get_file(file_hash)
            if record and record.mime_type:
                media_type = record.mime_type

        headers = {}
        if fileName:
            headers["Content-Disposition"] = f"attachment; filename*=UTF-8''{quote(fileName)}"

        return Response(content=data, media_type=media_type, headers=headers)

    # === Catalog ===

    @app.get("/api/files", response_model=List[CatalogEntry], tags=["Catalog"])
    async def list_files():
        """List all cataloged files."""
        if _catalog is None:
            raise HTTPException(status_code=503, detail="Catalog not configured")

        records = await _catalog.list_files()
        return [_entry(r) for r in records]

    @app.get("/api/files/{fileHash}", response_model=CatalogEntry, tags=["Catalog"])
    async def get_file_info(fileHash: str):
        """Get the catalog record for a file."""
        if _catalog is None:
            raise HTTPException(status_code=503, detail="Catalog not configured")

        record = await _catalog.get_file(_check_hash(fileHash))
        if not record:
            raise HTTPException(status_code=404, detail="File not found")
        return _entry(record)

    @app.delete("/api/files/{fileHash}", tags=["Catalog"])
    async def remove_file(fileHash: str):
        """Forget a file. Its chunks stay in the channel."""
        if _catalog is None:
            raise HTTPException(status_code=503, detail="Catalog not configured")

        success = await _catalog.remove_file(_check_hash(fileHash))
        return {"success": success}

    return app


async def run_api_server(vault, catalog_dir: Optional[Path] = None,
                         host: str = "0.0.0.0", port: int = 1234,
                         cors_origins: List[str] = None):
    """
    Run the API server.

    Args:
        vault: ChannelVault instance
        catalog_dir: Directory for the file catalog
        host: Host to bind to
        port: Port to listen on
    """
    import uvicorn

    app = create_app(vault, catalog_dir, cors_origins)

    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="info",
    )
    server = uvicorn.Server(config)
    await server.serve()
