#!/usr/bin/env python3
"""
XSLT Bridge REST API

FastAPI adapter over the bridge. Parsed documents and compiled stylesheets
live in the server's resource table; clients refer to them by token and
release them explicitly.

API Flow:
1. POST /api/v1/stylesheets - Compile XSLT text, returns a stylesheet token
2. POST /api/v1/documents - Parse XML text, returns a document token
3. POST /api/v1/transform - Apply stylesheet to document with parameters
4. DELETE /api/v1/documents/{token}, DELETE /api/v1/stylesheets/{token}
   - Release the resources once they are no longer needed

Usage:
    # Start the API server
    uvicorn api:app --host 0.0.0.0 --port 8000

    # Or programmatically
    from api import create_app
    app = create_app()
"""

from __future__ import annotations

import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from xslt_bridge import (
    AllocationFailure,
    BridgeConfig,
    BridgeError,
    InvalidArgument,
    ReleasedHandle,
    ResourceKind,
    ResourceTable,
    XsltBridge,
    __version__,
    load_config,
)
from xslt_bridge.config import configure_logging
from xslt_bridge.lifecycle import ResourceHandle

logger = logging.getLogger(__name__)


# ============================================================================
# CONFIGURATION
# ============================================================================

class APIConfig:
    """API Configuration settings."""

    CONFIG_PATH: Optional[str] = os.environ.get("XSLT_BRIDGE_CONFIG")
    LOG_LEVEL: str = os.environ.get("XSLT_BRIDGE_LOG_LEVEL", "INFO")

    @classmethod
    def load_bridge_config(cls) -> BridgeConfig:
        """Load the bridge configuration named by XSLT_BRIDGE_CONFIG, or defaults."""
        if cls.CONFIG_PATH:
            return load_config(Path(cls.CONFIG_PATH))
        return BridgeConfig(log_level=cls.LOG_LEVEL)


# ============================================================================
# MODELS
# ============================================================================

class DocumentRequest(BaseModel):
    """XML text to parse."""
    xml: str = Field(..., description="XML document text")


class StylesheetRequest(BaseModel):
    """XSLT text to compile."""
    xslt: str = Field(..., description="XSLT stylesheet text")


class TransformRequest(BaseModel):
    """Transform invocation."""
    stylesheet: int = Field(..., description="Stylesheet token")
    document: int = Field(..., description="Document token")
    params: List[str] = Field(default_factory=list, description="Flat [name, value, ...] list")


class HandleInfo(BaseModel):
    """A live resource."""
    token: int
    kind: ResourceKind


class TransformResult(BaseModel):
    """Serialized transform output."""
    output: str
    length: int
    encoding: str
    method: Optional[str] = None
    media_type: Optional[str] = None


# ============================================================================
# HANDLE REGISTRY
# ============================================================================

class HandleRegistry:
    """
    Keeps handles alive between requests.

    A handle dropped from the registry is closed immediately, so the
    resource table never holds anything a client cannot reach.
    """

    def __init__(self):
        self._handles: Dict[Tuple[ResourceKind, int], ResourceHandle] = {}
        self._lock = threading.Lock()

    def add(self, handle: ResourceHandle) -> HandleInfo:
        with self._lock:
            self._handles[(handle.kind, handle.token)] = handle
        return HandleInfo(token=handle.token, kind=handle.kind)

    def get(self, kind: ResourceKind, token: int) -> ResourceHandle:
        with self._lock:
            handle = self._handles.get((kind, token))
        if handle is None:
            raise ReleasedHandle(f"{kind.value.capitalize()} {token} not found")
        return handle

    def remove(self, kind: ResourceKind, token: int) -> None:
        with self._lock:
            handle = self._handles.pop((kind, token), None)
        if handle is None:
            raise ReleasedHandle(f"{kind.value.capitalize()} {token} not found")
        handle.close()

    def close_all(self) -> int:
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            handle.close()
        return len(handles)

    def entries(self) -> List[HandleInfo]:
        with self._lock:
            return [HandleInfo(token=token, kind=kind) for kind, token in self._handles]


def status_for(error: BridgeError) -> int:
    """HTTP status code for a bridge error."""
    if isinstance(error, ReleasedHandle):
        return 404
    if isinstance(error, InvalidArgument):
        return 400
    if isinstance(error, AllocationFailure):
        return 507
    return 422


# ============================================================================
# API ENDPOINTS
# ============================================================================

def create_app(bridge: Optional[XsltBridge] = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    if bridge is None:
        bridge = XsltBridge(APIConfig.load_bridge_config(), table=ResourceTable())
    registry = HandleRegistry()
    started_at = datetime.now()

    app = FastAPI(
        title="XSLT Bridge API",
        description="""
REST API for parsing XML, compiling XSLT stylesheets and running transforms.

## Workflow

1. **Compile**: `POST /api/v1/stylesheets` - returns a stylesheet token
2. **Parse**: `POST /api/v1/documents` - returns a document token
3. **Transform**: `POST /api/v1/transform` - apply with `[name, value, ...]` parameters
4. **Release**: `DELETE /api/v1/documents/{token}` / `DELETE /api/v1/stylesheets/{token}`

Documents are not consumed by a transform and can be reused.
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.bridge = bridge
    app.state.registry = registry

    @app.exception_handler(BridgeError)
    async def bridge_error_handler(request: Request, exc: BridgeError):
        logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=status_for(exc), content=exc.to_dict())

    @app.on_event("startup")
    async def startup_event():
        try:
            configure_logging(bridge.config.log_level)
        except ValueError:
            logger.warning(f"Invalid log level {bridge.config.log_level!r}, using INFO")
            configure_logging("INFO")
        logger.info(f"XSLT Bridge API {__version__} started")

    @app.on_event("shutdown")
    async def shutdown_event():
        closed = registry.close_all()
        logger.info(f"Released {closed} handle(s) on shutdown")

    # ========================================================================
    # RESOURCE ENDPOINTS
    # ========================================================================

    # Engine work is blocking, so these run in the threadpool (plain def)

    @app.post("/api/v1/documents", response_model=HandleInfo, status_code=201, tags=["Resources"])
    def create_document(request: DocumentRequest):
        """Parse an XML document."""
        return registry.add(bridge.parse_document(request.xml))

    @app.post("/api/v1/stylesheets", response_model=HandleInfo, status_code=201, tags=["Resources"])
    def create_stylesheet(request: StylesheetRequest):
        """Compile an XSLT stylesheet."""
        return registry.add(bridge.compile_stylesheet(request.xslt))

    @app.get("/api/v1/resources", response_model=List[HandleInfo], tags=["Resources"])
    async def list_resources():
        """List live documents and stylesheets."""
        return registry.entries()

    @app.delete("/api/v1/documents/{token}", status_code=204, tags=["Resources"])
    def delete_document(token: int):
        """Release a document."""
        registry.remove(ResourceKind.DOCUMENT, token)

    @app.delete("/api/v1/stylesheets/{token}", status_code=204, tags=["Resources"])
    def delete_stylesheet(token: int):
        """Release a stylesheet."""
        registry.remove(ResourceKind.STYLESHEET, token)

    # ========================================================================
    # TRANSFORM ENDPOINT
    # ========================================================================

    @app.post("/api/v1/transform", response_model=TransformResult, tags=["Transform"])
    def run_transform(request: TransformRequest):
        """Apply a stylesheet to a document."""
        stylesheet = registry.get(ResourceKind.STYLESHEET, request.stylesheet)
        document = registry.get(ResourceKind.DOCUMENT, request.document)

        output = bridge.transform_output(stylesheet, document, request.params)
        return TransformResult(**output.to_dict())

    # ========================================================================
    # HEALTH & INFO ENDPOINTS
    # ========================================================================

    @app.get("/api/v1/health", tags=["System"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "uptime_seconds": round((datetime.now() - started_at).total_seconds(), 1),
            "resources": bridge.table.stats(),
        }

    @app.get("/api/v1/info", tags=["System"])
    async def get_info():
        """Get API configuration and capabilities."""
        return {
            "name": "xslt-bridge",
            "version": __version__,
            "config": bridge.config.to_dict(),
            "capabilities": {
                "parse": True,
                "compile": True,
                "transform": True,
                "html_parsing": False,
                "file_paths": False,
            },
        }

    return app


# Create default app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
