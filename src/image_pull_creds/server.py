"""
Connect-style JSON API for image-pull-creds.

Exposes a single unary procedure:
- POST /image_pull_creds.v1.ImagePullCredsService/SetupImagePullCreds
  Body: {"namespaces": ["a", "b"]} (optional)
  Response: {}

Errors use the Connect JSON envelope {"code": ..., "message": ...}.
"""
import logging
import time
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import __version__
from . import constants as C
from .exceptions import ImagePullCredsError, ReconcileBusyError
from .reconcile import Reconciler

logger = logging.getLogger(__name__)


class SetupImagePullCredsRequest(BaseModel):
    # null decodes to the default: no allow-list
    namespaces: Optional[List[str]] = None


def connect_error(status_code: int, code: str, message: str) -> JSONResponse:
    """Build a Connect protocol error response."""
    return JSONResponse(status_code=status_code, content={"code": code, "message": message})


def create_app(reconciler: Reconciler) -> FastAPI:
    """Build the API application around a reconciler."""
    app = FastAPI(
        title=C.SERVICE_NAME,
        description="Distributes registry pull credentials to every namespace",
        version=__version__,
    )
    app.state.reconciler = reconciler

    @app.middleware("http")
    async def log_calls(request: Request, call_next):
        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            # Recover from anything the handlers did not map
            logger.exception(f"panic handling {request.method} {request.url.path}")
            response = connect_error(500, "internal", "internal error")
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms}ms)")
        return response

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        return connect_error(400, "invalid_argument", f"invalid request: {exc.errors()}")

    @app.exception_handler(ReconcileBusyError)
    async def busy(request: Request, exc: ReconcileBusyError):
        logger.error(f"error setting up image pull creds: {exc}")
        return connect_error(503, "unavailable", str(exc))

    @app.exception_handler(ImagePullCredsError)
    async def failed(request: Request, exc: ImagePullCredsError):
        logger.error(f"error setting up image pull creds: {exc}", exc_info=exc)
        return connect_error(500, "unknown", str(exc))

    @app.get("/healthz")
    def healthz():
        """Health check."""
        return {"ok": True}

    @app.post(C.RPC_SETUP_IMAGE_PULL_CREDS)
    def setup_image_pull_creds(req: Optional[SetupImagePullCredsRequest] = None):
        """Run a reconciliation; blocks while another run holds the lock."""
        namespaces = (req.namespaces if req else None) or []
        app.state.reconciler.setup_image_pull_creds(namespaces)
        return {}

    return app
