"""
Document Vault - Backend API
FastAPI service for project folders, files, versioned PDFs and annotations.
Storage backends: SQLite (default) and PostgreSQL.

Install dependencies:
pip install -e .            (from the repository root)

Run server:
uvicorn main:app --host 0.0.0.0 --port 8000
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import contextvars
import logging
import os
import time
import uuid

from settings import get_settings
from core.content_store import LocalContentStore
from core.errors import CorruptHierarchy, VaultError
from schemas import HealthCheck

# ========== Request Context for Tracing ==========
request_id_var = contextvars.ContextVar('request_id', default=None)
request_start_time_var = contextvars.ContextVar('request_start_time', default=None)

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ============================================================================
# BACKEND CONFIGURATION
# ============================================================================

STORAGE_BACKEND = settings.storage_backend.lower()
DATABASE_URL = settings.db_url

logger.info(f"Storage Backend: {STORAGE_BACKEND.upper()}")

# ============================================================================
# STORAGE ADAPTER INITIALIZATION
# ============================================================================

storage_adapter = None
content_store = None

# ---- DI helpers (used by routers/*) ----
def get_storage_adapter(_=None):
    return storage_adapter


def get_content_store():
    return content_store


if STORAGE_BACKEND == "sqlite":
    from adapters.sqlite import SqliteAdapter

    logger.info(f"Initializing SQLite adapter ({DATABASE_URL.split('://')[0]})...")
    storage_adapter = SqliteAdapter.from_url(DATABASE_URL)

elif STORAGE_BACKEND in ("postgres", "pg"):
    try:
        from adapters.pg import PgAdapter

        logger.info("Initializing PostgreSQL adapter...")
        storage_adapter = PgAdapter.from_url(DATABASE_URL)
    except Exception as e:
        logger.error(f"Failed to initialize PostgreSQL: {e}")
        raise

else:
    raise ValueError(f"Unknown STORAGE_BACKEND: {STORAGE_BACKEND}")

content_store = LocalContentStore(settings.uploads_dir)

# ============================================================================
# FASTAPI APP
# ============================================================================

app = FastAPI(
    title="Document Vault API",
    description="Project folders, versioned PDFs and review annotations",
    version="1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# ========== Request Tracing Middleware ==========
@app.middleware("http")
async def request_tracing_middleware(request, call_next):
    """Add request_id and timing to all requests."""
    request_id = str(uuid.uuid4())[:8]
    request_id_var.set(request_id)
    request_start_time_var.set(time.time())

    response = await call_next(request)

    latency = time.time() - request_start_time_var.get()
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"({round(latency * 1000, 2)} ms) [{request_id}]"
    )

    response.headers["X-Request-ID"] = request_id
    return response


ALLOWED_ORIGINS = settings.get_origins_list()

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(VaultError)
async def vault_error_handler(request: Request, exc: VaultError):
    """Typed vault errors -> {"detail": CODE, "message": ..., **extra}."""
    if isinstance(exc, CorruptHierarchy):
        logger.critical(
            f"CORRUPT HIERARCHY on {request.method} {request.url.path} "
            f"[{request_id_var.get()}]: {exc.message} {exc.extra}"
        )
    elif exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )

# ============================================================================
# ENDPOINTS
# ============================================================================
@app.get("/health", response_model=HealthCheck)
def health_check():
    """Health check endpoint"""
    try:
        storage_adapter.ping()
        return HealthCheck(ok=True, backend=STORAGE_BACKEND)
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False, "backend": STORAGE_BACKEND, "error": str(e)}
        )


# ========== Production Health Endpoints ==========

@app.get("/healthz")
async def healthz():
    """
    Kubernetes-style liveness probe.
    Fast check - is the process alive and responding?
    """
    return {
        "status": "ok",
        "timestamp": time.time(),
        "version": "1.0"
    }


@app.get("/readyz")
def readyz():
    """
    Kubernetes-style readiness probe.
    Returns 200 if the database answers, 503 if not.
    """
    try:
        storage_adapter.ping()
        return {
            "status": "ready",
            "backend": STORAGE_BACKEND,
            "timestamp": time.time()
        }

    except Exception as e:
        logger.error(f"Readiness check failed: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "backend": STORAGE_BACKEND,
                "error": str(e),
                "timestamp": time.time()
            }
        )

# ========== End of Health Endpoints ==========

from routers import projects as projects_router
app.include_router(projects_router.router)

from routers import folders as folders_router
app.include_router(folders_router.router)

from routers import files as files_router
app.include_router(files_router.router)

from routers import versions as versions_router
app.include_router(versions_router.router)

from routers import annotations as annotations_router
app.include_router(annotations_router.router)

from routers import maintenance as maintenance_router
app.include_router(maintenance_router.router)


@app.on_event("startup")
async def startup_event():
    logger.info("Document Vault API starting up...")
    logger.info(f"Storage Backend: {STORAGE_BACKEND.upper()}")
    logger.info(f"Uploads dir: {settings.uploads_dir}")
    logger.info(f"Allowed origins: {ALLOWED_ORIGINS}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Document Vault API shutting down...")
    storage_adapter.engine.dispose()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
