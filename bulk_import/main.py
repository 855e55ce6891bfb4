from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bulk_import.auth_router import router as auth_router
from bulk_import.backups.router import router as backups_router
from bulk_import.config import settings
from bulk_import.database import close_database, init_database
from bulk_import.documents.config import StoreBackend
from bulk_import.documents.factory import (
    close_document_store,
    get_document_store,
    init_document_store,
)
from bulk_import.exception_handlers import register_exception_handlers
from bulk_import.imports.router import router as imports_router
from bulk_import.logging_config import setup_logging
from bulk_import.recovery.router import router as checkpoints_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if settings.store_backend == StoreBackend.SQLITE:
        await init_database()
    await init_document_store()
    yield
    await close_document_store()
    await close_database()


app = FastAPI(
    title="Bulk Import",
    description="Resumable batch imports of categories and listings into a document store",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
app.include_router(imports_router, prefix="/api/v1/imports", tags=["imports"])
app.include_router(checkpoints_router, prefix="/api/v1/checkpoints", tags=["checkpoints"])
app.include_router(backups_router, prefix="/api/v1/backups", tags=["backups"])


@app.get("/api/v1/health")
async def health():
    await get_document_store().check_health()
    return {"status": "healthy"}
