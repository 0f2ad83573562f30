import logging
import os
import platform
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from qalam.api.v1 import auth, user
from qalam.core.config import settings
from qalam.core.errors import QalamError, qalam_error_handler
from qalam.core.logging import setup_logging
from qalam.db.session import Database
from qalam.routers import like, post, upload
from qalam.services.storage import configure_cloudinary

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db: Database = app.state.db
    db.ensure_database()
    db.connect()
    db.create_all()
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    if configure_cloudinary():
        logger.info("Cloudinary storage enabled")
    yield
    db.dispose()


def create_app(database: Database | None = None) -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, version=settings.VERSION, lifespan=lifespan)
    app.state.db = database or Database(settings.DATABASE_URL)
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )
    app.add_exception_handler(QalamError, qalam_error_handler)

    app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
    app.include_router(user.router, prefix="/api/users", tags=["Users"])
    app.include_router(post.router, prefix="/api/posts", tags=["Posts"])
    app.include_router(like.router, prefix="/api/posts", tags=["Likes"])
    app.include_router(upload.router, prefix="/api/upload", tags=["Upload"])
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")

    @app.get("/health")
    def health(request: Request):
        healthy = request.app.state.db.is_healthy()
        return {
            "status": "UP" if healthy else "DEGRADED",
            "service": settings.APP_NAME,
            "database": "connected" if healthy else "unavailable",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # monitoring view: process details plus dependency state
    @app.get("/api/status")
    def api_status(request: Request):
        healthy = request.app.state.db.is_healthy()
        return {
            "status": "healthy" if healthy else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - request.app.state.started_at, 3),
            "environment": settings.ENVIRONMENT,
            "pythonVersion": platform.python_version(),
            "services": {
                "database": "connected" if healthy else "unavailable",
                "storage": "cloudinary" if settings.cloudinary_enabled else "local",
            },
        }

    @app.get("/api")
    def api_info():
        return {
            "name": settings.APP_NAME,
            "version": settings.VERSION,
            "endpoints": {
                "posts": "/api/posts",
                "auth": "/api/auth",
                "users": "/api/users",
                "upload": "/api/upload",
                "status": "/api/status",
            },
        }

    return app


setup_logging()
app = create_app()
