from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# 프로젝트 루트의 .env 파일 명시적 로딩 (Celery와 API가 같은 값을 사용)
project_root = Path(__file__).parent.parent
env_path = project_root / ".env"
if env_path.exists():
    load_dotenv(env_path)

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ingestion.settings import get_settings
from ingestion.utils.logging import configure_logging

from .database import init_db
from .routes import router
from .settings import get_api_settings

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Opener-Policy": "same-origin",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        init_db()
    except SQLAlchemyError as exc:
        # No degraded mode without a database.
        logger.critical("startup.database_unreachable", extra={"error": str(exc)})
        sys.exit(1)
    logger.info("startup.ready")
    yield


def create_app() -> FastAPI:
    ingestion_settings = get_settings()
    configure_logging(ingestion_settings.log_level, json_enabled=ingestion_settings.log_json)
    settings = get_api_settings()

    app = FastAPI(title="News Hub API", version="0.1.0", lifespan=lifespan)

    if settings.is_production:
        app.add_middleware(GZipMiddleware, minimum_size=1000)

        @app.middleware("http")
        async def security_headers(request: Request, call_next):
            response = await call_next(request)
            for name, value in SECURITY_HEADERS.items():
                response.headers.setdefault(name, value)
            return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        allow_credentials=True,
    )

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    app.include_router(router)
    return app


app = create_app()
