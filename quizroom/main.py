"""
quizroom ASGI application.

Wires the v1 router, CORS, request logging (DEBUG only), the health
probes and the exception handlers. Every error leaves the service as

    {"success": false, "message": "...", "errors": ...}

Run with:  uvicorn quizroom.main:app
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

from quizroom import __version__
from quizroom.core.config import settings
from quizroom.core.exceptions import ExamEngineError
from quizroom.db.database import check_db_connection
from quizroom.middleware.logging import LoggingMiddleware
from quizroom.api.v1.router import api_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Nothing runs in the background: quizzes auto-finish when read.
    logger.info(f"{settings.PROJECT_NAME} {__version__} starting (debug={settings.DEBUG})")

    try:
        if await check_db_connection():
            logger.info("Database reachable")
        else:
            logger.warning("Database not reachable at startup; requests will fail until it is")
    except Exception as e:
        logger.error(f"Startup database probe raised: {e}")

    yield

    logger.info(f"{settings.PROJECT_NAME} stopped")


# ============================================================
# Error envelope
# ============================================================

def _error(status_code: int, message: str, errors=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"success": False, "message": message, "errors": errors}),
    )


async def exam_engine_error_handler(request: Request, exc: ExamEngineError):
    """Domain errors carry their own status code."""
    return _error(exc.status_code, exc.message, exc.errors)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return _error(status.HTTP_400_BAD_REQUEST, "Validation error", exc.errors())


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    response = _error(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def stale_data_handler(request: Request, exc: StaleDataError):
    logger.warning(f"Concurrent modification on {request.url.path}: {exc}")
    return _error(status.HTTP_409_CONFLICT, "This record was modified concurrently, please retry")


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.url.path}", exc_info=exc)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


# ============================================================
# Application
# ============================================================

def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="""
        Timed classroom quiz sessions.

        - Teachers author quizzes, open them with a room code and run them live
        - Students join with the code and their school identifier
        - One shared deadline per quiz; teachers can add or remove minutes
        - Automatic grading for choice questions, manual grading for short answers
        """,
        version=__version__,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.DEBUG else settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    if settings.DEBUG:
        application.add_middleware(LoggingMiddleware)

    application.add_exception_handler(ExamEngineError, exam_engine_error_handler)
    application.add_exception_handler(RequestValidationError, validation_error_handler)
    application.add_exception_handler(StarletteHTTPException, http_error_handler)
    application.add_exception_handler(StaleDataError, stale_data_handler)
    application.add_exception_handler(SQLAlchemyError, database_error_handler)

    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @application.get("/", tags=["Health"])
    async def root():
        return {
            "name": settings.PROJECT_NAME,
            "version": __version__,
            "docs": "/docs" if settings.DEBUG else None,
        }

    @application.get("/health", tags=["Health"])
    async def health_check():
        """Liveness plus a database round trip."""
        if not await check_db_connection():
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy", "database": "disconnected"},
            )
        return {"status": "healthy", "database": "connected"}

    return application


app = create_app()
