import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from school_admin.api.v1.attendance.router import router as attendance_router
from school_admin.api.v1.auth.router import router as auth_router
from school_admin.api.v1.classes.classes_router import router as classes_router
from school_admin.api.v1.dashboard.router import router as dashboard_router
from school_admin.api.v1.fee_structures.router import router as fee_structures_router
from school_admin.api.v1.fees.router import router as fee_records_router
from school_admin.api.v1.students.router import router as students_router
from school_admin.api.v1.teachers.router import router as teachers_router
from school_admin.core.config import settings
from school_admin.core.exceptions import ConflictError, ServiceError, StorageError
from school_admin.core.logging import configure_logging

logger = logging.getLogger(__name__)


def _error_response(exc: ServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.kind, "detail": exc.message},
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="School Administration API")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        return _error_response(exc)

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        logger.warning("Unhandled integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return _error_response(ConflictError("Resource conflicts with an existing record"))

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
        return _error_response(StorageError())

    # Routers
    app.include_router(auth_router)
    app.include_router(classes_router)
    app.include_router(students_router)
    app.include_router(teachers_router)
    app.include_router(fee_structures_router)
    app.include_router(fee_records_router)
    app.include_router(attendance_router)
    app.include_router(dashboard_router)

    @app.get("/api/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
