from pathlib import Path
import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routers import router as api_router
from core.config import AppSettings
from core.rate_limit import RateLimitMiddleware
from core.storage import COURSE_INVALID, COURSE_REQUIRED, STUDENT_INVALID, STUDENT_REQUIRED, Storage

logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "Students", "description": "Student management"},
    {"name": "Courses", "description": "Course management"},
    {"name": "Enrollments", "description": "Enrolling and unenrolling students in courses"},
    {"name": "Health", "description": "Service status"},
]

# Body fields -> the entity-level messages the store uses for the same input
_BODY_MESSAGES = {
    "name": (STUDENT_REQUIRED, STUDENT_INVALID),
    "email": (STUDENT_REQUIRED, STUDENT_INVALID),
    "title": (COURSE_REQUIRED, COURSE_INVALID),
    "teacher": (COURSE_REQUIRED, COURSE_INVALID),
}


def _validation_message(exc: RequestValidationError, method: str = "POST") -> str:
    """Collapse pydantic errors into a single human readable message."""
    errors = exc.errors()
    for err in errors:
        if err.get("type") == "value_error":
            return str(err.get("msg", "Invalid value")).removeprefix("Value error, ")
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] == "body":
            field = loc[-1]
            if field in _BODY_MESSAGES:
                required, invalid = _BODY_MESSAGES[field]
                return required if method == "POST" else invalid
        elif len(loc) > 1:
            return f"Invalid {loc[-1]}: {err.get('msg')}"
    return "Invalid request"


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(exc, request.method)
    logger.info(f"Invalid request - path: {request.url.path}, error: {message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({"error": message}),
    )


def create_app(settings: Optional[AppSettings] = None, storage: Optional[Storage] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.
    The store instance lives on app.state and is handed to routes through a dependency.
    """
    # Load environment variables from project root .env before settings are instantiated
    try:
        project_root = Path(__file__).resolve().parent.parent  # .../server -> project root
        load_dotenv(dotenv_path=project_root / ".env")
    except OSError:
        # Unreadable .env; rely on process env instead
        pass

    settings = settings or AppSettings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="RESTful API for managing students and courses with an enrollment system",
        contact={"name": "API Support", "email": "support@studentapi.com"},
        license_info={"name": "MIT", "url": "https://opensource.org/licenses/MIT"},
        openapi_tags=OPENAPI_TAGS,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    if storage is None:
        storage = Storage(course_capacity=settings.course_capacity)
        if settings.seed_data:
            storage.seed()
    app.state.store = storage
    app.state.settings = settings

    app.include_router(api_router)

    @app.get("/", include_in_schema=False)
    def root():
        return {
            "message": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "health": "/health",
        }

    logger.info(
        f"App created - capacity: {settings.course_capacity}, "
        f"students: {len(storage.students)}, courses: {len(storage.courses)}"
    )
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = AppSettings()
    uvicorn.run("main:app", host=_settings.host, port=_settings.port)
