from datetime import datetime, timezone
import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from supabase import Client

from edusmart.core.config import settings
from edusmart.core.errors import ApiError
from edusmart.core.log_config import configure_logging
from edusmart.db.supabase import get_supabase
from edusmart.modules.attendance.router import router as attendance_router
from edusmart.modules.auth.router import router as auth_router
from edusmart.modules.classes.router import router as classes_router
from edusmart.modules.grades.router import router as grades_router
from edusmart.modules.guardians.router import router as guardians_router
from edusmart.modules.reports.router import router as reports_router
from edusmart.modules.students.router import router as students_router
from edusmart.modules.subjects.router import router as subjects_router
from edusmart.modules.teachers.router import router as teachers_router
from edusmart.modules.users.router import router as users_router

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="EduSmart API",
    description="School information system backend with role-based access control",
    version="1.0.0"
)


# Custom OpenAPI schema so Swagger UI shows the bearer lock on protected routes
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
    }
    public = {"/", "/health", "/auth/register", "/auth/login", "/auth/refresh"}
    for path, path_item in openapi_schema.get("paths", {}).items():
        if path in public:
            continue
        for operation in path_item.values():
            operation["security"] = [{"BearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------
# ERROR HANDLERS
# -------------------------
@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
         "message": error.get("msg")}
        for error in exc.errors()
    ]
    first = errors[0] if errors else {"field": "", "message": "Validation error"}
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "message": f"{first['field']}: {first['message']}" if first["field"] else first["message"],
            "message_uz": "Ma'lumot tekshirish xatosi",
            "errors": errors,
        },
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {
        "success": False,
        "message": "Internal server error",
        "message_uz": "Ichki server xatosi",
    }
    if settings.is_development:
        content["detail"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


# Root route
@app.get("/")
def root():
    return {"success": True, "message": "EduSmart API", "message_uz": "EduSmart API"}


# Health check route
@app.get("/health")
def health_check(db: Client = Depends(get_supabase)):
    """Check if the service and database connection are healthy"""
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        db.table("users").select("id").limit(1).execute()
        return {"status": "healthy", "database": "connected", "timestamp": timestamp}
    except Exception as e:
        logger.error("Health check failed: %s", e)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unreachable", "timestamp": timestamp},
        )


# Include routers
app.include_router(auth_router, prefix="/auth")
app.include_router(users_router, prefix="/users")
app.include_router(students_router, prefix="/students")
app.include_router(teachers_router, prefix="/teachers")
app.include_router(guardians_router, prefix="/guardians")
app.include_router(classes_router, prefix="/classes")
app.include_router(subjects_router, prefix="/subjects")
app.include_router(grades_router, prefix="/grades")
app.include_router(attendance_router, prefix="/attendance")
app.include_router(reports_router, prefix="/reports")
