"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from xlsmart.api.analytics import router as analytics_router
from xlsmart.api.assessments import router as assessments_router
from xlsmart.api.employees import router as employees_router
from xlsmart.api.job_descriptions import router as job_descriptions_router
from xlsmart.api.roles import router as roles_router
from xlsmart.api.sessions import router as sessions_router
from xlsmart.config import get_settings
from xlsmart.database import Base, engine
from xlsmart.exceptions import XLSmartError
from xlsmart.models import (  # noqa: F401 - Import to register models
    Employee,
    JobDescription,
    RoleMapping,
    SkillAssessment,
    StandardRole,
    UploadSession,
)

settings = get_settings()

# Configure logging
handlers = [logging.StreamHandler()]
if settings.log_file:
    handlers.append(logging.FileHandler(settings.log_file))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=handlers,
)

# Set specific log levels for noisy libraries
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables on startup."""
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="XLSMART Talent Pipeline",
    description="Bulk employee and role uploads with AI standardization, assignment and assessment",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(XLSmartError)
async def xlsmart_error_handler(request: Request, exc: XLSmartError):
    if exc.status_code >= 500:
        logger.error(f"💥 {request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"❌ {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"] if part != "body")
        problems.append(f"{location}: {error['msg']}" if location else error["msg"])
    message = "Invalid request: " + "; ".join(problems)
    logger.warning(f"❌ {request.method} {request.url.path}: {message}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": message},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"💥 Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"},
    )


# Include routers
app.include_router(sessions_router)
app.include_router(roles_router)
app.include_router(employees_router)
app.include_router(assessments_router)
app.include_router(job_descriptions_router)
app.include_router(analytics_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
