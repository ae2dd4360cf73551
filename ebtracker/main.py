import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import ENVIRONMENT
from .domain.activities.router import router as activities_router
from .domain.dashboard.router import router as dashboard_router
from .domain.deliverables.router import router as deliverables_router
from .domain.email.router import router as email_router
from .domain.executive_summary.router import router as executive_summary_router
from .domain.files.router import router as files_router
from .domain.invoices.router import router as invoices_router
from .domain.notifications.router import router as notifications_router
from .domain.payments.router import router as payments_router
from .domain.projects.router import router as projects_router
from .domain.proposals.router import router as proposals_router
from .domain.submissions.router import router as submissions_router
from .domain.tasks.router import router as tasks_router
from .domain.time_requests.router import router as time_requests_router
from .domain.timesheets.router import router as timesheets_router
from .domain.users.router import router as users_router
from .domain.variations.router import router as variations_router
from .firebase import init_firebase

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 EB-Tracker API starting up...")
    if init_firebase():
        logger.info("✅ Firebase ready")
    else:
        logger.warning("⚠️ Firebase not initialized - data endpoints will fail until credentials are set")
    yield
    logger.info("EB-Tracker API shutting down...")


app = FastAPI(title="EB-Tracker API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} - {exc.status_code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request validation failures are reported as 400 with the first problem spelled out"""
    errors = exc.errors()
    logger.warning(f"⚠️ Validation error for {request.url.path}: {errors}")
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body") or "request"
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": f"Invalid {field}: {first.get('msg', 'validation failed')}",
            "details": jsonable_encoder(errors),
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ {request.method} {request.url.path} - Unhandled error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "message": str(exc) if ENVIRONMENT == "development" else "An unexpected error occurred",
        },
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Routes
for router in (
    proposals_router,
    projects_router,
    timesheets_router,
    time_requests_router,
    tasks_router,
    deliverables_router,
    submissions_router,
    invoices_router,
    payments_router,
    variations_router,
    files_router,
    notifications_router,
    users_router,
    activities_router,
    dashboard_router,
    executive_summary_router,
    email_router,
):
    app.include_router(router, prefix="/api")


@app.get("/")
def root():
    return {"message": "EB-Tracker API is running"}


@app.get("/health")
def health():
    return {"status": "healthy", "service": "eb-tracker-api"}
