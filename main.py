import time
import traceback
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.core.config import settings
from app.core.exceptions import StudyAssistantError
from app.core.logging_config import setup_logging, get_logger, RequestLogger
from app.core.middleware import SecurityHeadersMiddleware
from app.core.rate_limit import limiter
from app.db.database import Base, engine, dispose_engine
from app.api.routes import users, upload, documents, progress

# Initialize logging first (auto-determines level based on environment)
setup_logging(
    app_name="study_assistant",
    log_level=settings.log_level,  # Empty = auto (DEBUG in dev, WARNING in prod)
    environment=settings.environment,
    enable_console=True,
    enable_file=settings.log_to_file,
)

logger = get_logger(__name__)
request_logger = RequestLogger(get_logger("study_assistant.requests"))

logger.info("Starting AI Study Assistant API...")

# Create database tables (no migrations; schema is owned by the models)
from app.models import User, Document, FlashcardProgress, ExamAttempt  # noqa: F401, E402
Base.metadata.create_all(bind=engine)
logger.info("Database tables created/verified")


app = FastAPI(
    title=settings.app_name,
    description="Turns uploaded documents into summaries, flashcards and exam questions",
    version="0.1.0",
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(StudyAssistantError)
async def study_assistant_error_handler(request: Request, exc: StudyAssistantError):
    """Map the pipeline error taxonomy onto HTTP status codes and JSON bodies."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )


# Global exception handler, logs full tracebacks for 500 errors
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions, log full traceback, return 500."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc}\n"
        f"{traceback.format_exc()}"
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error", "details": str(exc)})


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests with timing."""
    start_time = time.time()
    client_ip = request.client.host if request.client else "unknown"

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    user_id = getattr(request.state, "user_id", None)
    pipeline_stage = getattr(request.state, "pipeline_stage", None)

    request_logger.log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=duration_ms,
        client_ip=client_ip,
        user_id=user_id,
        pipeline_stage=pipeline_stage,
    )

    return response


# CORS middleware, restricted to the configured frontend origins
if settings.allowed_origins:
    cors_origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
elif settings.environment == "production":
    cors_origins = [settings.frontend_url]
else:
    cors_origins = [
        "http://localhost:5173",
        "http://localhost:3000",
        settings.frontend_url,
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# Security headers middleware
app.add_middleware(SecurityHeadersMiddleware)

app.include_router(users.router, prefix="/api")
app.include_router(upload.router, prefix="/api")
app.include_router(documents.router, prefix="/api")
app.include_router(progress.router, prefix="/api")

logger.info("API routes registered at /api")


@app.get("/health")
@app.get("/api/health")
def health_check():
    logger.debug("Health check requested")
    return {"status": "ok", "message": "AI Study Assistant API is running"}


@app.on_event("startup")
async def startup_event():
    from app.services.ai_service import StudyMaterialGenerator
    from app.services.scheduler import schedule_jobs, start_scheduler

    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)

    app.state.generator = StudyMaterialGenerator.from_settings()
    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY is not set; uploads will fail at the generation step")

    schedule_jobs()
    start_scheduler()
    logger.info("AI Study Assistant API started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    from app.services.scheduler import stop_scheduler

    stop_scheduler()
    generator = getattr(app.state, "generator", None)
    if generator is not None:
        await generator.close()
    dispose_engine()
    logger.info("AI Study Assistant API shutting down")
