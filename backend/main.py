import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from config import settings
from db.database import init_db
from api.users import router as users_router
from api.horses import router as horses_router
from api.feed_scan import request_validation_response, router as feed_scan_router
from api.scans import router as scans_router

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)

settings.validate_runtime_configuration()
if not settings.ANTHROPIC_API_KEY:
    logger.warning("ANTHROPIC_API_KEY is not set; feed scans will fail until it is configured")

# Create all tables
init_db()

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    if not settings.SECURITY_HEADERS_ENABLED:
        return response
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Permissions-Policy"] = "camera=(self), microphone=(), geolocation=()"
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Feed scans answer with {"error": ...}; every other route keeps FastAPI's 422.
    if request.url.path == "/api/analyze-feed":
        return request_validation_response(list(exc.errors()))
    return await request_validation_exception_handler(request, exc)


@app.get("/health")
@app.get("/api/health")
def health_check():
    return {"status": f"{settings.APP_NAME} running", "version": settings.APP_VERSION}


# Routers
app.include_router(users_router, prefix="/api")
app.include_router(horses_router, prefix="/api")
app.include_router(feed_scan_router, prefix="/api")
app.include_router(scans_router, prefix="/api")

# Serve frontend static files (mounted last so API routes win)
static_dir = Path(settings.STATIC_DIR)
if not static_dir.is_absolute():
    static_dir = Path(__file__).parent / static_dir
if static_dir.exists():
    app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
