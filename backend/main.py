import sys
import logging
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from firstlook.api.routes import router
from firstlook.api.metrics import router as metrics_router
from firstlook.core.config import get_settings
from firstlook.core.errors import ErrorCodes, get_error_response
from firstlook.core.logging import configure_logging
from firstlook.core.middleware import CorrelationIDMiddleware, TimeoutMiddleware

# Load environment variables
load_dotenv()

# Load and validate configuration
try:
    settings = get_settings()
except Exception as e:
    logging.basicConfig(level=logging.ERROR)
    logging.getLogger(__name__).error(f"Failed to load configuration: {e}")
    sys.exit(1)

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)

app = FastAPI(
    title="firstlook API",
    description="Automatic first-look profiling: types, statistics, KPIs, charts, insights and answers",
    version="1.0.0"
)

# Store limiter and settings in app state for use in routes
app.state.limiter = limiter
app.state.settings = settings


def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded with structured error response."""
    correlation_id = getattr(request.state, 'correlation_id', 'unknown')
    error_info = get_error_response(ErrorCodes.RATE_LIMIT_EXCEEDED)
    error_info['correlation_id'] = correlation_id
    return JSONResponse(
        status_code=429,
        content=error_info,
        headers={
            "Retry-After": str(exc.retry_after) if hasattr(exc, 'retry_after') else "60",
            "X-Correlation-ID": correlation_id
        }
    )


app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

# Middleware (last added runs first)
app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization", "X-Correlation-ID"],
    expose_headers=["X-Correlation-ID"]
)
app.add_middleware(CorrelationIDMiddleware)

logger.info(f"CORS allowed origins: {settings.allowed_origins_list}")

app.include_router(router, prefix="/api")
app.include_router(metrics_router, prefix="/api")


@app.get("/")
async def root():
    return {"message": "firstlook API is running"}


logger.info("Application started successfully")
