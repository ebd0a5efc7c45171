"""
Watch-list Recommender - Main FastAPI Application

Hybrid recommendations for a price-tracking watch list:
- Seven independent scoring strategies combined by weight
- Popularity fallback and dominant-category focus
- Idempotent persistence of recommendations
- Redis caching of the read path
- Rate Limiting
- Structured Logging
- Prometheus Metrics
- Background Jobs with Celery
"""

from fastapi import FastAPI, status, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .api import api_router
from .utils.database import SessionLocal, init_db
from .services.realtime import get_cache
from .utils.logging import setup_logging, get_logger, configure_json_loggers
from .utils.metrics import setup_metrics
from .utils.rate_limit import limiter

# Setup structured logging
setup_logging(log_level=settings.LOG_LEVEL)
configure_json_loggers()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""

    # Startup
    logger.info("Starting Watch-list Recommender", version=settings.VERSION)

    # Initialize database
    logger.info("Initializing database")
    init_db()

    # Check Redis connection
    logger.info("Checking Redis connection")
    if get_cache().health_check():
        logger.info("Redis connection successful")
    else:
        logger.warning("Redis connection failed - recommendations will not be cached")

    logger.info("Watch-list Recommender started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Watch-list Recommender")


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="""
    # Watch-list Recommender API

    Recommends catalog items to users of a price-tracking watch list.

    ## Strategies

    - `CONTENT_BASED`: category preferences plus source, price and popularity bonuses
    - `COLLABORATIVE`: engagement of the most similar users
    - `MATRIX_FACTORIZATION`: user row times item column sums of the interaction matrix
    - `CLUSTERING`: what is popular among users with a similar number of preferences
    - `TEMPORAL`: what others engage with at this time of day
    - `TREND_BASED`: items with rising prices or growing popularity
    - `PERSONALIZED`: behavioral profile match

    Items produced by more than one strategy are tagged `HYBRID`.

    ## Quick Start

    1. Record user behavior events
    2. Generate recommendations for a user
    3. Read them back and mark them as viewed
    """,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "interactions", "description": "User behavior event tracking"},
        {"name": "recommendations", "description": "Recommendation generation and retrieval"},
    ]
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Setup Prometheus metrics
setup_metrics(app)

# Include routers
app.include_router(api_router, prefix=settings.API_V1_STR)


# Middleware for logging requests
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests"""
    logger.info(
        "Request received",
        method=request.method,
        url=str(request.url),
        client=request.client.host if request.client else None
    )

    response = await call_next(request)

    logger.info(
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code
    )

    return response


@app.get("/", tags=["root"])
def root():
    """Root endpoint"""
    return {
        "message": "Watch-list Recommender API",
        "version": settings.VERSION,
        "docs": "/docs",
        "status": "operational"
    }


@app.get("/health", tags=["root"], status_code=status.HTTP_200_OK)
def health_check():
    """Health check endpoint"""

    redis_healthy = get_cache().health_check()

    db_healthy = True
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Database health check failed", error=str(e))
        db_healthy = False
    finally:
        db.close()

    overall_healthy = redis_healthy and db_healthy

    return {
        "status": "healthy" if overall_healthy else "degraded",
        "redis": "connected" if redis_healthy else "disconnected",
        "database": "connected" if db_healthy else "disconnected",
        "version": settings.VERSION
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "watchlist_recommender.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
