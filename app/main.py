"""
SecondHome - Main Application

FastAPI backend with:
- MongoDB for listings, users, notifications and points of interest
- AI advisor (OpenAI-compatible API) for listing legitimacy scoring
- JWT authentication with role-based moderation

Run: uvicorn app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from app.api.routes import api_router
from app.core.config import get_settings
from app.core.errors import register_exception_handlers
from app.db.mongodb import MongoPool, close_pool, get_pool, init_mongo_indexes, init_pool

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the MongoDB pool for the life of the process."""
    pool = init_pool(settings)
    try:
        init_mongo_indexes(pool)
        logger.info("MongoDB indexes initialized")
    except PyMongoError as e:
        logger.warning("MongoDB index initialization failed: %s", e)
    yield
    close_pool()


# Create FastAPI app
app = FastAPI(
    title="SecondHome",
    description="""
    Student accommodation marketplace API.

    ## Features
    - **Listings**: Properties (PG/flats) and messes, public only once approved
    - **Moderation**: Admin approve/reject with audit fields and owner notifications
    - **Verification**: AI legitimacy scoring plus executive-visit verified badge
    - **Nearby**: Proximity search over listings and points of interest
    - **Authentication**: JWT-based auth with user/owner/admin/executive roles
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "SecondHome"}


@app.get("/health", tags=["Health"])
def health_check(pool: MongoPool = Depends(get_pool)):
    """Detailed health check."""
    return {
        "status": "healthy",
        "mongodb": "connected" if pool.ensure_connected() else "disconnected",
        "ai": "configured" if settings.ai_enabled else "not configured",
    }
