from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from app.routers import ai, chatbot, realtime

# Import logging and middleware
from app.utils.exceptions import HRInsightsError
from app.utils.logging_config import configure_for_environment, get_logger
from app.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    RequestLoggingMiddleware,
    PerformanceMiddleware,
    hr_insights_exception_handler,
)
from app.services.catalog import get_catalog, get_settings

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    logger.info("HR Insights API starting up...")

    # fail fast on a broken catalog or settings
    catalog = get_catalog()
    get_settings()
    logger.info(f"Catalog ready with {len(catalog.intents)} intents")

    try:
        from app.services.db import init_indexes
        await init_indexes()
        logger.info("Database indexes initialized successfully")
    except Exception as e:
        logger.warning(f"Database index initialization had issues: {e}")
        logger.info("Application will continue - some operations may be slower without indexes")

    logger.info("HR Insights API startup completed")

    yield

    logger.info("HR Insights API shutting down...")

app = FastAPI(title="HR Insights API", version="1.0.0", lifespan=lifespan)

app.add_exception_handler(HRInsightsError, hr_insights_exception_handler)

# Add middleware in order (LIFO - Last In, First Out)
# Exception handler should be the outermost middleware
app.add_middleware(PerformanceMiddleware, slow_request_threshold=2.0)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(ExceptionHandlerMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
@app.head("/")
async def root():
    """Root endpoint - handles both GET and HEAD requests for health checks"""
    return {"message": "Welcome to the HR Insights API", "version": "1.0.0", "status": "ok"}

@app.get("/health")
@app.head("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}

app.include_router(ai.router, prefix="/api/ai", tags=["ai"])
app.include_router(chatbot.router, prefix="/api/chatbot", tags=["chatbot"])
app.include_router(realtime.router)

logger.info("HR Insights API initialized successfully")
