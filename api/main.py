"""
StockWatch API - FastAPI Backend
Quotes, company overviews and daily series for a fixed watchlist,
backed by Alpha Vantage with a 24-hour cache and built-in mock data.
"""
import os
from contextlib import asynccontextmanager
from dotenv import load_dotenv

# Load environment variables BEFORE other imports
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import get_config
from models.stock import SUPPORTED_TICKERS
from routes import stocks, watchlist
from services.market_data import shutdown_market_data_service

# Configure structured logging with correlation IDs
from services.logging_config import (
    setup_logging,
    get_logger,
    CorrelationIdMiddleware
)

# Use JSON logging in production (when not in debug mode)
use_json_logging = os.getenv("LOG_FORMAT", "console").lower() == "json"
setup_logging(use_json=use_json_logging)
logger = get_logger(__name__)

API_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events"""
    # Startup
    config = get_config()
    logger.info(f"StockWatch API starting up ({config.summary()})")
    yield
    # Shutdown
    await shutdown_market_data_service()
    logger.info("StockWatch API shutting down")


app = FastAPI(
    title="StockWatch API",
    description="Watchlist quotes, company overviews and daily prices from Alpha Vantage",
    version=API_VERSION,
    lifespan=lifespan,
)

# CORS middleware - supports env var ALLOWED_ORIGINS for production
default_origins = [
    "http://localhost:5173",
    "http://localhost:3000",
]
# Add any custom origins from environment variable
custom_origins = os.getenv("ALLOWED_ORIGINS", "")
if custom_origins:
    default_origins.extend([o.strip() for o in custom_origins.split(",") if o.strip()])

app.add_middleware(
    CORSMiddleware,
    allow_origins=default_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Correlation ID middleware for request tracing
app.add_middleware(CorrelationIdMiddleware)

# Include routers
app.include_router(stocks.router, prefix="/api/stocks", tags=["stocks"])
app.include_router(watchlist.router, prefix="/api/watchlist", tags=["watchlist"])


@app.get("/")
async def root():
    config = get_config()
    return {
        "message": "StockWatch API",
        "version": API_VERSION,
        "tickers": [ticker.value for ticker in SUPPORTED_TICKERS],
        "mock_mode": config.should_use_mocks(),
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000, reload=True)
