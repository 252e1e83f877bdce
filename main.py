"""
RO Analytics Backend - Main Application

DMS repair-order parsing and dashboard aggregation for multi-tenant
dealership analytics.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
import os
import logging

load_dotenv()

from app.routers import dashboard, ro_parser

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

# Comma separated, "*" allows any origin
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


# Initialize FastAPI app
app = FastAPI(
    title="RO Analytics Backend",
    description="DMS repair order parser and dashboard aggregation",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(ro_parser.router, prefix="/api/ro-parser", tags=["RO Parser"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])


@app.get("/")
def read_root():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "RO Analytics Backend",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """Detailed health check"""
    return {
        "status": "healthy",
        "log_level": logging.getLevelName(logging.getLogger().level),
        "cors_origins": CORS_ORIGINS,
        "max_batch_size": ro_parser.RO_PARSER_MAX_BATCH
    }


if __name__ == "__main__":
    import uvicorn
    logger.info("Starting RO Analytics Backend...")
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", 8000)), reload=True)
