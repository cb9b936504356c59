"""
FastAPI Main Application

Entry point for the marketing budget allocation API.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import allocation_router
from .routes.allocation import get_session_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    print("Starting Marketing Budget Allocation API...")
    yield
    # Shutdown
    print("Shutting down Marketing Budget Allocation API...")
    get_session_store().clear()


app = FastAPI(
    title="Marketing Budget Allocation API",
    description="Allocates project cost across marketing categories, years and quarters",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS configuration
cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(allocation_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Marketing Budget Allocation API",
        "version": "1.0.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/api")
async def api_info():
    """API information endpoint."""
    return {
        "endpoints": {
            "session": "/api/allocations/{project_id}/session",
            "allocation": "/api/allocations/{project_id}",
            "categories": "/api/allocations/{project_id}/categories/{group}/{field}",
            "years": "/api/allocations/{project_id}/years",
            "quarters": "/api/allocations/{project_id}/years/{year}/quarters/{label}",
            "commit": "/api/allocations/{project_id}/commit",
        },
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=os.getenv("ENVIRONMENT", "development") == "development",
    )
