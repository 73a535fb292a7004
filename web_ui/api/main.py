"""
LayerStack Web API - Main FastAPI Application

Exposes timeline flattening and composition job building to the editor
frontend.
"""

import os
import sys
from pathlib import Path
from contextlib import asynccontextmanager

# Add parent directory to path to import existing modules
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from utils.logger import logger

# Server configuration from environment
LAYERSTACK_HOST = os.getenv("LAYERSTACK_HOST", "localhost")
LAYERSTACK_PORT = int(os.getenv("LAYERSTACK_PORT", "8000"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events"""
    # Startup
    settings.create_directories()
    logger.info(f"LayerStack Web API on http://{LAYERSTACK_HOST}:{LAYERSTACK_PORT} (docs at /docs)")
    yield
    # Shutdown
    logger.info("LayerStack Web API shutting down...")


app = FastAPI(
    title="LayerStack Web API",
    description="Layered timeline composition",
    version="1.0.0",
    lifespan=lifespan,
    redirect_slashes=False,
)

cors_origins = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
]

if LAYERSTACK_HOST and LAYERSTACK_HOST not in ["localhost", "127.0.0.1"]:
    cors_origins.extend([
        f"http://{LAYERSTACK_HOST}:5173",
        f"http://{LAYERSTACK_HOST}:{LAYERSTACK_PORT}",
    ])

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Accept", "Content-Type", "Origin", "X-Requested-With"],
)

# Import and include routers
from web_ui.api.routes import timeline

app.include_router(timeline.router, prefix="/api/v1/timeline", tags=["Timeline"])


@app.get("/")
async def root():
    """API root endpoint"""
    return {
        "name": "LayerStack Web API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=LAYERSTACK_PORT)
