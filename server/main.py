"""FastAPI application for the focus mitt trainer."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from server.config import settings
from server.schemas import HealthResponse
from server.services.registry import registry
from src.logging_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: configure logging and validate the config. Shutdown: stop live drills."""
    setup_logging(settings.log_level, settings.json_logs)
    registry.config()
    yield
    registry.stop_all()


app = FastAPI(
    title="Mittwork",
    description="Punch classification and adaptive focus mitt drills",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
from server.routers import drills, preview  # noqa: E402

app.include_router(drills.router, prefix="/api/v1")
app.include_router(preview.router, prefix="/api/v1")


@app.get("/", response_model=HealthResponse)
async def health():
    return HealthResponse()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "server.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
