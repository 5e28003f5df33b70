"""FastAPI application serving read-only views of MMM pools."""

import os

import uvicorn
from fastapi import FastAPI

from mmm_pool import __version__
from mmm_pool.api.endpoints import router
from mmm_pool.logging_config import configure_logging

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("MMM_POOL_HOST", "0.0.0.0")
PORT = int(os.environ.get("MMM_POOL_PORT", "8000"))
DEBUG = os.environ.get("MMM_POOL_DEBUG", "false").lower() in ("true", "1", "yes")
LOG_LEVEL = os.environ.get("MMM_POOL_LOG_LEVEL", "INFO")

app = FastAPI(
    title="MMM Pool",
    description="Oracle-driven weighted liquidity pools with coverage fees",
    version=__version__,
)

app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


def run() -> None:
    """Run the pool API server.

    Configuration via environment variables:
    - MMM_POOL_HOST: Host to bind to (default: 0.0.0.0)
    - MMM_POOL_PORT: Port to bind to (default: 8000)
    - MMM_POOL_DEBUG: Enable debug/reload mode (default: false)
    - MMM_POOL_LOG_LEVEL: Minimum log level (default: INFO)
    """
    configure_logging(LOG_LEVEL)
    uvicorn.run(
        "mmm_pool.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
