"""Application entrypoint following FastAPI bigger applications layout."""

import logging

from fastapi import FastAPI

from .routers import architects, buildings, health, search

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)

app = FastAPI(title="archimap: Building Directory Service", version="0.1.0")

app.include_router(health.router)
app.include_router(buildings.router)
app.include_router(architects.router)
app.include_router(search.router)

__all__ = ["app", "run"]


def run() -> None:
    """Entrypoint for the `api` console script."""
    import uvicorn

    uvicorn.run("archimap.app.main:app", host="0.0.0.0", port=8081, reload=True)
