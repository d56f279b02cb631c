"""FastAPI application assembly.

The app only observes: it is handed a Station by whoever runs the matches
and exposes read-only views of it.
"""

from __future__ import annotations

from fastapi import FastAPI

from dimension.station import Station

from backend.api.routes_dimensions import router as dimensions_router
from backend.api.ws_status import router as ws_router


def create_app(station: Station | None = None) -> FastAPI:
    app = FastAPI(title="Dimension Station", version="0.1.0")
    app.state.station = station if station is not None else Station()

    app.include_router(dimensions_router)
    app.include_router(ws_router)

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "ok", "station": app.state.station.name}

    return app
