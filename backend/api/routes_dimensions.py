"""Read-only dimension and match endpoints backed by the app's Station."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from dimension.station import Station

from backend.schemas.api_models import DimensionSummary, MatchSummary

router = APIRouter(prefix="/api/dimensions", tags=["dimensions"])


def _station(request: Request) -> Station:
    return request.app.state.station


@router.get("", response_model=list[DimensionSummary])
async def list_dimensions(request: Request) -> list[DimensionSummary]:
    """List every dimension the station observes."""
    return [DimensionSummary(**d) for d in _station(request).list_dimensions()]


@router.get("/{dimension_id}", response_model=DimensionSummary)
async def get_dimension(dimension_id: str, request: Request) -> DimensionSummary:
    data = _station(request).get_dimension(dimension_id)
    if data is None:
        raise HTTPException(status_code=404, detail=f"Dimension {dimension_id} not found.")
    return DimensionSummary(**data)


@router.get("/{dimension_id}/matches", response_model=list[MatchSummary])
async def list_matches(dimension_id: str, request: Request) -> list[MatchSummary]:
    matches = _station(request).list_matches(dimension_id)
    if matches is None:
        raise HTTPException(status_code=404, detail=f"Dimension {dimension_id} not found.")
    return [MatchSummary(**m) for m in matches]


@router.get("/{dimension_id}/matches/{match_id}", response_model=MatchSummary)
async def get_match(dimension_id: str, match_id: str, request: Request) -> MatchSummary:
    data = _station(request).get_match(dimension_id, match_id)
    if data is None:
        raise HTTPException(
            status_code=404,
            detail=f"Match {match_id} not found in dimension {dimension_id}.",
        )
    return MatchSummary(**data)
