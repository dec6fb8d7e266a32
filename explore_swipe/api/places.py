"""
Place photo proxy used by explore cards.
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from explore_swipe.api.dependencies import get_places_provider
from explore_swipe.domain.errors import UpstreamDataError
from explore_swipe.infrastructure.explore_places import GooglePlacesExploreProvider

router = APIRouter()


@router.get("/places/photos/{photo_reference}")
async def get_place_photo(
    photo_reference: str,
    max_width: int = Query(default=1000, ge=200, le=2400),
    places_provider: GooglePlacesExploreProvider = Depends(get_places_provider),
):
    try:
        content = await places_provider.fetch_place_photo(photo_reference, max_width=max_width)
    except UpstreamDataError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return Response(content=content, media_type="image/jpeg")
