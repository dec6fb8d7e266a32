"""
Explore API endpoints: swipe session, swipes and the explore deck.

Provides endpoints for:
1. Reading / resetting the explore session of a trip (or trip segment)
2. Recording like, dislike and undo swipes against the swipe limit
3. Fetching explore candidates with filters and pagination
"""
import logging
from typing import NoReturn, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from explore_swipe.api.dependencies import get_places_provider, require_user_id
from explore_swipe.application.explore_service import ExploreSessionService, parse_swipe_command
from explore_swipe.domain.errors import SwipeValidationError, UpstreamDataError
from explore_swipe.domain.models import ExploreFilters, TimeOfDay
from explore_swipe.domain.schemas import (
    ClearLikedPlacesResponse,
    ExplorePlacesResponse,
    ExploreSessionResponse,
    SuccessResponse,
    SwipeRequest,
    SwipeResponse,
)
from explore_swipe.infrastructure.database import get_db
from explore_swipe.infrastructure.explore_places import GooglePlacesExploreProvider


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["explore"])


def _raise_http(e: Exception) -> NoReturn:
    if isinstance(e, PermissionError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# MARK: - Endpoints

@router.get(
    "/{trip_id}/explore/session",
    response_model=ExploreSessionResponse,
    summary="Get explore session",
    description="Returns liked/discarded places and the remaining swipe budget. Creates the session on first access."
)
async def get_explore_session(
    trip_id: UUID,
    trip_segment_id: Optional[str] = Query(default=None),
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
) -> ExploreSessionResponse:
    service = ExploreSessionService(db)
    try:
        session = await service.read_session(trip_id, user_id, trip_segment_id)
    except (ValueError, PermissionError) as e:
        _raise_http(e)

    return ExploreSessionResponse(**session.model_dump())


@router.delete(
    "/{trip_id}/explore/session",
    response_model=SuccessResponse,
    summary="Reset explore session",
)
async def reset_explore_session(
    trip_id: UUID,
    trip_segment_id: Optional[str] = Query(default=None),
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
) -> SuccessResponse:
    service = ExploreSessionService(db)
    try:
        await service.reset_session(trip_id, user_id, trip_segment_id)
    except (ValueError, PermissionError) as e:
        _raise_http(e)

    return SuccessResponse()


@router.post(
    "/{trip_id}/explore/session/clear-liked",
    response_model=ClearLikedPlacesResponse,
    summary="Clear liked places after regeneration",
    description=(
        "Called once an itinerary was regenerated from the liked places. Moves them "
        "to discarded so the deck does not offer them again."
    )
)
async def clear_liked_places(
    trip_id: UUID,
    trip_segment_id: Optional[str] = Query(default=None),
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
) -> ClearLikedPlacesResponse:
    service = ExploreSessionService(db)
    try:
        moved = await service.clear_liked_places_after_regeneration(trip_id, user_id, trip_segment_id)
    except (ValueError, PermissionError) as e:
        _raise_http(e)

    return ClearLikedPlacesResponse(moved_count=moved)


@router.post(
    "/{trip_id}/explore/swipe",
    response_model=SwipeResponse,
    summary="Record a swipe",
    description=(
        "Records a like/dislike or undoes one. Refusals (limit reached, already swiped, "
        "nothing to undo) return success=false with status 200."
    )
)
async def swipe(
    trip_id: UUID,
    request: SwipeRequest,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
) -> SwipeResponse:
    try:
        command = parse_swipe_command(
            place_id=request.place_id,
            action=request.action,
            previous_action=request.previous_action,
            source=request.source,
            day_id=request.day_id,
            slot=request.slot,
        )
    except SwipeValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    service = ExploreSessionService(db)
    try:
        confirmation = await service.record_swipe(trip_id, user_id, command, request.trip_segment_id)
    except (ValueError, PermissionError) as e:
        _raise_http(e)

    session = confirmation.session
    return SwipeResponse(
        success=confirmation.success,
        swipe_count=confirmation.swipe_count,
        remaining_swipes=confirmation.remaining_swipes,
        daily_limit=session.daily_limit if session else None,
        limit_reached=confirmation.limit_reached,
        error=confirmation.error,
        undone_place_id=confirmation.undone_place_id,
        liked_places=session.liked_places if session else [],
        discarded_places=session.discarded_places if session else [],
    )


@router.get(
    "/{trip_id}/explore/places",
    response_model=ExplorePlacesResponse,
    summary="Get places to explore",
    description="Candidates around the trip destination, minus swiped and (by default) planned places."
)
async def get_explore_places(
    trip_id: UUID,
    trip_segment_id: Optional[str] = Query(default=None),
    day_id: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    neighborhood: Optional[str] = Query(default=None),
    time_of_day: Optional[str] = Query(default=None),
    budget: Optional[int] = Query(default=None, ge=0, le=4, description="Max price level (Pro only)"),
    max_distance: Optional[int] = Query(default=None, gt=0, description="Max meters from center (Pro only)"),
    include_itinerary_places: bool = Query(default=False),
    exclude_place_id: Optional[list[str]] = Query(default=None),
    limit: int = Query(default=20, ge=1, le=50),
    offset: int = Query(default=0, ge=0),
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
    places_provider: GooglePlacesExploreProvider = Depends(get_places_provider),
) -> ExplorePlacesResponse:
    filters = ExploreFilters(
        category=category,
        neighborhood=neighborhood,
        # Unknown values are ignored rather than rejected
        time_of_day=time_of_day if time_of_day in {t.value for t in TimeOfDay} else None,
        budget=budget,
        max_distance=max_distance,
        include_itinerary_places=include_itinerary_places,
        exclude_place_ids=exclude_place_id or [],
    )

    service = ExploreSessionService(db, places_provider=places_provider)
    try:
        page = await service.explore_places(
            trip_id,
            user_id,
            filters,
            segment_id=trip_segment_id,
            day_id=day_id,
            limit=limit,
            offset=offset,
        )
    except (ValueError, PermissionError) as e:
        _raise_http(e)
    except UpstreamDataError as e:
        logger.error(f"Explore places failed for trip {trip_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "Failed to fetch places", "details": str(e)},
        )

    return ExplorePlacesResponse(places=page.places, has_more=page.has_more, total_count=page.total_count)
