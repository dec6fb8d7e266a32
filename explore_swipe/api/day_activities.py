"""
Itinerary endpoints used by the explore deck.

Provides endpoints for:
1. Listing scheduled activities (the deck's already-planned set)
2. Bulk-adding liked places to a day slot
"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from explore_swipe.api.dependencies import get_places_provider, require_user_id
from explore_swipe.application.explore_service import ExploreSessionService
from explore_swipe.application.swipe_bulk_add import DayLockedError, SwipeBulkAddService
from explore_swipe.domain.schemas import (
    AddedActivity,
    BulkAddFromSwipesRequest,
    BulkAddFromSwipesResponse,
    ItineraryActivitiesResponse,
)
from explore_swipe.infrastructure.database import get_db
from explore_swipe.infrastructure.explore_places import GooglePlacesExploreProvider


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["itinerary"])


@router.get(
    "/{trip_id}/itinerary/activities",
    response_model=ItineraryActivitiesResponse,
    summary="List scheduled activities",
)
async def list_itinerary_activities(
    trip_id: UUID,
    trip_segment_id: Optional[str] = Query(default=None),
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
) -> ItineraryActivitiesResponse:
    service = ExploreSessionService(db)
    try:
        activities = await service.list_activities(trip_id, user_id, trip_segment_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    return ItineraryActivitiesResponse(activities=activities)


@router.post(
    "/{trip_id}/days/{day_id}/activities/bulk-add-from-swipes",
    response_model=BulkAddFromSwipesResponse,
    summary="Add liked places to a day",
    description="Adds swiped places to a day slot. Places already in the slot are skipped."
)
async def bulk_add_from_swipes(
    trip_id: UUID,
    day_id: str,
    request: BulkAddFromSwipesRequest,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
    places_provider: GooglePlacesExploreProvider = Depends(get_places_provider),
) -> BulkAddFromSwipesResponse:
    """
    Raises:
        HTTPException 404 if trip/itinerary/day/slot not found
        HTTPException 403 if access denied
        HTTPException 400 past_day_locked / day_activity_limit
    """
    service = SwipeBulkAddService(places_provider=places_provider)

    try:
        result, activities = await service.add_from_swipes(
            trip_id=trip_id,
            user_id=user_id,
            day_id=day_id,
            slot=request.slot,
            place_ids=request.place_ids,
            db=db,
        )
    except DayLockedError as e:
        detail = {"error": e.code, "message": e.message}
        if e.max_activities_per_day is not None:
            detail["max_activities_per_day"] = e.max_activities_per_day
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    return BulkAddFromSwipesResponse(
        success=True,
        added_count=result.added_count,
        skipped_count=result.skipped_count,
        added_place_ids=result.added_place_ids,
        activities=[AddedActivity(**activity) for activity in activities],
    )
