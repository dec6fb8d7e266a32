"""
Request/Response schemas for API endpoints.
These schemas define the contract between the explore clients and the backend.
"""
from typing import Optional
from pydantic import BaseModel, Field

from explore_swipe.domain.models import CandidatePlace, ScheduledActivity, TimeOfDay


class ExploreSessionResponse(BaseModel):
    """Explore session for one trip (or trip segment)."""
    liked_places: list[str] = Field(default_factory=list, description="Liked place IDs")
    discarded_places: list[str] = Field(default_factory=list, description="Discarded place IDs")
    swipe_count: int = Field(default=0, description="Swipes used")
    remaining_swipes: Optional[int] = Field(default=None, description="Swipes left (null = unlimited)")
    daily_limit: Optional[int] = Field(default=None, description="Swipe limit for this trip (null = unlimited)")


class SwipeRequest(BaseModel):
    """
    Swipe or undo request.
    Fields are validated by the service so errors come back as 400 with a message.
    """
    place_id: Optional[str] = Field(default=None, description="Google place ID")
    action: Optional[str] = Field(default=None, description="like | dislike | undo")
    previous_action: Optional[str] = Field(default=None, description="Original action (undo only)")
    source: Optional[str] = Field(default=None, description="trip | day (default trip)")
    trip_segment_id: Optional[str] = Field(default=None, description="Trip segment ID")
    day_id: Optional[str] = Field(default=None, description="Day ID (required for day source)")
    slot: Optional[str] = Field(default=None, description="morning | afternoon | evening")

    class Config:
        json_schema_extra = {
            "example": {
                "place_id": "ChIJD7fiBh9u5kcRYJSMaMOCCwQ",
                "action": "like",
                "source": "trip",
            }
        }


class SwipeResponse(BaseModel):
    """Result of a swipe/undo, including the session lists after it."""
    success: bool
    swipe_count: int = 0
    remaining_swipes: Optional[int] = None
    daily_limit: Optional[int] = None
    limit_reached: bool = False
    error: Optional[str] = None
    undone_place_id: Optional[str] = None
    liked_places: list[str] = Field(default_factory=list)
    discarded_places: list[str] = Field(default_factory=list)


class ExplorePlacesResponse(BaseModel):
    """One page of explore candidates."""
    places: list[CandidatePlace] = Field(default_factory=list)
    has_more: bool = False
    total_count: int = 0


class ItineraryActivitiesResponse(BaseModel):
    """Scheduled activities of a trip (or segment) itinerary."""
    activities: list[ScheduledActivity] = Field(default_factory=list)


class BulkAddFromSwipesRequest(BaseModel):
    """Add liked places to one day slot."""
    place_ids: list[str] = Field(min_length=1, description="Google place IDs to add")
    slot: TimeOfDay = Field(description="Target slot")


class AddedActivity(BaseModel):
    """Itinerary entry created from a liked place."""
    id: str
    name: str
    description: Optional[str] = None
    area: Optional[str] = None
    neighborhood: Optional[str] = None
    photos: list[str] = Field(default_factory=list)
    visited: bool = False
    tags: list[str] = Field(default_factory=list)


class BulkAddFromSwipesResponse(BaseModel):
    """Result of a bulk add."""
    success: bool = True
    added_count: int = 0
    skipped_count: int = 0
    added_place_ids: list[str] = Field(default_factory=list)
    activities: list[AddedActivity] = Field(default_factory=list)


class SuccessResponse(BaseModel):
    success: bool = True


class ClearLikedPlacesResponse(BaseModel):
    """Result of moving liked places to discarded after a regeneration."""
    success: bool = True
    moved_count: int = Field(default=0, description="Liked places moved to discarded")
