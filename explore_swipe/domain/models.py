"""
Core domain models for the Explore Swipe backend.
All models use Pydantic v2 for type safety and validation.
"""
from typing import Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


# Enums for constrained values
class SwipeAction(str, Enum):
    """Action recorded against an explore session."""
    LIKE = "like"
    DISLIKE = "dislike"
    UNDO = "undo"


class SwipeDirection(str, Enum):
    """Gesture direction on the top card of the deck."""
    LEFT = "left"
    RIGHT = "right"
    UP = "up"


class SwipeSource(str, Enum):
    """Where a swipe came from: the trip-wide deck or a single day."""
    TRIP = "trip"
    DAY = "day"


class TimeOfDay(str, Enum):
    """Itinerary slot / time-of-day filter."""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class ExploreMode(str, Enum):
    """Presentation mode sharing the swipe engine."""
    TRIP = "trip"
    DAY = "day"
    REPLACE = "replace"


class NotificationLevel(str, Enum):
    """Severity of an event handed to the notification collaborator."""
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


class UpgradeReason(str, Enum):
    """Reason code passed to the upgrade-prompt collaborator."""
    SWIPE_LIMIT = "swipe_limit"


# Domain Models

class ScopeKey(BaseModel):
    """
    The (trip, optional day-segment) unit a session is tracked against.
    Hashable so it can key per-scope state directly.
    """
    model_config = ConfigDict(frozen=True)

    trip_id: str = Field(description="Trip ID")
    segment_id: Optional[str] = Field(default=None, description="Trip segment ID (None = whole trip)")

    def __str__(self) -> str:
        if self.segment_id:
            return f"{self.trip_id}/{self.segment_id}"
        return self.trip_id


class CandidatePlace(BaseModel):
    """A point of interest returned by the upstream search, read-only to the engine."""
    model_config = ConfigDict(frozen=True)

    place_id: Optional[str] = Field(default=None, description="External (Google) place ID")
    name: str = Field(description="Display name")
    category: str = Field(default="Place", description="Readable category (Museum, Café, ...)")
    address: str = Field(default="", description="Free-text address")
    neighborhood: Optional[str] = Field(default=None, description="Neighborhood, if known")
    district: Optional[str] = Field(default=None, description="District, if known")
    lat: Optional[float] = Field(default=None, description="Latitude")
    lng: Optional[float] = Field(default=None, description="Longitude")
    rating: Optional[float] = Field(default=None, ge=0, le=5, description="Rating (0-5)")
    user_ratings_total: int = Field(default=0, description="Number of ratings")
    price_level: Optional[int] = Field(default=None, ge=0, le=4, description="Price level (0-4)")
    photo_url: Optional[str] = Field(default=None, description="Photo proxy URL")
    types: list[str] = Field(default_factory=list, description="Google Places types")
    tags: list[str] = Field(default_factory=list, description="Display tags ('Popular', ...)")


class ExploreFilters(BaseModel):
    """User-chosen filters for the candidate query."""
    category: Optional[str] = Field(default=None, description="Category search term")
    neighborhood: Optional[str] = Field(default=None, description="Neighborhood to search in")
    time_of_day: Optional[TimeOfDay] = Field(default=None, description="Time-of-day slot")
    budget: Optional[int] = Field(default=None, ge=0, le=4, description="Max price level (Pro only)")
    max_distance: Optional[int] = Field(default=None, gt=0, description="Max meters from trip center (Pro only)")
    include_itinerary_places: bool = Field(default=False, description="Keep places already in the itinerary")
    exclude_place_ids: list[str] = Field(default_factory=list, description="Place IDs to leave out")


class ExploreSession(BaseModel):
    """Liked/discarded lists and swipe budget for one scope."""
    liked_places: list[str] = Field(default_factory=list, description="Liked place IDs, in order")
    discarded_places: list[str] = Field(default_factory=list, description="Discarded place IDs, in order")
    swipe_count: int = Field(default=0, ge=0, description="Swipes used in this scope")
    remaining_swipes: Optional[int] = Field(default=None, description="Swipes left (None = unlimited)")
    daily_limit: Optional[int] = Field(default=None, description="Swipe limit (None = unlimited)")

    @classmethod
    def empty(cls) -> "ExploreSession":
        return cls()

    @property
    def is_exhausted(self) -> bool:
        return self.remaining_swipes is not None and self.remaining_swipes <= 0

    def with_swipe(self, place_id: str, action: SwipeAction) -> "ExploreSession":
        """Session as it would look after a like/dislike is recorded."""
        liked = list(self.liked_places)
        discarded = list(self.discarded_places)
        if action == SwipeAction.LIKE:
            liked.append(place_id)
        else:
            discarded.append(place_id)
        remaining = self.remaining_swipes
        if remaining is not None:
            remaining = max(0, remaining - 1)
        return self.model_copy(update={
            "liked_places": liked,
            "discarded_places": discarded,
            "swipe_count": self.swipe_count + 1,
            "remaining_swipes": remaining,
        })

    def without_swipe(self, place_id: str, previous_action: SwipeAction) -> "ExploreSession":
        """Session as it would look after an undo of `previous_action` on `place_id`."""
        liked = list(self.liked_places)
        discarded = list(self.discarded_places)
        target = liked if previous_action == SwipeAction.LIKE else discarded
        if place_id in target:
            target.remove(place_id)
        remaining = self.remaining_swipes
        if remaining is not None:
            remaining = remaining + 1
            if self.daily_limit is not None:
                remaining = min(self.daily_limit, remaining)
        return self.model_copy(update={
            "liked_places": liked,
            "discarded_places": discarded,
            "swipe_count": max(0, self.swipe_count - 1),
            "remaining_swipes": remaining,
        })


class ActivityPlace(BaseModel):
    """Place attached to a scheduled itinerary activity."""
    id: Optional[str] = Field(default=None, description="Internal place ID")
    name: Optional[str] = Field(default=None, description="Place name")
    external_id: Optional[str] = Field(default=None, description="External (Google) place ID")
    address: Optional[str] = Field(default=None, description="Free-text address")
    area: Optional[str] = Field(default=None, description="Neighborhood/area, if stored")
    lat: Optional[float] = Field(default=None, description="Latitude")
    lng: Optional[float] = Field(default=None, description="Longitude")


class ScheduledActivity(BaseModel):
    """One scheduled activity in the current itinerary."""
    place: Optional[ActivityPlace] = Field(default=None, description="Place, if the activity has one")
    day_id: Optional[str] = Field(default=None, description="Itinerary day ID")
    slot: Optional[TimeOfDay] = Field(default=None, description="Slot within the day")


class CandidatePage(BaseModel):
    """One page of candidates from the candidate source."""
    places: list[CandidatePlace] = Field(default_factory=list)
    total_count: int = Field(default=0, description="Total candidates available")
    has_more: bool = Field(default=False, description="More pages available")


class SwipeCommand(BaseModel):
    """A swipe or undo to be confirmed by the session store."""
    place_id: str = Field(description="Place being swiped or un-swiped")
    action: SwipeAction = Field(description="like, dislike or undo")
    previous_action: Optional[SwipeAction] = Field(default=None, description="Original action, for undo")
    source: SwipeSource = Field(default=SwipeSource.TRIP, description="trip or day deck")
    day_id: Optional[str] = Field(default=None, description="Day ID for day-level swipes")
    slot: Optional[TimeOfDay] = Field(default=None, description="Slot for day-level swipes")


class SwipeConfirmation(BaseModel):
    """Session store answer to a SwipeCommand."""
    success: bool
    swipe_count: int = 0
    remaining_swipes: Optional[int] = None
    limit_reached: bool = False
    error: Optional[str] = None
    undone_place_id: Optional[str] = None
    session: Optional[ExploreSession] = Field(default=None, description="Confirmed session snapshot")


class BulkAddResult(BaseModel):
    """Result of adding places to an itinerary day/slot."""
    added_count: int = 0
    skipped_count: int = 0
    added_place_ids: list[str] = Field(default_factory=list)


class NotificationEvent(BaseModel):
    """Event handed to the notification collaborator; the engine never renders text itself."""
    level: NotificationLevel
    code: str = Field(description="Stable event code for text lookup")
    message: str = Field(default="", description="Fallback English message")
    scope: Optional[ScopeKey] = None
    place_id: Optional[str] = None
