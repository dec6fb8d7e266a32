"""
Explore Session Service - server side of the swipe session store.

Handles:
1. Lazily created sessions per (trip, user, segment)
2. Recording like/dislike/undo against the per-trip swipe limit
3. The explore places query (exclusions, day area, Pro-only filters, paging)
4. Housekeeping after an itinerary is regenerated
"""
import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from explore_swipe.application.deck_builder import build_deck
from explore_swipe.application.itinerary_index import build_itinerary_index
from explore_swipe.config import settings
from explore_swipe.domain.errors import SwipeValidationError
from explore_swipe.domain.models import (
    ActivityPlace,
    CandidatePage,
    ExploreFilters,
    ExploreSession,
    ScheduledActivity,
    SwipeAction,
    SwipeCommand,
    SwipeConfirmation,
    SwipeSource,
    TimeOfDay,
)
from explore_swipe.infrastructure.explore_places import ExploreDestination, GooglePlacesExploreProvider
from explore_swipe.infrastructure.models import ExploreSessionModel, ItineraryModel, TripModel


logger = logging.getLogger(__name__)


FREE_LIMIT_MESSAGE = "You've reached the swipe limit for this trip. Upgrade to Pro to see more places."
PRO_LIMIT_MESSAGE = (
    "You've reached the swipe limit for this trip. "
    "Try saving your favorites or adjusting your filters."
)


def parse_swipe_command(
    place_id: Optional[str],
    action: Optional[str],
    previous_action: Optional[str] = None,
    source: Optional[str] = None,
    day_id: Optional[str] = None,
    slot: Optional[str] = None,
) -> SwipeCommand:
    """
    Validate a raw swipe request.

    Raises:
        SwipeValidationError: With the message returned to the client
    """
    if not action:
        raise SwipeValidationError("Missing action")
    if action not in {a.value for a in SwipeAction}:
        raise SwipeValidationError('Invalid action. Must be "like", "dislike", or "undo"')

    if action == SwipeAction.UNDO.value:
        if not place_id or not previous_action:
            raise SwipeValidationError("Missing place_id or previous_action for undo")
        if previous_action not in (SwipeAction.LIKE.value, SwipeAction.DISLIKE.value):
            raise SwipeValidationError('Invalid previous_action. Must be "like" or "dislike"')
    elif not place_id:
        raise SwipeValidationError("Missing place_id")

    swipe_source = source or SwipeSource.TRIP.value
    if swipe_source not in {s.value for s in SwipeSource}:
        raise SwipeValidationError('Invalid source. Must be "trip" or "day"')
    if swipe_source == SwipeSource.DAY.value and not day_id:
        raise SwipeValidationError("Missing day_id for day-level swipe")

    if slot is not None and slot not in {t.value for t in TimeOfDay}:
        raise SwipeValidationError("Invalid slot (must be morning, afternoon, or evening)")

    return SwipeCommand(
        place_id=place_id,
        action=SwipeAction(action),
        previous_action=SwipeAction(previous_action) if previous_action else None,
        source=SwipeSource(swipe_source),
        day_id=day_id,
        slot=TimeOfDay(slot) if slot else None,
    )


def itinerary_activities(days: Optional[list[dict[str, Any]]]) -> list[ScheduledActivity]:
    """Flatten stored itinerary days into scheduled activities."""
    activities = []
    for day in days or []:
        for slot in day.get("slots") or []:
            label = (slot.get("label") or "").lower()
            slot_value = TimeOfDay(label) if label in {t.value for t in TimeOfDay} else None
            for place in slot.get("places") or []:
                activities.append(ScheduledActivity(
                    place=ActivityPlace(
                        id=place.get("id"),
                        name=place.get("name"),
                        # Itinerary places store the Google place_id as their id
                        external_id=place.get("external_id") or place.get("id"),
                        address=place.get("address"),
                        area=place.get("area") or place.get("neighborhood"),
                        lat=place.get("lat"),
                        lng=place.get("lng"),
                    ),
                    day_id=day.get("id"),
                    slot=slot_value,
                ))
    return activities


def day_area(day: dict[str, Any]) -> Optional[str]:
    """Area of a day: its first planned place's area, else the day's area cluster."""
    slots = day.get("slots") or []
    first_places = (slots[0].get("places") or []) if slots else []
    if first_places:
        first = first_places[0]
        area = first.get("area") or first.get("neighborhood")
        if area:
            return area
    return day.get("area_cluster")


class ExploreSessionService:
    """Service for explore sessions and the explore places query."""

    def __init__(self, db: AsyncSession, places_provider: Optional[GooglePlacesExploreProvider] = None):
        self.db = db
        self.places_provider = places_provider or GooglePlacesExploreProvider()

    # MARK: - Sessions

    async def read_session(self, trip_id: UUID, user_id: str, segment_id: Optional[str] = None) -> ExploreSession:
        """Session snapshot; the row is created on first access."""
        trip = await self._load_trip(trip_id, user_id)
        model = await self._find_session(trip_id, user_id, segment_id)
        if model is None:
            model = ExploreSessionModel(
                trip_id=trip_id,
                user_id=user_id,
                trip_segment_id=segment_id,
                liked_place_ids=[],
                discarded_place_ids=[],
                swipe_count=0,
            )
            self.db.add(model)
            await self.db.commit()
            logger.info(f"Explore session created: trip={trip_id}, segment={segment_id}")
        return self._to_domain(model, self.swipe_limit(trip))

    async def reset_session(self, trip_id: UUID, user_id: str, segment_id: Optional[str] = None) -> None:
        """Clear liked/discarded lists and the swipe count. Missing session is not an error."""
        await self._load_trip(trip_id, user_id)
        model = await self._find_session(trip_id, user_id, segment_id)
        if model is None:
            return
        model.liked_place_ids = []
        model.discarded_place_ids = []
        model.swipe_count = 0
        model.updated_at = datetime.utcnow()
        await self.db.commit()
        logger.info(f"🧹 Explore session reset: trip={trip_id}, segment={segment_id}")

    async def record_swipe(
        self,
        trip_id: UUID,
        user_id: str,
        command: SwipeCommand,
        segment_id: Optional[str] = None,
    ) -> SwipeConfirmation:
        """
        Record a like, dislike or undo.

        Logical refusals (limit reached, already swiped, nothing to undo) come
        back as success=False; only missing trips/permissions raise.
        """
        trip = await self._load_trip(trip_id, user_id)
        limit = self.swipe_limit(trip)
        model = await self._find_session(trip_id, user_id, segment_id)
        swipe_count = model.swipe_count if model else 0

        if command.action == SwipeAction.UNDO:
            return await self._undo(model, command, limit)

        if limit is not None and swipe_count >= limit:
            logger.info(f"🚫 Swipe limit reached: trip={trip_id}, segment={segment_id}, count={swipe_count}")
            return self._refusal(
                model, limit, PRO_LIMIT_MESSAGE if trip.is_pro else FREE_LIMIT_MESSAGE, limit_reached=True
            )

        liked = list(model.liked_place_ids) if model else []
        discarded = list(model.discarded_place_ids) if model else []
        if command.place_id in liked or command.place_id in discarded:
            return self._refusal(model, limit, "Place already swiped")

        if command.action == SwipeAction.LIKE:
            liked.append(command.place_id)
        else:
            discarded.append(command.place_id)

        if model is None:
            model = ExploreSessionModel(trip_id=trip_id, user_id=user_id, trip_segment_id=segment_id)
            self.db.add(model)
        model.liked_place_ids = liked
        model.discarded_place_ids = discarded
        model.swipe_count = swipe_count + 1
        model.last_swipe_at = datetime.utcnow()
        await self.db.commit()

        session = self._to_domain(model, limit)
        logger.info(
            f"Swipe recorded: trip={trip_id}, place={command.place_id}, "
            f"action={command.action.value}, source={command.source.value}, count={model.swipe_count}"
        )
        return SwipeConfirmation(
            success=True,
            swipe_count=session.swipe_count,
            remaining_swipes=session.remaining_swipes,
            limit_reached=limit is not None and session.swipe_count >= limit,
            session=session,
        )

    async def clear_liked_places_after_regeneration(
        self,
        trip_id: UUID,
        user_id: str,
        segment_id: Optional[str] = None,
    ) -> int:
        """
        Move liked places into discarded once they were used for a regenerated
        itinerary, so the deck does not offer them again.

        Returns:
            Number of places moved
        """
        await self._load_trip(trip_id, user_id)
        model = await self._find_session(trip_id, user_id, segment_id)
        if model is None or not model.liked_place_ids:
            return 0

        liked = list(model.liked_place_ids)
        model.discarded_place_ids = list(model.discarded_place_ids) + liked
        model.liked_place_ids = []
        model.updated_at = datetime.utcnow()
        await self.db.commit()
        logger.info(f"Moved {len(liked)} liked places to discarded after regeneration: trip={trip_id}")
        return len(liked)

    # MARK: - Itinerary

    async def list_activities(
        self,
        trip_id: UUID,
        user_id: str,
        segment_id: Optional[str] = None,
    ) -> list[ScheduledActivity]:
        await self._load_trip(trip_id, user_id)
        itinerary = await self._find_itinerary(trip_id, segment_id)
        return itinerary_activities(itinerary.days if itinerary else None)

    # MARK: - Places

    async def explore_places(
        self,
        trip_id: UUID,
        user_id: str,
        filters: ExploreFilters,
        segment_id: Optional[str] = None,
        day_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> CandidatePage:
        """
        One page of explore candidates.

        Raises:
            ValueError: Trip not found
            PermissionError: Trip belongs to another user
            UpstreamDataError: The places provider failed
        """
        trip = await self._load_trip(trip_id, user_id)
        limit = limit or settings.explore_page_size

        session = await self._find_session(trip_id, user_id, segment_id)
        itinerary = await self._find_itinerary(trip_id, segment_id)
        activities = itinerary_activities(itinerary.days if itinerary else None)
        index = build_itinerary_index(activities)

        excluded: list[str] = []
        if session is not None:
            excluded += list(session.liked_place_ids) + list(session.discarded_place_ids)
        if not filters.include_itinerary_places:
            excluded += sorted(index.ids)
        excluded += filters.exclude_place_ids

        neighborhood = filters.neighborhood
        if day_id and not neighborhood and itinerary is not None:
            day = next((d for d in itinerary.days or [] if d.get("id") == day_id), None)
            if day is not None:
                neighborhood = day_area(day)

        # Budget and distance are Pro filters; ignored for free trips
        effective = filters.model_copy(update={
            "neighborhood": neighborhood,
            "exclude_place_ids": list(dict.fromkeys(excluded)),
            "budget": filters.budget if trip.is_pro else None,
            "max_distance": filters.max_distance if trip.is_pro else None,
        })
        if not trip.is_pro and (filters.budget is not None or filters.max_distance is not None):
            logger.info(f"Ignoring Pro-only filters for free trip {trip_id}")

        destination = ExploreDestination(
            name=trip.city or trip.title,
            center_lat=trip.city_center_lat,
            center_lng=trip.city_center_lon,
        )
        candidates = await self.places_provider.search_places(destination, effective)
        deck = build_deck(candidates, index, include_already_planned=effective.include_itinerary_places)

        total = len(deck)
        page = deck[offset:offset + limit]
        return CandidatePage(places=page, total_count=total, has_more=offset + limit < total)

    # MARK: - Helpers

    @staticmethod
    def swipe_limit(trip: TripModel) -> Optional[int]:
        if trip.is_pro:
            return settings.pro_swipe_limit_per_trip
        return settings.free_swipe_limit_per_trip

    async def _undo(
        self,
        model: Optional[ExploreSessionModel],
        command: SwipeCommand,
        limit: Optional[int],
    ) -> SwipeConfirmation:
        if model is None:
            return self._refusal(None, limit, "No session found")

        liked = list(model.liked_place_ids)
        discarded = list(model.discarded_place_ids)
        target = liked if command.previous_action == SwipeAction.LIKE else discarded
        if command.place_id not in target:
            return self._refusal(model, limit, "Place not found in session or cannot be undone")

        target.remove(command.place_id)
        model.liked_place_ids = liked
        model.discarded_place_ids = discarded
        # Undo gives the swipe back
        model.swipe_count = max(0, model.swipe_count - 1)
        await self.db.commit()

        session = self._to_domain(model, limit)
        logger.info(f"↩️ Swipe undone: place={command.place_id}, count={model.swipe_count}")
        return SwipeConfirmation(
            success=True,
            swipe_count=session.swipe_count,
            remaining_swipes=session.remaining_swipes,
            limit_reached=False,
            undone_place_id=command.place_id,
            session=session,
        )

    def _refusal(
        self,
        model: Optional[ExploreSessionModel],
        limit: Optional[int],
        error: str,
        limit_reached: bool = False,
    ) -> SwipeConfirmation:
        session = self._to_domain(model, limit) if model else ExploreSession(
            remaining_swipes=limit, daily_limit=limit,
        )
        return SwipeConfirmation(
            success=False,
            swipe_count=session.swipe_count,
            remaining_swipes=0 if limit_reached else session.remaining_swipes,
            limit_reached=limit_reached,
            error=error,
            session=session,
        )

    @staticmethod
    def _to_domain(model: ExploreSessionModel, limit: Optional[int]) -> ExploreSession:
        swipe_count = model.swipe_count or 0
        return ExploreSession(
            liked_places=list(model.liked_place_ids or []),
            discarded_places=list(model.discarded_place_ids or []),
            swipe_count=swipe_count,
            remaining_swipes=None if limit is None else max(0, limit - swipe_count),
            daily_limit=limit,
        )

    async def _load_trip(self, trip_id: UUID, user_id: str) -> TripModel:
        """Load trip and verify ownership."""
        result = await self.db.execute(select(TripModel).where(TripModel.id == trip_id))
        trip = result.scalar_one_or_none()

        if not trip:
            raise ValueError(f"Trip {trip_id} not found")
        if trip.user_id != user_id:
            raise PermissionError("Access denied")
        return trip

    async def _find_session(
        self,
        trip_id: UUID,
        user_id: str,
        segment_id: Optional[str],
    ) -> Optional[ExploreSessionModel]:
        query = select(ExploreSessionModel).where(
            ExploreSessionModel.trip_id == trip_id,
            ExploreSessionModel.user_id == user_id,
        )
        if segment_id is None:
            query = query.where(ExploreSessionModel.trip_segment_id.is_(None))
        else:
            query = query.where(ExploreSessionModel.trip_segment_id == segment_id)
        result = await self.db.execute(query)
        return result.scalars().first()

    async def _find_itinerary(self, trip_id: UUID, segment_id: Optional[str]) -> Optional[ItineraryModel]:
        query = select(ItineraryModel).where(ItineraryModel.trip_id == trip_id)
        if segment_id is None:
            query = query.where(ItineraryModel.trip_segment_id.is_(None))
        else:
            query = query.where(ItineraryModel.trip_segment_id == segment_id)
        result = await self.db.execute(query)
        return result.scalars().first()
