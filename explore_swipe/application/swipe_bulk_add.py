"""
Bulk add of liked (swiped) places into one itinerary day/slot.
"""
import asyncio
import logging
from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified

from explore_swipe.application.place_keys import extract_area_city
from explore_swipe.config import settings
from explore_swipe.domain.errors import ExploreError, UpstreamDataError
from explore_swipe.domain.models import BulkAddResult, TimeOfDay
from explore_swipe.infrastructure.explore_places import (
    GooglePlacesExploreProvider,
    PlaceDetails,
    photo_proxy_url,
)
from explore_swipe.infrastructure.models import ItineraryModel, TripModel


logger = logging.getLogger(__name__)


class DayLockedError(ExploreError):
    """Day cannot be modified (past day or activity limit)."""

    def __init__(self, code: str, message: str, max_activities_per_day: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.max_activities_per_day = max_activities_per_day


def is_past_day(day_date: Optional[str], today: Optional[date] = None) -> bool:
    if not day_date:
        return False
    try:
        parsed = date.fromisoformat(str(day_date)[:10])
    except ValueError:
        return False
    return parsed < (today or date.today())


def day_activity_count(day: dict[str, Any]) -> int:
    return sum(len(slot.get("places") or []) for slot in day.get("slots") or [])


def itinerary_place_from_details(details: PlaceDetails) -> dict[str, Any]:
    """Itinerary slot entry built from Place Details."""
    area, city = extract_area_city(details.address)
    description = (
        details.editorial_summary
        or (details.types[0].replace("_", " ") if details.types else None)
        or "A great place to visit"
    )
    return {
        "id": details.place_id,
        "name": details.name,
        "description": description,
        "address": details.address,
        "area": area or city or "Unknown",
        "neighborhood": area,
        "lat": details.lat,
        "lng": details.lng,
        "photos": [photo_proxy_url(ref, max_width=800) for ref in details.photo_references[:3]],
        "visited": False,
        "tags": [t.replace("_", " ") for t in details.types[:3]],
    }


class SwipeBulkAddService:
    """Adds liked places to a day slot, skipping ones already there."""

    def __init__(
        self,
        places_provider: Optional[GooglePlacesExploreProvider] = None,
        request_delay_seconds: float = 0.1,
    ):
        self.places_provider = places_provider or GooglePlacesExploreProvider()
        self.request_delay_seconds = request_delay_seconds

    async def add_from_swipes(
        self,
        trip_id: UUID,
        user_id: str,
        day_id: str,
        slot: TimeOfDay,
        place_ids: list[str],
        db: AsyncSession,
        today: Optional[date] = None,
    ) -> tuple[BulkAddResult, list[dict[str, Any]]]:
        """
        Add places to `slot` of day `day_id`.

        Places already in the slot are skipped; places whose details cannot be
        fetched are left out without failing the request.

        Returns:
            (result counts, itinerary entries that were added)

        Raises:
            ValueError: Trip, itinerary, day or slot not found
            PermissionError: Trip belongs to another user
            DayLockedError: Past day, or the day would exceed the activity limit
        """
        logger.info(f"➕ Bulk add from swipes: trip={trip_id}, day={day_id}, slot={slot.value}, places={len(place_ids)}")

        await self._load_trip(trip_id, user_id, db)
        itinerary, day = await self._load_day(trip_id, day_id, db)

        if is_past_day(day.get("date"), today):
            raise DayLockedError("past_day_locked", "You cannot modify days that are already in the past.")

        target_slot = next(
            (s for s in day.get("slots") or [] if (s.get("label") or "").lower() == slot.value),
            None,
        )
        if target_slot is None:
            raise ValueError("Slot not found in day")

        existing_ids = {p.get("id") for p in target_slot.get("places") or []}
        unique_ids = list(dict.fromkeys(place_ids))
        to_add = [pid for pid in unique_ids if pid not in existing_ids]

        max_per_day = settings.max_activities_per_day
        if day_activity_count(day) + len(to_add) > max_per_day:
            raise DayLockedError(
                "day_activity_limit",
                f"We recommend planning no more than {max_per_day} activities per day "
                "so you have time to enjoy each place.",
                max_activities_per_day=max_per_day,
            )

        skipped = [pid for pid in unique_ids if pid in existing_ids]
        new_places: list[dict[str, Any]] = []
        for index, place_id in enumerate(to_add):
            if index > 0 and self.request_delay_seconds:
                await asyncio.sleep(self.request_delay_seconds)
            try:
                details = await self.places_provider.fetch_place_details(place_id)
            except UpstreamDataError as e:
                logger.warning(f"Skipping place {place_id}: {e}")
                continue
            new_places.append(itinerary_place_from_details(details))

        if new_places:
            target_slot["places"] = list(target_slot.get("places") or []) + new_places
            flag_modified(itinerary, "days")
            itinerary.updated_at = datetime.utcnow()
            await db.commit()

        added_ids = [p["id"] for p in new_places]
        logger.info(f"   ✅ Added {len(added_ids)}, skipped {len(skipped)}")
        return (
            BulkAddResult(added_count=len(added_ids), skipped_count=len(skipped), added_place_ids=added_ids),
            new_places,
        )

    # MARK: - Helper Methods

    async def _load_trip(self, trip_id: UUID, user_id: str, db: AsyncSession) -> TripModel:
        """Load trip and verify ownership."""
        result = await db.execute(select(TripModel).where(TripModel.id == trip_id))
        trip = result.scalar_one_or_none()

        if not trip:
            raise ValueError("Trip not found")
        if trip.user_id != user_id:
            raise PermissionError("Access denied")
        return trip

    async def _load_day(self, trip_id: UUID, day_id: str, db: AsyncSession) -> tuple[ItineraryModel, dict[str, Any]]:
        """Find the itinerary (trip-level or segment) holding `day_id`."""
        result = await db.execute(select(ItineraryModel).where(ItineraryModel.trip_id == trip_id))
        itineraries = result.scalars().all()

        if not itineraries:
            raise ValueError("No itinerary found. Please generate an itinerary first.")

        for itinerary in itineraries:
            for day in itinerary.days or []:
                if day.get("id") == day_id:
                    return itinerary, day
        raise ValueError("Day not found in itinerary")
