"""
Itinerary Index - fast lookup of places already scheduled in the itinerary.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable

from explore_swipe.application.place_keys import activity_fallback_key, candidate_fallback_key
from explore_swipe.domain.models import CandidatePlace, ScheduledActivity


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItineraryIndex:
    """External place IDs and fallback keys of every scheduled place."""
    ids: frozenset[str] = field(default_factory=frozenset)
    fallback_keys: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def empty(cls) -> "ItineraryIndex":
        return cls()

    def __len__(self) -> int:
        return len(self.ids) + len(self.fallback_keys)

    def contains(self, place: CandidatePlace) -> bool:
        """
        True if the candidate is already planned.

        An external ID is authoritative: candidates that have one are never
        matched by fallback key.
        """
        if place.place_id:
            return place.place_id in self.ids
        key = candidate_fallback_key(place)
        return key is not None and key in self.fallback_keys


def build_itinerary_index(activities: Iterable[ScheduledActivity]) -> ItineraryIndex:
    """
    Build the index from the full scheduled-activity list.

    Always rebuilt from scratch because activities can be removed as well as
    added. Activities without a place, or whose place has neither an external
    ID nor a name, are skipped.
    """
    ids: set[str] = set()
    fallback_keys: set[str] = set()
    skipped = 0

    for activity in activities:
        place = activity.place
        if place is None or (not place.external_id and not (place.name or "").strip()):
            skipped += 1
            continue

        if place.external_id:
            ids.add(place.external_id)

        key = activity_fallback_key(place)
        if key:
            fallback_keys.add(key)

    if skipped:
        logger.debug(f"Skipped {skipped} itinerary activities without place identity")

    return ItineraryIndex(ids=frozenset(ids), fallback_keys=frozenset(fallback_keys))
