"""
Deck Builder - turns raw candidates into the ordered, deduplicated deck.

Handles:
1. Excluding places already in the itinerary (by ID, or by fallback key when
   the candidate has no ID)
2. Excluding places already liked or disliked in the session
3. Collapsing candidates that resolve to the same place
4. The deck cursor and its re-clamping when the deck is rebuilt
"""
import logging
from dataclasses import dataclass
from typing import Collection, Iterable, Optional, Sequence

from explore_swipe.application.itinerary_index import ItineraryIndex
from explore_swipe.application.place_keys import candidate_fallback_key, place_identity
from explore_swipe.domain.models import CandidatePlace


logger = logging.getLogger(__name__)


def build_deck(
    candidates: Iterable[CandidatePlace],
    index: ItineraryIndex,
    include_already_planned: bool = False,
    swiped_ids: Collection[str] = (),
) -> list[CandidatePlace]:
    """
    Filter candidates into deck order.

    Stable filter: surviving candidates keep their original relative order,
    and running the result through again with the same inputs changes nothing.

    Args:
        candidates: Raw candidates in provider order
        index: Itinerary index of already planned places
        include_already_planned: Skip itinerary exclusion entirely
        swiped_ids: Session identities (ID or fallback key) already liked or disliked

    Returns:
        Deduplicated candidates (length <= input length)
    """
    seen_ids: set[str] = set()
    seen_keys: set[str] = set()
    deck: list[CandidatePlace] = []
    excluded = 0
    swiped = 0
    duplicates = 0

    for candidate in candidates:
        if not include_already_planned and index.contains(candidate):
            excluded += 1
            continue

        if swiped_ids and place_identity(candidate) in swiped_ids:
            swiped += 1
            continue

        if candidate.place_id:
            if candidate.place_id in seen_ids:
                duplicates += 1
                continue
            seen_ids.add(candidate.place_id)
        else:
            key = candidate_fallback_key(candidate)
            if key is not None:
                if key in seen_keys:
                    duplicates += 1
                    continue
                seen_keys.add(key)

        deck.append(candidate)

    if excluded or swiped or duplicates:
        logger.debug(
            f"Deck built: kept={len(deck)}, already_planned={excluded}, "
            f"already_swiped={swiped}, duplicates={duplicates}"
        )

    return deck


def clamp_cursor(cursor: Optional[int], length: int) -> Optional[int]:
    """Clamp a cursor into [0, length - 1]; None for an empty deck."""
    if length <= 0:
        return None
    return min(max(cursor or 0, 0), length - 1)


@dataclass(frozen=True)
class Deck:
    """
    Ordered candidates plus the cursor of the card on top.

    Immutable: every change returns a new Deck, so a snapshot taken before an
    optimistic swipe can be restored as-is on rollback.
    Invariant: cursor is None exactly when places is empty, otherwise
    0 <= cursor < len(places).
    """
    places: tuple[CandidatePlace, ...] = ()
    cursor: Optional[int] = None

    def __post_init__(self):
        expected = clamp_cursor(self.cursor, len(self.places))
        if self.cursor != expected:
            object.__setattr__(self, "cursor", expected)

    @property
    def is_empty(self) -> bool:
        return not self.places

    def __len__(self) -> int:
        return len(self.places)

    @property
    def current(self) -> Optional[CandidatePlace]:
        if self.cursor is None:
            return None
        return self.places[self.cursor]

    def rebuilt(self, places: Sequence[CandidatePlace]) -> "Deck":
        """New deck contents with the current cursor re-clamped into range."""
        return Deck(places=tuple(places), cursor=self.cursor)

    def without(self, place: CandidatePlace) -> "Deck":
        """
        Deck after `place` was swiped away.

        The card following the removed one takes the cursor slot; removing
        the last card moves the cursor back onto the new last card.
        """
        try:
            position = self.places.index(place)
        except ValueError:
            return self
        remaining = self.places[:position] + self.places[position + 1:]
        cursor = self.cursor
        if cursor is not None and position < cursor:
            cursor -= 1
        return Deck(places=remaining, cursor=cursor)

    def find(self, place_id: str) -> Optional[CandidatePlace]:
        for place in self.places:
            if place.place_id == place_id:
                return place
        return None
