"""
Mode adapters layered on the swipe engine.

Trip and day decks advance on every like/dislike and build up a liked list;
replace mode keeps the card in place on a right-swipe and designates it as
the single replacement for one planned activity.
"""
import logging
from abc import ABC
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from explore_swipe.application.place_keys import place_identity
from explore_swipe.domain.errors import UpstreamDataError
from explore_swipe.domain.models import (
    CandidatePlace,
    ExploreFilters,
    ExploreMode,
    NotificationLevel,
    SwipeAction,
    SwipeDirection,
    SwipeSource,
    TimeOfDay,
)

if TYPE_CHECKING:
    from explore_swipe.application.swipe_session import ExploreSwipeEngine, ScopeState, SwipeRecord


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwipePlan:
    """What a gesture means in the current mode."""
    action: Optional[SwipeAction] = None
    advance: bool = False
    details_only: bool = False
    rejected_code: Optional[str] = None
    rejected_message: str = ""

    @property
    def is_rejected(self) -> bool:
        return self.rejected_code is not None


DETAILS_PLAN = SwipePlan(details_only=True)


class ModeAdapter(ABC):
    """Base policy: like/dislike advance the deck, up only shows details."""

    mode: ExploreMode = ExploreMode.TRIP
    source: SwipeSource = SwipeSource.TRIP
    day_id: Optional[str] = None

    def effective_filters(self, filters: ExploreFilters) -> ExploreFilters:
        return filters

    def command_context(self) -> dict[str, Any]:
        """Extra fields sent with every swipe command."""
        return {"source": self.source}

    def plan(self, state: "ScopeState", candidate: CandidatePlace, direction: SwipeDirection) -> SwipePlan:
        if direction == SwipeDirection.UP:
            return DETAILS_PLAN
        if direction == SwipeDirection.RIGHT:
            return SwipePlan(action=SwipeAction.LIKE, advance=True)
        return SwipePlan(action=SwipeAction.DISLIKE, advance=True)

    async def after_commit(
        self,
        engine: "ExploreSwipeEngine",
        state: "ScopeState",
        candidate: CandidatePlace,
        action: SwipeAction,
    ) -> None:
        """Side effects once a swipe is confirmed."""
        return None

    def after_undo(self, state: "ScopeState", record: "SwipeRecord") -> None:
        return None


class TripModeAdapter(ModeAdapter):
    """Trip-wide deck: liked places are committed later in bulk."""

    mode = ExploreMode.TRIP
    source = SwipeSource.TRIP


class DayModeAdapter(ModeAdapter):
    """
    Single-day deck.

    Narrows the search to the day's area and slot, and commits every
    confirmed like to the day straight away.
    """

    mode = ExploreMode.DAY
    source = SwipeSource.DAY

    def __init__(self, day_id: str, slot: TimeOfDay, area_cluster: Optional[str] = None):
        self.day_id = day_id
        self.slot = slot
        self.area_cluster = area_cluster

    def effective_filters(self, filters: ExploreFilters) -> ExploreFilters:
        return filters.model_copy(update={
            "neighborhood": self.area_cluster or filters.neighborhood,
            "time_of_day": self.slot or filters.time_of_day,
        })

    def command_context(self) -> dict[str, Any]:
        return {"source": self.source, "day_id": self.day_id, "slot": self.slot}

    async def after_commit(
        self,
        engine: "ExploreSwipeEngine",
        state: "ScopeState",
        candidate: CandidatePlace,
        action: SwipeAction,
    ) -> None:
        if action != SwipeAction.LIKE:
            return
        if not candidate.place_id:
            engine.notify(
                NotificationLevel.INFO,
                "explore_day_commit_skipped",
                f"{candidate.name} was liked but cannot be added to the day without a place ID",
                scope=state.scope,
            )
            return

        try:
            result = await engine.itinerary.add_places_to_day(
                state.scope, self.day_id, self.slot, [candidate.place_id]
            )
        except UpstreamDataError as e:
            logger.warning(f"Day commit failed for {candidate.place_id}: {e}")
            engine.notify(
                NotificationLevel.ERROR,
                "explore_day_commit_failed",
                f"Could not add {candidate.name} to your day. Please try again.",
                scope=state.scope,
                place_id=candidate.place_id,
            )
            return

        if result.added_count > 0:
            engine.notify(
                NotificationLevel.SUCCESS,
                "explore_added_to_day",
                f"{candidate.name} added to {self.slot.value}",
                scope=state.scope,
                place_id=candidate.place_id,
            )


@dataclass(frozen=True)
class ReplaceTarget:
    """The planned activity a replacement is being picked for."""
    day_id: str
    block_index: int
    place_id: Optional[str] = None
    name: Optional[str] = None


class ReplaceModeAdapter(ModeAdapter):
    """
    Replace mode: a right-swipe picks the replacement instead of advancing.

    The pick still records a like against the session budget. Places that
    are already planned cannot be picked.
    """

    mode = ExploreMode.REPLACE
    source = SwipeSource.TRIP

    def __init__(self, target: Optional[ReplaceTarget] = None):
        self.target = target

    def plan(self, state: "ScopeState", candidate: CandidatePlace, direction: SwipeDirection) -> SwipePlan:
        if direction != SwipeDirection.RIGHT:
            return super().plan(state, candidate, direction)
        if state.index.contains(candidate):
            return SwipePlan(
                rejected_code="explore_replace_already_planned",
                rejected_message=f"{candidate.name} is already in your itinerary",
            )
        return SwipePlan(action=SwipeAction.LIKE, advance=False)

    async def after_commit(
        self,
        engine: "ExploreSwipeEngine",
        state: "ScopeState",
        candidate: CandidatePlace,
        action: SwipeAction,
    ) -> None:
        if action == SwipeAction.LIKE:
            state.replacement = candidate
            logger.info(f"🔄 Replacement selected for scope {state.scope}: {candidate.name}")

    def after_undo(self, state: "ScopeState", record: "SwipeRecord") -> None:
        if state.replacement is not None and record.action == SwipeAction.LIKE:
            if place_identity(state.replacement) == record.place_id:
                state.replacement = None

    def set_target(self, state: "ScopeState", target: Optional[ReplaceTarget]) -> None:
        """Point at a new activity; a changed target drops the previous pick."""
        if target != self.target:
            state.replacement = None
        self.target = target

    def clear_target(self, state: "ScopeState") -> None:
        self.target = None
        state.replacement = None
