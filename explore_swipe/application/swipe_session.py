"""
Swipe Session engine - deck cursor, session budget and undo history per scope.

Handles:
1. Building the deck for the active scope from candidates, itinerary and session
2. Optimistic swipes confirmed through the session store, with rollback
3. Single-flight: one pending swipe/undo per scope, extra requests are dropped
4. A bounded undo log of the most recent confirmed swipes

The engine runs on one event loop. The only suspension points inside a
swipe or undo are the session store confirmation calls; deck building and
cursor arithmetic are synchronous.
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from explore_swipe.application.collaborators import (
    CandidateSource,
    ItineraryCollaborator,
    LoggingNotifier,
    Notifier,
    SessionStore,
    UpgradePrompt,
)
from explore_swipe.application.deck_builder import Deck, build_deck
from explore_swipe.application.explore_modes import ModeAdapter, SwipePlan, TripModeAdapter
from explore_swipe.application.itinerary_index import ItineraryIndex, build_itinerary_index
from explore_swipe.application.paywall_gate import PaywallGate
from explore_swipe.application.place_keys import place_identity
from explore_swipe.config import settings
from explore_swipe.domain.errors import ConfirmationError, UpstreamDataError
from explore_swipe.domain.models import (
    BulkAddResult,
    CandidatePlace,
    ExploreFilters,
    ExploreSession,
    NotificationEvent,
    NotificationLevel,
    ScopeKey,
    SwipeAction,
    SwipeCommand,
    SwipeConfirmation,
    SwipeDirection,
    TimeOfDay,
)


logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    """Per-scope swipe state."""
    IDLE = "idle"
    PENDING = "pending"


class SwipeOutcome(str, Enum):
    """How a swipe/undo request ended."""
    COMMITTED = "committed"
    UNDONE = "undone"
    ROLLED_BACK = "rolled_back"
    BUDGET_EXHAUSTED = "budget_exhausted"
    REJECTED = "rejected"
    IGNORED = "ignored"
    DETAILS = "details"
    STALE = "stale"


@dataclass(frozen=True)
class SwipeRecord:
    """A confirmed swipe that can still be undone."""
    place_id: str
    action: SwipeAction
    timestamp: datetime


@dataclass
class SwipeResult:
    outcome: SwipeOutcome
    place: Optional[CandidatePlace] = None
    confirmation: Optional[SwipeConfirmation] = None


@dataclass
class ScopeState:
    """Everything the engine tracks for one (trip, segment) scope."""
    scope: ScopeKey
    adapter: ModeAdapter
    undo_log: deque
    filters: ExploreFilters = field(default_factory=ExploreFilters)
    deck: Deck = field(default_factory=Deck)
    session: ExploreSession = field(default_factory=ExploreSession.empty)
    index: ItineraryIndex = field(default_factory=ItineraryIndex.empty)
    candidates: tuple[CandidatePlace, ...] = ()
    has_more: bool = False
    phase: SessionPhase = SessionPhase.IDLE
    replacement: Optional[CandidatePlace] = None
    # Set when a rebuild was requested while a swipe/undo was pending
    deck_outdated: bool = False

    @property
    def is_pending(self) -> bool:
        return self.phase == SessionPhase.PENDING

    @property
    def is_empty(self) -> bool:
        return self.deck.is_empty

    @property
    def current(self) -> Optional[CandidatePlace]:
        return self.deck.current

    @property
    def undo_history(self) -> list[SwipeRecord]:
        """Undo log, most recent first."""
        return list(reversed(self.undo_log))


class ExploreSwipeEngine:
    """
    Session state machine shared by the trip, day and replace decks.

    Each scope is either idle or has exactly one swipe/undo in flight.
    Confirmation failures roll the deck and session back to their last
    confirmed values and are reported once through the notifier; the engine
    never raises out of swipe() or undo() for them.
    """

    def __init__(
        self,
        candidate_source: CandidateSource,
        itinerary: ItineraryCollaborator,
        session_store: SessionStore,
        upgrade_prompt: UpgradePrompt,
        notifier: Optional[Notifier] = None,
        undo_history_size: Optional[int] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.candidate_source = candidate_source
        self.itinerary = itinerary
        self.session_store = session_store
        self.notifier = notifier or LoggingNotifier()
        self.gate = PaywallGate(upgrade_prompt)
        self.undo_history_size = undo_history_size or settings.undo_history_size
        self.clock = clock
        self._states: dict[ScopeKey, ScopeState] = {}
        self._active: Optional[ScopeKey] = None

    # MARK: - Scopes

    @property
    def active_scope(self) -> Optional[ScopeKey]:
        return self._active

    def state(self, scope: Optional[ScopeKey] = None) -> ScopeState:
        """State for a scope (the active one by default), created on first access."""
        scope = scope or self._active
        if scope is None:
            raise LookupError("No active explore scope")
        state = self._states.get(scope)
        if state is None:
            state = ScopeState(
                scope=scope,
                adapter=TripModeAdapter(),
                undo_log=deque(maxlen=self.undo_history_size),
            )
            self._states[scope] = state
        return state

    async def activate(
        self,
        scope: ScopeKey,
        adapter: Optional[ModeAdapter] = None,
        filters: Optional[ExploreFilters] = None,
    ) -> ScopeState:
        """Make `scope` the active one and load its session, itinerary and deck."""
        state = self.state(scope)
        if adapter is not None:
            state.adapter = adapter
        if filters is not None:
            state.filters = filters
        self._active = scope
        logger.info(f"Explore scope activated: {scope} (mode={state.adapter.mode.value})")
        await self.refresh(scope)
        return state

    def deactivate(self) -> None:
        """Leave the active scope; results still in flight for it are ignored."""
        self._active = None

    def is_active(self, scope: ScopeKey) -> bool:
        return self._active == scope

    # MARK: - Loading

    async def refresh(self, scope: Optional[ScopeKey] = None) -> ScopeState:
        """
        Reload session, itinerary and candidates for a scope.

        Upstream failures fall back to an empty session/index/deck and are
        reported once.
        """
        state = self.state(scope)
        failures: list[str] = []

        session = state.session
        try:
            session = await self.session_store.read_session(state.scope)
        except UpstreamDataError as e:
            logger.warning(f"Session read failed for {state.scope}: {e}")
            failures.append("session")
            session = ExploreSession.empty()

        try:
            activities = await self.itinerary.list_activities(state.scope)
            index = build_itinerary_index(activities)
        except UpstreamDataError as e:
            logger.warning(f"Itinerary read failed for {state.scope}: {e}")
            failures.append("itinerary")
            index = ItineraryIndex.empty()

        query_filters = self._query_filters(state, session)
        try:
            page = await self.candidate_source.fetch_candidates(
                state.scope, query_filters, day_id=state.adapter.day_id
            )
            candidates = tuple(page.places)
            has_more = page.has_more
        except UpstreamDataError as e:
            logger.warning(f"Candidate fetch failed for {state.scope}: {e}")
            failures.append("places")
            candidates = ()
            has_more = False

        # A swipe in flight owns the session until it resolves
        if not state.is_pending:
            state.session = session
        state.index = index
        state.has_more = has_more
        self.rebuild_deck(candidates, state.scope)

        if failures:
            self.notify(
                NotificationLevel.ERROR,
                "explore_load_failed",
                "Error loading places. Please try again.",
                scope=state.scope,
            )
        return state

    async def set_filters(self, filters: ExploreFilters, scope: Optional[ScopeKey] = None) -> ScopeState:
        state = self.state(scope)
        state.filters = filters
        return await self.refresh(state.scope)

    def set_itinerary(self, activities, scope: Optional[ScopeKey] = None) -> ScopeState:
        """Rebuild the itinerary index after the scheduled activities changed."""
        state = self.state(scope)
        state.index = build_itinerary_index(activities)
        return self.rebuild_deck(state.candidates, state.scope)

    def rebuild_deck(self, candidates, scope: Optional[ScopeKey] = None) -> ScopeState:
        """
        Replace the deck contents; the cursor is re-clamped into range.

        While a swipe or undo is pending the deck belongs to it, so the
        rebuild runs once that request has resolved.
        """
        state = self.state(scope)
        state.candidates = tuple(candidates)
        if state.is_pending:
            state.deck_outdated = True
            return state
        self._build_deck(state)
        return state

    def _build_deck(self, state: ScopeState) -> None:
        swiped = set(state.session.liked_places) | set(state.session.discarded_places)
        # The replacement pick stays on screen although it is liked
        if state.replacement is not None:
            swiped.discard(place_identity(state.replacement))
        places = build_deck(
            state.candidates,
            state.index,
            include_already_planned=state.filters.include_itinerary_places,
            swiped_ids=swiped,
        )
        state.deck = state.deck.rebuilt(places)
        state.deck_outdated = False

    def _rebuild_if_outdated(self, state: ScopeState) -> None:
        if state.deck_outdated and not state.is_pending:
            self._build_deck(state)

    def _query_filters(self, state: ScopeState, session: ExploreSession) -> ExploreFilters:
        filters = state.adapter.effective_filters(state.filters)
        excluded = list(dict.fromkeys(
            list(filters.exclude_place_ids) + session.liked_places + session.discarded_places
        ))
        return filters.model_copy(update={"exclude_place_ids": excluded})

    # MARK: - Swipes

    async def swipe(self, direction: SwipeDirection, scope: Optional[ScopeKey] = None) -> SwipeResult:
        """
        Swipe the card under the cursor.

        Returns the outcome; never raises for confirmation failures.
        """
        state = self.state(scope)
        if state.is_pending:
            logger.debug(f"Swipe ignored for {state.scope}: another swipe is pending")
            return SwipeResult(SwipeOutcome.IGNORED)

        candidate = state.deck.current
        if candidate is None:
            return SwipeResult(SwipeOutcome.REJECTED)

        plan = state.adapter.plan(state, candidate, direction)
        if plan.details_only:
            return SwipeResult(SwipeOutcome.DETAILS, place=candidate)
        return await self._run_swipe(state, candidate, plan)

    async def like_from_details(self, place_id: str, scope: Optional[ScopeKey] = None) -> SwipeResult:
        """Like a deck place from its details view, without a gesture."""
        state = self.state(scope)
        if state.is_pending:
            return SwipeResult(SwipeOutcome.IGNORED)

        candidate = state.deck.find(place_id)
        if candidate is None:
            return SwipeResult(SwipeOutcome.REJECTED)

        plan = state.adapter.plan(state, candidate, SwipeDirection.RIGHT)
        return await self._run_swipe(state, candidate, plan)

    async def _run_swipe(self, state: ScopeState, candidate: CandidatePlace, plan: SwipePlan) -> SwipeResult:
        if plan.is_rejected:
            self.notify(
                NotificationLevel.INFO,
                plan.rejected_code,
                plan.rejected_message,
                scope=state.scope,
                place_id=candidate.place_id,
            )
            return SwipeResult(SwipeOutcome.REJECTED, place=candidate)

        identity = place_identity(candidate)
        if identity is None:
            return SwipeResult(SwipeOutcome.REJECTED, place=candidate)

        command = SwipeCommand(place_id=identity, action=plan.action, **state.adapter.command_context())
        previous_deck = state.deck
        previous_session = state.session

        # Optimistic update
        if plan.advance:
            state.deck = state.deck.without(candidate)
        state.session = state.session.with_swipe(identity, plan.action)
        state.phase = SessionPhase.PENDING

        error: Optional[ConfirmationError] = None
        try:
            confirmation = await self.session_store.confirm(state.scope, command)
        except ConfirmationError as e:
            confirmation = None
            error = e
        except Exception:
            state.phase = SessionPhase.IDLE
            state.deck = previous_deck
            state.session = previous_session
            self._rebuild_if_outdated(state)
            raise
        finally:
            state.phase = SessionPhase.IDLE

        try:
            result = self._resolve_swipe(
                state, candidate, plan, identity, previous_deck, previous_session, confirmation, error,
            )
            if result.outcome == SwipeOutcome.COMMITTED:
                await state.adapter.after_commit(self, state, candidate, plan.action)
        finally:
            self._rebuild_if_outdated(state)
        return result

    def _resolve_swipe(
        self,
        state: ScopeState,
        candidate: CandidatePlace,
        plan: SwipePlan,
        identity: str,
        previous_deck: Deck,
        previous_session: ExploreSession,
        confirmation: Optional[SwipeConfirmation],
        error: Optional[ConfirmationError],
    ) -> SwipeResult:
        if not self.is_active(state.scope):
            return self._drop_stale(state, previous_deck, previous_session, candidate)

        if confirmation is None:
            state.deck = previous_deck
            state.session = previous_session
            logger.warning(f"Swipe confirmation failed for {state.scope}: {error}")
            self.notify(
                NotificationLevel.ERROR,
                "explore_swipe_failed",
                "Failed to record swipe. Please try again.",
                scope=state.scope,
                place_id=identity,
            )
            return SwipeResult(SwipeOutcome.ROLLED_BACK, place=candidate)

        if self.gate.is_exhausted(confirmation):
            self.gate.apply(state, previous_deck, previous_session, confirmation)
            return SwipeResult(SwipeOutcome.BUDGET_EXHAUSTED, place=candidate, confirmation=confirmation)

        if not confirmation.success:
            state.deck = previous_deck
            state.session = previous_session
            logger.warning(f"Swipe refused for {state.scope}: {confirmation.error}")
            self.notify(
                NotificationLevel.ERROR,
                "explore_swipe_failed",
                confirmation.error or "Failed to record swipe. Please try again.",
                scope=state.scope,
                place_id=identity,
            )
            return SwipeResult(SwipeOutcome.ROLLED_BACK, place=candidate, confirmation=confirmation)

        state.undo_log.append(SwipeRecord(place_id=identity, action=plan.action, timestamp=self.clock()))
        state.session = self._confirmed_session(state.session, confirmation)
        logger.info(f"✅ Swipe committed: scope={state.scope}, place={identity}, action={plan.action.value}")
        return SwipeResult(SwipeOutcome.COMMITTED, place=candidate, confirmation=confirmation)

    async def undo(self, scope: Optional[ScopeKey] = None) -> SwipeResult:
        """
        Undo the most recent confirmed swipe.

        Only the session accounting is reversed: the card is not put back into
        the deck and the cursor does not move.
        """
        state = self.state(scope)
        if state.is_pending or not state.undo_log:
            return SwipeResult(SwipeOutcome.IGNORED)

        record = state.undo_log[-1]
        command = SwipeCommand(
            place_id=record.place_id,
            action=SwipeAction.UNDO,
            previous_action=record.action,
            **state.adapter.command_context(),
        )
        previous_session = state.session
        state.session = state.session.without_swipe(record.place_id, record.action)
        state.phase = SessionPhase.PENDING

        error = None
        try:
            confirmation = await self.session_store.confirm(state.scope, command)
        except ConfirmationError as e:
            confirmation = None
            error = str(e)
        except Exception:
            state.phase = SessionPhase.IDLE
            state.session = previous_session
            self._rebuild_if_outdated(state)
            raise
        finally:
            state.phase = SessionPhase.IDLE

        try:
            return self._resolve_undo(state, record, previous_session, confirmation, error)
        finally:
            self._rebuild_if_outdated(state)

    def _resolve_undo(
        self,
        state: ScopeState,
        record: SwipeRecord,
        previous_session: ExploreSession,
        confirmation: Optional[SwipeConfirmation],
        error: Optional[str],
    ) -> SwipeResult:
        if not self.is_active(state.scope):
            state.session = previous_session
            return SwipeResult(SwipeOutcome.STALE)

        if confirmation is None or not confirmation.success:
            state.session = previous_session
            if confirmation is not None:
                error = confirmation.error
            logger.warning(f"Undo failed for {state.scope}: {error}")
            self.notify(
                NotificationLevel.ERROR,
                "explore_undo_failed",
                "Failed to undo swipe. Please try again.",
                scope=state.scope,
                place_id=record.place_id,
            )
            return SwipeResult(SwipeOutcome.ROLLED_BACK, confirmation=confirmation)

        state.undo_log.pop()
        state.session = self._confirmed_session(state.session, confirmation)
        state.adapter.after_undo(state, record)
        logger.info(f"↩️ Swipe undone: scope={state.scope}, place={record.place_id}")
        return SwipeResult(SwipeOutcome.UNDONE, confirmation=confirmation)

    async def add_liked_to_itinerary(
        self,
        day_id: str,
        slot: TimeOfDay,
        scope: Optional[ScopeKey] = None,
    ) -> Optional[BulkAddResult]:
        """Bulk-add the liked places of a scope to one day/slot."""
        state = self.state(scope)
        liked = list(state.session.liked_places)
        if not liked:
            return None

        try:
            result = await self.itinerary.add_places_to_day(state.scope, day_id, slot, liked)
        except UpstreamDataError as e:
            logger.warning(f"Bulk add failed for {state.scope}: {e}")
            self.notify(
                NotificationLevel.ERROR,
                "explore_bulk_add_failed",
                "Failed to add places to day.",
                scope=state.scope,
            )
            return None

        if result.added_count > 0:
            plural = "s" if result.added_count != 1 else ""
            self.notify(
                NotificationLevel.SUCCESS,
                "explore_places_added",
                f"{result.added_count} place{plural} added to {slot.value}",
                scope=state.scope,
            )
        return result

    # MARK: - Helpers

    def notify(
        self,
        level: NotificationLevel,
        code: str,
        message: str,
        scope: Optional[ScopeKey] = None,
        place_id: Optional[str] = None,
    ) -> None:
        self.notifier.notify(NotificationEvent(
            level=level, code=code, message=message, scope=scope, place_id=place_id,
        ))

    @staticmethod
    def _confirmed_session(optimistic: ExploreSession, confirmation: SwipeConfirmation) -> ExploreSession:
        if confirmation.session is not None:
            return confirmation.session
        return optimistic.model_copy(update={
            "swipe_count": confirmation.swipe_count,
            "remaining_swipes": confirmation.remaining_swipes,
        })

    def _drop_stale(
        self,
        state: ScopeState,
        previous_deck: Deck,
        previous_session: ExploreSession,
        candidate: CandidatePlace,
    ) -> SwipeResult:
        # The scope reloads from the store when it is activated again
        state.deck = previous_deck
        state.session = previous_session
        logger.info(f"Ignoring swipe result for inactive scope {state.scope}")
        return SwipeResult(SwipeOutcome.STALE, place=candidate)
