"""
Boundaries the swipe engine talks through.

Concrete implementations live in infrastructure (HTTP clients against the
explore API); tests substitute in-memory fakes.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

from explore_swipe.domain.models import (
    BulkAddResult,
    CandidatePage,
    ExploreFilters,
    ExploreSession,
    NotificationEvent,
    ScheduledActivity,
    ScopeKey,
    SwipeCommand,
    SwipeConfirmation,
    TimeOfDay,
    UpgradeReason,
)


logger = logging.getLogger(__name__)


class CandidateSource(ABC):
    """Abstract source of explore candidates."""

    @abstractmethod
    async def fetch_candidates(
        self,
        scope: ScopeKey,
        filters: ExploreFilters,
        day_id: Optional[str] = None,
    ) -> CandidatePage:
        """
        Fetch candidates for a scope, already ordered by the provider.

        Raises:
            UpstreamDataError: If the candidate query fails
        """
        pass


class ItineraryCollaborator(ABC):
    """Read access to scheduled activities and the add-to-day write."""

    @abstractmethod
    async def list_activities(self, scope: ScopeKey) -> list[ScheduledActivity]:
        """
        Current scheduled activities for the scope.

        Raises:
            UpstreamDataError: If the itinerary cannot be read
        """
        pass

    @abstractmethod
    async def add_places_to_day(
        self,
        scope: ScopeKey,
        day_id: str,
        slot: TimeOfDay,
        place_ids: list[str],
    ) -> BulkAddResult:
        """
        Add places to a day/slot.

        Raises:
            UpstreamDataError: If the write fails
        """
        pass


class SessionStore(ABC):
    """Per-scope explore session persistence."""

    @abstractmethod
    async def read_session(self, scope: ScopeKey) -> ExploreSession:
        """
        Read the session snapshot for a scope.

        Raises:
            UpstreamDataError: If the session cannot be read
        """
        pass

    @abstractmethod
    async def confirm(self, scope: ScopeKey, command: SwipeCommand) -> SwipeConfirmation:
        """
        Record a swipe or undo.

        A budget-exhausted answer is returned (limit_reached=True), not raised.

        Raises:
            ConfirmationError: On network/server failure
        """
        pass


class Notifier(ABC):
    """Receives success/error/info events; presentation is up to the caller."""

    @abstractmethod
    def notify(self, event: NotificationEvent) -> None:
        pass


class UpgradePrompt(ABC):
    """Shows the upgrade prompt when the swipe budget is exhausted."""

    @abstractmethod
    def show(self, reason: UpgradeReason, scope: ScopeKey) -> None:
        pass


class LoggingNotifier(Notifier):
    """Notifier that only logs events. Default when no UI is attached."""

    def notify(self, event: NotificationEvent) -> None:
        logger.info(f"[{event.level.value}] {event.code}: {event.message}")
