"""
Paywall/Rate-Limit Gate - handles confirmations that report an exhausted swipe budget.
"""
import logging
from typing import TYPE_CHECKING

from explore_swipe.application.collaborators import UpgradePrompt
from explore_swipe.application.deck_builder import Deck
from explore_swipe.domain.models import ExploreSession, SwipeConfirmation, UpgradeReason

if TYPE_CHECKING:
    from explore_swipe.application.swipe_session import ScopeState


logger = logging.getLogger(__name__)


class PaywallGate:
    """
    Intercepts budget-exhausted confirmations.

    Exhaustion is an expected end state of a free-tier session, not an error:
    the optimistic deck move is reversed, the budget is pinned at zero, the
    upgrade prompt is shown and nothing is added to the undo log.
    """

    def __init__(self, upgrade_prompt: UpgradePrompt):
        self.upgrade_prompt = upgrade_prompt

    @staticmethod
    def is_exhausted(confirmation: SwipeConfirmation) -> bool:
        if confirmation.limit_reached:
            return True
        return confirmation.remaining_swipes is not None and confirmation.remaining_swipes <= 0

    def apply(
        self,
        state: "ScopeState",
        previous_deck: Deck,
        previous_session: ExploreSession,
        confirmation: SwipeConfirmation,
    ) -> None:
        base = confirmation.session or previous_session
        state.deck = previous_deck
        state.session = base.model_copy(update={
            "remaining_swipes": 0,
            "swipe_count": max(base.swipe_count, confirmation.swipe_count),
        })

        logger.info(f"🚫 Swipe budget exhausted for scope {state.scope} (swipe_count={state.session.swipe_count})")
        self.upgrade_prompt.show(UpgradeReason.SWIPE_LIMIT, state.scope)
