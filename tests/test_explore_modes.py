"""
Tests for the day and replace mode adapters.
"""
import pytest

from explore_swipe.application.explore_modes import (
    DayModeAdapter,
    ReplaceModeAdapter,
    ReplaceTarget,
    TripModeAdapter,
)
from explore_swipe.application.swipe_session import SwipeOutcome
from explore_swipe.domain.errors import UpstreamDataError
from explore_swipe.domain.models import (
    ActivityPlace,
    CandidatePlace,
    ExploreFilters,
    ExploreMode,
    NotificationLevel,
    ScheduledActivity,
    SwipeAction,
    SwipeDirection,
    SwipeSource,
    TimeOfDay,
)


def place(place_id) -> CandidatePlace:
    return CandidatePlace(place_id=place_id, name=f"Place {place_id}", address="1 Main St, Centro, Seville, Spain")


@pytest.fixture(autouse=True)
def deck_places(candidate_source):
    candidate_source.places = [place("p1"), place("p2"), place("p3")]


# ============== Day mode ==============


@pytest.mark.asyncio
async def test_day_mode_narrows_query(engine, candidate_source, scope):
    adapter = DayModeAdapter("day-1", TimeOfDay.EVENING, area_cluster="Triana")

    await engine.activate(scope, adapter=adapter, filters=ExploreFilters(neighborhood="Centro", category="bar"))

    _, filters, day_id = candidate_source.calls[-1]
    assert day_id == "day-1"
    assert filters.neighborhood == "Triana"
    assert filters.time_of_day == TimeOfDay.EVENING
    assert filters.category == "bar"


@pytest.mark.asyncio
async def test_day_mode_keeps_user_neighborhood_without_area(engine, candidate_source, scope):
    adapter = DayModeAdapter("day-1", TimeOfDay.MORNING)
    await engine.activate(scope, adapter=adapter, filters=ExploreFilters(neighborhood="Centro"))

    _, filters, _ = candidate_source.calls[-1]
    assert filters.neighborhood == "Centro"


@pytest.mark.asyncio
async def test_day_mode_like_is_added_to_day(engine, itinerary, session_store, notifier, scope):
    await engine.activate(scope, adapter=DayModeAdapter("day-1", TimeOfDay.MORNING))

    result = await engine.swipe(SwipeDirection.RIGHT)

    assert result.outcome == SwipeOutcome.COMMITTED
    assert itinerary.added == [("day-1", TimeOfDay.MORNING, ["p1"])]
    assert notifier.codes(NotificationLevel.SUCCESS) == ["explore_added_to_day"]

    command = session_store.commands[0]
    assert command.source == SwipeSource.DAY
    assert command.day_id == "day-1"
    assert command.slot == TimeOfDay.MORNING


@pytest.mark.asyncio
async def test_day_mode_dislike_is_not_added(engine, itinerary, scope):
    await engine.activate(scope, adapter=DayModeAdapter("day-1", TimeOfDay.MORNING))
    await engine.swipe(SwipeDirection.LEFT)
    assert itinerary.added == []


@pytest.mark.asyncio
async def test_day_mode_commit_failure_keeps_swipe(engine, itinerary, notifier, scope):
    itinerary.add_error = UpstreamDataError("Day not found in itinerary")
    state = await engine.activate(scope, adapter=DayModeAdapter("day-1", TimeOfDay.MORNING))

    result = await engine.swipe(SwipeDirection.RIGHT)

    assert result.outcome == SwipeOutcome.COMMITTED
    assert state.session.liked_places == ["p1"]
    assert notifier.codes(NotificationLevel.ERROR) == ["explore_day_commit_failed"]


@pytest.mark.asyncio
async def test_day_mode_like_without_place_id_is_not_added(engine, candidate_source, itinerary, notifier, scope):
    candidate_source.places = [CandidatePlace(name="Cafe Sol", address="Calle Betis, Triana, Seville")]
    await engine.activate(scope, adapter=DayModeAdapter("day-1", TimeOfDay.MORNING))

    await engine.swipe(SwipeDirection.RIGHT)

    assert itinerary.added == []
    assert notifier.codes(NotificationLevel.INFO) == ["explore_day_commit_skipped"]


# ============== Replace mode ==============


@pytest.mark.asyncio
async def test_replace_right_swipe_selects_without_advancing(engine, session_store, scope):
    adapter = ReplaceModeAdapter(ReplaceTarget(day_id="day-1", block_index=0, place_id="planned-1"))
    state = await engine.activate(scope, adapter=adapter)

    result = await engine.swipe(SwipeDirection.RIGHT)

    assert result.outcome == SwipeOutcome.COMMITTED
    assert state.current.place_id == "p1"
    assert state.replacement.place_id == "p1"
    assert state.session.liked_places == ["p1"]
    assert session_store.commands[0].action == SwipeAction.LIKE


@pytest.mark.asyncio
async def test_replace_left_swipe_advances(engine, scope):
    state = await engine.activate(scope, adapter=ReplaceModeAdapter())

    await engine.swipe(SwipeDirection.LEFT)

    assert state.current.place_id == "p2"
    assert state.replacement is None


@pytest.mark.asyncio
async def test_replace_rejects_already_planned(engine, itinerary, session_store, notifier, scope):
    itinerary.activities = [ScheduledActivity(place=ActivityPlace(external_id="p1", name="Place p1"))]
    state = await engine.activate(
        scope,
        adapter=ReplaceModeAdapter(),
        filters=ExploreFilters(include_itinerary_places=True),
    )
    assert state.current.place_id == "p1"

    result = await engine.swipe(SwipeDirection.RIGHT)

    assert result.outcome == SwipeOutcome.REJECTED
    assert session_store.commands == []
    assert state.replacement is None
    assert notifier.codes(NotificationLevel.INFO) == ["explore_replace_already_planned"]


@pytest.mark.asyncio
async def test_replace_undo_clears_selection(engine, scope):
    state = await engine.activate(scope, adapter=ReplaceModeAdapter())
    await engine.swipe(SwipeDirection.RIGHT)

    result = await engine.undo()

    assert result.outcome == SwipeOutcome.UNDONE
    assert state.replacement is None


@pytest.mark.asyncio
async def test_replace_set_target(engine, scope):
    target = ReplaceTarget(day_id="day-1", block_index=0)
    adapter = ReplaceModeAdapter(target)
    state = await engine.activate(scope, adapter=adapter)
    await engine.swipe(SwipeDirection.RIGHT)

    adapter.set_target(state, ReplaceTarget(day_id="day-1", block_index=0))
    assert state.replacement is not None

    adapter.set_target(state, ReplaceTarget(day_id="day-1", block_index=2))
    assert state.replacement is None
    assert adapter.target.block_index == 2

    adapter.clear_target(state)
    assert adapter.target is None


def test_adapter_modes():
    assert TripModeAdapter().mode == ExploreMode.TRIP
    assert DayModeAdapter("d", TimeOfDay.MORNING).mode == ExploreMode.DAY
    assert ReplaceModeAdapter().mode == ExploreMode.REPLACE
