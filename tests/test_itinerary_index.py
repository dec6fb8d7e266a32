"""
Tests for the itinerary index.
"""
from explore_swipe.application.itinerary_index import ItineraryIndex, build_itinerary_index
from explore_swipe.domain.models import ActivityPlace, CandidatePlace, ScheduledActivity


def activity(**place) -> ScheduledActivity:
    return ScheduledActivity(place=ActivityPlace(**place), day_id="day-1")


def test_empty_index():
    index = build_itinerary_index([])
    assert len(index) == 0
    assert not index.contains(CandidatePlace(place_id="p1", name="Anything"))
    assert ItineraryIndex.empty() == index


def test_contains_by_external_id():
    index = build_itinerary_index([activity(external_id="p1", name="Alcázar")])

    assert index.contains(CandidatePlace(place_id="p1", name="Different name"))
    assert not index.contains(CandidatePlace(place_id="p2", name="Alcázar"))


def test_external_id_wins_over_fallback_key():
    """A candidate with an ID is never matched by name, even if the name collides."""
    index = build_itinerary_index([
        activity(external_id="p1", name="Cafe Sol", address="Calle Betis, Triana, Seville"),
    ])
    candidate = CandidatePlace(place_id="p9", name="Cafe Sol", address="Calle Betis, Triana, Seville")
    assert not index.contains(candidate)


def test_contains_by_fallback_key_without_id():
    index = build_itinerary_index([
        activity(name="Café Sol", address="Calle Betis 10, Triana, Seville, Spain"),
    ])
    candidate = CandidatePlace(name="Cafe Sol", address="Calle Betis 12, Triana, Seville, Spain")

    assert index.contains(candidate)
    assert not index.contains(CandidatePlace(name="Cafe Sol", address="Calle X, Centro, Madrid, Spain"))


def test_skips_activities_without_place_identity():
    index = build_itinerary_index([
        ScheduledActivity(place=None),
        activity(name="   "),
        activity(name=None, external_id=None),
        activity(external_id="p1"),
    ])
    assert index.ids == frozenset({"p1"})
    assert index.fallback_keys == frozenset()


def test_rebuild_reflects_removed_activities():
    first = build_itinerary_index([activity(external_id="p1", name="A"), activity(external_id="p2", name="B")])
    second = build_itinerary_index([activity(external_id="p2", name="B")])

    assert first.contains(CandidatePlace(place_id="p1", name="A"))
    assert not second.contains(CandidatePlace(place_id="p1", name="A"))
