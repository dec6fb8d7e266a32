"""
Tests for the explore session, swipe and places endpoints.
"""
import uuid

import pytest

from explore_swipe.config import settings
from explore_swipe.domain.errors import UpstreamDataError


def swipe_body(place_id, action="like", **extra):
    return {"place_id": place_id, "action": action, **extra}


# ============== Session ==============


@pytest.mark.asyncio
async def test_get_session_creates_empty_session(client, trip):
    response = await client.get(f"/api/trips/{trip.id}/explore/session")

    assert response.status_code == 200
    data = response.json()
    assert data["liked_places"] == []
    assert data["discarded_places"] == []
    assert data["swipe_count"] == 0
    assert data["remaining_swipes"] == settings.free_swipe_limit_per_trip
    assert data["daily_limit"] == settings.free_swipe_limit_per_trip


@pytest.mark.asyncio
async def test_pro_trip_session_is_unlimited(client, pro_trip):
    response = await client.get(f"/api/trips/{pro_trip.id}/explore/session")
    data = response.json()
    assert data["remaining_swipes"] is None
    assert data["daily_limit"] is None


@pytest.mark.asyncio
async def test_missing_user_header(client, trip):
    response = await client.get(f"/api/trips/{trip.id}/explore/session", headers={"X-User-Id": ""})

    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "USER_ID_REQUIRED"


@pytest.mark.asyncio
async def test_unknown_trip(client):
    response = await client.get(f"/api/trips/{uuid.uuid4()}/explore/session")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_other_users_trip(client, make_trip):
    trip = await make_trip(user_id="someone-else")
    response = await client.get(f"/api/trips/{trip.id}/explore/session")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_reset_session(client, trip):
    await client.post(f"/api/trips/{trip.id}/explore/swipe", json=swipe_body("g1"))

    response = await client.delete(f"/api/trips/{trip.id}/explore/session")
    assert response.status_code == 200
    assert response.json() == {"success": True}

    data = (await client.get(f"/api/trips/{trip.id}/explore/session")).json()
    assert data["liked_places"] == []
    assert data["swipe_count"] == 0


@pytest.mark.asyncio
async def test_reset_without_session_is_ok(client, trip):
    response = await client.delete(f"/api/trips/{trip.id}/explore/session")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_sessions_are_scoped_by_segment(client, trip):
    await client.post(
        f"/api/trips/{trip.id}/explore/swipe",
        json=swipe_body("g1", trip_segment_id="seg-1"),
    )

    trip_wide = (await client.get(f"/api/trips/{trip.id}/explore/session")).json()
    segment = (await client.get(
        f"/api/trips/{trip.id}/explore/session", params={"trip_segment_id": "seg-1"}
    )).json()

    assert trip_wide["liked_places"] == []
    assert segment["liked_places"] == ["g1"]


@pytest.mark.asyncio
async def test_clear_liked_places_after_regeneration(client, trip):
    for place_id, action in [("g1", "like"), ("g2", "dislike"), ("g3", "like")]:
        await client.post(f"/api/trips/{trip.id}/explore/swipe", json=swipe_body(place_id, action))

    response = await client.post(f"/api/trips/{trip.id}/explore/session/clear-liked")

    assert response.status_code == 200
    assert response.json() == {"success": True, "moved_count": 2}
    data = (await client.get(f"/api/trips/{trip.id}/explore/session")).json()
    assert data["liked_places"] == []
    assert data["discarded_places"] == ["g2", "g1", "g3"]
    assert data["swipe_count"] == 3


@pytest.mark.asyncio
async def test_clear_liked_places_on_other_users_trip(client, make_trip):
    trip = await make_trip(user_id="someone-else")
    response = await client.post(f"/api/trips/{trip.id}/explore/session/clear-liked")
    assert response.status_code == 403


# ============== Swipes ==============


@pytest.mark.asyncio
async def test_like_and_dislike(client, trip):
    like = (await client.post(f"/api/trips/{trip.id}/explore/swipe", json=swipe_body("g1"))).json()
    dislike = (await client.post(
        f"/api/trips/{trip.id}/explore/swipe", json=swipe_body("g2", action="dislike")
    )).json()

    assert like["success"] is True
    assert like["swipe_count"] == 1
    assert like["remaining_swipes"] == settings.free_swipe_limit_per_trip - 1
    assert like["liked_places"] == ["g1"]

    assert dislike["swipe_count"] == 2
    assert dislike["liked_places"] == ["g1"]
    assert dislike["discarded_places"] == ["g2"]
    assert dislike["limit_reached"] is False


@pytest.mark.asyncio
async def test_swipe_same_place_twice(client, trip):
    await client.post(f"/api/trips/{trip.id}/explore/swipe", json=swipe_body("g1"))
    response = await client.post(f"/api/trips/{trip.id}/explore/swipe", json=swipe_body("g1", action="dislike"))

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "Place already swiped"
    assert data["swipe_count"] == 1


@pytest.mark.asyncio
async def test_undo(client, trip):
    await client.post(f"/api/trips/{trip.id}/explore/swipe", json=swipe_body("g1"))

    response = await client.post(
        f"/api/trips/{trip.id}/explore/swipe",
        json=swipe_body("g1", action="undo", previous_action="like"),
    )

    data = response.json()
    assert data["success"] is True
    assert data["undone_place_id"] == "g1"
    assert data["swipe_count"] == 0
    assert data["liked_places"] == []


@pytest.mark.asyncio
async def test_undo_unknown_place(client, trip):
    await client.post(f"/api/trips/{trip.id}/explore/swipe", json=swipe_body("g1"))

    data = (await client.post(
        f"/api/trips/{trip.id}/explore/swipe",
        json=swipe_body("g1", action="undo", previous_action="dislike"),
    )).json()

    assert data["success"] is False
    assert data["error"] == "Place not found in session or cannot be undone"


@pytest.mark.asyncio
async def test_undo_without_session(client, trip):
    data = (await client.post(
        f"/api/trips/{trip.id}/explore/swipe",
        json=swipe_body("g1", action="undo", previous_action="like"),
    )).json()

    assert data["success"] is False
    assert data["error"] == "No session found"


@pytest.mark.asyncio
@pytest.mark.parametrize("body,message", [
    ({"place_id": "g1"}, "Missing action"),
    ({"place_id": "g1", "action": "love"}, 'Invalid action. Must be "like", "dislike", or "undo"'),
    ({"action": "like"}, "Missing place_id"),
    ({"place_id": "g1", "action": "undo"}, "Missing place_id or previous_action for undo"),
    ({"place_id": "g1", "action": "like", "source": "day"}, "Missing day_id for day-level swipe"),
    ({"place_id": "g1", "action": "like", "source": "week"}, 'Invalid source. Must be "trip" or "day"'),
    ({"place_id": "g1", "action": "like", "slot": "night"}, "Invalid slot (must be morning, afternoon, or evening)"),
])
async def test_swipe_validation(client, trip, body, message):
    response = await client.post(f"/api/trips/{trip.id}/explore/swipe", json=body)

    assert response.status_code == 400
    assert response.json()["detail"] == message


@pytest.mark.asyncio
async def test_day_swipe(client, trip):
    response = await client.post(
        f"/api/trips/{trip.id}/explore/swipe",
        json=swipe_body("g1", source="day", day_id="day-1", slot="morning"),
    )
    assert response.json()["success"] is True


@pytest.mark.asyncio
async def test_swipe_limit(client, trip, monkeypatch):
    monkeypatch.setattr(settings, "free_swipe_limit_per_trip", 2)
    url = f"/api/trips/{trip.id}/explore/swipe"

    first = (await client.post(url, json=swipe_body("g1"))).json()
    last = (await client.post(url, json=swipe_body("g2"))).json()
    refused = (await client.post(url, json=swipe_body("g3"))).json()

    assert first["remaining_swipes"] == 1
    assert first["limit_reached"] is False

    assert last["success"] is True
    assert last["remaining_swipes"] == 0
    assert last["limit_reached"] is True

    assert refused["success"] is False
    assert refused["limit_reached"] is True
    assert refused["remaining_swipes"] == 0
    assert "Upgrade to Pro" in refused["error"]
    assert refused["liked_places"] == ["g1", "g2"]

    # Undo stays available at the limit and gives a swipe back
    undo = (await client.post(url, json=swipe_body("g2", action="undo", previous_action="like"))).json()
    assert undo["success"] is True
    assert undo["remaining_swipes"] == 1


@pytest.mark.asyncio
async def test_pro_limit_message(client, pro_trip, monkeypatch):
    monkeypatch.setattr(settings, "pro_swipe_limit_per_trip", 1)
    url = f"/api/trips/{pro_trip.id}/explore/swipe"

    await client.post(url, json=swipe_body("g1"))
    refused = (await client.post(url, json=swipe_body("g2"))).json()

    assert refused["success"] is False
    assert "Upgrade" not in refused["error"]
    assert "adjusting your filters" in refused["error"]


# ============== Places ==============


@pytest.fixture
def search_results(places_provider, google_result_factory):
    places_provider.search_results = [
        google_result_factory("planned-1", "Alcázar", user_ratings_total=9000),
        google_result_factory("g1", "Cathedral", user_ratings_total=8000, price_level=3),
        google_result_factory("g2", "Plaza de España", user_ratings_total=7000),
        google_result_factory("g3", "Metropol Parasol", user_ratings_total=6000, price_level=1),
        google_result_factory("g4", "Triana Market", user_ratings_total=5000),
    ]
    return places_provider.search_results


@pytest.mark.asyncio
async def test_explore_places_excludes_planned_and_swiped(client, trip, search_results):
    await client.post(f"/api/trips/{trip.id}/explore/swipe", json=swipe_body("g2", action="dislike"))

    response = await client.get(f"/api/trips/{trip.id}/explore/places")

    assert response.status_code == 200
    data = response.json()
    assert [p["place_id"] for p in data["places"]] == ["g1", "g3", "g4"]
    assert data["total_count"] == 3
    assert data["has_more"] is False
    assert data["places"][0]["neighborhood"] == "Centro"


@pytest.mark.asyncio
async def test_explore_places_include_itinerary_places(client, trip, search_results):
    response = await client.get(
        f"/api/trips/{trip.id}/explore/places", params={"include_itinerary_places": "true"}
    )
    assert response.json()["places"][0]["place_id"] == "planned-1"


@pytest.mark.asyncio
async def test_explore_places_pagination(client, trip, search_results):
    first = (await client.get(f"/api/trips/{trip.id}/explore/places", params={"limit": 2})).json()
    second = (await client.get(
        f"/api/trips/{trip.id}/explore/places", params={"limit": 2, "offset": 2}
    )).json()

    assert [p["place_id"] for p in first["places"]] == ["g1", "g2"]
    assert first["has_more"] is True
    assert first["total_count"] == 4
    assert [p["place_id"] for p in second["places"]] == ["g3", "g4"]
    assert second["has_more"] is False


@pytest.mark.asyncio
async def test_explore_places_explicit_exclusions(client, trip, search_results):
    response = await client.get(
        f"/api/trips/{trip.id}/explore/places",
        params=[("exclude_place_id", "g1"), ("exclude_place_id", "g4")],
    )
    assert [p["place_id"] for p in response.json()["places"]] == ["g2", "g3"]


@pytest.mark.asyncio
async def test_budget_filter_is_pro_only(client, make_trip, trip, search_results):
    free = (await client.get(f"/api/trips/{trip.id}/explore/places", params={"budget": 1})).json()
    assert "g1" in [p["place_id"] for p in free["places"]]

    pro_trip = await make_trip(is_pro=True)
    pro = (await client.get(f"/api/trips/{pro_trip.id}/explore/places", params={"budget": 1})).json()
    assert [p["place_id"] for p in pro["places"]] == ["g2", "g3", "g4"]


@pytest.mark.asyncio
async def test_category_query(client, trip, places_provider, search_results):
    await client.get(f"/api/trips/{trip.id}/explore/places", params={"category": "tapas"})
    assert places_provider.search_params[-1]["query"] == "tapas in Seville"


@pytest.mark.asyncio
async def test_day_id_searches_day_area(client, trip, places_provider, search_results):
    await client.get(f"/api/trips/{trip.id}/explore/places", params={"day_id": "day-1"})
    assert places_provider.search_params[-1]["query"] == "things to do in Santa Cruz, Seville"


@pytest.mark.asyncio
async def test_invalid_time_of_day_is_ignored(client, trip, search_results):
    response = await client.get(f"/api/trips/{trip.id}/explore/places", params={"time_of_day": "midnight"})
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_explore_places_upstream_error(client, trip, places_provider):
    places_provider.search_error = UpstreamDataError("Google Places API HTTP 500")

    response = await client.get(f"/api/trips/{trip.id}/explore/places")

    assert response.status_code == 502
    assert response.json()["detail"]["error"] == "Failed to fetch places"


@pytest.mark.asyncio
async def test_explore_places_requires_trip_center(client, make_trip, search_results):
    trip = await make_trip(center=None)
    response = await client.get(f"/api/trips/{trip.id}/explore/places")

    assert response.status_code == 502
    assert "Trip location is required" in response.json()["detail"]["details"]


# ============== Itinerary activities ==============


@pytest.mark.asyncio
async def test_list_itinerary_activities(client, trip):
    response = await client.get(f"/api/trips/{trip.id}/itinerary/activities")

    assert response.status_code == 200
    activities = response.json()["activities"]
    assert len(activities) == 1
    assert activities[0]["place"]["external_id"] == "planned-1"
    assert activities[0]["day_id"] == "day-1"
    assert activities[0]["slot"] == "morning"


@pytest.mark.asyncio
async def test_list_itinerary_activities_without_itinerary(client, make_trip):
    trip = await make_trip(with_itinerary=False)
    response = await client.get(f"/api/trips/{trip.id}/itinerary/activities")
    assert response.json() == {"activities": []}
