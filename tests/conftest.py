"""
Shared fixtures: in-memory collaborators for the swipe engine and an
in-memory SQLite database for API tests.
"""
import asyncio
import os
import uuid
from collections import deque
from datetime import date, timedelta
from typing import Any, Optional

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from explore_swipe.api.dependencies import get_places_provider
from explore_swipe.application.collaborators import (
    CandidateSource,
    ItineraryCollaborator,
    Notifier,
    SessionStore,
    UpgradePrompt,
)
from explore_swipe.application.swipe_session import ExploreSwipeEngine
from explore_swipe.domain.models import (
    BulkAddResult,
    CandidatePage,
    ExploreSession,
    NotificationLevel,
    ScopeKey,
    SwipeAction,
    SwipeConfirmation,
)
from explore_swipe.infrastructure.database import Base, get_db
from explore_swipe.infrastructure.explore_places import GooglePlacesExploreProvider
from explore_swipe.infrastructure.models import ItineraryModel, TripModel
from explore_swipe.main import app


USER_ID = "user-1"


# ============== Swipe engine collaborators ==============


class FakeCandidateSource(CandidateSource):
    def __init__(self):
        self.places = []
        self.error: Optional[Exception] = None
        self.calls = []

    async def fetch_candidates(self, scope, filters, day_id=None):
        self.calls.append((scope, filters, day_id))
        if self.error:
            raise self.error
        return CandidatePage(places=list(self.places), total_count=len(self.places), has_more=False)


class FakeItinerary(ItineraryCollaborator):
    def __init__(self):
        self.activities = []
        self.error: Optional[Exception] = None
        self.add_error: Optional[Exception] = None
        self.added = []

    async def list_activities(self, scope):
        if self.error:
            raise self.error
        return list(self.activities)

    async def add_places_to_day(self, scope, day_id, slot, place_ids):
        self.added.append((day_id, slot, list(place_ids)))
        if self.add_error:
            raise self.add_error
        return BulkAddResult(added_count=len(place_ids), added_place_ids=list(place_ids))


class FakeSessionStore(SessionStore):
    """
    Session store that behaves like the server by default.

    Queue a SwipeConfirmation or an exception in `responses` to override the
    next answer; set `gate` to hold confirmations until the event is set.
    """

    def __init__(self, limit: Optional[int] = None):
        self.limit = limit
        self.session = ExploreSession(remaining_swipes=limit, daily_limit=limit)
        self.responses: deque = deque()
        self.commands = []
        self.gate: Optional[asyncio.Event] = None
        self.read_error: Optional[Exception] = None

    async def read_session(self, scope):
        if self.read_error:
            raise self.read_error
        return self.session

    async def confirm(self, scope, command):
        self.commands.append(command)
        if self.gate is not None:
            await self.gate.wait()
        if self.responses:
            response = self.responses.popleft()
            if isinstance(response, Exception):
                raise response
            return response

        if command.action == SwipeAction.UNDO:
            self.session = self.session.without_swipe(command.place_id, command.previous_action)
            limit_reached = False
        else:
            self.session = self.session.with_swipe(command.place_id, command.action)
            limit_reached = self.limit is not None and self.session.swipe_count >= self.limit
        return SwipeConfirmation(
            success=True,
            swipe_count=self.session.swipe_count,
            remaining_swipes=self.session.remaining_swipes,
            limit_reached=limit_reached,
            undone_place_id=command.place_id if command.action == SwipeAction.UNDO else None,
            session=self.session,
        )


class RecordingNotifier(Notifier):
    def __init__(self):
        self.events = []

    def notify(self, event):
        self.events.append(event)

    def codes(self, level: Optional[NotificationLevel] = None) -> list[str]:
        return [e.code for e in self.events if level is None or e.level == level]


class RecordingUpgradePrompt(UpgradePrompt):
    def __init__(self):
        self.calls = []

    def show(self, reason, scope):
        self.calls.append((reason, scope))


@pytest.fixture
def candidate_source():
    return FakeCandidateSource()


@pytest.fixture
def itinerary():
    return FakeItinerary()


@pytest.fixture
def session_store():
    return FakeSessionStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def upgrade_prompt():
    return RecordingUpgradePrompt()


@pytest.fixture
def scope():
    return ScopeKey(trip_id="trip-1")


@pytest.fixture
def engine(candidate_source, itinerary, session_store, notifier, upgrade_prompt):
    return ExploreSwipeEngine(
        candidate_source=candidate_source,
        itinerary=itinerary,
        session_store=session_store,
        upgrade_prompt=upgrade_prompt,
        notifier=notifier,
        undo_history_size=3,
    )


# ============== Database / API ==============


class FakePlacesProvider(GooglePlacesExploreProvider):
    """Google Places provider answering from canned payloads instead of HTTP."""

    def __init__(self):
        super().__init__(api_key="test-key", shuffle=False)
        self.search_results: list[dict[str, Any]] = []
        self.details: dict[str, dict[str, Any]] = {}
        self.search_error: Optional[Exception] = None
        self.requests: list[tuple[str, dict[str, Any]]] = []

    async def _get_json(self, url, params):
        self.requests.append((url, params))
        if url == self.details_base_url:
            result = self.details.get(params["place_id"])
            if result is None:
                return {"status": "NOT_FOUND"}
            return {"status": "OK", "result": result}
        if self.search_error:
            raise self.search_error
        return {"status": "OK", "results": list(self.search_results)}

    @property
    def search_params(self) -> list[dict[str, Any]]:
        return [params for url, params in self.requests if url == self.base_url]


def google_result(place_id: str, name: str, address: str = "1 Main St, Centro, Seville, Spain", **extra) -> dict:
    result = {
        "place_id": place_id,
        "name": name,
        "formatted_address": address,
        "geometry": {"location": {"lat": 37.39, "lng": -5.99}},
        "types": ["tourist_attraction", "point_of_interest"],
        "rating": 4.5,
        "user_ratings_total": 120,
    }
    result.update(extra)
    return result


@pytest.fixture
def google_result_factory():
    return google_result


@pytest.fixture
def places_provider():
    return FakePlacesProvider()


@pytest.fixture
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory, places_provider):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_places_provider] = lambda: places_provider
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-User-Id": USER_ID},
    ) as client:
        yield client
    app.dependency_overrides.clear()


def itinerary_days(start: date) -> list[dict[str, Any]]:
    return [
        {
            "id": "day-1",
            "date": start.isoformat(),
            "area_cluster": "Santa Cruz",
            "slots": [
                {"label": "Morning", "places": [
                    {"id": "planned-1", "name": "Alcázar", "area": "Santa Cruz"},
                ]},
                {"label": "Afternoon", "places": []},
                {"label": "Evening", "places": []},
            ],
        },
        {
            "id": "day-past",
            "date": (start - timedelta(days=30)).isoformat(),
            "area_cluster": "Triana",
            "slots": [
                {"label": "Morning", "places": []},
            ],
        },
    ]


async def create_trip(
    db,
    user_id: str = USER_ID,
    is_pro: bool = False,
    with_itinerary: bool = True,
    center: Optional[tuple[float, float]] = (37.3891, -5.9845),
) -> TripModel:
    trip = TripModel(
        id=uuid.uuid4(),
        user_id=user_id,
        title="Seville weekend",
        city="Seville",
        city_center_lat=center[0] if center else None,
        city_center_lon=center[1] if center else None,
        is_pro=is_pro,
    )
    db.add(trip)
    if with_itinerary:
        db.add(ItineraryModel(trip_id=trip.id, days=itinerary_days(date.today() + timedelta(days=7))))
    await db.commit()
    return trip


@pytest.fixture
async def trip(db):
    return await create_trip(db)


@pytest.fixture
async def pro_trip(db):
    return await create_trip(db, is_pro=True)


@pytest.fixture
def make_trip(db):
    async def _make_trip(**kwargs) -> TripModel:
        return await create_trip(db, **kwargs)
    return _make_trip
