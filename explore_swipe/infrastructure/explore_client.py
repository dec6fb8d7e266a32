"""
HTTP adapters connecting the swipe engine to the explore API.
"""
import logging
from typing import Any, Callable, Optional, TypeVar

import httpx
from pydantic import ValidationError

from explore_swipe.application.collaborators import CandidateSource, ItineraryCollaborator, SessionStore
from explore_swipe.config import settings
from explore_swipe.domain.errors import ConfirmationError, UpstreamDataError
from explore_swipe.domain.models import (
    BulkAddResult,
    CandidatePage,
    ExploreFilters,
    ExploreSession,
    ScheduledActivity,
    ScopeKey,
    SwipeCommand,
    SwipeConfirmation,
    TimeOfDay,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    detail = payload.get("detail", payload) if isinstance(payload, dict) else payload
    if isinstance(detail, dict):
        return detail.get("message") or detail.get("error") or str(detail)
    return str(detail)


def _activities(payload: dict[str, Any]) -> list[ScheduledActivity]:
    return [ScheduledActivity.model_validate(item) for item in payload.get("activities") or []]


def _confirmation(payload: dict[str, Any]) -> SwipeConfirmation:
    session = None
    if payload.get("liked_places") is not None:
        session = ExploreSession(
            liked_places=payload.get("liked_places") or [],
            discarded_places=payload.get("discarded_places") or [],
            swipe_count=payload.get("swipe_count", 0),
            remaining_swipes=payload.get("remaining_swipes"),
            daily_limit=payload.get("daily_limit"),
        )
    return SwipeConfirmation(
        success=payload.get("success", False),
        swipe_count=payload.get("swipe_count", 0),
        remaining_swipes=payload.get("remaining_swipes"),
        limit_reached=payload.get("limit_reached", False),
        error=payload.get("error"),
        undone_place_id=payload.get("undone_place_id"),
        session=session,
    )


class ExploreApiClient(CandidateSource, ItineraryCollaborator, SessionStore):
    """
    Candidate source, itinerary and session store backed by the explore API.

    Transport and HTTP-status failures on reads surface as UpstreamDataError,
    on swipe/undo confirmations as ConfirmationError.
    """

    def __init__(
        self,
        user_id: str,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.user_id = user_id
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url or settings.explore_api_base_url,
            timeout=timeout_seconds or settings.explore_api_timeout_seconds,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "ExploreApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # MARK: - CandidateSource

    async def fetch_candidates(
        self,
        scope: ScopeKey,
        filters: ExploreFilters,
        day_id: Optional[str] = None,
    ) -> CandidatePage:
        params: list[tuple[str, Any]] = []
        if scope.segment_id:
            params.append(("trip_segment_id", scope.segment_id))
        if day_id:
            params.append(("day_id", day_id))
        if filters.category:
            params.append(("category", filters.category))
        if filters.neighborhood:
            params.append(("neighborhood", filters.neighborhood))
        if filters.time_of_day:
            params.append(("time_of_day", filters.time_of_day.value))
        if filters.budget is not None:
            params.append(("budget", filters.budget))
        if filters.max_distance is not None:
            params.append(("max_distance", filters.max_distance))
        if filters.include_itinerary_places:
            params.append(("include_itinerary_places", "true"))
        for place_id in filters.exclude_place_ids:
            params.append(("exclude_place_id", place_id))

        return await self._read(
            "GET", f"/trips/{scope.trip_id}/explore/places", CandidatePage.model_validate, params=params,
        )

    # MARK: - ItineraryCollaborator

    async def list_activities(self, scope: ScopeKey) -> list[ScheduledActivity]:
        params = {"trip_segment_id": scope.segment_id} if scope.segment_id else None
        return await self._read("GET", f"/trips/{scope.trip_id}/itinerary/activities", _activities, params=params)

    async def add_places_to_day(
        self,
        scope: ScopeKey,
        day_id: str,
        slot: TimeOfDay,
        place_ids: list[str],
    ) -> BulkAddResult:
        return await self._read(
            "POST",
            f"/trips/{scope.trip_id}/days/{day_id}/activities/bulk-add-from-swipes",
            BulkAddResult.model_validate,
            json={"place_ids": place_ids, "slot": slot.value},
        )

    # MARK: - SessionStore

    async def read_session(self, scope: ScopeKey) -> ExploreSession:
        params = {"trip_segment_id": scope.segment_id} if scope.segment_id else None
        return await self._read(
            "GET", f"/trips/{scope.trip_id}/explore/session", ExploreSession.model_validate, params=params,
        )

    async def confirm(self, scope: ScopeKey, command: SwipeCommand) -> SwipeConfirmation:
        body = command.model_dump(mode="json")
        body["trip_segment_id"] = scope.segment_id

        try:
            response = await self.client.post(
                f"/trips/{scope.trip_id}/explore/swipe",
                json=body,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.warning(f"Swipe request failed for {scope}: {type(e).__name__}: {e}")
            raise ConfirmationError(f"Swipe request failed: {e}") from e

        if response.is_error:
            detail = _error_detail(response)
            logger.warning(f"Swipe rejected for {scope}: HTTP {response.status_code} {detail}")
            raise ConfirmationError(detail, status_code=response.status_code)

        return self._decode(response, _confirmation, ConfirmationError, f"swipe for {scope}")

    # MARK: - Helpers

    def _headers(self) -> dict[str, str]:
        return {"X-User-Id": self.user_id}

    async def _read(self, method: str, path: str, parse: Callable[[dict[str, Any]], T], **kwargs) -> T:
        try:
            response = await self.client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"Explore API {method} {path} failed: {type(e).__name__}: {e}")
            raise UpstreamDataError(f"Explore API request failed: {e}") from e

        if response.is_error:
            detail = _error_detail(response)
            logger.warning(f"Explore API {method} {path}: HTTP {response.status_code} {detail}")
            raise UpstreamDataError(detail)
        return self._decode(response, parse, UpstreamDataError, f"{method} {path}")

    @staticmethod
    def _decode(
        response: httpx.Response,
        parse: Callable[[dict[str, Any]], T],
        error_cls: type[Exception],
        what: str,
    ) -> T:
        """Parse a 2xx body; undecodable or wrong-shaped payloads raise `error_cls`."""
        try:
            payload = response.json()
            if not isinstance(payload, dict):
                raise TypeError(f"expected a JSON object, got {type(payload).__name__}")
            return parse(payload)
        except (ValidationError, ValueError, TypeError) as e:
            logger.warning(f"Explore API {what}: unreadable response: {e}")
            raise error_cls(f"Invalid explore API response: {e}") from e
