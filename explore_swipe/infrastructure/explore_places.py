"""
Google Places access for the explore deck.

Text search around the trip center produces the candidate list; the details
endpoint is used when liked places are written into an itinerary day.
"""
import logging
import random
from dataclasses import dataclass, field
from math import asin, cos, radians, sin, sqrt
from typing import Any, Optional

import httpx

from explore_swipe.application.place_keys import extract_area_city
from explore_swipe.config import settings
from explore_swipe.domain.errors import UpstreamDataError
from explore_swipe.domain.models import CandidatePlace, ExploreFilters


logger = logging.getLogger(__name__)


# Readable categories for common Google Places types
GOOGLE_TYPE_TO_CATEGORY = {
    "museum": "Museum",
    "art_gallery": "Art Gallery",
    "tourist_attraction": "Attraction",
    "park": "Park",
    "restaurant": "Restaurant",
    "cafe": "Café",
    "bar": "Bar",
    "night_club": "Nightclub",
    "shopping_mall": "Shopping",
    "store": "Store",
    "viewpoint": "Viewpoint",
    "church": "Church",
    "temple": "Temple",
    "zoo": "Zoo",
    "aquarium": "Aquarium",
    "stadium": "Stadium",
}

EARTH_RADIUS_METERS = 6371000


@dataclass
class ExploreDestination:
    """Where the explore search is centered."""
    name: str
    center_lat: Optional[float] = None
    center_lng: Optional[float] = None

    @property
    def has_center(self) -> bool:
        return self.center_lat is not None and self.center_lng is not None


@dataclass
class PlaceDetails:
    """The subset of Place Details needed to add a place to a day."""
    place_id: str
    name: str
    address: str = ""
    types: list[str] = field(default_factory=list)
    editorial_summary: Optional[str] = None
    photo_references: list[str] = field(default_factory=list)
    lat: Optional[float] = None
    lng: Optional[float] = None


def place_category(types: list[str]) -> str:
    """Map Google types to a display category; falls back to the first type, title-cased."""
    if not types:
        return "Place"
    for place_type in types:
        if place_type in GOOGLE_TYPE_TO_CATEGORY:
            return GOOGLE_TYPE_TO_CATEGORY[place_type]
    return types[0].replace("_", " ").title()


def place_tags(rating: float, user_ratings_total: int) -> list[str]:
    tags = []
    if rating >= 4.5 and user_ratings_total >= 100:
        tags.append("Locals love this")
    if user_ratings_total >= 1000:
        tags.append("Popular")
    if user_ratings_total >= 500 and rating >= 4.0:
        tags.append("Trending now")
    return tags


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points, in meters."""
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * asin(sqrt(a)) * EARTH_RADIUS_METERS


def build_search_query(destination: str, filters: ExploreFilters) -> str:
    if filters.category:
        return f"{filters.category} in {destination}"
    if filters.neighborhood:
        return f"things to do in {filters.neighborhood}, {destination}"
    return f"tourist attractions in {destination}"


def photo_proxy_url(photo_reference: str, max_width: int = 1000) -> str:
    """Photo URL served through this API so the key never reaches clients."""
    return f"/api/places/photos/{photo_reference}?max_width={max_width}"


class GooglePlacesExploreProvider:
    """
    Fetches explore candidates from Google Places Text Search.

    Results are restricted to rated places, stripped of excluded IDs, filtered
    by the Pro-only budget/distance filters when given, ordered by review count
    then rating, capped and optionally shuffled.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        details_base_url: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
        max_places: Optional[int] = None,
        shuffle: Optional[bool] = None,
        rng: Optional[random.Random] = None,
    ):
        self.api_key = api_key or settings.google_maps_api_key
        self.base_url = base_url or settings.google_places_base_url
        self.details_base_url = details_base_url or settings.google_place_details_base_url
        self.timeout_seconds = timeout_seconds or settings.google_places_timeout_seconds
        self.max_places = max_places or settings.explore_max_places
        self.shuffle = settings.explore_shuffle_results if shuffle is None else shuffle
        self.language = settings.google_places_default_language
        self.rng = rng or random.Random()

    async def search_places(
        self,
        destination: ExploreDestination,
        filters: ExploreFilters,
    ) -> list[CandidatePlace]:
        """
        Search candidates for a destination.

        Raises:
            UpstreamDataError: Missing key or trip center, HTTP failure, or a
                Places status other than OK / ZERO_RESULTS
        """
        if not self.api_key:
            raise UpstreamDataError("Google Maps API key is not configured")
        if not destination.has_center:
            raise UpstreamDataError(
                "Trip location is required for searching places. "
                "Please ensure your trip has a valid destination."
            )

        query = build_search_query(destination.name, filters)
        params = {
            "query": query,
            "location": f"{destination.center_lat},{destination.center_lng}",
            "radius": settings.explore_search_radius_meters,
            "key": self.api_key,
            "language": self.language,
        }

        logger.info(f"🌐 Explore search: '{query}'")
        data = await self._get_json(self.base_url, params)

        status = data.get("status", "UNKNOWN")
        if status == "ZERO_RESULTS":
            logger.info(f"No explore results for query: {query}")
            return []
        if status != "OK":
            raise UpstreamDataError(f"Google Places API error: {status}")

        results = self._filter_results(data.get("results", []), destination, filters)
        candidates = [c for c in (self._to_candidate(place) for place in results) if c is not None]
        logger.info(f"✅ Explore search returned {len(candidates)} places")
        return candidates

    async def fetch_place_details(self, place_id: str) -> PlaceDetails:
        """
        Raises:
            UpstreamDataError: If the lookup fails or returns a non-OK status
        """
        if not self.api_key:
            raise UpstreamDataError("Google Maps API key is not configured")

        params = {
            "place_id": place_id,
            "key": self.api_key,
            "language": self.language,
            "fields": "place_id,name,types,formatted_address,geometry,photos,editorial_summary",
        }
        payload = await self._get_json(self.details_base_url, params)

        status = payload.get("status")
        if status != "OK":
            raise UpstreamDataError(f"Google Places Details error: {status}")

        result: dict[str, Any] = payload.get("result", {})
        location = (result.get("geometry") or {}).get("location") or {}
        return PlaceDetails(
            place_id=result.get("place_id", place_id),
            name=result.get("name") or "Unknown Place",
            address=result.get("formatted_address") or "",
            types=result.get("types") or [],
            editorial_summary=(result.get("editorial_summary") or {}).get("overview"),
            photo_references=[
                photo["photo_reference"]
                for photo in result.get("photos") or []
                if photo.get("photo_reference")
            ],
            lat=location.get("lat"),
            lng=location.get("lng"),
        )

    async def fetch_place_photo(self, photo_reference: str, max_width: int = 1000) -> bytes:
        if not self.api_key:
            raise UpstreamDataError("Google Maps API key is not configured")

        params = {
            "photoreference": photo_reference,
            "maxwidth": max_width,
            "key": self.api_key,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, follow_redirects=True) as client:
                response = await client.get(settings.google_place_photo_base_url, params=params)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            logger.warning(f"Google Place Photo API failed: {type(e).__name__}: {e}")
            raise UpstreamDataError(f"Failed to fetch photo: {e}") from e

    # MARK: - Helpers

    async def _get_json(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"Google Places API timeout after {self.timeout_seconds}s")
            raise UpstreamDataError("Google Places API timeout") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Google Places API HTTP error: {e.response.status_code}")
            raise UpstreamDataError(f"Google Places API HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning(f"Google Places API request failed: {e}")
            raise UpstreamDataError("Failed to fetch places from Google Places API") from e

    def _filter_results(
        self,
        places: list[dict],
        destination: ExploreDestination,
        filters: ExploreFilters,
    ) -> list[dict]:
        # Unrated places are mostly noise (closed shops, addresses)
        places = [p for p in places if (p.get("rating") or 0) > 0 or (p.get("user_ratings_total") or 0) > 0]

        if filters.exclude_place_ids:
            excluded = set(filters.exclude_place_ids)
            places = [p for p in places if p.get("place_id") not in excluded]

        if filters.budget is not None:
            # Places without a price level pass
            places = [p for p in places if p.get("price_level") is None or p["price_level"] <= filters.budget]

        if filters.max_distance is not None and destination.has_center:
            places = [p for p in places if self._within_distance(p, destination, filters.max_distance)]

        places.sort(key=lambda p: (p.get("user_ratings_total") or 0, p.get("rating") or 0), reverse=True)
        places = places[:self.max_places]

        if self.shuffle:
            self.rng.shuffle(places)
        return places

    @staticmethod
    def _within_distance(place: dict, destination: ExploreDestination, max_distance: int) -> bool:
        location = (place.get("geometry") or {}).get("location")
        if not location:
            return False
        distance = haversine_meters(
            destination.center_lat, destination.center_lng, location["lat"], location["lng"]
        )
        return distance <= max_distance

    @staticmethod
    def _to_candidate(place: dict) -> Optional[CandidatePlace]:
        try:
            address = place.get("formatted_address") or place.get("vicinity") or ""
            area, _ = extract_area_city(address)
            location = (place.get("geometry") or {}).get("location") or {}
            rating = place.get("rating") or 0.0
            user_ratings_total = place.get("user_ratings_total") or 0
            photos = place.get("photos") or []
            photo_url = None
            if photos and photos[0].get("photo_reference"):
                photo_url = photo_proxy_url(photos[0]["photo_reference"])

            return CandidatePlace(
                place_id=place["place_id"],
                name=place["name"],
                category=place_category(place.get("types") or []),
                address=address,
                neighborhood=area,
                lat=location.get("lat"),
                lng=location.get("lng"),
                rating=rating,
                user_ratings_total=user_ratings_total,
                price_level=place.get("price_level"),
                photo_url=photo_url,
                types=place.get("types") or [],
                tags=place_tags(rating, user_ratings_total),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to parse place result: {e}")
            return None
