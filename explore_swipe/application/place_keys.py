"""
Fallback identity keys for places without a stable external ID.

A fallback key is derived from the place name plus an area and city. The
area/city come from structured neighborhood/district fields when present and
otherwise from the trailing comma-separated tokens of the address. Keys are a
best-effort signal: an external place ID always wins over a fallback key.
"""
import re
import unicodedata
from typing import Optional

from explore_swipe.domain.models import ActivityPlace, CandidatePlace


KEY_SEPARATOR = "|"

_PUNCTUATION_RE = re.compile(r"[^\w\s]|_")
_WHITESPACE_RE = re.compile(r"\s+")
_HAS_DIGIT_RE = re.compile(r"\d")


def normalize_text(value: Optional[str]) -> str:
    """Lower-case, fold accents, strip punctuation and collapse whitespace."""
    if not value:
        return ""
    folded = unicodedata.normalize("NFKD", value)
    folded = "".join(ch for ch in folded if not unicodedata.combining(ch))
    text = _PUNCTUATION_RE.sub("", folded.lower())
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_place_key(
    name: Optional[str],
    area: Optional[str] = None,
    city: Optional[str] = None,
) -> Optional[str]:
    """
    Build the canonical fallback key for a place.

    Returns None when the name is empty after normalization. When both area
    and city are missing the key is the normalized name alone.

    Examples:
        >>> normalize_place_key("Café  Sol!", "Triana", "Seville")
        'cafe sol|triana|seville'
        >>> normalize_place_key("Cafe Sol")
        'cafe sol'
    """
    normalized_name = normalize_text(name)
    if not normalized_name:
        return None

    normalized_area = normalize_text(area)
    normalized_city = normalize_text(city)
    if not normalized_area and not normalized_city:
        return normalized_name

    return KEY_SEPARATOR.join([normalized_name, normalized_area, normalized_city])


def _strip_postal_code(token: str) -> Optional[str]:
    words = [word for word in token.split() if not _HAS_DIGIT_RE.search(word)]
    cleaned = " ".join(words).strip()
    return cleaned or None


def extract_area_city(address: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """
    Guess (area, city) from a free-text address.

    Handles the common shapes returned by Places text search:
        "street"                          -> (None, None)
        "street, city"                    -> (None, city)
        "street, area, city"              -> (area, city)
        "street, ..., area, city, country" -> (area, city)
    Words containing digits (postal codes, house numbers) are dropped from
    the area and city tokens.
    """
    if not address:
        return None, None

    parts = [part.strip() for part in address.split(",")]
    parts = [part for part in parts if part]

    if len(parts) < 2:
        return None, None
    if len(parts) == 2:
        return None, _strip_postal_code(parts[-1])
    if len(parts) == 3:
        return _strip_postal_code(parts[-2]), _strip_postal_code(parts[-1])
    return _strip_postal_code(parts[-3]), _strip_postal_code(parts[-2])


def candidate_fallback_key(place: CandidatePlace) -> Optional[str]:
    """Fallback key for a candidate, preferring its structured neighborhood/district."""
    address_area, city = extract_area_city(place.address)
    area = place.neighborhood or place.district or address_area
    return normalize_place_key(place.name, area, city)


def activity_fallback_key(place: ActivityPlace) -> Optional[str]:
    """Fallback key for a place already scheduled in the itinerary."""
    address_area, city = extract_area_city(place.address)
    area = place.area or address_area
    return normalize_place_key(place.name, area, city)


def place_identity(place: CandidatePlace) -> Optional[str]:
    """ID a candidate is recorded under in the session: external ID, else fallback key."""
    return place.place_id or candidate_fallback_key(place)
