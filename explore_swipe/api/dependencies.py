"""
Request-scoped dependencies shared by the routers.
"""
from typing import Optional

from fastapi import Header, HTTPException, status

from explore_swipe.infrastructure.explore_places import GooglePlacesExploreProvider


def require_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """
    Require the caller's user ID from the X-User-Id header.
    Authentication happens upstream; raises 401 if the header is missing.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "code": "USER_ID_REQUIRED",
                "message": "X-User-Id header is required",
            },
        )
    return x_user_id


def get_places_provider() -> GooglePlacesExploreProvider:
    """Places provider; overridden in tests."""
    return GooglePlacesExploreProvider()
