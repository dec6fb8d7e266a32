"""
Configuration management for the Explore Swipe backend.
Uses Pydantic Settings to load configuration from environment variables.
"""
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database
    database_url: str = Field(
        default="postgresql+asyncpg://explore:explore@db:5432/explore",
        description="PostgreSQL connection URL with asyncpg driver"
    )

    # Google Maps Platform / Places API
    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="Google Maps API key for Places API"
    )
    google_places_base_url: str = Field(
        default="https://maps.googleapis.com/maps/api/place/textsearch/json",
        description="Base URL for Google Places Text Search API"
    )
    google_place_details_base_url: str = Field(
        default="https://maps.googleapis.com/maps/api/place/details/json",
        description="Base URL for Google Places Details API"
    )
    google_place_photo_base_url: str = Field(
        default="https://maps.googleapis.com/maps/api/place/photo",
        description="Base URL for Google Places Photo API"
    )
    google_places_default_language: str = Field(
        default="en",
        description="Default language for Places API responses"
    )
    google_places_timeout_seconds: int = Field(
        default=10,
        description="HTTP timeout for Google Places API calls"
    )

    # =========================================================================
    # Explore deck
    # =========================================================================

    explore_search_radius_meters: int = Field(
        default=20000,
        description="Text search radius around the trip center (20km)"
    )
    explore_max_places: int = Field(
        default=50,
        description="Maximum number of candidates kept from one search"
    )
    explore_page_size: int = Field(
        default=20,
        description="Default page size for the places endpoint"
    )
    explore_shuffle_results: bool = Field(
        default=True,
        description="Shuffle the top candidates so the same place is not always first"
    )

    # =========================================================================
    # Swipe session budget
    # =========================================================================

    free_swipe_limit_per_trip: int = Field(
        default=50,
        description="Swipes allowed per trip (and segment) on the free tier"
    )
    pro_swipe_limit_per_trip: Optional[int] = Field(
        default=None,
        description="Swipes allowed per trip for Pro trips (None = unlimited)"
    )
    undo_history_size: int = Field(
        default=3,
        ge=1,
        description="Number of most recent swipes that can be undone"
    )

    # Itinerary
    max_activities_per_day: int = Field(
        default=12,
        description="Upper bound on activities in one itinerary day"
    )

    # Explore API client (used by the swipe engine)
    explore_api_base_url: str = Field(
        default="http://localhost:8000/api",
        description="Base URL the swipe engine uses to reach the explore API"
    )
    explore_api_timeout_seconds: int = Field(
        default=10,
        description="HTTP timeout for explore API calls made by the swipe engine"
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Root logging level")


# Global settings instance
settings = Settings()
