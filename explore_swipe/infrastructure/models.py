"""
SQLAlchemy ORM models for database tables.
These are separate from domain models to maintain clean architecture.
"""
from sqlalchemy import Boolean, Column, Date, DateTime, Float, Integer, JSON, String, UniqueConstraint
from datetime import datetime
import uuid

from explore_swipe.infrastructure.database import Base
from explore_swipe.infrastructure.db_types import GUID, PlaceIdList


class TripModel(Base):
    """Trip the explore deck searches around."""
    __tablename__ = "trips"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(String, nullable=False, index=True)  # Owner (X-User-Id)
    title = Column(String, nullable=False, default="")
    city = Column(String, nullable=True)
    destination_country = Column(String, nullable=True)
    city_center_lat = Column(Float, nullable=True)
    city_center_lon = Column(Float, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    # Account Pro or per-trip unlock
    is_pro = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class ItineraryModel(Base):
    """
    Generated itinerary for a trip (or one segment of it).

    `days` is a JSON list of:
        {"id", "date", "area_cluster", "slots": [{"label", "places": [{"id", "name", "area", ...}]}]}
    """
    __tablename__ = "itineraries"

    __table_args__ = (
        UniqueConstraint("trip_id", "trip_segment_id", name="uq_itineraries_trip_segment"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    trip_id = Column(GUID(), nullable=False, index=True)
    trip_segment_id = Column(String, nullable=True)

    days = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class ExploreSessionModel(Base):
    """Swipe session per (trip, user, segment)."""
    __tablename__ = "explore_sessions"

    __table_args__ = (
        UniqueConstraint("trip_id", "user_id", "trip_segment_id", name="uq_explore_sessions_scope"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    trip_id = Column(GUID(), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    trip_segment_id = Column(String, nullable=True)

    liked_place_ids = Column(PlaceIdList(), nullable=False, default=list)
    discarded_place_ids = Column(PlaceIdList(), nullable=False, default=list)
    swipe_count = Column(Integer, nullable=False, default=0)
    last_swipe_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
