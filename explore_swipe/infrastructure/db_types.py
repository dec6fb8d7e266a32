"""
Cross-dialect database types.
"""
from __future__ import annotations

import json
import uuid

from sqlalchemy.dialects.postgresql import JSONB, UUID as PGUUID
from sqlalchemy.types import CHAR, Text, TypeDecorator


class GUID(TypeDecorator):
    """
    UUID column that works on both PostgreSQL and SQLite.
    Native UUID on PostgreSQL, CHAR(36) elsewhere.
    """
    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PGUUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "postgresql":
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        return str(uuid.UUID(str(value)))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))


class PlaceIdList(TypeDecorator):
    """
    Ordered list of place IDs.
    JSONB on PostgreSQL, JSON text elsewhere. NULL reads back as [].
    """
    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        items = [str(item) for item in (value or [])]
        if dialect.name == "postgresql":
            return items
        return json.dumps(items)

    def process_result_value(self, value, dialect):
        if value is None:
            return []
        if isinstance(value, str):
            value = json.loads(value)
        return list(value)
