"""Column types shared by the models.

PostgreSQL gets its native JSONB/CITEXT types; other dialects (SQLite in
tests) fall back to the generic equivalents.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, String
from sqlalchemy.dialects.postgresql import CITEXT, JSONB

JsonType = JSON().with_variant(JSONB(), "postgresql")

CaseInsensitiveString = String(255).with_variant(CITEXT(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
