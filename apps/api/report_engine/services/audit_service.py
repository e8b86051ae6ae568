"""Audit logging service - security and compliance event tracking.

Security guidelines:
- NEVER log secrets (API keys, tokens, passwords)
- Use IDs and field names instead of record data where possible
- IP: Trust X-Forwarded-For only in production behind LB
"""

import hashlib
import json
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from report_engine.core.config import settings
from report_engine.db.enums import AuditEventType
from report_engine.db.models import AuditLog

GENESIS_HASH = "0" * 64


def get_client_ip(request: Request | None) -> str | None:
    """
    Extract client IP from request.

    Only trusts X-Forwarded-For when TRUST_PROXY_HEADERS=True (behind reverse proxy).
    """
    if not request:
        return None

    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # X-Forwarded-For: client, proxy1, proxy2 - take first
            return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return None


def get_user_agent(request: Request | None) -> str | None:
    """Extract user agent from request."""
    if not request:
        return None
    ua = request.headers.get("user-agent", "")
    return ua[:500] if ua else None


def canonical_json(obj: dict | None) -> str:
    """
    Serialize object to canonical JSON for consistent hashing.

    Uses sorted keys, compact separators, and str() for non-JSON types.
    """
    return json.dumps(obj or {}, sort_keys=True, separators=(",", ":"), default=str)


def get_last_audit_hash(db: Session, org_id: UUID) -> str:
    """Hash of the most recent audit entry for an org (genesis hash if none)."""
    result = db.execute(
        select(AuditLog.entry_hash)
        .where(AuditLog.organization_id == org_id)
        .where(AuditLog.entry_hash.isnot(None))
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(1)
    ).scalar()
    return result or GENESIS_HASH


def compute_audit_hash(prev_hash: str, *parts: str) -> str:
    """SHA256 over the previous hash and every immutable column, joined with |."""
    return hashlib.sha256("|".join([prev_hash, *parts]).encode()).hexdigest()


def log_event(
    db: Session,
    org_id: UUID,
    event_type: AuditEventType,
    actor_user_id: UUID | None = None,
    target_type: str | None = None,
    target_id: UUID | None = None,
    details: dict[str, Any] | None = None,
    request: Request | None = None,
) -> AuditLog:
    """
    Log an audit event with hash chain.

    The entry is added to the caller's session and flushed; it commits
    together with the change it describes.

    Args:
        db: Database session
        org_id: Organization context
        event_type: Type of event (from AuditEventType)
        actor_user_id: User who performed the action (None for system)
        target_type: Type of entity affected (e.g., 'saved_report')
        target_id: ID of the affected entity
        details: Additional context (identifiers and diffs only)
        request: FastAPI request for IP/user-agent extraction
    """
    prev_hash = get_last_audit_hash(db, org_id)

    entry = AuditLog(
        organization_id=org_id,
        actor_user_id=actor_user_id,
        event_type=event_type.value,
        target_type=target_type,
        target_id=target_id,
        details=details,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        prev_hash=prev_hash,
    )
    db.add(entry)
    db.flush()  # Get ID and created_at

    entry.entry_hash = compute_audit_hash(
        prev_hash,
        str(entry.id),
        str(org_id),
        event_type.value,
        str(entry.created_at),
        canonical_json(details),
        str(actor_user_id) if actor_user_id else "",
        target_type or "",
        str(target_id) if target_id else "",
        entry.ip_address or "",
        entry.user_agent or "",
    )
    return entry
