# backend/app/domain/audit.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..models import AuditEvent


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def admin_actor(admin_id: str) -> str:
    return f"admin:{admin_id}"


def renter_actor(renter_id: str) -> str:
    return f"renter:{renter_id}"


def audit_write(
    db: Session,
    *,
    company_id: Optional[str],
    actor: Optional[str],
    action: str,
    entity_type: str,
    entity_id: str,
    before: Optional[dict[str, Any]] = None,
    after: Optional[dict[str, Any]] = None,
) -> AuditEvent:
    """
    Adds an audit row to the caller's transaction.

    Never commits: reconciliation and redemption bundle their audit rows with
    the writes they describe, so a rollback drops both.
    """
    row = AuditEvent(
        company_id=company_id,
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_json=_dumps(before),
        after_json=_dumps(after),
        created_at=datetime.utcnow(),
    )
    db.add(row)
    return row
