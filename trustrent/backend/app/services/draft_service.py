# backend/app/services/draft_service.py
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..errors import NotFound, ValidationFailed
from ..models import Renter, RenterDraft

log = logging.getLogger("trustrent.drafts")

MAX_DRAFT_BYTES = 10 * 1024 * 1024


def save_renter_draft(db: Session, *, renter_id: str, snapshot: dict[str, Any]) -> RenterDraft:
    """Upserts the renter's single draft."""
    if db.get(Renter, renter_id) is None:
        raise NotFound("Renter not found")

    draft_json = json.dumps(snapshot, default=str)
    if len(draft_json.encode("utf-8")) > MAX_DRAFT_BYTES:
        raise ValidationFailed("Validation failed", fields={"draft": "Saved progress is too large"})

    row = db.get(RenterDraft, renter_id)
    if row is None:
        row = RenterDraft(renter_id=renter_id)
        db.add(row)
    row.draft_json = draft_json
    row.updated_at = datetime.utcnow()

    db.commit()
    log.info("renter draft saved", extra={"renter_id": renter_id})
    return row


def get_renter_draft(db: Session, *, renter_id: str) -> Optional[dict[str, Any]]:
    row = db.get(RenterDraft, renter_id)
    if row is None:
        return None
    try:
        parsed = json.loads(row.draft_json)
    except ValueError:
        log.warning("unreadable renter draft", extra={"renter_id": renter_id})
        return None
    return parsed if isinstance(parsed, dict) else None
