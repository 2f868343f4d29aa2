# backend/app/domain/access_tokens.py
from __future__ import annotations

import logging
import secrets
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import AllocationExhausted
from ..models import RenterInvitation

log = logging.getLogger("trustrent.tokens")

# randbelow(n) -> int in [0, n)
RandBelow = Callable[[int], int]


# Wire format: exactly this many ASCII digits.
TOKEN_LENGTH = 6


def is_valid_token_format(value: object) -> bool:
    if not isinstance(value, str):
        return False
    return len(value) == TOKEN_LENGTH and value.isascii() and value.isdigit()


def generate_access_token(randbelow: Optional[RandBelow] = None) -> str:
    """Uniform over the whole fixed-width space, zero-padded ("042017")."""
    width = TOKEN_LENGTH
    draw = randbelow or secrets.randbelow
    return str(int(draw(10**width))).zfill(width)


def token_in_use(db: Session, token: str) -> bool:
    return db.scalar(select(RenterInvitation.id).where(RenterInvitation.access_token == token)) is not None


def allocate_access_token(
    db: Session,
    *,
    randbelow: Optional[RandBelow] = None,
    max_attempts: Optional[int] = None,
) -> str:
    """
    Returns a token no invitation currently holds.

    Only checks; never inserts. The caller must insert the invitation in the
    same transaction (and flush before allocating again) so the check and the
    use cannot interleave with another writer. The unique index on
    renter_invitations.access_token backs this up.
    """
    attempts = int(max_attempts if max_attempts is not None else settings.token_max_attempts)

    for attempt in range(1, attempts + 1):
        token = generate_access_token(randbelow)
        if not token_in_use(db, token):
            return token
        log.warning("access token collision", extra={"attempt": attempt})

    log.error("access token allocation exhausted", extra={"attempts": attempts})
    raise AllocationExhausted(
        "Unable to allocate a unique access token. Please try again.",
    )
