# backend/app/clients/sendgrid.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from ..config import settings

log = logging.getLogger("trustrent.email")


@dataclass(frozen=True)
class SendResult:
    ok: bool
    status_code: Optional[int] = None
    raw: dict[str, Any] = field(default_factory=dict)


class SendGridClient:
    def __init__(self, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.base = settings.sendgrid_base_url.rstrip("/")
        self.api_key = settings.sendgrid_api_key
        self.from_email = settings.sendgrid_from_email
        self.timeout = float(settings.sendgrid_timeout_seconds)
        self._transport = transport

    def enabled(self) -> bool:
        return bool(self.api_key and self.from_email)

    def send(self, *, to_email: str, subject: str, html: str) -> SendResult:
        if not self.enabled():
            log.warning("sendgrid not configured; skipping email", extra={"to": to_email})
            return SendResult(False, None, {"error": "sendgrid_api_key or sendgrid_from_email not set"})

        url = f"{self.base}/mail/send"
        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {"email": self.from_email},
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                r = client.post(url, json=payload, headers=headers)
                r.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error(
                "sendgrid rejected email",
                extra={"to": to_email, "status_code": e.response.status_code},
            )
            return SendResult(False, e.response.status_code, {"error": e.response.text})
        except httpx.HTTPError as e:
            log.error("sendgrid request failed", extra={"to": to_email, "error": str(e)})
            return SendResult(False, None, {"error": str(e), "endpoint": url})

        return SendResult(True, r.status_code, {})
