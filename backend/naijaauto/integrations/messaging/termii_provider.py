from __future__ import annotations

import logging

import requests

from naijaauto.integrations.common import IntegrationError, epoch_ms
from naijaauto.integrations.messaging.base import MessagingProvider, MessageResult, otp_message

logger = logging.getLogger(__name__)


TERMII_BASE = "https://api.ng.termii.com/api"


def _map_termii_error(status: int, message: str) -> str:
    msg = (message or "").lower()
    if status in (401, 403):
        return "TERMII_AUTH_FAILED"
    if status == 429:
        return "TERMII_RATE_LIMITED"
    if status in (400, 422):
        if "sender" in msg:
            return "TERMII_INVALID_SENDER"
        return "TERMII_INVALID_RECIPIENT"
    return "TERMII_PROVIDER_DOWN"


class TermiiMessagingProvider(MessagingProvider):
    """Termii SMS sender.

    With ``strict`` unset (non-production), delivery failures degrade to a
    mocked success so local OTP flows keep working; with ``strict`` set they
    raise :class:`IntegrationError`.
    """

    name = "termii"

    def __init__(self, *, api_key: str, sender_id: str, strict: bool = False):
        self.api_key = api_key
        self.sender_id = sender_id
        self.strict = strict

    def _failed(self, code: str, detail: str) -> MessageResult:
        if self.strict:
            raise IntegrationError(f"{code}:{detail}")
        logger.warning("termii_send_failed_fallback code=%s detail=%s", code, detail)
        return MessageResult(ok=True, message_id=f"mock-{epoch_ms()}", mocked=True, code=code, message=detail)

    def send_otp(self, *, to: str, code: str) -> MessageResult:
        payload = {
            "to": (to or "").strip(),
            "from": self.sender_id,
            "sms": otp_message(code),
            "type": "plain",
            "channel": "generic",
            "api_key": self.api_key,
        }
        try:
            r = requests.post(f"{TERMII_BASE}/sms/send", json=payload, timeout=12)
        except requests.RequestException as e:
            return self._failed("TERMII_PROVIDER_DOWN", str(e)[:200])
        try:
            data = r.json() if r.content else {}
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {"payload": data}
        if 200 <= r.status_code < 300:
            message_id = str(data.get("message_id") or data.get("messageId") or "")
            return MessageResult(ok=True, message_id=message_id, mocked=False, code="OK", message="sent", raw=data)
        detail = str(data.get("message") or data.get("error") or f"http_{r.status_code}")[:200]
        return self._failed(_map_termii_error(r.status_code, detail), detail)
