from __future__ import annotations

import requests

from naijaauto.integrations.common import IntegrationError
from naijaauto.integrations.mail.base import Mailer, MailResult


RESEND_URL = "https://api.resend.com/emails"


class ResendMailer(Mailer):
    name = "resend"

    def __init__(self, *, api_key: str, sender: str):
        self.api_key = api_key
        self.sender = sender

    def send(self, *, to: str, subject: str, html: str) -> MailResult:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        try:
            r = requests.post(RESEND_URL, headers=headers, json=payload, timeout=15)
        except requests.RequestException as e:
            raise IntegrationError(f"RESEND_SEND_FAILED:{e}") from e
        if r.status_code < 200 or r.status_code >= 300:
            raise IntegrationError(f"RESEND_SEND_FAILED:HTTP {r.status_code}")
        try:
            data = r.json() if r.content else {}
        except ValueError:
            data = {}
        return MailResult(ok=True, provider=self.name, message_id=str((data or {}).get("id") or ""))
