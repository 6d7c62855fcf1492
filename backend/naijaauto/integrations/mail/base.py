from __future__ import annotations

from dataclasses import dataclass


@dataclass
class MailResult:
    ok: bool
    provider: str
    message_id: str = ""
    skipped: bool = False


class Mailer:
    name = "unknown"

    def send(self, *, to: str, subject: str, html: str) -> MailResult:
        raise NotImplementedError
