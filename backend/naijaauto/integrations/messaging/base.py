from __future__ import annotations

from dataclasses import dataclass


@dataclass
class MessageResult:
    ok: bool
    message_id: str = ""
    mocked: bool = False
    code: str = ""
    message: str = ""
    raw: dict | None = None


def otp_message(code: str) -> str:
    return f"Your NaijaAuto verification code is {code}."


class MessagingProvider:
    name = "unknown"

    def send_otp(self, *, to: str, code: str) -> MessageResult:
        raise NotImplementedError
