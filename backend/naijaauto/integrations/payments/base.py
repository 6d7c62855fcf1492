from __future__ import annotations

from dataclasses import dataclass


@dataclass
class PaymentInitializeResult:
    authorization_url: str
    access_code: str
    reference: str
    provider: str
    mocked: bool = False
    raw: dict | None = None


class PaymentsProvider:
    name = "unknown"

    def initialize_transaction(
        self,
        *,
        email: str,
        amount_kobo: int,
        reference: str,
        callback_url: str,
        metadata: dict | None = None,
    ) -> PaymentInitializeResult:
        raise NotImplementedError

    def verify_webhook_signature(self, raw_body: bytes, signature: str | None) -> bool:
        raise NotImplementedError
