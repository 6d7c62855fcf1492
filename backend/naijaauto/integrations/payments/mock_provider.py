from __future__ import annotations

from urllib.parse import quote

from naijaauto.integrations.common import epoch_ms
from naijaauto.integrations.payments.base import PaymentsProvider, PaymentInitializeResult


class MockPaymentsProvider(PaymentsProvider):
    """Stand-in used outside production when no Paystack secret is configured.

    Webhook signatures cannot be checked without a secret, so every delivery
    is accepted.
    """

    name = "mock"

    def __init__(self, *, app_url: str):
        self.app_url = (app_url or "").rstrip("/")

    def initialize_transaction(self, *, email, amount_kobo, reference, callback_url, metadata=None) -> PaymentInitializeResult:
        url = f"{self.app_url}/seller/dashboard?mock_payment=1&reference={quote(reference)}"
        return PaymentInitializeResult(
            authorization_url=url,
            access_code=f"mock_access_{epoch_ms()}",
            reference=reference,
            provider=self.name,
            mocked=True,
            raw={
                "email": email,
                "amount": int(amount_kobo),
                "callback_url": callback_url,
                "metadata": metadata or {},
            },
        )

    def verify_webhook_signature(self, raw_body, signature) -> bool:
        return True
