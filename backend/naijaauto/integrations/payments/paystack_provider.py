from __future__ import annotations

import requests

from naijaauto.integrations.common import IntegrationError
from naijaauto.integrations.payments.base import PaymentsProvider, PaymentInitializeResult
from naijaauto.utils.security import hmac_sha512_hex, safe_compare_hex


PAYSTACK_BASE = "https://api.paystack.co"


class PaystackPaymentsProvider(PaymentsProvider):
    name = "paystack"

    def __init__(self, secret_key: str):
        self.secret_key = secret_key

    def initialize_transaction(self, *, email, amount_kobo, reference, callback_url, metadata=None) -> PaymentInitializeResult:
        payload = {
            "email": email,
            "amount": int(amount_kobo),
            "reference": reference,
            "callback_url": callback_url,
            "metadata": metadata or {},
        }
        headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }
        try:
            r = requests.post(f"{PAYSTACK_BASE}/transaction/initialize", headers=headers, json=payload, timeout=25)
        except requests.RequestException as e:
            raise IntegrationError(f"PAYSTACK_INIT_FAILED:{e}") from e
        try:
            j = r.json() if r.content else {}
        except ValueError:
            j = {}
        if r.status_code < 200 or r.status_code >= 300 or j.get("status") is not True:
            msg = str(j.get("message") or f"HTTP {r.status_code}").strip()
            raise IntegrationError(f"PAYSTACK_INIT_FAILED:{msg}")
        data = j.get("data") or {}
        return PaymentInitializeResult(
            authorization_url=str(data.get("authorization_url") or "").strip(),
            access_code=str(data.get("access_code") or "").strip(),
            reference=str(data.get("reference") or reference).strip(),
            provider=self.name,
            mocked=False,
            raw=j if isinstance(j, dict) else {"payload": j},
        )

    def verify_webhook_signature(self, raw_body, signature) -> bool:
        if not signature:
            return False
        expected = hmac_sha512_hex(self.secret_key, raw_body or b"")
        return safe_compare_hex(expected, signature)
