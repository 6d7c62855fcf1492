from __future__ import annotations

from naijaauto.integrations.common import IntegrationMisconfiguredError
from naijaauto.integrations.payments.base import PaymentsProvider
from naijaauto.integrations.payments.mock_provider import MockPaymentsProvider
from naijaauto.integrations.payments.paystack_provider import PaystackPaymentsProvider


def build_payments_provider(settings) -> PaymentsProvider:
    secret_key = (getattr(settings, "paystack_secret_key", "") or "").strip()
    if secret_key:
        return PaystackPaymentsProvider(secret_key=secret_key)
    if bool(getattr(settings, "is_production", False)):
        raise IntegrationMisconfiguredError("INTEGRATION_MISCONFIGURED:missing PAYSTACK_SECRET_KEY")
    return MockPaymentsProvider(app_url=getattr(settings, "app_url", "") or "")
