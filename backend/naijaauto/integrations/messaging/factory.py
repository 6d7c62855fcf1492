from __future__ import annotations

from naijaauto.integrations.common import IntegrationMisconfiguredError
from naijaauto.integrations.messaging.base import MessagingProvider
from naijaauto.integrations.messaging.mock_provider import MockMessagingProvider
from naijaauto.integrations.messaging.termii_provider import TermiiMessagingProvider


def build_messaging_provider(settings) -> MessagingProvider:
    api_key = (getattr(settings, "termii_api_key", "") or "").strip()
    is_production = bool(getattr(settings, "is_production", False))
    if not api_key:
        if is_production:
            raise IntegrationMisconfiguredError("INTEGRATION_MISCONFIGURED:missing TERMII_API_KEY")
        return MockMessagingProvider()
    sender = (getattr(settings, "termii_sender_id", "") or "NaijaAuto").strip()
    return TermiiMessagingProvider(api_key=api_key, sender_id=sender, strict=is_production)
