from __future__ import annotations

import logging

from naijaauto.integrations.common import epoch_ms
from naijaauto.integrations.messaging.base import MessagingProvider, MessageResult

logger = logging.getLogger(__name__)


class MockMessagingProvider(MessagingProvider):
    name = "mock"

    def send_otp(self, *, to: str, code: str) -> MessageResult:
        logger.info("mock_sms_otp to=%s", to)
        return MessageResult(ok=True, message_id=f"mock-{epoch_ms()}", mocked=True, code="OK", message="mock_sent")
