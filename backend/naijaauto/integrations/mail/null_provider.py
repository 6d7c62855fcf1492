from __future__ import annotations

import logging

from naijaauto.integrations.mail.base import Mailer, MailResult

logger = logging.getLogger(__name__)


class NullMailer(Mailer):
    name = "null"

    def send(self, *, to: str, subject: str, html: str) -> MailResult:
        logger.info("mail_skipped_unconfigured subject=%s", subject)
        return MailResult(ok=True, provider=self.name, skipped=True)
