from __future__ import annotations

import logging

from naijaauto.integrations.mail.base import Mailer, MailResult

logger = logging.getLogger(__name__)


class QueuedMailer(Mailer):
    """Hands delivery to the Celery mail task; the worker owns retries.

    When the broker refuses the task, the message is sent inline through
    ``fallback`` instead.
    """

    name = "queued"

    def __init__(self, fallback: Mailer | None = None):
        self.fallback = fallback

    def send(self, *, to: str, subject: str, html: str) -> MailResult:
        from naijaauto.tasks.mail_tasks import send_email_task

        try:
            async_result = send_email_task.delay(to=to, subject=subject, html=html)
        except Exception as e:
            if self.fallback is None:
                raise
            logger.warning("mail_enqueue_failed_sending_inline subject=%s err=%s", subject, e)
            return self.fallback.send(to=to, subject=subject, html=html)
        return MailResult(ok=True, provider=self.name, message_id=str(getattr(async_result, "id", "") or ""))
