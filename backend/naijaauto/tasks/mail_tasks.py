from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone

from celery import shared_task

from naijaauto.config import Settings
from naijaauto.integrations.common import IntegrationError
from naijaauto.integrations.mail.factory import build_direct_mailer

logger = logging.getLogger(__name__)


def _task_log(task_name: str, *, status: str, started_at: float, **extra):
    duration_ms = int(max(0.0, (time.perf_counter() - float(started_at))) * 1000.0)
    payload = {
        "task_name": task_name,
        "status": status,
        "duration_ms": duration_ms,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    payload.update(extra or {})
    logger.info(json.dumps(payload))


def _retry_countdown(retries: int) -> int:
    # Exponential backoff with cap.
    return int(min(900, max(5, 5 * (2 ** int(max(0, retries))))))


@shared_task(
    bind=True,
    name="naijaauto.tasks.mail_tasks.send_email",
    max_retries=5,
)
def send_email_task(self, *, to: str, subject: str, html: str):
    started = time.perf_counter()
    mailer = build_direct_mailer(Settings.from_env())
    try:
        result = mailer.send(to=to, subject=subject, html=html)
    except IntegrationError as e:
        countdown = _retry_countdown(int(self.request.retries or 0))
        _task_log("send_email", status="retrying", started_at=started, subject=subject, detail=str(e), countdown=countdown)
        raise self.retry(exc=e, countdown=countdown)
    _task_log("send_email", status="ok", started_at=started, subject=subject, provider=result.provider, skipped=result.skipped)
    return {"ok": True, "provider": result.provider, "message_id": result.message_id}
