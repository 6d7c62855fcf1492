from __future__ import annotations

import json
import os
from datetime import datetime, timezone

from celery import Celery
from celery.signals import task_failure, task_retry


DEFAULT_QUEUE = "naijaauto"
MAIL_QUEUE = "naijaauto-mail"

_observers_bound = False


def _first_env(*names: str, default: str = "") -> str:
    for name in names:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return default


def _task_event(event: str, **fields) -> str:
    payload = {"event": event, "timestamp": datetime.now(timezone.utc).isoformat()}
    payload.update(fields)
    return json.dumps(payload)


def _bind_task_observers(flask_app) -> None:
    global _observers_bound
    if _observers_bound:
        return

    @task_failure.connect(weak=False)
    def _on_task_failure(sender=None, task_id=None, exception=None, **extra):
        flask_app.logger.error(_task_event(
            "celery_task_failure",
            task_name=getattr(sender, "name", "") or "",
            task_id=str(task_id or ""),
            exception=str(exception or ""),
        ))

    @task_retry.connect(weak=False)
    def _on_task_retry(request=None, reason=None, **extra):
        flask_app.logger.warning(_task_event(
            "celery_task_retry",
            task_name=str(getattr(request, "task", "") or ""),
            task_id=str(getattr(request, "id", "") or ""),
            reason=str(reason or ""),
            retry_count=int(getattr(request, "retries", 0) or 0),
        ))

    _observers_bound = True


def create_celery_app(flask_app) -> Celery:
    """Celery bound to ``flask_app``; every task body runs inside its app context."""
    broker = _first_env("CELERY_BROKER_URL", "REDIS_URL", default="redis://localhost:6379/0")
    backend = _first_env("CELERY_RESULT_BACKEND", "REDIS_URL", default=broker)
    celery = Celery("naijaauto", broker=broker, backend=backend)
    celery.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        result_expires=60 * 60 * 24,
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        broker_connection_retry_on_startup=True,
        task_default_queue=DEFAULT_QUEUE,
        task_routes={"naijaauto.tasks.mail_tasks.*": {"queue": MAIL_QUEUE}},
        timezone="UTC",
        enable_utc=True,
    )

    class FlaskContextTask(celery.Task):
        def __call__(self, *args, **kwargs):
            with flask_app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = FlaskContextTask
    celery.set_default()
    celery.autodiscover_tasks(["naijaauto.tasks"], related_name="mail_tasks")
    _bind_task_observers(flask_app)
    return celery
