from __future__ import annotations

from naijaauto.integrations.mail.base import Mailer
from naijaauto.integrations.mail.null_provider import NullMailer
from naijaauto.integrations.mail.queued_provider import QueuedMailer
from naijaauto.integrations.mail.resend_provider import ResendMailer


def build_direct_mailer(settings) -> Mailer:
    api_key = (getattr(settings, "resend_api_key", "") or "").strip()
    if not api_key:
        return NullMailer()
    return ResendMailer(api_key=api_key, sender=getattr(settings, "email_from", "") or "noreply@naijaauto.app")


def build_mailer(settings) -> Mailer:
    if bool(getattr(settings, "email_queue_enabled", False)) and (getattr(settings, "resend_api_key", "") or "").strip():
        return QueuedMailer(fallback=build_direct_mailer(settings))
    return build_direct_mailer(settings)
