from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from naijaauto.integrations.messaging.base import MessagingProvider
from naijaauto.services.common import RequestUser, ServiceContext, require_user
from naijaauto.services.errors import NotFound, TooManyAttempts, ValidationFailed
from naijaauto.services.validation import parse_send_otp, parse_verify_otp
from naijaauto.utils.security import generate_otp_code, safe_compare_hex, sha256_hex

logger = logging.getLogger(__name__)


@dataclass
class PhoneVerificationService:
    ctx: ServiceContext
    sms: MessagingProvider
    ttl_minutes: int = 10
    max_attempts: int = 5
    expose_debug_code: bool = False

    def send_phone_otp(self, user: RequestUser | None, payload) -> dict:
        user = require_user(user)
        data = parse_send_otp(payload)
        phone = data["phone"]
        self.ctx.sync_actor(user)

        code = generate_otp_code()
        otp = self.ctx.repo.create_otp(
            user_id=user.id,
            phone=phone,
            code_hash=sha256_hex(code),
            expires_at=self.ctx.now() + timedelta(minutes=self.ttl_minutes),
            max_attempts=self.max_attempts,
        )
        result = self.sms.send_otp(to=phone, code=code)
        self.ctx.audit(
            "phone_otp_sent",
            entity_type="user",
            entity_id=user.id,
            actor=user.id,
            phone=phone,
            otp_id=otp.id,
            mocked_provider=bool(result.mocked),
        )
        logger.info("phone_otp_sent user_id=%s provider=%s mocked=%s", user.id, self.sms.name, result.mocked)
        response = {"phone": phone, "message_id": result.message_id, "expires_at": otp.expires_at.isoformat()}
        if self.expose_debug_code:
            response["debug_code"] = code
        return response

    def verify_phone_otp(self, user: RequestUser | None, payload) -> dict:
        user = require_user(user)
        data = parse_verify_otp(payload)
        phone = data["phone"]
        self.ctx.sync_actor(user)

        otp = self.ctx.repo.get_latest_otp(user.id, phone)
        if otp is None:
            raise NotFound("OTP request was not found for this phone number.", code="OTP_NOT_FOUND")
        if otp.verified_at is not None:
            return {"verified": True, "phone": phone}
        if otp.expires_at < self.ctx.now():
            raise ValidationFailed("OTP has expired. Please request a new code.", code="OTP_EXPIRED")
        if int(otp.attempts or 0) >= int(otp.max_attempts or 0):
            raise TooManyAttempts("Too many OTP attempts. Request a new code.", code="OTP_TOO_MANY_ATTEMPTS")

        if not safe_compare_hex(sha256_hex(data["code"]), otp.code_hash):
            self.ctx.repo.increment_otp_attempts(otp.id)
            logger.info("phone_otp_mismatch user_id=%s attempts=%s", user.id, int(otp.attempts or 0) + 1)
            raise ValidationFailed("Invalid OTP code.", code="OTP_INVALID")

        self.ctx.repo.mark_otp_verified(otp.id)
        self.ctx.repo.mark_phone_verified(user.id, phone)
        self.ctx.audit("phone_verified", entity_type="user", entity_id=user.id, actor=user.id, phone=phone)
        logger.info("phone_verified user_id=%s", user.id)
        return {"verified": True, "phone": phone}
