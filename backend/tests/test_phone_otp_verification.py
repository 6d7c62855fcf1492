from __future__ import annotations

import unittest

from naijaauto.config import Settings
from naijaauto.services.errors import NotFound, TooManyAttempts, Unauthenticated, ValidationFailed

from marketplace_fixtures import FixedClock, build_marketplace, seller


PHONE = "+2348031234567"


class PhoneOtpVerificationTestCase(unittest.TestCase):
    def setUp(self):
        self.clock = FixedClock()
        self.svc = build_marketplace(clock=self.clock)
        self.user = seller("otp-seller")

    def _wrong(self, code: str) -> str:
        return "000000" if code != "000000" else "111111"

    def test_send_returns_debug_code_outside_production(self):
        res = self.svc.send_phone_otp(self.user, {"phone": PHONE})
        self.assertEqual(res["phone"], PHONE)
        self.assertTrue(res["message_id"].startswith("mock-"))
        self.assertRegex(res["debug_code"], r"^\d{6}$")
        audit = [entry for entry in self.svc.repo.list_audit_logs(self.user.id) if entry.action == "phone_otp_sent"]
        self.assertEqual(len(audit), 1)
        self.assertTrue(audit[0].metadata["mocked_provider"])

    def test_production_never_exposes_the_code(self):
        svc = build_marketplace(settings=Settings(env="production", secret_key="x" * 32))
        res = svc.send_phone_otp(self.user, {"phone": PHONE})
        self.assertNotIn("debug_code", res)

    def test_stored_code_is_hashed(self):
        code = self.svc.send_phone_otp(self.user, {"phone": PHONE})["debug_code"]
        otp = self.svc.repo.get_latest_otp(self.user.id, PHONE)
        self.assertNotEqual(otp.code_hash, code)
        self.assertEqual(len(otp.code_hash), 64)

    def test_correct_code_marks_phone_verified(self):
        code = self.svc.send_phone_otp(self.user, {"phone": PHONE})["debug_code"]
        res = self.svc.verify_phone_otp(self.user, {"phone": PHONE, "code": code})
        self.assertEqual(res, {"verified": True, "phone": PHONE})
        stored = self.svc.repo.get_user_by_id(self.user.id)
        self.assertTrue(stored.phone_verified)
        self.assertEqual(stored.phone, PHONE)
        # Verifying again is idempotent.
        self.assertTrue(self.svc.verify_phone_otp(self.user, {"phone": PHONE, "code": code})["verified"])

    def test_wrong_code_counts_an_attempt(self):
        code = self.svc.send_phone_otp(self.user, {"phone": PHONE})["debug_code"]
        with self.assertRaises(ValidationFailed) as ctx:
            self.svc.verify_phone_otp(self.user, {"phone": PHONE, "code": self._wrong(code)})
        self.assertEqual(ctx.exception.code, "OTP_INVALID")
        self.assertEqual(self.svc.repo.get_latest_otp(self.user.id, PHONE).attempts, 1)

    def test_five_wrong_guesses_lock_out_even_the_correct_code(self):
        code = self.svc.send_phone_otp(self.user, {"phone": PHONE})["debug_code"]
        for _ in range(5):
            with self.assertRaises(ValidationFailed):
                self.svc.verify_phone_otp(self.user, {"phone": PHONE, "code": self._wrong(code)})
        with self.assertRaises(TooManyAttempts) as ctx:
            self.svc.verify_phone_otp(self.user, {"phone": PHONE, "code": code})
        self.assertEqual(ctx.exception.status, 429)
        self.assertEqual(ctx.exception.code, "OTP_TOO_MANY_ATTEMPTS")
        self.assertFalse(self.svc.repo.get_user_by_id(self.user.id).phone_verified)

    def test_expired_code_is_rejected(self):
        code = self.svc.send_phone_otp(self.user, {"phone": PHONE})["debug_code"]
        self.clock.advance(minutes=10, seconds=1)
        with self.assertRaises(ValidationFailed) as ctx:
            self.svc.verify_phone_otp(self.user, {"phone": PHONE, "code": code})
        self.assertEqual(ctx.exception.code, "OTP_EXPIRED")

    def test_new_request_supersedes_previous_code(self):
        first = self.svc.send_phone_otp(self.user, {"phone": PHONE})["debug_code"]
        self.clock.advance(seconds=30)
        second = self.svc.send_phone_otp(self.user, {"phone": PHONE})["debug_code"]
        if first != second:
            with self.assertRaises(ValidationFailed):
                self.svc.verify_phone_otp(self.user, {"phone": PHONE, "code": first})
        self.assertTrue(self.svc.verify_phone_otp(self.user, {"phone": PHONE, "code": second})["verified"])

    def test_unknown_phone_has_no_otp(self):
        with self.assertRaises(NotFound) as ctx:
            self.svc.verify_phone_otp(self.user, {"phone": "+2348000000000", "code": "123456"})
        self.assertEqual(ctx.exception.code, "OTP_NOT_FOUND")

    def test_anonymous_caller_is_rejected(self):
        with self.assertRaises(Unauthenticated):
            self.svc.send_phone_otp(None, {"phone": PHONE})


if __name__ == "__main__":
    unittest.main()
