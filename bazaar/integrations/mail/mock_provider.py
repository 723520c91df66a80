from __future__ import annotations

import os

from bazaar.integrations.mail.base import MailProvider, MailResult


class MockMailProvider(MailProvider):
    name = "mock"

    def __init__(self):
        self.outbox: list[dict] = []

    def _force_failure(self, subject: str) -> bool:
        return "[fail]" in (subject or "").lower() or (os.getenv("MOCK_MAIL_FORCE_FAIL") or "").strip() == "1"

    def send(self, *, to: str, subject: str, body: str, reference: str = "") -> MailResult:
        if self._force_failure(subject):
            return MailResult(ok=False, code="MAIL_PROVIDER_DOWN", message="mock forced failure")
        self.outbox.append({"to": to, "subject": subject, "body": body, "reference": reference})
        return MailResult(ok=True, code="OK", message="mock_sent", raw={"to": to, "reference": reference})
