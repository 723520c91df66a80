from __future__ import annotations

import os

from bazaar.integrations.common import IntegrationDisabledError, IntegrationMisconfiguredError
from bazaar.integrations.mail.base import MailProvider
from bazaar.integrations.mail.mock_provider import MockMailProvider
from bazaar.integrations.mail.smtp_provider import SmtpMailProvider, smtp_health


def build_mail_provider(provider: str | None = None) -> MailProvider:
    mode = (provider or os.getenv("MAIL_PROVIDER") or "mock").strip().lower()
    if mode == "disabled":
        raise IntegrationDisabledError("INTEGRATION_DISABLED:mail")
    if mode == "mock":
        return MockMailProvider()
    if mode != "smtp":
        raise IntegrationMisconfiguredError(f"INTEGRATION_MISCONFIGURED:unknown mail provider '{mode}'")

    missing = smtp_health().get("missing", [])
    if missing:
        raise IntegrationMisconfiguredError(f"INTEGRATION_MISCONFIGURED:missing {', '.join(missing)}")
    smtp_user = (os.getenv("SMTP_USER") or "").strip()
    return SmtpMailProvider(
        host=(os.getenv("SMTP_HOST") or "").strip(),
        port=int((os.getenv("SMTP_PORT") or "587").strip() or 587),
        user=smtp_user,
        password=(os.getenv("SMTP_PASS") or "").strip(),
        sender=(os.getenv("SMTP_FROM") or smtp_user).strip(),
        reply_to=(os.getenv("SMTP_REPLY_TO") or "").strip(),
    )


def mail_health() -> dict:
    mode = (os.getenv("MAIL_PROVIDER") or "mock").strip().lower()
    missing = smtp_health().get("missing", []) if mode == "smtp" else []
    if mode == "disabled":
        status = "disabled"
    elif missing:
        status = "misconfigured"
    else:
        status = "configured"
    return {"status": status, "provider": mode, "missing": missing}
