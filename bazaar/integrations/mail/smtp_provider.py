from __future__ import annotations

import os
import smtplib
from email.message import EmailMessage

from bazaar.integrations.mail.base import MailProvider, MailResult


class SmtpMailProvider(MailProvider):
    name = "smtp"

    def __init__(self, *, host: str, port: int = 587, user: str = "", password: str = "", sender: str = "", reply_to: str = "", timeout: int = 10):
        self.host = host
        self.port = int(port)
        self.user = user
        self.password = password
        self.sender = sender or user or "no-reply@bazaar.local"
        self.reply_to = reply_to
        self.timeout = int(timeout)

    def send(self, *, to: str, subject: str, body: str, reference: str = "") -> MailResult:
        if not to:
            return MailResult(ok=False, code="MAIL_NO_RECIPIENT", message="recipient is required")
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        if self.reply_to:
            msg["Reply-To"] = self.reply_to
        msg.set_content(body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.ehlo()
                try:
                    server.starttls()
                except smtplib.SMTPNotSupportedError:
                    pass
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            return MailResult(ok=False, code="SMTP_SEND_FAILED", message=str(exc)[:200])
        return MailResult(ok=True, code="OK", message="sent", raw={"to": to, "reference": reference})


def smtp_health() -> dict:
    missing = []
    if not (os.getenv("SMTP_HOST") or "").strip():
        missing.append("SMTP_HOST")
    if not ((os.getenv("SMTP_FROM") or "").strip() or (os.getenv("SMTP_USER") or "").strip()):
        missing.append("SMTP_FROM")
    return {"missing": missing}
