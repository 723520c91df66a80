from __future__ import annotations

from dataclasses import dataclass


@dataclass
class MailResult:
    ok: bool
    code: str = ""
    message: str = ""
    raw: dict | None = None


class MailProvider:
    name = "unknown"

    def send(self, *, to: str, subject: str, body: str, reference: str = "") -> MailResult:
        raise NotImplementedError
