from bazaar.integrations.mail.base import MailProvider, MailResult
from bazaar.integrations.mail.factory import build_mail_provider, mail_health

__all__ = ["MailProvider", "MailResult", "build_mail_provider", "mail_health"]
