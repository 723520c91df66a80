from __future__ import annotations

import time
from datetime import datetime

from celery import shared_task

from bazaar.extensions import db
from bazaar.integrations.mail import build_mail_provider
from bazaar.models import Notification, User
from bazaar.tasks._common import _retry_countdown, _task_log


class MailDeliveryFailed(RuntimeError):
    pass


@shared_task(bind=True, name="bazaar.tasks.notification_tasks.deliver_notification", max_retries=5)
def deliver_notification(self, notification_id: int, trace_id: str = ""):
    started = time.perf_counter()
    row = db.session.get(Notification, int(notification_id))
    if row is None:
        _task_log("deliver_notification", status="missing", started_at=started, trace_id=trace_id, notification_id=int(notification_id))
        return {"ok": False, "missing": True}
    if row.status == "sent":
        return {"ok": True, "skipped": "already_sent"}

    user = db.session.get(User, int(row.user_id))
    recipient = (user.email or "").strip() if user is not None else ""
    provider = build_mail_provider()
    try:
        result = provider.send(
            to=recipient,
            subject=row.title or "Bazaar notice",
            body=row.message or "",
            reference=f"notification:{int(row.id)}",
        )
        if not result.ok:
            raise MailDeliveryFailed(f"{result.code}:{result.message}")
    except MailDeliveryFailed as exc:
        if int(self.request.retries or 0) < int(self.max_retries or 0):
            countdown = _retry_countdown(int(self.request.retries or 0))
            _task_log(
                "deliver_notification",
                status="retrying",
                started_at=started,
                trace_id=trace_id,
                notification_id=int(row.id),
                countdown=countdown,
                detail=str(exc),
            )
            raise self.retry(exc=exc, countdown=countdown)
        row.status = "failed"
        row.provider = provider.name
        db.session.commit()
        _task_log("deliver_notification", status="failed", started_at=started, trace_id=trace_id, notification_id=int(row.id), detail=str(exc))
        raise

    row.status = "sent"
    row.provider = provider.name
    row.provider_ref = str((result.raw or {}).get("reference") or "")[:120]
    row.sent_at = datetime.utcnow()
    db.session.commit()
    _task_log("deliver_notification", status="sent", started_at=started, trace_id=trace_id, notification_id=int(row.id))
    return {"ok": True, "notification_id": int(row.id)}
