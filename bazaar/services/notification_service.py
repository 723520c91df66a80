from __future__ import annotations

import logging

from bazaar.extensions import db
from bazaar.models import Notification, User
from bazaar.tasks import background_tasks_enabled
from bazaar.utils.observability import get_request_id


logger = logging.getLogger(__name__)


def _enqueue_delivery(notification_id: int) -> None:
    if not background_tasks_enabled():
        return
    try:
        from bazaar.tasks.notification_tasks import deliver_notification

        deliver_notification.delay(int(notification_id), trace_id=get_request_id())
    except Exception:
        logger.exception("notification_enqueue_failed notification_id=%s", int(notification_id))


def notify_user(user_id: int, *, title: str, message: str, meta: dict | None = None, email: bool = True) -> list[int]:
    """Queue an in-app notice and, optionally, an email for the user.

    Never raises: callers have already committed the state change the
    notice describes.
    """
    created: list[int] = []
    try:
        user = db.session.get(User, int(user_id))
        if user is None:
            logger.warning("notification_skipped_missing_user user_id=%s", user_id)
            return created
        channels = ["in_app"]
        if email and (user.email or "").strip():
            channels.append("email")
        rows = []
        for channel in channels:
            row = Notification(
                user_id=int(user.id),
                channel=channel,
                title=(title or "")[:160],
                message=message or "",
                status="queued" if channel == "email" else "sent",
                provider="internal" if channel == "in_app" else None,
            )
            row.set_meta(meta or {})
            db.session.add(row)
            rows.append(row)
        db.session.commit()
        created = [int(row.id) for row in rows]
    except Exception:
        db.session.rollback()
        logger.exception("notification_create_failed user_id=%s", user_id)
        return created

    for row in rows:
        if row.channel == "email":
            _enqueue_delivery(int(row.id))
    return created


def notify_listing_owner(post, *, title: str, message: str, action: str) -> list[int]:
    return notify_user(
        int(post.owner_id),
        title=title,
        message=message,
        meta={"post_id": int(post.id), "action": action},
    )
