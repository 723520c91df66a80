"""Listing moderation state machine and account moderation.

Every listing is in exactly one of the ModerationState values. Transitions
are looked up in ALLOWED; anything not listed raises InvalidTransitionError.
Reports do not change state, they only move `report_count` and the
reporter set.
"""
from __future__ import annotations

import logging

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError

from bazaar.errors import AuthorizationFailure, InvalidTransitionError, ValidationFailure
from bazaar.extensions import db
from bazaar.integrations.assets import get_asset_store
from bazaar.models import (
    AccountStatus,
    ModerationState,
    ModerationTransition,
    Post,
    PostReport,
    User,
)
from bazaar.services import listing_deletion
from bazaar.services.notification_service import notify_listing_owner, notify_user
from bazaar.utils.auth import Actor, require_moderator
from bazaar.utils.results import fail, success


logger = logging.getLogger(__name__)


class Action:
    SUBMIT = "submit"
    APPROVE = "approve"
    DECLINE = "decline"
    REPORT = "report"
    WITHDRAW_REPORT = "withdraw_report"
    FEEDBACK = "feedback"
    DELETE = "delete"


_KEEP_STATE = (Action.REPORT, Action.WITHDRAW_REPORT, Action.FEEDBACK)


def _live_state(state: str) -> dict:
    table = {Action.SUBMIT: ModerationState.REVIEW, Action.DELETE: ModerationState.DELETED}
    for action in _KEEP_STATE:
        table[action] = state
    return table


ALLOWED = {
    ModerationState.REVIEW: {
        **_live_state(ModerationState.REVIEW),
        Action.APPROVE: ModerationState.APPROVED,
        Action.DECLINE: ModerationState.DECLINED,
    },
    ModerationState.APPROVED: _live_state(ModerationState.APPROVED),
    ModerationState.DECLINED: _live_state(ModerationState.DECLINED),
    ModerationState.DELETED: {},
}


def next_state(current: str, action: str) -> str:
    state = (current or ModerationState.REVIEW).strip().lower()
    target = ALLOWED.get(state, {}).get(action)
    if target is None:
        raise InvalidTransitionError(state, action)
    return target


def transition_row(post_id: int, action: str, from_state: str, to_state: str, actor: Actor | None, reason: str = "") -> ModerationTransition:
    return ModerationTransition(
        post_id=int(post_id),
        action=action,
        from_state=from_state or "",
        to_state=to_state,
        actor_id=int(actor.user_id) if actor is not None else None,
        actor_role=(actor.role if actor is not None else "system")[:32],
        reason=(reason or "")[:500] or None,
    )


def _load_live_post(post_id: int) -> Post | None:
    return Post.query.filter(
        Post.id == int(post_id),
        Post.moderation_state != ModerationState.DELETED,
    ).first()


def _apply_state_change(post: Post, action: str, actor: Actor, *, reason: str = "", extra: dict | None = None) -> str:
    """Move `post` along `action` with a compare-and-set on the current state."""
    current = post.moderation_state or ModerationState.REVIEW
    target = next_state(current, action)
    values = {"moderation_state": target}
    values.update(extra or {})
    updated = Post.query.filter(
        Post.id == int(post.id),
        Post.moderation_state == current,
    ).update(values, synchronize_session=False)
    if updated != 1:
        db.session.rollback()
        fresh = db.session.get(Post, int(post.id))
        raise InvalidTransitionError(fresh.moderation_state if fresh else ModerationState.DELETED, action)
    db.session.add(transition_row(post.id, action, current, target, actor, reason))
    db.session.commit()
    db.session.refresh(post)
    return target


def approve_post(post_id: int, actor: Actor | None) -> dict:
    actor = require_moderator(actor)
    post = _load_live_post(post_id)
    if post is None:
        return fail("Post not found", code="NOT_FOUND")
    _apply_state_change(post, Action.APPROVE, actor, extra={"feedback": None})
    logger.info("post_approved post_id=%s actor_id=%s", post.id, actor.user_id)
    return success(post.to_dict(), message="Post approved")


def decline_post(post_id: int, actor: Actor | None, feedback: str) -> dict:
    actor = require_moderator(actor)
    message = (feedback or "").strip()
    if not message:
        raise ValidationFailure("Feedback is required to decline a post")
    post = _load_live_post(post_id)
    if post is None:
        return fail("Post not found", code="NOT_FOUND")
    _apply_state_change(post, Action.DECLINE, actor, reason=message, extra={"feedback": message})
    logger.info("post_declined post_id=%s actor_id=%s", post.id, actor.user_id)
    notify_listing_owner(
        post,
        title="Your post was declined",
        message=f"Your post \"{post.title}\" was declined: {message}",
        action=Action.DECLINE,
    )
    return success(post.to_dict(), message="Post declined")


def send_feedback(post_id: int, actor: Actor | None, message: str) -> dict:
    actor = require_moderator(actor)
    text = (message or "").strip()
    if not text:
        raise ValidationFailure("Feedback message is required")
    post = _load_live_post(post_id)
    if post is None:
        return fail("Post not found", code="NOT_FOUND")
    _apply_state_change(post, Action.FEEDBACK, actor, reason=text, extra={"feedback": text})
    notify_listing_owner(
        post,
        title="Feedback on your post",
        message=f"A moderator left feedback on \"{post.title}\": {text}",
        action=Action.FEEDBACK,
    )
    return success(post.to_dict(), message="Feedback sent")


def report_post(post_id: int, actor: Actor) -> dict:
    post = _load_live_post(post_id)
    if post is None:
        return fail("Post not found", code="NOT_FOUND")
    if int(post.owner_id) == int(actor.user_id):
        return fail("You cannot report your own post")
    next_state(post.moderation_state, Action.REPORT)

    already = PostReport.query.filter_by(post_id=int(post.id), reporter_id=int(actor.user_id)).first()
    if already is not None:
        return success(post.to_dict(reported_by=_reporters(post.id)), message="Post already reported")

    try:
        db.session.add(PostReport(post_id=int(post.id), reporter_id=int(actor.user_id)))
        Post.query.filter_by(id=int(post.id)).update(
            {"report_count": Post.report_count + 1}, synchronize_session=False
        )
        db.session.add(
            transition_row(post.id, Action.REPORT, post.moderation_state, post.moderation_state, actor)
        )
        db.session.commit()
    except IntegrityError:
        # Concurrent report by the same user; the other insert won.
        db.session.rollback()
        return success(post.to_dict(reported_by=_reporters(post.id)), message="Post already reported")
    db.session.refresh(post)
    logger.info("post_reported post_id=%s reporter_id=%s", post.id, actor.user_id)
    return success(post.to_dict(reported_by=_reporters(post.id)), message="Post reported")


def withdraw_report(post_id: int, actor: Actor | None, reporter_id: int | None = None) -> dict:
    """Remove one reporter, or every report on the post when reporter_id is None."""
    actor = require_moderator(actor)
    post = _load_live_post(post_id)
    if post is None:
        return fail("Post not found", code="NOT_FOUND")
    state = next_state(post.moderation_state, Action.WITHDRAW_REPORT)

    try:
        if reporter_id is None:
            PostReport.query.filter_by(post_id=int(post.id)).delete(synchronize_session=False)
            Post.query.filter_by(id=int(post.id)).update({"report_count": 0}, synchronize_session=False)
            reason = "all"
        else:
            removed = PostReport.query.filter_by(
                post_id=int(post.id), reporter_id=int(reporter_id)
            ).delete(synchronize_session=False)
            if removed:
                Post.query.filter_by(id=int(post.id)).update(
                    {"report_count": sa.case((Post.report_count > 0, Post.report_count - 1), else_=0)},
                    synchronize_session=False,
                )
            reason = f"reporter:{int(reporter_id)}"
        db.session.add(transition_row(post.id, Action.WITHDRAW_REPORT, state, state, actor, reason))
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.refresh(post)
    return success(post.to_dict(reported_by=_reporters(post.id)), message="Report withdrawn")


def _reporters(post_id: int) -> list[int]:
    rows = PostReport.query.filter_by(post_id=int(post_id)).order_by(PostReport.id.asc()).all()
    return [int(row.reporter_id) for row in rows]


def _delete(post: Post, actor: Actor, *, notify: bool, reason: str = "") -> dict:
    current = post.moderation_state or ModerationState.REVIEW
    target = next_state(current, Action.DELETE)
    post_id = int(post.id)
    owner_id = int(post.owner_id)
    title = post.title or ""
    audit = transition_row(post_id, Action.DELETE, current, target, actor, reason)

    result = listing_deletion.delete_listing(post_id, owner_id, audit=audit)
    if result.get("status") != "success":
        return result

    leftovers = listing_deletion.destroy_remote_objects(get_asset_store(), result["data"]["object_ids"])
    if leftovers:
        _enqueue_orphan_cleanup(leftovers)
    if notify:
        notify_user(
            owner_id,
            title="Your post was removed",
            message=f"Your post \"{title}\" was removed by a moderator." + (f" Reason: {reason}" if reason else ""),
            meta={"post_id": post_id, "action": Action.DELETE},
        )
    return result


def moderator_delete_post(post_id: int, actor: Actor | None, reason: str = "") -> dict:
    actor = require_moderator(actor)
    post = _load_live_post(post_id)
    if post is None:
        return fail("Post not found", code="NOT_FOUND")
    return _delete(post, actor, notify=True, reason=(reason or "").strip())


def owner_delete_post(post_id: int, actor: Actor) -> dict:
    post = _load_live_post(post_id)
    if post is None:
        return fail("Post not found", code="NOT_FOUND")
    if int(post.owner_id) != int(actor.user_id):
        raise AuthorizationFailure("You can only delete your own posts")
    return _delete(post, actor, notify=False)


def _enqueue_orphan_cleanup(object_ids: list[str]) -> None:
    from bazaar.services.listing_images import enqueue_orphan_cleanup

    enqueue_orphan_cleanup(object_ids)


def _set_account_status(user_id: int, actor: Actor | None, status: str, *, bump_warning: bool = False) -> tuple[User | None, dict]:
    actor = require_moderator(actor)
    user = db.session.get(User, int(user_id))
    if user is None:
        return None, fail("User not found", code="NOT_FOUND")
    if int(user.id) == int(actor.user_id):
        return None, fail("You cannot moderate your own account")
    if user.is_moderator and actor.role != "superadmin":
        raise AuthorizationFailure("Only a superadmin can moderate another moderator")
    values = {"account_status": status}
    if bump_warning:
        values["warning_count"] = User.warning_count + 1
    User.query.filter_by(id=int(user.id)).update(values, synchronize_session=False)
    db.session.commit()
    db.session.refresh(user)
    logger.info("account_status_changed user_id=%s status=%s actor_id=%s", user.id, status, actor.user_id)
    return user, success(user.to_dict())


def warn_account(user_id: int, actor: Actor | None, reason: str = "") -> dict:
    user, result = _set_account_status(user_id, actor, AccountStatus.WARNING, bump_warning=True)
    if user is None:
        return result
    text = (reason or "").strip()
    notify_user(
        int(user.id),
        title="Account warning",
        message="Your account has received a warning." + (f" Reason: {text}" if text else ""),
        meta={"action": "warn", "warning_count": int(user.warning_count or 0)},
    )
    result["message"] = "Account warned"
    return result


def restrict_account(user_id: int, actor: Actor | None, reason: str = "") -> dict:
    user, result = _set_account_status(user_id, actor, AccountStatus.RESTRICTED)
    if user is None:
        return result
    text = (reason or "").strip()
    notify_user(
        int(user.id),
        title="Account restricted",
        message="Your account has been restricted and your posts are hidden." + (f" Reason: {text}" if text else ""),
        meta={"action": "restrict"},
    )
    result["message"] = "Account restricted"
    return result


def withdraw_restriction(user_id: int, actor: Actor | None) -> dict:
    user, result = _set_account_status(user_id, actor, AccountStatus.VALIDATE)
    if user is None:
        return result
    notify_user(
        int(user.id),
        title="Account restored",
        message="The restriction on your account has been lifted.",
        meta={"action": "withdraw_restriction"},
    )
    result["message"] = "Restriction withdrawn"
    return result
