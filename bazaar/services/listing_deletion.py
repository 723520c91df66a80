"""Atomic removal of a Post together with its PostDetails."""
from __future__ import annotations

import logging

from bazaar.extensions import db
from bazaar.integrations.assets import AssetStoreError
from bazaar.models import Post, PostDetails, PostReport, DETAIL_SLOTS
from bazaar.utils.results import fail, success


logger = logging.getLogger(__name__)


class _DeletionAborted(Exception):
    def __init__(self, message: str, code: str):
        self.message = message
        self.code = code
        super().__init__(message)


def collect_object_ids(post: Post | None, details: PostDetails | None) -> list[str]:
    object_ids = []
    if post is not None and post.main_image_object_id:
        object_ids.append(post.main_image_object_id)
    if details is not None:
        for slot in DETAIL_SLOTS:
            image = details.image_slot(slot)
            if image and image.get("object_id"):
                object_ids.append(image["object_id"])
    return object_ids


def _delete_post_row(session, post_id: int, owner_id: int) -> int:
    return session.query(Post).filter(
        Post.id == int(post_id),
        Post.owner_id == int(owner_id),
    ).delete(synchronize_session=False)


def _delete_details_row(session, post_id: int) -> int:
    return session.query(PostDetails).filter(PostDetails.post_id == int(post_id)).delete(synchronize_session=False)


def _delete_report_rows(session, post_id: int) -> int:
    return session.query(PostReport).filter(PostReport.post_id == int(post_id)).delete(synchronize_session=False)


def delete_listing(post_id: int, owner_id: int, *, audit=None) -> dict:
    """Delete the Post filtered by (id, owner) and its details in one transaction.

    `audit` is an optional pending row (a ModerationTransition) committed with
    the deletion. On success the result carries the remote object ids that
    used to back the listing's images; destroying them is the caller's job.
    """
    session = db.session
    try:
        post = session.query(Post).filter(
            Post.id == int(post_id),
            Post.owner_id == int(owner_id),
        ).first()
        details = session.query(PostDetails).filter(PostDetails.post_id == int(post_id)).first()
        object_ids = collect_object_ids(post, details)

        if _delete_post_row(session, post_id, owner_id) != 1:
            raise _DeletionAborted("Post not found or not owned", "NOT_FOUND")
        if _delete_details_row(session, post_id) != 1:
            raise _DeletionAborted("Failed to delete post details", "TRANSACTION_FAILED")
        _delete_report_rows(session, post_id)
        if audit is not None:
            session.add(audit)
        session.commit()
    except _DeletionAborted as exc:
        session.rollback()
        logger.warning("post_delete_aborted post_id=%s owner_id=%s reason=%s", post_id, owner_id, exc.message)
        return fail(exc.message, code=exc.code)
    except Exception:
        session.rollback()
        logger.exception("post_delete_failed post_id=%s owner_id=%s", post_id, owner_id)
        raise
    finally:
        session.close()

    logger.info("post_deleted post_id=%s owner_id=%s objects=%s", post_id, owner_id, len(object_ids))
    return success({"post_id": int(post_id), "object_ids": object_ids}, message="Post deleted")


def destroy_remote_objects(store, object_ids) -> list[str]:
    """Best-effort destroy; returns the ids that could not be removed."""
    leftovers = []
    for object_id in object_ids or []:
        try:
            store.destroy(object_id)
        except AssetStoreError as exc:
            logger.warning("asset_destroy_failed object_id=%s err=%s", object_id, exc)
            leftovers.append(object_id)
    return leftovers
