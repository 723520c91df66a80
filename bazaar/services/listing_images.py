"""Image lifecycle for listings: five images per post (main + img1..img4).

Local temp files handed in by the HTTP layer are removed on every exit
path. Remote calls for a batch fan out on a ThreadPoolExecutor; the record
write only happens once every call in the batch succeeded.
"""
from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, wait

from bazaar.errors import ImageBatchError
from bazaar.extensions import db
from bazaar.integrations.assets import AssetStoreError, get_asset_store
from bazaar.models import DETAIL_SLOTS, MAIN_SLOT, ModerationState, PostDetails
from bazaar.services import listing_store
from bazaar.services.listing_deletion import collect_object_ids
from bazaar.services.moderation_service import Action, next_state, transition_row
from bazaar.tasks import background_tasks_enabled
from bazaar.utils.observability import get_request_id
from bazaar.utils.results import fail, success
from bazaar.utils.uploads import scoped_local_files


logger = logging.getLogger(__name__)


EXPECTED_IMAGE_COUNT = 1 + len(DETAIL_SLOTS)
WRONG_IMAGE_COUNT = "Exactly five images must be uploaded"


def _max_workers() -> int:
    raw = (os.getenv("ASSET_STORE_MAX_WORKERS") or "5").strip()
    try:
        value = int(raw)
    except ValueError:
        value = 5
    return max(1, min(value, 16))


def enqueue_orphan_cleanup(object_ids: list[str]) -> None:
    ids = [str(x) for x in (object_ids or []) if x]
    if not ids or not background_tasks_enabled():
        return
    try:
        from bazaar.tasks.asset_tasks import destroy_orphaned_assets

        destroy_orphaned_assets.delay(ids, trace_id=get_request_id())
    except Exception:
        logger.exception("orphan_cleanup_enqueue_failed count=%s", len(ids))


def run_image_batch(store, upload_paths: list[str], owner_tag: str, destroy_ids: list[str] | None = None) -> list:
    """Destroy `destroy_ids` and upload `upload_paths` concurrently.

    Returns the uploaded images in file order. Raises ImageBatchError when any
    call failed; objects uploaded by the failed batch are queued for cleanup.
    """
    destroy_ids = list(destroy_ids or [])
    workers = min(_max_workers(), max(1, len(upload_paths) + len(destroy_ids)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        destroy_futures = [(oid, pool.submit(store.destroy, oid)) for oid in destroy_ids]
        upload_futures = [(path, pool.submit(store.upload, path, owner_tag)) for path in upload_paths]
        wait([f for _, f in destroy_futures] + [f for _, f in upload_futures])

    failures = []
    unexpected = None
    for object_id, future in destroy_futures:
        exc = future.exception()
        if exc is None:
            continue
        if not isinstance(exc, AssetStoreError):
            unexpected = unexpected or exc
            continue
        failures.append({"op": "destroy", "object_id": object_id, "error": str(exc)})

    uploaded = []
    for index, (path, future) in enumerate(upload_futures):
        exc = future.exception()
        if exc is None:
            uploaded.append(future.result())
            continue
        if not isinstance(exc, AssetStoreError):
            unexpected = unexpected or exc
            continue
        failures.append({"op": "upload", "index": index, "file": os.path.basename(path), "error": str(exc)})

    if unexpected is not None:
        orphaned = [image.object_id for image in uploaded]
        logger.error("image_batch_crashed orphaned=%s err=%r", len(orphaned), unexpected)
        enqueue_orphan_cleanup(orphaned)
        raise unexpected

    if failures:
        orphaned = [image.object_id for image in uploaded]
        logger.warning("image_batch_failed failures=%s orphaned=%s", len(failures), len(orphaned))
        enqueue_orphan_cleanup(orphaned)
        raise ImageBatchError(failures, uploaded_object_ids=orphaned)
    return uploaded


def _slot_fields(images) -> tuple[dict, dict]:
    main, rest = images[0], images[1:]
    post_fields = {"main_image_url": main.url, "main_image_object_id": main.object_id}
    details_fields = {}
    for slot, image in zip(DETAIL_SLOTS, rest):
        url_col, object_col = PostDetails.slot_columns(slot)
        details_fields[url_col] = image.url
        details_fields[object_col] = image.object_id
    return post_fields, details_fields


def create_listing(actor, payload, local_paths) -> dict:
    with scoped_local_files(local_paths) as paths:
        if len(paths) != EXPECTED_IMAGE_COUNT:
            return fail(WRONG_IMAGE_COUNT)
        post_fields, details_fields = listing_store.split_listing_fields(payload)

        images = run_image_batch(get_asset_store(), paths, str(actor.user_id))
        image_post, image_details = _slot_fields(images)
        post_fields.update(image_post, owner_id=int(actor.user_id))
        details_fields.update(image_details)
        try:
            post, details = listing_store.create(post_fields, details_fields)
        except Exception:
            enqueue_orphan_cleanup([image.object_id for image in images])
            raise

    db.session.add(transition_row(post.id, Action.SUBMIT, "", ModerationState.REVIEW, actor))
    db.session.commit()
    logger.info("post_created post_id=%s owner_id=%s", post.id, actor.user_id)
    return success({"post": post.to_dict(), "details": details.to_dict()}, message="Post created")


def update_listing(actor, post_id: int, payload, local_paths) -> dict:
    """Replace all five images and the listing fields; the post goes back to review."""
    with scoped_local_files(local_paths) as paths:
        if len(paths) != EXPECTED_IMAGE_COUNT:
            return fail(WRONG_IMAGE_COUNT)
        post_fields, details_fields = listing_store.split_listing_fields(payload, require_title=False)

        post, details = listing_store.load_owned_pair(post_id, actor.user_id)
        if post is None or details is None:
            return fail("No post found", code="NOT_FOUND")
        current = post.moderation_state
        next_state(current, Action.SUBMIT)

        images = run_image_batch(
            get_asset_store(),
            paths,
            str(actor.user_id),
            destroy_ids=collect_object_ids(post, details),
        )
        image_post, image_details = _slot_fields(images)
        post_fields.update(image_post)
        details_fields.update(image_details)
        post_id, details_id = int(post.id), int(details.id)
        if not listing_store.update_and_bump_edit_count(post_id, details_id, post_fields, details_fields):
            enqueue_orphan_cleanup([image.object_id for image in images])
            return fail("No post found", code="NOT_FOUND")

    db.session.add(transition_row(post_id, Action.SUBMIT, current, ModerationState.REVIEW, actor))
    db.session.commit()
    post, details = listing_store.load_owned_pair(post_id, actor.user_id)
    logger.info("post_updated post_id=%s owner_id=%s edit_count=%s", post_id, actor.user_id, post.edit_count)
    return success({"post": post.to_dict(), "details": details.to_dict()}, message="Post updated")


def find_slot_by_object_id(post, details, object_id: str) -> str | None:
    target = (object_id or "").strip()
    if not target:
        return None
    if post is not None and post.main_image_object_id == target:
        return MAIN_SLOT
    if details is not None:
        for slot in DETAIL_SLOTS:
            image = details.image_slot(slot)
            if image and image["object_id"] == target:
                return slot
    return None


def delete_image(actor, post_id: int, object_id: str) -> dict:
    post, details = listing_store.load_owned_pair(post_id, actor.user_id)
    if post is None:
        return fail("No post found", code="NOT_FOUND")
    slot = find_slot_by_object_id(post, details, object_id)
    if slot is None:
        return fail("Image not found", code="NOT_FOUND")

    if slot == MAIN_SLOT:
        post.set_main_image(None, None)
        message = "Main image deleted"
    else:
        details.set_image_slot(slot, None, None)
        message = "Selected image deleted"
    db.session.commit()

    try:
        get_asset_store().destroy(object_id)
    except AssetStoreError as exc:
        logger.warning("asset_destroy_failed post_id=%s object_id=%s err=%s", post_id, object_id, exc)
    return success({"post_id": int(post_id), "slot": slot}, message=message)
