from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from bazaar.errors import ImageBatchError, ValidationFailure
from bazaar.extensions import db
from bazaar.integrations.assets.base import StoredImage
from bazaar.integrations.assets.mock_provider import MockAssetStore
from bazaar.models import ModerationState, ModerationTransition, Post, PostDetails
from bazaar.services import listing_images
from bazaar.utils.auth import Actor

from tests.support import BazaarTestCase


class NamedMockAssetStore(MockAssetStore):
    """Object ids follow the uploaded file name so slot order can be asserted."""

    def upload(self, local_path, owner_tag):
        image = super().upload(local_path, owner_tag)
        name = os.path.basename(local_path).rsplit("-", 1)[-1]
        with self._lock:
            self.objects.pop(image.object_id, None)
            self.objects[name] = image.url
        return StoredImage(url=f"https://assets.mock.local/{name}", object_id=name)


class ListingImagesTestCase(BazaarTestCase):
    def setUp(self):
        super().setUp()
        self.store = NamedMockAssetStore()
        self.app.extensions["bazaar_asset_store"] = self.store

    def _payload(self, **overrides):
        payload = {"title": "Mountain bike", "price": "450", "description": "Barely used"}
        payload.update(overrides)
        return payload

    def test_wrong_image_count_removes_files_and_skips_uploads(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            paths = self.write_temp_images(4)

            result = listing_images.create_listing(Actor(owner_id), self._payload(), paths)

            self.assertEqual(result["status"], "fail")
            self.assertEqual(result["message"], "Exactly five images must be uploaded")
            self.assertEqual(self.store.uploaded, [])
            self.assertFalse(any(os.path.exists(p) for p in paths))
            self.assertEqual(Post.query.count(), 0)

    def test_invalid_fields_still_remove_files(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            paths = self.write_temp_images(5)
            with self.assertRaises(ValidationFailure):
                listing_images.create_listing(Actor(owner_id), {"price": "1"}, paths)
            self.assertFalse(any(os.path.exists(p) for p in paths))
            self.assertEqual(self.store.uploaded, [])

    def test_create_assigns_images_in_file_order(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            names = ["a.jpg", "b.jpg", "c.jpg", "d.jpg", "e.jpg"]
            paths = self.write_temp_images(5, names=names)

            result = listing_images.create_listing(Actor(owner_id), self._payload(), paths)

            self.assertEqual(result["status"], "success")
            post = Post.query.one()
            details = PostDetails.query.filter_by(post_id=post.id).one()
            self.assertEqual(post.main_image_object_id, "a.jpg")
            self.assertEqual(
                [details.image_slot(slot)["object_id"] for slot in ("img1", "img2", "img3", "img4")],
                ["b.jpg", "c.jpg", "d.jpg", "e.jpg"],
            )
            self.assertEqual(post.moderation_state, ModerationState.REVIEW)
            self.assertFalse(any(os.path.exists(p) for p in paths))
            self.assertEqual(ModerationTransition.query.filter_by(post_id=post.id, action="submit").count(), 1)

    def test_update_replaces_all_images_and_bumps_edit_count(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            post_id = self.seed_post(owner_id, state=ModerationState.APPROVED)
            post = db.session.get(Post, post_id)
            old_ids = [post.main_image_object_id] + [f"seed/{post_id}/img{n}" for n in range(1, 5)]
            paths = self.write_temp_images(5, names=["v.jpg", "w.jpg", "x.jpg", "y.jpg", "z.jpg"])

            result = listing_images.update_listing(Actor(owner_id), post_id, {"title": "Updated"}, paths)

            self.assertEqual(result["status"], "success")
            self.assertEqual(sorted(self.store.destroyed), sorted(old_ids))
            db.session.expire_all()
            post = db.session.get(Post, post_id)
            details = PostDetails.query.filter_by(post_id=post_id).one()
            self.assertEqual(post.title, "Updated")
            self.assertEqual(post.edit_count, 1)
            self.assertTrue(post.on_review)
            self.assertEqual(post.main_image_object_id, "v.jpg")
            self.assertEqual(details.image_slot("img4")["object_id"], "z.jpg")
            self.assertFalse(any(os.path.exists(p) for p in paths))

    def test_update_batch_failure_leaves_record_untouched(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            post_id = self.seed_post(owner_id, state=ModerationState.APPROVED, title="Original")
            paths = self.write_temp_images(5, names=["a.jpg", "b.jpg", "[fail].jpg", "d.jpg", "e.jpg"])

            with patch("bazaar.services.listing_images.enqueue_orphan_cleanup") as cleanup:
                with self.assertRaises(ImageBatchError) as ctx:
                    listing_images.update_listing(Actor(owner_id), post_id, {"title": "Changed"}, paths)

            self.assertEqual(len(ctx.exception.failures), 1)
            self.assertEqual(ctx.exception.failures[0]["op"], "upload")
            self.assertEqual(sorted(ctx.exception.uploaded_object_ids), ["a.jpg", "b.jpg", "d.jpg", "e.jpg"])
            cleanup.assert_called_once()
            db.session.expire_all()
            post = db.session.get(Post, post_id)
            self.assertEqual(post.title, "Original")
            self.assertEqual(post.edit_count, 0)
            self.assertTrue(post.is_approved)
            self.assertFalse(any(os.path.exists(p) for p in paths))

    def test_update_with_wrong_image_count_touches_no_remote_objects(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            post_id = self.seed_post(owner_id, state=ModerationState.APPROVED)

            for count in (4, 6):
                with self.subTest(count=count):
                    paths = self.write_temp_images(count)

                    result = listing_images.update_listing(Actor(owner_id), post_id, {"title": "Changed"}, paths)

                    self.assertEqual(result["status"], "fail")
                    self.assertEqual(result["message"], "Exactly five images must be uploaded")
                    self.assertEqual(self.store.uploaded, [])
                    self.assertEqual(self.store.destroyed, [])
                    self.assertFalse(any(os.path.exists(p) for p in paths))
                    db.session.expire_all()
                    post = db.session.get(Post, post_id)
                    self.assertEqual(post.edit_count, 0)
                    self.assertEqual(post.moderation_state, ModerationState.APPROVED)
                    self.assertEqual(post.title, "Used phone")

    def test_unexpected_upload_error_still_queues_finished_uploads(self):
        class CrashingStore(NamedMockAssetStore):
            def upload(self, local_path, owner_tag):
                if local_path.endswith("boom.jpg"):
                    raise RuntimeError("disk vanished")
                return super().upload(local_path, owner_tag)

        with self.app.app_context():
            store = CrashingStore()
            paths = self.write_temp_images(5, names=["a.jpg", "b.jpg", "boom.jpg", "d.jpg", "e.jpg"])

            with patch("bazaar.services.listing_images.enqueue_orphan_cleanup") as cleanup:
                with self.assertRaises(RuntimeError):
                    listing_images.run_image_batch(store, paths, "7")

            cleanup.assert_called_once()
            self.assertEqual(sorted(cleanup.call_args[0][0]), ["a.jpg", "b.jpg", "d.jpg", "e.jpg"])

    def test_update_by_non_owner_is_not_found(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            stranger_id = self.seed_user()
            post_id = self.seed_post(owner_id)
            paths = self.write_temp_images(5)

            result = listing_images.update_listing(Actor(stranger_id), post_id, {}, paths)

            self.assertEqual(result["message"], "No post found")
            self.assertEqual(self.store.uploaded, [])
            self.assertFalse(any(os.path.exists(p) for p in paths))

    def test_delete_image_unsets_only_the_matching_slot(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            post_id = self.seed_post(owner_id)

            result = listing_images.delete_image(Actor(owner_id), post_id, f"seed/{post_id}/img2")

            self.assertEqual(result["status"], "success")
            self.assertEqual(result["message"], "Selected image deleted")
            details = PostDetails.query.filter_by(post_id=post_id).one()
            self.assertIsNone(details.image_slot("img2"))
            for slot in ("img1", "img3", "img4"):
                self.assertIsNotNone(details.image_slot(slot))
            self.assertIsNotNone(db.session.get(Post, post_id).main_image)
            self.assertEqual(self.store.destroyed, [f"seed/{post_id}/img2"])

    def test_delete_main_image(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            post_id = self.seed_post(owner_id)
            main_id = db.session.get(Post, post_id).main_image_object_id

            result = listing_images.delete_image(Actor(owner_id), post_id, main_id)

            self.assertEqual(result["message"], "Main image deleted")
            self.assertIsNone(db.session.get(Post, post_id).main_image)

    def test_delete_unknown_image_changes_nothing(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            post_id = self.seed_post(owner_id)

            result = listing_images.delete_image(Actor(owner_id), post_id, "nope")

            self.assertEqual(result["message"], "Image not found")
            details = PostDetails.query.filter_by(post_id=post_id).one()
            self.assertTrue(all(details.image_slot(s) for s in ("img1", "img2", "img3", "img4")))
            self.assertEqual(self.store.destroyed, [])

    def test_delete_image_on_foreign_post(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            stranger_id = self.seed_user()
            post_id = self.seed_post(owner_id)
            result = listing_images.delete_image(Actor(stranger_id), post_id, f"seed/{post_id}/img1")
            self.assertEqual(result["message"], "No post found")

    def test_destroy_failure_does_not_undo_slot_unset(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            post_id = self.seed_post(owner_id)
            object_id = f"seed/{post_id}/img3"
            self.store.fail_destroy.add(object_id)

            result = listing_images.delete_image(Actor(owner_id), post_id, object_id)

            self.assertEqual(result["status"], "success")
            self.assertIsNone(PostDetails.query.filter_by(post_id=post_id).one().image_slot("img3"))


if __name__ == "__main__":
    unittest.main()
