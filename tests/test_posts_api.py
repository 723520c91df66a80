from __future__ import annotations

import io
import os
import unittest

from bazaar.extensions import db
from bazaar.integrations.assets.mock_provider import MockAssetStore
from bazaar.models import ModerationState, Post, PostDetails

from tests.support import BazaarTestCase


def _files(count: int):
    return [(io.BytesIO(b"\xff\xd8\xff" + bytes([i]) * 8), f"photo{i}.jpg") for i in range(count)]


class PostsApiTestCase(BazaarTestCase):
    def setUp(self):
        super().setUp()
        self.store = MockAssetStore()
        self.app.extensions["bazaar_asset_store"] = self.store

    def _leftover_uploads(self):
        return [name for name in os.listdir(self.upload_dir) if not name.startswith("img-")]

    def test_create_post_with_five_images(self):
        with self.app.app_context():
            owner_id = self.seed_user()
        res = self.client.post(
            "/api/posts",
            headers=self.auth_headers(owner_id),
            data={"title": "Road bike", "price": "900", "images": _files(5)},
            content_type="multipart/form-data",
        )
        self.assertEqual(res.status_code, 201)
        body = res.get_json()
        self.assertEqual(body["status"], "success")
        self.assertTrue(body["data"]["post"]["on_review"])
        self.assertEqual(len(self.store.uploaded), 5)
        self.assertEqual(self._leftover_uploads(), [])

    def test_create_post_with_wrong_image_count(self):
        with self.app.app_context():
            owner_id = self.seed_user()
        res = self.client.post(
            "/api/posts",
            headers=self.auth_headers(owner_id),
            data={"title": "Road bike", "price": "900", "images": _files(3)},
            content_type="multipart/form-data",
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.get_json()["message"], "Exactly five images must be uploaded")
        self.assertEqual(self.store.uploaded, [])
        self.assertEqual(self._leftover_uploads(), [])

    def test_update_failure_surfaces_as_bad_gateway(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            post_id = self.seed_post(owner_id, title="Original")
        os.environ["MOCK_ASSET_FORCE_FAIL"] = "1"
        try:
            res = self.client.put(
                f"/api/posts/{post_id}",
                headers=self.auth_headers(owner_id),
                data={"title": "New title", "images": _files(5)},
                content_type="multipart/form-data",
            )
        finally:
            os.environ.pop("MOCK_ASSET_FORCE_FAIL", None)
        self.assertEqual(res.status_code, 502)
        body = res.get_json()
        self.assertEqual(body["code"], "IMAGE_BATCH_FAILED")
        self.assertEqual(len(body["detail"]["failures"]), 5)
        with self.app.app_context():
            self.assertEqual(db.session.get(Post, post_id).title, "Original")
        self.assertEqual(self._leftover_uploads(), [])

    def test_delete_image_endpoint(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            post_id = self.seed_post(owner_id)
        res = self.client.delete(
            f"/api/posts/{post_id}/images?object_id=seed/{post_id}/img1",
            headers=self.auth_headers(owner_id),
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.get_json()["message"], "Selected image deleted")

        missing = self.client.delete(
            f"/api/posts/{post_id}/images?object_id=unknown",
            headers=self.auth_headers(owner_id),
        )
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.get_json()["message"], "Image not found")

    def test_owner_delete_and_listing_views(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            approved = self.seed_post(owner_id)
            pending = self.seed_post(owner_id, state=ModerationState.REVIEW)
        headers = self.auth_headers(owner_id)

        mine = self.client.get("/api/posts/mine", headers=headers).get_json()
        self.assertEqual([row["id"] for row in mine["data"]], [approved])
        pending_rows = self.client.get("/api/posts/mine/pending", headers=headers).get_json()
        self.assertEqual([row["id"] for row in pending_rows["data"]], [pending])

        res = self.client.delete(f"/api/posts/{approved}", headers=headers)
        self.assertEqual(res.status_code, 200)
        with self.app.app_context():
            self.assertIsNone(db.session.get(Post, approved))
            self.assertEqual(PostDetails.query.filter_by(post_id=approved).count(), 0)
        self.assertEqual(len(self.store.destroyed), 5)

    def test_report_endpoint(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            reporter_id = self.seed_user()
            post_id = self.seed_post(owner_id)
        res = self.client.post(f"/api/posts/{post_id}/report", headers=self.auth_headers(reporter_id))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.get_json()["data"]["report_count"], 1)

        own = self.client.post(f"/api/posts/{post_id}/report", headers=self.auth_headers(owner_id))
        self.assertEqual(own.status_code, 400)


class PublicAndAdminApiTestCase(BazaarTestCase):
    def test_public_feed_filter_search_and_detail(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            bike = self.seed_post(owner_id, title="Bike", price=300, description="Mountain Bike")
            self.seed_post(owner_id, title="Chair", price=40)

        feed = self.client.get("/api/public/posts").get_json()
        self.assertEqual(feed["total"], 2)

        filtered = self.client.post("/api/public/posts/filter", json={"max_price": 100}).get_json()
        self.assertEqual(filtered["total"], 1)
        self.assertEqual(filtered["data"][0]["title"], "Chair")

        found = self.client.post("/api/public/posts/search?keyword=bike", json={})
        self.assertEqual(found.status_code, 200)
        self.assertEqual([r["id"] for r in found.get_json()["data"]], [bike])

        none = self.client.post("/api/public/posts/search?keyword=piano", json={})
        self.assertEqual(none.status_code, 404)
        self.assertEqual(none.get_json()["message"], "No data found")

        detail = self.client.get(f"/api/public/posts/{bike}")
        self.assertEqual(detail.status_code, 200)
        self.assertNotIn("moderation_state", detail.get_json()["data"])

        bad = self.client.post("/api/public/posts/filter", json={"min_price": "lots"})
        self.assertEqual(bad.status_code, 400)

    def test_admin_review_flow(self):
        with self.app.app_context():
            owner_id = self.seed_user()
            admin_id = self.seed_user("superadmin")
            post_id = self.seed_post(owner_id, state=ModerationState.REVIEW)
        headers = self.auth_headers(admin_id)

        queue = self.client.get("/api/admin/posts/review?limit=5", headers=headers).get_json()
        self.assertEqual(queue["total"], 1)
        self.assertEqual(queue["pagination"], {"page": 1, "limit": 5, "totalPages": 1})

        declined = self.client.post(f"/api/admin/posts/{post_id}/decline", headers=headers, json={})
        self.assertEqual(declined.status_code, 400)

        declined = self.client.post(
            f"/api/admin/posts/{post_id}/decline", headers=headers, json={"feedback": "Wrong category"}
        )
        self.assertEqual(declined.status_code, 200)
        self.assertTrue(declined.get_json()["data"]["is_declined"])

        listed = self.client.get("/api/admin/posts/declined", headers=headers).get_json()
        self.assertEqual([r["id"] for r in listed["data"]], [post_id])

        warn = self.client.post(f"/api/admin/users/{owner_id}/warn", headers=headers, json={"reason": "spam"})
        self.assertEqual(warn.get_json()["data"]["account_status"], "Warning")

        removed = self.client.delete(f"/api/admin/posts/{post_id}", headers=headers)
        self.assertEqual(removed.status_code, 200)
        gone = self.client.post(f"/api/admin/posts/{post_id}/approve", headers=headers)
        self.assertEqual(gone.status_code, 404)


if __name__ == "__main__":
    unittest.main()
