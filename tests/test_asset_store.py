from __future__ import annotations

import os
import tempfile
import threading
import unittest
from unittest.mock import MagicMock, patch

import requests

from bazaar.integrations.assets import AssetDestroyError, AssetUploadError, build_asset_store
from bazaar.integrations.assets.cloudinary_provider import CloudinaryAssetStore, sign_params
from bazaar.integrations.assets.mock_provider import MockAssetStore
from bazaar.integrations.common import IntegrationMisconfiguredError


def _response(status: int, payload: dict):
    res = MagicMock()
    res.status_code = status
    res.json.return_value = payload
    return res


class CloudinaryAssetStoreTestCase(unittest.TestCase):
    def setUp(self):
        self.store = CloudinaryAssetStore(cloud_name="demo", api_key="k", api_secret="s", folder="bazaar/posts")
        handle, self.path = tempfile.mkstemp(suffix=".jpg")
        with os.fdopen(handle, "wb") as fh:
            fh.write(b"\xff\xd8\xff")

    def tearDown(self):
        if os.path.exists(self.path):
            os.remove(self.path)

    def test_signature_ignores_empty_values_and_sorts_keys(self):
        a = sign_params({"timestamp": 1, "folder": "x", "public_id": ""}, "secret")
        b = sign_params({"folder": "x", "timestamp": 1}, "secret")
        self.assertEqual(a, b)
        self.assertEqual(len(a), 40)

    def test_upload_returns_secure_url_and_public_id(self):
        self.store.session.post = MagicMock(
            return_value=_response(200, {"secure_url": "https://cdn/x.jpg", "public_id": "bazaar/posts/7/x"})
        )
        image = self.store.upload(self.path, "7")
        self.assertEqual((image.url, image.object_id), ("https://cdn/x.jpg", "bazaar/posts/7/x"))
        _args, kwargs = self.store.session.post.call_args
        self.assertEqual(kwargs["data"]["folder"], "bazaar/posts/7")
        self.assertIn("signature", kwargs["data"])
        self.assertTrue(os.path.exists(self.path))

    def test_each_worker_thread_gets_its_own_session(self):
        seen = {}

        def grab():
            seen["worker"] = self.store.session

        worker = threading.Thread(target=grab)
        worker.start()
        worker.join()
        self.assertIs(self.store.session, self.store.session)
        self.assertIsInstance(seen["worker"], requests.Session)
        self.assertIsNot(seen["worker"], self.store.session)

    def test_upload_errors_raise_upload_error(self):
        self.store.session.post = MagicMock(return_value=_response(400, {"error": {"message": "bad"}}))
        with self.assertRaises(AssetUploadError):
            self.store.upload(self.path, "7")
        self.store.session.post = MagicMock(side_effect=requests.Timeout())
        with self.assertRaises(AssetUploadError):
            self.store.upload(self.path, "7")

    def test_destroy_result_mapping(self):
        self.store.session.post = MagicMock(return_value=_response(200, {"result": "ok"}))
        self.assertTrue(self.store.destroy("a"))
        self.store.session.post = MagicMock(return_value=_response(200, {"result": "not found"}))
        self.assertFalse(self.store.destroy("a"))
        self.store.session.post = MagicMock(side_effect=requests.ConnectionError())
        with self.assertRaises(AssetDestroyError):
            self.store.destroy("a")


class AssetStoreFactoryTestCase(unittest.TestCase):
    def test_mock_provider(self):
        self.assertIsInstance(build_asset_store("mock"), MockAssetStore)

    def test_cloudinary_without_credentials_is_misconfigured(self):
        with patch.dict(os.environ, {"CLOUDINARY_CLOUD_NAME": "", "CLOUDINARY_API_KEY": "", "CLOUDINARY_API_SECRET": ""}):
            with self.assertRaises(IntegrationMisconfiguredError):
                build_asset_store("cloudinary")

    def test_cloudinary_with_credentials(self):
        env = {"CLOUDINARY_CLOUD_NAME": "demo", "CLOUDINARY_API_KEY": "k", "CLOUDINARY_API_SECRET": "s"}
        with patch.dict(os.environ, env):
            self.assertIsInstance(build_asset_store("cloudinary"), CloudinaryAssetStore)


if __name__ == "__main__":
    unittest.main()
