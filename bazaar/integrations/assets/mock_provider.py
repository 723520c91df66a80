from __future__ import annotations

import os
import threading
import uuid

from bazaar.integrations.assets.base import (
    AssetStore,
    AssetDestroyError,
    AssetUploadError,
    StoredImage,
)


class MockAssetStore(AssetStore):
    """In-memory asset store for local runs and tests.

    Paths containing `[fail]`, or MOCK_ASSET_FORCE_FAIL=1, make uploads fail.
    Object ids listed in `fail_destroy` make destroy fail.
    """

    name = "mock"

    def __init__(self, base_url: str = "https://assets.mock.local"):
        self.base_url = base_url.rstrip("/")
        self.objects: dict[str, str] = {}
        self.uploaded: list[str] = []
        self.destroyed: list[str] = []
        self.fail_uploads: set[str] = set()
        self.fail_destroy: set[str] = set()
        self._lock = threading.Lock()

    def _force_upload_failure(self, local_path: str) -> bool:
        name = os.path.basename(local_path or "")
        if "[fail]" in name or name in self.fail_uploads:
            return True
        return (os.getenv("MOCK_ASSET_FORCE_FAIL") or "").strip() == "1"

    def upload(self, local_path: str, owner_tag: str) -> StoredImage:
        if self._force_upload_failure(local_path):
            raise AssetUploadError("mock forced upload failure")
        object_id = f"{owner_tag or 'anon'}/{uuid.uuid4().hex[:16]}"
        url = f"{self.base_url}/{object_id}.jpg"
        with self._lock:
            self.objects[object_id] = url
            self.uploaded.append(object_id)
        return StoredImage(url=url, object_id=object_id)

    def destroy(self, object_id: str) -> bool:
        if object_id in self.fail_destroy:
            raise AssetDestroyError("mock forced destroy failure")
        with self._lock:
            self.destroyed.append(object_id)
            return self.objects.pop(object_id, None) is not None
