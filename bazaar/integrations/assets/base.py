from __future__ import annotations

from dataclasses import dataclass


class AssetStoreError(RuntimeError):
    """Raised when the remote asset store rejects or cannot serve a call."""


class AssetUploadError(AssetStoreError):
    pass


class AssetDestroyError(AssetStoreError):
    pass


@dataclass(frozen=True)
class StoredImage:
    url: str
    object_id: str

    def to_dict(self) -> dict:
        return {"url": self.url, "object_id": self.object_id}


class AssetStore:
    name = "unknown"

    def upload(self, local_path: str, owner_tag: str) -> StoredImage:
        raise NotImplementedError

    def destroy(self, object_id: str) -> bool:
        raise NotImplementedError
