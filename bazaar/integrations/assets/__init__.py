from bazaar.integrations.assets.base import (
    AssetStore,
    AssetStoreError,
    AssetUploadError,
    AssetDestroyError,
    StoredImage,
)
from bazaar.integrations.assets.factory import build_asset_store, get_asset_store, asset_store_health

__all__ = [
    "AssetStore",
    "AssetStoreError",
    "AssetUploadError",
    "AssetDestroyError",
    "StoredImage",
    "build_asset_store",
    "get_asset_store",
    "asset_store_health",
]
