from __future__ import annotations

import os

from flask import current_app, has_app_context

from bazaar.integrations.common import IntegrationDisabledError, IntegrationMisconfiguredError
from bazaar.integrations.assets.base import AssetStore
from bazaar.integrations.assets.cloudinary_provider import CloudinaryAssetStore, cloudinary_health
from bazaar.integrations.assets.mock_provider import MockAssetStore


_EXTENSION_KEY = "bazaar_asset_store"


def _timeout_seconds() -> float:
    raw = (os.getenv("ASSET_STORE_TIMEOUT_SECONDS") or "20").strip()
    try:
        value = float(raw)
    except ValueError:
        value = 20.0
    return max(1.0, value)


def _default_provider() -> str:
    env = (os.getenv("BAZAAR_ENV") or "dev").strip().lower()
    return "cloudinary" if env in ("prod", "production") else "mock"


def build_asset_store(provider: str | None = None) -> AssetStore:
    name = (provider or os.getenv("ASSET_STORE_PROVIDER") or _default_provider()).strip().lower()
    if name == "disabled":
        raise IntegrationDisabledError("INTEGRATION_DISABLED:assets")
    if name == "mock":
        return MockAssetStore()
    if name != "cloudinary":
        raise IntegrationMisconfiguredError(f"INTEGRATION_MISCONFIGURED:unknown asset provider '{name}'")

    missing = cloudinary_health().get("missing", [])
    if missing:
        raise IntegrationMisconfiguredError(f"INTEGRATION_MISCONFIGURED:missing {', '.join(missing)}")
    return CloudinaryAssetStore(
        cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME", "").strip(),
        api_key=os.getenv("CLOUDINARY_API_KEY", "").strip(),
        api_secret=os.getenv("CLOUDINARY_API_SECRET", "").strip(),
        folder=(os.getenv("CLOUDINARY_UPLOAD_FOLDER") or "bazaar/posts").strip(),
        timeout=_timeout_seconds(),
    )


def get_asset_store() -> AssetStore:
    """Return the app-scoped asset store, building it on first use."""
    if not has_app_context():
        return build_asset_store()
    store = current_app.extensions.get(_EXTENSION_KEY)
    if store is None:
        store = build_asset_store(current_app.config.get("ASSET_STORE_PROVIDER"))
        current_app.extensions[_EXTENSION_KEY] = store
    return store


def asset_store_health() -> dict:
    provider = (os.getenv("ASSET_STORE_PROVIDER") or _default_provider()).strip().lower()
    missing = cloudinary_health().get("missing", []) if provider == "cloudinary" else []
    if provider == "disabled":
        status = "disabled"
    elif missing:
        status = "misconfigured"
    else:
        status = "configured"
    return {"status": status, "provider": provider, "missing": missing}
