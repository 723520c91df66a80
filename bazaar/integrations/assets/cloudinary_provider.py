from __future__ import annotations

import hashlib
import os
import threading
import time

import requests

from bazaar.integrations.assets.base import (
    AssetStore,
    AssetDestroyError,
    AssetUploadError,
    StoredImage,
)


CLOUDINARY_BASE = "https://api.cloudinary.com/v1_1"


def sign_params(params: dict, api_secret: str) -> str:
    """Cloudinary signature: sorted `key=value` pairs joined by `&`, suffixed with the secret."""
    parts = [f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, "")]
    return hashlib.sha1(f"{'&'.join(parts)}{api_secret}".encode("utf-8")).hexdigest()


class CloudinaryAssetStore(AssetStore):
    name = "cloudinary"

    def __init__(self, *, cloud_name: str, api_key: str, api_secret: str, folder: str = "", timeout: float = 20.0):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = (folder or "").strip("/")
        self.timeout = float(timeout)
        # Uploads fan out on a thread pool; a Session is kept per worker thread.
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
        return session

    def _endpoint(self, action: str) -> str:
        return f"{CLOUDINARY_BASE}/{self.cloud_name}/image/{action}"

    def _signed(self, params: dict) -> dict:
        body = dict(params)
        body["timestamp"] = int(time.time())
        body["signature"] = sign_params(body, self.api_secret)
        body["api_key"] = self.api_key
        return body

    def _folder_for(self, owner_tag: str) -> str:
        tag = str(owner_tag or "").strip("/")
        if self.folder and tag:
            return f"{self.folder}/{tag}"
        return self.folder or tag

    def upload(self, local_path: str, owner_tag: str) -> StoredImage:
        body = self._signed({"folder": self._folder_for(owner_tag)})
        try:
            with open(local_path, "rb") as fh:
                response = self.session.post(
                    self._endpoint("upload"),
                    data=body,
                    files={"file": (os.path.basename(local_path), fh)},
                    timeout=self.timeout,
                )
        except OSError as exc:
            raise AssetUploadError(f"local file unreadable: {exc}") from exc
        except requests.Timeout as exc:
            raise AssetUploadError("asset upload timed out") from exc
        except requests.RequestException as exc:
            raise AssetUploadError(f"asset upload failed: {exc}") from exc

        data = _json_or_empty(response)
        if not 200 <= int(response.status_code) < 300:
            raise AssetUploadError(f"asset upload rejected ({response.status_code}): {_error_message(data)}")
        secure_url = str(data.get("secure_url") or "").strip()
        public_id = str(data.get("public_id") or "").strip()
        if not secure_url or not public_id:
            raise AssetUploadError("asset upload response missing secure_url/public_id")
        return StoredImage(url=secure_url, object_id=public_id)

    def destroy(self, object_id: str) -> bool:
        public_id = str(object_id or "").strip()
        if not public_id:
            raise AssetDestroyError("object id is required")
        body = self._signed({"public_id": public_id})
        try:
            response = self.session.post(self._endpoint("destroy"), data=body, timeout=self.timeout)
        except requests.Timeout as exc:
            raise AssetDestroyError("asset destroy timed out") from exc
        except requests.RequestException as exc:
            raise AssetDestroyError(f"asset destroy failed: {exc}") from exc

        data = _json_or_empty(response)
        if not 200 <= int(response.status_code) < 300:
            raise AssetDestroyError(f"asset destroy rejected ({response.status_code}): {_error_message(data)}")
        result = str(data.get("result") or "").strip().lower()
        if result == "ok":
            return True
        if result == "not found":
            return False
        raise AssetDestroyError(f"asset destroy returned '{result or 'unknown'}'")


def _json_or_empty(response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _error_message(data: dict) -> str:
    err = data.get("error")
    if isinstance(err, dict):
        return str(err.get("message") or "")[:200]
    return str(err or "")[:200]


def cloudinary_health() -> dict:
    missing = []
    for key in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET"):
        if not (os.getenv(key) or "").strip():
            missing.append(key)
    return {"missing": missing}
