from __future__ import annotations

from typing import Any


def success(
    data: Any = None,
    *,
    message: str | None = None,
    total: int | None = None,
    pagination: dict | None = None,
) -> dict:
    payload: dict[str, Any] = {"status": "success"}
    if message is not None:
        payload["message"] = message
    if total is not None:
        payload["total"] = int(total)
    if pagination is not None:
        payload["pagination"] = pagination
    if data is not None:
        payload["data"] = data
    return payload


def fail(message: str, *, code: str = "VALIDATION_FAILED") -> dict:
    return {"status": "fail", "code": code, "message": message}


def is_success(result: dict) -> bool:
    return (result or {}).get("status") == "success"


_FAIL_STATUS = {
    "VALIDATION_FAILED": 400,
    "UNAUTHORIZED": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "INVALID_TRANSITION": 409,
    "TRANSACTION_FAILED": 500,
    "IMAGE_BATCH_FAILED": 502,
}


def http_status_for(result: dict, ok_status: int = 200) -> int:
    if is_success(result):
        return ok_status
    return _FAIL_STATUS.get((result or {}).get("code") or "", 400)
