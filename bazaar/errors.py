from __future__ import annotations


class BazaarError(Exception):
    """Base for failures that map onto the `{status: "fail"}` response shape."""

    code = "BAZAAR_ERROR"
    http_status = 400

    def __init__(self, message: str = "", *, code: str | None = None, detail: dict | None = None):
        self.message = message or self.__class__.__name__
        if code:
            self.code = code
        self.detail = detail or {}
        super().__init__(self.message)

    def to_payload(self) -> dict:
        payload = {
            "status": "fail",
            "code": self.code,
            "message": self.message,
        }
        if self.detail:
            payload["detail"] = self.detail
        return payload


class ValidationFailure(BazaarError):
    code = "VALIDATION_FAILED"
    http_status = 400


class NotFoundFailure(BazaarError):
    code = "NOT_FOUND"
    http_status = 404


class AuthenticationRequired(BazaarError):
    code = "UNAUTHORIZED"
    http_status = 401


class AuthorizationFailure(BazaarError):
    code = "FORBIDDEN"
    http_status = 403


class InvalidTransitionError(BazaarError):
    code = "INVALID_TRANSITION"
    http_status = 409

    def __init__(self, current: str, action: str):
        self.current = current
        self.action = action
        super().__init__(
            f"Cannot {action} a post in state '{current}'",
            detail={"state": current, "action": action},
        )


class ImageBatchError(BazaarError):
    """A required upload/destroy batch had at least one failed call."""

    code = "IMAGE_BATCH_FAILED"
    http_status = 502

    def __init__(self, failures: list[dict], *, uploaded_object_ids: list[str] | None = None):
        self.failures = list(failures)
        self.uploaded_object_ids = list(uploaded_object_ids or [])
        super().__init__(
            "Image processing failed, the post was not changed",
            detail={"failures": self.failures},
        )
