from __future__ import annotations

from dataclasses import dataclass

from flask import g, request

from bazaar.errors import AuthenticationRequired, AuthorizationFailure
from bazaar.extensions import db
from bazaar.models import User
from bazaar.models.user import MODERATOR_ROLES
from bazaar.utils.jwt_utils import decode_token, get_bearer_token


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: str = "user"

    @property
    def is_moderator(self) -> bool:
        return (self.role or "").strip().lower() in MODERATOR_ROLES


def _current_user() -> User | None:
    token = get_bearer_token(request.headers.get("Authorization", ""))
    payload = decode_token(token) if token else None
    sub = payload.get("sub") if isinstance(payload, dict) else None
    try:
        uid = int(sub) if sub is not None else None
    except (TypeError, ValueError):
        uid = None
    if not uid:
        return None
    return db.session.get(User, uid)


def current_actor() -> Actor | None:
    user = _current_user()
    if user is None:
        return None
    actor = Actor(user_id=int(user.id), role=(user.role or "user").strip().lower())
    g.auth_user_id = actor.user_id
    g.auth_role = actor.role
    return actor


def require_actor() -> Actor:
    actor = current_actor()
    if actor is None:
        raise AuthenticationRequired("Unauthorized")
    return actor


def require_moderator(actor: Actor | None) -> Actor:
    if actor is None:
        raise AuthenticationRequired("Unauthorized")
    if not actor.is_moderator:
        raise AuthorizationFailure("Moderator role required")
    return actor
