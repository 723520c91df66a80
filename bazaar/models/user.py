from datetime import datetime

from werkzeug.security import generate_password_hash, check_password_hash

from bazaar.extensions import db


class AccountStatus:
    VALIDATE = "Validate"
    WARNING = "Warning"
    RESTRICTED = "Restricted"

    # Owners in these states keep their listings in the public feed.
    PUBLIC = (VALIDATE, WARNING)


MODERATOR_ROLES = ("admin", "superadmin")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False, default="")
    email = db.Column(db.String(255), unique=True, index=True, nullable=False)
    phone = db.Column(db.String(32), unique=True, index=True, nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(32), nullable=False, default="user")
    account_status = db.Column(db.String(16), nullable=False, default=AccountStatus.VALIDATE, index=True)
    warning_count = db.Column(db.Integer, nullable=False, default=0, server_default="0")

    email_verified = db.Column(db.Boolean, nullable=False, default=False)
    nid_submitted = db.Column(db.Boolean, nullable=False, default=False)
    nid_verified = db.Column(db.Boolean, nullable=False, default=False)
    nid_number = db.Column(db.String(32), nullable=True)
    nid_front = db.Column(db.String(1024), nullable=True)
    nid_back = db.Column(db.String(1024), nullable=True)

    avatar_url = db.Column(db.String(1024), nullable=True)
    avatar_object_id = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    # Session bookkeeping is owned by the auth service; kept here so it can be redacted.
    session_id = db.Column(db.String(64), nullable=True)
    login_attempt = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    last_login = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def set_password(self, raw_password: str) -> None:
        self.password_hash = generate_password_hash(raw_password)

    def check_password(self, raw_password: str) -> bool:
        return check_password_hash(self.password_hash, raw_password)

    @property
    def is_moderator(self) -> bool:
        return (self.role or "").strip().lower() in MODERATOR_ROLES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": getattr(self, "phone", None),
            "role": self.role or "user",
            "account_status": self.account_status or AccountStatus.VALIDATE,
            "warning_count": int(self.warning_count or 0),
            "email_verified": bool(self.email_verified),
            "nid_submitted": bool(self.nid_submitted),
            "nid_verified": bool(self.nid_verified),
            "nid_number": self.nid_number or "",
            "nid_front": self.nid_front or "",
            "nid_back": self.nid_back or "",
            "avatar": {
                "url": self.avatar_url or "",
                "object_id": self.avatar_object_id or "",
            },
            "address": self.address or "",
            "session_id": self.session_id or "",
            "login_attempt": int(self.login_attempt or 0),
            "last_login": self.last_login.isoformat() if self.last_login else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
