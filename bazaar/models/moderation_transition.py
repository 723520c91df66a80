from datetime import datetime

from bazaar.extensions import db


class ModerationTransition(db.Model):
    __tablename__ = "moderation_transitions"

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, nullable=False, index=True)
    action = db.Column(db.String(32), nullable=False)
    from_state = db.Column(db.String(16), nullable=False, default="")
    to_state = db.Column(db.String(16), nullable=False)
    actor_id = db.Column(db.Integer, nullable=True)
    actor_role = db.Column(db.String(32), nullable=False, default="system")
    reason = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            "id": int(self.id),
            "post_id": int(self.post_id),
            "action": self.action or "",
            "from_state": self.from_state or "",
            "to_state": self.to_state or "",
            "actor_id": int(self.actor_id) if self.actor_id is not None else None,
            "actor_role": self.actor_role or "",
            "reason": self.reason or "",
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
