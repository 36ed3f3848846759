from ..extensions import db
from .base import TimestampMixin

BACKGROUND_CHECK_UPDATE = "background_check_update"


class Notification(db.Model, TimestampMixin):
    __tablename__ = "notifications"
    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(50), default=BACKGROUND_CHECK_UPDATE)
    candidate_id = db.Column(db.String(64), nullable=False, index=True)
    candidate_name = db.Column(db.String(200))
    previous_status = db.Column(db.String(30))
    new_status = db.Column(db.String(30), nullable=False)
    ibr_id = db.Column(db.String(64))
    message = db.Column(db.Text)
    read = db.Column(db.Boolean, default=False, nullable=False, index=True)
    read_at = db.Column(db.DateTime)
    priority = db.Column(db.String(10), default="normal")
    recipient_role = db.Column(db.String(30), default="recruiter")

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "candidate_id": self.candidate_id,
            "candidate_name": self.candidate_name,
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "ibr_id": self.ibr_id,
            "message": self.message,
            "read": bool(self.read),
            "priority": self.priority,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
