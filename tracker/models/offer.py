from ..extensions import db
from .base import TimestampMixin

PRE_LICENSE = "pre_license"
FULL_AGENT = "full_agent"

# candidate offers sub-field each offer document is merged into
OFFER_FIELDS = {
    PRE_LICENSE: "pre_license_offer",
    FULL_AGENT: "full_agent_offer",
}


def offer_doc_id(candidate_id, kind=PRE_LICENSE):
    return f"{candidate_id}_full" if kind == FULL_AGENT else candidate_id


class Offer(db.Model, TimestampMixin):
    """Signature document, stored apart from the candidate record."""
    __tablename__ = "offers"

    id = db.Column(db.String(80), primary_key=True)  # <candidate_id> or <candidate_id>_full
    candidate_id = db.Column(db.String(64), db.ForeignKey("candidates.id"), nullable=False, index=True)
    kind = db.Column(db.String(20), nullable=False, default=PRE_LICENSE)
    sent = db.Column(db.Boolean, default=False, nullable=False)
    signed = db.Column(db.Boolean, default=False, nullable=False)
    sent_at = db.Column(db.DateTime)
    signed_at = db.Column(db.DateTime)
    signer_ip = db.Column(db.String(64))
    download_url = db.Column(db.String(512))

    def to_dict(self):
        return {
            "id": self.id,
            "candidate_id": self.candidate_id,
            "kind": self.kind,
            "sent": bool(self.sent),
            "signed": bool(self.signed),
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "signed_at": self.signed_at.isoformat() if self.signed_at else None,
        }

    def __repr__(self) -> str:
        return f"<Offer id={self.id} signed={self.signed}>"
