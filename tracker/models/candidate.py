from ..extensions import db
from .base import TimestampMixin, new_id

# enum values stored as plain strings
CALL_CENTERS = ("CLT", "ATX")
LICENSED = "Licensed"
UNLICENSED = "Unlicensed"
CANDIDATE_STATUSES = ("Active", "Completed", "Dropped", "On Hold")

INTERVIEW_NOT_STARTED = "Not Started"
INTERVIEW_SCHEDULED = "Scheduled"
INTERVIEW_IN_PROGRESS = "In Progress"
INTERVIEW_COMPLETED = "Completed"
RESULT_PASSED = "Passed"
RESULT_FAILED = "Failed"

BG_PENDING = "Pending"
BG_IN_PROGRESS = "In Progress"
BG_COMPLETED = "Completed"
BG_FAILED = "Failed"
BG_REVIEW = "Review"

CLASS_UNL = "UNL"
CLASS_AGENT = "AGENT"


def default_interview():
    return {"status": INTERVIEW_NOT_STARTED, "evaluations": []}


def default_background_check():
    return {"initiated": False, "status": BG_PENDING, "notes": ""}


def default_offers():
    return {
        "pre_license_offer": {"sent": False, "signed": False},
        "full_agent_offer": {"eligible": False, "sent": False, "signed": False},
    }


def default_licensing():
    return {"license_passed": False, "license_obtained": False, "exam_attempts": 0}


def default_class_assignment():
    return {
        "class_type": None,
        "start_date": None,
        "start_confirmed": False,
        "pre_start_call_completed": False,
        "sys_onboarding": False,
        "training_completed": False,
    }


class Candidate(db.Model, TimestampMixin):
    __tablename__ = "candidates"

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    # {"name", "email", "phone", "alt_phone", "location"}
    personal_info = db.Column(db.JSON, nullable=False, default=dict)
    call_center = db.Column(db.String(8), index=True)
    license_status = db.Column(db.String(20), default=UNLICENSED)
    status = db.Column(db.String(20), default="Active", index=True)
    ready_to_go = db.Column(db.Boolean, default=False, nullable=False)
    notes = db.Column(db.Text, default="")

    # sub-states, patched field by field through CandidateStore.update
    interview = db.Column(db.JSON, default=default_interview)
    background_check = db.Column(db.JSON, default=default_background_check)
    offers = db.Column(db.JSON, default=default_offers)
    licensing = db.Column(db.JSON, default=default_licensing)
    class_assignment = db.Column(db.JSON, default=default_class_assignment)

    JSON_FIELDS = ("personal_info", "interview", "background_check", "offers", "licensing", "class_assignment")
    SCALAR_FIELDS = ("call_center", "license_status", "status", "ready_to_go", "notes")

    @property
    def name(self):
        return (self.personal_info or {}).get("name") or ""

    def to_dict(self):
        out = {"id": self.id}
        for f in self.SCALAR_FIELDS + self.JSON_FIELDS:
            out[f] = getattr(self, f)
        out["created_at"] = self.created_at.isoformat() if self.created_at else None
        out["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return out

    def __repr__(self) -> str:
        return f"<Candidate id={self.id} name={self.name!r}>"
