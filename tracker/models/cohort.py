from datetime import timedelta
from ..extensions import db
from .base import TimestampMixin, new_id

# nine week program
COHORT_LENGTH_DAYS = 63

COHORT_STAGES = (
    "START", "WK_1", "WK_2", "WK_3_CSR", "WK_4_CSR", "WK_5_CSR",
    "WK_6_CSR", "WK_7_A_BAY", "WK_8_A_BAY", "WK_9_TEAM", "COMPLETED",
)


def expected_end(start_date):
    return start_date + timedelta(days=COHORT_LENGTH_DAYS)


class Cohort(db.Model, TimestampMixin):
    __tablename__ = "cohorts"

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False)  # e.g. "CLASS 1 - July 2025"
    call_center = db.Column(db.String(8), nullable=False)
    class_type = db.Column(db.String(10), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    expected_end_date = db.Column(db.Date, nullable=False)
    trainer = db.Column(db.JSON)  # {"name", "type": SSS|CAP, "contact"}
    participants = db.Column(db.JSON, default=list)
    current_stage = db.Column(db.String(20), default="START")
    week_number = db.Column(db.Integer, default=0)
    status = db.Column(db.String(20), default="Active")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "call_center": self.call_center,
            "class_type": self.class_type,
            "start_date": self.start_date.isoformat(),
            "expected_end_date": self.expected_end_date.isoformat(),
            "trainer": self.trainer,
            "participants": list(self.participants or []),
            "current_stage": self.current_stage,
            "week_number": self.week_number,
            "status": self.status,
        }

    def __repr__(self) -> str:
        return f"<Cohort id={self.id} name={self.name!r}>"
