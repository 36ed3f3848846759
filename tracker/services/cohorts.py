from datetime import date

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models.candidate import BG_COMPLETED, CLASS_AGENT, CLASS_UNL, LICENSED, UNLICENSED
from ..models.cohort import COHORT_STAGES, Cohort, expected_end
from .cohort_dates import class_type_for, parse_date
from .store import CandidateStore


def get_calendar(app=None):
    app = app or current_app
    return app.extensions["tracker.cohort_calendar"]


def resolve_next_cohort_date(class_type, today=None):
    return get_calendar().next_start_date(class_type, today)


def assign_candidate_to_cohort(candidate_id, chosen_date, store=None):
    """Confirm a class start date for the candidate.

    The date must be on the calendar of the candidate's class type; nothing
    is written otherwise.
    """
    store = store or CandidateStore()
    candidate = store.get(candidate_id)
    class_type = class_type_for(candidate)
    chosen = parse_date(chosen_date)
    if not get_calendar().contains(class_type, chosen):
        raise ValidationError(
            f"{chosen.isoformat()} is not a {class_type} cohort start date", field="start_date")
    current_app.logger.info('Assigning candidate %s to %s cohort starting %s', candidate_id, class_type, chosen)
    return store.update(candidate_id, {
        "class_assignment.class_type": class_type,
        "class_assignment.start_date": chosen.isoformat(),
        "class_assignment.start_confirmed": True,
    })


def create_cohort(name, call_center, class_type, start_date, trainer=None):
    start = parse_date(start_date)
    if not get_calendar().contains(class_type, start):
        raise ValidationError(f"{start.isoformat()} is not a {class_type} cohort start date", field="start_date")
    cohort = Cohort(
        name=name,
        call_center=call_center,
        class_type=class_type,
        start_date=start,
        expected_end_date=expected_end(start),
        trainer=trainer,
        participants=[],
        current_stage=COHORT_STAGES[0],
        week_number=0,
        status="Active",
    )
    db.session.add(cohort)
    db.session.commit()
    return cohort


def get_cohort(cohort_id):
    cohort = db.session.get(Cohort, cohort_id)
    if cohort is None:
        raise NotFoundError(f"cohort {cohort_id} not found")
    return cohort


def check_participant_eligibility(candidate, cohort):
    """Return (is_eligible, reasons) for putting the candidate in the cohort."""
    data = candidate.to_dict() if hasattr(candidate, "to_dict") else candidate
    reasons = []
    if data.get("call_center") != cohort.call_center:
        reasons.append(
            f"Call center mismatch: candidate is {data.get('call_center')}, cohort requires {cohort.call_center}")
    if data.get("status") != "Active":
        reasons.append(f"Candidate status is {data.get('status')}, must be Active")
    bg_status = (data.get("background_check") or {}).get("status")
    if bg_status != BG_COMPLETED:
        reasons.append(f"Background check status is {bg_status}, must be Completed")
    if data.get("id") in (cohort.participants or []):
        reasons.append("Candidate is already a participant in this cohort")

    assignment = data.get("class_assignment") or {}
    if assignment.get("start_date") and assignment.get("start_confirmed"):
        if parse_date(assignment["start_date"]) != cohort.start_date:
            reasons.append(
                f"Candidate is already confirmed for a different cohort starting {assignment['start_date']}")

    license_status = data.get("license_status")
    if cohort.class_type == CLASS_UNL:
        if license_status != UNLICENSED:
            reasons.append(f"Class type is UNL but candidate license status is {license_status}")
        pre_license = (data.get("offers") or {}).get("pre_license_offer") or {}
        if not pre_license.get("signed"):
            reasons.append("Pre-license offer must be signed for UNL class")
    elif cohort.class_type == CLASS_AGENT:
        if license_status != LICENSED:
            reasons.append(f"Class type is AGENT but candidate license status is {license_status}")
    return (len(reasons) == 0, reasons)


def add_participant(cohort_id, candidate_id, store=None):
    store = store or CandidateStore()
    cohort = get_cohort(cohort_id)
    candidate = store.get(candidate_id)
    ok, reasons = check_participant_eligibility(candidate, cohort)
    if not ok:
        raise ValidationError("Candidate is not eligible for this cohort: " + "; ".join(reasons))
    cohort.participants = list(cohort.participants or []) + [candidate_id]
    db.session.commit()
    store.update(candidate_id, {
        "class_assignment.class_type": cohort.class_type,
        "class_assignment.start_date": cohort.start_date.isoformat(),
        "class_assignment.start_confirmed": True,
    })
    return cohort


def remove_participant(cohort_id, candidate_id, store=None):
    store = store or CandidateStore()
    cohort = get_cohort(cohort_id)
    if candidate_id not in (cohort.participants or []):
        return cohort
    cohort.participants = [p for p in cohort.participants if p != candidate_id]
    db.session.commit()
    store.update(candidate_id, {
        "class_assignment.start_date": None,
        "class_assignment.start_confirmed": False,
    })
    return cohort


def week_number(cohort, today=None):
    today = today or date.today()
    days = (today - cohort.start_date).days
    if days < 0:
        return 0
    return min(9, days // 7 + 1)


def all_cohort_options():
    return get_calendar().all_options()


assign_candidate = assign_candidate_to_cohort
