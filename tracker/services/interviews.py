from datetime import datetime
from uuid import uuid4

from ..errors import ValidationError
from ..models.candidate import (
    INTERVIEW_COMPLETED, INTERVIEW_IN_PROGRESS, INTERVIEW_NOT_STARTED, INTERVIEW_SCHEDULED,
    RESULT_FAILED, RESULT_PASSED,
)
from .store import CandidateStore

PASSING_SCORE = 4.0

STATUS_TRANSITIONS = {
    INTERVIEW_NOT_STARTED: (INTERVIEW_SCHEDULED,),
    INTERVIEW_SCHEDULED: (INTERVIEW_IN_PROGRESS, INTERVIEW_NOT_STARTED),  # can cancel back
    INTERVIEW_IN_PROGRESS: (INTERVIEW_COMPLETED,),
    INTERVIEW_COMPLETED: (),
}

SCORE_KEYS = ("communication", "technical_skills", "customer_service", "problem_solving", "culture_fit")


def can_transition_to(current, new):
    return new in STATUS_TRANSITIONS.get(current or INTERVIEW_NOT_STARTED, ())


def _interview(candidate):
    return dict(candidate.interview or {})


def _require_transition(candidate, new):
    current = _interview(candidate).get("status") or INTERVIEW_NOT_STARTED
    if not can_transition_to(current, new):
        raise ValidationError(f"Cannot move interview from {current} to {new}", field="status")


def composite_score(evaluations):
    if not evaluations:
        return 0.0
    return sum(float(e.get("average_score") or 0) for e in evaluations) / len(evaluations)


def average_score(scores):
    values = [float(scores[k]) for k in SCORE_KEYS if scores.get(k) is not None]
    return round(sum(values) / len(values), 2) if values else 0.0


def meets_hiring_criteria(interview):
    interview = interview or {}
    return interview.get("status") == INTERVIEW_COMPLETED and (interview.get("composite_score") or 0) >= PASSING_SCORE


def schedule_interview(candidate_id, scheduled_date, location=None, interviewer_email=None, store=None):
    store = store or CandidateStore()
    candidate = store.get(candidate_id)
    _require_transition(candidate, INTERVIEW_SCHEDULED)
    return store.update(candidate_id, {"interview": {
        "status": INTERVIEW_SCHEDULED,
        "scheduled_date": scheduled_date,
        "location": location,
        "interviewer_email": interviewer_email,
    }})


def cancel_interview(candidate_id, store=None):
    store = store or CandidateStore()
    candidate = store.get(candidate_id)
    _require_transition(candidate, INTERVIEW_NOT_STARTED)
    return store.update(candidate_id, {"interview": {"status": INTERVIEW_NOT_STARTED, "scheduled_date": None}})


def start_interview(candidate_id, store=None):
    store = store or CandidateStore()
    candidate = store.get(candidate_id)
    _require_transition(candidate, INTERVIEW_IN_PROGRESS)
    return store.update(candidate_id, {"interview.status": INTERVIEW_IN_PROGRESS})


def add_evaluation(candidate_id, manager_name, scores, recommendation=None, notes="", store=None):
    store = store or CandidateStore()
    candidate = store.get(candidate_id)
    interview = _interview(candidate)
    if interview.get("status") not in (INTERVIEW_IN_PROGRESS, INTERVIEW_COMPLETED):
        raise ValidationError("Can only add evaluations to interviews in progress or completed", field="status")
    evaluation = {
        "id": f"eval-{uuid4().hex[:12]}",
        "manager_name": manager_name,
        "evaluation_date": datetime.utcnow().isoformat(),
        "scores": {k: scores.get(k) for k in SCORE_KEYS},
        "average_score": average_score(scores),
        "recommendation": recommendation,
        "notes": notes or "",
    }
    evaluations = list(interview.get("evaluations") or []) + [evaluation]
    score = composite_score(evaluations)
    patch = {"evaluations": evaluations, "composite_score": round(score, 2)}
    if interview.get("status") == INTERVIEW_COMPLETED and not interview.get("result_forced"):
        # a late evaluation moves the scored result along with the composite
        patch["result"] = RESULT_PASSED if score >= PASSING_SCORE else RESULT_FAILED
    return store.update(candidate_id, {"interview": patch})


def complete_interview(candidate_id, force_result=None, store=None):
    """Close the interview; Passed iff the composite score reaches PASSING_SCORE.

    A forced result is stored as given, even against the score.
    """
    store = store or CandidateStore()
    candidate = store.get(candidate_id)
    _require_transition(candidate, INTERVIEW_COMPLETED)
    if force_result not in (None, RESULT_PASSED, RESULT_FAILED):
        raise ValidationError(f"invalid interview result: {force_result}", field="result")
    evaluations = _interview(candidate).get("evaluations") or []
    if not evaluations and not force_result:
        raise ValidationError("Cannot complete interview without evaluations", field="evaluations")
    score = composite_score(evaluations)
    result = force_result or (RESULT_PASSED if score >= PASSING_SCORE else RESULT_FAILED)
    return store.update(candidate_id, {"interview": {
        "status": INTERVIEW_COMPLETED,
        "result": result,
        "result_forced": bool(force_result),
        "completed_date": datetime.utcnow().isoformat(),
        "composite_score": round(score, 2),
    }})
