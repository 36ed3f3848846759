"""Derive a candidate's onboarding stage from its sub-states.

Everything here is pure: no I/O, no writes, and every function returns a
defined value for any candidate shape, including an empty dict.
"""

from collections import OrderedDict, namedtuple

from ..models.candidate import (
    BG_COMPLETED, BG_IN_PROGRESS, BG_REVIEW, INTERVIEW_COMPLETED,
    INTERVIEW_IN_PROGRESS, INTERVIEW_NOT_STARTED, INTERVIEW_SCHEDULED,
    LICENSED, RESULT_FAILED, RESULT_PASSED,
)

INTERVIEW = "interview"
BACKGROUND_CHECK = "background-check"
PRE_LICENSE_OFFER = "pre-license-offer"
LICENSING = "licensing"
FULL_OFFER = "full-offer"
CLASS_ASSIGNMENT = "class-assignment"
READY = "ready"

STAGE_ORDER = (INTERVIEW, BACKGROUND_CHECK, PRE_LICENSE_OFFER, LICENSING, FULL_OFFER, CLASS_ASSIGNMENT)
BUCKETS = STAGE_ORDER + (READY,)

# stages a Licensed candidate never goes through
UNLICENSED_ONLY = frozenset({PRE_LICENSE_OFFER, LICENSING})

PENDING = "pending"
ACTIVE = "active"
COMPLETE = "complete"

STAGE_LABELS = {
    INTERVIEW: "Interview",
    BACKGROUND_CHECK: "Background Check",
    PRE_LICENSE_OFFER: "Pre-License Offer",
    LICENSING: "Licensing",
    FULL_OFFER: "Full Agent Offer",
    CLASS_ASSIGNMENT: "Class Assignment",
}

Stage = namedtuple("Stage", ["stage_id", "state", "label"])


def _as_dict(candidate):
    if candidate is None:
        return {}
    if hasattr(candidate, "to_dict"):
        return candidate.to_dict()
    return candidate


def _section(data, name):
    value = data.get(name)
    return value if isinstance(value, dict) else {}


def _offer(data, name):
    value = _section(data, "offers").get(name)
    return value if isinstance(value, dict) else {}


def is_licensed(candidate):
    return _as_dict(candidate).get("license_status") == LICENSED


def interview_status(candidate):
    return _section(_as_dict(candidate), "interview").get("status") or INTERVIEW_NOT_STARTED


def interview_failed(candidate):
    interview = _section(_as_dict(candidate), "interview")
    return interview.get("status") == INTERVIEW_COMPLETED and interview.get("result") == RESULT_FAILED


def applicable_stages(candidate):
    if is_licensed(candidate):
        return tuple(s for s in STAGE_ORDER if s not in UNLICENSED_ONLY)
    return STAGE_ORDER


def full_offer_eligible(candidate):
    data = _as_dict(candidate)
    return is_licensed(data) or bool(_section(data, "licensing").get("license_passed"))


def _own_state(stage_id, data):
    """State of one stage looking only at its own sub-state."""
    if stage_id == INTERVIEW:
        interview = _section(data, "interview")
        status = interview.get("status") or INTERVIEW_NOT_STARTED
        if status == INTERVIEW_COMPLETED:
            # a completed interview only clears the stage with a Passed result
            return COMPLETE if interview.get("result") == RESULT_PASSED else ACTIVE
        if status in (INTERVIEW_SCHEDULED, INTERVIEW_IN_PROGRESS):
            return ACTIVE
        return PENDING

    if stage_id == BACKGROUND_CHECK:
        check = _section(data, "background_check")
        if check.get("status") == BG_COMPLETED:
            return COMPLETE
        if check.get("initiated") or check.get("status") in (BG_IN_PROGRESS, BG_REVIEW):
            return ACTIVE
        return PENDING

    if stage_id in (PRE_LICENSE_OFFER, FULL_OFFER):
        offer = _offer(data, "pre_license_offer" if stage_id == PRE_LICENSE_OFFER else "full_agent_offer")
        if offer.get("signed"):
            return COMPLETE
        return ACTIVE if offer.get("sent") else PENDING

    if stage_id == LICENSING:
        licensing = _section(data, "licensing")
        if licensing.get("license_passed"):
            return COMPLETE
        if licensing.get("license_obtained") or (licensing.get("exam_attempts") or 0) > 0:
            return ACTIVE
        return PENDING

    if stage_id == CLASS_ASSIGNMENT:
        assignment = _section(data, "class_assignment")
        if assignment.get("start_date") and assignment.get("start_confirmed"):
            return COMPLETE
        return ACTIVE if assignment.get("start_date") else PENDING

    return PENDING


def derive_pipeline_stages(candidate):
    """Ordered stages applicable to the candidate's track.

    Stages are gated: a stage only counts as complete when every earlier
    stage is complete, and stages after the current one stay pending.
    A failed interview leaves the interview stage active and everything
    after it pending.
    """
    data = _as_dict(candidate)
    stages = []
    blocked = False
    for stage_id in applicable_stages(data):
        if blocked:
            stages.append(Stage(stage_id, PENDING, STAGE_LABELS[stage_id]))
            continue
        state = _own_state(stage_id, data)
        if state != COMPLETE:
            blocked = True
        stages.append(Stage(stage_id, state, STAGE_LABELS[stage_id]))
    return stages


def derive_funnel_bucket(candidate):
    data = _as_dict(candidate)
    if interview_failed(data):
        return INTERVIEW
    for stage in derive_pipeline_stages(data):
        if stage.state != COMPLETE:
            return stage.stage_id
    return READY


def is_ready_to_go(candidate):
    return derive_funnel_bucket(candidate) == READY


def progress_percent(candidate):
    stages = derive_pipeline_stages(candidate)
    done = sum(1 for s in stages if s.state == COMPLETE)
    return int(round(100.0 * done / len(stages)))


NEXT_ACTIONS = {
    (INTERVIEW, PENDING): "schedule_interview",
    (INTERVIEW, ACTIVE): "complete_interview",
    (BACKGROUND_CHECK, PENDING): "initiate_background_check",
    (BACKGROUND_CHECK, ACTIVE): "await_background_check",
    (PRE_LICENSE_OFFER, PENDING): "send_pre_license_offer",
    (PRE_LICENSE_OFFER, ACTIVE): "await_pre_license_signature",
    (LICENSING, PENDING): "start_licensing",
    (LICENSING, ACTIVE): "track_licensing",
    (FULL_OFFER, PENDING): "send_full_agent_offer",
    (FULL_OFFER, ACTIVE): "await_full_agent_signature",
    (CLASS_ASSIGNMENT, PENDING): "assign_class",
    (CLASS_ASSIGNMENT, ACTIVE): "confirm_class_start",
}


def next_action(candidate):
    """Legal next step for the current stage, or None when nothing is left."""
    data = _as_dict(candidate)
    if interview_failed(data):
        return None
    interview = _section(data, "interview")
    if interview.get("status") == INTERVIEW_SCHEDULED:
        return "start_interview"
    for stage in derive_pipeline_stages(data):
        if stage.state != COMPLETE:
            return NEXT_ACTIONS.get((stage.stage_id, stage.state))
    return None


def funnel_counts(candidates):
    counts = OrderedDict((b, 0) for b in BUCKETS)
    for c in candidates:
        counts[derive_funnel_bucket(c)] += 1
    return counts


# names used by the API layer
get_pipeline_stages = derive_pipeline_stages
get_funnel_bucket = derive_funnel_bucket
