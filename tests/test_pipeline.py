import pytest

from tracker.services import pipeline
from tracker.services.pipeline import (
    ACTIVE, BACKGROUND_CHECK, BUCKETS, CLASS_ASSIGNMENT, COMPLETE, FULL_OFFER, INTERVIEW,
    LICENSING, PENDING, PRE_LICENSE_OFFER, READY,
)

PASSED_INTERVIEW = {"status": "Completed", "result": "Passed", "composite_score": 4.4}


def unlicensed(**overrides):
    data = {
        "license_status": "Unlicensed",
        "interview": {"status": "Not Started", "evaluations": []},
        "background_check": {"initiated": False, "status": "Pending"},
        "offers": {"pre_license_offer": {"sent": False, "signed": False},
                   "full_agent_offer": {"eligible": False, "sent": False, "signed": False}},
        "licensing": {"license_passed": False},
        "class_assignment": {"start_date": None, "start_confirmed": False},
    }
    data.update(overrides)
    return data


def states(candidate):
    return {s.stage_id: s.state for s in pipeline.derive_pipeline_stages(candidate)}


def test_new_candidate_is_pending_interview():
    c = unlicensed()
    assert pipeline.derive_funnel_bucket(c) == INTERVIEW
    assert states(c)[INTERVIEW] == PENDING
    assert pipeline.next_action(c) == "schedule_interview"
    assert pipeline.progress_percent(c) == 0


@pytest.mark.parametrize("sparse", [{}, {"interview": None}, {"offers": "garbage"}, {"licensing": []}, None])
def test_sparse_input_still_yields_stages(sparse):
    stages = pipeline.derive_pipeline_stages(sparse)
    assert stages
    assert [s.stage_id for s in stages] == list(pipeline.STAGE_ORDER)
    assert all(s.state in (PENDING, ACTIVE, COMPLETE) for s in stages)
    assert pipeline.derive_funnel_bucket(sparse) == INTERVIEW


def test_failed_interview_never_advances():
    # background check marked Completed by a bad manual edit
    c = unlicensed(
        interview={"status": "Completed", "result": "Failed"},
        background_check={"initiated": True, "status": "Completed"},
    )
    assert pipeline.derive_funnel_bucket(c) == INTERVIEW
    s = states(c)
    assert s[INTERVIEW] == ACTIVE
    assert s[BACKGROUND_CHECK] == PENDING
    assert pipeline.next_action(c) is None
    assert not pipeline.is_ready_to_go(c)


def test_licensed_candidate_skips_licensing_and_pre_license_offer():
    c = {
        "license_status": "Licensed",
        "interview": PASSED_INTERVIEW,
        "background_check": {"initiated": True, "status": "Completed"},
        "offers": {"full_agent_offer": {"eligible": True, "sent": True, "signed": True}},
    }
    ids = [s.stage_id for s in pipeline.derive_pipeline_stages(c)]
    assert LICENSING not in ids
    assert PRE_LICENSE_OFFER not in ids
    assert pipeline.derive_funnel_bucket(c) in (CLASS_ASSIGNMENT, READY)
    assert pipeline.derive_funnel_bucket(c) == CLASS_ASSIGNMENT


def test_unlicensed_walks_every_stage_in_order():
    c = unlicensed(interview=PASSED_INTERVIEW)
    assert pipeline.derive_funnel_bucket(c) == BACKGROUND_CHECK

    c["background_check"] = {"initiated": True, "status": "Completed"}
    assert pipeline.derive_funnel_bucket(c) == PRE_LICENSE_OFFER

    c["offers"]["pre_license_offer"] = {"sent": True, "signed": False}
    assert states(c)[PRE_LICENSE_OFFER] == ACTIVE
    assert pipeline.next_action(c) == "await_pre_license_signature"

    c["offers"]["pre_license_offer"]["signed"] = True
    assert pipeline.derive_funnel_bucket(c) == LICENSING

    c["licensing"] = {"license_passed": True}
    assert pipeline.derive_funnel_bucket(c) == FULL_OFFER
    assert pipeline.full_offer_eligible(c)

    c["offers"]["full_agent_offer"] = {"eligible": True, "sent": True, "signed": True}
    assert pipeline.derive_funnel_bucket(c) == CLASS_ASSIGNMENT

    c["class_assignment"] = {"start_date": "2025-09-08", "start_confirmed": False}
    assert states(c)[CLASS_ASSIGNMENT] == ACTIVE

    c["class_assignment"]["start_confirmed"] = True
    assert pipeline.derive_funnel_bucket(c) == READY
    assert pipeline.is_ready_to_go(c)
    assert pipeline.progress_percent(c) == 100
    assert pipeline.next_action(c) is None


def test_later_stage_done_does_not_skip_earlier_gap():
    # offer signed but background check still running: bucket stays on the check
    c = unlicensed(
        interview=PASSED_INTERVIEW,
        background_check={"initiated": True, "status": "In Progress"},
    )
    c["offers"]["pre_license_offer"] = {"sent": True, "signed": True}
    assert pipeline.derive_funnel_bucket(c) == BACKGROUND_CHECK
    assert states(c)[PRE_LICENSE_OFFER] == PENDING


def test_completed_stages_form_a_prefix():
    c = unlicensed(
        interview=PASSED_INTERVIEW,
        background_check={"initiated": True, "status": "Completed"},
        licensing={"license_passed": True},
    )
    seen_incomplete = False
    for stage in pipeline.derive_pipeline_stages(c):
        if stage.state != COMPLETE:
            seen_incomplete = True
        else:
            assert not seen_incomplete
    bucket = pipeline.derive_funnel_bucket(c)
    completed = [s.stage_id for s in pipeline.derive_pipeline_stages(c) if s.state == COMPLETE]
    assert all(BUCKETS.index(s) < BUCKETS.index(bucket) for s in completed)


def test_scheduled_interview_next_action_is_start():
    c = unlicensed(interview={"status": "Scheduled", "scheduled_date": "2025-08-01T10:00"})
    assert states(c)[INTERVIEW] == ACTIVE
    assert pipeline.next_action(c) == "start_interview"


def test_funnel_counts_cover_every_bucket():
    counts = pipeline.funnel_counts([
        unlicensed(),
        unlicensed(interview={"status": "Completed", "result": "Failed"}),
        unlicensed(interview=PASSED_INTERVIEW),
    ])
    assert list(counts) == list(BUCKETS)
    assert counts[INTERVIEW] == 2
    assert counts[BACKGROUND_CHECK] == 1
    assert counts[READY] == 0


def test_derivation_accepts_model_instances(make_candidate):
    candidate = make_candidate(interview=PASSED_INTERVIEW)
    assert pipeline.get_funnel_bucket(candidate) == BACKGROUND_CHECK
    assert pipeline.get_pipeline_stages(candidate)[0].state == COMPLETE
