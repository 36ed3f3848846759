from datetime import datetime

import pytest

from tracker.errors import NotFoundError, ValidationError
from tracker.jobs.reconcile import run_background_check_reconciliation
from tracker.models.offer import FULL_AGENT, offer_doc_id
from tracker.services import offers
from tracker.services.store import OfferStore, get_subscriptions


def test_duplicate_delivery_writes_once(make_candidate, store):
    candidate = make_candidate()
    updates = []
    listener = offers.OfferListener(candidate.id, on_update=updates.append)
    snapshot = {"sent": True, "signed": False, "sent_at": "2025-08-01T09:00:00", "signed_at": None}

    assert listener.handle("pre_license", snapshot) is not None
    assert listener.handle("pre_license", dict(snapshot)) is None

    assert listener.writes == 1
    assert len(updates) == 1
    offer = store.get(candidate.id, fresh=True).offers["pre_license_offer"]
    assert offer == {"sent": True, "signed": False, "sent_at": "2025-08-01T09:00:00"}


def test_listener_merges_signature_without_touching_siblings(make_candidate, store):
    candidate = make_candidate()
    offer_store = OfferStore()
    unsubscribe = offers.attach_offer_listener(candidate.id)
    try:
        offer_store.upsert(candidate.id, candidate.id, "pre_license", sent=True,
                           sent_at=datetime(2025, 8, 1, 9, 0))
        offer_store.upsert(candidate.id, candidate.id, "pre_license", signed=True,
                           signed_at=datetime(2025, 8, 2, 14, 30))
    finally:
        unsubscribe()

    data = store.get(candidate.id, fresh=True).offers
    assert data["pre_license_offer"]["signed"] is True
    assert data["pre_license_offer"]["signed_at"] == "2025-08-02T14:30:00"
    assert data["full_agent_offer"] == {"eligible": False, "sent": False, "signed": False}


def test_unsubscribe_releases_both_documents(make_candidate):
    candidate = make_candidate()
    subs = get_subscriptions()
    unsubscribe = offers.attach_offer_listener(candidate.id)
    assert subs.count(("offers", candidate.id)) == 1
    assert subs.count(("offers", offer_doc_id(candidate.id, FULL_AGENT))) == 1
    unsubscribe()
    assert subs.count() == 0


def test_listener_context_manager(make_candidate, store):
    candidate = make_candidate()
    with offers.OfferListener(candidate.id) as listener:
        OfferStore().upsert(candidate.id, candidate.id, "pre_license", sent=True)
    assert listener.writes == 1
    assert get_subscriptions().count() == 0
    # updates after teardown are not merged
    OfferStore().upsert(candidate.id, candidate.id, "pre_license", signed=True)
    assert store.get(candidate.id, fresh=True).offers["pre_license_offer"]["signed"] is False


def test_send_and_sign_flow(make_candidate, store, app):
    candidate = make_candidate()
    registry = offers.get_listener_registry()

    offer = offers.send_offer(candidate.id)
    assert candidate.id in registry
    assert store.get(candidate.id, fresh=True).offers["pre_license_offer"]["sent"] is True

    offers.sign_offer(offer.id, signer_ip="10.0.0.1")
    assert store.get(candidate.id, fresh=True).offers["pre_license_offer"]["signed"] is True
    assert candidate.id not in registry

    with pytest.raises(ValidationError):
        offers.sign_offer(offer.id)
    with pytest.raises(ValidationError):
        offers.send_offer(candidate.id)


def test_sign_unknown_offer(app):
    with pytest.raises(NotFoundError):
        offers.sign_offer("missing")


def test_full_offer_requires_license(make_candidate, store):
    candidate = make_candidate()
    with pytest.raises(ValidationError):
        offers.send_offer(candidate.id, kind=FULL_AGENT)

    store.update(candidate.id, {"licensing.license_passed": True})
    offer = offers.send_offer(candidate.id, kind=FULL_AGENT)
    assert offer.id == f"{candidate.id}_full"
    full = store.get(candidate.id, fresh=True).offers["full_agent_offer"]
    assert full["eligible"] is True
    assert full["sent"] is True


def test_loop_and_listener_write_disjoint_fields(make_candidate, store, vendor):
    candidate = make_candidate(background_check={"initiated": True, "status": "Pending", "ibr_id": "CASE-1"})
    vendor.statuses["CASE-1"] = "Pass"

    # the signature lands while the vendor is being polled
    original_poll = vendor.poll_status

    def poll_while_signing(case_id):
        OfferStore().upsert(candidate.id, candidate.id, "pre_license", sent=True, signed=True,
                            signed_at=datetime(2025, 8, 2, 14, 30))
        return original_poll(case_id)

    vendor.poll_status = poll_while_signing
    with offers.OfferListener(candidate.id):
        run_background_check_reconciliation(client=vendor)

    fresh = store.get(candidate.id, fresh=True)
    assert fresh.background_check["status"] == "Completed"
    assert fresh.background_check["ibr_id"] == "CASE-1"
    assert fresh.offers["pre_license_offer"]["signed"] is True


def test_failed_merge_is_retried_on_redelivery(make_candidate, store, monkeypatch):
    candidate = make_candidate()
    listener = offers.OfferListener(candidate.id)
    snapshot = {"sent": True, "signed": True, "sent_at": "2025-08-01T09:00:00",
                "signed_at": "2025-08-02T14:30:00"}
    real_update = listener.candidate_store.update
    calls = []

    def update_once_broken(candidate_id, patch):
        calls.append(patch)
        if len(calls) == 1:
            raise RuntimeError("database is locked")
        return real_update(candidate_id, patch)

    monkeypatch.setattr(listener.candidate_store, "update", update_once_broken)

    with pytest.raises(RuntimeError):
        listener.handle("pre_license", snapshot)
    assert listener.handle("pre_license", dict(snapshot)) is not None

    assert len(calls) == 2
    assert listener.writes == 1
    assert store.get(candidate.id, fresh=True).offers["pre_license_offer"]["signed"] is True


def test_sign_reaches_candidate_when_no_listener_survived(make_candidate, store):
    candidate = make_candidate()
    registry = offers.get_listener_registry()
    offer = offers.send_offer(candidate.id)

    # a restarted process or another worker starts with an empty registry
    registry.release_all()
    offers.sign_offer(offer.id)

    assert store.get(candidate.id, fresh=True).offers["pre_license_offer"]["signed"] is True
    assert candidate.id not in registry


def test_attach_skips_state_the_candidate_already_holds(make_candidate):
    candidate = make_candidate()
    offers.send_offer(candidate.id)
    offers.get_listener_registry().release_all()

    with offers.OfferListener(candidate.id) as listener:
        pass
    assert listener.writes == 0


def test_watch_offers_merges_current_documents(make_candidate, store):
    candidate = make_candidate()
    registry = offers.get_listener_registry()
    assert offers.watch_offers(candidate.id) is False
    assert len(registry) == 0

    OfferStore().upsert(candidate.id, candidate.id, "pre_license", sent=True, signed=True,
                        signed_at=datetime(2025, 8, 2, 14, 30))
    assert store.get(candidate.id, fresh=True).offers["pre_license_offer"]["signed"] is False

    assert offers.watch_offers(candidate.id) is True
    merged = store.get(candidate.id, fresh=True).offers["pre_license_offer"]
    assert merged["signed_at"] == "2025-08-02T14:30:00"
    assert candidate.id not in registry
