"""Offer documents and the listener that merges them into candidates.

Offers live in their own table. The signing endpoint only touches the
offer document; ``OfferListener`` is the single path by which a signature
reaches ``candidate.offers``.
"""

import threading
from datetime import datetime

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..models.offer import FULL_AGENT, OFFER_FIELDS, PRE_LICENSE, offer_doc_id
from .pipeline import full_offer_eligible
from .store import CandidateStore, OfferStore


def fingerprint(snapshot):
    return (
        bool(snapshot.get("sent")),
        bool(snapshot.get("signed")),
        snapshot.get("sent_at"),
        snapshot.get("signed_at"),
    )


def offer_patch(snapshot):
    patch = {
        "sent": bool(snapshot.get("sent") or snapshot.get("sent_at")),
        "signed": bool(snapshot.get("signed")),
    }
    if snapshot.get("sent_at"):
        patch["sent_at"] = snapshot["sent_at"]
    if snapshot.get("signed_at"):
        patch["signed_at"] = snapshot["signed_at"]
    return patch


class OfferListener:
    """Watches both offer documents of one candidate.

    Each delivery is reduced to a fingerprint; a delivery equal to the last
    one seen for that document is dropped, anything else is merged into
    ``offers.<kind>`` with a targeted patch.
    """

    def __init__(self, candidate_id, on_update=None, candidate_store=None, offer_store=None):
        self.candidate_id = candidate_id
        self.on_update = on_update
        self.candidate_store = candidate_store or CandidateStore()
        self.offer_store = offer_store or OfferStore()
        self._last = {}
        self._unsubscribers = []
        self.writes = 0

    def handle(self, kind, snapshot):
        fp = fingerprint(snapshot)
        if self._last.get(kind) == fp:
            current_app.logger.debug('Offer %s for %s unchanged, skipping', kind, self.candidate_id)
            return None
        field = OFFER_FIELDS[kind]
        patch = {f"offers.{field}.{k}": v for k, v in offer_patch(snapshot).items()}
        self.candidate_store.update(self.candidate_id, patch)
        # only a committed merge counts as seen, so a redelivery after a failed write retries
        self._last[kind] = fp
        self.writes += 1
        current_app.logger.info('Merged %s offer state into candidate %s', kind, self.candidate_id)
        if self.on_update:
            self.on_update({"offers": {field: offer_patch(snapshot)}})
        return patch

    def seed(self):
        """Start from what the candidate already holds so current snapshots equal to it are skipped."""
        stored = self.candidate_store.get(self.candidate_id, fresh=True).offers or {}
        for kind, field in OFFER_FIELDS.items():
            self._last[kind] = fingerprint(stored.get(field) or {})

    def attach(self):
        self.seed()
        for kind in (PRE_LICENSE, FULL_AGENT):
            doc_id = offer_doc_id(self.candidate_id, kind)
            self._unsubscribers.append(
                self.offer_store.subscribe(doc_id, lambda snap, kind=kind: self.handle(kind, snap)))
        return self.detach

    def detach(self):
        while self._unsubscribers:
            self._unsubscribers.pop()()
        self._last.clear()

    def __enter__(self):
        self.attach()
        return self

    def __exit__(self, *exc):
        self.detach()
        return False


def attach_offer_listener(candidate_id, on_update=None):
    """Start merging offer updates for the candidate; returns the unsubscribe callable."""
    return OfferListener(candidate_id, on_update).attach()


class OfferListenerRegistry:
    """One listener per candidate with an open offer, owned by the app."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners = {}

    def ensure(self, candidate_id):
        with self._lock:
            listener = self._listeners.get(candidate_id)
            if listener is not None:
                return listener
            listener = OfferListener(candidate_id)
            self._listeners[candidate_id] = listener
        try:
            listener.attach()
        except Exception:
            self.release(candidate_id)
            raise
        return listener

    def release(self, candidate_id):
        with self._lock:
            listener = self._listeners.pop(candidate_id, None)
        if listener is not None:
            listener.detach()
        return listener is not None

    def release_all(self):
        with self._lock:
            listeners = list(self._listeners.values())
            self._listeners.clear()
        for listener in listeners:
            listener.detach()

    def __contains__(self, candidate_id):
        return candidate_id in self._listeners

    def __len__(self):
        return len(self._listeners)


def get_listener_registry(app=None):
    app = app or current_app
    return app.extensions["tracker.offer_listeners"]


def send_offer(candidate_id, kind=PRE_LICENSE, candidate_store=None, offer_store=None):
    """Create (or re-send) the offer document and start watching it."""
    candidate_store = candidate_store or CandidateStore()
    offer_store = offer_store or OfferStore()
    candidate = candidate_store.get(candidate_id)
    if kind not in OFFER_FIELDS:
        raise ValidationError(f"unknown offer kind: {kind}", field="kind")
    if kind == FULL_AGENT and not full_offer_eligible(candidate):
        raise ValidationError("full agent offer requires a Licensed candidate or a passed license exam",
                              field="kind")

    doc_id = offer_doc_id(candidate_id, kind)
    existing = offer_store.get(doc_id)
    if existing is not None and existing.signed:
        raise ValidationError("offer is already signed", field="kind")

    if kind == FULL_AGENT:
        # eligibility is not a signature field, so it is written here and not by the listener
        candidate_store.update(candidate_id, {"offers.full_agent_offer.eligible": True})
    get_listener_registry().ensure(candidate_id)
    return offer_store.upsert(doc_id, candidate_id, kind, sent=True, sent_at=datetime.utcnow())


def sign_offer(offer_id, signer_ip=None, download_url=None, offer_store=None):
    offer_store = offer_store or OfferStore()
    offer = offer_store.get(offer_id)
    if offer is None:
        raise NotFoundError(f"offer {offer_id} not found")
    if offer.signed:
        raise ValidationError("offer is already signed")
    if not offer.sent:
        raise ValidationError("offer has not been sent")
    current_app.logger.info('Offer %s signed', offer_id)
    # the listener that saw the send may belong to another worker or a previous process
    get_listener_registry().ensure(offer.candidate_id)
    offer = offer_store.upsert(offer.id, offer.candidate_id, offer.kind,
                               signed=True, signed_at=datetime.utcnow(),
                               signer_ip=signer_ip or "unknown", download_url=download_url)
    if not has_open_offer(offer.candidate_id, offer_store):
        get_listener_registry().release(offer.candidate_id)
    return offer


def has_open_offer(candidate_id, offer_store=None):
    offer_store = offer_store or OfferStore()
    for kind in OFFER_FIELDS:
        doc = offer_store.get(offer_doc_id(candidate_id, kind))
        if doc is not None and doc.sent and not doc.signed:
            return True
    return False


def watch_offers(candidate_id, offer_store=None):
    """Attach the candidate's listener while it has offer documents.

    Attaching delivers each document's current state, so anything recorded
    while no listener was held in this process is merged before the caller
    reads the candidate. The listener stays only while an offer is open.
    """
    offer_store = offer_store or OfferStore()
    if all(offer_store.get(offer_doc_id(candidate_id, kind)) is None for kind in OFFER_FIELDS):
        return False
    registry = get_listener_registry()
    registry.ensure(candidate_id)
    if not has_open_offer(candidate_id, offer_store):
        registry.release(candidate_id)
    return True
