"""Record stores for candidates and offer documents.

Both stores speak in patches: nested dicts (or dotted keys such as
``"background_check.status"``) that are deep-merged into the JSON sub-state
columns, so a writer never replaces sibling fields it did not name.
Every committed write is pushed to in-process subscribers.
"""

import copy
import threading
from datetime import date, datetime

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models.candidate import Candidate
from ..models.offer import Offer


def expand_patch(patch):
    """Turn dotted keys into nested dicts: {"a.b": 1} -> {"a": {"b": 1}}."""
    tree = {}
    for key, value in (patch or {}).items():
        parts = key.split(".")
        node = tree
        for p in parts[:-1]:
            node = node.setdefault(p, {})
            if not isinstance(node, dict):
                raise ValidationError(f"conflicting patch keys at {key}", field=key)
        leaf = parts[-1]
        if isinstance(value, dict) and isinstance(node.get(leaf), dict):
            node[leaf] = deep_merge(node[leaf], value)
        else:
            node[leaf] = value
    return tree


def deep_merge(base, patch):
    out = dict(base or {})
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = deep_merge(out[key], value)
        else:
            out[key] = value
    return out


def jsonable(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return value


def lookup(data, dotted, default=None):
    node = data
    for part in dotted.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


class Subscriptions:
    """Key -> callbacks registry. Callbacks run on the publishing thread."""

    def __init__(self):
        self._lock = threading.Lock()
        self._callbacks = {}

    def subscribe(self, key, callback):
        with self._lock:
            self._callbacks.setdefault(key, []).append(callback)

        def unsubscribe():
            with self._lock:
                callbacks = self._callbacks.get(key) or []
                if callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._callbacks.pop(key, None)
        return unsubscribe

    def publish(self, key, snapshot):
        with self._lock:
            callbacks = list(self._callbacks.get(key) or [])
        for cb in callbacks:
            try:
                cb(snapshot)
            except Exception:
                current_app.logger.exception('Subscriber for %s failed', key)

    def count(self, key=None):
        with self._lock:
            if key is not None:
                return len(self._callbacks.get(key) or [])
            return sum(len(v) for v in self._callbacks.values())


def get_subscriptions(app=None):
    app = app or current_app
    return app.extensions["tracker.subscriptions"]


class CandidateStore:
    def __init__(self, subscriptions=None):
        self.subscriptions = subscriptions or get_subscriptions()

    def get(self, candidate_id, fresh=False):
        row = db.session.get(Candidate, candidate_id, populate_existing=fresh)
        if row is None:
            raise NotFoundError(f"candidate {candidate_id} not found")
        return row

    def create(self, **fields):
        row = Candidate(**fields)
        db.session.add(row)
        db.session.commit()
        return row

    def update(self, candidate_id, patch):
        row = self.get(candidate_id)
        tree = expand_patch(patch)
        for key, value in tree.items():
            if key in Candidate.JSON_FIELDS:
                if not isinstance(value, dict):
                    raise ValidationError(f"{key} must be patched with an object", field=key)
                current = copy.deepcopy(getattr(row, key) or {})
                # assign a new object so the JSON column is flagged dirty
                setattr(row, key, deep_merge(current, jsonable(value)))
            elif key in Candidate.SCALAR_FIELDS:
                setattr(row, key, value)
            else:
                raise ValidationError(f"unknown candidate field: {key}", field=key)
        row.updated_at = datetime.utcnow()
        db.session.commit()
        self.subscriptions.publish(("candidates", candidate_id), row.to_dict())
        return row

    def subscribe(self, candidate_id, callback):
        return self.subscriptions.subscribe(("candidates", candidate_id), callback)

    def query(self, filters=None):
        """Return candidates whose dotted fields match every filter.

        A list/tuple/set filter value means "one of".
        """
        filters = filters or {}
        out = []
        for row in Candidate.query.order_by(Candidate.created_at).all():
            data = row.to_dict()
            ok = True
            for key, expected in filters.items():
                actual = lookup(data, key)
                if isinstance(expected, (list, tuple, set, frozenset)):
                    ok = actual in expected
                else:
                    ok = actual == expected
                if not ok:
                    break
            if ok:
                out.append(row)
        return out


class OfferStore:
    def __init__(self, subscriptions=None):
        self.subscriptions = subscriptions or get_subscriptions()

    def get(self, offer_id):
        return db.session.get(Offer, offer_id)

    def upsert(self, offer_id, candidate_id, kind, **fields):
        row = self.get(offer_id)
        if row is None:
            row = Offer(id=offer_id, candidate_id=candidate_id, kind=kind)
            db.session.add(row)
        for key, value in fields.items():
            setattr(row, key, value)
        db.session.commit()
        self.publish(row)
        return row

    def publish(self, row):
        self.subscriptions.publish(("offers", row.id), row.to_dict())

    def subscribe(self, offer_id, callback, deliver_current=True):
        unsubscribe = self.subscriptions.subscribe(("offers", offer_id), callback)
        if deliver_current:
            row = self.get(offer_id)
            if row is not None:
                callback(row.to_dict())
        return unsubscribe
