from collections import namedtuple
from datetime import datetime

from flask import current_app, has_app_context

from ..errors import TransientExternalError
from ..extensions import db
from ..services import notifications
from ..services.background_checks import OPEN_STATUSES, VENDOR_STATUS_MAP, map_vendor_status, vendor_passed
from ..services.ibr import IBRClient
from ..services.store import CandidateStore
from ..models.candidate import BG_COMPLETED, BG_FAILED

ReconcileResult = namedtuple("ReconcileResult", ["candidate_id", "changed", "error"], defaults=(False, None))


def status_patch(vendor_status, new_status, now=None):
    """background_check fields to write for a detected transition."""
    now = (now or datetime.utcnow()).isoformat()
    patch = {"status": new_status, "last_checked_at": now}
    if vendor_status.extended:
        patch["extended_statuses"] = dict(vendor_status.extended)
    if vendor_status.report_url:
        patch["report_url"] = vendor_status.report_url
    if vendor_status.timestamps:
        patch["timestamps"] = dict(vendor_status.timestamps)
    if new_status == BG_COMPLETED and vendor_passed(vendor_status):
        patch["passed"] = True
        patch["passed_at"] = now
    elif new_status in (BG_COMPLETED, BG_FAILED):
        # a report that is complete without an explicit Pass is not a pass
        patch["passed"] = False
        patch["failed_at"] = now
    return patch


def reconcile_candidate(candidate, client, store):
    check = candidate.background_check or {}
    case_id = check.get("ibr_id")
    if not case_id:
        current_app.logger.warning('Candidate %s has an initiated background check without a case id', candidate.id)
        return ReconcileResult(candidate.id, False, "missing case id")

    vendor_status = client.poll_status(case_id)
    if (vendor_status.status or "").strip().lower() not in VENDOR_STATUS_MAP:
        current_app.logger.warning('Unmapped IBR status %r for case %s, keeping it In Progress',
                                   vendor_status.status, case_id)
    new_status = map_vendor_status(vendor_status.status)

    # compare against the stored record as it is now, not the batch snapshot
    current = store.get(candidate.id, fresh=True)
    stored = current.background_check or {}
    previous = stored.get("status")
    if stored.get("ibr_id") != case_id or previous == new_status:
        return ReconcileResult(candidate.id, False)

    current_app.logger.info('Background check for %s: %s -> %s (case %s)',
                            current.name, previous, new_status, case_id)
    # notify first; the status write is what marks the transition as handled
    notifications.emit(candidate.id, current.name, previous, new_status, ibr_id=case_id)
    store.update(candidate.id, {"background_check": status_patch(vendor_status, new_status)})
    return ReconcileResult(candidate.id, True)


def run_background_check_reconciliation(client=None, store=None):
    """One pass over every open background check.

    Per-candidate failures end up in the result list; only a configuration
    problem (no vendor credentials) propagates.
    """
    client = client or IBRClient.from_config()
    store = store or CandidateStore()
    pending = store.query({
        "background_check.initiated": True,
        "background_check.status": OPEN_STATUSES,
    })
    current_app.logger.info('Checking %d open background checks', len(pending))

    results = []
    for candidate in pending:
        try:
            results.append(reconcile_candidate(candidate, client, store))
        except TransientExternalError as e:
            db.session.rollback()
            current_app.logger.warning('Background check poll for %s skipped: %s', candidate.id, e)
            results.append(ReconcileResult(candidate.id, False, str(e)))
        except Exception as e:
            db.session.rollback()
            current_app.logger.exception('Background check reconciliation failed for %s', candidate.id)
            results.append(ReconcileResult(candidate.id, False, str(e) or e.__class__.__name__))

    changed = sum(1 for r in results if r.changed)
    current_app.logger.info('Check completed. %d status changes found.', changed)
    return results


def reconcile_background_checks():
    """Worker entrypoint; results are returned as plain dicts for RQ."""
    def _run():
        return [r._asdict() for r in run_background_check_reconciliation()]

    if has_app_context():
        return _run()
    from tracker import create_app
    app = create_app()
    with app.app_context():
        return _run()
