from flask import Blueprint, current_app, jsonify

from ..extensions import rq
from ..jobs.reconcile import reconcile_background_checks, run_background_check_reconciliation
from ..services.background_checks import initiate_background_check
from .forms import ApplicantForm, json_form

bp = Blueprint("background_checks", __name__)


@bp.route("/api/candidates/<candidate_id>/background-check", methods=["POST"])
def initiate(candidate_id):
    form = json_form(ApplicantForm)
    fields = {k: v for k, v in form.data.items() if k != "csrf_token"}
    candidate = initiate_background_check(candidate_id, fields)
    return jsonify(candidate.background_check), 201


@bp.route("/api/background-checks/reconcile", methods=["POST"])
def reconcile():
    """Manual trigger. Runs inline when RQ is in sync mode, otherwise queues a job."""
    if rq.queue is None:
        results = run_background_check_reconciliation()
        return jsonify({
            "checked": len(results),
            "changed": sum(1 for r in results if r.changed),
            "results": [r._asdict() for r in results],
        })
    job = rq.enqueue(reconcile_background_checks, job_timeout=600)
    job_id = getattr(job, "id", None)
    current_app.logger.info('Queued background check reconciliation job %s', job_id)
    return jsonify({"job_id": job_id}), 202


@bp.route("/api/background-checks/monitor", methods=["GET"])
def monitor_status():
    monitor = current_app.extensions["tracker.background_check_monitor"]
    last = monitor.last_results
    return jsonify({
        "running": monitor.running,
        "interval": monitor.interval,
        "last_run": None if last is None else [r._asdict() for r in last],
    })
