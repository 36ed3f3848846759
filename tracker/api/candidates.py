from flask import Blueprint, current_app, jsonify, request

from ..errors import ValidationError
from ..services import offers, pipeline
from ..services.store import CandidateStore
from .forms import CandidateForm, LicensingForm, json_form

bp = Blueprint("candidates", __name__)


def pipeline_view(candidate):
    data = candidate.to_dict()
    return {
        "candidate_id": candidate.id,
        "stages": [s._asdict() for s in pipeline.derive_pipeline_stages(data)],
        "bucket": pipeline.derive_funnel_bucket(data),
        "progress": pipeline.progress_percent(data),
        "next_action": pipeline.next_action(data),
        "ready_to_go": pipeline.is_ready_to_go(data),
    }


@bp.route("/api/candidates", methods=["POST"])
def create_candidate():
    form = json_form(CandidateForm)
    candidate = CandidateStore().create(
        personal_info={
            "name": form.name.data,
            "email": form.email.data or None,
            "phone": form.phone.data or None,
            "alt_phone": form.alt_phone.data or None,
            "location": form.location.data or None,
        },
        call_center=form.call_center.data,
        license_status=form.license_status.data,
        notes=form.notes.data or "",
    )
    current_app.logger.info('Candidate %s created (%s)', candidate.id, candidate.name)
    return jsonify(candidate.to_dict()), 201


@bp.route("/api/candidates", methods=["GET"])
def list_candidates():
    filters = {}
    for key in ("call_center", "license_status", "status"):
        if request.args.get(key):
            filters[key] = request.args[key]
    rows = CandidateStore().query(filters)
    bucket = request.args.get("bucket")
    if bucket:
        rows = [c for c in rows if pipeline.derive_funnel_bucket(c) == bucket]
    return jsonify([c.to_dict() for c in rows])


@bp.route("/api/candidates/<candidate_id>", methods=["GET"])
def get_candidate(candidate_id):
    offers.watch_offers(candidate_id)
    return jsonify(CandidateStore().get(candidate_id, fresh=True).to_dict())


@bp.route("/api/candidates/<candidate_id>/pipeline", methods=["GET"])
def candidate_pipeline(candidate_id):
    offers.watch_offers(candidate_id)
    return jsonify(pipeline_view(CandidateStore().get(candidate_id, fresh=True)))


@bp.route("/api/candidates/<candidate_id>/licensing", methods=["PATCH"])
def update_licensing(candidate_id):
    payload = request.get_json(silent=True) or {}
    form = json_form(LicensingForm, payload)
    patch = {}
    for field in ("license_passed", "license_obtained", "exam_attempts"):
        if field in payload:
            patch[f"licensing.{field}"] = getattr(form, field).data
    if not patch:
        raise ValidationError("no licensing fields given")
    candidate = CandidateStore().update(candidate_id, patch)
    return jsonify(pipeline_view(candidate))


@bp.route("/api/funnel", methods=["GET"])
def funnel():
    store = CandidateStore()
    rows = store.query({"status": "Active"}) if request.args.get("active") == "1" else store.query()
    return jsonify(pipeline.funnel_counts(rows))
