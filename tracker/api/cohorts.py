from flask import Blueprint, jsonify, request

from ..services import cohorts
from ..services.cohort_dates import format_offer_date, parse_date
from .candidates import pipeline_view
from .forms import AssignCohortForm, CohortForm, json_form

bp = Blueprint("cohorts", __name__)


@bp.route("/api/cohorts/next-start", methods=["GET"])
def next_start():
    class_type = request.args.get("class_type", "")
    today = parse_date(request.args["today"]) if request.args.get("today") else None
    d = cohorts.resolve_next_cohort_date(class_type, today)
    return jsonify({"class_type": class_type, "start_date": d.isoformat(), "label": format_offer_date(d)})


@bp.route("/api/cohorts/options", methods=["GET"])
def options():
    return jsonify(cohorts.all_cohort_options())


@bp.route("/api/candidates/<candidate_id>/cohort", methods=["POST"])
def assign(candidate_id):
    form = json_form(AssignCohortForm)
    c = cohorts.assign_candidate_to_cohort(candidate_id, form.start_date.data)
    return jsonify(pipeline_view(c))


@bp.route("/api/cohorts", methods=["POST"])
def create():
    form = json_form(CohortForm)
    trainer = None
    if form.trainer_name.data:
        trainer = {"name": form.trainer_name.data, "email": form.trainer_email.data or None}
    cohort = cohorts.create_cohort(form.name.data, form.call_center.data, form.class_type.data,
                                   form.start_date.data, trainer=trainer)
    return jsonify(cohort.to_dict()), 201


@bp.route("/api/cohorts/<cohort_id>", methods=["GET"])
def get(cohort_id):
    return jsonify(cohorts.get_cohort(cohort_id).to_dict())


@bp.route("/api/cohorts/<cohort_id>/participants/<candidate_id>", methods=["POST"])
def add_participant(cohort_id, candidate_id):
    return jsonify(cohorts.add_participant(cohort_id, candidate_id).to_dict())


@bp.route("/api/cohorts/<cohort_id>/participants/<candidate_id>", methods=["DELETE"])
def remove_participant(cohort_id, candidate_id):
    return jsonify(cohorts.remove_participant(cohort_id, candidate_id).to_dict())
