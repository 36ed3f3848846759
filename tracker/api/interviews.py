from flask import Blueprint, jsonify

from ..services import interviews
from .candidates import pipeline_view
from .forms import CompleteInterviewForm, EvaluationForm, ScheduleInterviewForm, json_form

bp = Blueprint("interviews", __name__)


@bp.route("/api/candidates/<candidate_id>/interview/schedule", methods=["POST"])
def schedule(candidate_id):
    form = json_form(ScheduleInterviewForm)
    c = interviews.schedule_interview(candidate_id, form.scheduled_date.data,
                                      location=form.location.data or None,
                                      interviewer_email=form.interviewer_email.data or None)
    return jsonify(pipeline_view(c))


@bp.route("/api/candidates/<candidate_id>/interview/cancel", methods=["POST"])
def cancel(candidate_id):
    return jsonify(pipeline_view(interviews.cancel_interview(candidate_id)))


@bp.route("/api/candidates/<candidate_id>/interview/start", methods=["POST"])
def start(candidate_id):
    return jsonify(pipeline_view(interviews.start_interview(candidate_id)))


@bp.route("/api/candidates/<candidate_id>/interview/evaluations", methods=["POST"])
def add_evaluation(candidate_id):
    form = json_form(EvaluationForm)
    scores = {k: getattr(form, k).data for k in interviews.SCORE_KEYS}
    c = interviews.add_evaluation(candidate_id, form.manager_name.data, scores,
                                  recommendation=form.recommendation.data or None,
                                  notes=form.notes.data or "")
    return jsonify(c.interview), 201


@bp.route("/api/candidates/<candidate_id>/interview/complete", methods=["POST"])
def complete(candidate_id):
    form = json_form(CompleteInterviewForm)
    c = interviews.complete_interview(candidate_id, force_result=form.force_result.data or None)
    return jsonify(pipeline_view(c))
