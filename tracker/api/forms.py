from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import BooleanField, DateField, FloatField, IntegerField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, NumberRange, Optional

from ..errors import ValidationError
from ..models.candidate import CALL_CENTERS, CLASS_AGENT, CLASS_UNL, LICENSED, RESULT_FAILED, RESULT_PASSED, UNLICENSED
from ..models.offer import FULL_AGENT, PRE_LICENSE


def json_form(form_cls, payload=None):
    """Bind a JSON body to a form and validate it; first error becomes a ValidationError."""
    if payload is None:
        payload = request.get_json(silent=True) or {}
    data = MultiDict({k: ("" if v is None else v) for k, v in payload.items() if not isinstance(v, (dict, list))})
    form = form_cls(formdata=data, meta={'csrf': False})
    if not form.validate():
        field, errors = next(iter(form.errors.items()))
        raise ValidationError(f"{field}: {errors[0]}", field=field)
    return form


class CandidateForm(FlaskForm):
    name = StringField("Name", validators=[DataRequired()])
    email = StringField("Email", validators=[Optional(), Email()])
    phone = StringField("Phone")
    alt_phone = StringField("Alt phone")
    location = StringField("Location")
    call_center = SelectField("Call center", choices=[(c, c) for c in CALL_CENTERS])
    license_status = SelectField("License status", choices=[(UNLICENSED, UNLICENSED), (LICENSED, LICENSED)],
                                 default=UNLICENSED)
    notes = TextAreaField("Notes")


class ScheduleInterviewForm(FlaskForm):
    scheduled_date = StringField("Scheduled", validators=[DataRequired()])
    location = StringField("Location")
    interviewer_email = StringField("Interviewer", validators=[Optional(), Email()])


class EvaluationForm(FlaskForm):
    manager_name = StringField("Manager", validators=[DataRequired()])
    communication = FloatField(validators=[Optional(), NumberRange(1, 5)])
    technical_skills = FloatField(validators=[Optional(), NumberRange(1, 5)])
    customer_service = FloatField(validators=[Optional(), NumberRange(1, 5)])
    problem_solving = FloatField(validators=[Optional(), NumberRange(1, 5)])
    culture_fit = FloatField(validators=[Optional(), NumberRange(1, 5)])
    recommendation = SelectField(choices=[("", ""), ("Hire", "Hire"), ("No Hire", "No Hire"), ("Maybe", "Maybe")],
                                 validators=[Optional()])
    notes = TextAreaField("Notes")


class CompleteInterviewForm(FlaskForm):
    force_result = SelectField(choices=[("", ""), (RESULT_PASSED, RESULT_PASSED), (RESULT_FAILED, RESULT_FAILED)],
                               validators=[Optional()])


class ApplicantForm(FlaskForm):
    first = StringField("First name")
    last = StringField("Last name")
    middle = StringField("Middle name")
    ssn = StringField("SSN", validators=[DataRequired()])
    dob = DateField("Date of birth", format="%Y-%m-%d", validators=[Optional()])
    address1 = StringField("Address", validators=[DataRequired()])
    address2 = StringField("Address 2")
    city = StringField("City", validators=[DataRequired()])
    state = StringField("State", validators=[DataRequired()])
    zipcode = StringField("Zip", validators=[DataRequired()])
    gender = StringField("Gender")


class SendOfferForm(FlaskForm):
    kind = SelectField(choices=[(PRE_LICENSE, PRE_LICENSE), (FULL_AGENT, FULL_AGENT)], default=PRE_LICENSE)


class SignOfferForm(FlaskForm):
    signer_ip = StringField("Signer IP")
    download_url = StringField("Download URL")


class AssignCohortForm(FlaskForm):
    start_date = DateField("Start date", format="%Y-%m-%d", validators=[DataRequired()])


class CohortForm(FlaskForm):
    name = StringField("Name", validators=[DataRequired()])
    call_center = SelectField(choices=[(c, c) for c in CALL_CENTERS])
    class_type = SelectField(choices=[(CLASS_AGENT, CLASS_AGENT), (CLASS_UNL, CLASS_UNL)])
    start_date = DateField("Start date", format="%Y-%m-%d", validators=[DataRequired()])
    trainer_name = StringField("Trainer")
    trainer_email = StringField("Trainer email", validators=[Optional(), Email()])


class LicensingForm(FlaskForm):
    license_passed = BooleanField()
    license_obtained = BooleanField()
    exam_attempts = IntegerField(validators=[Optional(), NumberRange(min=0)])
