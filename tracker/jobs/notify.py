from flask import current_app, has_app_context
from ..extensions import db
from ..models.notification import Notification
from ..services.mail import send_mail, status_change_html


def _run_email_notification(notification_id: int):
    n = db.session.get(Notification, notification_id)
    to_email = current_app.config.get('RECRUITER_ALERT_EMAIL')
    if n is None or not to_email:
        return None
    subject = f"[Onboarding] {n.candidate_name}: background check {n.new_status}"
    status, _headers = send_mail(to_email, subject, status_change_html(n))
    current_app.logger.info('Alert e-mail for notification %s sent (status %s)', n.id, status)
    return status


def email_notification(notification_id: int):
    """Worker entrypoint; reuses the caller's app context when there is one."""
    if has_app_context():
        return _run_email_notification(notification_id)
    from tracker import create_app
    app = create_app()
    with app.app_context():
        return _run_email_notification(notification_id)
