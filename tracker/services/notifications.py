from datetime import datetime

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db, rq
from ..models.candidate import BG_FAILED
from ..models.notification import BACKGROUND_CHECK_UPDATE, Notification

# status change -> message shown on the dashboard
NOTIFICATION_EVENTS = {
    "In Progress": "Background check has started processing",
    "Completed": "Background check has been completed",
    "Failed": "Background check has failed or requires attention",
    "Review": "Background check requires manual review",
}


def build_message(new_status):
    return NOTIFICATION_EVENTS.get(new_status) or f"Status changed to {new_status}"


def find_unread(candidate_id, new_status):
    return (
        Notification.query
        .filter_by(candidate_id=candidate_id, new_status=new_status, read=False)
        .order_by(Notification.id)
        .first()
    )


def emit(candidate_id, candidate_name, previous_status, new_status,
         type=BACKGROUND_CHECK_UPDATE, ibr_id=None):
    """Append a notification unless an unread one exists for the same pair.

    Returns (notification, created).
    """
    existing = find_unread(candidate_id, new_status)
    if existing is not None:
        current_app.logger.info(
            'Unread notification %s already covers %s -> %s, skipping', existing.id, candidate_id, new_status)
        return existing, False

    n = Notification(
        type=type,
        candidate_id=candidate_id,
        candidate_name=candidate_name,
        previous_status=previous_status,
        new_status=new_status,
        ibr_id=ibr_id,
        message=build_message(new_status),
        read=False,
        priority="high" if new_status == BG_FAILED else "normal",
    )
    db.session.add(n); db.session.commit()
    current_app.logger.info('Notification created for %s: %s', candidate_name, n.message)

    if current_app.config.get('RECRUITER_ALERT_EMAIL'):
        from ..jobs.notify import email_notification
        rq.enqueue(email_notification, n.id)
    return n, True


def list_unread(candidate_id=None, limit=50):
    q = Notification.query.filter_by(read=False)
    if candidate_id:
        q = q.filter_by(candidate_id=candidate_id)
    return q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def mark_read(notification_id):
    n = db.session.get(Notification, notification_id)
    if n is None:
        raise NotFoundError(f"notification {notification_id} not found")
    if n.read:
        return n
    n.read = True
    n.read_at = datetime.utcnow()
    db.session.commit()
    return n


def mark_all_read(candidate_id=None):
    """Mark every unread notification (optionally for one candidate) read.

    Returns how many were changed; zero on a repeat call.
    """
    q = Notification.query.filter_by(read=False)
    if candidate_id:
        q = q.filter_by(candidate_id=candidate_id)
    now = datetime.utcnow()
    count = 0
    for n in q.all():
        n.read = True
        n.read_at = now
        count += 1
    if count:
        db.session.commit()
    return count


mark_notification_read = mark_read
mark_all_notifications_read = mark_all_read
