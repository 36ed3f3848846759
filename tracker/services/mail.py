from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from flask import current_app


def send_mail(to_email, subject, html):
    sg = SendGridAPIClient(api_key=current_app.config['SENDGRID_API_KEY'])
    message = Mail(from_email=(current_app.config['MAIL_FROM'], current_app.config['MAIL_FROM_NAME']),
                   to_emails=to_email,
                   subject=subject,
                   html_content=html)
    resp = sg.send(message)
    return resp.status_code, getattr(resp, 'headers', None)


def status_change_html(notification):
    return (
        f"<p><strong>{notification.candidate_name}</strong></p>"
        f"<p>{notification.message}</p>"
        f"<p>{notification.previous_status or 'Unknown'} &rarr; {notification.new_status}</p>"
    )
