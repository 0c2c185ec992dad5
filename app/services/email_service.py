# app/services/email_service.py

import smtplib
import os
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from jinja2 import Environment, FileSystemLoader, select_autoescape
from loguru import logger
from app.core.config import settings

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates", "email")

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
)


# Helper to get template
def get_template(template_name):
    return _env.get_template(template_name)


# Helper to send email via SMTP
def send_email_via_smtp(to_email, subject, html_content):
    # Only HOST is required; user/pass are optional (Mailpit)
    if not settings.SMTP_HOST:
        logger.debug("SMTP host not configured. Skipping email.")
        return

    if not to_email:
        logger.warning(f"No recipient for '{subject}'. Skipping email.")
        return

    try:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{settings.EMAILS_FROM_NAME} <{settings.EMAILS_FROM_EMAIL}>"
        msg["To"] = to_email
        msg.attach(MIMEText(html_content, "html"))

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            server.ehlo()

            # TLS only on submission ports; Mailpit listens on 1025 without it
            if settings.SMTP_PORT in [587, 2525]:
                server.starttls()
                server.ehlo()

            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)

            server.sendmail(settings.EMAILS_FROM_EMAIL, to_email, msg.as_string())

        logger.info(f"Email '{subject}' sent to {to_email}")
    except Exception as e:
        logger.warning(f"Failed to send email to {to_email}: {e}")


def _render_and_send(template_name: str, to_email: str, subject: str, context: dict):
    try:
        html_content = get_template(template_name).render(context)
    except Exception as e:
        logger.warning(f"Error preparing email '{template_name}': {e}")
        return
    send_email_via_smtp(to_email, subject, html_content)


# ---------------------------------------------------------
# 1. SUBMISSION RECEIVED
# ---------------------------------------------------------
def send_submission_received_email(data: dict):
    """
    data requires: name, email, submission_id, title
    """
    context = {
        "name": data.get("name"),
        "title": data.get("title"),
        "submission_id": data.get("submission_id"),
        "submission_date": datetime.now().strftime("%d-%m-%Y %H:%M"),
        "track_url": f"{settings.FRONTEND_URL}/dashboard",
    }
    _render_and_send("submission_received.html", data.get("email"), "Submission received - Galileo", context)


# ---------------------------------------------------------
# 2. SUBMISSION VALIDATED
# ---------------------------------------------------------
def send_submission_validated_email(data: dict):
    context = {
        "name": data.get("name"),
        "title": data.get("title"),
        "comment": data.get("comment"),
        "publication_id": data.get("publication_id"),
        "publication_url": f"{settings.FRONTEND_URL}/publications/{data.get('publication_id')}",
    }
    _render_and_send("submission_validated.html", data.get("email"), "Your submission was approved", context)


# ---------------------------------------------------------
# 3. SUBMISSION REJECTED
# ---------------------------------------------------------
def send_submission_rejected_email(data: dict):
    context = {
        "name": data.get("name"),
        "title": data.get("title"),
        "comment": data.get("comment"),
        "rejection_date": datetime.now().strftime("%d-%m-%Y"),
    }
    _render_and_send("submission_rejected.html", data.get("email"), "Your submission was not accepted", context)


# ---------------------------------------------------------
# 4. REVISION REQUESTED
# ---------------------------------------------------------
def send_revision_requested_email(data: dict):
    context = {
        "name": data.get("name"),
        "title": data.get("title"),
        "comment": data.get("comment"),
        "track_url": f"{settings.FRONTEND_URL}/dashboard",
    }
    _render_and_send("revision_requested.html", data.get("email"), "Action required: revisions requested", context)
