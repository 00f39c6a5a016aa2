# Overview: Outbound mail for account notifications. Delivery is best effort.

"""
Notification Service

Temporary credentials are mailed over SMTP. When MAIL_USERNAME / MAIL_PASSWORD are not
configured the send is skipped with a warning (local development).

notify_user_created never raises: a delivery failure must not fail user creation.
"""

import smtplib
from email.message import EmailMessage

from flask import current_app


SUBJECT_ACCOUNT_CREATED = "Your Inventory System Account"


def _compose_temporary_password_message(user, temporary_password: str) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = SUBJECT_ACCOUNT_CREATED
    msg["From"] = current_app.config.get("MAIL_DEFAULT_SENDER") or current_app.config.get("MAIL_USERNAME")
    msg["To"] = user.email

    msg.set_content(
        f"Hello {user.full_name},\n"
        "\n"
        "An account has been created for you on the Inventory & Procurement System.\n"
        "\n"
        f"Login email: {user.email}\n"
        f"Temporary password: {temporary_password}\n"
        "\n"
        "For security, you will be required to change this password immediately after your first login.\n"
        "\n"
        "If you did not expect this account, please contact your system administrator.\n"
        "\n"
        "Regards,\n"
        "System Admin\n"
    )
    msg.add_alternative(
        f"<p>Hello {user.full_name},</p>"
        "<p>An account has been created for you on the <b>Inventory &amp; Procurement System</b>.</p>"
        f"<p><b>Login email:</b> {user.email}<br/>"
        f"<b>Temporary password:</b> {temporary_password}</p>"
        "<p>For security, you will be required to change this password immediately after your first login.</p>"
        "<p>If you did not expect this account, please contact your system administrator.</p>"
        "<p>Regards,<br/>System Admin</p>",
        subtype="html",
    )
    return msg


def send_email(msg: EmailMessage) -> bool:
    """
    Deliver a message via the configured SMTP server.

    Returns False when mail is not configured (nothing sent), True when sent.
    SMTP errors propagate to the caller.
    """
    config = current_app.config
    username = config.get("MAIL_USERNAME")
    password = config.get("MAIL_PASSWORD")

    if not username or not password:
        current_app.logger.warning("MAIL_USERNAME or MAIL_PASSWORD not set; skipping email to %s", msg["To"])
        return False

    host = config.get("MAIL_SERVER")
    port = int(config.get("MAIL_PORT", 587))
    timeout = float(config.get("MAIL_TIMEOUT_SECONDS", 10))

    smtp_cls = smtplib.SMTP_SSL if config.get("MAIL_USE_SSL") else smtplib.SMTP
    with smtp_cls(host, port, timeout=timeout) as server:
        if config.get("MAIL_USE_TLS") and not config.get("MAIL_USE_SSL"):
            server.starttls()
        server.login(username, password)
        server.send_message(msg)

    current_app.logger.info("Sent account email to %s", msg["To"])
    return True


def send_temporary_password(user, temporary_password: str) -> bool:
    return send_email(_compose_temporary_password_message(user, temporary_password))


def notify_user_created(user, temporary_password: str) -> bool:
    """Best-effort delivery of temporary credentials. Failures are logged and swallowed."""
    try:
        return send_temporary_password(user, temporary_password)
    except Exception:
        current_app.logger.exception("Failed to send temporary password email to user %s", user.id)
        return False
