"""
Email Service
Sends account emails over SMTP (Gmail, Outlook and other SMTP servers).
When EMAIL_ENABLED is off the message is only logged.
"""
import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from horde.core.config import settings

logger = logging.getLogger(__name__)

VERIFY_EMAIL_ROUTE = "/auth/verify-email"
PASS_RESET_ROUTE = "/auth/reset-password"
DASHBOARD_ROUTE = "/user/dashboard/home"

_STYLE = """
        <style>
            body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
            .container { max-width: 600px; margin: 0 auto; padding: 20px; }
            .header { background-color: #2563eb; color: white; padding: 20px; text-align: center; border-radius: 8px 8px 0 0; }
            .content { background-color: #f8fafc; padding: 20px; border-radius: 0 0 8px 8px; }
            .button { display: inline-block; padding: 12px 24px; background-color: #2563eb; color: white; text-decoration: none; border-radius: 6px; margin: 10px 5px; }
            .footer { text-align: center; margin-top: 20px; color: #64748b; font-size: 12px; }
        </style>
"""


def send_email(
    to_email: str,
    subject: str,
    body_html: str,
    body_text: Optional[str] = None,
) -> bool:
    """
    Send an email using SMTP.

    Args:
        to_email: Recipient email address
        subject: Email subject
        body_html: HTML email body
        body_text: Plain text email body (optional)

    Returns:
        bool: True if email sent (or logged while email is disabled), False otherwise
    """
    if not settings.EMAIL_ENABLED:
        logger.info(f"Email disabled, not sending '{subject}' to {to_email}")
        if body_text:
            logger.debug(body_text)
        return True

    try:
        msg = MIMEMultipart("alternative")
        msg["From"] = f"{settings.PROJECT_NAME} <{settings.EMAIL_FROM}>"
        msg["To"] = to_email
        msg["Subject"] = subject

        if body_text:
            msg.attach(MIMEText(body_text, "plain"))
        msg.attach(MIMEText(body_html, "html"))

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            server.starttls()
            if settings.SMTP_USERNAME:
                server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            server.send_message(msg)

        logger.info(f"Email sent successfully to {to_email}")
        return True

    except smtplib.SMTPAuthenticationError as e:
        logger.error(f"SMTP authentication failed: {str(e)}")
        return False
    except smtplib.SMTPException as e:
        logger.error(f"SMTP error: {str(e)}")
        return False
    except OSError as e:
        logger.error(f"Error sending email: {str(e)}")
        return False


def _wrap(title: str, inner_html: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>{_STYLE}</head>
    <body>
        <div class="container">
            <div class="header">
                <h1>{title}</h1>
            </div>
            <div class="content">
                {inner_html}
            </div>
            <div class="footer">
                <p>&copy; {datetime.utcnow().year} {settings.PROJECT_NAME}. Questions? Contact {settings.EMAIL_FROM}.</p>
            </div>
        </div>
    </body>
    </html>
    """


def send_verification_email(email: str, token: str) -> bool:
    link = f"{settings.CLIENT_BASE_URL}{VERIFY_EMAIL_ROUTE}?token={token}"
    html_body = _wrap(
        "Verify Your Email Address",
        f"""
                <p>Hello,</p>
                <p>Thanks for signing up to {settings.PROJECT_NAME}. Confirm your email address to finish creating your account.</p>
                <div style="text-align: center; margin: 20px 0;">
                    <a href="{link}" class="button">Verify Email</a>
                </div>
                <p>This link expires in {settings.PENDING_USER_EXPIRE_HOURS} hours.</p>
        """,
    )
    text_body = f"Verify your email address for {settings.PROJECT_NAME}: {link}\n"
    return send_email(email, "Verify Your Email Address", html_body, text_body)


def send_welcome_email(user: dict) -> bool:
    dashboard = f"{settings.CLIENT_BASE_URL}{DASHBOARD_ROUTE}"
    html_body = _wrap(
        f"Welcome to {settings.PROJECT_NAME}!",
        f"""
                <p>Hello {user.get('full_name', '')},</p>
                <p>Your account is ready. Start by creating a budget for this month.</p>
                <div style="text-align: center; margin: 20px 0;">
                    <a href="{dashboard}" class="button">Open Dashboard</a>
                </div>
        """,
    )
    text_body = f"Hello {user.get('full_name', '')},\n\nYour account is ready: {dashboard}\n"
    return send_email(user["email"], f"Welcome to {settings.PROJECT_NAME}!", html_body, text_body)


def send_password_reset_email(user: dict, token: str) -> bool:
    link = f"{settings.CLIENT_BASE_URL}{PASS_RESET_ROUTE}?token={token}"
    minutes = settings.RESET_TOKEN_EXPIRE_SECONDS // 60
    html_body = _wrap(
        "Password Reset Request",
        f"""
                <p>Hello {user.get('full_name', '')},</p>
                <p>We received a request to reset your password. The link below is valid for {minutes} minutes.</p>
                <div style="text-align: center; margin: 20px 0;">
                    <a href="{link}" class="button">Reset Password</a>
                </div>
                <p>If you did not ask for this, you can ignore this email.</p>
        """,
    )
    text_body = f"Reset your password ({minutes} minutes): {link}\n"
    return send_email(user["email"], "Password Reset Request", html_body, text_body)


def send_password_reset_confirmation_email(user: dict) -> bool:
    html_body = _wrap(
        "Password Changed",
        f"""
                <p>Hello {user.get('full_name', '')},</p>
                <p>Your password was reset successfully. If this was not you, contact support right away.</p>
        """,
    )
    text_body = "Your password was reset successfully.\n"
    return send_email(user["email"], "Your password has been reset", html_body, text_body)
