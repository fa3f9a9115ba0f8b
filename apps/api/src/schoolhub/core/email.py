"""
Email Service using Resend

Handles sending account emails (password reset).
"""

import asyncio
import logging
from html import escape

import resend

from schoolhub.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key


def _message(to_email: str, subject: str, html_content: str) -> "resend.Emails.SendParams":
    return {
        "from": settings.email_from,
        "to": [to_email],
        "subject": subject,
        "html": html_content,
    }


async def send_email(to_email: str, subject: str, html_content: str) -> bool:
    """
    Deliver one HTML email through Resend.

    Without an API key (local development) the message is only logged and
    counts as delivered. Provider errors are logged and reported as False;
    callers decide whether an undelivered message is fatal.
    """
    if not resend.api_key:
        logger.info(f"Email delivery disabled, would send '{subject}' to {to_email}")
        return True

    try:
        # The Resend SDK is blocking
        response = await asyncio.to_thread(
            resend.Emails.send, _message(to_email, subject, html_content)
        )
    except Exception as e:
        logger.error(f"Resend rejected email to {to_email}: {e}")
        return False

    logger.info(f"Email '{subject}' accepted by Resend for {to_email} (id: {response['id']})")
    return True


def build_reset_url(token: str) -> str:
    """Link the mobile/web client opens to complete a password reset."""
    return f"{settings.frontend_url}/reset-password/{token}"


async def send_password_reset(
    to_email: str,
    name: str,
    reset_url: str,
    expires_minutes: int,
) -> bool:
    """Send the password reset link to a user."""
    safe_name = escape(name)

    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
            .header {{ color: #1a365d; margin-bottom: 24px; }}
            .button {{ display: inline-block; background-color: #1a365d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
            .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">Reset Your Password</h1>

            <p>Hello {safe_name},</p>

            <p>We received a request to reset the password for your SchoolHub account.</p>

            <a href="{reset_url}" class="button">Reset Password</a>

            <p>Or copy and paste this link into your browser:</p>
            <p style="word-break: break-all; color: #3b82f6;">{reset_url}</p>

            <p><strong>This link expires in {expires_minutes} minutes and can only be used once.</strong></p>

            <div class="footer">
                <p>If you didn't request a password reset, you can safely ignore this email.</p>
                <p>SchoolHub - School Administration</p>
            </div>
        </div>
    </body>
    </html>
    """

    return await send_email(
        to_email=to_email,
        subject="Reset your SchoolHub password",
        html_content=html_content,
    )
