"""
Email Service (SendGrid)

Builds verification emails and delivers them through the SendGrid v3 API.
Delivery failures raise EmailDispatchError; callers decide whether that
matters.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import httpx

from taskhub.core.config import settings
from taskhub.core.exceptions import EmailDispatchError

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str


class SendGridMailer:
    """SendGrid email sender."""

    BASE_URL = "https://api.sendgrid.com/v3"

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ):
        self.api_key = settings.SENDGRID_API_KEY if api_key is None else api_key
        self.from_email = from_email or settings.EMAIL_FROM
        self.from_name = from_name or settings.SENDGRID_FROM_NAME
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=30.0,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
        return self._http_client

    async def close(self):
        """Explicit cleanup method."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def send(self, message: EmailMessage) -> None:
        if not self.api_key:
            logger.warning(
                f"Email to {message.to} requested but SendGrid not configured "
                f"(subject: {message.subject!r})"
            )
            raise EmailDispatchError("Email service not configured", recipient=message.to)

        payload = {
            "personalizations": [{
                "to": [{"email": message.to}],
            }],
            "from": {"email": self.from_email, "name": self.from_name},
            "subject": message.subject,
            "content": [
                {"type": "text/plain", "value": message.text},
                {"type": "text/html", "value": message.html},
            ],
        }

        http = await self._get_http_client()
        try:
            resp = await http.post(f"{self.BASE_URL}/mail/send", json=payload)
        except httpx.HTTPError as e:
            raise EmailDispatchError(f"SendGrid request failed: {e}", recipient=message.to) from e

        if resp.status_code not in (200, 202):
            raise EmailDispatchError(
                f"SendGrid rejected message: {resp.status_code}",
                recipient=message.to,
                details={"response": resp.text[:500]},
            )

        logger.info(f"Email sent to {message.to}: {message.subject}")


def build_verification_link(token: str, app_url: Optional[str] = None) -> str:
    base = (app_url or settings.APP_URL).rstrip("/")
    return f"{base}/api/users/verify-email?token={quote(token)}"


def build_verification_email(
    to_email: str,
    verification_token: str,
    user_name: Optional[str] = None,
    expire_hours: Optional[int] = None,
) -> EmailMessage:
    """Compose the email verification message with its deep link."""
    verify_url = build_verification_link(verification_token)
    expire_hours = expire_hours or settings.EMAIL_VERIFICATION_TOKEN_HOURS
    user_name = user_name or "there"

    html = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="color: #1f2937;">Verify Your Email</h2>
            <p>Hi {user_name},</p>
            <p>Thanks for signing up to {settings.APP_NAME}! Please verify your email address by clicking the button below:</p>
            <div style="text-align: center; margin: 30px 0;">
                <a href="{verify_url}" style="background: #2563eb; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; font-weight: 600; display: inline-block;">Verify Email</a>
            </div>
            <p style="color: #6b7280; font-size: 14px;">This link will expire in {expire_hours} hours.</p>
            <p style="color: #6b7280; font-size: 14px;">If you didn't create an account, you can safely ignore this email.</p>
        </body>
        </html>
        """

    text = (
        f"Hi {user_name},\n\n"
        f"Please verify your email address by opening this link:\n{verify_url}\n\n"
        f"This link will expire in {expire_hours} hours.\n"
        f"If you didn't create an account, you can safely ignore this email.\n"
    )

    return EmailMessage(
        to=to_email,
        subject=f"Verify Your Email - {settings.APP_NAME}",
        html=html,
        text=text,
    )
