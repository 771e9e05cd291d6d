"""Transactional email through the Resend HTTP API."""

import logging
from datetime import datetime, timezone

import httpx
from jinja2 import Environment, PackageLoader, select_autoescape

from sattrack.config import Settings, get_settings

logger = logging.getLogger(__name__)


class EmailSender:
    """
    Renders and sends one email per call.

    `send` never raises for provider problems: a missing API key or
    recipient, a non-2xx answer or a network error all return False so the
    caller can count the email as not sent and carry on.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()
        self.client = client
        self.jinja_env = Environment(
            loader=PackageLoader("sattrack", "templates/email"),
            autoescape=select_autoescape(["html"]),
        )

    def render(
        self,
        subject: str,
        message: str,
        *,
        action_path: str = "",
        action_label: str = "Open SAT Tracker",
    ) -> str:
        """Render the HTML body for a notification email."""
        site_url = self.settings.site_url.rstrip("/")
        template = self.jinja_env.get_template("notification.html")
        return template.render(
            subject=subject,
            message=message,
            site_url=site_url,
            action_url=f"{site_url}{action_path}",
            action_label=action_label,
            year=datetime.now(timezone.utc).year,
        )

    async def send(
        self,
        to: str | None,
        subject: str,
        message: str,
        *,
        action_path: str = "",
        action_label: str = "Open SAT Tracker",
    ) -> bool:
        """
        Send one email.

        Args:
            to: Recipient address; empty or None means nothing is sent.
            subject: Subject line, also used as the heading.
            message: Plain-text body paragraph.
            action_path: Path on the site the call-to-action button opens.
            action_label: Call-to-action button text.

        Returns:
            True when the provider accepted the email.
        """
        if not self.settings.resend_api_key or not to:
            return False

        payload = {
            "from": self.settings.resend_from_email,
            "to": to,
            "subject": subject,
            "html": self.render(subject, message, action_path=action_path, action_label=action_label),
        }
        headers = {"Authorization": f"Bearer {self.settings.resend_api_key}"}

        try:
            if self.client is not None:
                response = await self.client.post(self.settings.resend_api_url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.settings.email_timeout_seconds) as client:
                    response = await client.post(self.settings.resend_api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error("Error sending email to %s: %s", to, str(e))
            return False

        if not response.is_success:
            logger.error("Resend API error %d: %s", response.status_code, response.text)
            return False

        logger.info("Email %r sent to %s", subject, to)
        return True
