import html
import logging
from typing import Optional

import httpx


logger = logging.getLogger(__name__)

MESSAGE_PREVIEW_LENGTH = 100


def _layout(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{html.escape(title)} - Bookineo</title></head>"
        "<body style=\"font-family: sans-serif; max-width: 600px; margin: 0 auto;\">"
        "<h1>Bookineo</h1>"
        f"{body}"
        "<hr><p>Happy reading!<br>The Bookineo team</p>"
        "</body></html>"
    )


class Mailer:
    """
    Transactional email sent through the Resend HTTP API.

    Without an API key nothing leaves the process and the email is only
    logged. Delivery is best effort: transport failures are logged and
    never surface to the caller.
    """

    def __init__(
        self,
        api_key: Optional[str],
        sender: str,
        frontend_url: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.sender = sender
        self.frontend_url = frontend_url.rstrip("/")
        self.api_url = api_url
        self.timeout = timeout

    def send(self, to: str, subject: str, html_body: str) -> bool:
        if not self.api_key:
            logger.info("Email delivery disabled, skipping '%s' to %s", subject, to)
            return False

        try:
            response = httpx.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": self.sender,
                    "to": [to],
                    "subject": subject,
                    "html": html_body,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError:
            logger.exception("Failed to send '%s' to %s", subject, to)
            return False

        logger.info("Sent '%s' to %s", subject, to)
        return True

    def send_welcome(self, to: str, first_name: Optional[str]) -> bool:
        name = html.escape(first_name or "there")
        body = (
            f"<h2>Hello {name}!</h2>"
            "<p>Welcome to our community of readers. With Bookineo you can rent "
            "books from other readers, offer your own and chat with the community.</p>"
            f"<p><a href=\"{self.frontend_url}\">Start exploring</a></p>"
        )
        return self.send(to, "Welcome to Bookineo!", _layout("Welcome", body))

    def send_password_reset(self, to: str, first_name: Optional[str], token: str) -> bool:
        name = html.escape(first_name or "there")
        link = f"{self.frontend_url}/reset-password?token={token}"
        body = (
            f"<h2>Hello {name},</h2>"
            "<p>We received a request to reset your password. The link below "
            "is valid for one hour.</p>"
            f"<p><a href=\"{link}\">Reset my password</a></p>"
            "<p>If you did not ask for this, you can ignore this email.</p>"
        )
        return self.send(to, "Reset your Bookineo password", _layout("Password reset", body))

    def send_new_message(
        self,
        to: str,
        recipient_name: str,
        sender_name: str,
        subject: Optional[str],
        content: str,
    ) -> bool:
        preview = content[:MESSAGE_PREVIEW_LENGTH]
        body = (
            f"<h2>Hello {html.escape(recipient_name)},</h2>"
            f"<p>{html.escape(sender_name)} sent you a message"
            + (f": <strong>{html.escape(subject)}</strong>" if subject else "")
            + "</p>"
            f"<blockquote>{html.escape(preview)}</blockquote>"
            f"<p><a href=\"{self.frontend_url}/messages\">Read it on Bookineo</a></p>"
        )
        return self.send(to, f"New message from {sender_name}", _layout("New message", body))
