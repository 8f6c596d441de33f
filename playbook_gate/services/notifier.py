"""Notifiers — deliver a signup's access link.

Three implementations behind one `send(signup, access_link)` coroutine:

- SimulatedNotifier: sends nothing; the confirmation page redirects the
  visitor to the access link after a short delay (demo mode).
- EndpointNotifier: POSTs to a send endpoint (normally /api/send-playbook).
- ResendNotifier: renders and sends the email in-process.

build_notifier() picks one from configuration when the app is created.
"""

import asyncio
import logging
import urllib.parse

import requests

from playbook_gate.services.access_email import (
    ProviderError,
    render_access_email,
    send_access_email,
)

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Sending the access link failed. The message is shown to the visitor."""


def build_access_link(page_url: str, token: str) -> str:
    """Append `?access=<token>` to a page URL, dropping any query or fragment."""
    parts = urllib.parse.urlsplit(page_url)
    query = urllib.parse.urlencode({"access": token})
    return urllib.parse.urlunsplit((parts.scheme, parts.netloc, parts.path, query, ""))


class Notifier:
    mode = "base"

    async def send(self, signup: dict, access_link: str) -> dict:
        """Deliver the link. Returns a result dict; raises NotificationError."""
        raise NotImplementedError


class SimulatedNotifier(Notifier):
    """Demo mode: logs the email that would be sent and grants access directly."""

    mode = "simulated"

    def __init__(self, redirect_seconds: int = 2):
        self.redirect_seconds = redirect_seconds

    async def send(self, signup: dict, access_link: str) -> dict:
        logger.info("=== DEMO MODE: email would be sent via Resend ===")
        logger.info("To: %s", signup["email"])
        logger.info("Name: %s", signup.get("name", ""))
        logger.info("Company: %s", signup.get("company", ""))
        logger.info("Role: %s", signup.get("role") or "Not specified")
        logger.info("Access Link: %s", access_link)
        return {
            "success": True,
            "email": signup["email"],
            "demo": True,
            "redirect_url": access_link,
            "redirect_delay": self.redirect_seconds,
        }


class EndpointNotifier(Notifier):
    """Asks a send endpoint to email the access link. One request, no retry."""

    mode = "endpoint"

    def __init__(self, endpoint_url: str, timeout: float = 30):
        self.endpoint_url = endpoint_url
        self.timeout = timeout

    async def send(self, signup: dict, access_link: str) -> dict:
        # The endpoint builds its own link from the token and request origin.
        payload = {
            "name": signup.get("name", ""),
            "email": signup["email"],
            "company": signup.get("company", ""),
            "role": signup.get("role") or "Not specified",
            "accessToken": signup["access_token"],
        }
        try:
            resp = await asyncio.to_thread(
                requests.post, self.endpoint_url, json=payload, timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Email send failed: %s", e)
            raise NotificationError(str(e) or "Failed to send email. Please try again.") from e

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if not resp.ok:
            logger.error("Send endpoint returned %s: %s", resp.status_code, data)
            raise NotificationError(data.get("error") or "Failed to send email")

        logger.info("Email sent successfully to %s (%s)", signup["email"], data.get("messageId"))
        return {
            "success": True,
            "email": signup["email"],
            "message_id": data.get("messageId"),
            "demo": False,
        }


class ResendNotifier(Notifier):
    """Sends the access email directly through Resend."""

    mode = "resend"

    def __init__(self, home_url: str):
        self.home_url = home_url

    async def send(self, signup: dict, access_link: str) -> dict:
        html = render_access_email(
            name=signup.get("name", ""),
            company=signup.get("company", ""),
            role=signup.get("role", ""),
            access_link=access_link,
            home_url=self.home_url,
        )
        try:
            message_id = await asyncio.to_thread(send_access_email, signup["email"], html)
        except ProviderError as e:
            raise NotificationError(e.message or "Failed to send email") from e
        return {
            "success": True,
            "email": signup["email"],
            "message_id": message_id,
            "demo": False,
        }


def build_notifier(
    mode: str = "",
    send_endpoint: str = "",
    home_url: str = "",
    timeout: float = 30,
    redirect_seconds: int = 2,
) -> Notifier:
    """Pick the notifier for `mode`; blank mode means endpoint if one is configured."""
    if not mode:
        mode = "endpoint" if send_endpoint else "simulated"

    if mode == "simulated":
        logger.warning("Send endpoint not configured, using demo mode")
        return SimulatedNotifier(redirect_seconds=redirect_seconds)
    if mode == "endpoint":
        if not send_endpoint:
            raise ValueError("NOTIFIER=endpoint requires SEND_ENDPOINT")
        return EndpointNotifier(send_endpoint, timeout=timeout)
    if mode == "resend":
        return ResendNotifier(home_url)
    raise ValueError(f"Unknown notifier: {mode!r} (expected simulated, endpoint or resend)")
