"""Access email — render the playbook access email and send it via Resend."""

import logging

import resend
from jinja2 import Environment, FileSystemLoader, select_autoescape
from resend.exceptions import ResendError

from playbook_gate.config import FROM_EMAIL, FROM_NAME, RESEND_API_KEY, WEB_TEMPLATES_DIR

logger = logging.getLogger(__name__)

SUBJECT = "Your PRISM Framework Strategic Playbook Access"
TEMPLATE_NAME = "emails/playbook_access.html"

_env = Environment(
    loader=FileSystemLoader(str(WEB_TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


class ProviderError(Exception):
    """The email provider rejected the send or could not be reached.

    `status_code` is the provider's HTTP status when it answered, else 500.
    """

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def render_access_email(
    name: str,
    company: str,
    role: str,
    access_link: str,
    home_url: str,
) -> str:
    """Render the HTML body of the access email."""
    template = _env.get_template(TEMPLATE_NAME)
    return template.render(
        name=name,
        company=company,
        role=role or "Not specified",
        access_link=access_link,
        home_url=home_url,
    )


def send_access_email(to_email: str, html: str) -> str:
    """Send the rendered email through Resend. Returns the Resend message id.

    Raises ProviderError with the provider's status and message on failure.
    """
    if not RESEND_API_KEY:
        raise ProviderError(500, "RESEND_API_KEY not set, cannot send")

    resend.api_key = RESEND_API_KEY
    try:
        result = resend.Emails.send({
            "from": f"{FROM_NAME} <{FROM_EMAIL}>",
            "to": [to_email],
            "subject": SUBJECT,
            "html": html,
        })
    except ResendError as e:
        status = _status_code(getattr(e, "code", None))
        message = getattr(e, "message", "") or str(e) or "Failed to send email"
        logger.error("Resend API error (%s): %s", status, message)
        raise ProviderError(status, message) from e

    message_id = result.get("id", "") if result else ""
    logger.info("Access email sent to %s (resend id %s)", to_email, message_id)
    return message_id


def _status_code(code) -> int:
    """Resend reports the HTTP status as int or str; anything unusable is a 500."""
    try:
        status = int(code)
    except (TypeError, ValueError):
        return 500
    if 400 <= status <= 599:
        return status
    return 500
