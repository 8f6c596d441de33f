"""Signup flow — validate the form, find or create the signup, send the link."""

import logging
import re

from playbook_gate.services.notifier import Notifier, build_access_link
from playbook_gate.services.signup_store import SignupStore

logger = logging.getLogger(__name__)

# Basic email validation, deliberately loose
_EMAIL_RE = re.compile(r"^[^@\s]{1,64}@[^@\s]{1,255}$")
_MAX_FIELD_LEN = 200


class SignupValidationError(Exception):
    """A required form field is missing or malformed."""


def _truncate(value: str, max_len: int) -> str:
    return value[:max_len] if value else ""


def validate_signup(form: dict) -> dict:
    """Return cleaned name/email/company/role or raise SignupValidationError."""
    name = _truncate((form.get("name") or "").strip(), _MAX_FIELD_LEN)
    email = (form.get("email") or "").strip()
    company = _truncate((form.get("company") or "").strip(), _MAX_FIELD_LEN)
    role = _truncate((form.get("role") or "").strip(), _MAX_FIELD_LEN)

    if not name or not email:
        raise SignupValidationError("Please enter your name and email address.")
    if not _EMAIL_RE.match(email):
        raise SignupValidationError("Please enter a valid email address.")

    return {"name": name, "email": email, "company": company, "role": role}


async def submit_signup(store: SignupStore, notifier: Notifier, form: dict, page_url: str) -> dict:
    """Handle one signup submission.

    Resubmitting a known email reuses its signup and token. Raises
    SignupValidationError, AccessRevokedError or NotificationError.
    """
    fields = validate_signup(form)

    signup, created = store.find_or_create(fields)
    if created:
        logger.info("New signup from %s (%d total)", signup["email"], store.stats()["total"])
    else:
        logger.info("User already registered, resending access link to %s", signup["email"])

    # The email reflects what was just typed; the token comes from the store.
    outgoing = {**signup, **fields}
    access_link = build_access_link(page_url, signup["access_token"])
    notification = await notifier.send(outgoing, access_link)

    return {"record": signup, "created": created, "notification": notification}
