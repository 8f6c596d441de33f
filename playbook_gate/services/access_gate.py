"""Access gate — decides whether a request sees the playbook or the signup form."""

import logging

from playbook_gate.services.signup_store import SignupStore, is_expired, is_revoked

logger = logging.getLogger(__name__)

LOCKED = "locked"
UNLOCKED = "unlocked"

# Notices shown on the locked page
NOTICES = {
    "invalid": "This access link is invalid. Please request a new one below.",
    "expired": "This access link has expired. Submit the form again and we'll renew it.",
    "revoked": "This access link has been revoked.",
}


def evaluate(store: SignupStore, token: str | None) -> dict:
    """Return {"state", "record", "notice"} for the `access` token of a request."""
    token = (token or "").strip()
    if not token:
        return {"state": LOCKED, "record": None, "notice": None}

    record = store.find_by_token(token)
    if record is None:
        logger.info("Rejected unknown access token")
        return {"state": LOCKED, "record": None, "notice": "invalid"}

    if is_revoked(record):
        logger.info("Rejected revoked access token for %s", record["email"])
        return {"state": LOCKED, "record": None, "notice": "revoked"}

    if is_expired(record):
        logger.info("Rejected expired access token for %s", record["email"])
        return {"state": LOCKED, "record": None, "notice": "expired"}

    return {"state": UNLOCKED, "record": record, "notice": None}
