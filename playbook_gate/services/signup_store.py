"""Signup store — the persisted collection of playbook signups.

The whole collection is one JSON array under one storage key. Every mutation
reads the array, changes it in memory and writes it back under the store's
lock, so writers in one process never lose each other's updates.
"""

import json
import logging
import secrets
import threading
import uuid
from datetime import datetime, timedelta, timezone

from playbook_gate.services.storage import StorageBackend

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "prism_"
RECENT_LIMIT = 10


class StoreCorruptedError(Exception):
    """Persisted signup data could not be decoded."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Signup data under '{key}' is corrupted: {reason}")
        self.key = key
        self.reason = reason


class AccessRevokedError(Exception):
    """The signup for this email had its access revoked."""

    def __init__(self, email: str):
        super().__init__(f"Access for {email} has been revoked")
        self.email = email


def generate_id() -> str:
    return uuid.uuid4().hex


def generate_access_token() -> str:
    return TOKEN_PREFIX + secrets.token_urlsafe(24)


def _parse_time(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_expired(record: dict, now: datetime | None = None) -> bool:
    """True if the record has an expiry and it has passed."""
    expires_at = record.get("expires_at")
    if not expires_at:
        return False
    now = now or datetime.now(timezone.utc)
    return _parse_time(expires_at) <= now


def is_revoked(record: dict) -> bool:
    return bool(record.get("revoked_at"))


class SignupStore:
    """Repository of signup records over a key/value storage backend."""

    def __init__(self, backend: StorageBackend, key: str = "prism_signups", ttl_days: int = 30):
        self.backend = backend
        self.key = key
        self.ttl_days = ttl_days
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all(self) -> list[dict]:
        """Return every signup, or [] if nothing has been persisted yet.

        Raises StoreCorruptedError when the stored value is not a JSON array.
        """
        raw = self.backend.read(self.key)
        if raw is None or raw == "":
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreCorruptedError(self.key, str(e)) from e
        if not isinstance(data, list):
            raise StoreCorruptedError(self.key, f"expected a list, got {type(data).__name__}")
        return data

    def find_by_email(self, email: str) -> dict | None:
        """First signup whose email matches, ignoring case."""
        wanted = (email or "").strip().lower()
        if not wanted:
            return None
        return self._find_by_email(self.get_all(), wanted)

    def find_by_token(self, token: str) -> dict | None:
        """First signup holding exactly this access token."""
        if not token:
            return None
        for signup in self.get_all():
            if signup.get("access_token") == token:
                return signup
        return None

    def stats(self) -> dict:
        """Total count, counts per role, and the 10 newest signups (newest first)."""
        signups = self.get_all()
        by_role: dict[str, int] = {}
        for s in signups:
            role = s.get("role") or "other"
            by_role[role] = by_role.get(role, 0) + 1
        return {
            "total": len(signups),
            "by_role": by_role,
            "recent": list(reversed(signups[-RECENT_LIMIT:])),
        }

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, fields: dict) -> dict:
        """Append a new signup built from name/email/company/role and persist.

        Does not check for an existing signup with the same email; use
        find_or_create for that.
        """
        with self._lock:
            signups = self.get_all()
            signup = self._new_record(fields)
            signups.append(signup)
            self._write(signups)
        logger.info("New signup saved: %s (%s)", signup["email"], signup["id"])
        return signup

    def find_or_create(self, fields: dict) -> tuple[dict, bool]:
        """Return (signup, created) for the email in `fields`.

        An existing signup keeps its id and token. If its access has expired
        the expiry is renewed; if it was revoked, AccessRevokedError is raised.
        """
        email = (fields.get("email") or "").strip()
        with self._lock:
            signups = self.get_all()
            existing = self._find_by_email(signups, email.lower())
            if existing is None:
                signup = self._new_record(fields)
                signups.append(signup)
                self._write(signups)
                logger.info("New signup saved: %s (%s)", signup["email"], signup["id"])
                return signup, True

            if is_revoked(existing):
                raise AccessRevokedError(existing["email"])

            if is_expired(existing):
                existing["expires_at"] = self._expiry_from(datetime.now(timezone.utc))
                self._write(signups)
                logger.info("Renewed expired access for %s", existing["email"])

            return existing, False

    def revoke(self, token: str) -> dict | None:
        """Mark the signup holding `token` as revoked. None if no such token."""
        if not token:
            return None
        with self._lock:
            signups = self.get_all()
            for signup in signups:
                if signup.get("access_token") == token:
                    if not signup.get("revoked_at"):
                        signup["revoked_at"] = datetime.now(timezone.utc).isoformat()
                        self._write(signups)
                        logger.info("Revoked access for %s", signup["email"])
                    return signup
        return None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _find_by_email(signups: list[dict], lowered_email: str) -> dict | None:
        for signup in signups:
            if (signup.get("email") or "").lower() == lowered_email:
                return signup
        return None

    def _expiry_from(self, start: datetime) -> str | None:
        if self.ttl_days <= 0:
            return None
        return (start + timedelta(days=self.ttl_days)).isoformat()

    def _new_record(self, fields: dict) -> dict:
        now = datetime.now(timezone.utc)
        return {
            "id": generate_id(),
            "name": fields.get("name", ""),
            "email": (fields.get("email") or "").strip(),
            "company": fields.get("company") or "",
            "role": fields.get("role") or "",
            "access_token": generate_access_token(),
            "timestamp": now.isoformat(),
            "expires_at": self._expiry_from(now),
            "revoked_at": None,
        }

    def _write(self, signups: list[dict]) -> None:
        self.backend.write(self.key, json.dumps(signups))
