"""Playbook Gate configuration — loaded from environment variables."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

REPO_ROOT = Path(__file__).resolve().parent.parent

# Jinja2 templates for pages and the access email
WEB_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
STATIC_DIR = Path(__file__).resolve().parent / "static"

# Server
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8000"))
PUBLIC_URL = os.environ.get("PUBLIC_URL", "http://localhost:8000").rstrip("/")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "info")

# Resend (email sending)
RESEND_API_KEY = os.environ.get("RESEND_API_KEY", "")
FROM_EMAIL = os.environ.get("FROM_EMAIL", "noreply@yourdomain.com")
FROM_NAME = os.environ.get("FROM_NAME", "PRISM Framework")

# Notifier selection: simulated | endpoint | resend
# Left blank, SEND_ENDPOINT decides between endpoint and simulated.
SEND_ENDPOINT = os.environ.get("SEND_ENDPOINT", "")
NOTIFIER = os.environ.get("NOTIFIER", "")
NOTIFY_TIMEOUT = float(os.environ.get("NOTIFY_TIMEOUT", "30"))
SIMULATED_REDIRECT_SECONDS = int(os.environ.get("SIMULATED_REDIRECT_SECONDS", "2"))

# Signup storage: file | supabase | memory
STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "file")
SIGNUPS_FILE = Path(os.environ.get("SIGNUPS_FILE", str(REPO_ROOT / "data" / "signups.json")))
SIGNUPS_KEY = os.environ.get("SIGNUPS_KEY", "prism_signups")

# Supabase (storage backend "supabase")
SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_SERVICE_KEY = os.environ.get("SUPABASE_SERVICE_KEY", "")
SUPABASE_KV_TABLE = os.environ.get("SUPABASE_KV_TABLE", "pg_kv_store")

# Access token lifetime in days; 0 disables expiry
ACCESS_TOKEN_TTL_DAYS = int(os.environ.get("ACCESS_TOKEN_TTL_DAYS", "30"))

# Admin API auth (stats, revoke); admin routes are off when unset
ADMIN_SECRET = os.environ.get("ADMIN_SECRET", "")

# Rate limiting on public POST routes
RATE_LIMIT = int(os.environ.get("RATE_LIMIT", "30"))
RATE_WINDOW = int(os.environ.get("RATE_WINDOW", "60"))
