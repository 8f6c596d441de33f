"""Send endpoint — POST /api/send-playbook emails an access link via Resend.

Public and cross-origin: the signup page may be hosted elsewhere, so every
response carries permissive CORS headers.
"""

import asyncio
import json
import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from playbook_gate.config import PUBLIC_URL
from playbook_gate.services.access_email import (
    ProviderError,
    render_access_email,
    send_access_email,
)
from playbook_gate.services.notifier import build_access_link

logger = logging.getLogger(__name__)

router = APIRouter()

ENDPOINT = "/api/send-playbook"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

_REQUIRED = ("name", "email", "accessToken")


def _json(content: dict, status_code: int) -> JSONResponse:
    return JSONResponse(content, status_code=status_code, headers=CORS_HEADERS)


@router.options(ENDPOINT)
async def send_playbook_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@router.api_route(ENDPOINT, methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def send_playbook_not_allowed():
    return _json({"error": "Method not allowed"}, 405)


@router.post(ENDPOINT)
async def send_playbook(request: Request):
    try:
        request.app.state.rate_limiter.check(request)
    except HTTPException as e:
        return _json({"error": e.detail}, e.status_code)

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        body = None
    if not isinstance(body, dict) or not all(body.get(f) for f in _REQUIRED):
        return _json({"error": "Missing required fields"}, 400)

    name = str(body["name"])
    email = str(body["email"])
    company = str(body.get("company") or "")
    role = str(body.get("role") or "")

    base_url = (request.headers.get("origin") or PUBLIC_URL).rstrip("/")
    access_link = build_access_link(f"{base_url}/playbook", str(body["accessToken"]))

    try:
        html = render_access_email(
            name=name,
            company=company,
            role=role,
            access_link=access_link,
            home_url=f"{base_url}/",
        )
        message_id = await asyncio.to_thread(send_access_email, email, html)
    except ProviderError as e:
        return _json({"error": e.message or "Failed to send email"}, e.status_code)
    except Exception as e:
        logger.exception("Error sending email to %s", email)
        return _json({"error": "Internal server error", "details": str(e)}, 500)

    return _json({"success": True, "messageId": message_id, "email": email}, 200)
