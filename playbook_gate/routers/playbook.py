"""Playbook routes — gate page (locked/unlocked) and the signup form."""

import logging

from fastapi import APIRouter, Form, Query, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from playbook_gate.config import WEB_TEMPLATES_DIR
from playbook_gate.services.access_gate import NOTICES, UNLOCKED, evaluate
from playbook_gate.services.notifier import NotificationError
from playbook_gate.services.signup_flow import SignupValidationError, submit_signup
from playbook_gate.services.signup_store import AccessRevokedError

logger = logging.getLogger(__name__)

router = APIRouter()
templates = Jinja2Templates(directory=str(WEB_TEMPLATES_DIR))


@router.get("/", include_in_schema=False)
async def index():
    return RedirectResponse("/playbook", status_code=307)


@router.get("/playbook", name="playbook_page")
async def playbook_page(request: Request, access: str = Query("")):
    decision = evaluate(request.app.state.store, access)

    if decision["state"] == UNLOCKED:
        return templates.TemplateResponse(request, "playbook/content.html", {
            "name": decision["record"]["name"],
        })

    notice = NOTICES.get(decision["notice"]) if decision["notice"] else None
    return _render_form(request, notice=notice)


@router.post("/playbook/signup")
async def signup(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    company: str = Form(""),
    role: str = Form(""),
):
    request.app.state.rate_limiter.check(request)

    form = {"name": name, "email": email, "company": company, "role": role}
    page_url = str(request.url_for("playbook_page"))

    try:
        result = await submit_signup(
            request.app.state.store, request.app.state.notifier, form, page_url,
        )
    except SignupValidationError as e:
        return _render_form(request, error=str(e), values=form, status_code=400)
    except AccessRevokedError:
        return _render_form(
            request,
            error="Access for this email address has been revoked.",
            values=form,
            status_code=403,
        )
    except NotificationError as e:
        return _render_form(
            request,
            error=f"Failed to send email: {e}",
            values=form,
            status_code=502,
        )

    notification = result["notification"]
    return templates.TemplateResponse(request, "playbook/sent.html", {
        "email": result["record"]["email"],
        "demo": notification.get("demo", False),
        "redirect_url": notification.get("redirect_url"),
        "redirect_delay": notification.get("redirect_delay"),
    })


def _render_form(request: Request, notice=None, error=None, values=None, status_code=200):
    return templates.TemplateResponse(request, "playbook/gate.html", {
        "notice": notice,
        "error": error,
        "values": values or {},
    }, status_code=status_code)
