"""Admin API — signup stats and token revocation. Bearer ADMIN_SECRET auth."""

import hmac

from fastapi import APIRouter, Header, HTTPException, Request

from playbook_gate.services.signup_store import is_expired

router = APIRouter(prefix="/admin")


def _check_auth(request: Request, authorization: str) -> None:
    secret = request.app.state.admin_secret
    if not secret:
        raise HTTPException(status_code=403, detail="Admin API disabled (ADMIN_SECRET not set)")
    if not hmac.compare_digest(authorization, f"Bearer {secret}"):
        raise HTTPException(status_code=401, detail="Invalid admin secret")


@router.get("/stats")
async def signup_stats(request: Request, authorization: str = Header("")):
    _check_auth(request, authorization)
    return request.app.state.store.stats()


@router.post("/revoke")
async def revoke_token(request: Request, authorization: str = Header("")):
    _check_auth(request, authorization)

    try:
        body = await request.json()
    except ValueError:
        body = None
    token = (body.get("token") or "").strip() if isinstance(body, dict) else ""
    if not token:
        raise HTTPException(status_code=400, detail="token required")

    signup = request.app.state.store.revoke(token)
    if signup is None:
        raise HTTPException(status_code=404, detail="Unknown access token")

    return {
        "status": "revoked",
        "email": signup["email"],
        "revoked_at": signup["revoked_at"],
        "was_expired": is_expired(signup),
    }
