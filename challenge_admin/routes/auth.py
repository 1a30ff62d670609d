"""Sign-in, sign-out and current-user endpoints."""

import logging

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..auth import UNAUTHORIZED, can_read, get_access_token, require_dashboard_user
from ..config import get_settings
from ..database import get_db
from ..identity import IdentityError, SupabaseIdentityProvider, get_identity_provider
from ..models import Profile
from ..queries import profile_to_dict
from ..schemas import LoginInput, first_error_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
def login(
    payload: dict = Body(...),
    db_session: Session = Depends(get_db),
    identity: SupabaseIdentityProvider = Depends(get_identity_provider),
):
    """Password sign-in. Only super_admin and viewer accounts may hold a session."""
    try:
        data = LoginInput(**payload)
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": first_error_message(e)})

    try:
        session = identity.sign_in(data.email, data.password)
    except IdentityError as e:
        return JSONResponse(status_code=401, content={"error": str(e)})

    profile = db_session.get(Profile, session.user_id)
    if not can_read(profile):
        logger.warning(f"Dashboard sign-in refused for user {session.user_id}")
        try:
            identity.sign_out(session.access_token)
        except IdentityError as e:
            logger.warning(f"Sign-out after refused sign-in failed: {e}")
        return JSONResponse(status_code=401, content={"error": UNAUTHORIZED})

    logger.info(f"Dashboard sign-in: {profile.email} ({profile.role.value})")
    response = JSONResponse(content={
        "success": True,
        "access_token": session.access_token,
        "profile": profile_to_dict(profile),
    })
    response.set_cookie(
        get_settings().session_cookie_name,
        session.access_token,
        httponly=True,
        samesite="lax",
    )
    return response


@router.post("/logout")
def logout(
    request: Request,
    identity: SupabaseIdentityProvider = Depends(get_identity_provider),
):
    token = get_access_token(request)
    if token:
        try:
            identity.sign_out(token)
        except IdentityError as e:
            logger.warning(f"Sign-out failed: {e}")

    response = JSONResponse(content={"success": True})
    response.delete_cookie(get_settings().session_cookie_name)
    return response


@router.get("/me")
def me(profile: Profile = Depends(require_dashboard_user)):
    return {"profile": profile_to_dict(profile)}
