"""Role gate for the dashboard.

Reads are open to super_admin and viewer accounts; every mutation requires
super_admin. Any other caller, signed in or not, gets a bare "Unauthorized"
with no further detail.
"""

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .config import get_settings
from .database import get_db
from .identity import IdentityError, SupabaseIdentityProvider, get_identity_provider
from .models import Profile

logger = logging.getLogger(__name__)

UNAUTHORIZED = "Unauthorized"


class AuthorizationError(Exception):
    """Raised at the HTTP boundary when the caller may not proceed."""

    def __init__(self, status_code: int = 401):
        super().__init__(UNAUTHORIZED)
        self.status_code = status_code


def can_read(profile: Profile | None) -> bool:
    return profile is not None and profile.can_view_dashboard


def can_mutate(profile: Profile | None) -> bool:
    return profile is not None and profile.is_super_admin


def get_access_token(request: Request) -> str | None:
    """Session token from the Authorization header or the session cookie."""
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        if token:
            return token
    return request.cookies.get(get_settings().session_cookie_name) or None


def get_current_profile(
    request: Request,
    db_session: Session = Depends(get_db),
    identity: SupabaseIdentityProvider = Depends(get_identity_provider),
) -> Profile | None:
    """The signed-in caller's profile, or None."""
    token = get_access_token(request)
    if not token:
        return None

    try:
        user_id = identity.get_user_id(token)
    except IdentityError:
        logger.warning("Could not verify session token, treating caller as anonymous")
        return None
    if not user_id:
        return None

    return db_session.get(Profile, user_id)


def require_dashboard_user(profile: Profile | None = Depends(get_current_profile)) -> Profile:
    """Outer boundary: only super_admin and viewer accounts get in."""
    if not can_read(profile):
        raise AuthorizationError(401)
    return profile
