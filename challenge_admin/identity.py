"""Identity provider client (Supabase Auth REST API).

Handles password sign-in, token verification, sign-out, and the admin calls
used to create and delete participant accounts. Session tokens are opaque to
the rest of the package: only the user id they resolve to is used.
"""

import logging
import time
from dataclasses import dataclass
from functools import lru_cache

import requests

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """The identity provider rejected a request or could not be reached."""


@dataclass(frozen=True)
class AuthSession:
    """A signed-in session returned by the identity provider."""

    access_token: str
    refresh_token: str | None
    user_id: str
    expires_at: float


class SupabaseIdentityProvider:
    """Thin wrapper around the Supabase Auth (GoTrue) endpoints."""

    def __init__(self, settings: Settings):
        self._auth_base = f"{settings.supabase_url}/auth/v1"
        self._anon_key = settings.supabase_anon_key
        self._service_key = settings.supabase_service_role_key
        self._timeout = settings.identity_timeout_seconds

    # =========================================================================
    # Session operations
    # =========================================================================

    def sign_in(self, email: str, password: str) -> AuthSession:
        """Exchange email/password for a session.

        Raises:
            IdentityError: On bad credentials or provider failure.
        """
        try:
            response = requests.post(
                f"{self._auth_base}/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
                headers={"apikey": self._anon_key},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Sign-in request failed: {type(e).__name__}: {e}")
            raise IdentityError("Identity provider unavailable") from e

        if response.status_code in (400, 401):
            raise IdentityError("Invalid email or password")
        self._raise_for_status(response, "sign in")

        token_data = response.json()
        return AuthSession(
            access_token=token_data["access_token"],
            refresh_token=token_data.get("refresh_token"),
            user_id=token_data["user"]["id"],
            expires_at=time.time() + token_data.get("expires_in", 3600),
        )

    def get_user_id(self, access_token: str) -> str | None:
        """Resolve a session token to its user id, or None if it is not valid."""
        try:
            response = requests.get(
                f"{self._auth_base}/user",
                headers=self._bearer_headers(self._anon_key, access_token),
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Token verification failed: {type(e).__name__}: {e}")
            raise IdentityError("Identity provider unavailable") from e

        if response.status_code in (401, 403):
            return None
        self._raise_for_status(response, "verify token")
        return response.json().get("id")

    def sign_out(self, access_token: str) -> None:
        try:
            response = requests.post(
                f"{self._auth_base}/logout",
                headers=self._bearer_headers(self._anon_key, access_token),
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Sign-out request failed: {type(e).__name__}: {e}")
            return
        if response.status_code >= 400 and response.status_code not in (401, 403):
            logger.warning(f"Sign-out returned HTTP {response.status_code}")

    # =========================================================================
    # Admin operations (service role)
    # =========================================================================

    @property
    def admin_enabled(self) -> bool:
        return bool(self._service_key)

    def create_user(self, email: str, password: str) -> str:
        """Create a confirmed account and return its user id."""
        self._require_admin()
        try:
            response = requests.post(
                f"{self._auth_base}/admin/users",
                json={"email": email, "password": password, "email_confirm": True},
                headers=self._bearer_headers(self._service_key, self._service_key),
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Create user request failed: {type(e).__name__}: {e}")
            raise IdentityError("Identity provider unavailable") from e

        self._raise_for_status(response, "create user")
        user_id = response.json()["id"]
        logger.info(f"Created identity account {user_id}")
        return user_id

    def delete_user(self, user_id: str) -> None:
        self._require_admin()
        try:
            response = requests.delete(
                f"{self._auth_base}/admin/users/{user_id}",
                headers=self._bearer_headers(self._service_key, self._service_key),
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Delete user request failed: {type(e).__name__}: {e}")
            raise IdentityError("Identity provider unavailable") from e

        if response.status_code == 404:
            logger.warning(f"Identity account {user_id} already gone")
            return
        self._raise_for_status(response, "delete user")
        logger.info(f"Deleted identity account {user_id}")

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _bearer_headers(api_key: str, token: str) -> dict:
        return {"apikey": api_key, "Authorization": f"Bearer {token}"}

    def _require_admin(self) -> None:
        if not self.admin_enabled:
            raise IdentityError("Participant account management is not configured")

    @staticmethod
    def _raise_for_status(response: requests.Response, action: str) -> None:
        if response.status_code < 400:
            return
        try:
            body = response.json()
            message = body.get("msg") or body.get("message") or body.get("error_description")
        except ValueError:
            message = None
        logger.error(f"Identity provider failed to {action}: HTTP {response.status_code} {message}")
        raise IdentityError(message or f"Failed to {action}")


@lru_cache
def get_identity_provider() -> SupabaseIdentityProvider:
    """Dependency returning the process-wide identity provider client."""
    return SupabaseIdentityProvider(get_settings())
