"""
Google OAuth 2.0 authorization-code flow over plain HTTP calls.
"""
import logging
from typing import Any, Dict
from urllib.parse import urlencode

import requests

from horde.core.config import settings

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
SCOPES = "openid email profile"
TIMEOUT = 10


class GoogleAuthError(Exception):
    """Raised when Google rejects the code or returns an unusable profile."""

    def __init__(self, message: str, code: str = "GOOGLE_AUTH_FAILED"):
        super().__init__(message)
        self.message = message
        self.code = code


def authorization_url(state: str) -> str:
    params = {
        "client_id": settings.GOOGLE_CLIENT_ID,
        "redirect_uri": settings.google_callback_url,
        "response_type": "code",
        "scope": SCOPES,
        "state": state,
        "access_type": "online",
        "prompt": "select_account",
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def exchange_code(code: str) -> Dict[str, Any]:
    """Trade an authorization code for the user's verified profile."""
    try:
        response = requests.post(
            TOKEN_URL,
            data={
                "code": code,
                "client_id": settings.GOOGLE_CLIENT_ID,
                "client_secret": settings.GOOGLE_CLIENT_SECRET,
                "redirect_uri": settings.google_callback_url,
                "grant_type": "authorization_code",
            },
            timeout=TIMEOUT,
        )
        response.raise_for_status()
        access_token = response.json()["access_token"]

        profile_response = requests.get(
            USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=TIMEOUT,
        )
        profile_response.raise_for_status()
        profile = profile_response.json()
    except (requests.RequestException, KeyError, ValueError) as e:
        logger.error(f"Google code exchange failed: {str(e)}")
        raise GoogleAuthError("Could not complete Google sign-in.", "GOOGLE_EXCHANGE_FAILED") from e

    email = profile.get("email")
    if not email:
        raise GoogleAuthError("Email not provided from Google", "GOOGLE_EMAIL_MISSING")
    if not profile.get("email_verified", False):
        raise GoogleAuthError("Google email address is not verified", "GOOGLE_EMAIL_UNVERIFIED")

    return {
        "email": email.lower(),
        "full_name": profile.get("name") or email.split("@")[0],
        "user_name": profile.get("given_name"),
    }
