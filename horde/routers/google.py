import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Response, status
from fastapi.responses import RedirectResponse

from horde.core.config import settings
from horde.core.security import decode_access_token, create_access_token, generate_auth_code
from horde.db import dynamo
from horde.db import tokens as tokens_db
from horde.db import users as users_db
from horde.models.user import PendingUserInDB
from horde.routers.auth import activate_pending_user, issue_session, public_user, welcome
from horde.utils import google_oauth

router = APIRouter()
logger = logging.getLogger(__name__)

STATE_PURPOSE = "google_oauth"
STATE_EXPIRE_MINUTES = 10
AUTHORIZE_ROUTE = "/auth/google/authorize"
ERROR_ROUTE = "/auth/google/error"


def _failure_redirect(message: str, code: str) -> RedirectResponse:
    query = urlencode({"error_message": message, "error_code": code})
    return RedirectResponse(f"{settings.API_HOST}{settings.API_PREFIX}/auth/google/failure?{query}")


def resolve_google_principal(profile: dict) -> dict:
    """
    Existing user first, then a live pending signup, else a new pending
    signup without a password. Returns the principal and whether it is new.
    """
    user = users_db.get_user_by_email(profile["email"])
    if user:
        return {"id": user["user_id"], "user": public_user(user), "is_new": False}

    pending = users_db.get_pending_user_by_email(profile["email"])
    if not pending:
        pending = PendingUserInDB(
            full_name=profile["full_name"],
            email=profile["email"],
            user_name=profile.get("user_name"),
            expires_at=dynamo.epoch_after(settings.PENDING_USER_EXPIRE_HOURS * 3600),
        ).model_dump(mode="json")
        if not users_db.put_pending_user(pending):
            raise google_oauth.GoogleAuthError("Could not save Google signup", "GOOGLE_SIGNUP_FAILED")

    return {"id": pending["pending_id"], "user": pending, "is_new": True}


@router.get("")
def google_login():
    if not settings.GOOGLE_CLIENT_ID:
        raise HTTPException(status_code=403, detail="Google sign-in is not configured")

    state = create_access_token(data={"purpose": STATE_PURPOSE}, expires_minutes=STATE_EXPIRE_MINUTES)
    return RedirectResponse(google_oauth.authorization_url(state))


@router.get("/callback")
def google_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
):
    if error or not code or not state:
        return _failure_redirect(error or "Missing authorization code", "GOOGLE_AUTH_DENIED")

    try:
        if decode_access_token(state).get("purpose") != STATE_PURPOSE:
            return _failure_redirect("Invalid sign-in state", "GOOGLE_STATE_INVALID")
    except HTTPException:
        return _failure_redirect("Sign-in session expired", "GOOGLE_STATE_INVALID")

    try:
        profile = google_oauth.exchange_code(code)
        principal = resolve_google_principal(profile)
    except google_oauth.GoogleAuthError as e:
        return _failure_redirect(e.message, e.code)

    session = issue_session(principal["id"])
    auth_code = generate_auth_code(principal["id"], session["access_token"])
    stored = tokens_db.put_token(
        auth_code,
        tokens_db.AUTH_CODE,
        settings.AUTH_CODE_EXPIRE_SECONDS,
        user_id=principal["id"],
        payload={"user": principal["user"], "is_new": principal["is_new"], **session},
    )
    if not stored:
        return _failure_redirect("Could not complete Google sign-in", "GOOGLE_AUTH_FAILED")

    logger.info(f"Google sign-in for {profile['email']} (new={principal['is_new']})")
    return RedirectResponse(f"{settings.CLIENT_BASE_URL}{AUTHORIZE_ROUTE}?{urlencode({'authCode': auth_code})}")


@router.get("/exchange-code")
def exchange_auth_code(
    response: Response,
    background_tasks: BackgroundTasks,
    auth_code: str = Query(..., alias="authCode", min_length=1),
):
    record = tokens_db.get_token(auth_code, tokens_db.AUTH_CODE)
    if not record:
        raise HTTPException(status_code=400, detail="Invalid or expired authorization code.")
    tokens_db.delete_token(auth_code)

    payload = record.get("payload", {})
    session = {k: payload[k] for k in ("access_token", "refresh_token", "token_type", "expires_in")}

    if payload.get("is_new"):
        existing = users_db.get_user_by_email(payload["user"]["email"])
        if existing:
            users_db.delete_pending_user(payload["user"]["pending_id"])
            return {"message": "Login Successful.", "user": public_user(existing), **issue_session(existing["user_id"])}

        user = activate_pending_user(payload["user"], auth_provider="google")
        welcome(user, background_tasks)
        response.status_code = status.HTTP_201_CREATED
        return {"message": "Account created successfully!", "user": public_user(user), **session}

    return {"message": "Login Successful.", "user": payload["user"], **session}


@router.get("/failure")
def google_failure(
    error_message: str = "Authentication failed. Please try again.",
    error_code: str = "GOOGLE_AUTH_FAILED",
):
    logger.error(f"Google authentication failed: {error_code} {error_message}")
    query = urlencode({"message": error_message, "code": error_code})
    return RedirectResponse(f"{settings.CLIENT_BASE_URL}{ERROR_ROUTE}?{query}")
