import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Response, status

from horde.core.config import settings
from horde.core.security import (
    VERIFY_EMAIL_PURPOSE,
    create_access_token,
    create_verification_token,
    decode_access_token,
    generate_token,
    hash_password,
    verify_password,
)
from horde.db import dynamo
from horde.db import tokens as tokens_db
from horde.db import users as users_db
from horde.models.common import Role
from horde.models.user import (
    EmailRequest,
    PendingUserInDB,
    PendingUserPublic,
    RefreshTokenRequest,
    ResetPasswordRequest,
    TokenRequest,
    UserCreate,
    UserInDB,
    UserLogin,
    UserPublic,
)
from horde.utils import email_service, notifier

router = APIRouter()
logger = logging.getLogger(__name__)

RESET_REQUEST_MESSAGE = "If an account exists for this email, a password reset link has been sent."


def public_user(user: dict) -> dict:
    return UserPublic(**user).model_dump(mode="json")


def issue_session(user_id: str) -> dict:
    """Access token plus a stored refresh token for the given principal."""
    refresh_token = generate_token()
    if not tokens_db.put_token(
        refresh_token,
        tokens_db.REFRESH,
        settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 3600,
        user_id=user_id,
    ):
        raise HTTPException(status_code=500, detail="Could not create session")

    return {
        "access_token": create_access_token(data={"sub": user_id}),
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "expires_in": settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    }


def activate_pending_user(pending: dict, auth_provider: str = "local") -> dict:
    """
    Turn a pending signup into a user. The account keeps the id issued at
    signup so tokens minted for the pending user stay valid.
    """
    user = UserInDB(
        user_id=pending["pending_id"],
        full_name=pending["full_name"],
        user_name=pending.get("user_name"),
        email=pending["email"],
        password_hash=pending.get("password_hash"),
        roles=[Role.USER],
        auth_provider=auth_provider,
    ).model_dump(mode="json")

    if not users_db.put_user(user):
        raise HTTPException(status_code=500, detail="Error saving user")

    users_db.delete_pending_user(pending["pending_id"])
    logger.info(f"User {user['user_id']} created for {user['email']}")
    return user


def welcome(user: dict, background_tasks: BackgroundTasks) -> None:
    background_tasks.add_task(email_service.send_welcome_email, user)
    notifier.notify_welcome(user["user_id"])


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(body: UserCreate, response: Response, background_tasks: BackgroundTasks):
    if users_db.get_user_by_email(body.email):
        raise HTTPException(status_code=400, detail="Email already taken.")

    if users_db.get_pending_user_by_email(body.email):
        response.status_code = status.HTTP_200_OK
        return {"message": "Email Confirmation Already Sent"}

    pending = PendingUserInDB(
        full_name=body.full_name.strip(),
        email=body.email,
        password_hash=hash_password(body.password),
        expires_at=dynamo.epoch_after(settings.PENDING_USER_EXPIRE_HOURS * 3600),
    ).model_dump(mode="json")

    if not users_db.put_pending_user(pending):
        raise HTTPException(status_code=500, detail="Error saving signup")

    token = create_verification_token(pending["pending_id"], settings.PENDING_USER_EXPIRE_HOURS * 60)
    background_tasks.add_task(email_service.send_verification_email, pending["email"], token)
    logger.info(f"Signup started for {pending['email']}")

    return {
        "message": "Verification email sent. Check your inbox to complete signup.",
        "user": PendingUserPublic(**pending).model_dump(),
    }


@router.post("/signup/verify-email", status_code=status.HTTP_201_CREATED)
def verify_email(body: TokenRequest, background_tasks: BackgroundTasks):
    try:
        payload = decode_access_token(body.token)
    except HTTPException:
        raise HTTPException(status_code=400, detail="Invalid or expired token.")

    if payload.get("purpose") != VERIFY_EMAIL_PURPOSE:
        raise HTTPException(status_code=400, detail="Invalid or expired token.")

    pending = users_db.get_pending_user(payload.get("sub", ""))
    if not pending:
        raise HTTPException(status_code=400, detail="Invalid or expired token.")

    if users_db.get_user_by_email(pending["email"]):
        users_db.delete_pending_user(pending["pending_id"])
        raise HTTPException(status_code=400, detail="Email already taken.")

    user = activate_pending_user(pending)
    welcome(user, background_tasks)

    return {
        "message": "Email verified successfully.",
        "user": public_user(user),
        **issue_session(user["user_id"]),
    }


@router.post("/signup/resend-verif-email")
def resend_verification_email(body: EmailRequest, background_tasks: BackgroundTasks):
    pending = users_db.get_pending_user_by_email(body.email)
    if pending:
        remaining_minutes = max(int(pending["expires_at"]) - dynamo.epoch_after(0), 60) // 60
        token = create_verification_token(pending["pending_id"], remaining_minutes)
        background_tasks.add_task(email_service.send_verification_email, pending["email"], token)

    return {"message": "If a signup is pending for this email, a new verification link has been sent."}


@router.post("/login")
def login(body: UserLogin):
    user = users_db.get_user_by_email(body.email)

    if not user:
        logger.warning(f"User not found: {body.email}")
        raise HTTPException(status_code=400, detail="Invalid credentials!")

    if not verify_password(body.password, user.get("password_hash")):
        logger.warning(f"Invalid password for user: {body.email}")
        raise HTTPException(status_code=400, detail="Invalid credentials!")

    logger.info(f"Login successful for user: {body.email}")
    return {
        "message": "Login Successful.",
        "user": public_user(user),
        **issue_session(user["user_id"]),
    }


@router.post("/refresh-token")
def refresh_access_token(body: RefreshTokenRequest):
    record = tokens_db.get_token(body.refresh_token, tokens_db.REFRESH)
    if not record or not users_db.get_user_by_id(record.get("user_id") or ""):
        raise HTTPException(status_code=404, detail="Invalid or expired refresh token")

    return {
        "access_token": create_access_token(data={"sub": record["user_id"]}),
        "token_type": "bearer",
        "expires_in": settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    }


@router.post("/logout")
def logout(body: RefreshTokenRequest):
    if tokens_db.get_token(body.refresh_token, tokens_db.REFRESH):
        tokens_db.revoke_token(body.refresh_token)
    return {"message": "Logged out."}


@router.post("/password-reset")
def request_password_reset(body: EmailRequest, background_tasks: BackgroundTasks):
    if users_db.get_pending_user_by_email(body.email):
        raise HTTPException(status_code=400, detail="Please verify your email before resetting your password.")

    user: Optional[dict] = users_db.get_user_by_email(body.email)
    if user:
        token = generate_token()
        if tokens_db.put_token(
            token,
            tokens_db.PASSWORD_RESET,
            settings.RESET_TOKEN_EXPIRE_SECONDS,
            user_id=user["user_id"],
        ):
            background_tasks.add_task(email_service.send_password_reset_email, user, token)
        else:
            logger.error(f"Could not store reset token for user {user['user_id']}")

    return {"message": RESET_REQUEST_MESSAGE}


@router.post("/reset-password")
def reset_password(body: ResetPasswordRequest, background_tasks: BackgroundTasks):
    record = tokens_db.get_token(body.token, tokens_db.PASSWORD_RESET)
    user = users_db.get_user_by_id(record["user_id"]) if record else None
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired token.")

    updated = users_db.update_user(
        user["user_id"],
        {"password_hash": hash_password(body.password), "updated_at": datetime.utcnow().isoformat()},
    )
    if not updated:
        raise HTTPException(status_code=500, detail="Could not update password")

    tokens_db.delete_token(body.token)
    background_tasks.add_task(email_service.send_password_reset_confirmation_email, updated)
    logger.info(f"Password reset for user {user['user_id']}")

    return {"message": "Password reset successfully."}
