import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from horde.core.security import get_current_user
from horde.db import users as users_db
from horde.models.common import Currency, DateFormat, Theme, TimeFormat, get_currency_symbol
from horde.models.user import Preferences, PreferencesUpdate, ProfileUpdate
from horde.routers.auth import public_user

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/me")
def read_me(user: dict = Depends(get_current_user)):
    """Get current user profile"""
    return {"user": public_user(user)}


@router.get("/config/preferences")
def read_preferences(user: dict = Depends(get_current_user)):
    return {"preferences": Preferences(**user.get("preferences", {})).model_dump(mode="json")}


@router.get("/config/options")
def read_config_options():
    return {
        "themes": [t.value for t in Theme],
        "currencies": [{"code": c.value, "symbol": get_currency_symbol(c)} for c in Currency],
        "date_formats": [f.value for f in DateFormat],
        "time_formats": [f.value for f in TimeFormat],
    }


@router.put("/settings/update-profile")
def update_profile(body: ProfileUpdate, user: dict = Depends(get_current_user)):
    updates = {k: v.strip() for k, v in body.model_dump(exclude_none=True).items()}
    if not updates:
        raise HTTPException(status_code=400, detail="Provide at least one field to update")

    updates["updated_at"] = datetime.utcnow().isoformat()
    updated = users_db.update_user(user["user_id"], updates)
    if not updated:
        raise HTTPException(status_code=500, detail="Could not update profile")
    return {"message": "Profile updated.", "user": public_user(updated)}


@router.put("/settings/update-preferences")
def update_preferences(body: PreferencesUpdate, user: dict = Depends(get_current_user)):
    changes = body.model_dump(mode="json", exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Provide at least one preference to update")

    preferences = Preferences(**user.get("preferences", {})).model_dump(mode="json")
    preferences.update(changes)
    if "currency" in changes:
        preferences["currency_sym"] = get_currency_symbol(changes["currency"])

    updated = users_db.update_user(
        user["user_id"],
        {"preferences": preferences, "updated_at": datetime.utcnow().isoformat()},
    )
    if not updated:
        raise HTTPException(status_code=500, detail="Could not update preferences")
    return {"message": "Preferences updated.", "preferences": updated["preferences"]}
