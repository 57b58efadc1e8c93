import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from horde.core.security import require_roles
from horde.db import users as users_db
from horde.models.common import Role
from horde.models.user import RoleUpdate
from horde.routers.auth import public_user

router = APIRouter()
logger = logging.getLogger(__name__)


@router.put("/settings/update-role/{user_id}")
def update_role(user_id: str, body: RoleUpdate, admin: dict = Depends(require_roles(Role.ADMIN))):
    roles = list(dict.fromkeys(role.value for role in body.roles))
    updated = users_db.update_user(user_id, {"roles": roles, "updated_at": datetime.utcnow().isoformat()})
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")

    logger.info(f"Admin {admin['user_id']} set roles of {user_id} to {roles}")
    return {"message": "User roles updated.", "user": public_user(updated)}
