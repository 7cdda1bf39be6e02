import logging
from enum import Enum
from typing import Dict, FrozenSet

from fastapi import Depends

from school_admin.auth.dependencies import get_current_user
from school_admin.auth.schemas import CurrentUser
from school_admin.core.enums import Role
from school_admin.core.exceptions import ForbiddenError

logger = logging.getLogger(__name__)


class Action(str, Enum):
    ROSTER_READ = "roster:read"
    ROSTER_MANAGE = "roster:manage"
    FEES_READ = "fees:read"
    FEES_MANAGE = "fees:manage"
    ATTENDANCE_MARK = "attendance:mark"
    ATTENDANCE_READ = "attendance:read"
    ATTENDANCE_DELETE = "attendance:delete"
    OWN_CLASSES = "teacher:own-classes"
    USERS_MANAGE = "users:manage"


_ADMIN = frozenset({Role.ADMIN})
_STAFF = frozenset({Role.ADMIN, Role.TEACHER})

# Teachers never see fee data.
ACCESS_POLICY: Dict[Action, FrozenSet[Role]] = {
    Action.ROSTER_READ: _STAFF,
    Action.ROSTER_MANAGE: _ADMIN,
    Action.FEES_READ: _ADMIN,
    Action.FEES_MANAGE: _ADMIN,
    Action.ATTENDANCE_MARK: _STAFF,
    Action.ATTENDANCE_READ: _STAFF,
    Action.ATTENDANCE_DELETE: _ADMIN,
    Action.OWN_CLASSES: frozenset({Role.TEACHER}),
    Action.USERS_MANAGE: _ADMIN,
}


def is_allowed(role: Role, action: Action) -> bool:
    """Unknown actions are denied."""
    return role in ACCESS_POLICY.get(action, frozenset())


def check_permission(action: Action):
    """
    Dependency factory to enforce the access policy for one action.

    Example:
        Depends(check_permission(Action.FEES_MANAGE))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not is_allowed(current_user.role, action):
            logger.warning("Denied %s for user %s (%s)", action.value, current_user.id, current_user.role.value)
            allowed = " or ".join(sorted(r.value for r in ACCESS_POLICY.get(action, frozenset())))
            raise ForbiddenError(f"Access denied. Required role: {allowed or 'none'}")
        return current_user

    return _checker
