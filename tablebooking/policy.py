"""
Who may do what.

Every authorization rule of the service lives here so it can be checked
without touching the database.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from tablebooking.errors import AuthorizationError
from tablebooking.models import Role


@dataclass(frozen=True)
class Requester:
    id: int
    role: str = Role.CLIENT.value

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


class Action(str, enum.Enum):
    READ_RESERVATION = "reservation:read"
    UPDATE_RESERVATION = "reservation:update"
    DELETE_RESERVATION = "reservation:delete"
    CANCEL_RESERVATION = "reservation:cancel"
    CONFIRM_RESERVATION = "reservation:confirm"
    LIST_RESERVATIONS = "reservation:list"
    MANAGE_TABLES = "table:manage"
    VIEW_REPORTS = "admin:reports"


OWNER_ONLY = {Action.UPDATE_RESERVATION}
OWNER_OR_ADMIN = {
    Action.READ_RESERVATION,
    Action.DELETE_RESERVATION,
    Action.CANCEL_RESERVATION,
}
ADMIN_ONLY = {
    Action.CONFIRM_RESERVATION,
    Action.LIST_RESERVATIONS,
    Action.MANAGE_TABLES,
    Action.VIEW_REPORTS,
}

DENIED_MESSAGES = {
    Action.UPDATE_RESERVATION: "Not authorized to update this reservation",
    Action.DELETE_RESERVATION: "Not authorized to delete this reservation",
    Action.CANCEL_RESERVATION: "Not authorized to cancel this reservation",
    Action.READ_RESERVATION: "Not authorized to view this reservation",
    Action.MANAGE_TABLES: "Only admins can manage tables",
}


def _owns(requester: Requester, resource) -> bool:
    return resource is not None and getattr(resource, "user_id", None) == requester.id


def is_allowed(requester: Requester, resource, action: Action) -> bool:
    if action in OWNER_ONLY:
        return _owns(requester, resource)
    if action in OWNER_OR_ADMIN:
        return requester.is_admin or _owns(requester, resource)
    if action in ADMIN_ONLY:
        return requester.is_admin
    return False


def authorize(requester: Requester, resource, action: Action, message: Optional[str] = None):
    if not is_allowed(requester, resource, action):
        raise AuthorizationError(message or DENIED_MESSAGES.get(action, "Access denied"))
