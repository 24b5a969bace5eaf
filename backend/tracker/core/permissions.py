"""
Authorization policy and organization scope guard.

WHAT: Decides whether a principal may perform an action on a ticket, and
whether a resource is visible to the principal at all.

WHY: Every mutating ticket operation goes through two checks, in order:
1. Scope: the resource must belong to the principal's organization.
   A resource from another organization is reported as not found, so
   callers cannot discover ids outside their tenant.
2. Policy: the principal's role must be allowed to perform the action,
   either unconditionally or because the ticket is assigned to them.

HOW: A flat allow-list per action. Roles do not inherit from each other,
so adding a role or an action is a single table edit.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Type, TypeVar

from tracker.core.exceptions import AuthorizationError, ResourceNotFoundError
from tracker.models.user import User, UserRole


# ============================================================================
# Principal
# ============================================================================


@dataclass(frozen=True)
class Principal:
    """
    Authenticated caller of an operation.

    WHY: Services receive this instead of the User row so that
    authorization decisions never depend on lazily loaded attributes.
    """

    id: int
    role: UserRole
    org_id: Optional[int] = None

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, role=UserRole(user.role), org_id=user.org_id)

    @property
    def has_organization(self) -> bool:
        return self.org_id is not None


# ============================================================================
# Actions and permission matrix
# ============================================================================


class Action(str, Enum):
    """Operations subject to role-based authorization."""

    CREATE_TICKET = "CreateTicket"
    UPDATE_TICKET = "UpdateTicket"
    DELETE_TICKET = "DeleteTicket"
    ASSIGN_TICKET = "AssignTicket"
    TOGGLE_TODO = "ToggleTodo"
    ADD_TODO = "AddTodo"
    DELETE_TODO = "DeleteTodo"
    ADD_ATTACHMENT = "AddAttachment"
    DELETE_ATTACHMENT = "DeleteAttachment"
    ADD_COMMENT = "AddComment"
    UPDATE_EXPRESS_LINK = "UpdateExpressLink"
    CREATE_PROJECT = "CreateProject"


@dataclass(frozen=True)
class Rule:
    """
    Roles allowed to perform one action.

    - unconditional: allowed on any in-scope resource
    - when_assigned: allowed only if resource.assigned_to_user_id == principal.id
    """

    unconditional: FrozenSet[UserRole] = frozenset()
    when_assigned: FrozenSet[UserRole] = frozenset()


_ADMIN_MANAGER = frozenset({UserRole.ADMIN, UserRole.MANAGER})
_DESIGNER = frozenset({UserRole.DESIGNER})

PERMISSION_MATRIX: Dict[Action, Rule] = {
    Action.CREATE_TICKET: Rule(unconditional=_ADMIN_MANAGER),
    Action.UPDATE_TICKET: Rule(unconditional=_ADMIN_MANAGER, when_assigned=_DESIGNER),
    Action.DELETE_TICKET: Rule(unconditional=frozenset({UserRole.ADMIN})),
    Action.ASSIGN_TICKET: Rule(unconditional=_ADMIN_MANAGER),
    Action.TOGGLE_TODO: Rule(unconditional=_ADMIN_MANAGER, when_assigned=_DESIGNER),
    Action.ADD_TODO: Rule(unconditional=_ADMIN_MANAGER),
    Action.DELETE_TODO: Rule(unconditional=_ADMIN_MANAGER),
    Action.ADD_ATTACHMENT: Rule(unconditional=_ADMIN_MANAGER),
    Action.DELETE_ATTACHMENT: Rule(unconditional=_ADMIN_MANAGER),
    Action.ADD_COMMENT: Rule(unconditional=_ADMIN_MANAGER, when_assigned=_DESIGNER),
    # Only the designer working on the ticket links their document
    Action.UPDATE_EXPRESS_LINK: Rule(when_assigned=_DESIGNER),
    Action.CREATE_PROJECT: Rule(unconditional=_ADMIN_MANAGER),
}


def _is_assigned(principal: Principal, resource: Any) -> bool:
    assignee = getattr(resource, "assigned_to_user_id", None)
    return assignee is not None and assignee == principal.id


def can(principal: Principal, action: Action, resource: Any = None) -> bool:
    """
    Check whether a principal may perform an action.

    Args:
        principal: The caller
        action: Action being attempted
        resource: Target resource (needed for assignment-based rules)

    Returns:
        True if allowed, False otherwise
    """
    rule = PERMISSION_MATRIX.get(action)
    if rule is None:
        return False

    if principal.role in rule.unconditional:
        return True

    if principal.role in rule.when_assigned and resource is not None:
        return _is_assigned(principal, resource)

    return False


def require(principal: Principal, action: Action, resource: Any = None) -> None:
    """
    Raise AuthorizationError unless the principal may perform the action.

    Raises:
        AuthorizationError: If the permission matrix denies the action
    """
    if not can(principal, action, resource):
        raise AuthorizationError(
            message=f"Role {principal.role.value} may not perform {action.value} on this resource",
            action=action.value,
        )


# ============================================================================
# Scope guard
# ============================================================================


ResourceT = TypeVar("ResourceT")


def is_in_scope(principal: Principal, resource: Any) -> bool:
    """Check if a resource belongs to the principal's organization."""
    if resource is None or principal.org_id is None:
        return False
    return getattr(resource, "org_id", None) == principal.org_id


def assert_in_scope(
    principal: Principal,
    resource: Optional[ResourceT],
    not_found: Type[ResourceNotFoundError] = ResourceNotFoundError,
    **context: Any,
) -> ResourceT:
    """
    Return the resource if it is visible to the principal.

    WHY: Missing and out-of-organization resources raise the same error
    with the same message. Context should only carry ids the caller
    supplied.

    Raises:
        ResourceNotFoundError (or the given subclass): If out of scope
    """
    if not is_in_scope(principal, resource):
        raise not_found(**context)
    return resource
