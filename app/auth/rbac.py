from typing import Iterable, Set

from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_actor
from app.auth.schemas import Actor
from app.core.enums import AppRole
from app.core.exceptions import AuthorizationError

ADMIN_ROLES = frozenset({AppRole.admin})
# Roles allowed to create invoices, record payments and maintain fee masters
BILLING_ROLES = frozenset({AppRole.admin, AppRole.accountant})
READ_ROLES = frozenset({AppRole.admin, AppRole.accountant, AppRole.staff})


def ensure_role(actor: Actor, allowed: Iterable[AppRole]) -> None:
    """Raise AuthorizationError unless the actor holds one of the allowed roles."""
    allowed_set: Set[AppRole] = set(allowed)
    if actor.role is None or actor.role not in allowed_set:
        raise AuthorizationError(
            "Only {} can perform this action".format(
                ", ".join(sorted(r.value for r in allowed_set))
            )
        )


def require_roles(*roles: AppRole):
    """
    Dependency factory to enforce a role set at the route level.

    Example:
        Depends(require_roles(AppRole.admin, AppRole.accountant))
    """

    async def _checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        try:
            ensure_role(actor, roles)
        except AuthorizationError as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
        return actor

    return _checker
