"""
Lifecycle state machine for users, companies and cards.

Rows keep the two wire fields (`status`, `excluded`); this module is the
single place that maps them to and from one lifecycle state.
"""

import enum
from typing import Dict, Union

from app.domain.enums import ResourceStatus


class Lifecycle(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    EXCLUDED = "excluded"


_WIRE = {
    Lifecycle.PENDING: (ResourceStatus.PENDING, False),
    Lifecycle.ACTIVE: (ResourceStatus.AVAILABLE, False),
    Lifecycle.SUSPENDED: (ResourceStatus.UNAVAILABLE, False),
    Lifecycle.EXCLUDED: (ResourceStatus.UNAVAILABLE, True),
}


class LifecycleTransitionError(ValueError):
    pass


def lifecycle_of(status: Union[str, ResourceStatus, None], excluded: bool) -> Lifecycle:
    if excluded:
        return Lifecycle.EXCLUDED
    status = ResourceStatus(status) if status else ResourceStatus.PENDING
    if status == ResourceStatus.AVAILABLE:
        return Lifecycle.ACTIVE
    if status == ResourceStatus.UNAVAILABLE:
        return Lifecycle.SUSPENDED
    return Lifecycle.PENDING


def lifecycle_fields(state: Lifecycle) -> Dict[str, object]:
    """Wire representation of `state`, ready to be used as update data."""
    status, excluded = _WIRE[state]
    return {"status": status.value, "excluded": excluded}


def transition(current: Lifecycle, target: Lifecycle) -> Dict[str, object]:
    """Validate a transition and return the update data for it.

    `excluded` is terminal. Moving back to `pending` is only allowed from
    `pending` itself.
    """
    if current == Lifecycle.EXCLUDED:
        raise LifecycleTransitionError(f"cannot leave {current.value}")
    if target == Lifecycle.PENDING and current != Lifecycle.PENDING:
        raise LifecycleTransitionError(f"cannot move from {current.value} to {target.value}")
    return lifecycle_fields(target)


def is_active(status: Union[str, ResourceStatus, None], excluded: bool) -> bool:
    return lifecycle_of(status, excluded) == Lifecycle.ACTIVE
