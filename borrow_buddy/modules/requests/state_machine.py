"""
Legal moves between tool request statuses.
denied, canceled and returned are terminal.

An overdue request that was never picked up expired before the handover:
it can only be denied or canceled, and nothing is held by the borrower.
"""
from fastapi import HTTPException
from borrow_buddy.modules.requests.models import RequestStatus, ACTIVE_BORROW_STATUSES
from typing import Any, Dict, FrozenSet, Union

TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({
        RequestStatus.APPROVED, RequestStatus.DENIED,
        RequestStatus.CANCELED, RequestStatus.OVERDUE,
    }),
    RequestStatus.APPROVED: frozenset({
        RequestStatus.PICKED_UP, RequestStatus.CANCELED, RequestStatus.OVERDUE,
    }),
    RequestStatus.PICKED_UP: frozenset({RequestStatus.RETURN_PENDING, RequestStatus.OVERDUE}),
    RequestStatus.RETURN_PENDING: frozenset({RequestStatus.RETURNED, RequestStatus.OVERDUE}),
    RequestStatus.OVERDUE: frozenset({RequestStatus.RETURN_PENDING, RequestStatus.RETURNED}),
    RequestStatus.DENIED: frozenset(),
    RequestStatus.CANCELED: frozenset(),
    RequestStatus.RETURNED: frozenset(),
}

EXPIRED_BEFORE_PICKUP_TRANSITIONS: FrozenSet[RequestStatus] = frozenset({
    RequestStatus.DENIED, RequestStatus.CANCELED,
})


def _status(value: Union[str, RequestStatus]) -> RequestStatus:
    return value if isinstance(value, RequestStatus) else RequestStatus(value)


def is_terminal(status: Union[str, RequestStatus]) -> bool:
    return not TRANSITIONS[_status(status)]


def allowed_targets(current: Union[str, RequestStatus], picked_up: bool = True) -> FrozenSet[RequestStatus]:
    current = _status(current)
    if current == RequestStatus.OVERDUE and not picked_up:
        return EXPIRED_BEFORE_PICKUP_TRANSITIONS
    return TRANSITIONS[current]


def can_transition(
    current: Union[str, RequestStatus],
    target: Union[str, RequestStatus],
    picked_up: bool = True
) -> bool:
    try:
        return _status(target) in allowed_targets(current, picked_up)
    except ValueError:
        return False


def validate_transition(
    current: Union[str, RequestStatus],
    target: Union[str, RequestStatus],
    picked_up: bool = True
) -> RequestStatus:
    """Return the target status, or raise 409 when the move is not allowed"""
    if not can_transition(current, target, picked_up):
        current_value = current.value if isinstance(current, RequestStatus) else current
        target_value = target.value if isinstance(target, RequestStatus) else target
        raise HTTPException(
            status_code=409,
            detail=f"Cannot move a request from '{current_value}' to '{target_value}'"
        )
    return _status(target)


def holds_tool(request: Dict[str, Any]) -> bool:
    """Whether the tool is promised to or held by the requester"""
    status = request.get("status")
    if status == RequestStatus.OVERDUE.value:
        return bool(request.get("picked_up_at"))
    return status in {s.value for s in ACTIVE_BORROW_STATUSES}
