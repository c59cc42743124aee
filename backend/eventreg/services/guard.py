# backend/eventreg/services/guard.py
"""Who may read or change which registrations."""
from typing import Optional

from eventreg.auth import CallerIdentity
from eventreg.errors import AuthenticationError, AuthorizationError
from eventreg.models import Event, Registration


def require_caller(caller: Optional[CallerIdentity]) -> CallerIdentity:
    if caller is None:
        raise AuthenticationError()
    return caller


def organizes(caller: CallerIdentity, event: Event) -> bool:
    return caller.user_id is not None and event.organizer_id == caller.user_id


def owns(caller: CallerIdentity, registration: Registration) -> bool:
    if caller.user_id is None:
        return False
    if registration.user_id == caller.user_id:
        return True
    participant = registration.participant
    return participant is not None and participant.user_id == caller.user_id


def ensure_admin(caller: Optional[CallerIdentity]) -> None:
    caller = require_caller(caller)
    if not caller.is_admin:
        raise AuthorizationError("Forbidden: You do not have permission to access this resource.")


def ensure_can_view(caller: Optional[CallerIdentity], registration: Registration) -> None:
    caller = require_caller(caller)
    if not (caller.is_admin or owns(caller, registration) or organizes(caller, registration.event)):
        raise AuthorizationError("Forbidden: You do not have permission to view this registration.")


def ensure_can_cancel(caller: Optional[CallerIdentity], registration: Registration) -> None:
    caller = require_caller(caller)
    if not (caller.is_admin or owns(caller, registration)):
        raise AuthorizationError("Forbidden: You do not have permission to cancel this registration.")


def ensure_can_update_status(caller: Optional[CallerIdentity], registration: Registration) -> None:
    caller = require_caller(caller)
    if not (caller.is_admin or organizes(caller, registration.event)):
        raise AuthorizationError("Forbidden: You do not have permission to update this registration status.")


def ensure_can_list_event(caller: Optional[CallerIdentity], event: Event) -> None:
    caller = require_caller(caller)
    if not (caller.is_admin or organizes(caller, event)):
        raise AuthorizationError("Forbidden: You do not have permission to view registrations for this event.")


def scope_listing(
    caller: Optional[CallerIdentity],
    event: Optional[Event],
    user_id: Optional[int],
) -> Optional[int]:
    """
    Decide which user's registrations a general listing may show.

    Returns the user id the listing must be restricted to, or None when the
    caller may see every registration matching the other filters (admins, and
    organizers listing their own event).
    """
    caller = require_caller(caller)
    if caller.is_admin:
        return user_id
    if caller.user_id is None:
        raise AuthorizationError("Forbidden: You do not have permission to view these registrations.")
    if event is not None:
        if organizes(caller, event):
            return user_id
        return caller.user_id
    if user_id is not None and user_id != caller.user_id:
        raise AuthorizationError("Forbidden: You can only view your own registrations.")
    return caller.user_id
