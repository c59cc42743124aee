"""Unit tests for the authorization guard."""
import pytest

from eventreg.auth import CallerIdentity, Role, get_caller, parse_role
from eventreg.errors import AuthenticationError, AuthorizationError, ValidationError
from eventreg.models import Event, Participant, Registration
from eventreg.services import guard

ORGANIZER_ID = 10
OWNER_ID = 20
OTHER_ID = 30


@pytest.fixture
def event():
    return Event(id=1, organizer_id=ORGANIZER_ID)


@pytest.fixture
def registration(event):
    return Registration(id=5, event=event, user_id=OWNER_ID, participant=Participant(user_id=OWNER_ID))


def caller(user_id, role=Role.PARTICIPANT):
    return CallerIdentity(user_id=user_id, role=role)


ADMIN = CallerIdentity(user_id=None, role=Role.ADMIN)


def test_guest_is_rejected_everywhere(registration, event):
    for check in (guard.ensure_can_view, guard.ensure_can_cancel, guard.ensure_can_update_status):
        with pytest.raises(AuthenticationError):
            check(None, registration)
    with pytest.raises(AuthenticationError):
        guard.ensure_can_list_event(None, event)
    with pytest.raises(AuthenticationError):
        guard.scope_listing(None, None, None)


def test_owner_by_primary_participant(event):
    reg = Registration(id=6, event=event, user_id=None, participant=Participant(user_id=OWNER_ID))
    assert guard.owns(caller(OWNER_ID), reg)
    assert not guard.owns(caller(OTHER_ID), reg)
    assert not guard.owns(caller(None), reg)


class TestRegistrationAccess:
    def test_view(self, registration):
        guard.ensure_can_view(ADMIN, registration)
        guard.ensure_can_view(caller(OWNER_ID), registration)
        guard.ensure_can_view(caller(ORGANIZER_ID, Role.ORGANIZER), registration)
        with pytest.raises(AuthorizationError):
            guard.ensure_can_view(caller(OTHER_ID), registration)

    def test_cancel_is_owner_or_admin_only(self, registration):
        guard.ensure_can_cancel(ADMIN, registration)
        guard.ensure_can_cancel(caller(OWNER_ID), registration)
        with pytest.raises(AuthorizationError):
            guard.ensure_can_cancel(caller(ORGANIZER_ID, Role.ORGANIZER), registration)

    def test_status_update_is_organizer_or_admin_only(self, registration):
        guard.ensure_can_update_status(ADMIN, registration)
        guard.ensure_can_update_status(caller(ORGANIZER_ID, Role.ORGANIZER), registration)
        with pytest.raises(AuthorizationError):
            guard.ensure_can_update_status(caller(OWNER_ID), registration)

    def test_admin_only(self):
        guard.ensure_admin(ADMIN)
        with pytest.raises(AuthorizationError):
            guard.ensure_admin(caller(ORGANIZER_ID, Role.ORGANIZER))


class TestScopeListing:
    def test_admin_keeps_requested_filter(self, event):
        assert guard.scope_listing(ADMIN, None, None) is None
        assert guard.scope_listing(ADMIN, event, OTHER_ID) == OTHER_ID

    def test_organizer_sees_whole_event(self, event):
        assert guard.scope_listing(caller(ORGANIZER_ID, Role.ORGANIZER), event, None) is None

    def test_participant_is_restricted_to_self(self, event):
        assert guard.scope_listing(caller(OWNER_ID), None, None) == OWNER_ID
        assert guard.scope_listing(caller(OWNER_ID), event, None) == OWNER_ID

    def test_participant_cannot_ask_for_others(self):
        with pytest.raises(AuthorizationError):
            guard.scope_listing(caller(OWNER_ID), None, OTHER_ID)

    def test_identity_without_user_id(self):
        with pytest.raises(AuthorizationError):
            guard.scope_listing(caller(None, Role.ORGANIZER), None, None)


def test_get_caller_resolution():
    assert get_caller(None, None, None) is None
    assert get_caller(3, "organizer", None) == CallerIdentity(user_id=3, role=Role.ORGANIZER)
    assert get_caller(None, None, "test-admin-key").is_admin
    # a wrong key does not grant anything
    assert get_caller(None, None, "nope") is None


def test_parse_role():
    assert parse_role(None) == Role.PARTICIPANT
    with pytest.raises(ValidationError):
        parse_role("superuser")
