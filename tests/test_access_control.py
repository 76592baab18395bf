import pytest

from rollcall.core.exceptions import AuthorizationError, ConfigurationError, InvalidArgumentError
from rollcall.persistence import InMemoryLedgerStore
from rollcall.services import AccessControlLedger

from .conftest import INSTRUCTOR_A, INSTRUCTOR_B, OUTSIDER, OWNER


def test_owner_predicate(platform):
    acl = platform.access_control
    assert acl.owner == OWNER
    assert acl.is_owner(OWNER)
    assert not acl.is_owner(INSTRUCTOR_A)


def test_instructors_are_authorized_only_for_their_course(platform, registry, intro_course):
    second = registry.create_course(OWNER, "Algebra", [OUTSIDER])
    acl = platform.access_control

    assert acl.is_authorized(intro_course, INSTRUCTOR_A)
    assert acl.is_authorized(intro_course, INSTRUCTOR_B)
    assert not acl.is_authorized(intro_course, OUTSIDER)
    assert acl.is_authorized(second, OUTSIDER)
    assert not acl.is_authorized(second, INSTRUCTOR_A)


def test_owner_is_authorized_everywhere_including_unknown_courses(platform, intro_course):
    acl = platform.access_control
    assert acl.is_authorized(intro_course, OWNER)
    assert acl.is_authorized(99, OWNER)
    assert not acl.is_authorized(99, INSTRUCTOR_A)


def test_instructor_set_lookup(platform, intro_course):
    assert platform.access_control.instructors(intro_course) == frozenset({INSTRUCTOR_A, INSTRUCTOR_B})
    assert platform.access_control.instructors(42) == frozenset()


def test_require_helpers_raise_authorization_error(platform, intro_course):
    acl = platform.access_control
    with pytest.raises(AuthorizationError) as excinfo:
        acl.require_owner(INSTRUCTOR_A)
    assert excinfo.value.error_code == "UNAUTHORIZED"

    with pytest.raises(AuthorizationError):
        acl.require_authorized(intro_course, OUTSIDER)
    acl.require_authorized(intro_course, INSTRUCTOR_A)


def test_owner_is_fixed_once_recorded():
    store = InMemoryLedgerStore()
    AccessControlLedger(store, OWNER)
    assert AccessControlLedger(store, OWNER).owner == OWNER

    with pytest.raises(ConfigurationError):
        AccessControlLedger(store, "someone-else")
    assert store.get_owner() == OWNER


def test_empty_owner_rejected():
    with pytest.raises(ConfigurationError):
        AccessControlLedger(InMemoryLedgerStore(), "")


@pytest.mark.parametrize("course_id", [-1, 2 ** 63])
def test_malformed_course_ids_are_rejected(platform, course_id):
    with pytest.raises(InvalidArgumentError):
        platform.access_control.is_authorized(course_id, INSTRUCTOR_A)
    with pytest.raises(InvalidArgumentError):
        platform.access_control.instructors(course_id)
