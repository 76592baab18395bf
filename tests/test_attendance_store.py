import pytest

from rollcall.core.entities import AttendanceRecord
from rollcall.core.enums import EventType
from rollcall.core.validators import MAX_ID
from rollcall.core.exceptions import (
    AuthorizationError, CourseInactiveError, EmptyBatchError, InvalidArgumentError, LengthMismatchError
)

from .conftest import INSTRUCTOR_A, INSTRUCTOR_B, OUTSIDER, OWNER, STUDENT


def test_intro_scenario(attendance, platform, intro_course, clock):
    assert intro_course == 0

    attendance.mark_attendance(INSTRUCTOR_A, 0, 1, STUDENT, True)
    assert attendance.verify_attendance(0, 1, STUDENT) == (True, clock.current)

    with pytest.raises(AuthorizationError):
        attendance.mark_attendance(OUTSIDER, 0, 1, STUDENT, False)
    assert attendance.verify_attendance(0, 1, STUDENT) == (True, clock.current)
    assert platform.event_log.last_sequence() == 4


def test_round_trip_returns_commit_timestamp(attendance, intro_course, clock):
    record = attendance.mark_attendance(INSTRUCTOR_B, intro_course, 3, STUDENT, True)
    assert record == AttendanceRecord(is_present=True, timestamp=clock.current)
    assert attendance.verify_attendance(intro_course, 3, STUDENT) == (True, record.timestamp)


def test_last_write_wins(attendance, intro_course, clock):
    attendance.mark_attendance(INSTRUCTOR_A, intro_course, 0, STUDENT, True)
    later = clock.advance(60)
    attendance.mark_attendance(INSTRUCTOR_B, intro_course, 0, STUDENT, False)

    assert attendance.verify_attendance(intro_course, 0, STUDENT) == (False, later)


def test_owner_may_mark_without_being_an_instructor(attendance, intro_course):
    attendance.mark_attendance(OWNER, intro_course, 0, STUDENT, True)
    assert attendance.verify_attendance(intro_course, 0, STUDENT)[0] is True


def test_unknown_key_reads_as_zero_default(attendance, intro_course):
    assert attendance.verify_attendance(intro_course, 5, "nobody") == (False, 0)
    assert attendance.verify_attendance(123, 0, "nobody") == (False, 0)
    assert attendance.has_record(intro_course, 5, "nobody") is False


def test_has_record_distinguishes_explicit_absence(attendance, intro_course):
    attendance.mark_attendance(INSTRUCTOR_A, intro_course, 2, STUDENT, False)
    assert attendance.verify_attendance(intro_course, 2, STUDENT)[0] is False
    assert attendance.has_record(intro_course, 2, STUDENT) is True


def test_owner_write_to_unknown_course_is_inactive(attendance, platform):
    with pytest.raises(CourseInactiveError):
        attendance.mark_attendance(OWNER, 0, 0, STUDENT, True)
    assert platform.event_log.last_sequence() == 0
    assert not attendance.is_registered_student(STUDENT)


def test_authorization_is_checked_before_course_state(attendance):
    with pytest.raises(AuthorizationError):
        attendance.mark_attendance(INSTRUCTOR_A, 0, 0, STUDENT, True)


def test_instructor_of_other_course_is_rejected(attendance, registry, intro_course):
    other = registry.create_course(OWNER, "Algebra", [OUTSIDER])
    with pytest.raises(AuthorizationError):
        attendance.mark_attendance(OUTSIDER, intro_course, 0, STUDENT, True)
    attendance.mark_attendance(OUTSIDER, other, 0, STUDENT, True)


def test_students_are_registered_on_write(attendance, intro_course):
    assert not attendance.is_registered_student(STUDENT)
    attendance.mark_attendance(INSTRUCTOR_A, intro_course, 0, STUDENT, False)
    attendance.mark_attendance(INSTRUCTOR_A, intro_course, 1, STUDENT, True)
    assert attendance.is_registered_student(STUDENT)
    assert attendance.registered_student_count() == 1


def test_mark_emits_one_event(attendance, platform, intro_course, clock):
    attendance.mark_attendance(INSTRUCTOR_A, intro_course, 4, STUDENT, True)
    (entry,) = platform.event_log.replay(event_type=EventType.ATTENDANCE_MARKED)
    assert entry.to_dict() == {
        'sequence': 4,
        'event_type': 'AttendanceMarked',
        'course_id': intro_course,
        'timestamp': clock.current,
        'session_id': 4,
        'student': STUDENT,
        'is_present': True,
    }


@pytest.mark.parametrize("course_id, session_id", [(-1, 0), (0, -2), ("0", 0), (0, 1.5), (True, 0)])
def test_identifiers_must_be_unsigned_integers(attendance, intro_course, course_id, session_id):
    with pytest.raises(InvalidArgumentError):
        attendance.mark_attendance(OWNER, course_id, session_id, STUDENT, True)


def test_presence_must_be_boolean(attendance, intro_course):
    with pytest.raises(InvalidArgumentError):
        attendance.mark_attendance(OWNER, intro_course, 0, STUDENT, "yes")


def test_bulk_mark_writes_every_student_with_one_timestamp(attendance, platform, intro_course, clock):
    students = ["s1", "s2", "s3"]
    records = attendance.bulk_mark_attendance(INSTRUCTOR_A, intro_course, 7, students, [True, False, True])

    assert [r.timestamp for r in records] == [clock.current] * 3
    assert [attendance.verify_attendance(intro_course, 7, s) for s in students] == [
        (True, clock.current), (False, clock.current), (True, clock.current)
    ]
    marked = platform.event_log.replay(event_type=EventType.ATTENDANCE_MARKED)
    assert [e.student for e in marked] == students
    assert attendance.registered_student_count() == 3


def test_bulk_length_mismatch_leaves_store_unchanged(attendance, platform, intro_course):
    attendance.mark_attendance(INSTRUCTOR_A, intro_course, 1, STUDENT, True)
    before = attendance.verify_attendance(intro_course, 1, STUDENT)
    events_before = platform.event_log.last_sequence()

    with pytest.raises(LengthMismatchError):
        attendance.bulk_mark_attendance(INSTRUCTOR_A, intro_course, 1, [STUDENT, "s2"], [False])

    assert attendance.verify_attendance(intro_course, 1, STUDENT) == before
    assert attendance.has_record(intro_course, 1, "s2") is False
    assert platform.event_log.last_sequence() == events_before


def test_bulk_empty_batch(attendance, intro_course):
    with pytest.raises(EmptyBatchError):
        attendance.bulk_mark_attendance(INSTRUCTOR_A, intro_course, 1, [], [])


def test_bulk_oversized_batch(attendance, platform, intro_course):
    students = [f"s{n}" for n in range(5)]
    with pytest.raises(InvalidArgumentError):
        attendance.bulk_mark_attendance(INSTRUCTOR_A, intro_course, 1, students, [True] * 5)
    assert platform.event_log.last_sequence() == 3


def test_bulk_invalid_entry_rejects_whole_batch(attendance, intro_course):
    with pytest.raises(InvalidArgumentError):
        attendance.bulk_mark_attendance(INSTRUCTOR_A, intro_course, 1, ["s1", ""], [True, True])
    assert attendance.has_record(intro_course, 1, "s1") is False


def test_bulk_checks_authorization_before_lengths(attendance, intro_course):
    with pytest.raises(AuthorizationError):
        attendance.bulk_mark_attendance(OUTSIDER, intro_course, 1, ["s1"], [])


def test_bulk_checks_course_state_before_lengths(attendance):
    with pytest.raises(CourseInactiveError):
        attendance.bulk_mark_attendance(OWNER, 3, 1, ["s1"], [])


def test_bulk_duplicate_student_keeps_last_flag(attendance, intro_course):
    attendance.bulk_mark_attendance(INSTRUCTOR_A, intro_course, 0, [STUDENT, STUDENT], [True, False])
    assert attendance.verify_attendance(intro_course, 0, STUDENT)[0] is False


def test_attendance_count(attendance, intro_course):
    attendance.mark_attendance(INSTRUCTOR_A, intro_course, 0, STUDENT, True)
    attendance.mark_attendance(INSTRUCTOR_A, intro_course, 1, STUDENT, False)
    attendance.mark_attendance(INSTRUCTOR_A, intro_course, 2, STUDENT, True)

    assert attendance.get_student_attendance_count(intro_course, STUDENT, 3) == 2


def test_attendance_count_ignores_sessions_outside_range(attendance, intro_course):
    attendance.mark_attendance(INSTRUCTOR_A, intro_course, 0, STUDENT, True)
    attendance.mark_attendance(INSTRUCTOR_A, intro_course, 5, STUDENT, True)

    assert attendance.get_student_attendance_count(intro_course, STUDENT, 5) == 1
    assert attendance.get_student_attendance_count(intro_course, STUDENT, 6) == 2
    assert attendance.get_student_attendance_count(intro_course, "nobody", 10) == 0


def test_attendance_count_is_per_course(attendance, registry, intro_course):
    other = registry.create_course(OWNER, "Algebra", [INSTRUCTOR_A])
    attendance.mark_attendance(INSTRUCTOR_A, other, 0, STUDENT, True)
    assert attendance.get_student_attendance_count(intro_course, STUDENT, 1) == 0
    assert attendance.get_student_attendance_count(other, STUDENT, 1) == 1


def test_attendance_count_requires_sessions(attendance, intro_course):
    with pytest.raises(InvalidArgumentError):
        attendance.get_student_attendance_count(intro_course, STUDENT, 0)
    with pytest.raises(InvalidArgumentError):
        attendance.get_student_attendance_count(intro_course, STUDENT, -3)


@pytest.mark.parametrize("course_id, session_id", [(0, 2 ** 63), (2 ** 63, 0), (-1, 0), (0, 2 ** 70)])
def test_out_of_range_ids_are_invalid_arguments(attendance, platform, intro_course, course_id, session_id):
    with pytest.raises(InvalidArgumentError):
        attendance.verify_attendance(course_id, session_id, STUDENT)
    with pytest.raises(InvalidArgumentError):
        attendance.mark_attendance(INSTRUCTOR_A, course_id, session_id, STUDENT, True)
    assert platform.event_log.last_sequence() == 3


def test_largest_storable_ids_are_accepted(attendance, registry, intro_course, clock):
    attendance.mark_attendance(INSTRUCTOR_A, intro_course, MAX_ID, STUDENT, True)

    assert attendance.verify_attendance(intro_course, MAX_ID, STUDENT) == (True, clock.current)
    assert attendance.verify_attendance(MAX_ID, 0, STUDENT) == (False, 0)
    assert registry.is_active(MAX_ID) is False


def test_find_record_returns_none_for_unwritten_keys(attendance, intro_course, clock):
    assert attendance.find_record(intro_course, 0, STUDENT) is None

    attendance.mark_attendance(INSTRUCTOR_A, intro_course, 0, STUDENT, False)
    assert attendance.find_record(intro_course, 0, STUDENT) == AttendanceRecord(False, clock.current)
