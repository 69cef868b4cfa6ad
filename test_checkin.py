from datetime import datetime

import pytest

from checkin import (
    ProfessorCheckin,
    LocationFix,
    location_from_payload,
    classify_punctuality,
    check_in_student,
    kiosk_class_options,
    IDLE,
    CHECKED_IN,
    NO_CLASS,
    ERROR,
    ON_TIME,
    LATE,
)
from conftest import FIXED_NOW, at_site
from constants import CLASS_OPTIONS, SEDE_COORDINATES
from database import db, Professor, ProfessorAttendance, ScheduleEntry, AttendanceRecord, Student
from errors import (
    NoClassScheduled,
    AlreadyCheckedIn,
    LocationError,
    LocationPermissionDenied,
    LocationTimeout,
    ConfigurationMissing,
    OutOfRange,
    InsufficientCredit,
    ValidationError,
)
from schedule_match import LEGACY_WINDOW


def at(hour, minute, second=0):
    return FIXED_NOW.replace(hour=hour, minute=minute, second=second)


def locate_at(sede='chimbote'):
    site = SEDE_COORDINATES[sede]
    return lambda timeout_seconds: LocationFix(site['lat'], site['lon'], None)


def test_punctuality():
    assert classify_punctuality('18:00', at(17, 50)) == ON_TIME
    assert classify_punctuality('18:00', at(18, 9)) == ON_TIME
    assert classify_punctuality('18:00', at(18, 10)) == ON_TIME
    assert classify_punctuality('18:00', at(18, 10, 30)) == LATE
    assert classify_punctuality('18:00', at(18, 11)) == LATE


def test_refresh_states(professor):
    machine = ProfessorCheckin(professor)
    assert machine.refresh(at(10, 0)) == NO_CLASS
    assert machine.current_class is None

    assert machine.refresh(at(18, 5)) == IDLE
    assert machine.current_class.class_name == 'JIUJITSU GI'


def test_confirm_on_time(professor):
    machine = ProfessorCheckin(professor)
    record = machine.confirm(locate_at(), at(18, 9))

    assert machine.state == CHECKED_IN
    assert record.status == ON_TIME
    assert record.professor_name == 'Carlos Ruiz'
    assert record.class_name == 'JIUJITSU GI'
    assert record.attendance_date == FIXED_NOW.date()


def test_confirm_late(professor):
    record = ProfessorCheckin(professor).confirm(locate_at(), at(18, 11))
    assert record.status == LATE


def test_second_confirm_does_not_write(professor):
    ProfessorCheckin(professor).confirm(locate_at(), at(18, 9))

    machine = ProfessorCheckin(professor)
    assert machine.refresh(at(18, 20)) == CHECKED_IN
    with pytest.raises(AlreadyCheckedIn):
        machine.confirm(locate_at(), at(18, 20))
    assert ProfessorAttendance.query.count() == 1


def test_unique_constraint_closes_the_race(professor):
    machine = ProfessorCheckin(professor)
    machine.refresh(at(18, 9))
    # another device commits between our read and our write
    db.session.add(ProfessorAttendance(
        professor_id=professor.id,
        professor_name=professor.name,
        sede=professor.sede,
        class_name='JIUJITSU GI',
        timestamp=at(18, 8),
        attendance_date=FIXED_NOW.date(),
        status=ON_TIME,
    ))
    db.session.commit()

    machine.existing_record = lambda class_name, day: None
    with pytest.raises(AlreadyCheckedIn):
        machine.confirm(locate_at(), at(18, 9))
    assert machine.state == CHECKED_IN
    assert ProfessorAttendance.query.count() == 1


def test_no_class_raises(professor):
    machine = ProfessorCheckin(professor)
    with pytest.raises(NoClassScheduled):
        machine.confirm(locate_at(), at(21, 0))
    assert machine.state == NO_CLASS


def test_out_of_range_goes_to_error(professor):
    machine = ProfessorCheckin(professor)
    with pytest.raises(OutOfRange) as excinfo:
        machine.confirm(locate_at('nuevo-chimbote'), at(18, 5))

    assert 7800 < excinfo.value.distance < 8050
    assert str(excinfo.value.distance) in excinfo.value.message
    assert machine.state == ERROR
    assert machine.retry_after == 3
    assert ProfessorAttendance.query.count() == 0

    # the next evaluation recovers to idle
    assert machine.refresh(at(18, 6)) == IDLE
    assert machine.retry_after is None


def test_missing_site_coordinates(professor):
    machine = ProfessorCheckin(professor, coordinates={})
    with pytest.raises(ConfigurationMissing):
        machine.confirm(locate_at(), at(18, 5))
    assert machine.state == ERROR


def test_sensor_failures(professor):
    machine = ProfessorCheckin(professor)
    with pytest.raises(LocationPermissionDenied):
        machine.confirm(location_from_payload({'location_error': 'PERMISSION_DENIED'}), at(18, 5))
    assert machine.state == ERROR

    with pytest.raises(LocationTimeout):
        machine.confirm(location_from_payload({'location_error': 3}), at(18, 5))

    with pytest.raises(LocationError):
        machine.confirm(location_from_payload({}), at(18, 5))

    with pytest.raises(LocationError):
        machine.confirm(location_from_payload({'latitude': 'north', 'longitude': '1'}), at(18, 5))


def test_non_finite_fix_is_refused(professor):
    machine = ProfessorCheckin(professor)
    for bad in ('nan', 'inf', '-inf', float('nan')):
        with pytest.raises(LocationError):
            machine.confirm(location_from_payload({'latitude': bad, 'longitude': bad}), at(18, 5))
        assert machine.state == ERROR
    assert ProfessorAttendance.query.count() == 0


def test_fix_outside_coordinate_range(professor):
    machine = ProfessorCheckin(professor)
    with pytest.raises(LocationError):
        machine.confirm(location_from_payload({'latitude': 91, 'longitude': -78.5}), at(18, 5))
    with pytest.raises(LocationError):
        machine.confirm(location_from_payload({'latitude': -9.08, 'longitude': 181}), at(18, 5))
    assert machine.state == ERROR
    assert ProfessorAttendance.query.count() == 0


def test_payload_fix():
    fix = location_from_payload(at_site())(timeout_seconds=10)
    assert fix.latitude == SEDE_COORDINATES['chimbote']['lat']
    assert fix.accuracy == 12.0


def test_site_schedule_fallback(app):
    professor = Professor(name='Rosa Díaz', sede='nuevo-chimbote', pin='1111')
    db.session.add(professor)
    db.session.add(ScheduleEntry(day='Lunes', time='19:00', class_name='BOX / MMA', sede='nuevo-chimbote'))
    db.session.add(ScheduleEntry(day='Lunes', time='19:00', class_name='BOX KIDS', sede='chimbote'))
    db.session.commit()

    machine = ProfessorCheckin(professor)
    assert machine.refresh(at(18, 50)) == IDLE
    assert machine.current_class.class_name == 'BOX / MMA'


def test_legacy_policy(professor):
    machine = ProfessorCheckin(professor, policy=LEGACY_WINDOW)
    assert machine.refresh(at(17, 50)) == NO_CLASS
    assert machine.refresh(at(18, 50)) == IDLE


def test_status_dict(professor):
    machine = ProfessorCheckin(professor)
    machine.confirm(locate_at(), at(18, 5))
    data = machine.to_dict()
    assert data['state'] == CHECKED_IN
    assert data['refresh_interval'] == 60
    assert data['geolocation_timeout'] == 10
    assert len(data['recent_checkins']) == 1
    assert 'pin' not in data['professor']


def test_student_checkin_consumes_a_credit(student):
    student.classes_remaining = 1
    db.session.commit()

    record = check_in_student(student, 'JIUJITSU GI', CLASS_OPTIONS, FIXED_NOW)
    assert record.student_name == 'Ana Torres'
    assert record.sede == 'chimbote'
    assert db.session.get(Student, student.id).classes_remaining == 0

    with pytest.raises(InsufficientCredit):
        check_in_student(student, 'JIUJITSU GI', CLASS_OPTIONS, FIXED_NOW)
    assert AttendanceRecord.query.count() == 1


def test_student_checkin_needs_a_known_class(student):
    with pytest.raises(ValidationError):
        check_in_student(student, '', CLASS_OPTIONS, FIXED_NOW)
    with pytest.raises(ValidationError):
        check_in_student(student, 'YOGA', CLASS_OPTIONS, FIXED_NOW)
    assert db.session.get(Student, student.id).classes_remaining == 5


def test_kiosk_class_options(app):
    assert kiosk_class_options('chimbote', CLASS_OPTIONS, FIXED_NOW) == CLASS_OPTIONS

    db.session.add(ScheduleEntry(day='Lunes', time='20:00', class_name='GI Y NO GI', sede='chimbote'))
    db.session.add(ScheduleEntry(day='Lunes', time='07:00', class_name='BOX / MMA', sede='chimbote'))
    db.session.add(ScheduleEntry(day='Martes', time='07:00', class_name='BOX KIDS', sede='chimbote'))
    db.session.commit()

    assert kiosk_class_options('chimbote', CLASS_OPTIONS, FIXED_NOW) == ['BOX / MMA', 'GI Y NO GI']
    assert kiosk_class_options('chimbote', CLASS_OPTIONS, datetime(2026, 10, 21)) == CLASS_OPTIONS
