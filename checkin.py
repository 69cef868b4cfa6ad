# checkin.py
"""Check-in eligibility for professors (geofenced) and students (kiosk).

A ``ProfessorCheckin`` is rebuilt on every request and re-evaluated from the
schedule, so calling ``refresh`` repeatedly is always safe. Its states are::

    idle -> checking -> checked-in
      \\        \\-> error (client re-evaluates after ``retry_after`` seconds)
       \\-> no-class

Duplicate professor check-ins are rejected by the unique constraint on
(professor, class, date), not by the read in ``refresh``.
"""
import math
from collections import namedtuple
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from constants import (
    SEDE_COORDINATES,
    GEOFENCE_RADIUS_METERS,
    LATE_AFTER_MINUTES,
    GEOLOCATION_TIMEOUT_SECONDS,
    REFRESH_INTERVAL_SECONDS,
    ERROR_RETRY_SECONDS,
)
from database import db, ScheduleEntry, ProfessorAttendance, AttendanceRecord
from errors import (
    CheckinError,
    ValidationError,
    NoClassScheduled,
    AlreadyCheckedIn,
    LocationError,
    LocationPermissionDenied,
    LocationTimeout,
    ConfigurationMissing,
    OutOfRange,
)
from location_check import check_attendance_location
from membership import decrement_on_checkin
from schedule_match import (
    PROFESSOR_WINDOW,
    find_current_class,
    classes_for_day,
    day_name,
    minute_of_day,
    parse_time,
)

IDLE = 'idle'
CHECKING = 'checking'
CHECKED_IN = 'checked-in'
NO_CLASS = 'no-class'
ERROR = 'error'

ON_TIME = 'ON_TIME'
LATE = 'LATE'

LocationFix = namedtuple('LocationFix', ['latitude', 'longitude', 'accuracy'])

# GeolocationPositionError codes as reported by browsers
_PERMISSION_DENIED = {'1', 'permission_denied', 'denied'}
_TIMEOUT = {'3', 'timeout'}


def location_from_payload(payload):
    """Build a locate() callable out of what the browser posted."""
    def locate(timeout_seconds=GEOLOCATION_TIMEOUT_SECONDS):
        error = str(payload.get('location_error') or '').strip().lower()
        if error in _PERMISSION_DENIED:
            raise LocationPermissionDenied()
        if error in _TIMEOUT:
            raise LocationTimeout()
        if error:
            raise LocationError()

        latitude = payload.get('latitude')
        longitude = payload.get('longitude')
        if latitude is None or longitude is None or latitude == '' or longitude == '':
            raise LocationError()
        try:
            accuracy = payload.get('accuracy')
            fix = LocationFix(
                float(latitude),
                float(longitude),
                float(accuracy) if accuracy not in (None, '') else None,
            )
        except (TypeError, ValueError):
            raise LocationError('The reported location is not valid.')

        if not (math.isfinite(fix.latitude) and math.isfinite(fix.longitude)):
            raise LocationError('The reported location is not valid.')
        if not (-90 <= fix.latitude <= 90 and -180 <= fix.longitude <= 180):
            raise LocationError('The reported location is out of range.')
        return fix
    return locate


def classify_punctuality(class_time, now, late_after=LATE_AFTER_MINUTES):
    start_minutes = parse_time(class_time)
    class_start = now.replace(hour=start_minutes // 60, minute=start_minutes % 60,
                              second=0, microsecond=0)
    minutes_late = (now - class_start).total_seconds() / 60
    return LATE if minutes_late > late_after else ON_TIME


class ProfessorCheckin:

    def __init__(self, professor, coordinates=None, policy=PROFESSOR_WINDOW,
                 radius_meters=GEOFENCE_RADIUS_METERS):
        self.professor = professor
        self.coordinates = SEDE_COORDINATES if coordinates is None else coordinates
        self.policy = policy
        self.radius_meters = radius_meters

        self.state = IDLE
        self.current_class = None
        self.last_record = None
        self.message = ''
        self.retry_after = None

    def site_schedule(self):
        return ScheduleEntry.query.filter_by(
            professor_id=None,
            sede=self.professor.sede,
        ).order_by(ScheduleEntry.id).all()

    def existing_record(self, class_name, day):
        return ProfessorAttendance.query.filter_by(
            professor_id=self.professor.id,
            class_name=class_name,
            attendance_date=day,
        ).first()

    def refresh(self, now=None):
        now = now or datetime.now()
        self.retry_after = None
        self.current_class = find_current_class(
            day_name(now),
            minute_of_day(now),
            list(self.professor.schedule),
            self.site_schedule(),
            self.policy,
        )

        if self.current_class is None:
            self.state = NO_CLASS
            self.last_record = None
            self.message = NoClassScheduled().message
            return self.state

        self.last_record = self.existing_record(self.current_class.class_name, now.date())
        if self.last_record:
            self.state = CHECKED_IN
            self.message = f'Already checked in for {self.current_class.class_name} ({self.last_record.status}).'
        else:
            self.state = IDLE
            self.message = f'Ready to check in for {self.current_class.class_name} at {self.current_class.time}.'
        return self.state

    def validate_distance(self, fix):
        site = self.coordinates.get(self.professor.sede)
        if not site or site.get('lat') is None or site.get('lon') is None:
            raise ConfigurationMissing(f'Coordinates for site "{self.professor.sede}" not found.')

        is_within, distance = check_attendance_location(
            fix.latitude, fix.longitude,
            site['lat'], site['lon'],
            self.radius_meters,
        )
        if not is_within:
            raise OutOfRange(distance)
        return distance

    def confirm(self, locate, now=None):
        """Run the geofenced check-in and persist it. Returns the new record."""
        now = now or datetime.now()
        self.refresh(now)
        if self.state == NO_CLASS:
            raise NoClassScheduled()
        if self.state == CHECKED_IN:
            raise AlreadyCheckedIn()

        self.state = CHECKING
        try:
            fix = locate(timeout_seconds=GEOLOCATION_TIMEOUT_SECONDS)
            self.validate_distance(fix)
            status = classify_punctuality(self.current_class.time, now)
        except CheckinError as e:
            self.state = ERROR
            self.message = e.message
            self.retry_after = ERROR_RETRY_SECONDS
            raise

        record = ProfessorAttendance(
            professor_id=self.professor.id,
            professor_name=self.professor.name,
            sede=self.professor.sede,
            class_name=self.current_class.class_name,
            timestamp=now,
            attendance_date=now.date(),
            status=status,
        )
        db.session.add(record)
        try:
            db.session.commit()
        except IntegrityError:
            # another confirm for the same class and day committed first
            db.session.rollback()
            self.state = CHECKED_IN
            raise AlreadyCheckedIn()

        self.state = CHECKED_IN
        self.last_record = record
        self.message = f'Attendance of {self.professor.name} registered ({status}).'
        return record

    def recent_checkins(self, limit=5):
        return ProfessorAttendance.query.filter_by(
            professor_id=self.professor.id,
        ).order_by(ProfessorAttendance.timestamp.desc()).limit(limit).all()

    def to_dict(self):
        return {
            'state': self.state,
            'message': self.message,
            'professor': self.professor.to_dict(),
            'current_class': self.current_class.to_dict() if self.current_class else None,
            'last_record': self.last_record.to_dict() if self.last_record else None,
            'retry_after': self.retry_after,
            'refresh_interval': REFRESH_INTERVAL_SECONDS,
            'geolocation_timeout': GEOLOCATION_TIMEOUT_SECONDS,
            'recent_checkins': [r.to_dict() for r in self.recent_checkins()],
        }


def kiosk_class_options(sede, class_options, now=None):
    """Classes offered at a site today, falling back to the full vocabulary."""
    now = now or datetime.now()
    today = day_name(now)
    entries = ScheduleEntry.query.filter_by(professor_id=None, sede=sede, day=today).all()
    names = []
    for entry in classes_for_day(entries, today):
        if entry.class_name not in names:
            names.append(entry.class_name)
    return names or list(class_options)


def check_in_student(student, class_name, class_options, now=None):
    """Kiosk check-in: consume one credit and write the attendance record."""
    now = now or datetime.now()
    if not class_name:
        raise ValidationError('Select the class you are attending.')
    if class_name not in class_options:
        raise ValidationError(f'Unknown class "{class_name}".')

    decrement_on_checkin(student, now)
    record = AttendanceRecord(
        student_id=student.id,
        student_name=student.name,
        class_name=class_name,
        sede=student.sede,
        timestamp=now,
    )
    db.session.add(record)
    db.session.commit()
    return record


def welcome_message(now=None):
    hour = (now or datetime.now()).hour
    if hour < 12:
        return 'Good morning, warriors!'
    if hour < 19:
        return 'Good afternoon, fighters!'
    return 'Good evening, champions!'
