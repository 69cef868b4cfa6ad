# schedule_match.py
from collections import namedtuple

from constants import DAYS_OF_WEEK

# Minutes before the scheduled start and after it during which a slot counts as "now".
WindowPolicy = namedtuple('WindowPolicy', ['grace_minutes', 'duration_minutes'])

PROFESSOR_WINDOW = WindowPolicy(grace_minutes=15, duration_minutes=90)
# Older inline professor flow: no pre-start grace, one hour long.
LEGACY_WINDOW = WindowPolicy(grace_minutes=0, duration_minutes=60)


def parse_time(value):
    """'18:05' -> minutes since midnight."""
    hour, minute = value.strip().split(':')
    hour, minute = int(hour), int(minute)
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"Invalid time of day: {value!r}")
    return hour * 60 + minute


def day_name(moment):
    # datetime.weekday() is Monday-first, the vocabulary is Sunday-first
    return DAYS_OF_WEEK[(moment.weekday() + 1) % 7]


def minute_of_day(moment):
    return moment.hour * 60 + moment.minute


def is_within_window(entry, day, now_minutes, policy=PROFESSOR_WINDOW):
    if entry.day != day:
        return False
    start = parse_time(entry.time)
    return start - policy.grace_minutes <= now_minutes < start + policy.duration_minutes


def find_current_class(day, now_minutes, personal_schedule, site_schedule=(), policy=PROFESSOR_WINDOW):
    """Return the slot that is running around now_minutes, or None.

    The personal schedule is scanned first; the site-wide schedule is only a
    fallback. Within each list the first match in order wins.
    """
    for schedule in (personal_schedule, site_schedule):
        for entry in schedule:
            if is_within_window(entry, day, now_minutes, policy):
                return entry
    return None


def classes_for_day(schedule, day):
    """Entries of one day ordered by start time."""
    return sorted((e for e in schedule if e.day == day), key=lambda e: parse_time(e.time))


def is_valid_day(day):
    return day in DAYS_OF_WEEK
