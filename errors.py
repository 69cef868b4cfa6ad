# errors.py
"""Error taxonomy for check-in, membership and admin access.

Every error carries a user-facing ``message`` and the HTTP status the routes
answer with. ``informational`` errors describe a valid state (nothing to do,
already done) rather than a failure.
"""


class CheckinError(Exception):
    status_code = 400
    informational = False

    def __init__(self, message=None):
        self.message = message or self.default_message()
        super().__init__(self.message)

    def default_message(self):
        return 'Check-in failed.'

    def to_dict(self):
        return {
            'success': False,
            'error': type(self).__name__,
            'message': self.message,
            'informational': self.informational,
        }


class ValidationError(CheckinError):
    pass


class NoClassScheduled(CheckinError):
    status_code = 409
    informational = True

    def default_message(self):
        return 'No class scheduled right now.'


class AlreadyCheckedIn(CheckinError):
    status_code = 409
    informational = True

    def default_message(self):
        return 'Attendance for this class was already registered today.'


class LocationError(CheckinError):
    """The device could not produce a position fix."""

    def default_message(self):
        return 'Could not get your location.'


class LocationPermissionDenied(LocationError):
    def default_message(self):
        return 'Location permission denied. Please enable location services.'


class LocationTimeout(LocationError):
    def default_message(self):
        return 'Timed out while getting your location. Please try again.'


class ConfigurationMissing(CheckinError):
    status_code = 500

    def default_message(self):
        return 'Site coordinates are not configured. Contact the administrator.'


class OutOfRange(CheckinError):
    status_code = 403

    def __init__(self, distance, message=None):
        self.distance = round(distance)
        super().__init__(message or (
            f'You must be at the academy to check in. You are {self.distance} meters away.'
        ))

    def to_dict(self):
        data = super().to_dict()
        data['distance'] = self.distance
        return data


class InsufficientCredit(CheckinError):
    status_code = 403

    def default_message(self):
        return 'The student has no classes remaining.'


class MembershipExpired(CheckinError):
    status_code = 403

    def default_message(self):
        return 'The student membership has expired.'


class AdminLocked(CheckinError):
    status_code = 403

    def default_message(self):
        return 'Admin access is locked. Enter the admin PIN.'
