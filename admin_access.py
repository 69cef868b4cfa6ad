# admin_access.py
"""Short-lived admin capability issued in exchange for the shared admin PIN."""
from functools import wraps
import secrets

from flask import current_app, jsonify, request, session as flask_session
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from errors import AdminLocked, ValidationError

ADMIN_SCOPE = 'admin'
TOKEN_SALT = 'admin-capability'


def _serializer(secret_key):
    return URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)


def issue_admin_token(pin, expected_pin, secret_key):
    if not pin:
        raise ValidationError('Enter the admin PIN.')
    if not secrets.compare_digest(str(pin), str(expected_pin)):
        raise AdminLocked('Incorrect PIN.')
    return _serializer(secret_key).dumps({'scope': ADMIN_SCOPE})


def verify_admin_token(token, secret_key, max_age):
    """True when the token was issued by us, is for admin and has not expired."""
    if not token:
        return False
    try:
        data = _serializer(secret_key).loads(token, max_age=max_age)
    except (SignatureExpired, BadSignature):
        return False
    return data.get('scope') == ADMIN_SCOPE


def current_admin_token():
    return request.headers.get('X-Admin-Token') or flask_session.get('admin_token')


def require_admin(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        if not verify_admin_token(
            current_admin_token(),
            current_app.secret_key,
            current_app.config['ADMIN_TOKEN_TTL'],
        ):
            flask_session.pop('admin_token', None)
            return jsonify(AdminLocked().to_dict()), AdminLocked.status_code
        return f(*args, **kwargs)
    return decorated
