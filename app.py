from flask import Flask, request, jsonify, session as flask_session, send_file
from flask_cors import CORS
from datetime import datetime, timedelta
from database import db, User, Student, Professor, ScheduleEntry, AttendanceRecord, ProfessorAttendance, Payment, Announcement
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import secrets
import io
import os
from urllib.parse import urlparse

from admin_access import issue_admin_token, require_admin
from checkin import (
    ProfessorCheckin,
    location_from_payload,
    kiosk_class_options,
    check_in_student,
    welcome_message,
)
from constants import ADMIN_PIN, PLAN_DETAILS, CLASS_OPTIONS, DAYS_OF_WEEK, SEDES, SEDE_COORDINATES
from csv_export import EXPORTS, to_csv_bytes
from errors import CheckinError, ValidationError
from membership import is_eligible, is_expired, renew_membership, reset_classes, record_payment, students_at_risk
from schedule_match import parse_time, is_valid_day


app = Flask(__name__)
app.secret_key = os.environ.get("SECRET_KEY_VALUE", secrets.token_hex(16))
CORS(app)

# Database configuration
if os.environ.get('DATABASE_URL'):
    db_url = os.environ.get('DATABASE_URL')
    result = urlparse(db_url)

    # SQLAlchemy only accepts the postgresql:// scheme
    if result.scheme == 'postgres':
        db_url = db_url.replace('postgres://', 'postgresql://', 1)

    app.config['SQLALCHEMY_DATABASE_URI'] = db_url
    if db_url.startswith('postgresql'):
        app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
            'pool_size': 10,
            'max_overflow': 20,
            'pool_recycle': 300,
            'pool_pre_ping': True,
            'pool_timeout': 30,
        }
else:
    # Local SQLite
    app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///flowfight.db'

app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

# Gym configuration
app.config['ADMIN_PIN'] = os.environ.get('ADMIN_PIN', ADMIN_PIN)
app.config['ADMIN_TOKEN_TTL'] = int(os.environ.get('ADMIN_TOKEN_TTL', 900))
app.config['PLAN_DETAILS'] = PLAN_DETAILS
app.config['CLASS_OPTIONS'] = CLASS_OPTIONS
app.config['SEDE_COORDINATES'] = SEDE_COORDINATES
app.config['CLOCK'] = datetime.now

app.logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO'))

db.init_app(app)


def now():
    return app.config['CLOCK']()


def get_payload():
    return request.get_json(silent=True) or request.form.to_dict()


def error_response(error):
    return jsonify(error.to_dict()), error.status_code


def backend_failure(message):
    db.session.rollback()
    app.logger.exception(message)
    return jsonify({'success': False, 'message': message}), 500


def parse_int(value, field, minimum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a whole number.')
    if minimum is not None and number < minimum:
        raise ValidationError(f'{field} must be at least {minimum}.')
    return number


def text_field(payload, key):
    value = payload.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f'{key} must be text.')
    return value.strip()


def parse_datetime(value, field):
    if value in (None, ''):
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an ISO date.')


# Authentication middleware
@app.before_request
def require_login():
    allowed_routes = ['login', 'static', 'health']
    if request.endpoint not in allowed_routes and 'user_id' not in flask_session:
        return jsonify({'success': False, 'message': 'Please log in.'}), 401


@app.route('/health')
def health():
    return 'OK', 200


@app.route("/")
def index():
    return jsonify({
        'success': True,
        'user': flask_session.get('name'),
        'professor_id': flask_session.get('professor_id'),
        'admin_unlocked': 'admin_token' in flask_session,
    })


@app.route('/login', methods=['GET', 'POST'])
def login():
    if request.method == 'GET':
        return jsonify({'success': False, 'message': 'Sign in with email and password.'}), 200

    payload = get_payload()
    try:
        email = text_field(payload, 'email').lower()
    except CheckinError as e:
        return error_response(e)
    password = payload.get('password') or ''
    if not isinstance(password, str):
        return error_response(ValidationError('password must be text.'))
    if not email or not password:
        return jsonify({'success': False, 'message': 'Email and password are required.'}), 400

    user = db.session.query(User).filter_by(email=email).first()
    if user and user.check_password(password):
        if not user.is_active:
            return jsonify({'success': False, 'message': 'Your account has been deactivated.'}), 403

        # sessions survive browser restarts, like a restored auth session
        flask_session.permanent = True
        flask_session['user_id'] = user.id
        flask_session['name'] = user.name
        return jsonify({'success': True, 'name': user.name})

    app.logger.warning('Failed login for %s', email)
    return jsonify({'success': False, 'message': 'Invalid credentials'}), 401


@app.route('/logout')
def logout():
    flask_session.clear()
    return jsonify({'success': True, 'message': 'You have been logged out successfully.'})


# Announcements (read by every screen)

@app.route('/api/announcements')
def list_announcements():
    announcements = db.session.query(Announcement).order_by(Announcement.created_at.desc()).all()
    return jsonify({'success': True, 'announcements': [a.to_dict() for a in announcements]})


# Kiosk Routes

@app.route('/api/kiosk')
def kiosk():
    sede = request.args.get('sede', 'todas')
    query = db.session.query(Student)
    if sede != 'todas':
        query = query.filter_by(sede=sede)
    moment = now()

    students = []
    for student in query.order_by(Student.name.asc()).all():
        data = student.to_dict()
        data['eligible'] = is_eligible(student, moment)
        data['expired'] = is_expired(student, moment)
        students.append(data)

    return jsonify({
        'success': True,
        'welcome': welcome_message(moment),
        'students': students,
        'class_options': kiosk_class_options(sede, app.config['CLASS_OPTIONS'], moment),
    })


@app.route('/api/kiosk/classes')
def kiosk_classes():
    sede = request.args.get('sede', '')
    return jsonify({
        'success': True,
        'classes': kiosk_class_options(sede, app.config['CLASS_OPTIONS'], now()),
    })


@app.route('/api/kiosk/checkin', methods=['POST'])
def kiosk_checkin():
    payload = get_payload()
    try:
        student_id = parse_int(payload.get('student_id'), 'Student')
    except CheckinError as e:
        return error_response(e)

    student = db.session.get(Student, student_id)
    if not student:
        return jsonify({'success': False, 'message': 'Student not found'}), 404

    try:
        record = check_in_student(student, payload.get('class_name'), app.config['CLASS_OPTIONS'], now())
    except CheckinError as e:
        db.session.rollback()
        app.logger.info('Kiosk check-in refused for %s: %s', student.name, e.message)
        return error_response(e)
    except SQLAlchemyError:
        return backend_failure('Error confirming the check-in.')

    app.logger.info('Kiosk check-in %s -> %s', student.name, record.class_name)
    return jsonify({
        'success': True,
        'message': f'Check-in of {student.name} confirmed! ({student.classes_remaining} left)',
        'classes_remaining': student.classes_remaining,
        'attendance': record.to_dict(),
    })


# Professor Routes

def current_professor():
    professor_id = flask_session.get('professor_id')
    if not professor_id:
        return None
    return db.session.get(Professor, professor_id)


def professor_machine(professor):
    return ProfessorCheckin(professor, coordinates=app.config['SEDE_COORDINATES'])


@app.route('/api/professor/login', methods=['POST'])
def professor_login():
    pin = str(get_payload().get('pin') or '')
    if len(pin) != 4 or not pin.isdigit():
        return jsonify({'success': False, 'message': 'The PIN must have 4 digits.'}), 400

    professor = db.session.query(Professor).filter_by(pin=pin).first()
    if not professor:
        return jsonify({'success': False, 'message': 'Incorrect PIN.'}), 401

    flask_session['professor_id'] = professor.id
    machine = professor_machine(professor)
    machine.refresh(now())
    return jsonify({'success': True, **machine.to_dict()})


@app.route('/api/professor/logout', methods=['POST'])
def professor_logout():
    flask_session.pop('professor_id', None)
    return jsonify({'success': True})


@app.route('/api/professor/status')
def professor_status():
    professor = current_professor()
    if not professor:
        flask_session.pop('professor_id', None)
        return jsonify({'success': False, 'message': 'Please log in with your PIN.'}), 401

    machine = professor_machine(professor)
    machine.refresh(now())
    return jsonify({'success': True, **machine.to_dict()})


@app.route('/api/professor/checkin', methods=['POST'])
def professor_checkin():
    professor = current_professor()
    if not professor:
        return jsonify({'success': False, 'message': 'Please log in with your PIN.'}), 401

    machine = professor_machine(professor)
    try:
        record = machine.confirm(location_from_payload(get_payload()), now())
    except CheckinError as e:
        app.logger.warning('Professor check-in refused for %s: %s', professor.name, e.message)
        body = e.to_dict()
        body['state'] = machine.state
        body['retry_after'] = machine.retry_after
        return jsonify(body), e.status_code
    except SQLAlchemyError:
        return backend_failure('Error registering the attendance.')

    app.logger.info('Professor %s checked in for %s (%s)', professor.name, record.class_name, record.status)
    return jsonify({'success': True, **machine.to_dict()})


# Admin Routes

@app.route('/api/admin/unlock', methods=['POST'])
def admin_unlock():
    try:
        token = issue_admin_token(
            get_payload().get('pin'),
            app.config['ADMIN_PIN'],
            app.secret_key,
        )
    except CheckinError as e:
        app.logger.warning('Admin unlock refused')
        return error_response(e)

    flask_session['admin_token'] = token
    return jsonify({'success': True, 'token': token, 'expires_in': app.config['ADMIN_TOKEN_TTL']})


@app.route('/api/admin/lock', methods=['POST'])
def admin_lock():
    flask_session.pop('admin_token', None)
    return jsonify({'success': True})


@app.route('/api/admin/dashboard')
@require_admin
def admin_dashboard():
    moment = now()
    start_of_today = datetime.combine(moment.date(), datetime.min.time())
    start_of_tomorrow = start_of_today + timedelta(days=1)

    students = db.session.query(Student).all()
    checkins_today = db.session.query(AttendanceRecord).filter(
        AttendanceRecord.timestamp >= start_of_today,
        AttendanceRecord.timestamp < start_of_tomorrow
    ).count()

    by_sede = {}
    for student in students:
        label = student.sede.replace('-', ' ').capitalize() if student.sede else 'Sin Sede'
        by_sede[label] = by_sede.get(label, 0) + 1

    active = len([s for s in students if is_eligible(s, moment)])
    return jsonify({
        'success': True,
        'total_students': len(students),
        'active_students': active,
        'expired_students': len(students) - active,
        'checkins_today': checkins_today,
        'students_by_sede': by_sede,
        'students_at_risk': [s.to_dict() for s in students_at_risk(students)],
    })


def student_fields(payload, student=None):
    fields = {}
    for key in ('name', 'photo_url', 'plan', 'sede', 'notes'):
        if key in payload:
            value = payload.get(key)
            if value is not None and not isinstance(value, str):
                raise ValidationError(f'{key} must be text.')
            fields[key] = value.strip() if value is not None else value

    if student is None:
        for key in ('name', 'plan', 'sede'):
            if not fields.get(key):
                raise ValidationError('Fill in all the required fields.')
    if 'plan' in fields and fields['plan'] not in app.config['PLAN_DETAILS']:
        raise ValidationError('Unknown plan.')
    if 'sede' in fields and fields['sede'] not in SEDES:
        raise ValidationError('Unknown sede.')

    if 'classes_remaining' in payload:
        fields['classes_remaining'] = parse_int(payload.get('classes_remaining'), 'Classes remaining', minimum=0)
    elif 'plan' in fields and (student is None or fields['plan'] != student.plan):
        # a new plan brings its own credit grant
        fields['classes_remaining'] = app.config['PLAN_DETAILS'][fields['plan']]['classes']

    if 'membership_expires_at' in payload:
        fields['membership_expires_at'] = parse_datetime(payload.get('membership_expires_at'), 'Expiry')
    return fields


@app.route('/api/admin/students', methods=['GET', 'POST'])
@require_admin
def admin_students():
    if request.method == 'GET':
        students = db.session.query(Student).order_by(Student.name.asc()).all()
        return jsonify({'success': True, 'students': [s.to_dict() for s in students]})

    try:
        fields = student_fields(get_payload())
        if not fields.get('photo_url'):
            fields['photo_url'] = (
                f"https://ui-avatars.com/api/?name={fields['name'].replace(' ', '+')}"
                "&background=1f2937&color=84cc16"
            )
        student = Student(**fields)
        db.session.add(student)
        db.session.commit()
    except CheckinError as e:
        return error_response(e)
    except SQLAlchemyError:
        return backend_failure('Error adding the student.')

    return jsonify({'success': True, 'message': 'Student added', 'student': student.to_dict()}), 201


@app.route('/api/admin/students/<int:student_id>', methods=['PUT', 'DELETE'])
@require_admin
def admin_student(student_id):
    student = db.session.get(Student, student_id)
    if not student:
        return jsonify({'success': False, 'message': 'Student not found'}), 404

    try:
        if request.method == 'DELETE':
            # history keeps the denormalized name but no longer points at a row id
            db.session.query(AttendanceRecord).filter_by(student_id=student.id).update(
                {'student_id': None}, synchronize_session=False)
            db.session.query(Payment).filter_by(student_id=student.id).update(
                {'student_id': None}, synchronize_session=False)
            db.session.delete(student)
            db.session.commit()
            return jsonify({'success': True, 'message': 'Student deleted'})

        for key, value in student_fields(get_payload(), student).items():
            setattr(student, key, value)
        db.session.commit()
    except CheckinError as e:
        return error_response(e)
    except SQLAlchemyError:
        return backend_failure('Error updating the student.')

    return jsonify({'success': True, 'message': 'Student updated', 'student': student.to_dict()})


@app.route('/api/admin/students/<int:student_id>/reset', methods=['POST'])
@require_admin
def admin_reset_student(student_id):
    student = db.session.get(Student, student_id)
    if not student:
        return jsonify({'success': False, 'message': 'Student not found'}), 404

    try:
        reset_classes(student, app.config['PLAN_DETAILS'])
        db.session.commit()
    except CheckinError as e:
        return error_response(e)
    except SQLAlchemyError:
        return backend_failure('Error resetting classes.')

    return jsonify({
        'success': True,
        'message': f'Classes of {student.name} reset to {student.classes_remaining}',
        'student': student.to_dict(),
    })


@app.route('/api/admin/students/<int:student_id>/payments', methods=['POST'])
@require_admin
def admin_student_payment(student_id):
    student = db.session.get(Student, student_id)
    if not student:
        return jsonify({'success': False, 'message': 'Student not found'}), 404

    payload = get_payload()
    try:
        plan = text_field(payload, 'plan') or student.plan
    except CheckinError as e:
        return error_response(e)
    plan_details = app.config['PLAN_DETAILS'].get(plan)
    if not plan_details:
        return error_response(ValidationError('Unknown plan.'))

    moment = now()
    try:
        payment = record_payment(student, payload.get('amount'), plan, moment)
        student.plan = plan
        renew_membership(student, plan_details['classes'], moment)
        db.session.commit()
    except CheckinError as e:
        db.session.rollback()
        return error_response(e)
    except SQLAlchemyError:
        return backend_failure('Error registering the payment.')

    app.logger.info('Payment of %s registered for %s', payment.amount, student.name)
    return jsonify({
        'success': True,
        'message': f'Membership of {student.name} renewed',
        'payment': payment.to_dict(),
        'student': student.to_dict(),
    }), 201


@app.route('/api/admin/payments')
@require_admin
def admin_payments():
    payments = db.session.query(Payment).order_by(Payment.paid_at.desc()).all()
    return jsonify({'success': True, 'payments': [p.to_dict() for p in payments]})


@app.route('/api/admin/professors', methods=['GET', 'POST'])
@require_admin
def admin_professors():
    if request.method == 'GET':
        professors = db.session.query(Professor).order_by(Professor.name.asc()).all()
        return jsonify({'success': True, 'professors': [p.to_dict() for p in professors]})

    payload = get_payload()
    try:
        name = text_field(payload, 'name')
    except CheckinError as e:
        return error_response(e)
    sede = payload.get('sede')
    pin = str(payload.get('pin') or '')

    if not name or not sede or not pin:
        return error_response(ValidationError('Fill in all the required fields.'))
    if sede not in SEDES:
        return error_response(ValidationError('Unknown sede.'))
    if len(pin) != 4 or not pin.isdigit():
        return error_response(ValidationError('The PIN must have 4 digits.'))
    if db.session.query(Professor).filter_by(pin=pin).first():
        return error_response(ValidationError('That PIN is already in use.'))

    professor = Professor(name=name, sede=sede, pin=pin)
    db.session.add(professor)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return error_response(ValidationError('That PIN is already in use.'))
    except SQLAlchemyError:
        return backend_failure('Error adding the professor.')

    return jsonify({'success': True, 'message': 'Professor added', 'professor': professor.to_dict()}), 201


@app.route('/api/admin/professors/<int:professor_id>', methods=['DELETE'])
@require_admin
def admin_delete_professor(professor_id):
    professor = db.session.get(Professor, professor_id)
    if not professor:
        return jsonify({'success': False, 'message': 'Professor not found'}), 404

    try:
        # schedule entries go with the professor, attendance history stays unlinked
        db.session.query(ProfessorAttendance).filter_by(professor_id=professor.id).update(
            {'professor_id': None}, synchronize_session=False)
        db.session.delete(professor)
        db.session.commit()
    except SQLAlchemyError:
        return backend_failure('Error deleting the professor.')
    return jsonify({'success': True, 'message': 'Professor deleted'})


def schedule_fields(payload):
    day = text_field(payload, 'day')
    time_value = text_field(payload, 'time')
    class_name = text_field(payload, 'class_name')

    if not day or not time_value or not class_name:
        raise ValidationError('Fill in day, time and class.')
    if not is_valid_day(day):
        raise ValidationError(f'Day must be one of {", ".join(DAYS_OF_WEEK)}.')
    try:
        minutes = parse_time(time_value)
    except ValueError:
        raise ValidationError('Time must look like HH:MM.')
    if class_name not in app.config['CLASS_OPTIONS']:
        raise ValidationError(f'Unknown class "{class_name}".')

    return {'day': day, 'time': f'{minutes // 60:02d}:{minutes % 60:02d}', 'class_name': class_name}


@app.route('/api/admin/professors/<int:professor_id>/schedule', methods=['GET', 'POST'])
@require_admin
def admin_professor_schedule(professor_id):
    professor = db.session.get(Professor, professor_id)
    if not professor:
        return jsonify({'success': False, 'message': 'Professor not found'}), 404

    if request.method == 'GET':
        return jsonify({'success': True, 'schedule': [e.to_dict() for e in professor.schedule]})

    try:
        entry = ScheduleEntry(professor_id=professor.id, **schedule_fields(get_payload()))
        db.session.add(entry)
        db.session.commit()
    except CheckinError as e:
        return error_response(e)
    except SQLAlchemyError:
        return backend_failure('Error adding the schedule.')

    return jsonify({'success': True, 'entry': entry.to_dict()}), 201


@app.route('/api/admin/professors/<int:professor_id>/schedule/<int:entry_id>', methods=['DELETE'])
@require_admin
def admin_delete_professor_schedule(professor_id, entry_id):
    entry = db.session.query(ScheduleEntry).filter_by(id=entry_id, professor_id=professor_id).first()
    if not entry:
        return jsonify({'success': False, 'message': 'Schedule entry not found'}), 404

    try:
        db.session.delete(entry)
        db.session.commit()
    except SQLAlchemyError:
        return backend_failure('Error deleting the schedule.')
    return jsonify({'success': True})


@app.route('/api/admin/schedule', methods=['GET', 'POST'])
@require_admin
def admin_site_schedule():
    if request.method == 'GET':
        query = db.session.query(ScheduleEntry).filter(ScheduleEntry.professor_id.is_(None))
        sede = request.args.get('sede')
        if sede:
            query = query.filter_by(sede=sede)
        entries = query.order_by(ScheduleEntry.id).all()
        return jsonify({'success': True, 'schedule': [e.to_dict() for e in entries]})

    payload = get_payload()
    try:
        fields = schedule_fields(payload)
        if payload.get('sede') not in SEDES:
            raise ValidationError('Unknown sede.')
        entry = ScheduleEntry(sede=payload.get('sede'), **fields)
        db.session.add(entry)
        db.session.commit()
    except CheckinError as e:
        return error_response(e)
    except SQLAlchemyError:
        return backend_failure('Error adding the schedule.')

    return jsonify({'success': True, 'entry': entry.to_dict()}), 201


@app.route('/api/admin/schedule/<int:entry_id>', methods=['DELETE'])
@require_admin
def admin_delete_site_schedule(entry_id):
    entry = db.session.query(ScheduleEntry).filter_by(id=entry_id, professor_id=None).first()
    if not entry:
        return jsonify({'success': False, 'message': 'Schedule entry not found'}), 404

    try:
        db.session.delete(entry)
        db.session.commit()
    except SQLAlchemyError:
        return backend_failure('Error deleting the schedule.')
    return jsonify({'success': True})


@app.route('/api/admin/attendance')
@require_admin
def admin_attendance():
    query = db.session.query(AttendanceRecord)
    sede = request.args.get('sede', 'todas')
    class_name = request.args.get('class_name', 'todas')
    if sede != 'todas':
        query = query.filter_by(sede=sede)
    if class_name != 'todas':
        query = query.filter_by(class_name=class_name)

    records = query.order_by(AttendanceRecord.timestamp.desc()).all()
    return jsonify({'success': True, 'attendance': [r.to_dict() for r in records]})


@app.route('/api/admin/attendance/<int:record_id>', methods=['DELETE'])
@require_admin
def admin_delete_attendance(record_id):
    record = db.session.get(AttendanceRecord, record_id)
    if not record:
        return jsonify({'success': False, 'message': 'Attendance record not found'}), 404

    try:
        db.session.delete(record)
        db.session.commit()
    except SQLAlchemyError:
        return backend_failure('Error deleting the attendance record.')
    app.logger.info('Attendance record %s deleted by admin', record_id)
    return jsonify({'success': True})


@app.route('/api/admin/professor-attendance')
@require_admin
def admin_professor_attendance():
    records = db.session.query(ProfessorAttendance).order_by(ProfessorAttendance.timestamp.desc()).all()
    return jsonify({'success': True, 'attendance': [r.to_dict() for r in records]})


@app.route('/api/admin/announcements', methods=['POST'])
@require_admin
def admin_create_announcement():
    payload = get_payload()
    try:
        title = text_field(payload, 'title')
        text = text_field(payload, 'text')
    except CheckinError as e:
        return error_response(e)
    if not title or not text:
        return error_response(ValidationError('Title and text are required.'))

    announcement = Announcement(title=title, text=text, image_url=payload.get('image_url') or None)
    db.session.add(announcement)
    try:
        db.session.commit()
    except SQLAlchemyError:
        return backend_failure('Error publishing the announcement.')
    return jsonify({'success': True, 'announcement': announcement.to_dict()}), 201


@app.route('/api/admin/announcements/<int:announcement_id>', methods=['DELETE'])
@require_admin
def admin_delete_announcement(announcement_id):
    announcement = db.session.get(Announcement, announcement_id)
    if not announcement:
        return jsonify({'success': False, 'message': 'Announcement not found'}), 404

    try:
        db.session.delete(announcement)
        db.session.commit()
    except SQLAlchemyError:
        return backend_failure('Error deleting the announcement.')
    return jsonify({'success': True})


EXPORT_QUERIES = {
    'students': lambda: db.session.query(Student).order_by(Student.name.asc()),
    'attendance': lambda: db.session.query(AttendanceRecord).order_by(AttendanceRecord.timestamp.desc()),
    'professor_attendance': lambda: db.session.query(ProfessorAttendance).order_by(ProfessorAttendance.timestamp.desc()),
    'payments': lambda: db.session.query(Payment).order_by(Payment.paid_at.desc()),
}


@app.route('/api/admin/export/<kind>')
@require_admin
def admin_export(kind):
    export = EXPORTS.get(kind)
    if not export:
        return jsonify({'success': False, 'message': 'Unknown export'}), 404

    try:
        records = EXPORT_QUERIES[kind]().all()
    except SQLAlchemyError:
        return backend_failure('Error exporting the data.')

    if not records:
        return jsonify({'success': False, 'message': f"No data to export in {export['filename']}"}), 404

    csv_bytes = to_csv_bytes(records, export['fields'], export['headers'])
    return send_file(
        io.BytesIO(csv_bytes),
        as_attachment=True,
        download_name=export['filename'],
        mimetype='text/csv; charset=utf-8'
    )


def initialize_database():
    """Initialize the database tables and data"""
    with app.app_context():
        try:
            db.create_all()
            print("✅ Database tables created/checked")

            from database import create_demo_data
            if db.session.query(User).count() == 0:
                print("📊 Creating staff account...")
                create_demo_data()
                print("✅ Staff account created")
            else:
                print("ℹ️ Database already has data")

        except SQLAlchemyError:
            app.logger.exception("Error initializing database")
            raise


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8080))
    print("🚀 Initializing Flow Fight...")
    print(f"📊 Database URI: {app.config['SQLALCHEMY_DATABASE_URI'][:30]}...")

    initialize_database()

    print(f"✅ Starting server on port {port}")
    app.run(host='0.0.0.0', port=port, debug=False)
