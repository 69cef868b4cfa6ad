import os
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()


class User(db.Model):
    """Staff account the gym devices sign in with."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.now)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def __repr__(self):
        return f"<User {self.email}>"


class Student(db.Model):
    __tablename__ = 'students'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    photo_url = db.Column(db.String(500))
    plan = db.Column(db.String(50), nullable=False)
    sede = db.Column(db.String(50), nullable=False)
    classes_remaining = db.Column(db.Integer, nullable=False, default=0)
    membership_expires_at = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.now)

    __table_args__ = (
        db.CheckConstraint('classes_remaining >= 0', name='ck_students_classes_non_negative'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'photo_url': self.photo_url,
            'plan': self.plan,
            'sede': self.sede,
            'classes_remaining': self.classes_remaining,
            'membership_expires_at': self.membership_expires_at.isoformat() if self.membership_expires_at else None,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Student {self.name}>"


class Professor(db.Model):
    __tablename__ = 'professors'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    sede = db.Column(db.String(50), nullable=False)
    pin = db.Column(db.String(4), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.now)

    schedule = db.relationship(
        'ScheduleEntry',
        backref='professor',
        lazy=True,
        cascade='all, delete-orphan',
        order_by='ScheduleEntry.id',
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'sede': self.sede,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Professor {self.name}>"


class ScheduleEntry(db.Model):
    """A weekly class slot, personal when professor_id is set, site-wide otherwise."""
    __tablename__ = 'schedule_entries'

    id = db.Column(db.Integer, primary_key=True)
    day = db.Column(db.String(20), nullable=False)
    time = db.Column(db.String(5), nullable=False)
    class_name = db.Column(db.String(100), nullable=False)
    professor_id = db.Column(db.Integer, db.ForeignKey('professors.id'), nullable=True)
    sede = db.Column(db.String(50), nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'day': self.day,
            'time': self.time,
            'class_name': self.class_name,
            'professor_id': self.professor_id,
            'sede': self.sede,
        }


class AttendanceRecord(db.Model):
    __tablename__ = 'attendance'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id', ondelete='SET NULL'), nullable=True)
    # copied at write time so history survives renames
    student_name = db.Column(db.String(120), nullable=False)
    class_name = db.Column(db.String(100), nullable=False)
    sede = db.Column(db.String(50), nullable=False)
    timestamp = db.Column(db.DateTime, default=datetime.now, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'student_id': self.student_id,
            'student_name': self.student_name,
            'class_name': self.class_name,
            'sede': self.sede,
            'timestamp': self.timestamp.isoformat(),
        }


class ProfessorAttendance(db.Model):
    __tablename__ = 'professor_attendance'

    id = db.Column(db.Integer, primary_key=True)
    professor_id = db.Column(db.Integer, db.ForeignKey('professors.id', ondelete='SET NULL'), nullable=True)
    professor_name = db.Column(db.String(120), nullable=False)
    sede = db.Column(db.String(50), nullable=False)
    class_name = db.Column(db.String(100), nullable=False)
    timestamp = db.Column(db.DateTime, default=datetime.now, nullable=False)
    attendance_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(10), nullable=False)  # ON_TIME / LATE

    __table_args__ = (
        db.UniqueConstraint('professor_id', 'class_name', 'attendance_date',
                            name='uq_professor_class_date'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'professor_id': self.professor_id,
            'professor_name': self.professor_name,
            'sede': self.sede,
            'class_name': self.class_name,
            'timestamp': self.timestamp.isoformat(),
            'status': self.status,
        }


class Payment(db.Model):
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id', ondelete='SET NULL'), nullable=True)
    student_name = db.Column(db.String(120), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    plan = db.Column(db.String(50), nullable=False)
    paid_at = db.Column(db.DateTime, default=datetime.now, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'student_id': self.student_id,
            'student_name': self.student_name,
            'amount': float(self.amount),
            'plan': self.plan,
            'paid_at': self.paid_at.isoformat(),
        }


class Announcement(db.Model):
    __tablename__ = 'announcements'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    text = db.Column(db.Text, nullable=False)
    image_url = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.now, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'text': self.text,
            'image_url': self.image_url,
            'created_at': self.created_at.isoformat(),
        }


def create_demo_data():
    """Seed the staff account used to sign in the gym devices."""
    user = User(
        email=os.environ.get('ADMIN_EMAIL', 'admin@flowfight.pe'),
        name='Flow Fight',
        is_active=True,
    )
    user.set_password(os.environ.get('ADMIN_PASSWORD', 'flowfight'))
    db.session.add(user)
    db.session.commit()
    return user
