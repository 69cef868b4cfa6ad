import os

os.environ['DATABASE_URL'] = 'sqlite://'
os.environ.setdefault('SECRET_KEY_VALUE', 'test123')

from datetime import datetime

import pytest

from app import app as flask_app
from constants import SEDE_COORDINATES
from database import db, User, Student, Professor, ScheduleEntry

# 2026-10-19 is a Monday ("Lunes")
FIXED_NOW = datetime(2026, 10, 19, 18, 5)


class Clock:
    def __init__(self, moment):
        self.moment = moment

    def __call__(self):
        return self.moment


@pytest.fixture
def clock():
    return Clock(FIXED_NOW)


@pytest.fixture
def app(clock):
    flask_app.config.update(
        TESTING=True,
        CLOCK=clock,
        ADMIN_PIN='1234',
        ADMIN_TOKEN_TTL=900,
        SEDE_COORDINATES=SEDE_COORDINATES,
    )
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def staff(app):
    user = User(email='staff@flowfight.pe', name='Front Desk', is_active=True)
    user.set_password('secret')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def logged_in(client, staff):
    response = client.post('/login', json={'email': 'staff@flowfight.pe', 'password': 'secret'})
    assert response.status_code == 200
    return client


@pytest.fixture
def admin_client(logged_in):
    response = logged_in.post('/api/admin/unlock', json={'pin': '1234'})
    assert response.status_code == 200
    return logged_in


@pytest.fixture
def student(app):
    student = Student(
        name='Ana Torres',
        plan='plan_12_mes',
        sede='chimbote',
        classes_remaining=5,
    )
    db.session.add(student)
    db.session.commit()
    return student


@pytest.fixture
def professor(app):
    professor = Professor(name='Carlos Ruiz', sede='chimbote', pin='4321')
    professor.schedule.append(ScheduleEntry(day='Lunes', time='18:00', class_name='JIUJITSU GI'))
    db.session.add(professor)
    db.session.commit()
    return professor


def at_site(sede='chimbote'):
    site = SEDE_COORDINATES[sede]
    return {'latitude': site['lat'], 'longitude': site['lon'], 'accuracy': 12}
