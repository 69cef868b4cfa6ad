from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import FIXED_NOW
from constants import PLAN_DETAILS
from database import db, Student, Payment
from errors import InsufficientCredit, MembershipExpired, ValidationError
from membership import (
    is_eligible,
    decrement_on_checkin,
    renew_membership,
    reset_classes,
    record_payment,
    students_at_risk,
)


def test_last_credit_then_insufficient(student):
    student.classes_remaining = 1
    db.session.commit()

    assert decrement_on_checkin(student, FIXED_NOW) == 0
    db.session.commit()
    assert not is_eligible(student, FIXED_NOW)

    with pytest.raises(InsufficientCredit):
        decrement_on_checkin(student, FIXED_NOW)
    assert db.session.get(Student, student.id).classes_remaining == 0


def test_expired_membership_is_refused(student):
    student.membership_expires_at = FIXED_NOW - timedelta(minutes=1)
    db.session.commit()

    assert not is_eligible(student, FIXED_NOW)
    with pytest.raises(MembershipExpired):
        decrement_on_checkin(student, FIXED_NOW)
    assert student.classes_remaining == 5


def test_future_expiry_is_eligible(student):
    student.membership_expires_at = FIXED_NOW + timedelta(days=1)
    assert is_eligible(student, FIXED_NOW)


def test_renew_overwrites_credits_and_extends_expiry(student):
    student.classes_remaining = 3
    renew_membership(student, 12, FIXED_NOW)
    assert student.classes_remaining == 12
    assert student.membership_expires_at == FIXED_NOW + timedelta(days=30)


def test_reset_uses_plan_grant(student):
    student.classes_remaining = 0
    reset_classes(student, PLAN_DETAILS)
    assert student.classes_remaining == 12
    assert student.membership_expires_at is None

    student.plan = 'plan_unknown'
    with pytest.raises(ValidationError):
        reset_classes(student, PLAN_DETAILS)


def test_payment_keeps_the_student_name(student):
    payment = record_payment(student, '160', 'plan_12_mes', FIXED_NOW)
    db.session.commit()

    student.name = 'Ana María Torres'
    db.session.commit()

    stored = db.session.get(Payment, payment.id)
    assert stored.student_name == 'Ana Torres'
    assert stored.amount == Decimal('160')
    assert stored.paid_at == FIXED_NOW


@pytest.mark.parametrize('amount', [None, 'abc', '0', '-5', 'nan'])
def test_payment_amount_must_be_positive(student, amount):
    with pytest.raises(ValidationError):
        record_payment(student, amount, 'plan_12_mes', FIXED_NOW)


def test_students_at_risk():
    students = [
        Student(name='a', plan='p', sede='s', classes_remaining=0),
        Student(name='b', plan='p', sede='s', classes_remaining=3),
        Student(name='c', plan='p', sede='s', classes_remaining=1),
        Student(name='d', plan='p', sede='s', classes_remaining=4),
    ]
    assert [s.name for s in students_at_risk(students)] == ['c', 'b']
