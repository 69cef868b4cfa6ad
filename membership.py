# membership.py
"""Class-credit ledger rules applied to student records.

None of these functions commit; the caller decides what is written together.
"""
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation

from constants import MEMBERSHIP_DAYS, AT_RISK_MAX_CLASSES
from database import db, Student, Payment
from errors import InsufficientCredit, MembershipExpired, ValidationError


def is_expired(student, now=None):
    now = now or datetime.now()
    return student.membership_expires_at is not None and student.membership_expires_at <= now


def is_eligible(student, now=None):
    return student.classes_remaining > 0 and not is_expired(student, now)


def decrement_on_checkin(student, now=None):
    """Consume one credit. Returns the new credit count."""
    now = now or datetime.now()
    if student.classes_remaining <= 0:
        raise InsufficientCredit()
    if is_expired(student, now):
        raise MembershipExpired()

    # conditional update so two kiosks can never drive the count below zero
    updated = db.session.query(Student).filter(
        Student.id == student.id,
        Student.classes_remaining > 0,
    ).update(
        {Student.classes_remaining: Student.classes_remaining - 1},
        synchronize_session=False,
    )
    if not updated:
        raise InsufficientCredit()

    db.session.refresh(student)
    return student.classes_remaining


def renew_membership(student, plan_credit_grant, now=None):
    now = now or datetime.now()
    student.classes_remaining = int(plan_credit_grant)
    student.membership_expires_at = now + timedelta(days=MEMBERSHIP_DAYS)
    return student


def reset_classes(student, plan_details):
    """Give the student the credit grant of their current plan again."""
    plan = plan_details.get(student.plan)
    if not plan:
        raise ValidationError("The student's plan is not valid.")
    student.classes_remaining = plan['classes']
    return student


def record_payment(student, amount, plan, now=None):
    try:
        amount = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationError('Invalid payment amount.')
    if not amount.is_finite() or amount <= 0:
        raise ValidationError('Payment amount must be positive.')

    payment = Payment(
        student_id=student.id,
        student_name=student.name,
        amount=amount,
        plan=plan,
        paid_at=now or datetime.now(),
    )
    db.session.add(payment)
    return payment


def students_at_risk(students, limit=AT_RISK_MAX_CLASSES):
    return sorted(
        (s for s in students if 0 < s.classes_remaining <= limit),
        key=lambda s: s.classes_remaining,
    )
