"""
Form validation shared by the blueprints.

Every helper either returns the cleaned value or raises ValidationError
with a message fit for flashing to the user.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

CATEGORIES = ['Food', 'Transport', 'Entertainment', 'Shopping', 'Bills', 'Healthcare', 'Other']
BUDGET_PERIODS = ('monthly', 'yearly')
CURRENCIES = ('KES', 'USD', 'EUR', 'GBP', 'INR', 'NGN')

MIN_PASSWORD_LENGTH = 6
MAX_NAME_LENGTH = 100
MAX_AMOUNT = Decimal('9999999999.99')

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
PHONE_RE = re.compile(r'^\+[1-9]\d{6,14}$')
OTP_RE = re.compile(r'^\d{6}$')
MONTH_RE = re.compile(r'^\d{4}-(0[1-9]|1[0-2])$')


class ValidationError(ValueError):
    pass


def required(value, label):
    value = (value or '').strip()
    if not value:
        raise ValidationError(f"{label} is required")
    return value


def parse_amount(value, label='Amount', allow_zero=False):
    raw = required(value, label)
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise ValidationError(f"{label} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{label} must be a number")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{label} must be greater than zero")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{label} is too large")
    return amount.quantize(Decimal('0.01'))


def parse_date(value, label='Date', allow_future=True):
    raw = required(value, label)
    try:
        parsed = datetime.strptime(raw, '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f"{label} must be a valid date (YYYY-MM-DD)")
    if not allow_future and parsed > date.today():
        raise ValidationError(f"{label} cannot be in the future")
    return parsed


def parse_month(value):
    raw = required(value, 'Month')
    if not MONTH_RE.match(raw):
        raise ValidationError("Month must look like YYYY-MM")
    return raw


def parse_choice(value, choices, label):
    raw = required(value, label)
    if raw not in choices:
        raise ValidationError(f"Invalid {label.lower()}")
    return raw


def parse_name(value, label='Name'):
    raw = required(value, label)
    if len(raw) > MAX_NAME_LENGTH:
        raise ValidationError(f"{label} must be at most {MAX_NAME_LENGTH} characters")
    return raw


def validate_email(value):
    email = required(value, 'Email').lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("Please enter a valid email address")
    return email


def validate_password(value):
    if not value:
        raise ValidationError("Password is required")
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return value


def validate_phone(value, optional=False):
    phone = (value or '').strip().replace(' ', '')
    if not phone:
        if optional:
            return None
        raise ValidationError("Please enter a phone number")
    if not phone.startswith('+'):
        raise ValidationError("Phone number must include country code (e.g., +1234567890)")
    if not PHONE_RE.match(phone):
        raise ValidationError("Please enter a valid phone number")
    return phone


def validate_otp(value):
    code = (value or '').strip()
    if not code:
        raise ValidationError("Please enter the OTP")
    if not OTP_RE.match(code):
        raise ValidationError("The OTP is the 6-digit code sent to your phone")
    return code
