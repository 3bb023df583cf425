import re
from datetime import datetime

import phonenumbers
from bson import ObjectId
from marshmallow import ValidationError


DOMAIN_PATTERNS = (
    re.compile(r"^[A-Z]{2}\d{3}[A-Z]{2}$"),  # AA123BB (Mercosur)
    re.compile(r"^[A-Z]{3}\d{3}$"),          # AAA123
    re.compile(r"^[A-Z]\d{3}[A-Z]{3}$"),     # A123BCD (motorcycles)
)

CUIT_PATTERN = re.compile(r"^\d{2}-\d{8}-\d{1}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MIN_VEHICLE_YEAR = 1900
MAX_KM = 1_000_000
DEFAULT_PHONE_REGION = "AR"


def normalize_domain(value):
    if value is None:
        return ""
    return re.sub(r"[\s-]", "", str(value)).upper()


def is_valid_domain(value):
    domain = normalize_domain(value)
    return any(p.match(domain) for p in DOMAIN_PATTERNS)


def validate_domain(value):
    if not is_valid_domain(value):
        raise ValidationError("Invalid licence plate. Accepted formats: AA123BB, AAA123, A123BCD.")
    return value


def validate_vehicle_year(value):
    if value is None:
        return value
    max_year = datetime.now().year + 1
    if not (MIN_VEHICLE_YEAR <= int(value) <= max_year):
        raise ValidationError(f"Vehicle year must be between {MIN_VEHICLE_YEAR} and {max_year}.")
    return value


def validate_km(value):
    if value is None:
        return value
    if not (0 <= value <= MAX_KM):
        raise ValidationError(f"Kilometres must be between 0 and {MAX_KM:,}.")
    return value


def validate_cuit(value):
    if not value:
        raise ValidationError("CUIT is required.")
    if CUIT_PATTERN.match(value):
        return value
    if re.fullmatch(r"\d{11}", value):
        return value
    raise ValidationError("Invalid CUIT. Expected format XX-XXXXXXXX-X.")


def is_valid_email(value):
    return bool(value) and bool(EMAIL_PATTERN.match(value.strip()))


def validate_email(value):
    if not is_valid_email(value):
        raise ValidationError("Invalid email address.")
    return value


def validate_phone(value, region=DEFAULT_PHONE_REGION):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Phone number must be a string.")
    try:
        number = phonenumbers.parse(value, region)
    except phonenumbers.phonenumberutil.NumberParseException:
        raise ValidationError("Invalid phone number.")
    if not phonenumbers.is_possible_number(number):
        raise ValidationError("Invalid phone number.")
    return value


def validate_objectid(value):
    if not ObjectId.is_valid(str(value)):
        raise ValidationError("Invalid id.")
    return value
