from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from .models import Campaign, Donation, Transaction
from .time_utils import parse_iso_date, parse_iso_datetime


# Field kinds understood by RequestSchema
STRING = "string"
TEXT = "text"
INTEGER = "integer"
BOOLEAN = "boolean"
DATE = "date"
DATETIME = "datetime"
OBJECT = "object"
LIST = "list"

_MISSING = object()

CURRENCY_PATTERN = re.compile(r"^[A-Za-z]{3}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """422-level input problem. Carries a field -> [messages] map."""

    def __init__(self, errors: dict[str, list[str]], message: str | None = None):
        self.errors = errors
        self.message = message or _summarize(errors)
        super().__init__(self.message)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls({field: [message]})


def _summarize(errors: dict[str, list[str]]) -> str:
    messages = [m for msgs in errors.values() for m in msgs]
    if not messages:
        return "The given data was invalid."
    if len(messages) == 1:
        return messages[0]
    extra = len(messages) - 1
    return f"{messages[0]} (and {extra} more error{'s' if extra > 1 else ''})"


@dataclass(frozen=True)
class Field:
    """
    One declared input field.

    required: must be present on create (partial=False) and must not be null/blank
    nullable: explicit null is accepted and stored as None
    default: applied on create when the key is absent
    """
    name: str
    kind: str
    required: bool = False
    nullable: bool = False
    max_length: int | None = None
    min_value: int | None = None
    choices: tuple | None = None
    pattern: re.Pattern | None = None
    strip: bool = True
    default: Any = _MISSING


@dataclass(frozen=True)
class RequestSchema:
    """
    Typed request contract for a single operation.

    Unknown keys are dropped, never echoed back into the model: the
    cleaned dict only ever contains declared fields.
    """
    fields: tuple[Field, ...]

    def validate(self, payload: Any, *, partial: bool = False) -> dict:
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValidationError.for_field("payload", "Invalid JSON payload.")

        errors: dict[str, list[str]] = {}
        cleaned: dict = {}

        for field in self.fields:
            if field.name not in payload:
                if partial:
                    continue
                if field.required:
                    errors.setdefault(field.name, []).append(f"The {field.name} field is required.")
                elif field.default is not _MISSING:
                    cleaned[field.name] = field.default
                continue

            raw = payload[field.name]

            if raw is None:
                if field.nullable:
                    cleaned[field.name] = None
                elif field.required:
                    errors.setdefault(field.name, []).append(f"The {field.name} field is required.")
                else:
                    errors.setdefault(field.name, []).append(f"The {field.name} field cannot be null.")
                continue

            try:
                value = _coerce_value(field, raw)
                _check_constraints(field, value)
            except _FieldError as e:
                errors.setdefault(field.name, []).append(str(e))
                continue

            cleaned[field.name] = value

        if errors:
            raise ValidationError(errors)
        return cleaned


class _FieldError(ValueError):
    pass


def _coerce_value(field: Field, value: Any):
    name = field.name

    # Integers - strict validation to reject floats, booleans and scientific notation
    if field.kind == INTEGER:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or "e" in stripped.lower() or "." in stripped:
                raise _FieldError(f"The {name} field must be an integer.")
            try:
                return int(stripped)
            except ValueError:
                raise _FieldError(f"The {name} field must be an integer.")
        raise _FieldError(f"The {name} field must be an integer.")

    if field.kind == BOOLEAN:
        if isinstance(value, bool):
            return value
        if value in (0, 1, "0", "1"):
            return bool(int(value))
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise _FieldError(f"The {name} field must be true or false.")

    if field.kind == DATE:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                parsed = parse_iso_date(value)
            except ValueError:
                parsed = None
            if parsed is not None:
                return parsed
        raise _FieldError(f"The {name} field must be a valid date.")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if field.kind == DATETIME:
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                parsed = parse_iso_datetime(value)
            except ValueError:
                parsed = None
            if parsed is not None:
                return parsed
        raise _FieldError(f"The {name} field must be a valid ISO-8601 datetime.")

    if field.kind == OBJECT:
        if isinstance(value, dict):
            return value
        raise _FieldError(f"The {name} field must be an object.")

    if field.kind == LIST:
        if isinstance(value, list):
            return value
        raise _FieldError(f"The {name} field must be an array.")

    # Strings / Text
    if field.kind in (STRING, TEXT):
        if not isinstance(value, str):
            raise _FieldError(f"The {name} field must be a string.")
        if field.strip:
            value = value.strip()
        if field.required and value == "":
            raise _FieldError(f"The {name} field is required.")
        return value

    return value


def _check_constraints(field: Field, value: Any) -> None:
    name = field.name

    if field.max_length is not None and isinstance(value, str) and len(value) > field.max_length:
        raise _FieldError(f"The {name} field must not be greater than {field.max_length} characters.")

    if field.pattern is not None and isinstance(value, str) and not field.pattern.match(value):
        raise _FieldError(f"The {name} field format is invalid.")

    if field.min_value is not None and isinstance(value, int) and value < field.min_value:
        raise _FieldError(f"The {name} field must be at least {field.min_value}.")

    if field.choices is not None and value not in field.choices:
        raise _FieldError(f"The selected {name} is invalid.")


def check_date_order(start_date: date | None, end_date: date | None) -> None:
    """end_date must be on or after start_date (both already coerced)."""
    if start_date is None or end_date is None:
        return
    if end_date < start_date:
        raise ValidationError.for_field(
            "end_date",
            "The end_date field must be a date after or equal to start_date.",
        )


def parse_status_filter(value: str | None, labels: dict[int, str]) -> int | None:
    """
    Resolve a ?status= query value given as a code ("1") or a label ("pending").

    Blank means no filter; anything else that is not a known status is a 422.
    """
    if value is None or not value.strip():
        return None
    s = value.strip().lower()
    if s.isdigit() and int(s) in labels:
        return int(s)
    for code, label in labels.items():
        if label == s:
            return code
    raise ValidationError.for_field("status", "The selected status is invalid.")


# =============================================================================
# OPERATION SCHEMAS
# =============================================================================

CAMPAIGN_SCHEMA = RequestSchema(fields=(
    Field("title", STRING, required=True, max_length=255),
    Field("description", TEXT, required=True),
    Field("goal_amount", INTEGER, required=True, min_value=1),
    Field("current_amount", INTEGER, min_value=0),
    Field("start_date", DATE, required=True),
    Field("end_date", DATE, required=True),
    Field("status", INTEGER, choices=tuple(Campaign.STATUS_LABELS)),
    Field("creator_id", INTEGER),
    Field("approved_at", DATETIME, nullable=True),
    Field("approved_by", INTEGER, nullable=True),
    Field("rejected_by", INTEGER, nullable=True),
    Field("rejected_at", DATETIME, nullable=True),
    Field("rejected_reason", TEXT, nullable=True),
))

# Fields only privileged actors may write through create/update.
CAMPAIGN_PRIVILEGED_FIELDS = frozenset({
    "current_amount",
    "creator_id",
    "approved_at",
    "approved_by",
    "rejected_by",
    "rejected_at",
    "rejected_reason",
})

CAMPAIGN_REJECT_SCHEMA = RequestSchema(fields=(
    Field("reason", STRING, required=True, max_length=1000),
))

DONATION_CREATE_SCHEMA = RequestSchema(fields=(
    Field("amount", INTEGER, required=True, min_value=1),
    Field("currency", STRING, pattern=CURRENCY_PATTERN, default="USD"),
    Field("message", TEXT, nullable=True, max_length=1000),
    Field("visibility", INTEGER, choices=tuple(Donation.VISIBILITY_LABELS), default=Donation.VISIBILITY_PUBLIC),
    Field("anonymous", BOOLEAN, default=False),
))

DONATION_ADMIN_CREATE_SCHEMA = RequestSchema(fields=DONATION_CREATE_SCHEMA.fields + (
    Field("campaign_id", INTEGER, required=True),
    Field("donor_id", INTEGER),
))

DONATION_UPDATE_SCHEMA = RequestSchema(fields=(
    Field("anonymous", BOOLEAN),
    Field("message", TEXT, nullable=True, max_length=1000),
    Field("visibility", INTEGER, choices=tuple(Donation.VISIBILITY_LABELS)),
    Field("status", INTEGER, choices=tuple(Donation.STATUS_LABELS)),
))

TRANSACTION_CREATE_SCHEMA = RequestSchema(fields=(
    Field("payment_gateway", STRING, required=True, max_length=64),
    Field("transaction_reference", STRING, max_length=64),
    Field("gateway_transaction_id", STRING, nullable=True, max_length=255),
    Field("amount", INTEGER, min_value=1),
    Field("currency", STRING, pattern=CURRENCY_PATTERN),
    Field("fee_amount", INTEGER, min_value=0, default=0),
    Field("status", INTEGER, choices=tuple(Transaction.STATUS_LABELS), default=Transaction.STATUS_PENDING),
    Field("status_message", TEXT, nullable=True),
    Field("processed_at", DATETIME, nullable=True),
    Field("request_payload", OBJECT, nullable=True),
    Field("response_payload", OBJECT, nullable=True),
))

TRANSACTION_UPDATE_SCHEMA = RequestSchema(fields=(
    Field("status", INTEGER, required=True, choices=tuple(Transaction.STATUS_LABELS)),
    Field("status_message", TEXT, nullable=True),
    Field("gateway_transaction_id", STRING, nullable=True, max_length=255),
    Field("fee_amount", INTEGER, min_value=0),
    Field("processed_at", DATETIME, nullable=True),
    Field("response_payload", OBJECT, nullable=True),
))

USER_SCHEMA = RequestSchema(fields=(
    Field("name", STRING, required=True, max_length=255),
    Field("email", STRING, required=True, max_length=255, pattern=EMAIL_PATTERN),
    Field("password", STRING, required=True, max_length=255, strip=False),
    Field("is_admin", BOOLEAN, default=False),
    Field("is_active", BOOLEAN, default=True),
))

PERMISSIONS_SCHEMA = RequestSchema(fields=(
    Field("permissions", LIST, required=True),
))

LOGIN_SCHEMA = RequestSchema(fields=(
    Field("email", STRING, required=True),
    Field("password", STRING, required=True, strip=False),
))

MEDIA_SCHEMA = RequestSchema(fields=(
    Field("file_name", STRING, required=True, max_length=255),
    Field("name", STRING, max_length=255),
    Field("mime_type", STRING, required=True, max_length=127),
    Field("size", INTEGER, required=True, min_value=0),
    Field("url", STRING, required=True, max_length=2048),
))
