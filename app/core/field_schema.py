from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Iterable

from app.core.errors import FieldValidationError


class _Invalid:
    """Marker a sanitizer returns when it cannot produce a usable value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "INVALID"

    def __bool__(self) -> bool:
        return False


INVALID = _Invalid()

Sanitizer = Callable[[Any], Any]
Validator = Callable[[Any], "FieldValidationError | None"]


@dataclass(frozen=True)
class FieldSchemaEntry:
    name: str
    sanitize: Sanitizer
    validate: Validator | None = None
    required: bool = False
    readonly: bool = False
    field_type: str = "text"
    rules: dict | None = None


class ValidationErrorCollection:
    """
    Ordered code -> messages mapping, with optional data per code.
    Entries accumulate in the order fields were processed, and each entry
    keeps its own data so two fields sharing a code stay distinguishable.
    """

    def __init__(self):
        self.errors: dict[str, list[str]] = {}
        self.error_data: dict[str, Any] = {}
        self._entries: list[tuple[str, str, Any]] = []

    def add(self, code: str, message: str, data: Any = None) -> None:
        self.errors.setdefault(code, []).append(message)
        if data is not None:
            # latest data per code, as get_error_data reports it
            self.error_data[code] = data
        self._entries.append((code, message, data))

    def merge(self, error: FieldValidationError) -> None:
        self.add(error.code, error.message, error.data)

    @property
    def codes(self) -> list[str]:
        return list(self.errors)

    def get_error_data(self, code: str) -> Any:
        return self.error_data.get(code)

    def as_list(self) -> list[dict]:
        out: list[dict] = []
        for code, message, data in self._entries:
            field = data.get("field") if isinstance(data, dict) else None
            out.append({"field": field, "code": code, "message": message, "data": data})
        return out

    def __bool__(self) -> bool:
        return bool(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ValidationErrorCollection):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"ValidationErrorCollection({self.errors!r})"


def apply_field_schema(
    data: dict,
    schema: dict[str, FieldSchemaEntry],
    *,
    strict: bool,
) -> ValidationErrorCollection:
    """
    Sanitize (and when strict, validate) every payload key the schema knows,
    in place, in schema order. Keys unknown to the schema are left as-is, null
    values and readonly fields are skipped. All fields are attempted; errors
    accumulate.
    """
    errors = ValidationErrorCollection()

    for key, entry in schema.items():
        if key not in data or entry.readonly:
            continue
        raw = data[key]
        if raw is None:
            continue

        value = entry.sanitize(raw)
        if value is INVALID:
            errors.add("rest_invalid_param", f"Invalid parameter: {key}", {"field": key})
            continue

        if strict and entry.validate is not None:
            failure = entry.validate(value)
            if failure is not None:
                errors.merge(failure)

        data[key] = value

    return errors


def missing_required(data: dict, schema: dict[str, FieldSchemaEntry]) -> list[str]:
    return [name for name, entry in schema.items() if entry.required and data.get(name) is None]


# ---------- field kinds ----------
#
# rules, per type:
#   text:   {"max_length": 200, "trim": true}
#   number: {"min": 0, "max": 10, "integer": true}
#   select: {"choices": ["draft", "published"]}
#   date:   {}


def _sanitize_text(rules: dict) -> Sanitizer:
    def sanitize(value):
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            return INVALID
        s = str(value)
        if rules.get("trim", True):
            s = s.strip()
        return s

    return sanitize


def _sanitize_number(rules: dict) -> Sanitizer:
    def sanitize(value):
        if isinstance(value, bool):
            return INVALID
        try:
            x = float(str(value).strip())
        except ValueError:
            return INVALID
        if not math.isfinite(x):
            return INVALID
        if rules.get("integer") is True and x.is_integer():
            return int(x)
        return x

    return sanitize


def _sanitize_select(rules: dict) -> Sanitizer:
    def sanitize(value):
        if not isinstance(value, str):
            return INVALID
        return value.strip()

    return sanitize


def _sanitize_date(rules: dict) -> Sanitizer:
    def sanitize(value):
        try:
            return date.fromisoformat(str(value).strip()).isoformat()
        except ValueError:
            return INVALID

    return sanitize


def _validate_text(key: str, required: bool, rules: dict) -> Validator:
    max_len = rules.get("max_length")

    def validate(value):
        if required and value == "":
            return FieldValidationError(f"empty_{key}", "Required", {"field": key})
        if isinstance(max_len, int) and len(value) > max_len:
            return FieldValidationError(
                f"{key}_too_long", f"Must be <= {max_len} chars", {"field": key, "max_length": max_len}
            )
        return None

    return validate


def _validate_number(key: str, required: bool, rules: dict) -> Validator:
    mn = rules.get("min")
    mx = rules.get("max")

    def validate(value):
        if rules.get("integer") is True and not float(value).is_integer():
            return FieldValidationError(f"{key}_not_integer", "Must be an integer", {"field": key})
        if mn is not None and value < mn:
            return FieldValidationError(f"{key}_too_small", f"Must be >= {mn}", {"field": key, "min": mn})
        if mx is not None and value > mx:
            return FieldValidationError(f"{key}_too_large", f"Must be <= {mx}", {"field": key, "max": mx})
        return None

    return validate


def _validate_select(key: str, required: bool, rules: dict) -> Validator:
    choices = rules.get("choices")

    def validate(value):
        if isinstance(choices, list) and choices and value not in choices:
            return FieldValidationError(
                f"invalid_{key}", "Must be one of allowed choices", {"field": key, "choices": choices}
            )
        return None

    return validate


_FIELD_KINDS: dict[str, tuple[Callable[[dict], Sanitizer], Callable[[str, bool, dict], Validator] | None]] = {
    "text": (_sanitize_text, _validate_text),
    "number": (_sanitize_number, _validate_number),
    "select": (_sanitize_select, _validate_select),
    "date": (_sanitize_date, None),
}


def field(
    key: str,
    field_type: str = "text",
    *,
    required: bool = False,
    readonly: bool = False,
    rules: dict | None = None,
    sanitize: Sanitizer | None = None,
    validate: Validator | None = None,
) -> FieldSchemaEntry:
    """
    Build a schema entry from a field kind. Explicit sanitize/validate
    callables override the kind's defaults.
    """
    if field_type not in _FIELD_KINDS:
        raise ValueError(f"Unknown field type: {field_type}")
    rules = rules or {}
    make_sanitizer, make_validator = _FIELD_KINDS[field_type]
    return FieldSchemaEntry(
        name=key,
        sanitize=sanitize or make_sanitizer(rules),
        validate=validate or (make_validator(key, required, rules) if make_validator else None),
        required=required,
        readonly=readonly,
        field_type=field_type,
        rules=rules,
    )


def schema_map(entries: Iterable[FieldSchemaEntry]) -> dict[str, FieldSchemaEntry]:
    return {e.name: e for e in entries}
