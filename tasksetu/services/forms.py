"""
Form field definitions and submission validation.

A form's ``fields`` column holds a list of dicts:

    {"id": "budget", "label": "Budget", "type": "number", "required": true,
     "options": [...],                       # dropdown / multiselect
     "validation": {"min": 0, "max": 10, "min_length": 1, "max_length": 50, "pattern": "^[A-Z]+$"}}
"""

import math
import re
from datetime import date

from email_validator import EmailNotValidError, validate_email

from tasksetu.models.enums import FormFieldType

_PHONE_RE = re.compile(r"^\+?[0-9\s\-()]{7,20}$")
_TEXT_TYPES = (FormFieldType.text, FormFieldType.textarea)

class FormDefinitionError(ValueError):
    pass

def _finite(value) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return num if math.isfinite(num) else None

def _numeric_rules(fid: str, rules: dict) -> dict:
    out = dict(rules)
    for key in ("min", "max"):
        if rules.get(key) is None:
            continue
        num = _finite(rules[key])
        if num is None:
            raise FormDefinitionError(f"field {fid}: {key} must be a number")
        out[key] = int(num) if num.is_integer() else num
    for key in ("min_length", "max_length"):
        if rules.get(key) is None:
            continue
        num = _finite(rules[key])
        if num is None or not num.is_integer() or num < 0:
            raise FormDefinitionError(f"field {fid}: {key} must be a whole number")
        out[key] = int(num)
    return out

def validate_definition(fields: list[dict]) -> list[dict]:
    """Check a field list from the form builder and return it normalized."""
    if not isinstance(fields, list):
        raise FormDefinitionError("fields must be a list")

    seen: set[str] = set()
    out: list[dict] = []
    for i, f in enumerate(fields):
        if not isinstance(f, dict):
            raise FormDefinitionError(f"field {i} must be an object")
        fid = str(f.get("id") or "").strip()
        if not fid:
            raise FormDefinitionError(f"field {i} needs an id")
        if fid in seen:
            raise FormDefinitionError(f"duplicate field id: {fid}")
        seen.add(fid)

        try:
            ftype = FormFieldType(f.get("type"))
        except ValueError:
            raise FormDefinitionError(f"field {fid}: unknown type {f.get('type')!r}")

        options = f.get("options") or []
        if ftype in (FormFieldType.dropdown, FormFieldType.multiselect) and not options:
            raise FormDefinitionError(f"field {fid}: {ftype.value} needs options")

        rules = f.get("validation") or {}
        if not isinstance(rules, dict):
            raise FormDefinitionError(f"field {fid}: validation must be an object")
        rules = _numeric_rules(fid, rules)
        if rules.get("pattern"):
            try:
                re.compile(rules["pattern"])
            except re.error:
                raise FormDefinitionError(f"field {fid}: invalid pattern")

        out.append(
            {
                "id": fid,
                "label": f.get("label") or fid,
                "type": ftype.value,
                "required": bool(f.get("required")),
                "options": [str(o) for o in options],
                "validation": rules,
            }
        )
    return out

def _empty(value) -> bool:
    return value is None or value == "" or value == []

def _check_value(field: dict, value) -> tuple[object, str | None]:
    ftype = FormFieldType(field["type"])
    label = field["label"]
    rules = field.get("validation") or {}

    if ftype == FormFieldType.number:
        num = _finite(value)
        if num is None:
            return None, f"{label} must be a number"
        if rules.get("min") is not None and num < float(rules["min"]):
            return None, f"{label} must be at least {rules['min']}"
        if rules.get("max") is not None and num > float(rules["max"]):
            return None, f"{label} must be at most {rules['max']}"
        return (int(num) if num.is_integer() else num), None

    if ftype == FormFieldType.dropdown:
        if str(value) not in field["options"]:
            return None, f"{label} must be one of the listed options"
        return str(value), None

    if ftype == FormFieldType.multiselect:
        values = value if isinstance(value, list) else [value]
        bad = [v for v in values if str(v) not in field["options"]]
        if bad:
            return None, f"{label} has invalid options: {', '.join(map(str, bad))}"
        return [str(v) for v in values], None

    if ftype == FormFieldType.date:
        try:
            return date.fromisoformat(str(value)).isoformat(), None
        except ValueError:
            return None, f"{label} must be a date (YYYY-MM-DD)"

    text = str(value).strip()

    if ftype == FormFieldType.email:
        try:
            return validate_email(text, check_deliverability=False).normalized, None
        except EmailNotValidError:
            return None, f"{label} must be a valid email address"

    if ftype == FormFieldType.phone:
        if not _PHONE_RE.match(text):
            return None, f"{label} must be a valid phone number"
        return text, None

    if ftype in _TEXT_TYPES:
        if rules.get("min_length") is not None and len(text) < int(rules["min_length"]):
            return None, f"{label} must be at least {rules['min_length']} characters"
        if rules.get("max_length") is not None and len(text) > int(rules["max_length"]):
            return None, f"{label} must be at most {rules['max_length']} characters"
        if rules.get("pattern") and not re.fullmatch(rules["pattern"], text):
            return None, f"{label} has an invalid format"
    return text, None

def validate_submission(fields: list[dict], values: dict) -> tuple[dict, list[dict]]:
    """Returns (clean values, errors); unknown keys are dropped."""
    clean: dict = {}
    errors: list[dict] = []
    for field in fields:
        value = values.get(field["id"])
        if _empty(value):
            if field.get("required"):
                errors.append({"field": field["id"], "message": f"{field['label']} is required"})
            continue
        cleaned, err = _check_value(field, value)
        if err:
            errors.append({"field": field["id"], "message": err})
        else:
            clean[field["id"]] = cleaned
    return clean, errors
