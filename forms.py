"""Form plumbing for the JSON API.

Forms are ordinary Flask-WTF forms; request bodies are JSON objects, so they
are flattened into a ``MultiDict`` of strings before binding. Only fields
declared with ``accepts_list`` take a JSON array; every other field takes a
single string, number or boolean.
"""
from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import ImmutableMultiDict
from wtforms import Field

from errors import ValidationError
from models import MAX_ID

SCALARS = (str, int, float, bool)


def strip(value):
    return value.strip() if isinstance(value, str) else value


def _as_text(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _invalid(key, message):
    return ValidationError(message, details={key: [message]})


def json_formdata(list_fields=()):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return ImmutableMultiDict()
    items = {}
    for key, value in payload.items():
        if value is None:
            continue
        if isinstance(value, list) and key in list_fields:
            if not all(isinstance(v, SCALARS) for v in value if v is not None):
                raise _invalid(key, f"Field '{key}' must be a list of single values")
            items[key] = [_as_text(v) for v in value if v is not None]
        elif isinstance(value, SCALARS):
            items[key] = _as_text(value)
        else:
            raise _invalid(key, f"Field '{key}' must be a single value")
    return ImmutableMultiDict(items)


class ApiForm(FlaskForm):
    class Meta:
        csrf = False

    def __init__(self, *args, **kwargs):
        if "formdata" not in kwargs:
            kwargs["formdata"] = json_formdata(self.list_fields())
        super().__init__(*args, **kwargs)

    @classmethod
    def list_fields(cls):
        names = set()
        for name in dir(cls):
            field_class = getattr(getattr(cls, name, None), "field_class", None)
            if getattr(field_class, "accepts_list", False):
                names.add(name)
        return names

    def validate_or_raise(self, required_message=None):
        """Validate, raising ``ValidationError`` with the field errors.

        ``required_message`` replaces the first error only when a required
        field was left empty.
        """
        if self.validate():
            return self
        missing = any(
            name in self and self[name].flags.required and not self[name].data
            for name in self.errors
        )
        first = next(
            (errors[0] for errors in self.errors.values() if errors),
            "Invalid request",
        )
        if required_message and missing:
            first = required_message
        raise ValidationError(first, details=self.errors)


class IntegerListField(Field):
    """Accepts a JSON array of ids."""

    accepts_list = True

    def _value(self):
        return ",".join(str(v) for v in self.data or [])

    def process_formdata(self, valuelist):
        try:
            self.data = [int(v) for v in valuelist]
        except ValueError as exc:
            raise ValueError("Expected a list of integer ids") from exc
        if any(not -MAX_ID - 1 <= v <= MAX_ID for v in self.data):
            raise ValueError("Id out of range")
