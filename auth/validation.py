# auth/validation.py
"""
Input schemas for login, signup and the admin role toggle.

Pydantic does the field checks; parse() turns the first failure into an
auth ValidationError with a short, field-level message that is safe to
show to the user.
"""

from __future__ import annotations

from typing import Type, TypeVar

import pydantic
from pydantic import BaseModel, EmailStr, Field

from auth.errors import ValidationError
from auth.models import Role

MAX_NAME_LENGTH = 20
MAX_PASSWORD_LENGTH = 20

_Form = TypeVar("_Form", bound=BaseModel)


class LoginForm(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=MAX_PASSWORD_LENGTH)


class SignupForm(BaseModel):
    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH, pattern=r"^[A-Za-z0-9]+$")
    password: str = Field(min_length=1, max_length=MAX_PASSWORD_LENGTH)
    email: EmailStr


class RoleToggleCommand(BaseModel):
    """Flip the role of `email`, which the admin saw as `role`."""
    email: EmailStr
    role: Role


def _describe(error: dict) -> str:
    """Human readable message for one pydantic error."""
    kind = error.get("type")
    ctx = error.get("ctx") or {}
    field = str(error["loc"][-1]) if error.get("loc") else ""

    if kind in ("missing", "string_too_short"):
        return "is required"
    if kind == "string_too_long":
        return f"must be at most {ctx.get('max_length')} characters"
    if kind == "string_pattern_mismatch":
        return "must only contain alpha-numeric characters"
    if kind == "string_type":
        return "must be a string"
    if kind == "enum":
        return f"must be one of {ctx.get('expected')}"
    if kind == "value_error":
        if field == "email":
            return "must be a valid email"
        return str(ctx.get("error", error.get("msg")))
    return error.get("msg", "is invalid")


def parse(form: Type[_Form], **data) -> _Form:
    """
    Validate data against a form schema.

    Raises:
        ValidationError: describing the first invalid field
    """
    try:
        return form(**data)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][-1]) if first.get("loc") else None
        raise ValidationError(f'"{field}" {_describe(first)}', field=field) from None
