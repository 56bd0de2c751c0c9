from __future__ import annotations

import re
from typing import Optional

from todu.constants import AVATAR_EXTENSIONS, AVATAR_MAX_BYTES, MIN_PASSWORD_LENGTH
from todu.domain.common.errors import ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MAX_NAME_LENGTH = 100
_IMAGE_TYPE_RE = re.compile(r"jpeg|jpg|png|gif|webp")


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def signup_problems(name: Optional[str], email: Optional[str], password: Optional[str]) -> list[dict]:
    """Field problems in the express-validator shape ``{field, message}``."""
    problems: list[dict] = []
    n = (name or "").strip()
    if not n or len(n) > MAX_NAME_LENGTH:
        problems.append({"field": "name", "message": f"Name must be between 1 and {MAX_NAME_LENGTH} characters"})
    if not EMAIL_RE.match(normalize_email(email)):
        problems.append({"field": "email", "message": "Please provide a valid email"})
    pw = password or ""
    if len(pw) < MIN_PASSWORD_LENGTH:
        problems.append(
            {"field": "password", "message": f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"}
        )
    if not (re.search(r"[a-z]", pw) and re.search(r"[A-Z]", pw) and re.search(r"\d", pw)):
        problems.append(
            {
                "field": "password",
                "message": "Password must contain at least one lowercase letter, one uppercase letter, and one number",
            }
        )
    return problems


def validate_signup(name: Optional[str], email: Optional[str], password: Optional[str]) -> None:
    problems = signup_problems(name, email, password)
    if problems:
        raise ValidationError("Validation failed", details=problems)


def validate_new_password(password: Optional[str], message: str = "Please provide a new password") -> str:
    if not password:
        raise ValidationError(message)
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    return password


def avatar_extension(filename: Optional[str], content_type: Optional[str], size: int) -> str:
    """Validate an uploaded avatar; returns its lower-cased extension."""
    if not filename or size <= 0:
        raise ValidationError("Please upload an image file")
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in AVATAR_EXTENSIONS or not _IMAGE_TYPE_RE.search((content_type or "").lower()):
        raise ValidationError("Only image files (jpeg, jpg, png, gif, webp) are allowed!")
    if size > AVATAR_MAX_BYTES:
        raise ValidationError("File too large. Maximum size is 5MB")
    return ext
