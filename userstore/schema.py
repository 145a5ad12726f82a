import re
from typing import Any, Dict, List

REQUIRED_FIELDS = ["name", "age", "email"]

# local@domain.tld: no whitespace, a single "@", at least one dot after it
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def is_valid_email(email: Any) -> bool:
    return isinstance(email, str) and EMAIL_PATTERN.match(email) is not None


def validate_new_user(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    Checks shape only; e-mail uniqueness is left to the store.
    """
    errors: List[str] = []

    if not isinstance(data, dict):
        return ["User entry must be an object"]

    for f in REQUIRED_FIELDS:
        if f not in data:
            errors.append(f"Missing required field: {f}")

    unknown = sorted(set(data) - set(REQUIRED_FIELDS))
    for f in unknown:
        errors.append(f"Unknown field: {f}")

    if "name" in data and not _is_non_empty_str(data["name"]):
        errors.append("Field 'name' must be a non-empty string")

    if "age" in data:
        age = data["age"]
        # bool is an int subclass
        if not isinstance(age, int) or isinstance(age, bool):
            errors.append("Field 'age' must be an integer")
        elif age < 0:
            errors.append("Field 'age' must not be negative")

    if "email" in data and not is_valid_email(data["email"]):
        errors.append("Field 'email' must be a valid address (local@domain.tld)")

    return errors
