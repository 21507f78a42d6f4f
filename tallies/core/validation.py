"""Input validation for counter forms.

Each validate_* function returns a user-facing error message, or None when
the input is acceptable. Flows that need to abort raise ValidationError with
that message.
"""

from tallies.core.colors import is_valid_hex

# Maximum counter name length (after trimming)
MAX_NAME_LENGTH = 50


class ValidationError(ValueError):
    """Raised when user input is rejected."""


def sanitize_name(name: str) -> str:
    """Trim leading/trailing whitespace. Inner whitespace is kept as typed."""
    return name.strip()


def _parse_int(value: str | int) -> int | None:
    """Parse a whole number from form input, None if it isn't one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text, 10)
    except ValueError:
        return None


def validate_name(name: str) -> str | None:
    """Validate a counter name.

    Args:
        name: Raw or sanitized name.

    Returns:
        Error message, or None if valid.
    """
    sanitized = sanitize_name(name)
    if not sanitized:
        return "Counter name cannot be empty"
    if len(sanitized) > MAX_NAME_LENGTH:
        return f"Counter name cannot exceed {MAX_NAME_LENGTH} characters"
    return None


def validate_target(value: str | int) -> str | None:
    """Validate a goal; must be a positive whole number."""
    target = _parse_int(value)
    if target is None or target <= 0:
        return "Target must be a positive number"
    return None


def validate_increment_amount(value: str | int) -> str | None:
    """Validate a custom increment; zero and negatives are rejected."""
    amount = _parse_int(value)
    if amount is None or amount <= 0:
        return "Amount must be a positive number"
    return None


def validate_count(value: str | int) -> str | None:
    """Validate a directly edited count; must be a whole number >= 0."""
    count = _parse_int(value)
    if count is None:
        return "Count must be a valid number"
    if count < 0:
        return "Count cannot be negative"
    return None


def validate_color(value: str) -> str | None:
    """Validate a "#RRGGBB" color."""
    if not is_valid_hex(value):
        return "Color must be a hex value like #007AFF"
    return None


def parse_int_input(value: str | int, validator=validate_increment_amount) -> int:
    """Validate then parse a form value.

    Args:
        value: Raw input.
        validator: One of the validate_* functions for whole numbers.

    Returns:
        Parsed integer.

    Raises:
        ValidationError: If the validator rejects the value.
    """
    error = validator(value)
    if error:
        raise ValidationError(error)
    return _parse_int(value)
