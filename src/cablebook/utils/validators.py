"""
Input validation functions for imported spreadsheet values.

Every validator returns a ``(is_valid, error_message)`` tuple. Imported
optional fields may legitimately be ``None`` (a blank cell), so the numeric
validators accept ``None`` and only check values that are present.
"""

from typing import Any, Optional, Tuple

ERROR_INVALID_NUMBER = "Must be a valid number"
ERROR_INVALID_NON_NEGATIVE = "Must be zero or greater"
ERROR_INVALID_WHOLE_NUMBER = "Must be a whole number"


def validate_string_length(
    value: Optional[str], max_length: int, field_name: str = "Field"
) -> Tuple[bool, str]:
    """
    Validate that a string doesn't exceed maximum length.

    Args:
        value: The string value to validate
        max_length: Maximum allowed length
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value and len(value) > max_length:
        return False, f"{field_name}: Must be {max_length} characters or less"
    return True, ""


def validate_non_negative_number(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value is absent or a non-negative number (>= 0).

    Args:
        value: The value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None:
        return True, ""
    if isinstance(value, bool):
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    try:
        num_value = float(value)
    except (ValueError, TypeError):
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if num_value < 0:
        return False, f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}"
    return True, ""


def validate_whole_number(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value is absent or a whole number.

    Args:
        value: The value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or isinstance(value, int) and not isinstance(value, bool):
        return True, ""
    if isinstance(value, float) and value.is_integer():
        return True, ""
    return False, f"{field_name}: {ERROR_INVALID_WHOLE_NUMBER}"
