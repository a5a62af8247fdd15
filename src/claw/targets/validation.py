# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Parameter validators.

Every validator takes the raw argument value and the parameter's validation
string and returns a ``(normalized_value, error_message)`` pair. Exactly one
of the two is None. Validators never raise.
"""

import re
from typing import Callable, Optional

from ..const import (
    LIST_SEPARATOR,
    PARAM_LIST,
    PARAM_NUMERIC,
    PARAM_RANGE,
    PARAM_REGEX,
    PARAM_STRING,
    PERCENT_SUFFIX,
    RANGE_SEPARATOR,
)

ValidationResult = tuple[Optional[str], Optional[str]]
ParameterValidator = Callable[[str, str], ValidationResult]

_PREFIX_BASES = {"0x": 16, "0o": 8, "0b": 2}


def parse_int(text: str, base: int = 0) -> int:
    """Parse an integer literal.

    With base 0 the base is inferred the conventional way: ``0x`` is hex,
    ``0o`` or a leading ``0`` is octal, ``0b`` is binary, anything else is
    decimal. Raises ValueError on anything that is not a number.
    """
    if not text or text != text.strip() or "_" in text:
        raise ValueError(f"invalid syntax: {text!r}")

    sign = 1
    digits = text
    if digits[0] in "+-":
        sign = -1 if digits[0] == "-" else 1
        digits = digits[1:]
    if not digits:
        raise ValueError(f"invalid syntax: {text!r}")

    if base == 0:
        prefix = digits[:2].lower()
        if prefix in _PREFIX_BASES:
            base = _PREFIX_BASES[prefix]
            digits = digits[2:]
        elif len(digits) > 1 and digits[0] == "0":
            base = 8
            digits = digits[1:]
        else:
            base = 10
        if not digits:
            raise ValueError(f"invalid syntax: {text!r}")
    elif digits[:1] in "+-":
        raise ValueError(f"invalid syntax: {text!r}")

    # int() would otherwise accept a prefix that matches the forced base
    for char in digits:
        if not char.isalnum() or int(char, 36) >= base:
            raise ValueError(f"invalid syntax: {text!r}")
    return sign * int(digits, base)


def validate_string(value: str, validation: str) -> ValidationResult:
    """Accept any value unchanged."""
    return value, None


def validate_regex(value: str, validation: str) -> ValidationResult:
    """Accept a value that fully matches the validation pattern."""
    if validation == "":
        return value, None
    try:
        matched = re.fullmatch(validation, value)
    except re.error as e:
        return None, f"invalid regex '{validation}': {e}"
    if matched is None:
        return None, f"value '{value}' did not match regex '{validation}'"
    return value, None


def validate_numeric(value: str, validation: str) -> ValidationResult:
    """Parse an integer and return it in decimal notation.

    A non-zero base in ``validation`` forces that base, otherwise the base is
    inferred from the value's prefix. An empty value is ``"0"``.
    """
    if value == "":
        return "0", None

    base = 0
    if validation != "":
        try:
            base = parse_int(validation)
        except ValueError:
            base = 0

    try:
        parsed = parse_int(value, base)
    except ValueError as e:
        return None, f"value '{value}' is an invalid number: {e}"
    return str(parsed), None


def validate_range(value: str, validation: str) -> ValidationResult:
    """Check a value against an inclusive ``lower:upper`` range.

    Either bound may be empty (unbounded). A value with a trailing ``%`` is a
    position within the range: ``lower + (upper - lower) * pct / 100``,
    truncated toward zero. Percentages need an upper bound and must be
    within 0-100.
    """
    bounds = validation.split(RANGE_SEPARATOR)
    if len(bounds) != 2:
        return None, (
            f"invalid validation string '{validation}' for range, "
            "expected 'start:end' format"
        )
    lower_str, upper_str = bounds

    lower: Optional[int] = None
    upper: Optional[int] = None
    try:
        if lower_str != "":
            lower = parse_int(lower_str)
    except ValueError:
        return None, f"invalid lower bound '{lower_str}' for range"
    try:
        if upper_str != "":
            upper = parse_int(upper_str)
    except ValueError:
        return None, f"invalid upper bound '{upper_str}' for range"
    if upper is not None and upper < (lower or 0):
        return None, (
            f"range validation error: upper value {upper_str} "
            f"< lower value {lower_str or 0}"
        )

    is_pct = value.endswith(PERCENT_SUFFIX)
    if is_pct:
        value = value[: -len(PERCENT_SUFFIX)]
    normalized, error = validate_numeric(value, "")
    if error:
        return None, error
    ival = int(normalized)

    if not is_pct:
        if lower is not None and ival < lower:
            return None, f"value {normalized} too small for range {validation}"
        if upper is not None and ival > upper:
            return None, f"value {normalized} too big for range {validation}"
        return normalized, None

    if upper is None:
        return None, (
            "range validation error: cannot use % notation "
            "when no upper bound is specified"
        )
    if ival < 0 or ival > 100:
        return None, (
            "range validation error: percentage value has to be "
            "in the 0->100 range"
        )
    # A missing lower bound counts as 0; integer math keeps truncation exact
    lower = lower or 0
    total = lower * 100 + (upper - lower) * ival
    result = abs(total) // 100
    return str(result if total >= 0 else -result), None


def validate_list(value: str, validation: str) -> ValidationResult:
    """Match a value case-insensitively against a ``a|b|c`` enumeration.

    The enumeration's own casing is returned.
    """
    wanted = value.lower()
    for choice in validation.split(LIST_SEPARATOR):
        if choice.lower() == wanted:
            return choice, None
    return None, f"list validation failed: value '{value}' not in {validation}"


VALIDATORS: dict[str, ParameterValidator] = {
    PARAM_STRING: validate_string,
    PARAM_REGEX: validate_regex,
    PARAM_NUMERIC: validate_numeric,
    PARAM_RANGE: validate_range,
    PARAM_LIST: validate_list,
}


def get_validator(param_type: str) -> Optional[ParameterValidator]:
    """Return the built-in validator for a parameter type, if any."""
    return VALIDATORS.get(param_type)
