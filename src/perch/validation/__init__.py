"""Value validation — composable rules, clean results.

Usage::

    from perch.validation import validate, of_type, min_value

    result = validate(values, {
        "port": [of_type(int), min_value(1)],
        "api_base_url": [url],
    })
    if not result:
        # result.errors == {"port": ["must be >= 1"]}
        ...
"""

from collections.abc import Mapping
from typing import Any

from perch.validation.result import ValidationResult
from perch.validation.rules import (
    Validator,
    matches,
    max_value,
    min_value,
    of_type,
    one_of,
    required,
    url,
)

__all__ = [
    "ValidationResult",
    "Validator",
    "matches",
    "max_value",
    "min_value",
    "of_type",
    "one_of",
    "required",
    "url",
    "validate",
]


def validate(
    data: Mapping[str, Any],
    rules: Mapping[str, list[Validator]],
) -> ValidationResult:
    """Validate *data* against a set of rules.

    A name missing from *data* (or set to ``None``) fails with
    ``"is required"`` and its other rules are skipped. Otherwise every
    rule runs and every failure is collected.
    """
    errors: dict[str, list[str]] = {}
    cleaned: dict[str, Any] = {}

    for name, validators in rules.items():
        value = data.get(name)
        if value is None:
            errors[name] = ["is required"]
            continue

        found: list[str] = []
        for validator in validators:
            error = validator(value)
            if error is not None:
                found.append(error)

        if found:
            errors[name] = found
        else:
            cleaned[name] = value

    return ValidationResult(data=cleaned, errors=errors)
