"""Validation result — immutable container for validated data or errors."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """The outcome of validating values against a set of rules.

    The result is falsy when invalid, so you can write::

        result = validate(values, rules)
        if not result:
            report(result.messages())

    ``errors`` maps names to lists of error messages::

        {"port": ["must be >= 1"], "secret": ["is required"]}
    """

    data: dict[str, Any]
    errors: dict[str, list[str]]

    @property
    def is_valid(self) -> bool:
        """True if validation passed with no errors."""
        return not self.errors

    def messages(self) -> list[str]:
        """Flat ``'name' message`` lines, in rule order."""
        return [f"'{name}' {message}" for name, found in self.errors.items() for message in found]

    def __bool__(self) -> bool:
        return self.is_valid
