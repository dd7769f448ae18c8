"""Address and contact validation.

Validation never raises: results carry the individual field errors so the
conversation can turn them into user-facing hints.
"""

import re
from dataclasses import dataclass, field

from dispatch_advisor.domain.booking import AddressInput

ZIP_CODE_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")
STATE_CODE_PATTERN = re.compile(r"^[A-Z]{2}$")

REQUIRED_ADDRESS_FIELDS = ("street", "city", "state", "zip_code", "country")

PHONE_MIN_DIGITS = 7
PHONE_MAX_DIGITS = 15


@dataclass(frozen=True)
class FieldError:
    """Validation error for a single field."""

    field: str
    message: str


@dataclass
class ValidationResult:
    """Outcome of a validation call."""

    errors: list[FieldError] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def message(self) -> str:
        """All error messages joined, or an empty string when valid."""
        return "; ".join(error.message for error in self.errors)

    def add(self, field_name: str, message: str) -> None:
        self.errors.append(FieldError(field=field_name, message=message))

    def merge(self, other: "ValidationResult") -> None:
        self.errors.extend(other.errors)


def validate_address(address: AddressInput | None) -> ValidationResult:
    """Validate a street address.

    Args:
        address: Address to validate.

    Returns:
        ValidationResult with required-field, zip code and state errors.
    """
    result = ValidationResult()
    if address is None:
        result.add("address", "address is required")
        return result

    for name in REQUIRED_ADDRESS_FIELDS:
        if not getattr(address, name).strip():
            result.add(name, f"{name} is required")

    if address.zip_code and not ZIP_CODE_PATTERN.match(address.zip_code):
        result.add(
            "zip_code",
            "Invalid zip code format (expected 12345 or 12345-6789)",
        )

    if address.state and not STATE_CODE_PATTERN.match(address.state):
        result.add(
            "state",
            "Invalid state format (expected a 2-letter code like CA)",
        )

    return result


def validate_phone(phone: str | None) -> ValidationResult:
    """Validate an optional phone number by its digit count."""
    result = ValidationResult()
    if not phone:
        return result

    digits = re.sub(r"\D", "", phone)
    if not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
        result.add(
            "contact_phone",
            f"Invalid phone number: expected {PHONE_MIN_DIGITS}-{PHONE_MAX_DIGITS} digits",
        )
    return result
