"""
Entry Input Validation

Checks a proposed entry before the ledger is touched.

ERRORS (entry is refused):
- Amount is not a finite number
- Amount is zero or negative after flooring to cents
- Label contains the field separator, a line break or undecodable text
- Label has leading or trailing whitespace (it would not survive a reload)
- Label is longer than MAX_LABEL_LENGTH

WARNINGS (entry is accepted, user is told):
- Blank label
- Amount above the configured sanity limit

IMPORTANT: Validation NEVER silently fixes issues. The one
normalization it performs is flooring the amount to two digits,
which is the ledger's fixed-point rule rather than a correction.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from pocket_ledger.codec import REPLACEMENT_CHARACTER
from pocket_ledger.config import get_settings
from pocket_ledger.models.entry import floor_to_cents
from pocket_ledger.models.validation import ValidationIssue, ValidationResult


AmountInput = Union[Decimal, str, int, float]

FORBIDDEN_LABEL_CHARACTERS = (",", "\n", "\r")
MAX_LABEL_LENGTH = 100


def to_decimal(value: AmountInput) -> Optional[Decimal]:
    """Convert user or caller input to Decimal; None if it is not a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    else:
        # str() of a float is its shortest repr, so 0.29 stays 0.29
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            return None
    if not amount.is_finite():
        return None
    return amount


class EntryValidator:
    """Validates the label and amount of a new income or expense."""

    def __init__(self, max_amount: Optional[Decimal] = None):
        if max_amount is None:
            max_amount = Decimal(str(get_settings().ledger.max_entry_amount))
        self._max_amount = max_amount

    def validate(self, label: str, amount: AmountInput) -> ValidationResult:
        issues = self._check_label(label)
        normalized, amount_issues = self._check_amount(amount)
        issues.extend(amount_issues)

        is_valid = not any(issue.severity == "error" for issue in issues)
        return ValidationResult(
            is_valid=is_valid,
            label=label,
            amount=normalized if is_valid else None,
            issues=issues,
        )

    def _check_label(self, label: str) -> list[ValidationIssue]:
        issues = []

        for char in FORBIDDEN_LABEL_CHARACTERS:
            if char in label:
                shown = "a comma" if char == "," else "a line break"
                issues.append(ValidationIssue(
                    field="label",
                    issue_type="invalid_format",
                    message=f"Category cannot contain {shown}",
                    severity="error",
                ))
                break

        if REPLACEMENT_CHARACTER in label:
            issues.append(ValidationIssue(
                field="label",
                issue_type="invalid_format",
                message="Category contains an unreadable character",
                severity="error",
            ))

        if len(label) > MAX_LABEL_LENGTH:
            issues.append(ValidationIssue(
                field="label",
                issue_type="invalid_value",
                message=f"Category cannot be longer than {MAX_LABEL_LENGTH} characters",
                severity="error",
            ))

        if label != label.strip():
            # The codec trims fields on reload
            issues.append(ValidationIssue(
                field="label",
                issue_type="invalid_format",
                message="Category cannot start or end with spaces",
                severity="error",
            ))
        elif not label:
            issues.append(ValidationIssue(
                field="label",
                issue_type="missing",
                message="Category is blank",
                severity="warning",
            ))

        return issues

    def _check_amount(
        self,
        amount: AmountInput,
    ) -> tuple[Optional[Decimal], list[ValidationIssue]]:
        issues = []

        value = to_decimal(amount)
        if value is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Amount must be a number",
                severity="error",
            ))
            return None, issues

        value = floor_to_cents(value)
        if value <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be positive",
                severity="error",
            ))
            return None, issues

        if value > self._max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({value:,.2f}) seems unusually high",
                severity="warning",
            ))

        return value, issues
