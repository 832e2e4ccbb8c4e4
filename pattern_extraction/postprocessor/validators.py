"""
Consistency Validators Module.

Cross-field checks run after every category has been resolved. They
never change a field or the run status; they only attach warnings to
the extraction result for a reviewer to look at.

Author: ML Engineering Team
"""

from datetime import date
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Tuple

from config import get_config
from pattern_extraction.utils.logger import get_logger
from pattern_extraction.patterns.pattern_definition import PatternCategory

logger = get_logger(__name__)


class AmountConsistencyValidator:
    """
    Checks that total, subtotal and tax amounts agree.

    Example:
        >>> validator = AmountConsistencyValidator(tolerance=Decimal("0.01"))
        >>> validator.validate(Decimal("100.00"), Decimal("90.00"), Decimal("10.00"))
        (True, 'Amounts are consistent')
    """

    def __init__(self, tolerance: Optional[Decimal] = None) -> None:
        if tolerance is None:
            tolerance = Decimal(str(get_config("postprocessing.consistency.amount_tolerance", 0.01)))
        self.tolerance = tolerance

    def validate(
        self,
        total: Optional[Decimal],
        subtotal: Optional[Decimal],
        tax: Optional[Decimal]
    ) -> Tuple[bool, str]:
        """
        Validate the relationship between the amount fields.

        Args:
            total: Total amount, if resolved.
            subtotal: Subtotal amount, if resolved.
            tax: Tax amount, if resolved.

        Returns:
            Tuple of (is_consistent, message).
        """
        if total is None or subtotal is None:
            return True, "Not enough amounts to compare"

        if subtotal > total:
            return False, f"Subtotal {subtotal} exceeds total {total}"

        if tax is not None:
            expected = subtotal + tax
            if abs(expected - total) > self.tolerance:
                return False, f"Subtotal {subtotal} plus tax {tax} does not match total {total}"

        return True, "Amounts are consistent"


class DateConsistencyValidator:
    """Checks that the due date does not precede the invoice date."""

    def validate(self, invoice_date: Optional[date], due_date: Optional[date]) -> Tuple[bool, str]:
        if invoice_date is None or due_date is None:
            return True, "Not enough dates to compare"

        if due_date < invoice_date:
            return False, f"Due date {due_date.isoformat()} is before invoice date {invoice_date.isoformat()}"

        return True, "Valid date relationship"


class ConsistencyValidator:
    """
    Runs all cross-field checks over resolved values.

    Example:
        >>> validator = ConsistencyValidator()
        >>> validator.check({PatternCategory.AMOUNT: Decimal("50.00"),
        ...                  PatternCategory.SUBTOTAL_AMOUNT: Decimal("60.00")})
        ['Subtotal 60.00 exceeds total 50.00']
    """

    def __init__(
        self,
        amount_validator: Optional[AmountConsistencyValidator] = None,
        date_validator: Optional[DateConsistencyValidator] = None
    ) -> None:
        self.amount_validator = amount_validator or AmountConsistencyValidator()
        self.date_validator = date_validator or DateConsistencyValidator()

    def check(self, values: Mapping[PatternCategory, Any]) -> List[str]:
        """
        Collect consistency warnings.

        Args:
            values: Resolved values keyed by category; unresolved categories
                may be absent or map to None.

        Returns:
            List of warning messages, empty when everything agrees.
        """
        warnings: List[str] = []

        consistent, message = self.amount_validator.validate(
            values.get(PatternCategory.AMOUNT),
            values.get(PatternCategory.SUBTOTAL_AMOUNT),
            values.get(PatternCategory.TAX_AMOUNT)
        )
        if not consistent:
            warnings.append(message)

        consistent, message = self.date_validator.validate(
            values.get(PatternCategory.INVOICE_DATE),
            values.get(PatternCategory.DUE_DATE)
        )
        if not consistent:
            warnings.append(message)

        for warning in warnings:
            logger.info(f"Consistency warning: {warning}")

        return warnings
