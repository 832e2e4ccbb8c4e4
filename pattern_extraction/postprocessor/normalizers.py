"""
Field Normalizers Module.

This module turns the raw text captured by a pattern into the typed
value stored on the invoice:
    - Amounts to fixed-point Decimal
    - Dates to datetime.date, using the pattern's declared format
    - Invoice numbers, names and addresses to cleaned strings
    - Currency, e-mail and phone values to canonical strings

Every normalizer returns None when the text cannot be turned into a
valid value; the resolver treats that as a failed candidate and moves on.

Author: ML Engineering Team
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from dateutil import parser as date_parser

from config import get_config
from pattern_extraction.utils.logger import get_logger
from pattern_extraction.utils.helpers import collapse_whitespace
from pattern_extraction.patterns.pattern_definition import PatternCategory

logger = get_logger(__name__)


# Pattern-store date tokens and their strptime directives, longest first
_DATE_TOKENS = {
    'y': [(3, '%Y'), (2, '%y'), (1, '%Y')],
    'M': [(4, '%B'), (3, '%b'), (1, '%m')],
    'd': [(1, '%d')],
    'E': [(4, '%A'), (1, '%a')],
    'H': [(1, '%H')],
    'h': [(1, '%I')],
    'm': [(1, '%M')],
    's': [(1, '%S')],
    'a': [(1, '%p')],
}


def to_strptime_format(date_format: str) -> str:
    """
    Translate a stored date format (e.g. "MMMM d, yyyy") into strptime syntax.

    Letters are pattern tokens; text inside single quotes is literal and
    '' stands for a single quote.

    Args:
        date_format: Date format as stored with the pattern.

    Returns:
        Equivalent strptime format string.

    Raises:
        ValueError: If the format uses an unsupported token.

    Example:
        >>> to_strptime_format("MMMM d, yyyy")
        '%B %d, %Y'
        >>> to_strptime_format("dd 'de' MMMM yyyy")
        '%d de %B %Y'
    """
    result = []
    i = 0
    length = len(date_format)

    while i < length:
        char = date_format[i]

        if char == "'":
            end = date_format.find("'", i + 1)
            if end == i + 1:
                result.append("'")
                i += 2
                continue
            if end == -1:
                raise ValueError(f"Unterminated quote in date format: {date_format!r}")
            result.append(date_format[i + 1:end].replace('%', '%%'))
            i = end + 1
            continue

        if char.isalpha():
            run = 1
            while i + run < length and date_format[i + run] == char:
                run += 1
            if char not in _DATE_TOKENS:
                raise ValueError(f"Unsupported date format token {char * run!r}")
            for min_run, directive in _DATE_TOKENS[char]:
                if run >= min_run:
                    result.append(directive)
                    break
            i += run
            continue

        result.append('%%' if char == '%' else char)
        i += 1

    return ''.join(result)


class DateNormalizer:
    """
    Parses captured date text into a datetime.date.

    A pattern that declares a date format is parsed with that format only,
    so a format mismatch fails the candidate and the next pattern gets its
    turn. Patterns without a format try the configured input formats and
    then dateutil.

    Example:
        >>> normalizer = DateNormalizer()
        >>> normalizer.normalize("January 25, 2016", "MMMM d, yyyy")
        datetime.date(2016, 1, 25)
        >>> normalizer.normalize("25/01/2016", "MMMM d, yyyy") is None
        True
    """

    DEFAULT_INPUT_FORMATS = [
        "%B %d, %Y",
        "%b %d, %Y",
        "%m/%d/%Y",
        "%d/%m/%Y",
        "%Y-%m-%d",
        "%d-%m-%Y",
        "%d %B %Y",
        "%d %b %Y",
    ]

    # Differ in year, month and day
    _FIRST_DEFAULT = datetime(2000, 1, 1)
    _SECOND_DEFAULT = datetime(2004, 12, 28)

    def __init__(
        self,
        input_formats: Optional[List[str]] = None,
        min_year: Optional[int] = None,
        max_year: Optional[int] = None
    ) -> None:
        self.input_formats = input_formats or get_config(
            "postprocessing.date.input_formats", self.DEFAULT_INPUT_FORMATS
        )
        self.min_year = min_year or get_config("postprocessing.date.min_year", 1900)
        self.max_year = max_year or get_config("postprocessing.date.max_year", 2100)

        logger.debug(f"DateNormalizer initialized (years {self.min_year}-{self.max_year})")

    def normalize(self, date_str: str, date_format: Optional[str] = None) -> Optional[date]:
        """
        Normalize captured date text.

        Args:
            date_str: Captured text.
            date_format: Stored date format of the pattern, if any.

        Returns:
            Parsed date, or None if it cannot be parsed or is out of range.
        """
        if not date_str:
            return None

        cleaned = collapse_whitespace(date_str).strip(' ,;')
        if not cleaned:
            return None

        if date_format:
            parsed = self._parse_declared(cleaned, date_format)
        else:
            parsed = self._try_explicit_formats(cleaned)
            if parsed is None:
                parsed = self._try_dateutil_parser(cleaned)

        if parsed is None:
            logger.debug(f"Could not parse date: {cleaned!r} (format {date_format!r})")
            return None

        if not self.min_year <= parsed.year <= self.max_year:
            logger.debug(f"Date out of range: {parsed}")
            return None

        return parsed.date()

    def _parse_declared(self, date_str: str, date_format: str) -> Optional[datetime]:
        try:
            return datetime.strptime(date_str, to_strptime_format(date_format))
        except ValueError:
            return None

    def _try_explicit_formats(self, date_str: str) -> Optional[datetime]:
        for fmt in self.input_formats:
            try:
                return datetime.strptime(date_str, fmt)
            except ValueError:
                continue
        return None

    def _try_dateutil_parser(self, date_str: str) -> Optional[datetime]:
        """
        Parse free-form date text with dateutil.

        dateutil fills missing components from its default datetime, so
        the text is parsed against two defaults differing in year, month
        and day; a partial date ("March 5", "15") gives two different
        results and is rejected.
        """
        # Not fuzzy: the whole capture must be a date
        try:
            first = date_parser.parse(date_str, default=self._FIRST_DEFAULT, dayfirst=False, fuzzy=False)
            second = date_parser.parse(date_str, default=self._SECOND_DEFAULT, dayfirst=False, fuzzy=False)
        except (ValueError, OverflowError):
            return None

        if first.date() != second.date():
            logger.debug(f"Incomplete date rejected: {date_str!r}")
            return None
        return first


class AmountNormalizer:
    """
    Normalizes currency/amount text to a two-place Decimal.

    Currency symbols, codes and thousands separators are stripped; a comma
    followed by at most two digits is read as a decimal comma. Negative
    values and values with more fractional digits than allowed are rejected.

    Example:
        >>> normalizer = AmountNormalizer()
        >>> normalizer.normalize("$1,234.56")
        Decimal('1234.56')
        >>> normalizer.normalize("€ 1.234,56")
        Decimal('1234.56')
        >>> normalizer.normalize("12.345") is None
        True
    """

    CURRENCY_SYMBOLS = ['$', '€', '£', '¥', '₹', '₽', '₩', '₺', '₦']
    CURRENCY_CODES = ['USD', 'EUR', 'GBP', 'JPY', 'INR', 'CAD', 'AUD', 'CNY', 'CHF', 'RUB']

    def __init__(
        self,
        currency_symbols: Optional[List[str]] = None,
        currency_codes: Optional[List[str]] = None,
        decimal_separator: Optional[str] = None,
        max_fraction_digits: Optional[int] = None
    ) -> None:
        self.currency_symbols = currency_symbols or get_config(
            "postprocessing.amount.currency_symbols", self.CURRENCY_SYMBOLS
        )
        self.currency_codes = currency_codes or get_config(
            "postprocessing.amount.currency_codes", self.CURRENCY_CODES
        )
        self.decimal_separator = decimal_separator or get_config(
            "postprocessing.amount.decimal_separator", "."
        )
        if max_fraction_digits is None:
            max_fraction_digits = get_config("postprocessing.amount.max_fraction_digits", 2)
        self.max_fraction_digits = max_fraction_digits
        self._quantum = Decimal(1).scaleb(-self.max_fraction_digits)

        logger.debug("AmountNormalizer initialized")

    def normalize(self, amount_str: str) -> Optional[Decimal]:
        """
        Normalize an amount string.

        Args:
            amount_str: Captured amount text (e.g. "$1,234.56").

        Returns:
            Decimal quantized to the allowed fractional digits, or None.
        """
        if not amount_str:
            return None

        cleaned = self._clean_amount_string(amount_str)
        if not cleaned:
            return None

        if self.decimal_separator == ',':
            cleaned = cleaned.replace('.', '').replace(',', '.')
        else:
            cleaned = self._handle_european_format(cleaned)
            cleaned = cleaned.replace(',', '')

        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            logger.debug(f"Could not parse amount: {amount_str!r}")
            return None

        if not value.is_finite():
            return None
        if value < 0:
            logger.debug(f"Negative amount rejected: {amount_str!r}")
            return None
        if -value.as_tuple().exponent > self.max_fraction_digits:
            logger.debug(f"Too many fractional digits: {amount_str!r}")
            return None

        return value.quantize(self._quantum)

    def _clean_amount_string(self, amount_str: str) -> str:
        amount_str = collapse_whitespace(amount_str)

        for symbol in self.currency_symbols:
            amount_str = amount_str.replace(symbol, '')

        for code in self.currency_codes:
            amount_str = re.sub(rf'\b{re.escape(code)}\b', '', amount_str, flags=re.IGNORECASE)

        # Keep only digits, separators and sign
        return re.sub(r'[^\d,.\-]', '', amount_str)

    def _handle_european_format(self, amount_str: str) -> str:
        """Convert "1.234,56" style amounts to "1234.56"."""
        if amount_str.count(',') == 1:
            comma_pos = amount_str.rfind(',')
            if comma_pos > amount_str.rfind('.'):
                after_comma = amount_str[comma_pos + 1:]
                if len(after_comma) <= 2 and after_comma.isdigit():
                    amount_str = amount_str.replace('.', '').replace(',', '.')
        return amount_str


class TextNormalizer:
    """
    Cleans free-text and identifier fields.

    Example:
        >>> normalizer = TextNormalizer()
        >>> normalizer.clean_name("  Acme   Corp.  ")
        'Acme Corp'
        >>> normalizer.invoice_number("12") is None
        True
    """

    NAME_STRIP_CHARS = ' \t\r\n.,;:-|_*#'

    CURRENCY_SYMBOL_CODES = {
        '$': 'USD',
        '€': 'EUR',
        '£': 'GBP',
        '¥': 'JPY',
        '₹': 'INR',
        '₽': 'RUB',
        '₩': 'KRW',
        '₺': 'TRY',
        '₦': 'NGN',
    }

    EMAIL_PATTERN = re.compile(r'[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}')

    def __init__(
        self,
        invoice_number_min_length: Optional[int] = None,
        phone_min_digits: Optional[int] = None
    ) -> None:
        self.invoice_number_min_length = invoice_number_min_length or get_config(
            "postprocessing.invoice_number.min_length", 3
        )
        self.phone_min_digits = phone_min_digits or get_config(
            "postprocessing.phone.min_digits", 7
        )

    def clean_name(self, text: str) -> Optional[str]:
        """Trim whitespace and stray punctuation, collapse inner whitespace."""
        if not text:
            return None
        cleaned = collapse_whitespace(text).strip(self.NAME_STRIP_CHARS)
        return cleaned or None

    def invoice_number(self, text: str) -> Optional[str]:
        if not text:
            return None
        cleaned = text.strip()
        if len(cleaned) < self.invoice_number_min_length:
            return None
        return cleaned

    def currency(self, text: str) -> Optional[str]:
        """Map a currency symbol or code to its ISO 4217 code."""
        if not text:
            return None
        cleaned = text.strip()
        if cleaned in self.CURRENCY_SYMBOL_CODES:
            return self.CURRENCY_SYMBOL_CODES[cleaned]
        if len(cleaned) == 3 and cleaned.isalpha():
            return cleaned.upper()
        return None

    def email(self, text: str) -> Optional[str]:
        if not text:
            return None
        cleaned = text.strip().lower()
        if self.EMAIL_PATTERN.fullmatch(cleaned):
            return cleaned
        return None

    def phone(self, text: str) -> Optional[str]:
        if not text:
            return None
        cleaned = collapse_whitespace(text)
        digits = sum(1 for char in cleaned if char.isdigit())
        if digits < self.phone_min_digits:
            return None
        return cleaned


class FieldNormalizer:
    """
    Dispatches captured text to the normalizer of its category.

    Attributes:
        dates: DateNormalizer instance
        amounts: AmountNormalizer instance
        text: TextNormalizer instance

    Example:
        >>> normalizer = FieldNormalizer()
        >>> normalizer.normalize(PatternCategory.AMOUNT, "$93.50")
        Decimal('93.50')
    """

    def __init__(
        self,
        date_normalizer: Optional[DateNormalizer] = None,
        amount_normalizer: Optional[AmountNormalizer] = None,
        text_normalizer: Optional[TextNormalizer] = None
    ) -> None:
        self.dates = date_normalizer or DateNormalizer()
        self.amounts = amount_normalizer or AmountNormalizer()
        self.text = text_normalizer or TextNormalizer()

        self._handlers: Dict[PatternCategory, Any] = {
            PatternCategory.INVOICE_NUMBER: self.text.invoice_number,
            PatternCategory.VENDOR: self.text.clean_name,
            PatternCategory.ADDRESS: self.text.clean_name,
            PatternCategory.CUSTOMER: self.text.clean_name,
            PatternCategory.PAYMENT_TERMS: self.text.clean_name,
            PatternCategory.CURRENCY: self.text.currency,
            PatternCategory.EMAIL: self.text.email,
            PatternCategory.PHONE: self.text.phone,
        }

    def normalize(
        self,
        category: PatternCategory,
        text: str,
        date_format: Optional[str] = None
    ) -> Optional[Any]:
        """
        Normalize captured text for a category.

        Args:
            category: Category the capturing pattern belongs to.
            text: Captured text.
            date_format: Pattern's stored date format (date categories only).

        Returns:
            Typed value (Decimal, date or str), or None if the text is not
            a valid value for the category.
        """
        if category.is_amount:
            return self.amounts.normalize(text)
        if category.is_date:
            return self.dates.normalize(text, date_format)

        handler = self._handlers.get(category, self.text.clean_name)
        return handler(text)
