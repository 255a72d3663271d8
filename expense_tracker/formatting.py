"""Formatting utilities for currency, percentage and date display."""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Tuple, Union

from .config import CURRENCY, DATE_FORMATS

CURRENCY_SYMBOLS: Dict[str, str] = {
    'USD': '$',
    'EUR': '€',
    'GBP': '£',
    'JPY': '¥',
    'CAD': 'CA$',
}

# locale -> (group separator, decimal separator, symbol after the number)
LOCALE_CONVENTIONS: Dict[str, Tuple[str, str, bool]] = {
    'en-US': (',', '.', False),
    'en-GB': (',', '.', False),
    'de-DE': ('.', ',', True),
    'fr-FR': (' ', ',', True),
}


def format_currency(
    amount: Union[float, int],
    locale: str = CURRENCY['locale'],
    currency: str = CURRENCY['code'],
) -> str:
    """Format a monetary amount for ``locale``.

    Only the digit separators and the symbol position depend on the locale;
    the symbol comes from ``currency`` alone, so en-GB and en-US share one
    convention.

    Args:
        amount: The amount to format
        locale: BCP 47 locale tag; unknown locales use en-US conventions
        currency: ISO 4217 code; codes without a known symbol are shown as-is

    Example:
        >>> format_currency(1234.5)
        '$1,234.50'
        >>> format_currency(-1234.5, locale='de-DE', currency='EUR')
        '-1.234,50\\xa0€'
    """
    group_sep, decimal_sep, symbol_after = LOCALE_CONVENTIONS.get(locale, LOCALE_CONVENTIONS['en-US'])
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency.upper())

    formatted = f"{abs(amount):,.2f}"
    whole, fraction = formatted.split('.')
    number = f"{whole.replace(',', group_sep)}{decimal_sep}{fraction}"
    sign = '-' if amount < 0 else ''

    if symbol_after:
        return f"{sign}{number}\xa0{symbol}"
    return f"{sign}{symbol}{number}"


def format_percentage(percentage: float, decimals: int = 1) -> str:
    """Format a percentage value, e.g. ``12.5`` -> ``'12.5%'``."""
    return f"{percentage:.{decimals}f}%"


def format_date(value: Union[date, datetime]) -> str:
    """Display format for expense dates, e.g. ``Jan 05, 2024``."""
    return value.strftime(DATE_FORMATS['display'])


def escape_dollar_for_markdown(text: str) -> str:
    """Escape dollar signs so Streamlit markdown doesn't treat them as LaTeX delimiters.

    Example:
        >>> escape_dollar_for_markdown('$1,234.56')
        '\\\\$1,234.56'
    """
    return text.replace("$", "\\$")
