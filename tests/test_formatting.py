from datetime import date

from expense_tracker.formatting import (
    escape_dollar_for_markdown,
    format_currency,
    format_date,
    format_percentage,
)


def test_format_currency_defaults_to_usd():
    assert format_currency(1234.5) == '$1,234.50'
    assert format_currency(0) == '$0.00'
    assert format_currency(-42) == '-$42.00'


def test_format_currency_locale_conventions():
    assert format_currency(1234.5, locale='de-DE', currency='EUR') == '1.234,50\xa0€'
    assert format_currency(1234.5, locale='en-GB', currency='GBP') == '£1,234.50'


def test_format_currency_unknown_locale_and_currency():
    assert format_currency(5, locale='xx-XX', currency='chf') == 'CHF5.00'


def test_format_percentage():
    assert format_percentage(12.345) == '12.3%'
    assert format_percentage(100, decimals=0) == '100%'


def test_format_date():
    assert format_date(date(2024, 1, 5)) == 'Jan 05, 2024'


def test_escape_dollar_for_markdown():
    assert escape_dollar_for_markdown('$5 and $6') == '\\$5 and \\$6'


def test_currency_symbol_does_not_depend_on_locale():
    assert format_currency(1, locale='en-GB', currency='USD') == '$1.00'
    assert format_currency(1, locale='en-US', currency='GBP') == '£1.00'
