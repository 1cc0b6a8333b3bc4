"""
Formatting utilities.

Numbers in reports are shown in English (Western digits, comma separators)
or Arabic (Eastern Arabic digits, Arabic thousands separator).
"""

import re
from typing import Optional

ARABIC_DIGITS = "٠١٢٣٤٥٦٧٨٩"
WESTERN_DIGITS = "0123456789"
ARABIC_THOUSANDS_SEPARATOR = "٬"
ARABIC_DECIMAL_SEPARATOR = "٫"

_TO_ARABIC = str.maketrans(WESTERN_DIGITS, ARABIC_DIGITS)
_TO_WESTERN = str.maketrans(ARABIC_DIGITS, WESTERN_DIGITS)

CURRENCY_LABELS = {
    "en": "EGP",
    "ar": "ج.م",
}


def format_number(value: Optional[float], language: str = "en", decimals: int = 0) -> str:
    """
    Format a number with thousands separators.

    Args:
        value: The number to format. None renders as an empty string.
        language: "en" for Western digits, "ar" for Eastern Arabic digits.
        decimals: Number of decimal places.

    Returns:
        Formatted number string.
    """
    if value is None:
        return ""
    text = f"{value:,.{decimals}f}"
    if language != "ar":
        return text
    text = text.replace(",", "\0").replace(".", ARABIC_DECIMAL_SEPARATOR)
    return text.replace("\0", ARABIC_THOUSANDS_SEPARATOR).translate(_TO_ARABIC)


def format_currency(amount: Optional[float], language: str = "en") -> str:
    """Format an amount in Egyptian pounds."""
    if amount is None:
        return ""
    return f"{format_number(amount, language)} {CURRENCY_LABELS.get(language, 'EGP')}"


def format_percent(value: Optional[float], decimals: int = 1, language: str = "en") -> str:
    """
    Format a number as a percentage.

    Args:
        value: The percentage value.
        decimals: Number of decimal places.
        language: Digit set to use.

    Returns:
        Formatted percentage string.
    """
    if value is None:
        return ""
    return f"{format_number(value, language, decimals)}%"


def format_area(value: Optional[float], language: str = "en") -> str:
    if value is None:
        return ""
    unit = "م²" if language == "ar" else "m²"
    return f"{format_number(value, language)} {unit}"


def to_western_digits(text: str) -> str:
    """
    Convert Eastern Arabic digits to Western digits and use spaces as
    thousands separators, e.g. "١٬٢٥٠٬٠٠٠" -> "1 250 000".
    """
    text = text.translate(_TO_WESTERN).replace(ARABIC_THOUSANDS_SEPARATOR, ",")
    while True:
        updated = re.sub(r"(\d),(\d{3})", r"\1 \2", text)
        if updated == text:
            return updated
        text = updated
