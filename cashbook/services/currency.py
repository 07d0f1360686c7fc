"""
Currency Text Conversion

Brazilian Real display format: "R$ 1.234,56" (dot for thousands,
comma for cents).

DESIGN DECISION: Parsing is forgiving. Blank or unreadable text is
read as zero rather than raised, because these helpers sit behind
free-text input fields. Validation of the resulting amount (> 0 and
so on) is the ledger's job, not this module's.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENTS = Decimal("0.01")

_NON_DIGITS = re.compile(r"\D")
_CURRENCY_PREFIX = re.compile(r"R\$\s?")


def _group_thousands(digits: str) -> str:
    """'1234567' -> '1.234.567'"""
    groups = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    return ".".join(groups)


def amount_to_display_text(amount: Decimal) -> str:
    """
    Format an amount for an input field.

    Zero formats as the empty string so that an untouched field stays blank.
    """
    if amount is None or amount == 0:
        return ""
    quantized = Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    int_part, dec_part = f"{abs(quantized):.2f}".split(".")
    return f"R$ {sign}{_group_thousands(int_part)},{dec_part}"


def display_text_to_amount(text: str) -> Decimal:
    """
    Read "R$ 1.234,56" or "1.234,56" back into Decimal("1234.56").

    Returns Decimal("0") for blank or invalid input.
    """
    if not text or not text.strip():
        return Decimal("0")
    cleaned = _CURRENCY_PREFIX.sub("", text).strip().replace(".", "").replace(",", ".", 1)
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")
    if not value.is_finite():
        return Decimal("0")
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def apply_typing_mask(text: str) -> str:
    """
    Mask applied while the user types.

    Only digits count and the last two are always cents:
    "1" -> "R$ 0,01", "123" -> "R$ 1,23", "123456" -> "R$ 1.234,56".
    """
    digits = _NON_DIGITS.sub("", text or "")
    if not digits:
        return ""
    if len(digits) <= 2:
        return f"R$ 0,{digits.zfill(2)}"
    reais = str(int(digits[:-2]))
    return f"R$ {_group_thousands(reais)},{digits[-2:]}"
