"""
Operand Classification
======================

Every operand is classified exactly once, in Pass I, into one of the
tagged variants below. Pass I uses the variant to advance the location
counter; Pass II hands the same variant to the encoder. Neither pass looks
at operand prefixes itself.

Operand Forms
-------------
    C'EOF'      CharLiteral      3 bytes, one per character
    X'F1'       HexLiteral       1 byte, two digits per byte
    10, -3      DecimalConstant  3 bytes (WORD)
    =C'EOF'     LiteralRef       pooled at END, wraps one of the above
    LOOP        SymbolRef        address operand of an instruction
    (other)     Malformed        zero width, reported, never encoded

Numeric Fields
--------------
``parse_number`` handles START (hex) and RESW/RESB (decimal) counts with a
best-effort policy: the leading valid digits are used, otherwise zero,
and the caller is told that the text was malformed.
"""

import re
from dataclasses import dataclass
from typing import Optional, Union

from sicasm.assembler.opcodes import WORD_SIZE


# 24-bit word range: signed values are stored in two's complement
WORD_MIN = -(1 << 23)
WORD_MAX = (1 << 24) - 1

_DECIMAL_RE = re.compile(r"^[+-]?\d+$")
_HEX_DIGITS_RE = re.compile(r"^[0-9A-Fa-f]*$")


# =============================================================================
# Operand Variants
# =============================================================================

@dataclass(frozen=True)
class CharLiteral:
    """Character data, one byte per character."""
    text: str

    @property
    def byte_length(self) -> int:
        return len(self.text)


@dataclass(frozen=True)
class HexLiteral:
    """Hex data; ``digits`` always holds an even number of hex digits."""
    digits: str

    @property
    def byte_length(self) -> int:
        return len(self.digits) // 2


@dataclass(frozen=True)
class DecimalConstant:
    """A WORD-sized integer within the 24-bit range."""
    value: int

    @property
    def byte_length(self) -> int:
        return WORD_SIZE


@dataclass(frozen=True)
class Malformed:
    """
    Operand that could not be classified.

    Attributes:
        text: The raw operand text
        reason: Why classification failed (used in the diagnostic)
        numeric: True when a number was expected (malformed-numeric case)
    """
    text: str
    reason: str
    numeric: bool = False

    @property
    def byte_length(self) -> int:
        return 0


DataOperand = Union[CharLiteral, HexLiteral, DecimalConstant, Malformed]


@dataclass(frozen=True)
class LiteralRef:
    """
    Reference to a pooled literal such as ``=C'EOF'``.

    Attributes:
        token: Full literal text including '=' (the literal table key)
        value: Classified body of the literal
    """
    token: str
    value: DataOperand

    @property
    def byte_length(self) -> int:
        return self.value.byte_length


@dataclass(frozen=True)
class SymbolRef:
    """Symbolic address operand."""
    name: str


Operand = Union[CharLiteral, HexLiteral, DecimalConstant, Malformed, LiteralRef, SymbolRef]


# =============================================================================
# Classifiers
# =============================================================================

def _quoted_body(text: str) -> Optional[tuple[str, str]]:
    """Split ``C'abc'`` into ('C', 'abc'); None if not a quoted form."""
    if len(text) >= 3 and text[1] == "'" and text.endswith("'"):
        return text[0].upper(), text[2:-1]
    return None


def classify_quoted(text: str) -> Optional[DataOperand]:
    """
    Classify a C'...' or X'...' constant.

    Returns None when ``text`` is not in quoted form at all, so callers can
    try other interpretations.
    """
    quoted = _quoted_body(text)
    if quoted is None:
        return None
    prefix, body = quoted

    if prefix == "C":
        if not body:
            return Malformed(text, "empty character constant")
        return CharLiteral(body)

    if prefix == "X":
        if not body:
            return Malformed(text, "empty hex constant")
        if not _HEX_DIGITS_RE.match(body):
            return Malformed(text, "hex constant contains non-hex digits")
        if len(body) % 2:
            return Malformed(text, "hex constant needs an even number of digits")
        return HexLiteral(body.upper())

    return Malformed(text, f"unknown constant type '{prefix}'")


def classify_decimal(text: str) -> DataOperand:
    """Classify a decimal WORD constant."""
    if not _DECIMAL_RE.match(text):
        return Malformed(text, "not a decimal number", numeric=True)
    value = int(text)
    if not WORD_MIN <= value <= WORD_MAX:
        return Malformed(text, "value does not fit in a 3-byte word", numeric=True)
    return DecimalConstant(value)


def classify_byte_operand(text: Optional[str]) -> DataOperand:
    """Classify the operand of a BYTE directive."""
    if not text:
        return Malformed("", "BYTE needs an operand")
    classified = classify_quoted(text)
    if classified is None:
        return Malformed(text, "BYTE operand must be C'...' or X'...'")
    return classified


def classify_word_operand(text: Optional[str]) -> DataOperand:
    """Classify the operand of a WORD directive."""
    if not text:
        return Malformed("", "WORD needs an operand", numeric=True)
    return classify_decimal(text)


def classify_literal(token: str) -> LiteralRef:
    """
    Classify a literal token such as ``=C'EOF'``, ``=X'05'`` or ``=10``.

    The body is classified the same way as a BYTE operand; a plain decimal
    body is a WORD-sized literal.
    """
    body = token[1:]
    value = classify_quoted(body)
    if value is None:
        if _DECIMAL_RE.match(body):
            value = classify_decimal(body)
        else:
            value = Malformed(token, "literal must be =C'...', =X'...' or a decimal number")
    return LiteralRef(token, value)


def classify_operand(text: Optional[str]) -> Optional[Operand]:
    """Classify an instruction operand (symbol or literal)."""
    if not text:
        return None
    if text.startswith("="):
        return classify_literal(text)
    return SymbolRef(text)


def is_literal(text: Optional[str]) -> bool:
    return bool(text) and text.startswith("=")


# =============================================================================
# Numeric Fields
# =============================================================================

def parse_number(text: Optional[str], base: int = 10) -> tuple[int, bool]:
    """
    Best-effort integer parse.

    Args:
        text: Field text (may be None or empty)
        base: 16 for START addresses, 10 for RESW/RESB counts

    Returns:
        (value, ok). When ``ok`` is False the value is what could be
        salvaged: the leading valid digits, or 0.

    Examples:
        >>> parse_number("1000", 16)
        (4096, True)
        >>> parse_number("12X")
        (12, False)
    """
    if not text:
        return 0, False
    try:
        # int() also accepts "1_000"; digit separators are not valid here
        value = int(text, base) if "_" not in text else None
    except ValueError:
        value = None
    if value is not None:
        if value >= 0:
            return value, True
        return 0, False

    digits = "0123456789ABCDEF"[:base]
    prefix = ""
    for ch in text.upper():
        if ch not in digits:
            break
        prefix += ch
    return (int(prefix, base) if prefix else 0), False
