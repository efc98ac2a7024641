"""
Object Code Encoder
===================

Pure functions that turn classified operands and integers into the hex
text used by Text records. Nothing here touches the symbol or literal
tables.

    encode_data(CharLiteral("EOF"))    -> "454F46"
    encode_data(HexLiteral("F1"))      -> "F1"
    encode_data(DecimalConstant(10))   -> "00000A"
    encode_data(DecimalConstant(-1))   -> "FFFFFF"
    encode_instruction(0x00, 0x100F)   -> "00100F"
"""

from sicasm.assembler.operands import (
    CharLiteral,
    DataOperand,
    DecimalConstant,
    HexLiteral,
    LiteralRef,
    Malformed,
    WORD_MAX,
    WORD_MIN,
)


# Address field of an instruction, and Header/Text/End addresses
ADDRESS_DIGITS = 4
WORD_DIGITS = 6

# Shown in listings in place of code that could not be encoded
ERROR_MARKER = "ERROR"


def to_hex(value: int, width: int) -> str:
    """
    Format a non-negative integer as upper-case hex, zero-padded to ``width``.

    Raises:
        ValueError: If the value is negative or needs more than ``width`` digits
    """
    if value < 0:
        raise ValueError(f"cannot encode negative value {value} as hex")
    text = f"{value:0{width}X}"
    if len(text) > width:
        raise ValueError(f"value {value:#x} does not fit in {width} hex digits")
    return text


def encode_word(value: int) -> str:
    """Encode an integer as a 3-byte word (24-bit two's complement)."""
    if not WORD_MIN <= value <= WORD_MAX:
        raise ValueError(f"value {value} does not fit in a 3-byte word")
    return to_hex(value & 0xFFFFFF, WORD_DIGITS)


def encode_chars(text: str) -> str:
    """Encode each character as one byte."""
    codes = []
    for ch in text:
        code = ord(ch)
        if code > 0xFF:
            raise ValueError(f"character {ch!r} does not fit in one byte")
        codes.append(to_hex(code, 2))
    return "".join(codes)


def encode_data(operand: DataOperand) -> str:
    """
    Encode a WORD/BYTE operand or literal body.

    Raises:
        ValueError: For Malformed operands; the caller records the failure
    """
    if isinstance(operand, LiteralRef):
        return encode_data(operand.value)
    if isinstance(operand, CharLiteral):
        return encode_chars(operand.text)
    if isinstance(operand, HexLiteral):
        return operand.digits.upper()
    if isinstance(operand, DecimalConstant):
        return encode_word(operand.value)
    if isinstance(operand, Malformed):
        raise ValueError(f"cannot encode '{operand.text}': {operand.reason}")
    raise TypeError(f"not a data operand: {operand!r}")


def encode_instruction(opcode: int, address: int, length: int = 3) -> str:
    """
    Encode an instruction: opcode byte followed by the address.

    The address fills the remaining ``length - 1`` bytes (4 hex digits for
    the standard 3-byte format). A 1-byte instruction is the opcode alone.

    Raises:
        ValueError: If the address does not fit in the address field
    """
    if length == 1:
        return to_hex(opcode, 2)
    return to_hex(opcode, 2) + to_hex(address, (length - 1) * 2)
