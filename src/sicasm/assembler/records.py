"""
Object Program Records
======================

This module defines the records of an object program and their exact text
format. One record is one line of the object file.

Record Formats
--------------
    Header   H NNNNNN SSSS LLLLLL
             name (6, space padded), start (4 hex), length (6 hex)
    Text     T SSSS LL CC...
             start (4 hex), byte count (2 hex), code (2 hex per byte)
    End      E SSSS
             execution address (4 hex)

Example (no spaces in the real file):

    HCOPY  100000001B
    T10001200100F1810123810000C101500101800000A
    T101803454F46
    E1000

Loading
-------
``ObjectProgram.memory_image`` places every Text record at its address
inside a buffer of ``program_length`` bytes, filling reserved (RESW/RESB)
space with a fill byte. This is the loader-side view used to check that a
program round-trips.
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Union

from sicasm.errors import ObjectFormatError
from sicasm.assembler.encoder import ADDRESS_DIGITS, to_hex


NAME_WIDTH = 6
LENGTH_DIGITS = 6
COUNT_DIGITS = 2


def _parse_hex(text: str, what: str, record: str) -> int:
    try:
        if not text or text != text.strip():
            raise ValueError(text)
        return int(text, 16)
    except ValueError:
        raise ObjectFormatError(f"invalid {what} '{text}' in record '{record}'") from None


# =============================================================================
# Record Types
# =============================================================================

@dataclass(frozen=True)
class HeaderRecord:
    """
    Program identity and size.

    Attributes:
        program_name: Name from the START label (truncated/padded on output)
        start_address: Load address
        program_length: Size of the program in bytes
    """
    program_name: str
    start_address: int
    program_length: int

    TAG = "H"

    def to_text(self, name_width: int = NAME_WIDTH) -> str:
        name = self.program_name[:name_width].ljust(name_width)
        return (
            f"{self.TAG}{name}"
            f"{to_hex(self.start_address, ADDRESS_DIGITS)}"
            f"{to_hex(self.program_length, LENGTH_DIGITS)}"
        )

    @classmethod
    def from_text(cls, text: str, name_width: int = NAME_WIDTH) -> "HeaderRecord":
        expected = 1 + name_width + ADDRESS_DIGITS + LENGTH_DIGITS
        if len(text) != expected:
            raise ObjectFormatError(f"header record must be {expected} characters: '{text}'")
        name = text[1:1 + name_width].rstrip()
        start = _parse_hex(text[1 + name_width:1 + name_width + ADDRESS_DIGITS], "start address", text)
        length = _parse_hex(text[1 + name_width + ADDRESS_DIGITS:], "program length", text)
        return cls(name, start, length)


@dataclass(frozen=True)
class TextRecord:
    """
    A contiguous run of object code.

    The length field written to the object file is always ``len(code)``, so
    it cannot disagree with the payload.

    Attributes:
        start_address: Address of the first byte
        code: The object code bytes
    """
    start_address: int
    code: bytes

    TAG = "T"

    @property
    def byte_length(self) -> int:
        return len(self.code)

    @property
    def end_address(self) -> int:
        """First address past this record."""
        return self.start_address + len(self.code)

    @property
    def hex_code(self) -> str:
        return self.code.hex().upper()

    def to_text(self) -> str:
        return (
            f"{self.TAG}{to_hex(self.start_address, ADDRESS_DIGITS)}"
            f"{to_hex(self.byte_length, COUNT_DIGITS)}{self.hex_code}"
        )

    @classmethod
    def from_text(cls, text: str) -> "TextRecord":
        prefix = 1 + ADDRESS_DIGITS + COUNT_DIGITS
        if len(text) < prefix:
            raise ObjectFormatError(f"text record too short: '{text}'")
        start = _parse_hex(text[1:1 + ADDRESS_DIGITS], "start address", text)
        count = _parse_hex(text[1 + ADDRESS_DIGITS:prefix], "byte count", text)
        payload = text[prefix:]
        if len(payload) != count * 2:
            raise ObjectFormatError(
                f"text record declares {count} bytes but carries {len(payload) / 2:g}: '{text}'"
            )
        try:
            code = bytes.fromhex(payload)
        except ValueError:
            raise ObjectFormatError(f"invalid object code in record '{text}'") from None
        return cls(start, code)


@dataclass(frozen=True)
class EndRecord:
    """
    Program terminator.

    Attributes:
        start_address: Execution entry point
    """
    start_address: int

    TAG = "E"

    def to_text(self) -> str:
        return f"{self.TAG}{to_hex(self.start_address, ADDRESS_DIGITS)}"

    @classmethod
    def from_text(cls, text: str) -> "EndRecord":
        if len(text) != 1 + ADDRESS_DIGITS:
            raise ObjectFormatError(f"end record must be {1 + ADDRESS_DIGITS} characters: '{text}'")
        return cls(_parse_hex(text[1:], "execution address", text))


ObjectRecord = Union[HeaderRecord, TextRecord, EndRecord]


def parse_record(text: str) -> ObjectRecord:
    """
    Parse one line of an object file.

    Raises:
        ObjectFormatError: For unknown tags or malformed fields
    """
    text = text.rstrip("\r\n")
    if not text:
        raise ObjectFormatError("empty record")
    tag = text[0]
    if tag == HeaderRecord.TAG:
        return HeaderRecord.from_text(text)
    if tag == TextRecord.TAG:
        return TextRecord.from_text(text)
    if tag == EndRecord.TAG:
        return EndRecord.from_text(text)
    raise ObjectFormatError(f"unknown record type '{tag}'")


# =============================================================================
# Object Program
# =============================================================================

@dataclass
class ObjectProgram:
    """
    A complete object program: Header, Text records, End.

    Usage:
        program = ObjectProgram.from_text(path.read_text())
        image = program.memory_image()
    """
    header: HeaderRecord
    text_records: list[TextRecord] = field(default_factory=list)
    end: Optional[EndRecord] = None
    name_width: int = NAME_WIDTH

    def __post_init__(self):
        if self.end is None:
            self.end = EndRecord(self.header.start_address)

    @property
    def records(self) -> list[ObjectRecord]:
        return [self.header, *self.text_records, self.end]

    def __iter__(self) -> Iterator[ObjectRecord]:
        return iter(self.records)

    @property
    def start_address(self) -> int:
        return self.header.start_address

    @property
    def program_length(self) -> int:
        return self.header.program_length

    def lines(self) -> list[str]:
        return [self.header.to_text(self.name_width)] + [
            record.to_text() for record in self.records[1:]
        ]

    def to_text(self) -> str:
        """The object file contents, one record per line."""
        return "\n".join(self.lines()) + "\n"

    @classmethod
    def from_records(cls, records: Iterable[ObjectRecord]) -> "ObjectProgram":
        """
        Assemble a program from parsed records.

        Raises:
            ObjectFormatError: If the Header is not first or the End not last
        """
        records = list(records)
        if not records or not isinstance(records[0], HeaderRecord):
            raise ObjectFormatError("object program must start with a header record")
        if len(records) < 2 or not isinstance(records[-1], EndRecord):
            raise ObjectFormatError("object program must finish with an end record")
        middle = records[1:-1]
        for record in middle:
            if not isinstance(record, TextRecord):
                raise ObjectFormatError(f"unexpected {type(record).__name__} inside the program")
        return cls(records[0], middle, records[-1])

    @classmethod
    def from_text(cls, text: str) -> "ObjectProgram":
        """Parse a whole object file."""
        return cls.from_records(parse_record(line) for line in text.splitlines() if line.strip())

    def memory_image(self, fill: int = 0) -> bytes:
        """
        Load the program into a buffer of ``program_length`` bytes.

        Bytes not covered by any Text record (reserved space) hold ``fill``.

        Raises:
            ObjectFormatError: If a Text record falls outside the program
                or overlaps an earlier one
        """
        image = bytearray([fill]) * self.program_length
        written = bytearray(self.program_length)
        for record in self.text_records:
            offset = record.start_address - self.start_address
            if offset < 0 or offset + record.byte_length > self.program_length:
                raise ObjectFormatError(
                    f"text record at {record.start_address:04X} lies outside the program"
                )
            if any(written[offset:offset + record.byte_length]):
                raise ObjectFormatError(
                    f"text record at {record.start_address:04X} overlaps another record"
                )
            image[offset:offset + record.byte_length] = record.code
            written[offset:offset + record.byte_length] = b"\x01" * record.byte_length
        return bytes(image)
