"""
Assembly Source Lexer
=====================

This module splits assembly source text into SourceLine records of
(label, opcode, operand). The two passes never see raw text; they consume
these records.

Line Format
-----------
Fields are separated by spaces or tabs:

    LABEL   OPCODE  OPERAND   trailing words are a comment
            OPCODE  OPERAND
    LABEL   OPCODE

A line that starts with whitespace has no label. A line that starts in
column 1 is read as follows:

- one field: an opcode on its own (``END``)
- first field is a mnemonic or directive and the second is not:
  ``OPCODE OPERAND``
- otherwise: ``LABEL OPCODE [OPERAND]``

Quoted constants are a single field, spaces included (``C'A B'``).

Comments
--------
- Full-line: first non-blank character is '.' or '*'
- Trailing: ';' outside quotes ends the line

Case
----
Labels, opcodes and operands are upper-cased. The text inside a C'...'
constant keeps its case, since it becomes object code byte for byte.

Example
-------
>>> from sicasm.assembler.lexer import Lexer
>>> lexer = Lexer("COPY START 1000\\n     LDA =c'eof'", "copy.asm")
>>> for line in lexer.lines():
...     print(line)
SourceLine(COPY, START, 1000, copy.asm:1:1)
SourceLine(-, LDA, =C'eof', copy.asm:2:6)
"""

from dataclasses import dataclass
from typing import Iterator, Optional

from sicasm.errors import AssemblySyntaxError, SourceLocation
from sicasm.assembler.opcodes import DEFAULT_CATALOG, OperationCatalog


# =============================================================================
# Source Line
# =============================================================================

@dataclass(frozen=True)
class SourceLine:
    """
    One statement of the source program.

    Attributes:
        label: Label field, or None
        opcode: Mnemonic or directive (may be "" for a label-only line)
        operand: Operand field, or None
        location: Position of the first field
        text: The original line, for listings and error context
        operand_column: Column of the operand field (0 if none)
    """
    label: Optional[str]
    opcode: str
    operand: Optional[str] = None
    location: Optional[SourceLocation] = None
    text: Optional[str] = None
    operand_column: int = 0

    def __repr__(self) -> str:
        return f"SourceLine({self.label or '-'}, {self.opcode}, {self.operand or '-'}, {self.location})"

    @property
    def operand_location(self) -> Optional[SourceLocation]:
        """Location of the operand field, falling back to the line start."""
        if self.location is None or not self.operand_column:
            return self.location
        return SourceLocation(self.location.filename, self.location.line, self.operand_column)

    @classmethod
    def of(cls, label: Optional[str], opcode: str, operand: Optional[str] = None) -> "SourceLine":
        """Build a line from bare fields, treating "" as absent."""
        return cls(label or None, (opcode or "").upper(), operand or None)


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Splits assembly source into SourceLine records.

    Syntax errors (an unterminated quote) do not stop the scan: the line is
    skipped and the error is kept in ``errors`` for the caller to report.

    Usage:
        lexer = Lexer(source_text, filename)
        lines = list(lexer.lines())
        problems = lexer.errors

    Attributes:
        source: The source code being split
        filename: Name of the source file (for error reporting)
        errors: Syntax errors found so far
    """

    FULL_LINE_COMMENTS = (".", "*")
    TRAILING_COMMENT = ";"

    def __init__(self, source: str, filename: str = "<input>",
                 catalog: OperationCatalog = DEFAULT_CATALOG):
        """
        Initialize the lexer with source code.

        Args:
            source: The assembly source code
            filename: Name of the source file (for error messages)
            catalog: Used to tell opcodes from labels in column 1
        """
        self.source = source
        self.filename = filename
        self.errors: list[AssemblySyntaxError] = []
        self._catalog = catalog

    def lines(self) -> Iterator[SourceLine]:
        """
        Generate SourceLine records, skipping blanks and comments.

        Yields:
            One SourceLine per statement
        """
        for number, text in enumerate(self.source.splitlines(), start=1):
            try:
                line = self.split_line(text, number)
            except AssemblySyntaxError as e:
                self.errors.append(e)
                continue
            if line is not None:
                yield line

    def split_line(self, text: str, number: int = 1) -> Optional[SourceLine]:
        """
        Split one line of source into fields.

        Returns:
            A SourceLine, or None for blank and comment lines

        Raises:
            AssemblySyntaxError: If a quote is not terminated
        """
        stripped = text.strip()
        if not stripped or stripped.startswith(self.FULL_LINE_COMMENTS):
            return None

        fields = self._fields(text, number)
        if not fields:
            return None

        has_label = not text[0].isspace()
        if has_label and len(fields) >= 2:
            first, second = fields[0][0].upper(), fields[1][0].upper()
            if self._catalog.is_known(first) and not self._catalog.is_known(second):
                has_label = False
        elif len(fields) == 1:
            has_label = False

        if has_label:
            label_field, rest = fields[0], fields[1:]
        else:
            label_field, rest = None, fields

        opcode, opcode_col = rest[0] if rest else ("", 0)
        operand, operand_col = rest[1] if len(rest) > 1 else (None, 0)

        first_col = label_field[1] if label_field else opcode_col
        return SourceLine(
            label=label_field[0].upper() if label_field else None,
            opcode=opcode.upper(),
            operand=normalize_operand(operand) if operand is not None else None,
            location=SourceLocation(self.filename, number, first_col),
            text=text.rstrip(),
            operand_column=operand_col,
        )

    def _fields(self, text: str, number: int) -> list[tuple[str, int]]:
        """Whitespace-separated fields with their 1-based columns."""
        fields: list[tuple[str, int]] = []
        current = ""
        start = 0
        in_quote = False
        quote_col = 0

        for index, char in enumerate(text):
            if in_quote:
                current += char
                if char == "'":
                    in_quote = False
                continue
            if char == self.TRAILING_COMMENT:
                break
            if char in " \t":
                if current:
                    fields.append((current, start))
                    current = ""
                continue
            if not current:
                start = index + 1
            if char == "'":
                in_quote = True
                quote_col = index + 1
            current += char

        if in_quote:
            raise AssemblySyntaxError(
                "unterminated quote",
                SourceLocation(self.filename, number, quote_col),
                source_line=text.rstrip(),
            )
        if current:
            fields.append((current, start))
        return fields


def normalize_operand(operand: str) -> str:
    """
    Upper-case an operand, keeping the body of C'...' constants as written.

    >>> normalize_operand("=c'eof'")
    "=C'eof'"
    >>> normalize_operand("x'f1'")
    "X'F1'"
    """
    quote = operand.find("'")
    if quote > 0 and operand[quote - 1] in "cC":
        return operand[:quote].upper() + operand[quote:]
    return operand.upper()


def split_source(source: str, filename: str = "<input>",
                 catalog: OperationCatalog = DEFAULT_CATALOG) -> tuple[list[SourceLine], list[AssemblySyntaxError]]:
    """Split a whole source text; returns the lines and any syntax errors."""
    lexer = Lexer(source, filename, catalog)
    lines = list(lexer.lines())
    return lines, lexer.errors
