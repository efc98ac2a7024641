"""
sicasm Error Hierarchy
======================

This module defines the exception hierarchy for the whole package.
All exceptions inherit from SicAsmError, allowing callers to catch every
assembler-related error with a single except clause if desired.

Exception Hierarchy
-------------------
SicAsmError (base)
├── AssemblerError (assembly diagnostics)
│   ├── AssemblySyntaxError - source line cannot be split into fields
│   ├── DuplicateSymbolError - label defined more than once
│   ├── UndefinedSymbolError - operand resolves to no symbol or literal
│   ├── MalformedNumberError - numeric field fails to parse
│   ├── OperandError - malformed BYTE/WORD/literal operand
│   ├── UnknownOpcodeError - opcode is neither a mnemonic nor a directive
│   ├── DirectiveError - directive used in the wrong place
│   └── TooManyErrors - error limit reached
└── ObjectFormatError - malformed object program record

Recovery Model
--------------
Assembly never stops on a diagnostic. The passes build an exception object
for every problem they recover from and hand it to an ErrorCollector, which
keeps errors and warnings apart. Each diagnostic therefore stays a
structured value (type, location, symbol, hint) rather than console text.

Message format:
    filename:line:column: error: description
    source_line_text
        ^ (pointer to error location)
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class SicAsmError(Exception):
    """
    Base exception for all sicasm errors.

        try:
            assembler.assemble_file("copy.asm")
        except SicAsmError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed, 0 when unknown)
    """
    filename: str
    line: int
    column: int = 0

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(SicAsmError):
    """
    Base exception for all assembly diagnostics.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The actual source text at the error location (optional)
        severity: "error" or "warning"; decides how the collector files it
    """

    severity = "error"

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
        severity: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        if severity is not None:
            self.severity = severity
        super().__init__(self._format_message())

    @property
    def is_warning(self) -> bool:
        return self.severity == "warning"

    def _format_message(self) -> str:
        """
        Format the message with location, source context, and hint.

        Example output:
            copy.asm:3:12: warning: undefined symbol 'TENN'
                LOOP   LDA   TENN
                             ^
            hint: did you mean 'TEN'?
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: {self.severity}: {self.message}")
        else:
            parts.append(f"{self.severity}: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class AssemblySyntaxError(AssemblerError):
    """
    A source line cannot be split into label/opcode/operand fields.

    Examples:
        - Unterminated quote in C'...' or X'...'
        - More fields than the line format allows
    """
    pass


class UndefinedSymbolError(AssemblerError):
    """
    Operand resolves to neither a symbol nor a literal.

    Raised during the second pass. This is a recoverable condition: the
    operand address defaults to zero and assembly goes on, so the
    diagnostic is a warning by default.

    Similarly-named symbols are offered as a hint to catch typos.
    """

    severity = "warning"

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
        similar_symbols: Optional[list[str]] = None,
        fallback: int = 0,
    ):
        self.symbol = symbol
        self.similar_symbols = similar_symbols or []
        self.fallback = fallback

        if not hint and self.similar_symbols:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_symbols[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__(
            f"undefined symbol '{symbol}', using address {fallback:04X}",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class DuplicateSymbolError(AssemblerError):
    """
    Symbol defined multiple times.

    The first definition stays in the symbol table; later ones are
    reported and dropped.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
        original_address: Optional[int] = None,
        source_line: Optional[str] = None,
    ):
        self.symbol = symbol
        self.original_location = original_location
        self.original_address = original_address

        hint = None
        if original_location:
            hint = f"'{symbol}' was first defined at {original_location}"
            if original_address is not None:
                hint += f" (address {original_address:04X}), which is kept"

        super().__init__(
            f"duplicate symbol '{symbol}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class MalformedNumberError(AssemblerError):
    """
    A numeric field fails to parse.

    Covers the START address (hex), RESW/RESB counts and WORD constants
    (decimal). The caller decides the fallback value and puts it in the
    hint so the substitution is visible.

    Example:
        BUF  RESB  1O    ; letter O instead of zero
    """

    def __init__(
        self,
        text: str,
        field: str,
        location: Optional[SourceLocation] = None,
        fallback: Optional[int] = None,
        source_line: Optional[str] = None,
    ):
        self.text = text
        self.field = field
        self.fallback = fallback

        hint = None
        if fallback is not None:
            hint = f"using {fallback} instead"

        super().__init__(
            f"malformed {field} '{text}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class OperandError(AssemblerError):
    """
    Malformed data operand.

    Raised for BYTE operands that are neither C'...' nor X'...', hex
    literals with an odd digit count or non-hex digits, and values that
    do not fit in a 3-byte word.
    """
    pass


class UnknownOpcodeError(AssemblerError):
    """
    Opcode is neither a catalog mnemonic nor a known directive.

    The line occupies no space. Whether this is reported as a warning,
    an error, or not at all depends on the configured policy.
    """

    def __init__(
        self,
        opcode: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        similar_opcodes: Optional[list[str]] = None,
        severity: Optional[str] = None,
    ):
        self.opcode = opcode
        self.similar_opcodes = similar_opcodes or []

        hint = None
        if self.similar_opcodes:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_opcodes[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__(
            f"unknown opcode '{opcode}', line treated as zero width",
            location=location,
            hint=hint,
            source_line=source_line,
            severity=severity,
        )


class DirectiveError(AssemblerError):
    """
    Directive used incorrectly.

    Examples:
        - START anywhere but the first line
        - Source without START or END
        - Statements after END
    """

    severity = "warning"


# =============================================================================
# Object Program Exceptions
# =============================================================================

class ObjectFormatError(SicAsmError):
    """
    Malformed object program record.

    Raised when reading H/T/E record text back in: unknown record tag,
    wrong field widths, non-hex digits, or a Text record whose length
    field disagrees with its payload.
    """
    pass


# =============================================================================
# Error Collection for Multiple Error Reporting
# =============================================================================

class ErrorCollector:
    """
    Collects diagnostics for batch reporting.

    Both passes keep going after a problem, filing every diagnostic here
    so the whole list can be reported at the end of the run.

    Example:
        collector = ErrorCollector(max_errors=100)

        try:
            collector.add(UndefinedSymbolError("TENN", location))
        except TooManyErrors:
            pass

        if collector.has_errors():
            print(collector.report())
    """

    def __init__(self, max_errors: int = 100):
        """
        Initialize the error collector.

        Args:
            max_errors: Maximum errors to collect before raising TooManyErrors
        """
        self.errors: list[AssemblerError] = []
        self.warnings: list[AssemblerError] = []
        self.max_errors = max_errors

    def add(self, error: AssemblerError) -> None:
        """
        Add a diagnostic, filed by its severity.

        Raises:
            TooManyErrors: If max_errors has been reached
        """
        if error.is_warning:
            self.warnings.append(error)
            return
        self.errors.append(error)
        if len(self.errors) >= self.max_errors:
            raise TooManyErrors(f"too many errors ({self.max_errors}), stopping")

    def has_errors(self) -> bool:
        """Return True if any errors have been collected."""
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        """Return True if any warnings have been collected."""
        return len(self.warnings) > 0

    def error_count(self) -> int:
        return len(self.errors)

    def warning_count(self) -> int:
        return len(self.warnings)

    def diagnostics(self) -> list[AssemblerError]:
        """All diagnostics, in source order where locations are known."""
        combined = self.errors + self.warnings
        return sorted(
            combined,
            key=lambda d: (d.location.line, d.location.column) if d.location else (0, 0),
        )

    def of_type(self, kind: type) -> list[AssemblerError]:
        """Diagnostics that are instances of ``kind``."""
        return [d for d in self.diagnostics() if isinstance(d, kind)]

    def report(self) -> str:
        """
        Format all diagnostics for display.

        Returns:
            Formatted string with errors, then warnings, then a summary line
        """
        lines = []

        for error in self.errors:
            lines.append(str(error))
            lines.append("")

        for warning in self.warnings:
            lines.append(str(warning))
            lines.append("")

        error_word = "error" if len(self.errors) == 1 else "errors"
        warning_word = "warning" if len(self.warnings) == 1 else "warnings"
        lines.append(
            f"{len(self.errors)} {error_word}, {len(self.warnings)} {warning_word}"
        )

        return "\n".join(lines)

    def clear(self) -> None:
        """Clear all collected diagnostics."""
        self.errors.clear()
        self.warnings.clear()


class TooManyErrors(AssemblerError):
    """
    Raised when too many errors have been encountered.

    Stops the run when the source is fundamentally broken (for example a
    binary file passed as input).
    """

    def __init__(self, message: str = "too many errors"):
        super().__init__(message)
