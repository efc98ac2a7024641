"""
SIC Assembler - Main Interface
==============================

This module provides the main Assembler class, the primary interface for
assembling SIC source code. It coordinates the lexer, Pass I and Pass II
and produces an object program of Header, Text and End records.

Example Usage
-------------
>>> from sicasm.assembler import Assembler
>>>
>>> asm = Assembler()
>>> program = asm.assemble('''
... COPY    START   1000
... LOOP    LDA     TEN
...         END     LOOP
... TEN     WORD    10
... ''')
>>> print(program.to_text())
>>>
>>> asm.write_object("copy.obj")
>>> asm.write_listing("copy.lst")

Command-Line Usage
------------------
The assembler can also be invoked from the command line:

    $ sicasm copy.asm -o copy.obj -l copy.lst -s copy.sym

Options:
    -o, --output FILE          Output object file (default: input.obj)
    -l, --listing FILE         Generate listing file
    -s, --symbols FILE         Generate symbol file
    --max-text-bytes N         Byte cap of one Text record
    --unknown-opcode POLICY    ignore, warn or error
    -v, --verbose              Verbose output
"""

import logging
from pathlib import Path
from typing import Iterable, Mapping, Optional

from sicasm.config import AssemblerConfig, DEFAULT_CONFIG
from sicasm.errors import AssemblerError, ErrorCollector, SicAsmError
from sicasm.assembler.encoder import ERROR_MARKER
from sicasm.assembler.lexer import Lexer, SourceLine
from sicasm.assembler.opcodes import DEFAULT_CATALOG, OperationCatalog
from sicasm.assembler.pass_one import LocationResolver
from sicasm.assembler.pass_two import ListingEntry, ObjectCodeGenerator
from sicasm.assembler.records import ObjectProgram
from sicasm.assembler.tables import IntermediateLine, Literal, PassOneResult, Symbol

logger = logging.getLogger(__name__)


class Assembler:
    """
    Main SIC assembler class.

    One instance can assemble any number of programs; each call to an
    ``assemble*`` method starts from empty tables and an empty error list.
    The results of the last run stay available through the ``get_*``
    methods and the writers.

    Attributes:
        config: Run configuration
        catalog: Instruction set
    """

    def __init__(self, config: Optional[AssemblerConfig] = None,
                 catalog: OperationCatalog = DEFAULT_CATALOG,
                 verbose: bool = False):
        """
        Initialize the assembler.

        Args:
            config: Run configuration (defaults to AssemblerConfig())
            catalog: Instruction set (defaults to the standard SIC subset)
            verbose: Log progress messages at INFO level
        """
        self.config = config or DEFAULT_CONFIG
        self.catalog = catalog
        self._verbose = verbose
        self._errors = ErrorCollector(self.config.max_errors)
        self._result: Optional[PassOneResult] = None
        self._program: Optional[ObjectProgram] = None
        self._listing: list[ListingEntry] = []
        self._source_file: Optional[Path] = None

    # =========================================================================
    # Assembly Methods
    # =========================================================================

    def assemble(self, source: str, filename: str = "<input>") -> ObjectProgram:
        """
        Assemble source code from a string.

        The pipeline is:
        1. Split the source into lines (lexer)
        2. Pass I: addresses, symbol table, literal table
        3. Pass II: object code and records

        Args:
            source: Assembly source code
            filename: Virtual filename for error messages

        Returns:
            The object program. It is produced even when diagnostics were
            reported; check ``has_errors()``.

        Raises:
            TooManyErrors: If the error limit is reached
        """
        self._errors.clear()
        lexer = Lexer(source, filename, self.catalog)
        lines = list(lexer.lines())
        for error in lexer.errors:
            logger.error("%s", error.message)
            self._errors.add(error)
        return self._run(lines)

    def assemble_lines(self, lines: Iterable[SourceLine]) -> ObjectProgram:
        """
        Assemble pre-split source lines.

        Useful when the source does not come from text, e.g. tests or
        another front end building SourceLine records directly.
        """
        self._errors.clear()
        return self._run(list(lines))

    def assemble_file(self, filepath: str | Path) -> ObjectProgram:
        """
        Assemble source code from a file.

        Args:
            filepath: Path to assembly source file

        Returns:
            The object program

        Raises:
            FileNotFoundError: If source file not found
        """
        filepath = Path(filepath)
        self._source_file = filepath
        self._log(f"Assembling {filepath}...")
        source = filepath.read_text(encoding="latin-1")
        return self.assemble(source, str(filepath))

    def _run(self, lines: list[SourceLine]) -> ObjectProgram:
        self._log(f"Read {len(lines)} statements")

        resolver = LocationResolver(self.catalog, self.config, self._errors)
        self._result = resolver.resolve(lines)
        self._log(
            f"Pass I: {len(self._result.symbols)} symbols, "
            f"{len(self._result.literals)} literals, "
            f"length {self._result.program_length:06X}"
        )

        generator = ObjectCodeGenerator(self.catalog, self.config, self._errors)
        self._program = generator.generate(self._result)
        self._listing = generator.listing
        self._log(f"Pass II: {len(self._program.text_records)} text records")

        if self._errors.has_errors():
            logger.info("Assembly finished with %d error(s)", self._errors.error_count())
        return self._program

    def _log(self, message: str) -> None:
        if self._verbose:
            logger.info("%s", message)
        else:
            logger.debug("%s", message)

    # =========================================================================
    # Results
    # =========================================================================

    def _require(self) -> PassOneResult:
        if self._result is None:
            raise SicAsmError("nothing has been assembled yet")
        return self._result

    def get_object_program(self) -> ObjectProgram:
        """
        Get the object program of the last run.

        Raises:
            SicAsmError: If nothing has been assembled yet
        """
        self._require()
        return self._program

    def get_symbols(self) -> Mapping[str, Symbol]:
        """Get the (read-only) symbol table of the last run."""
        return self._require().symbols

    def get_literals(self) -> Mapping[str, Literal]:
        """Get the (read-only) literal table of the last run."""
        return self._require().literals

    def get_intermediate(self) -> tuple[IntermediateLine, ...]:
        return self._require().intermediate

    @property
    def diagnostics(self) -> list[AssemblerError]:
        """All errors and warnings of the last run, in source order."""
        return self._errors.diagnostics()

    def get_listing(self) -> str:
        """
        Get the assembly listing as a string.

        Returns:
            Listing with addresses, object code and source, followed by
            the symbol and literal tables
        """
        result = self._require()
        lines = []
        lines.append(f"SIC Assembler Listing: {result.program_name or '<unnamed>'}")
        lines.append("=" * 72)
        lines.append("")
        lines.append("Addr  Code          Source")
        lines.append("-" * 72)
        for entry in self._listing:
            lines.append(_listing_line(entry))
        lines.append("")
        lines.append("Symbol Table")
        lines.append("-" * 30)
        for name, sym in sorted(result.symbols.items()):
            lines.append(f"{name:20s} = {sym.address:04X}")
        if result.literals:
            lines.append("")
            lines.append("Literal Table")
            lines.append("-" * 30)
            for token, lit in result.literals.items():
                address = f"{lit.address:04X}" if lit.is_placed else "----"
                lines.append(f"{token:20s} = {address}  ({lit.length} bytes)")
        return "\n".join(lines) + "\n"

    # =========================================================================
    # Output Methods
    # =========================================================================

    def write_object(self, filepath: str | Path) -> None:
        """
        Write the object program, one record per line.

        Args:
            filepath: Output file path
        """
        program = self.get_object_program()
        Path(filepath).write_text(program.to_text())
        self._log(f"Wrote {filepath}")

    def write_listing(self, filepath: str | Path) -> None:
        """Write assembly listing file."""
        Path(filepath).write_text(self.get_listing())
        self._log(f"Wrote listing to {filepath}")

    def write_symbols(self, filepath: str | Path) -> None:
        """
        Write symbol table file.

        Format: name address (one per line), then literals
        """
        result = self._require()
        with open(filepath, "w") as f:
            f.write("# Symbol table\n")
            f.write("# Generated by sicasm\n")
            for name, sym in sorted(result.symbols.items()):
                f.write(f"{name} {sym.address:04X}\n")
            for token, lit in result.literals.items():
                if lit.is_placed:
                    f.write(f"{token} {lit.address:04X} {lit.length}\n")
        self._log(f"Wrote symbols to {filepath}")

    # =========================================================================
    # Error Handling
    # =========================================================================

    def has_errors(self) -> bool:
        """
        Check if assembly produced errors.

        Warnings do not count.
        """
        return self._errors.has_errors()

    def has_warnings(self) -> bool:
        return self._errors.has_warnings()

    def get_error_report(self) -> str:
        """
        Get formatted error report.

        Returns:
            Error report string
        """
        return self._errors.report()


def _listing_line(entry: ListingEntry) -> str:
    line = entry.line
    code = entry.code
    if line.source_line is not None:
        source = line.source_line
    else:
        # Pool literals and an implied END have no source text
        source = f"{line.label or '':8s}{line.opcode:8s}{line.operand or ''}".rstrip()
    if len(code) > 12 and code != ERROR_MARKER:
        code = code[:10] + ".."
    return f"{line.address:04X}  {code:12s}  {source}"


# =============================================================================
# Convenience Functions
# =============================================================================

def assemble(source: str, filename: str = "<input>",
             config: Optional[AssemblerConfig] = None) -> ObjectProgram:
    """
    Convenience function to assemble source code.

    Args:
        source: Assembly source code
        filename: Virtual filename for errors
        config: Run configuration

    Returns:
        The object program
    """
    asm = Assembler(config)
    return asm.assemble(source, filename)


def assemble_file(filepath: str | Path,
                  config: Optional[AssemblerConfig] = None) -> ObjectProgram:
    """
    Convenience function to assemble a file.

    Args:
        filepath: Path to source file
        config: Run configuration

    Returns:
        The object program
    """
    asm = Assembler(config)
    return asm.assemble_file(filepath)
