"""
Pass II - Object Code Generation
================================

Pass II walks the intermediate representation produced by Pass I, exactly
once, and builds the object program:

1. Header record (name, start address, program length)
2. One object-code fragment per code-bearing line, packed into Text records
3. The literal pool, encoded at the addresses Pass I gave it
4. End record (execution address)

Pass II sees only the frozen PassOneResult. It never looks at source text
and never changes a symbol or literal.

Fragments
---------
    mnemonic     opcode ++ operand address   LDA TEN   -> 00100F
    WORD/BYTE    encoder output              WORD 10   -> 00000A
    RESW/RESB    none; closes the open Text record
    START/END    none (END also closes the open Text record)

Text Record Packing
-------------------
A Text record is opened at the address of the first fragment and grows
while fragments follow on contiguously. It is closed when:

- the next fragment would push it past ``max_text_bytes``
- a RESW/RESB/END line is reached
- a fragment cannot be encoded (its bytes are left out)
- the input is exhausted

A fragment larger than ``max_text_bytes`` on its own (a long C'...'
constant) is split across as many records as needed.

Recovery
--------
An operand that is neither a symbol nor a literal encodes address 0000 and
is reported as an UndefinedSymbolError warning. A data operand Pass I
already reported as malformed is not encoded: the listing shows ERROR for
the line and its bytes are left out of the Text records, so the defect is
visible rather than hidden behind a made-up value. Code that would land past
the 64K address space is handled the same way, and reported here.
"""

import logging
from dataclasses import dataclass
from difflib import get_close_matches
from typing import Optional

from sicasm.config import AssemblerConfig, DEFAULT_CONFIG
from sicasm.errors import AssemblerError, ErrorCollector, UndefinedSymbolError
from sicasm.assembler.encoder import ERROR_MARKER, encode_data, encode_instruction
from sicasm.assembler.opcodes import (
    DATA_DIRECTIVES,
    DEFAULT_CATALOG,
    END,
    MEMORY_SIZE,
    RESERVE_DIRECTIVES,
    MnemonicEntry,
    OperationCatalog,
)
from sicasm.assembler.operands import LiteralRef, SymbolRef
from sicasm.assembler.records import EndRecord, HeaderRecord, ObjectProgram, TextRecord
from sicasm.assembler.tables import IntermediateLine, PassOneResult

logger = logging.getLogger(__name__)

# Opcode shown for literal pool lines in listings
POOL_OPCODE = "*"


@dataclass(frozen=True)
class ListingEntry:
    """
    One listing line: an intermediate line and the code generated for it.

    Attributes:
        line: The intermediate line (pool literals get a synthetic one)
        code: Object code in hex, "" for none, or ERROR_MARKER
    """
    line: IntermediateLine
    code: str = ""

    @property
    def is_error(self) -> bool:
        return self.code == ERROR_MARKER


# =============================================================================
# Text Record Packing
# =============================================================================

class TextRecordPacker:
    """
    Accumulates object code into length-bounded Text records.

    Usage:
        packer = TextRecordPacker(max_bytes=30)
        packer.add(0x1000, "00100F")
        packer.flush()
        packer.records
    """

    def __init__(self, max_bytes: int = 30):
        self.max_bytes = max_bytes
        self.records: list[TextRecord] = []
        self._start: Optional[int] = None
        self._code = bytearray()

    @property
    def is_open(self) -> bool:
        return bool(self._code)

    def add(self, address: int, fragment: str) -> None:
        """
        Append the fragment for ``address``, opening or closing records as needed.

        Args:
            address: Address of the fragment's first byte
            fragment: Object code as hex text (even number of digits)
        """
        data = bytes.fromhex(fragment)
        if not data:
            return

        # Only contiguous code may share a record.
        if self.is_open and address != self._start + len(self._code):
            self.flush()

        if self.is_open and len(self._code) + len(data) > self.max_bytes:
            if len(data) <= self.max_bytes:
                self.flush()

        while data:
            if not self.is_open:
                self._start = address
            room = self.max_bytes - len(self._code)
            chunk, data = data[:room], data[room:]
            self._code.extend(chunk)
            address += len(chunk)
            if data:
                self.flush()

    def flush(self) -> None:
        """Close the open record, if it holds any code."""
        if self._code:
            record = TextRecord(self._start, bytes(self._code))
            self.records.append(record)
            logger.debug("Text record %04X, %d bytes", record.start_address, record.byte_length)
        self._start = None
        self._code = bytearray()


# =============================================================================
# Generator
# =============================================================================

class ObjectCodeGenerator:
    """
    Pass II of the assembler.

    Usage:
        generator = ObjectCodeGenerator()
        program = generator.generate(pass_one_result)
        print(program.to_text())
        generator.listing
    """

    def __init__(self, catalog: OperationCatalog = DEFAULT_CATALOG,
                 config: AssemblerConfig = DEFAULT_CONFIG,
                 errors: Optional[ErrorCollector] = None):
        """
        Initialize the generator.

        Args:
            catalog: Instruction set, the same one Pass I used
            config: Run configuration (Text record size cap)
            errors: Collector for diagnostics; a private one is made if None
        """
        self._catalog = catalog
        self._config = config
        self.errors = errors if errors is not None else ErrorCollector(config.max_errors)
        self.listing: list[ListingEntry] = []

    # =========================================================================
    # Public Interface
    # =========================================================================

    def generate(self, result: PassOneResult) -> ObjectProgram:
        """
        Run Pass II.

        Args:
            result: The frozen output of Pass I

        Returns:
            The complete object program
        """
        self.listing = []
        self._result = result
        packer = TextRecordPacker(self._config.max_text_bytes)

        header = HeaderRecord(result.program_name, result.start_address, result.program_length)

        for line in result.intermediate:
            self._line(line, packer)

        self._literal_pool(packer)
        packer.flush()

        end = EndRecord(self._execution_address())
        program = ObjectProgram(header, packer.records, end, self._config.program_name_width)
        self._check_ranges(program)

        logger.debug(
            "Pass II complete: %d text records, execution at %04X",
            len(program.text_records), end.start_address,
        )
        return program

    # =========================================================================
    # Per-line Code Generation
    # =========================================================================

    def _line(self, line: IntermediateLine, packer: TextRecordPacker) -> None:
        opcode = line.opcode
        entry = self._catalog.get(opcode) if opcode else None

        if entry is not None:
            fragment = self._instruction(line, entry)
        elif opcode in DATA_DIRECTIVES:
            fragment = self._data(line)
        else:
            if opcode in RESERVE_DIRECTIVES or opcode == END:
                packer.flush()
            self.listing.append(ListingEntry(line))
            return

        self._emit(line, fragment, packer)

    def _instruction(self, line: IntermediateLine, entry: MnemonicEntry) -> Optional[str]:
        """Encode a machine instruction; None if it cannot be encoded."""
        address = self._resolve(line)
        try:
            return encode_instruction(entry.opcode, address, entry.length)
        except ValueError as e:
            self._report(AssemblerError(
                f"cannot encode {line.opcode} at {line.address:04X}: {e}",
                line.location,
                source_line=line.source_line,
            ))
            return None

    def _resolve(self, line: IntermediateLine) -> int:
        """
        Address of an instruction operand.

        The symbol table is searched first, then the literal table for
        '=' operands. Anything else resolves to 0 with a warning.
        """
        operand = line.parsed_operand
        if operand is None:
            return 0

        symbols = self._result.symbols
        literals = self._result.literals

        if isinstance(operand, SymbolRef) and operand.name in symbols:
            return symbols[operand.name].address
        if isinstance(operand, LiteralRef) and operand.token in literals:
            literal = literals[operand.token]
            if not literal.is_placed:
                # malformed, already reported by Pass I
                logger.debug("Literal %s has no address; encoding 0000", operand.token)
                return 0
            return literal.address

        name = operand.name if isinstance(operand, SymbolRef) else operand.token
        self._report(UndefinedSymbolError(
            name,
            location=line.location,
            source_line=line.source_line,
            similar_symbols=get_close_matches(name, list(symbols), n=3),
        ))
        return 0

    def _data(self, line: IntermediateLine) -> Optional[str]:
        """Encode a WORD/BYTE operand; None if Pass I found it malformed."""
        try:
            return encode_data(line.parsed_operand)
        except (ValueError, TypeError) as e:
            logger.debug("No code for %s at %04X: %s", line.opcode, line.address, e)
            return None

    def _literal_pool(self, packer: TextRecordPacker) -> None:
        """Emit the literal pool at the addresses Pass I assigned."""
        pool = sorted(
            (lit for lit in self._result.literals.values() if lit.is_placed),
            key=lambda lit: lit.address,
        )
        for literal in pool:
            line = IntermediateLine(
                address=literal.address,
                label=None,
                opcode=POOL_OPCODE,
                operand=literal.token,
                parsed_operand=literal.value,
                location=literal.location,
                size=literal.length,
            )
            try:
                fragment = encode_data(literal.value)
            except ValueError as e:
                logger.debug("No code for literal %s: %s", literal.token, e)
                fragment = None
            self._emit(line, fragment, packer)

    def _emit(self, line: IntermediateLine, fragment: Optional[str],
              packer: TextRecordPacker) -> None:
        """Pack a fragment, or record the ERROR marker when there is none."""
        if fragment is not None and line.address + len(fragment) // 2 > MEMORY_SIZE:
            self._report(AssemblerError(
                f"code at {line.address:04X} runs past the 64K address space; dropped",
                line.location,
                source_line=line.source_line,
            ))
            fragment = None

        if fragment is None:
            packer.flush()
            self.listing.append(ListingEntry(line, ERROR_MARKER))
            return

        packer.add(line.address, fragment)
        self.listing.append(ListingEntry(line, fragment))

    # =========================================================================
    # End Record and Sanity Checks
    # =========================================================================

    def _execution_address(self) -> int:
        """END operand if it names a symbol, otherwise the start address."""
        result = self._result
        name = result.execution_operand
        if not name:
            return result.start_address
        end_line = result.intermediate[-1] if result.intermediate else None
        if name in result.symbols:
            address = result.symbols[name].address
            if address < MEMORY_SIZE:
                return address
            self._report(AssemblerError(
                f"execution address {name} ({address:X}) lies outside the 64K address space; "
                f"using {result.start_address:04X}",
                end_line.location if end_line else None,
                source_line=end_line.source_line if end_line else None,
            ))
            return result.start_address

        self._report(UndefinedSymbolError(
            name,
            location=end_line.location if end_line else None,
            source_line=end_line.source_line if end_line else None,
            similar_symbols=get_close_matches(name, list(result.symbols), n=3),
            fallback=result.start_address,
        ))
        return result.start_address

    def _check_ranges(self, program: ObjectProgram) -> None:
        """Every Text record must lie inside [start, start + program_length)."""
        result = self._result
        for record in program.text_records:
            if record.start_address < result.start_address or record.end_address > result.end_address:
                self._report(AssemblerError(
                    f"text record {record.start_address:04X}-{record.end_address - 1:04X} "
                    f"lies outside the program "
                    f"({result.start_address:04X}-{result.end_address - 1:04X})"
                ))

    def _report(self, error: AssemblerError) -> None:
        if error.is_warning:
            logger.warning("%s", error.message)
        else:
            logger.error("%s", error.message)
        self.errors.add(error)


def generate(result: PassOneResult,
             catalog: OperationCatalog = DEFAULT_CATALOG,
             config: AssemblerConfig = DEFAULT_CONFIG,
             errors: Optional[ErrorCollector] = None) -> ObjectProgram:
    """Convenience wrapper: run Pass II with a fresh generator."""
    return ObjectCodeGenerator(catalog, config, errors).generate(result)
