"""
Pass I - Location and Symbol Resolution
=======================================

Pass I walks the source lines once, in order, and:

- assigns every line its address from the location counter (LC)
- binds labels in the symbol table
- registers literal operands in the literal table
- classifies every operand once (see ``operands``)
- places the literal pool at END

It returns a frozen PassOneResult. Nothing in the result changes after
this pass: symbol and line addresses are final as soon as they are
assigned, and literal addresses are filled in at END, still within this
pass.

Location Counter Rules
----------------------
    mnemonic        LC += instruction length
    WORD            LC += 3
    RESW n          LC += 3 * n
    RESB n          LC += n
    BYTE C'..'      LC += character count
    BYTE X'..'      LC += hex digits / 2
    unknown         LC += 0 (reported per UnknownOpcodePolicy)

Recovery
--------
Pass I never stops. Duplicate labels keep their first address; malformed
numbers fall back to the digits that could be read (or 0); unknown opcodes
occupy no space; a location counter that runs past 64K is reported once and
held at 10000. Each case is filed in the ErrorCollector.
"""

import logging
from typing import Iterable, Optional

from sicasm.config import AssemblerConfig, DEFAULT_CONFIG, UnknownOpcodePolicy
from sicasm.errors import (
    AssemblerError,
    DirectiveError,
    DuplicateSymbolError,
    ErrorCollector,
    MalformedNumberError,
    OperandError,
    UnknownOpcodeError,
)
from sicasm.assembler.lexer import SourceLine
from sicasm.assembler.opcodes import (
    BYTE,
    DEFAULT_CATALOG,
    END,
    MEMORY_SIZE,
    RESB,
    RESW,
    START,
    WORD,
    WORD_SIZE,
    OperationCatalog,
)
from sicasm.assembler.operands import (
    LiteralRef,
    Malformed,
    Operand,
    classify_byte_operand,
    classify_literal,
    classify_operand,
    classify_word_operand,
    is_literal,
    parse_number,
)
from sicasm.assembler.tables import (
    IntermediateLine,
    LiteralTable,
    PassOneResult,
    SymbolTable,
)

logger = logging.getLogger(__name__)


class LocationResolver:
    """
    Pass I of the assembler.

    A resolver is single-use state for one run; ``resolve`` resets it, so
    the same instance may be reused for another program.

    Usage:
        resolver = LocationResolver()
        result = resolver.resolve(lines)
        result.symbols["LOOP"].address
    """

    def __init__(self, catalog: OperationCatalog = DEFAULT_CATALOG,
                 config: AssemblerConfig = DEFAULT_CONFIG,
                 errors: Optional[ErrorCollector] = None):
        """
        Initialize the resolver.

        Args:
            catalog: Instruction set to size mnemonics with
            config: Run configuration (unknown-opcode policy)
            errors: Collector for diagnostics; a private one is made if None
        """
        self._catalog = catalog
        self._config = config
        self.errors = errors if errors is not None else ErrorCollector(config.max_errors)
        self._reset()

    def _reset(self) -> None:
        self._lc = 0
        self._start_address = 0
        self._program_name = ""
        self._execution_operand: Optional[str] = None
        self._symbols = SymbolTable()
        self._literals = LiteralTable()
        self._intermediate: list[IntermediateLine] = []
        self._overflow_reported = False

    # =========================================================================
    # Public Interface
    # =========================================================================

    def resolve(self, lines: Iterable[SourceLine]) -> PassOneResult:
        """
        Run Pass I over ``lines``.

        Args:
            lines: Source lines in program order

        Returns:
            The frozen handoff for Pass II
        """
        self._reset()
        ended = False
        first = True

        for line in lines:
            if ended:
                self._report(DirectiveError(
                    f"statement after {END} ignored",
                    line.location,
                    source_line=line.text,
                ))
                continue

            if first:
                first = False
                if line.opcode == START:
                    self._start(line)
                    continue
                self._report(DirectiveError(
                    f"program does not begin with {START}; assembling at address 0000",
                    line.location,
                    source_line=line.text,
                ))

            if line.opcode == END:
                self._end(line)
                ended = True
            else:
                self._statement(line)

        if not ended:
            self._report(DirectiveError(f"missing {END}; literal pool placed at end of source"))
            self._end(None)

        program_length = self._lc - self._start_address
        logger.debug(
            "Pass I complete: %s at %04X, length %06X, %d symbols, %d literals",
            self._program_name or "<unnamed>", self._start_address, program_length,
            len(self._symbols), len(self._literals),
        )

        return PassOneResult(
            intermediate=tuple(self._intermediate),
            symbols=self._symbols.freeze(),
            literals=self._literals.freeze(),
            program_name=self._program_name,
            start_address=self._start_address,
            program_length=program_length,
            execution_operand=self._execution_operand,
        )

    # =========================================================================
    # Directives Framing the Program
    # =========================================================================

    def _start(self, line: SourceLine) -> None:
        """Handle the START line: program name and origin."""
        self._program_name = line.label or ""
        address = 0
        if line.operand:
            address, ok = parse_number(line.operand, 16)
            if address >= MEMORY_SIZE:
                ok, address = False, 0
            if not ok:
                self._report(MalformedNumberError(
                    line.operand, "start address",
                    line.operand_location, fallback=address,
                    source_line=line.text,
                ))
        self._start_address = address
        self._lc = address
        self._intermediate.append(IntermediateLine(
            address=address,
            label=line.label,
            opcode=START,
            operand=line.operand,
            location=line.location,
            source_line=line.text,
        ))
        logger.debug("START: LC set to %04X", address)

    def _end(self, line: Optional[SourceLine]) -> None:
        """Handle END (explicit or implied): record the line, place the pool."""
        if line is not None and line.label:
            self._define_label(line)
        self._execution_operand = line.operand if line is not None else None
        self._intermediate.append(IntermediateLine(
            address=self._lc,
            label=line.label if line else None,
            opcode=END,
            operand=line.operand if line else None,
            location=line.location if line else None,
            source_line=line.text if line else None,
        ))
        pool_start = self._lc
        self._lc = self._literals.place_pool(self._lc)
        self._check_overflow(line)
        if self._lc != pool_start:
            logger.debug("Literal pool placed at %04X-%04X", pool_start, self._lc - 1)

    # =========================================================================
    # Ordinary Statements
    # =========================================================================

    def _statement(self, line: SourceLine) -> None:
        """Process one statement other than START/END."""
        if line.label:
            self._define_label(line)

        if line.opcode == START:
            self._report(DirectiveError(
                f"{START} is only valid on the first line; ignored",
                line.location,
                source_line=line.text,
            ))
            self._intermediate.append(IntermediateLine(
                self._lc, line.label, line.opcode, line.operand,
                location=line.location, source_line=line.text,
            ))
            return

        parsed, size = self._size(line)

        self._intermediate.append(IntermediateLine(
            address=self._lc,
            label=line.label,
            opcode=line.opcode,
            operand=line.operand,
            parsed_operand=parsed,
            location=line.location,
            source_line=line.text,
            size=size,
        ))

        # Every literal written in the source gets a pool entry, whatever
        # the opcode it appears with.
        if is_literal(line.operand):
            literal = parsed if isinstance(parsed, LiteralRef) else classify_literal(line.operand)
            self._register_literal(literal, line)

        self._lc += size
        self._check_overflow(line)

    def _define_label(self, line: SourceLine) -> None:
        """Bind the line's label to the current LC; first definition wins."""
        existing = self._symbols.define(line.label, self._lc, line.location)
        if existing is not None:
            self._report(DuplicateSymbolError(
                line.label,
                location=line.location,
                original_location=existing.location,
                original_address=existing.address,
                source_line=line.text,
            ))

    def _size(self, line: SourceLine) -> tuple[Optional[Operand], int]:
        """Classify the operand and work out how many bytes the line takes."""
        opcode = line.opcode
        entry = self._catalog.get(opcode) if opcode else None

        if entry is not None:
            return classify_operand(line.operand), entry.length

        if opcode == WORD:
            parsed = classify_word_operand(line.operand)
            self._check_data(parsed, line)
            return parsed, WORD_SIZE

        if opcode == BYTE:
            parsed = classify_byte_operand(line.operand)
            self._check_data(parsed, line)
            return parsed, parsed.byte_length

        if opcode in (RESW, RESB):
            count = self._count(line)
            return None, count * WORD_SIZE if opcode == RESW else count

        if opcode:
            self._unknown_opcode(line)
        return classify_operand(line.operand), 0

    def _count(self, line: SourceLine) -> int:
        """Parse a RESW/RESB count, best effort."""
        count, ok = parse_number(line.operand, 10)
        if not ok:
            self._report(MalformedNumberError(
                line.operand or "", f"{line.opcode} count",
                line.operand_location, fallback=count,
                source_line=line.text,
            ))
        return count

    def _register_literal(self, literal: LiteralRef, line: SourceLine) -> None:
        if self._literals.add(literal, line.operand_location):
            logger.debug("New literal %s (%d bytes)", literal.token, literal.byte_length)
            self._check_data(literal.value, line)

    def _check_data(self, parsed: Operand, line: SourceLine) -> None:
        """Report a data operand that could not be classified."""
        if not isinstance(parsed, Malformed):
            return
        if parsed.numeric:
            self._report(MalformedNumberError(
                parsed.text, f"{line.opcode} constant",
                line.operand_location or line.location,
                source_line=line.text,
            ))
        else:
            self._report(OperandError(
                parsed.reason,
                line.operand_location or line.location,
                source_line=line.text,
            ))

    def _unknown_opcode(self, line: SourceLine) -> None:
        """Apply the configured policy to an unrecognised opcode."""
        policy = self._config.unknown_opcode_policy
        if policy is UnknownOpcodePolicy.IGNORE:
            logger.debug("Unknown opcode %s at %04X treated as zero width", line.opcode, self._lc)
            return
        self._report(UnknownOpcodeError(
            line.opcode,
            location=line.location,
            source_line=line.text,
            similar_opcodes=self._catalog.similar(line.opcode),
            severity="error" if policy is UnknownOpcodePolicy.ERROR else "warning",
        ))

    def _check_overflow(self, line: Optional[SourceLine]) -> None:
        """
        Report (once) a location counter running past the address space.

        The counter is then pinned at the top of memory, so every address
        and the program length stay representable in the object records.
        """
        if self._lc <= MEMORY_SIZE:
            return
        if not self._overflow_reported:
            self._overflow_reported = True
            self._report(AssemblerError(
                f"location counter {self._lc:X} exceeds the 64K address space",
                line.location if line else None,
                source_line=line.text if line else None,
            ))
        self._lc = MEMORY_SIZE

    def _report(self, error: AssemblerError) -> None:
        if error.is_warning:
            logger.warning("%s", error.message)
        else:
            logger.error("%s", error.message)
        self.errors.add(error)


def resolve(lines: Iterable[SourceLine],
            catalog: OperationCatalog = DEFAULT_CATALOG,
            config: AssemblerConfig = DEFAULT_CONFIG,
            errors: Optional[ErrorCollector] = None) -> PassOneResult:
    """Convenience wrapper: run Pass I with a fresh resolver."""
    return LocationResolver(catalog, config, errors).resolve(lines)
