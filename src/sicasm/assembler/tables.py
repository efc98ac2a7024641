"""
Assembler Tables
================

Data shared between the two passes: the symbol table, the literal table,
the intermediate representation, and the frozen handoff that carries them
from Pass I to Pass II.

Ownership
---------
SymbolTable and LiteralTable are mutable and owned by the resolver while
Pass I runs. When the pass finishes they are frozen into read-only mappings
inside a PassOneResult; Pass II only ever sees that object, so it cannot
add symbols or move literals.
"""

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from sicasm.errors import SourceLocation
from sicasm.assembler.operands import LiteralRef, Malformed, Operand


# =============================================================================
# Table Entries
# =============================================================================

@dataclass(frozen=True)
class Symbol:
    """
    Symbol table entry.

    Attributes:
        name: Label text
        address: Location counter value at the defining line
        location: Where the label was defined
    """
    name: str
    address: int
    location: Optional[SourceLocation] = None


@dataclass(frozen=True)
class Literal:
    """
    Literal table entry.

    Attributes:
        token: Literal text including the leading '=' (e.g. "=C'EOF'")
        length: Size of the literal data in bytes
        value: Classified literal, used by the encoder in Pass II
        address: Pool address; None until END places the pool
        location: First reference to the literal
    """
    token: str
    length: int
    value: LiteralRef
    address: Optional[int] = None
    location: Optional[SourceLocation] = None

    @property
    def is_placed(self) -> bool:
        return self.address is not None


@dataclass(frozen=True)
class IntermediateLine:
    """
    One source line with its final address.

    Attributes:
        address: Location counter value for the line
        label: Label field, or None
        opcode: Mnemonic or directive, upper case
        operand: Raw operand text, or None
        parsed_operand: The operand classified by Pass I
        location: Source position of the line
        source_line: Original text, for listings and diagnostics
        size: Bytes occupied by the line
    """
    address: int
    label: Optional[str]
    opcode: str
    operand: Optional[str] = None
    parsed_operand: Optional[Operand] = None
    location: Optional[SourceLocation] = None
    source_line: Optional[str] = None
    size: int = 0

    def __str__(self) -> str:
        return f"[{self.address:04X}] {self.label or ''} {self.opcode} {self.operand or ''}".rstrip()


# =============================================================================
# Symbol Table
# =============================================================================

class SymbolTable:
    """
    Label → address mapping built during Pass I.

    ``define`` never overwrites: the first definition of a name wins and the
    existing entry is returned so the caller can report the duplicate.
    """

    def __init__(self):
        self._symbols: dict[str, Symbol] = {}

    def define(self, name: str, address: int,
               location: Optional[SourceLocation] = None) -> Optional[Symbol]:
        """
        Bind ``name`` to ``address`` unless it is already bound.

        Returns:
            None on success, or the existing Symbol when ``name`` is a duplicate
        """
        existing = self._symbols.get(name)
        if existing is not None:
            return existing
        self._symbols[name] = Symbol(name, address, location)
        return None

    def __contains__(self, name: object) -> bool:
        return name in self._symbols

    def __getitem__(self, name: str) -> Symbol:
        return self._symbols[name]

    def __len__(self) -> int:
        return len(self._symbols)

    def __iter__(self) -> Iterator[str]:
        return iter(self._symbols)

    def freeze(self) -> Mapping[str, Symbol]:
        """Read-only view handed to Pass II."""
        return MappingProxyType(dict(self._symbols))


# =============================================================================
# Literal Table
# =============================================================================

class LiteralTable:
    """
    Literal token → Literal mapping built during Pass I.

    Entries keep insertion order; that is also the order the pool is laid
    out in at END.
    """

    def __init__(self):
        self._literals: dict[str, Literal] = {}

    def add(self, value: LiteralRef, location: Optional[SourceLocation] = None) -> bool:
        """
        Register a literal on first reference.

        Returns:
            True if the literal is new, False if the token was already known
        """
        if value.token in self._literals:
            return False
        self._literals[value.token] = Literal(
            token=value.token,
            length=value.byte_length,
            value=value,
            location=location,
        )
        return True

    def place_pool(self, address: int) -> int:
        """
        Assign addresses to all unplaced literals, contiguously from ``address``.

        Malformed literals have no bytes to place; they stay unplaced and
        their references encode address 0000.

        Returns:
            The address following the pool
        """
        for token, literal in self._literals.items():
            if literal.is_placed or isinstance(literal.value.value, Malformed):
                continue
            self._literals[token] = replace(literal, address=address)
            address += literal.length
        return address

    def __contains__(self, token: object) -> bool:
        return token in self._literals

    def __getitem__(self, token: str) -> Literal:
        return self._literals[token]

    def __len__(self) -> int:
        return len(self._literals)

    def __iter__(self) -> Iterator[str]:
        return iter(self._literals)

    def freeze(self) -> Mapping[str, Literal]:
        """Read-only view handed to Pass II."""
        return MappingProxyType(dict(self._literals))


# =============================================================================
# Pass I → Pass II Handoff
# =============================================================================

@dataclass(frozen=True)
class PassOneResult:
    """
    Everything Pass II needs, frozen.

    Attributes:
        intermediate: Intermediate lines in source order (ends with END)
        symbols: Read-only symbol table
        literals: Read-only literal table, every well-formed entry placed
        program_name: Label of the START line ("" if none)
        start_address: Program origin
        program_length: Final location counter minus start address
        execution_operand: Operand of END naming the entry point, if any
    """
    intermediate: tuple[IntermediateLine, ...]
    symbols: Mapping[str, Symbol]
    literals: Mapping[str, Literal]
    program_name: str = ""
    start_address: int = 0
    program_length: int = 0
    execution_operand: Optional[str] = None

    @property
    def end_address(self) -> int:
        """First address past the program."""
        return self.start_address + self.program_length

    def contains(self, address: int) -> bool:
        """True if ``address`` lies inside the program."""
        return self.start_address <= address < self.end_address

    def symbol_addresses(self) -> dict[str, int]:
        return {name: sym.address for name, sym in self.symbols.items()}

    def literal_addresses(self) -> dict[str, tuple[Optional[int], int]]:
        """token → (address, length); address is None for a malformed literal"""
        return {tok: (lit.address, lit.length) for tok, lit in self.literals.items()}
