"""
Operation Catalog
=================

This module defines the instruction set of the pseudo-machine: a mapping
from mnemonic to opcode byte and instruction length, plus the set of
assembler directives both passes recognise.

Instruction Format
------------------
Every instruction is 3 bytes: one opcode byte followed by a 16-bit address.

    LDA TEN   ->  00 100F      (TEN at $100F)
    JLT LOOP  ->  38 1000

Directives
----------
- START: program origin (hex operand), label names the program
- END:   program terminator, places the literal pool
- WORD:  one 3-byte constant
- BYTE:  character (C'..') or hex (X'..') constant
- RESW:  reserve n words
- RESB:  reserve n bytes

Extending the Catalog
---------------------
OperationCatalog is immutable. ``extend`` returns a new catalog with extra
entries, so additional mnemonics never require changes to either pass:

    catalog = DEFAULT_CATALOG.extend({"LDB": (0x68, 3)})
"""

from dataclasses import dataclass
from difflib import get_close_matches
from types import MappingProxyType
from typing import Iterator, Mapping, Optional


# =============================================================================
# Mnemonic Entry
# =============================================================================

@dataclass(frozen=True)
class MnemonicEntry:
    """
    One instruction of the machine.

    Frozen so the catalog cannot be modified at runtime.

    Attributes:
        mnemonic: Upper-case instruction name
        opcode: Opcode byte ($00-$FF)
        length: Total instruction size in bytes
    """
    mnemonic: str
    opcode: int
    length: int = 3

    def __post_init__(self):
        if not 0 <= self.opcode <= 0xFF:
            raise ValueError(f"opcode for {self.mnemonic} out of range: {self.opcode:#x}")
        if self.length < 1:
            raise ValueError(f"length for {self.mnemonic} must be positive")

    def __repr__(self) -> str:
        return f"MnemonicEntry({self.mnemonic}, opcode=${self.opcode:02X}, length={self.length})"


# =============================================================================
# Directives
# =============================================================================

START = "START"
END = "END"
WORD = "WORD"
BYTE = "BYTE"
RESW = "RESW"
RESB = "RESB"

DIRECTIVES = frozenset({START, END, WORD, BYTE, RESW, RESB})

# Directives whose operand becomes object code
DATA_DIRECTIVES = frozenset({WORD, BYTE})

# Directives that reserve space without emitting code
RESERVE_DIRECTIVES = frozenset({RESW, RESB})

WORD_SIZE = 3

# Addresses are 16 bits wide
MEMORY_SIZE = 0x10000


# =============================================================================
# Opcode Table
# =============================================================================
# Key: mnemonic
# Value: (opcode, length)
#
# JMP uses $30. The SIC JEQ shares that value and is left out so that
# every opcode decodes to a single mnemonic.
# =============================================================================

DEFAULT_OPCODES: dict[str, tuple[int, int]] = {
    # Load/store
    "LDA": (0x00, 3),
    "LDX": (0x04, 3),
    "LDL": (0x08, 3),
    "STA": (0x0C, 3),
    "STX": (0x10, 3),
    "STL": (0x14, 3),
    "LDCH": (0x50, 3),
    "STCH": (0x54, 3),

    # Arithmetic
    "ADD": (0x18, 3),
    "SUB": (0x1C, 3),
    "MUL": (0x20, 3),
    "DIV": (0x24, 3),
    "COMP": (0x28, 3),
    "TIX": (0x2C, 3),

    # Jumps
    "JMP": (0x30, 3),
    "JGT": (0x34, 3),
    "JLT": (0x38, 3),
    "JSUB": (0x48, 3),
    "RSUB": (0x4C, 3),

    # Device I/O
    "TD": (0xE0, 3),
    "RD": (0xD8, 3),
    "WD": (0xDC, 3),
}


# =============================================================================
# Catalog
# =============================================================================

class OperationCatalog:
    """
    Read-only mnemonic lookup shared by both passes.

    Lookups are case-insensitive. Mnemonics may not shadow directives.
    """

    def __init__(self, entries: Mapping[str, tuple[int, int]]):
        table = {}
        for name, (opcode, length) in entries.items():
            mnemonic = name.upper()
            if mnemonic in DIRECTIVES:
                raise ValueError(f"mnemonic '{mnemonic}' collides with a directive")
            if mnemonic in table:
                raise ValueError(f"duplicate mnemonic '{mnemonic}'")
            table[mnemonic] = MnemonicEntry(mnemonic, opcode, length)
        self._entries: Mapping[str, MnemonicEntry] = MappingProxyType(table)

    def __contains__(self, mnemonic: object) -> bool:
        return isinstance(mnemonic, str) and mnemonic.upper() in self._entries

    def __getitem__(self, mnemonic: str) -> MnemonicEntry:
        return self._entries[mnemonic.upper()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, mnemonic: str) -> Optional[MnemonicEntry]:
        """Return the entry for ``mnemonic`` or None."""
        return self._entries.get(mnemonic.upper())

    def is_known(self, opcode: str) -> bool:
        """True for catalog mnemonics and directives alike."""
        upper = opcode.upper()
        return upper in self._entries or upper in DIRECTIVES

    def extend(self, entries: Mapping[str, tuple[int, int]]) -> "OperationCatalog":
        """Return a new catalog with ``entries`` added."""
        merged = {name: (e.opcode, e.length) for name, e in self._entries.items()}
        for name in entries:
            if name.upper() in merged:
                raise ValueError(f"duplicate mnemonic '{name.upper()}'")
        merged.update(entries)
        return OperationCatalog(merged)

    def similar(self, opcode: str, limit: int = 3) -> list[str]:
        """Mnemonics and directives that look like ``opcode`` (for hints)."""
        candidates = list(self._entries) + sorted(DIRECTIVES)
        return get_close_matches(opcode.upper(), candidates, n=limit)


DEFAULT_CATALOG = OperationCatalog(DEFAULT_OPCODES)
