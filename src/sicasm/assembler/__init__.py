"""
SIC Two-Pass Assembler
======================

This package assembles source for the SIC pseudo-machine into an object
program of Header, Text and End records.

Main Components
---------------
- **Assembler**: Main class that orchestrates an assembly run
- **Lexer**: Splits source text into (label, opcode, operand) lines
- **LocationResolver**: Pass I, addresses plus symbol and literal tables
- **ObjectCodeGenerator**: Pass II, object code packed into records
- **ObjectProgram**: The records, their text format, and a loader view

Assembly Process
----------------
1. **Lexing**: source text to SourceLine records
2. **Pass I**: every line gets its address; labels and literals are
   recorded; the literal pool is placed at END. The result is frozen.
3. **Pass II**: operands are resolved and encoded; code is packed into
   Text records of at most ``max_text_bytes`` bytes.

Example Usage
-------------
>>> from sicasm.assembler import Assembler
>>> asm = Assembler()
>>> program = asm.assemble(open("copy.asm").read(), "copy.asm")
>>> print(program.to_text())
HCOPY  100000001B
T10001200100F1810123810000C101500101800000A
T101803454F46
E1000
"""

from sicasm.assembler.assembler import Assembler, assemble, assemble_file
from sicasm.assembler.lexer import Lexer, SourceLine, split_source
from sicasm.assembler.opcodes import (
    DEFAULT_CATALOG,
    DEFAULT_OPCODES,
    MnemonicEntry,
    OperationCatalog,
)
from sicasm.assembler.operands import (
    CharLiteral,
    DecimalConstant,
    HexLiteral,
    LiteralRef,
    Malformed,
    SymbolRef,
)
from sicasm.assembler.pass_one import LocationResolver, resolve
from sicasm.assembler.pass_two import ListingEntry, ObjectCodeGenerator, generate
from sicasm.assembler.records import (
    EndRecord,
    HeaderRecord,
    ObjectProgram,
    TextRecord,
    parse_record,
)
from sicasm.assembler.tables import (
    IntermediateLine,
    Literal,
    PassOneResult,
    Symbol,
)

__all__ = [
    # Main interface
    "Assembler",
    "assemble",
    "assemble_file",
    # Lexer
    "Lexer",
    "SourceLine",
    "split_source",
    # Instruction set
    "DEFAULT_CATALOG",
    "DEFAULT_OPCODES",
    "MnemonicEntry",
    "OperationCatalog",
    # Operands
    "CharLiteral",
    "DecimalConstant",
    "HexLiteral",
    "LiteralRef",
    "Malformed",
    "SymbolRef",
    # Passes
    "LocationResolver",
    "resolve",
    "ObjectCodeGenerator",
    "ListingEntry",
    "generate",
    # Tables
    "IntermediateLine",
    "Literal",
    "PassOneResult",
    "Symbol",
    # Records
    "EndRecord",
    "HeaderRecord",
    "ObjectProgram",
    "TextRecord",
    "parse_record",
]
