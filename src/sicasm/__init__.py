"""
sicasm - Two-Pass Assembler for the SIC Pseudo-Machine
======================================================

This package assembles SIC assembly source into an object program made of
Header, Text and End records, the format read by a SIC absolute loader.

Main Components
---------------
- **assembler**: lexer, Pass I, Pass II and the object program records
- **config**: AssemblerConfig, the settings of an assembly run
- **errors**: the exception hierarchy and ErrorCollector
- **cli**: the ``sicasm`` command-line tool

Quick Start
-----------
    >>> from sicasm import Assembler
    >>> asm = Assembler()
    >>> program = asm.assemble_file("copy.asm")
    >>> asm.write_object("copy.obj")

Or use the command-line tool:
    $ sicasm copy.asm -o copy.obj -l copy.lst

Version History
---------------
1.0.0 - Initial release
"""

__version__ = "1.0.0"
__author__ = "sicasm contributors"

from sicasm.assembler import Assembler, ObjectProgram, assemble, assemble_file
from sicasm.config import AssemblerConfig, UnknownOpcodePolicy
from sicasm.errors import (
    AssemblerError,
    ErrorCollector,
    ObjectFormatError,
    SicAsmError,
    SourceLocation,
)

__all__ = [
    "__version__",
    "Assembler",
    "ObjectProgram",
    "assemble",
    "assemble_file",
    "AssemblerConfig",
    "UnknownOpcodePolicy",
    "AssemblerError",
    "ErrorCollector",
    "ObjectFormatError",
    "SicAsmError",
    "SourceLocation",
]
