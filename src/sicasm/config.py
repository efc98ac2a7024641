"""
sicasm - Assembler Configuration
================================

Settings that shape an assembly run. Values come from:
- Default values (defined here)
- Keyword arguments to AssemblerConfig / Assembler
- sicasm command-line options

There is no environment-variable or file-based configuration; a run is
fully described by the source and this object.
"""

from dataclasses import dataclass
from enum import Enum


class UnknownOpcodePolicy(Enum):
    """
    What Pass I does with an opcode that is neither a catalog mnemonic nor
    a directive. The line always occupies zero bytes; the policy only
    decides how loudly that is reported.
    """
    IGNORE = "ignore"   # Debug log only
    WARN = "warn"       # Warning diagnostic
    ERROR = "error"     # Error diagnostic, run reports failure

    @classmethod
    def from_name(cls, name: str) -> "UnknownOpcodePolicy":
        """Look up a policy by its (case-insensitive) name."""
        try:
            return cls(name.lower())
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ValueError(f"unknown opcode policy '{name}' (expected one of: {valid})") from None


@dataclass(frozen=True)
class AssemblerConfig:
    """
    Configuration for an assembly run.

    Attributes:
        max_text_bytes: Byte cap of one Text record (default: 30, i.e. 60 hex chars)
        unknown_opcode_policy: Reporting policy for unknown opcodes
        max_errors: Error count at which assembly gives up
        program_name_width: Width of the Header record's name field
    """

    # ═══════════════════════════════════════════════════════════════════════════
    # OBJECT PROGRAM LAYOUT
    # ═══════════════════════════════════════════════════════════════════════════

    max_text_bytes: int = 30
    program_name_width: int = 6

    # ═══════════════════════════════════════════════════════════════════════════
    # DIAGNOSTICS
    # ═══════════════════════════════════════════════════════════════════════════

    unknown_opcode_policy: UnknownOpcodePolicy = UnknownOpcodePolicy.WARN
    max_errors: int = 1000

    def __post_init__(self):
        # The Text record length field is two hex digits.
        if not 1 <= self.max_text_bytes <= 0xFF:
            raise ValueError(f"max_text_bytes must be in 1..255, got {self.max_text_bytes}")
        if self.program_name_width < 1:
            raise ValueError(f"program_name_width must be positive, got {self.program_name_width}")
        if self.max_errors < 1:
            raise ValueError(f"max_errors must be positive, got {self.max_errors}")


DEFAULT_CONFIG = AssemblerConfig()
