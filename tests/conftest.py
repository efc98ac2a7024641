"""
sicasm - Test Configuration
===========================

Shared fixtures for the assembler tests.

It provides:
- The COPY reference program and its expected object program
- A helper that assembles a snippet and returns the Assembler
"""

import pytest

from sicasm.assembler import Assembler
from sicasm.config import AssemblerConfig


COPY_SOURCE = """\
. Reference program: loop, data, reserved space and one literal
COPY    START   1000
LOOP    LDA     TEN
        ADD     ONE
        JLT     LOOP
        STA     RESULT
        LDA     =C'EOF'
TEN     WORD    10
ONE     RESW    1
RESULT  RESB    3
        END
"""

COPY_OBJECT = """\
HCOPY  100000001B
T10001200100F1810123810000C101500101800000A
T101803454F46
E1000
"""


# ═══════════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def copy_source() -> str:
    """Fixture: the COPY reference program."""
    return COPY_SOURCE


@pytest.fixture
def copy_object() -> str:
    """Fixture: the object program COPY assembles to."""
    return COPY_OBJECT


@pytest.fixture
def assembled():
    """
    Fixture: assemble a snippet and return the Assembler.

    Usage:
        def test_x(assembled):
            asm = assembled(source, max_text_bytes=6)
            asm.get_object_program()
    """
    def _assemble(source: str, **config) -> Assembler:
        asm = Assembler(AssemblerConfig(**config))
        asm.assemble(source, "<test>")
        return asm
    return _assemble
