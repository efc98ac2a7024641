# =============================================================================
# test_pass_one.py - Pass I Tests
# =============================================================================
# Tests for address assignment, the symbol table and the literal table.
#
# Test coverage includes:
#   - The COPY reference program (symbols, literals, program length)
#   - Location counter rules for every directive
#   - Literal pool placement at END
#   - Duplicate labels, malformed numbers and unknown opcodes
#   - START/END placement diagnostics
#   - Immutability of the Pass I result
# =============================================================================

import pytest

from sicasm.assembler.lexer import split_source
from sicasm.assembler.pass_one import LocationResolver
from sicasm.config import AssemblerConfig, UnknownOpcodePolicy
from sicasm.errors import (
    DirectiveError,
    DuplicateSymbolError,
    ErrorCollector,
    MalformedNumberError,
    OperandError,
    UnknownOpcodeError,
)


def run_pass_one(source: str, **config):
    """Run Pass I and return (result, collector)."""
    lines, _ = split_source(source, "<test>")
    errors = ErrorCollector()
    resolver = LocationResolver(config=AssemblerConfig(**config), errors=errors)
    return resolver.resolve(lines), errors


# =============================================================================
# Reference Program
# =============================================================================

class TestCopyProgram:

    def test_symbol_table(self, copy_source):
        result, errors = run_pass_one(copy_source)
        assert result.symbol_addresses() == {
            "LOOP": 0x1000,
            "TEN": 0x100F,
            "ONE": 0x1012,
            "RESULT": 0x1015,
        }
        assert not errors.has_errors()
        assert not errors.has_warnings()

    def test_literal_table(self, copy_source):
        result, _ = run_pass_one(copy_source)
        assert result.literal_addresses() == {"=C'EOF'": (0x1018, 3)}

    def test_program_header_fields(self, copy_source):
        result, _ = run_pass_one(copy_source)
        assert result.program_name == "COPY"
        assert result.start_address == 0x1000
        assert result.program_length == 0x1B

    def test_start_label_is_not_a_symbol(self, copy_source):
        result, _ = run_pass_one(copy_source)
        assert "COPY" not in result.symbols

    def test_intermediate_addresses(self, copy_source):
        result, _ = run_pass_one(copy_source)
        addresses = [(line.opcode, line.address) for line in result.intermediate]
        assert addresses == [
            ("START", 0x1000),
            ("LDA", 0x1000),
            ("ADD", 0x1003),
            ("JLT", 0x1006),
            ("STA", 0x1009),
            ("LDA", 0x100C),
            ("WORD", 0x100F),
            ("RESW", 0x1012),
            ("RESB", 0x1015),
            ("END", 0x1018),
        ]


# =============================================================================
# Location Counter
# =============================================================================

class TestLocationCounter:

    @pytest.mark.parametrize("statement,size", [
        ("LDA X", 3),
        ("WORD 5", 3),
        ("RESW 4", 12),
        ("RESB 7", 7),
        ("BYTE C'HELLO'", 5),
        ("BYTE X'F1F2'", 2),
    ])
    def test_statement_size(self, statement, size):
        result, _ = run_pass_one(f"P START 0\n  {statement}\nX RESB 1\n  END\n")
        assert result.symbols["X"].address == size

    def test_malformed_byte_has_no_size(self):
        result, errors = run_pass_one("P START 0\n  BYTE X'F'\nX RESB 1\n  END\n")
        assert result.symbols["X"].address == 0
        assert len(errors.of_type(OperandError)) == 1

    def test_end_label_is_bound(self):
        result, _ = run_pass_one("P START 10\n  LDA X\nX END\n")
        assert result.symbols["X"].address == 0x13

    def test_lines_are_in_source_order(self, copy_source):
        result, _ = run_pass_one(copy_source)
        lines = [line.location.line for line in result.intermediate]
        assert lines == sorted(lines)


# =============================================================================
# Literal Pool
# =============================================================================

class TestLiteralPool:

    def test_pool_follows_program(self):
        source = (
            "P START 100\n"
            "  LDA =X'05'\n"
            "  LDA =C'AB'\n"
            "  END\n"
        )
        result, _ = run_pass_one(source)
        assert result.literal_addresses() == {
            "=X'05'": (0x106, 1),
            "=C'AB'": (0x107, 2),
        }
        assert result.end_address == 0x109

    def test_literal_registered_once(self):
        source = (
            "P START 0\n"
            "  LDA =C'EOF'\n"
            "  STA =C'EOF'\n"
            "  END\n"
        )
        result, _ = run_pass_one(source)
        assert list(result.literals) == ["=C'EOF'"]
        assert result.program_length == 9

    def test_pool_fills_the_tail_contiguously(self, copy_source):
        result, _ = run_pass_one(copy_source)
        end_line = result.intermediate[-1]
        pool = sorted(result.literals.values(), key=lambda lit: lit.address)
        address = end_line.address
        for literal in pool:
            assert literal.address == address
            address += literal.length
        assert address == result.end_address

    def test_decimal_literal(self):
        result, _ = run_pass_one("P START 0\n  LDA =7\n  END\n")
        assert result.literal_addresses() == {"=7": (3, 3)}

    def test_malformed_literal_is_not_placed(self):
        result, errors = run_pass_one("P START 0\n  LDA =X'1'\n  END\n")
        assert result.literal_addresses() == {"=X'1'": (None, 0)}
        assert not result.literals["=X'1'"].is_placed
        assert result.program_length == 3
        assert len(errors.of_type(OperandError)) == 1

    def test_missing_end_still_places_pool(self):
        result, errors = run_pass_one("P START 0\n  LDA =X'01'\n")
        assert result.literal_addresses() == {"=X'01'": (3, 1)}
        assert result.intermediate[-1].opcode == "END"
        assert len(errors.of_type(DirectiveError)) == 1


# =============================================================================
# Recovery
# =============================================================================

class TestRecovery:

    def test_duplicate_symbol_keeps_first(self):
        result, errors = run_pass_one("P START 0\nA WORD 1\nA WORD 2\n  END\n")
        assert result.symbols["A"].address == 0
        assert result.program_length == 6
        [dup] = errors.of_type(DuplicateSymbolError)
        assert dup.symbol == "A"
        assert dup.original_address == 0
        assert not dup.is_warning

    def test_malformed_start(self):
        result, errors = run_pass_one("P START 10G0\n  END\n")
        assert result.start_address == 0x10
        [error] = errors.of_type(MalformedNumberError)
        assert error.fallback == 0x10

    def test_start_beyond_memory(self):
        result, errors = run_pass_one("P START 10000\n  END\n")
        assert result.start_address == 0
        assert errors.has_errors()

    def test_malformed_count_uses_leading_digits(self):
        result, errors = run_pass_one("P START 0\n  RESB 12X\nX RESB 1\n  END\n")
        assert result.symbols["X"].address == 12
        assert len(errors.of_type(MalformedNumberError)) == 1

    def test_malformed_word_keeps_its_size(self):
        result, errors = run_pass_one("P START 0\n  WORD 1O\nX RESB 1\n  END\n")
        assert result.symbols["X"].address == 3
        assert len(errors.of_type(MalformedNumberError)) == 1

    def test_missing_start(self):
        result, errors = run_pass_one("  LDA X\nX RESB 1\n  END\n")
        assert result.start_address == 0
        assert result.symbols["X"].address == 3
        [warning] = errors.of_type(DirectiveError)
        assert warning.is_warning

    def test_second_start_ignored(self):
        result, errors = run_pass_one("P START 100\nQ START 200\nX RESB 1\n  END\n")
        assert result.symbols["X"].address == 0x100
        assert len(errors.of_type(DirectiveError)) == 1

    def test_statements_after_end_ignored(self):
        result, errors = run_pass_one("P START 0\n  END\nX WORD 1\n")
        assert "X" not in result.symbols
        assert len(errors.of_type(DirectiveError)) == 1

    def test_location_counter_overflow(self):
        result, errors = run_pass_one("P START FFFF\n  RESB 2\n  RESB 2\n  END\n")
        assert errors.error_count() == 1

    def test_overflow_holds_location_counter_at_64k(self):
        result, errors = run_pass_one("P START 0\n  RESW 6000000\nX WORD 1\n  END\n")
        assert result.symbols["X"].address == 0x10000
        assert result.program_length == 0x10000
        assert errors.error_count() == 1


class TestUnknownOpcodePolicy:

    SOURCE = "P START 0\n  FOO X\nX RESB 1\n  END\n"

    def test_unknown_opcode_has_no_size(self):
        result, _ = run_pass_one(self.SOURCE)
        assert result.symbols["X"].address == 0

    def test_warn(self):
        _, errors = run_pass_one(self.SOURCE)
        [diag] = errors.of_type(UnknownOpcodeError)
        assert diag.is_warning
        assert not errors.has_errors()

    def test_error(self):
        _, errors = run_pass_one(self.SOURCE, unknown_opcode_policy=UnknownOpcodePolicy.ERROR)
        assert errors.has_errors()
        assert isinstance(errors.errors[0], UnknownOpcodeError)

    def test_ignore(self):
        _, errors = run_pass_one(self.SOURCE, unknown_opcode_policy=UnknownOpcodePolicy.IGNORE)
        assert errors.diagnostics() == []


# =============================================================================
# Handoff
# =============================================================================

class TestPassOneResult:

    def test_tables_are_read_only(self, copy_source):
        result, _ = run_pass_one(copy_source)
        with pytest.raises(TypeError):
            result.symbols["NEW"] = None
        with pytest.raises(TypeError):
            result.literals["=X'00'"] = None

    def test_result_is_frozen(self, copy_source):
        result, _ = run_pass_one(copy_source)
        with pytest.raises(AttributeError):
            result.start_address = 0

    def test_resolver_can_be_reused(self, copy_source):
        lines, _ = split_source(copy_source)
        resolver = LocationResolver()
        first = resolver.resolve(lines)
        second = resolver.resolve(lines)
        assert first == second
