# =============================================================================
# test_pass_two.py - Pass II Tests
# =============================================================================
# Tests for object code generation and Text record packing.
#
# Test coverage includes:
#   - The COPY reference object program
#   - Operand resolution (symbol, literal, undefined)
#   - Text record breaks at RESW/RESB, at the size cap and on bad code
#   - Splitting constants larger than one record
#   - End record execution address
#   - Text record length fields and program bounds
#   - Code, operands and entry points past the 64K address space
# =============================================================================

import pytest

from sicasm.assembler.encoder import ERROR_MARKER
from sicasm.assembler.lexer import split_source
from sicasm.assembler.pass_one import resolve
from sicasm.assembler.pass_two import ObjectCodeGenerator, TextRecordPacker
from sicasm.config import AssemblerConfig
from sicasm.errors import AssemblerError, ErrorCollector, UndefinedSymbolError


def run_passes(source: str, **config):
    """Run both passes and return (program, generator, collector)."""
    cfg = AssemblerConfig(**config)
    errors = ErrorCollector()
    lines, _ = split_source(source, "<test>")
    result = resolve(lines, config=cfg, errors=errors)
    generator = ObjectCodeGenerator(config=cfg, errors=errors)
    return generator.generate(result), generator, errors


def texts(program) -> list[str]:
    return [record.to_text() for record in program.text_records]


# =============================================================================
# Reference Program
# =============================================================================

class TestCopyProgram:

    def test_object_program(self, copy_source, copy_object):
        program, _, errors = run_passes(copy_source)
        assert program.to_text() == copy_object
        assert errors.diagnostics() == []

    def test_listing_has_every_line_and_the_pool(self, copy_source):
        _, generator, _ = run_passes(copy_source)
        codes = [entry.code for entry in generator.listing]
        assert codes == [
            "", "00100F", "181012", "381000", "0C1015", "001018",
            "00000A", "", "", "", "454F46",
        ]
        assert generator.listing[-1].line.opcode == "*"


# =============================================================================
# Operand Resolution
# =============================================================================

class TestOperandResolution:

    def test_undefined_symbol_encodes_zero(self):
        program, _, errors = run_passes("P START 0\n  LDA NOPE\n  END\n")
        assert texts(program) == ["T00000300" + "0000"]
        [warning] = errors.of_type(UndefinedSymbolError)
        assert warning.symbol == "NOPE"
        assert warning.is_warning
        assert not errors.has_errors()

    def test_undefined_symbol_hint(self):
        _, _, errors = run_passes("P START 0\n  LDA TENN\nTEN WORD 10\n  END\n")
        [warning] = errors.of_type(UndefinedSymbolError)
        assert "TEN" in warning.similar_symbols
        assert "did you mean 'TEN'?" in str(warning)

    def test_missing_operand_encodes_zero(self):
        program, _, errors = run_passes("P START 0\n  RSUB\n  END\n")
        assert texts(program) == ["T0000034C0000"]
        assert errors.diagnostics() == []

    def test_forward_reference(self):
        program, _, _ = run_passes("P START 0\n  JMP LATER\nLATER RSUB\n  END\n")
        assert texts(program) == ["T000006300003" + "4C0000"]

    def test_literal_operand(self):
        program, _, _ = run_passes("P START 100\n  LDA =X'05'\n  END\n")
        assert texts(program) == ["T010003000103", "T01030105"]

    def test_malformed_literal_encodes_zero(self):
        program, generator, errors = run_passes("P START 0\n  LDA =X'1'\n  END\n")
        assert texts(program) == ["T000003000000"]
        assert [entry.line.opcode for entry in generator.listing] == ["START", "LDA", "END"]
        # reported once, by Pass I
        assert errors.error_count() == 1
        assert errors.of_type(UndefinedSymbolError) == []


# =============================================================================
# Text Record Packing
# =============================================================================

class TestRecordBreaks:

    def test_reserve_closes_record(self):
        source = "P START 0\n  LDA X\nX RESB 2\n  STA X\n  END\n"
        program, _, _ = run_passes(source)
        assert texts(program) == ["T000003000003", "T0005030C0003"]

    def test_cap_closes_record(self):
        source = "P START 0\n" + "  LDA X\n" * 4 + "X WORD 1\n  END\n"
        program, _, _ = run_passes(source, max_text_bytes=6)
        assert [r.byte_length for r in program.text_records] == [6, 6, 3]
        assert [r.start_address for r in program.text_records] == [0, 6, 12]

    def test_default_cap_is_thirty_bytes(self):
        source = "P START 0\n" + "  RSUB\n" * 12 + "  END\n"
        program, _, _ = run_passes(source)
        assert [r.byte_length for r in program.text_records] == [30, 6]

    def test_long_constant_is_split(self):
        source = "P START 0\n  BYTE C'" + "A" * 40 + "'\n  END\n"
        program, _, _ = run_passes(source)
        assert [r.byte_length for r in program.text_records] == [30, 10]
        assert program.text_records[1].start_address == 30
        assert program.memory_image() == b"A" * 40

    def test_malformed_data_leaves_a_gap(self):
        source = "P START 0\n  RSUB\n  WORD 1O\n  RSUB\n  END\n"
        program, generator, errors = run_passes(source)
        assert texts(program) == ["T0000034C0000", "T0006034C0000"]
        assert generator.listing[2].code == ERROR_MARKER
        assert generator.listing[2].is_error
        # reported once, by Pass I
        assert errors.error_count() == 1

    def test_unknown_opcode_does_not_break_record(self):
        source = "P START 0\n  RSUB\n  FOO\n  RSUB\n  END\n"
        program, _, _ = run_passes(source)
        assert texts(program) == ["T0000064C00004C0000"]

    @pytest.mark.parametrize("cap", [1, 2, 5, 30])
    def test_length_field_matches_payload(self, copy_source, cap):
        program, _, _ = run_passes(copy_source, max_text_bytes=cap)
        for record in program.text_records:
            text = record.to_text()
            assert int(text[5:7], 16) * 2 == len(text) - 7
            assert record.byte_length <= cap

    @pytest.mark.parametrize("cap", [1, 4, 30])
    def test_image_independent_of_cap(self, copy_source, cap):
        reference, _, _ = run_passes(copy_source)
        program, _, _ = run_passes(copy_source, max_text_bytes=cap)
        assert program.memory_image() == reference.memory_image()


class TestTextRecordPacker:

    def test_contiguous_fragments_share_a_record(self):
        packer = TextRecordPacker(30)
        packer.add(0x1000, "00100F")
        packer.add(0x1003, "181012")
        packer.flush()
        assert [r.to_text() for r in packer.records] == ["T10000600100F181012"]

    def test_gap_opens_new_record(self):
        packer = TextRecordPacker(30)
        packer.add(0x1000, "00")
        packer.add(0x1005, "01")
        packer.flush()
        assert [r.start_address for r in packer.records] == [0x1000, 0x1005]

    def test_flush_without_code_is_a_no_op(self):
        packer = TextRecordPacker(30)
        packer.flush()
        packer.add(0, "")
        packer.flush()
        assert packer.records == []


# =============================================================================
# End Record and Bounds
# =============================================================================

class TestEndRecord:

    def test_end_operand_is_execution_address(self):
        program, _, _ = run_passes("P START 100\n  RSUB\nGO RSUB\n  END GO\n")
        assert program.end.start_address == 0x103

    def test_no_end_operand_uses_start(self):
        program, _, _ = run_passes("P START 100\n  RSUB\n  END\n")
        assert program.end.to_text() == "E0100"

    def test_undefined_end_operand_warns(self):
        program, _, errors = run_passes("P START 100\n  RSUB\n  END NOWHERE\n")
        assert program.end.start_address == 0x100
        [warning] = errors.of_type(UndefinedSymbolError)
        assert warning.fallback == 0x100

    def test_records_lie_inside_program(self, copy_source):
        program, _, _ = run_passes(copy_source)
        start, end = program.start_address, program.start_address + program.program_length
        for record in program.text_records:
            assert start <= record.start_address
            assert record.end_address <= end


class TestAddressSpace:

    def test_code_past_64k_is_reported(self):
        program, generator, errors = run_passes("P START FFFE\n  RSUB\n  END\n")
        assert program.to_text() == "HP     FFFE000002\nEFFFE\n"
        assert generator.listing[1].is_error
        # one from each pass
        assert errors.error_count() == 2
        assert "runs past the 64K address space" in errors.diagnostics()[-1].message

    def test_operand_past_64k_is_reported(self):
        source = "P START 0\n  LDA X\n  RESB 65533\nX WORD 1\n  END\n"
        program, generator, errors = run_passes(source)
        assert texts(program) == []
        assert generator.listing[1].is_error
        messages = [d.message for d in errors.of_type(AssemblerError)]
        assert any(m.startswith("cannot encode LDA at 0000") for m in messages)
        assert errors.error_count() == 3

    def test_execution_address_past_64k_falls_back_to_start(self):
        source = "P START 0\n  RESB 65536\nX WORD 1\n  END X\n"
        program, _, errors = run_passes(source)
        assert program.to_text() == "HP     000000010000\nE0000\n"
        assert "execution address X" in errors.diagnostics()[-1].message
        assert errors.has_errors()
