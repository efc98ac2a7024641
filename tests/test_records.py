# =============================================================================
# test_records.py - Object Program Record Tests
# =============================================================================
# Tests for the Header/Text/End record formats and the loader-side view.
#
# Test coverage includes:
#   - Exact text of each record type
#   - Parsing records back, including malformed records
#   - Reading a whole object file
#   - Memory image construction and its consistency checks
# =============================================================================

import pytest

from sicasm.assembler.records import (
    EndRecord,
    HeaderRecord,
    ObjectProgram,
    TextRecord,
    parse_record,
)
from sicasm.errors import ObjectFormatError


class TestHeaderRecord:

    def test_format(self):
        assert HeaderRecord("COPY", 0x1000, 0x1B).to_text() == "HCOPY  100000001B"

    def test_long_name_is_truncated(self):
        assert HeaderRecord("LONGNAME", 0, 1).to_text() == "HLONGNA0000000001"

    def test_empty_name_is_padded(self):
        assert HeaderRecord("", 0, 0).to_text() == "H      0000000000"

    def test_parse(self):
        assert HeaderRecord.from_text("HCOPY  100000001B") == HeaderRecord("COPY", 0x1000, 0x1B)

    def test_wrong_width(self):
        with pytest.raises(ObjectFormatError):
            HeaderRecord.from_text("HCOPY 100000001B")


class TestTextRecord:

    def test_format(self):
        record = TextRecord(0x1018, b"EOF")
        assert record.to_text() == "T101803454F46"
        assert record.byte_length == 3
        assert record.end_address == 0x101B

    def test_parse(self):
        assert parse_record("T101803454F46") == TextRecord(0x1018, b"EOF")

    def test_count_must_match_payload(self):
        with pytest.raises(ObjectFormatError):
            parse_record("T10180445")

    def test_non_hex_payload(self):
        with pytest.raises(ObjectFormatError):
            parse_record("T101801ZZ")

    def test_too_short(self):
        with pytest.raises(ObjectFormatError):
            parse_record("T10")


class TestEndRecord:

    def test_format(self):
        assert EndRecord(0x1000).to_text() == "E1000"

    def test_parse(self):
        assert parse_record("E1000\n") == EndRecord(0x1000)

    def test_bad_address(self):
        with pytest.raises(ObjectFormatError):
            parse_record("E10G0")


class TestParseRecord:

    @pytest.mark.parametrize("text", ["", "X1000", "M000000"])
    def test_unknown_or_empty(self, text):
        with pytest.raises(ObjectFormatError):
            parse_record(text)


class TestObjectProgram:

    def test_from_text(self, copy_object):
        program = ObjectProgram.from_text(copy_object)
        assert program.header.program_name == "COPY"
        assert len(program.text_records) == 2
        assert program.end.start_address == 0x1000
        assert program.to_text() == copy_object

    def test_records_in_order(self, copy_object):
        program = ObjectProgram.from_text(copy_object)
        kinds = [type(record) for record in program]
        assert kinds == [HeaderRecord, TextRecord, TextRecord, EndRecord]

    def test_header_must_come_first(self):
        with pytest.raises(ObjectFormatError):
            ObjectProgram.from_text("T101803454F46\nE1000\n")

    def test_end_must_come_last(self):
        with pytest.raises(ObjectFormatError):
            ObjectProgram.from_text("HCOPY  100000001B\nT101803454F46\n")

    def test_default_end_is_start(self):
        program = ObjectProgram(HeaderRecord("P", 0x200, 0))
        assert program.end == EndRecord(0x200)

    def test_memory_image(self, copy_object):
        image = ObjectProgram.from_text(copy_object).memory_image()
        assert len(image) == 0x1B
        assert image[0:3] == bytes.fromhex("00100F")
        assert image[0x12:0x18] == bytes(6)
        assert image[0x18:] == b"EOF"

    def test_memory_image_fill(self, copy_object):
        image = ObjectProgram.from_text(copy_object).memory_image(fill=0xFF)
        assert image[0x12:0x18] == b"\xff" * 6

    def test_record_outside_program(self):
        program = ObjectProgram(HeaderRecord("P", 0x100, 2), [TextRecord(0x101, b"\x01\x02")])
        with pytest.raises(ObjectFormatError):
            program.memory_image()

    def test_overlapping_records(self):
        program = ObjectProgram(
            HeaderRecord("P", 0, 4),
            [TextRecord(0, b"\x01\x02"), TextRecord(1, b"\x03")],
        )
        with pytest.raises(ObjectFormatError):
            program.memory_image()
