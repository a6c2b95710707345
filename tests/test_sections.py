"""Tests for section table decoding and RVA translation."""

import struct

import pytest

from tether.core.errors import OutOfBoundsError, RvaNotMappedError
from tether.parsers.cursor import ByteCursor
from tether.parsers.headers import CoffHeader
from tether.parsers.sections import (
    IMAGE_SCN_CNT_CODE,
    IMAGE_SCN_MEM_EXECUTE,
    IMAGE_SCN_MEM_READ,
    SECTION_HEADER_SIZE,
    SectionHeader,
    SectionTable,
)


def make_section(
    name: bytes,
    virtual_address: int,
    size_of_raw_data: int,
    pointer_to_raw_data: int,
    virtual_size: int = 0,
    characteristics: int = IMAGE_SCN_MEM_READ,
) -> bytes:
    """Pack one 40-byte section header."""
    return struct.pack(
        "<8sIIIIIIHHI",
        name,
        virtual_size or size_of_raw_data,
        virtual_address,
        size_of_raw_data,
        pointer_to_raw_data,
        0, 0, 0, 0,
        characteristics,
    )


def make_coff(number_of_sections: int) -> CoffHeader:
    return CoffHeader(0x14C, number_of_sections, 0, 0, 0, 224, 0x0102)


def build_table(*headers: bytes) -> SectionTable:
    data = b"".join(headers)
    return SectionTable.parse(ByteCursor(data), make_coff(len(headers)), 0)


class TestSectionHeader:
    """Tests for individual section headers."""

    def test_parse_fields(self):
        raw = make_section(
            b".text", 0x1000, 0x600, 0x400, virtual_size=0x5F0,
            characteristics=IMAGE_SCN_CNT_CODE | IMAGE_SCN_MEM_EXECUTE | IMAGE_SCN_MEM_READ,
        )
        assert len(raw) == SECTION_HEADER_SIZE

        sec = SectionHeader(*struct.unpack(SectionHeader.STRUCT_FMT, raw))
        assert sec.name_str == ".text"
        assert sec.virtual_size == 0x5F0
        assert sec.virtual_address == 0x1000
        assert sec.size_of_raw_data == 0x600
        assert sec.pointer_to_raw_data == 0x400
        assert sec.characteristics & IMAGE_SCN_CNT_CODE

    def test_full_length_name(self):
        sec = SectionHeader(*struct.unpack(
            SectionHeader.STRUCT_FMT, make_section(b".textbss", 0x1000, 0, 0)
        ))
        assert sec.name_str == ".textbss"

    def test_range_is_half_open(self):
        sec = SectionHeader(*struct.unpack(
            SectionHeader.STRUCT_FMT, make_section(b".data", 0x2000, 0x200, 0x800)
        ))
        assert not sec.contains_rva(0x1FFF)
        assert sec.contains_rva(0x2000)
        assert sec.contains_rva(0x21FF)
        assert not sec.contains_rva(0x2200)
        assert sec.end_rva == 0x2200


class TestSectionTable:
    """Tests for table parsing and translation."""

    def test_translate(self):
        table = build_table(
            make_section(b".text", 0x1000, 0x200, 0x400),
            make_section(b".idata", 0x2000, 0x200, 0x600),
        )
        assert len(table) == 2
        assert table.translate(0x1000) == 0x400
        assert table.translate(0x1010) == 0x410
        assert table.translate(0x2004) == 0x604

    def test_unmapped_rva_raises(self):
        table = build_table(make_section(b".text", 0x1000, 0x200, 0x400))
        with pytest.raises(RvaNotMappedError) as exc_info:
            table.translate(0x1200)
        assert exc_info.value.rva == 0x1200
        assert table.find(0x1200) is None

    def test_virtual_size_does_not_extend_range(self):
        # Translation covers SizeOfRawData, not VirtualSize.
        table = build_table(
            make_section(b".bss", 0x3000, 0x200, 0x400, virtual_size=0x4000)
        )
        with pytest.raises(RvaNotMappedError):
            table.translate(0x3200)

    def test_first_covering_section_wins(self):
        table = build_table(
            make_section(b".first", 0x1000, 0x400, 0x400),
            make_section(b".second", 0x1100, 0x200, 0x1000),
        )
        assert table.find(0x1180).name_str == ".first"
        assert table.translate(0x1180) == 0x580

    def test_zero_address_sections_skipped(self):
        table = build_table(
            make_section(b".reloc", 0, 0x200, 0x400),
            make_section(b".text", 0x1000, 0x200, 0x600),
        )
        assert len(table) == 1
        assert table.skipped == 1
        assert [s.name_str for s in table] == [".text"]
        with pytest.raises(RvaNotMappedError):
            table.translate(0x10)

    def test_translated_offset_not_validated(self):
        # Raw data pointer far beyond any realistic buffer still translates.
        table = build_table(make_section(b".text", 0x1000, 0x200, 0xFFFF0000))
        assert table.translate(0x1004) == 0xFFFF0004

    def test_truncated_table_is_out_of_bounds(self):
        data = make_section(b".text", 0x1000, 0x200, 0x400)
        with pytest.raises(OutOfBoundsError):
            SectionTable.parse(ByteCursor(data), make_coff(2), 0)

    def test_empty_table(self):
        table = SectionTable.parse(ByteCursor(b""), make_coff(0), 0)
        assert len(table) == 0
        with pytest.raises(RvaNotMappedError):
            table.translate(0x1000)
