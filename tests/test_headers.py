"""Tests for the DOS / COFF / optional header chain."""

import struct

import pytest

from pe_test_utils import COFF_OFFSET, E_LFANEW, OPTIONAL_OFFSET, build_pe

from tether.core.errors import (
    BadDosSignatureError,
    BadPeSignatureError,
    OutOfBoundsError,
    UnknownOptionalHeaderLayoutError,
)
from tether.parsers.cursor import ByteCursor
from tether.parsers.headers import (
    IMAGE_FILE_MACHINE_AMD64,
    IMAGE_FILE_MACHINE_I386,
    MZ_MAGIC,
    PE32_MAGIC,
    PE32PLUS_MAGIC,
    DirectoryIndex,
    OptionalHeader32,
    OptionalHeader64,
    parse_dos_header,
    parse_headers,
)


class TestDosHeader:
    """Tests for the DOS stub."""

    def test_parse_valid_header(self):
        data = bytearray(64)
        struct.pack_into("<H", data, 0, MZ_MAGIC)
        struct.pack_into("<I", data, 0x3C, 0x80)

        header = parse_dos_header(ByteCursor(data))
        assert header.e_magic == MZ_MAGIC
        assert header.e_lfanew == 0x80

    def test_bad_magic_raises(self):
        data = bytearray(64)
        struct.pack_into("<H", data, 0, 0x1234)
        with pytest.raises(BadDosSignatureError, match="Not a DOS/PE file"):
            parse_dos_header(ByteCursor(data))

    @pytest.mark.parametrize("size", [0, 2, 63])
    def test_short_buffer_is_out_of_bounds(self, size):
        data = b"MZ" + bytes(max(size - 2, 0))
        with pytest.raises(OutOfBoundsError):
            parse_dos_header(ByteCursor(data[:size]))


class TestHeaderChain:
    """Tests for the full header walk."""

    def test_pe32_chain(self, kernel32_pe32):
        headers = parse_headers(ByteCursor(kernel32_pe32.data))

        assert headers.dos.e_lfanew == E_LFANEW
        assert headers.coff.machine == IMAGE_FILE_MACHINE_I386
        assert headers.coff.machine_name == "x86"
        assert headers.coff.number_of_sections == 1
        assert headers.coff.is_executable
        assert not headers.coff.is_dll

        opt = headers.optional
        assert isinstance(opt, OptionalHeader32)
        assert opt.magic == PE32_MAGIC
        assert opt.format_name == "PE32"
        assert opt.pointer_width == 4
        assert opt.ordinal_flag == 0x80000000
        assert opt.image_base == 0x400000
        assert opt.base_of_data == 0x1000
        assert opt.size_of_headers == 0x400
        assert len(opt.data_directories) == 16
        assert headers.section_table_offset == OPTIONAL_OFFSET + 224

    def test_pe32plus_chain(self, kernel32_pe32plus):
        headers = parse_headers(ByteCursor(kernel32_pe32plus.data))

        assert headers.coff.machine == IMAGE_FILE_MACHINE_AMD64
        assert headers.coff.machine_name == "x86_64"

        opt = headers.optional
        assert isinstance(opt, OptionalHeader64)
        assert opt.magic == PE32PLUS_MAGIC
        assert opt.format_name == "PE32+"
        assert opt.pointer_width == 8
        assert opt.ordinal_flag == 1 << 63
        assert opt.image_base == 0x140000000
        assert not hasattr(opt, "base_of_data")
        assert headers.section_table_offset == OPTIONAL_OFFSET + 240

    def test_import_directory_located(self, kernel32_pe32):
        headers = parse_headers(ByteCursor(kernel32_pe32.data))
        directory = headers.optional.data_directory(DirectoryIndex.IMPORT)
        assert directory.virtual_address == 0x1000
        assert directory.size == 40
        assert directory.is_present

    def test_directories_beyond_declared_count_are_empty(self):
        image = build_pe({"A.dll": ["f"]}, number_of_rva_and_sizes=1)
        headers = parse_headers(ByteCursor(image.data))
        directory = headers.optional.data_directory(DirectoryIndex.IMPORT)
        assert directory.size == 0
        assert not directory.is_present

    def test_dll_characteristic(self):
        image = build_pe({"A.dll": ["f"]}, dll=True)
        headers = parse_headers(ByteCursor(image.data))
        assert headers.coff.is_dll

    def test_bad_pe_signature(self, kernel32_pe32):
        data = kernel32_pe32.data
        data[E_LFANEW:E_LFANEW + 4] = b"NE\x00\x00"
        with pytest.raises(BadPeSignatureError):
            parse_headers(ByteCursor(data))

    def test_e_lfanew_past_end_is_out_of_bounds(self, kernel32_pe32):
        data = kernel32_pe32.data
        struct.pack_into("<I", data, 0x3C, len(data) - 2)
        with pytest.raises(OutOfBoundsError):
            parse_headers(ByteCursor(data))

    def test_truncated_coff_header(self, kernel32_pe32):
        data = bytes(kernel32_pe32.data[:COFF_OFFSET + 10])
        with pytest.raises(OutOfBoundsError):
            parse_headers(ByteCursor(data))


class TestOptionalHeaderLayout:
    """Tests for optional-header magic and size validation."""

    def test_unknown_magic(self, kernel32_pe32):
        kernel32_pe32.set_optional_magic(0x107)
        with pytest.raises(UnknownOptionalHeaderLayoutError, match="0x0107"):
            parse_headers(ByteCursor(kernel32_pe32.data))

    def test_pe32plus_magic_with_pe32_size(self, kernel32_pe32):
        kernel32_pe32.set_optional_magic(PE32PLUS_MAGIC)
        with pytest.raises(UnknownOptionalHeaderLayoutError, match="PE32\\+"):
            parse_headers(ByteCursor(kernel32_pe32.data))

    def test_declared_size_mismatch(self, kernel32_pe32plus):
        kernel32_pe32plus.set_optional_size(224)
        with pytest.raises(UnknownOptionalHeaderLayoutError):
            parse_headers(ByteCursor(kernel32_pe32plus.data))

    def test_layout_sizes(self):
        assert OptionalHeader32.SIZE == 224
        assert OptionalHeader64.SIZE == 240
        assert struct.calcsize(OptionalHeader32.STRUCT_FMT) == 96
        assert struct.calcsize(OptionalHeader64.STRUCT_FMT) == 112
