"""
PE Header Chain Decoder
========================

Decodes the fixed part of a Portable Executable image: the DOS MZ stub,
the ``PE\\0\\0`` signature, the COFF file header and the optional header
in either of its two layouts.

The optional header is a genuine layout variant selected by its magic:

    - PE32  (0x10B): 4-byte image base and stack/heap fields, has
      ``BaseOfData``; 96 fixed bytes + 16 data directories = 224 bytes.
    - PE32+ (0x20B): 8-byte image base and stack/heap fields, no
      ``BaseOfData``; 112 fixed bytes + 16 data directories = 240 bytes.

Both decoded layouts expose the same accessor surface, so the rest of the
loader never branches on the variant except through ``pointer_width`` and
``ordinal_flag``.

References:
    - Microsoft. (2024). PE Format. Microsoft Learn.
      https://learn.microsoft.com/en-us/windows/win32/debug/pe-format
    - Pietrek, M. (1994). Peering Inside the PE: A Tour of the Win32
      Portable Executable File Format. Microsoft Systems Journal.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import ClassVar, NamedTuple, Union

from tether.core.errors import (
    BadDosSignatureError,
    BadPeSignatureError,
    UnknownOptionalHeaderLayoutError,
)
from tether.parsers.cursor import ByteCursor


# ---------------------------------------------------------------------------
# PE Constants
# ---------------------------------------------------------------------------

MZ_MAGIC: int = 0x5A4D          # "MZ" little-endian
PE_MAGIC: bytes = b"PE\x00\x00"
E_LFANEW_OFFSET: int = 0x3C

PE32_MAGIC: int = 0x10B
PE32PLUS_MAGIC: int = 0x20B

DOS_HEADER_SIZE: int = 64
COFF_HEADER_SIZE: int = 20
DATA_DIRECTORY_SIZE: int = 8
NUMBER_OF_DIRECTORY_ENTRIES: int = 16

# Machine types
IMAGE_FILE_MACHINE_UNKNOWN: int = 0x0
IMAGE_FILE_MACHINE_I386: int = 0x14C
IMAGE_FILE_MACHINE_ARM: int = 0x1C0
IMAGE_FILE_MACHINE_ARMNT: int = 0x1C4
IMAGE_FILE_MACHINE_IA64: int = 0x200
IMAGE_FILE_MACHINE_AMD64: int = 0x8664
IMAGE_FILE_MACHINE_ARM64: int = 0xAA64
IMAGE_FILE_MACHINE_RISCV32: int = 0x5032
IMAGE_FILE_MACHINE_RISCV64: int = 0x5064

_MACHINE_NAMES: dict[int, str] = {
    IMAGE_FILE_MACHINE_UNKNOWN: "Unknown",
    IMAGE_FILE_MACHINE_I386: "x86",
    IMAGE_FILE_MACHINE_ARM: "ARM",
    IMAGE_FILE_MACHINE_ARMNT: "ARM Thumb-2",
    IMAGE_FILE_MACHINE_IA64: "IA-64",
    IMAGE_FILE_MACHINE_AMD64: "x86_64",
    IMAGE_FILE_MACHINE_ARM64: "AArch64",
    IMAGE_FILE_MACHINE_RISCV32: "RISC-V 32",
    IMAGE_FILE_MACHINE_RISCV64: "RISC-V 64",
}

# COFF characteristics
IMAGE_FILE_EXECUTABLE_IMAGE: int = 0x0002
IMAGE_FILE_DLL: int = 0x2000


class DirectoryIndex(enum.IntEnum):
    """Fixed slots of the optional header's data directory array."""
    EXPORT = 0
    IMPORT = 1
    RESOURCE = 2
    EXCEPTION = 3
    SECURITY = 4
    BASERELOC = 5
    DEBUG = 6
    ARCHITECTURE = 7
    GLOBALPTR = 8
    TLS = 9
    LOAD_CONFIG = 10
    BOUND_IMPORT = 11
    IAT = 12
    DELAY_IMPORT = 13
    COM_DESCRIPTOR = 14
    RESERVED = 15


# ---------------------------------------------------------------------------
# Decoded structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class DosHeader:
    """The two DOS stub fields the loader actually consults."""

    e_magic: int
    e_lfanew: int


@dataclass(frozen=True, slots=True)
class CoffHeader:
    """COFF file header (IMAGE_FILE_HEADER), 20 bytes after the PE signature."""

    machine: int
    number_of_sections: int
    time_date_stamp: int
    pointer_to_symbol_table: int
    number_of_symbols: int
    size_of_optional_header: int
    characteristics: int

    STRUCT_FMT: ClassVar[str] = "<HHIIIHH"

    @property
    def machine_name(self) -> str:
        return _MACHINE_NAMES.get(self.machine, f"unknown(0x{self.machine:x})")

    @property
    def is_dll(self) -> bool:
        return bool(self.characteristics & IMAGE_FILE_DLL)

    @property
    def is_executable(self) -> bool:
        return bool(self.characteristics & IMAGE_FILE_EXECUTABLE_IMAGE)


@dataclass(frozen=True, slots=True)
class DataDirectory:
    """(virtual address, size) pair locating one well-known table."""

    virtual_address: int
    size: int

    @property
    def is_present(self) -> bool:
        return self.virtual_address != 0 or self.size != 0


_EMPTY_DIRECTORY = DataDirectory(0, 0)


def _data_directory(
    directories: tuple[DataDirectory, ...], count: int, index: int
) -> DataDirectory:
    # Slots beyond NumberOfRvaAndSizes are not consulted by the loader.
    if index < 0 or index >= min(count, len(directories)):
        return _EMPTY_DIRECTORY
    return directories[index]


@dataclass(frozen=True, slots=True)
class OptionalHeader32:
    """PE32 optional header (IMAGE_OPTIONAL_HEADER32)."""

    magic: int
    major_linker_version: int
    minor_linker_version: int
    size_of_code: int
    size_of_initialized_data: int
    size_of_uninitialized_data: int
    address_of_entry_point: int
    base_of_code: int
    base_of_data: int
    image_base: int
    section_alignment: int
    file_alignment: int
    major_os_version: int
    minor_os_version: int
    major_image_version: int
    minor_image_version: int
    major_subsystem_version: int
    minor_subsystem_version: int
    win32_version_value: int
    size_of_image: int
    size_of_headers: int
    checksum: int
    subsystem: int
    dll_characteristics: int
    size_of_stack_reserve: int
    size_of_stack_commit: int
    size_of_heap_reserve: int
    size_of_heap_commit: int
    loader_flags: int
    number_of_rva_and_sizes: int
    data_directories: tuple[DataDirectory, ...]

    STRUCT_FMT: ClassVar[str] = "<HBBIIIIIIIIIHHHHHHIIIIHHIIIIII"
    FIXED_SIZE: ClassVar[int] = 96
    SIZE: ClassVar[int] = 96 + NUMBER_OF_DIRECTORY_ENTRIES * DATA_DIRECTORY_SIZE
    format_name: ClassVar[str] = "PE32"
    pointer_width: ClassVar[int] = 4
    ordinal_flag: ClassVar[int] = 1 << 31

    def data_directory(self, index: int) -> DataDirectory:
        return _data_directory(
            self.data_directories, self.number_of_rva_and_sizes, index
        )


@dataclass(frozen=True, slots=True)
class OptionalHeader64:
    """PE32+ optional header (IMAGE_OPTIONAL_HEADER64).

    Differs from PE32 in field widths (8-byte image base and stack/heap
    fields) and in having no ``BaseOfData``.
    """

    magic: int
    major_linker_version: int
    minor_linker_version: int
    size_of_code: int
    size_of_initialized_data: int
    size_of_uninitialized_data: int
    address_of_entry_point: int
    base_of_code: int
    image_base: int
    section_alignment: int
    file_alignment: int
    major_os_version: int
    minor_os_version: int
    major_image_version: int
    minor_image_version: int
    major_subsystem_version: int
    minor_subsystem_version: int
    win32_version_value: int
    size_of_image: int
    size_of_headers: int
    checksum: int
    subsystem: int
    dll_characteristics: int
    size_of_stack_reserve: int
    size_of_stack_commit: int
    size_of_heap_reserve: int
    size_of_heap_commit: int
    loader_flags: int
    number_of_rva_and_sizes: int
    data_directories: tuple[DataDirectory, ...]

    STRUCT_FMT: ClassVar[str] = "<HBBIIIIIQIIHHHHHHIIIIHHQQQQII"
    FIXED_SIZE: ClassVar[int] = 112
    SIZE: ClassVar[int] = 112 + NUMBER_OF_DIRECTORY_ENTRIES * DATA_DIRECTORY_SIZE
    format_name: ClassVar[str] = "PE32+"
    pointer_width: ClassVar[int] = 8
    ordinal_flag: ClassVar[int] = 1 << 63

    def data_directory(self, index: int) -> DataDirectory:
        return _data_directory(
            self.data_directories, self.number_of_rva_and_sizes, index
        )


OptionalHeader = Union[OptionalHeader32, OptionalHeader64]

_LAYOUTS: dict[int, type[OptionalHeader32] | type[OptionalHeader64]] = {
    PE32_MAGIC: OptionalHeader32,
    PE32PLUS_MAGIC: OptionalHeader64,
}


class ParsedHeaders(NamedTuple):
    """Everything the header chain yields for the stages that follow."""
    dos: DosHeader
    coff: CoffHeader
    optional: OptionalHeader
    section_table_offset: int


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def parse_dos_header(cursor: ByteCursor) -> DosHeader:
    """Decode the DOS stub at offset 0.

    The whole 64-byte stub must be present before the magic is checked,
    so a truncated buffer always reports :class:`OutOfBoundsError`.
    """
    cursor.check(0, DOS_HEADER_SIZE)
    e_magic = cursor.u16(0)
    if e_magic != MZ_MAGIC:
        raise BadDosSignatureError(
            f"Not a DOS/PE file (bad magic: 0x{e_magic:04X})", offset=0
        )
    return DosHeader(e_magic=e_magic, e_lfanew=cursor.u32(E_LFANEW_OFFSET))


def parse_coff_header(cursor: ByteCursor, offset: int) -> CoffHeader:
    """Decode the 20-byte COFF file header at *offset*."""
    return CoffHeader(*cursor.unpack(CoffHeader.STRUCT_FMT, offset))


def parse_optional_header(
    cursor: ByteCursor, offset: int, declared_size: int
) -> OptionalHeader:
    """Decode the optional header at *offset*, dispatching on its magic.

    Args:
        cursor:        Cursor over the image.
        offset:        File offset of the optional header.
        declared_size: ``SizeOfOptionalHeader`` from the COFF header.

    Raises:
        UnknownOptionalHeaderLayoutError: Unknown magic, or a declared
            size that does not match the layout the magic selects.
    """
    magic = cursor.u16(offset)
    layout = _LAYOUTS.get(magic)
    if layout is None:
        raise UnknownOptionalHeaderLayoutError(
            f"Unknown optional header magic 0x{magic:04X}", offset=offset
        )
    if declared_size != layout.SIZE:
        raise UnknownOptionalHeaderLayoutError(
            f"SizeOfOptionalHeader {declared_size} does not match "
            f"{layout.format_name} layout ({layout.SIZE} bytes)",
            offset=offset,
        )

    fields = cursor.unpack(layout.STRUCT_FMT, offset)
    dd_offset = offset + layout.FIXED_SIZE
    directories = tuple(
        DataDirectory(*cursor.unpack("<II", dd_offset + i * DATA_DIRECTORY_SIZE))
        for i in range(NUMBER_OF_DIRECTORY_ENTRIES)
    )
    return layout(*fields, directories)


def parse_headers(cursor: ByteCursor) -> ParsedHeaders:
    """Walk DOS stub -> PE signature -> COFF header -> optional header.

    The returned ``section_table_offset`` is computed from the *declared*
    optional header length, not from the decoder's own structure size.
    """
    dos = parse_dos_header(cursor)

    signature = cursor.read(dos.e_lfanew, len(PE_MAGIC))
    if signature != PE_MAGIC:
        raise BadPeSignatureError(
            f"Missing PE signature at 0x{dos.e_lfanew:x} (found {signature!r})",
            offset=dos.e_lfanew,
        )

    coff_offset = dos.e_lfanew + len(PE_MAGIC)
    coff = parse_coff_header(cursor, coff_offset)

    optional_offset = coff_offset + COFF_HEADER_SIZE
    optional = parse_optional_header(
        cursor, optional_offset, coff.size_of_optional_header
    )

    return ParsedHeaders(
        dos=dos,
        coff=coff,
        optional=optional,
        section_table_offset=optional_offset + coff.size_of_optional_header,
    )
