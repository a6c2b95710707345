"""
Section Table and RVA Translation
==================================

Decodes the array of 40-byte IMAGE_SECTION_HEADER records that follows
the optional header and maps relative virtual addresses back to file
offsets.

Translation rules:
    - A section covers the half-open range
      ``[VirtualAddress, VirtualAddress + SizeOfRawData)``.
    - The first covering section in on-disk order wins.
    - Sections with ``VirtualAddress == 0`` are skipped entirely.
    - The translated offset is *not* validated here; the caller's next
      :class:`~tether.parsers.cursor.ByteCursor` read does that.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Iterator, Optional

from tether.core.errors import RvaNotMappedError
from tether.parsers.cursor import ByteCursor
from tether.parsers.headers import CoffHeader


# Section characteristics
IMAGE_SCN_CNT_CODE: int = 0x00000020
IMAGE_SCN_CNT_INITIALIZED_DATA: int = 0x00000040
IMAGE_SCN_CNT_UNINITIALIZED_DATA: int = 0x00000080
IMAGE_SCN_MEM_EXECUTE: int = 0x20000000
IMAGE_SCN_MEM_READ: int = 0x40000000
IMAGE_SCN_MEM_WRITE: int = 0x80000000

SECTION_HEADER_SIZE: int = 40


@dataclass(frozen=True, slots=True)
class SectionHeader:
    """PE/COFF section header (IMAGE_SECTION_HEADER)."""

    name: bytes  # 8 bytes, null-padded, not terminated when 8 chars long
    virtual_size: int
    virtual_address: int
    size_of_raw_data: int
    pointer_to_raw_data: int
    pointer_to_relocations: int
    pointer_to_linenumbers: int
    number_of_relocations: int
    number_of_linenumbers: int
    characteristics: int

    STRUCT_FMT: ClassVar[str] = "<8sIIIIIIHHI"

    @property
    def name_str(self) -> str:
        return self.name.split(b"\x00", 1)[0].decode("ascii", errors="replace")

    @property
    def end_rva(self) -> int:
        """Exclusive end of the range used for translation."""
        return self.virtual_address + self.size_of_raw_data

    def contains_rva(self, rva: int) -> bool:
        return self.virtual_address <= rva < self.end_rva

    def rva_to_offset(self, rva: int) -> int:
        return rva - self.virtual_address + self.pointer_to_raw_data


class SectionTable:
    """Ordered, translation-ready view over an image's sections.

    Usage::

        sections = SectionTable.parse(cursor, headers.coff,
                                      headers.section_table_offset)
        offset = sections.translate(import_dir.virtual_address)
    """

    __slots__ = ("_sections", "_skipped")

    def __init__(self, sections: list[SectionHeader], skipped: int = 0) -> None:
        self._sections = tuple(sections)
        self._skipped = skipped

    @classmethod
    def parse(
        cls, cursor: ByteCursor, coff: CoffHeader, start_offset: int
    ) -> SectionTable:
        """Decode ``coff.number_of_sections`` headers starting at *start_offset*.

        A section table that runs past the end of the buffer raises
        :class:`~tether.core.errors.OutOfBoundsError`.
        """
        sections: list[SectionHeader] = []
        skipped = 0
        for i in range(coff.number_of_sections):
            offset = start_offset + i * SECTION_HEADER_SIZE
            sec = SectionHeader(*cursor.unpack(SectionHeader.STRUCT_FMT, offset))
            if sec.virtual_address == 0:
                skipped += 1
                continue
            sections.append(sec)
        return cls(sections, skipped)

    def __iter__(self) -> Iterator[SectionHeader]:
        return iter(self._sections)

    def __len__(self) -> int:
        return len(self._sections)

    @property
    def skipped(self) -> int:
        """Number of zero-address sections left out of the table."""
        return self._skipped

    def find(self, rva: int) -> Optional[SectionHeader]:
        """Return the first section covering *rva*, or ``None``."""
        for sec in self._sections:
            if sec.contains_rva(rva):
                return sec
        return None

    def translate(self, rva: int) -> int:
        """Convert an RVA into a file offset.

        Raises:
            RvaNotMappedError: No section covers *rva*.
        """
        sec = self.find(rva)
        if sec is None:
            raise RvaNotMappedError(f"RVA 0x{rva:x} is not mapped by any section", rva=rva)
        return sec.rva_to_offset(rva)
