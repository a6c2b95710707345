"""
Import Directory Walker
========================

Walks the IMAGE_IMPORT_DESCRIPTOR array located by data directory 1 and
yields one record per imported library.

The array has no count: it ends at an all-zero descriptor.  That
terminator takes precedence over the directory's declared ``Size``, which
some linkers get wrong, but the walk never reads a descriptor that would
extend past the declared size either.

References:
    - Microsoft. (2024). PE Format -- The .idata Section.
      https://learn.microsoft.com/en-us/windows/win32/debug/pe-format#the-idata-section
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Iterator, NamedTuple

from shared.logger import TetherLogger

from tether.core.errors import InvalidImportDescriptorError, LoadError
from tether.parsers.cursor import ByteCursor
from tether.parsers.headers import DirectoryIndex, OptionalHeader
from tether.parsers.limits import DEFAULT_LIMITS, LoaderLimits
from tether.parsers.sections import SectionTable

logger = TetherLogger("parsers.imports", configure=False)

IMPORT_DESCRIPTOR_SIZE: int = 20


@dataclass(frozen=True, slots=True)
class ImportDescriptor:
    """IMAGE_IMPORT_DESCRIPTOR."""

    original_first_thunk: int  # Import lookup table RVA
    time_date_stamp: int
    forwarder_chain: int
    name: int  # RVA of the DLL name
    first_thunk: int  # Import address table RVA

    STRUCT_FMT: ClassVar[str] = "<IIIII"

    @property
    def is_terminator(self) -> bool:
        return not (
            self.original_first_thunk
            or self.time_date_stamp
            or self.forwarder_chain
            or self.name
            or self.first_thunk
        )


class ImportedLibrary(NamedTuple):
    """One library named by the import directory."""
    name: str
    first_thunk_rva: int
    descriptor: ImportDescriptor


def _read_library_name(
    cursor: ByteCursor,
    sections: SectionTable,
    descriptor: ImportDescriptor,
    index: int,
    limits: LoaderLimits,
) -> str:
    try:
        offset = sections.translate(descriptor.name)
        raw = cursor.read_cstring(offset, limits.max_name_length)
    except LoadError as exc:
        raise InvalidImportDescriptorError(
            f"Import descriptor {index}: unreadable library name at "
            f"RVA 0x{descriptor.name:x} ({exc})",
            rva=descriptor.name,
        ) from exc
    if not raw:
        raise InvalidImportDescriptorError(
            f"Import descriptor {index}: empty library name", rva=descriptor.name
        )
    return raw.decode("ascii", errors="backslashreplace")


def walk_imports(
    cursor: ByteCursor,
    optional: OptionalHeader,
    sections: SectionTable,
    limits: LoaderLimits = DEFAULT_LIMITS,
) -> Iterator[ImportedLibrary]:
    """Lazily yield ``(library_name, first_thunk_rva)`` records.

    Args:
        cursor:   Cursor over the image.
        optional: Decoded optional header (either layout).
        sections: Section table used for RVA translation.
        limits:   Caps on the number of descriptors and name length.

    Raises:
        RvaNotMappedError: The import directory RVA is unmapped.
        OutOfBoundsError:  A descriptor runs past the end of the buffer.
        InvalidImportDescriptorError: A library name cannot be read.
    """
    directory = optional.data_directory(DirectoryIndex.IMPORT)
    if directory.size == 0:
        return

    base = sections.translate(directory.virtual_address)
    declared = directory.size // IMPORT_DESCRIPTOR_SIZE

    for index in range(declared):
        if index >= limits.max_descriptors:
            logger.warning(
                "Import descriptor walk stopped at cap of %d entries",
                limits.max_descriptors,
            )
            return

        descriptor = ImportDescriptor(
            *cursor.unpack(
                ImportDescriptor.STRUCT_FMT, base + index * IMPORT_DESCRIPTOR_SIZE
            )
        )
        if descriptor.is_terminator:
            return

        name = _read_library_name(cursor, sections, descriptor, index, limits)
        yield ImportedLibrary(name, descriptor.first_thunk, descriptor)

    logger.debug(
        "Import directory size 0x%x exhausted before a terminator", directory.size
    )
