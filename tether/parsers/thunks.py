"""
Thunk Array Resolver
=====================

Decodes one library's thunk array (import address table) into the set of
symbols it imports.

Each pointer-width entry is either:
    - an ordinal import, when the top bit (31 for PE32, 63 for PE32+) is
      set; the remaining bits are the ordinal;
    - an RVA to an IMAGE_IMPORT_BY_NAME record: a 2-byte hint followed by
      a NUL-terminated ASCII name.

The array ends at a zero entry.  Failures are contained per entry: a bad
entry is recorded as a diagnostic and skipped, and the remaining entries
of the same library are still resolved.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

from tether.core.errors import (
    InvalidImportByNameError,
    InvalidThunkEntryError,
    LoadError,
)
from tether.core.models import (
    ByName,
    ByOrdinal,
    ImportedSymbol,
    ThunkDiagnostic,
)
from tether.parsers.cursor import ByteCursor
from tether.parsers.limits import DEFAULT_LIMITS, LoaderLimits
from tether.parsers.sections import SectionTable

HINT_SIZE: int = 2

_ENTRY_FORMATS: dict[int, str] = {4: "<I", 8: "<Q"}


class ThunkResolution(NamedTuple):
    """Symbols resolved from one thunk array plus the entries skipped."""
    symbols: set[ImportedSymbol]
    diagnostics: list[ThunkDiagnostic]


def _diagnostic(
    library: str, index: Optional[int], value: int, error: LoadError
) -> ThunkDiagnostic:
    return ThunkDiagnostic(
        library=library,
        index=index,
        value=value,
        kind=error.kind,
        message=str(error),
    )


def resolve_entry(
    cursor: ByteCursor,
    sections: SectionTable,
    value: int,
    ordinal_flag: int,
    limits: LoaderLimits = DEFAULT_LIMITS,
) -> ImportedSymbol:
    """Decode a single non-zero thunk entry.

    Raises:
        InvalidThunkEntryError: The name record is unmapped, out of bounds
            or unterminated.
        InvalidImportByNameError: The name record holds an empty name.
    """
    if value & ordinal_flag:
        return ByOrdinal(ordinal=value & ~ordinal_flag)

    try:
        offset = sections.translate(value)
        hint = cursor.u16(offset)
        raw = cursor.read_cstring(offset + HINT_SIZE, limits.max_name_length)
    except LoadError as exc:
        raise InvalidThunkEntryError(
            f"Thunk entry 0x{value:x}: {exc}", rva=value, offset=exc.offset
        ) from exc

    if not raw:
        raise InvalidImportByNameError(
            f"Import-by-name at RVA 0x{value:x} has an empty name (hint {hint})",
            rva=value,
        )
    return ByName(name=raw.decode("ascii", errors="backslashreplace"))


def resolve_thunks(
    cursor: ByteCursor,
    sections: SectionTable,
    thunk_array_rva: int,
    pointer_width: int,
    limits: LoaderLimits = DEFAULT_LIMITS,
    library: str = "",
) -> ThunkResolution:
    """Resolve the thunk array at *thunk_array_rva*.

    Args:
        cursor:          Cursor over the image.
        sections:        Section table used for RVA translation.
        thunk_array_rva: RVA of the first thunk entry.
        pointer_width:   4 for PE32, 8 for PE32+.
        limits:          Caps on entries walked and name length.
        library:         Library name, used to label diagnostics.

    Returns:
        A :class:`ThunkResolution`; never raises for malformed entries.
    """
    fmt = _ENTRY_FORMATS[pointer_width]
    ordinal_flag = 1 << (pointer_width * 8 - 1)
    symbols: set[ImportedSymbol] = set()
    diagnostics: list[ThunkDiagnostic] = []

    try:
        base = sections.translate(thunk_array_rva)
    except LoadError as exc:
        error = InvalidThunkEntryError(
            f"Thunk array at 0x{thunk_array_rva:x}: {exc}", rva=thunk_array_rva
        )
        diagnostics.append(_diagnostic(library, None, thunk_array_rva, error))
        return ThunkResolution(symbols, diagnostics)

    for index in range(limits.max_thunks):
        try:
            (value,) = cursor.unpack(fmt, base + index * pointer_width)
        except LoadError as exc:
            # Array runs off the end of the file without a terminator.
            diagnostics.append(_diagnostic(library, index, 0, exc))
            break
        if value == 0:
            break
        try:
            symbols.add(resolve_entry(cursor, sections, value, ordinal_flag, limits))
        except LoadError as exc:
            diagnostics.append(_diagnostic(library, index, value, exc))
    else:
        diagnostics.append(
            ThunkDiagnostic(
                library=library,
                index=limits.max_thunks,
                value=0,
                kind="ThunkLimit",
                message=f"Thunk walk stopped at cap of {limits.max_thunks} entries",
            )
        )

    return ThunkResolution(symbols, diagnostics)
