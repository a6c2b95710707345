"""
Tether Data Models
===================

Pydantic-based models for import resolution results.

:class:`ByName` and :class:`ByOrdinal` are frozen, so they hash and
compare by tag and value and can live in sets: importing the same symbol
twice from one library collapses to a single entry.

References:
    - Microsoft. (2024). PE Format. Microsoft Learn.
    - Pydantic v2 documentation. https://docs.pydantic.dev/latest/
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


# ---------------------------------------------------------------------------
# Imported symbols
# ---------------------------------------------------------------------------

class ByName(BaseModel):
    """A function imported by its exported name."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["name"] = "name"
    name: str

    def __str__(self) -> str:
        return self.name


class ByOrdinal(BaseModel):
    """A function imported by its export ordinal."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["ordinal"] = "ordinal"
    ordinal: int = Field(ge=0)

    def __str__(self) -> str:
        return f"Ordinal_{self.ordinal}"


ImportedSymbol = Annotated[Union[ByName, ByOrdinal], Field(discriminator="kind")]

ImportTable = dict[str, set[ImportedSymbol]]


def symbol_sort_key(symbol: ByName | ByOrdinal) -> tuple[int, str, int]:
    """Names first (alphabetical), then ordinals (numeric)."""
    if isinstance(symbol, ByName):
        return (0, symbol.name, 0)
    return (1, "", symbol.ordinal)


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------

class ThunkDiagnostic(BaseModel):
    """A thunk entry that was skipped during resolution.

    Attributes:
        library: Library whose thunk array contained the entry.
        index:   Entry index in the array; ``None`` when the array itself
                 could not be located.
        value:   Raw thunk value (or the array RVA when ``index`` is None).
        kind:    Error name, e.g. ``"InvalidThunkEntry"``.
        message: Human-readable description.
    """
    library: str = ""
    index: Optional[int] = None
    value: int = 0
    kind: str = ""
    message: str = ""


# ---------------------------------------------------------------------------
# Image summary and report
# ---------------------------------------------------------------------------

class ImageInfo(BaseModel):
    """Header-level facts about the loaded image.

    Attributes:
        machine:            Raw COFF machine value.
        arch:               Architecture name (x86, x86_64, AArch64, ...).
        bits:               32 for PE32, 64 for PE32+.
        format:             ``"PE32"`` or ``"PE32+"``.
        number_of_sections: Section count declared in the COFF header.
        time_date_stamp:    Link timestamp (seconds since epoch).
        is_dll:             DLL characteristics flag.
        image_base:         Preferred load address.
        size_of_headers:    Combined size of all headers on disk.
    """
    machine: int = 0
    arch: str = "unknown"
    bits: int = 0
    format: str = ""
    number_of_sections: int = 0
    time_date_stamp: int = 0
    is_dll: bool = False
    image_base: int = 0
    size_of_headers: int = 0


class ImportReport(BaseModel):
    """Full result of one image load."""
    path: str = ""
    info: ImageInfo = Field(default_factory=ImageInfo)
    imports: dict[str, set[ImportedSymbol]] = Field(default_factory=dict)
    diagnostics: list[ThunkDiagnostic] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def library_count(self) -> int:
        return len(self.imports)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def symbol_count(self) -> int:
        return sum(len(symbols) for symbols in self.imports.values())
