"""
PE Image Loader
================

:class:`PeImage` composes the decoding stages into a single load:

    1. Header chain (DOS stub, PE signature, COFF, optional header)
    2. Section table
    3. Import descriptor walk
    4. Per-library thunk resolution

Stages 1-3 are fatal on error.  Stage 4 recovers per entry and reports
what it skipped as :class:`~tether.core.models.ThunkDiagnostic` entries.
Nothing survives between loads; every decoded view is rebuilt on each
call.
"""

from __future__ import annotations

from typing import Optional

from shared.logger import TetherLogger

from tether.core.models import ImageInfo, ImportReport, ImportTable, ThunkDiagnostic
from tether.parsers.cursor import ByteCursor
from tether.parsers.headers import ParsedHeaders, parse_headers
from tether.parsers.imports import walk_imports
from tether.parsers.limits import DEFAULT_LIMITS, LoaderLimits
from tether.parsers.sections import SectionTable
from tether.parsers.thunks import resolve_thunks

_default_logger = TetherLogger("image", configure=False)


class PeImage:
    """Import-directory view over a PE image held in memory.

    Usage::

        report = PeImage(raw_bytes).load()
        for library, symbols in report.imports.items():
            ...

    Args:
        data:   Complete image contents; borrowed, never copied wholesale.
        limits: Iteration caps.  Defaults to :data:`DEFAULT_LIMITS`.
        logger: Logger for diagnostics.  Defaults to the module logger, which
                propagates to the ``tether`` package logger.
    """

    def __init__(
        self,
        data: bytes | bytearray,
        *,
        limits: Optional[LoaderLimits] = None,
        logger: Optional[TetherLogger] = None,
    ) -> None:
        self._data = data
        self._limits = limits or DEFAULT_LIMITS
        self._logger = logger or _default_logger

    def load(self) -> ImportReport:
        """Decode the image and resolve its imports.

        Returns:
            :class:`ImportReport` with the image summary, the import table
            and any thunk diagnostics.

        Raises:
            LoadError: Any fatal structural failure (see
                :mod:`tether.core.errors`).
        """
        cursor = ByteCursor(self._data)
        headers = parse_headers(cursor)
        sections = SectionTable.parse(
            cursor, headers.coff, headers.section_table_offset
        )
        self._logger.debug(
            "%s image, %d mapped section(s), %d skipped",
            headers.optional.format_name,
            len(sections),
            sections.skipped,
        )

        imports: ImportTable = {}
        diagnostics: list[ThunkDiagnostic] = []
        pointer_width = headers.optional.pointer_width

        for library in walk_imports(cursor, headers.optional, sections, self._limits):
            resolution = resolve_thunks(
                cursor,
                sections,
                library.first_thunk_rva,
                pointer_width,
                self._limits,
                library=library.name,
            )
            imports.setdefault(library.name, set()).update(resolution.symbols)
            for diag in resolution.diagnostics:
                self._logger.warning(
                    "%s: skipped thunk entry %s (%s)",
                    diag.library,
                    "array" if diag.index is None else diag.index,
                    diag.message,
                )
            diagnostics.extend(resolution.diagnostics)

        return ImportReport(
            info=self._image_info(headers),
            imports=imports,
            diagnostics=diagnostics,
        )

    @staticmethod
    def _image_info(headers: ParsedHeaders) -> ImageInfo:
        coff = headers.coff
        optional = headers.optional
        return ImageInfo(
            machine=coff.machine,
            arch=coff.machine_name,
            bits=optional.pointer_width * 8,
            format=optional.format_name,
            number_of_sections=coff.number_of_sections,
            time_date_stamp=coff.time_date_stamp,
            is_dll=coff.is_dll,
            image_base=optional.image_base,
            size_of_headers=optional.size_of_headers,
        )


def load(
    data: bytes | bytearray, limits: Optional[LoaderLimits] = None
) -> ImportTable:
    """Resolve the import table of an in-memory PE image.

    Returns:
        Mapping of library name to the set of symbols imported from it.
    """
    return PeImage(data, limits=limits).load().imports
