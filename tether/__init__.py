"""
Tether -- PE Import Resolution
===============================

Decodes the header chain of Windows Portable Executable images (PE32 and
PE32+) straight from a byte buffer and resolves the import directory:
which DLLs the image depends on and which symbols, by name or by
ordinal, it takes from each.

Every offset and count in the file is treated as hostile.  Malformed
images surface as one of the errors in :mod:`tether.core.errors`, never
as an unchecked read.

Usage::

    from tether import load, ByName, ByOrdinal

    table = load(raw_bytes)
    assert ByName(name="ExitProcess") in table["KERNEL32.dll"]

References:
    - Microsoft. (2024). PE Format. Microsoft Learn.
    - Pietrek, M. (2002). An In-Depth Look into the Win32 Portable
      Executable File Format. MSDN Magazine.
"""

import logging

__version__ = "1.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from tether.core.errors import (  # noqa: E402
    BadDosSignatureError,
    BadPeSignatureError,
    InvalidImportByNameError,
    InvalidImportDescriptorError,
    InvalidThunkEntryError,
    LoadError,
    OutOfBoundsError,
    RvaNotMappedError,
    UnknownOptionalHeaderLayoutError,
    UnterminatedStringError,
)
from tether.core.image import PeImage, load  # noqa: E402
from tether.core.models import (  # noqa: E402
    ByName,
    ByOrdinal,
    ImportReport,
    ImportTable,
    ThunkDiagnostic,
)
from tether.parsers.limits import LoaderLimits  # noqa: E402

__all__ = [
    "BadDosSignatureError",
    "BadPeSignatureError",
    "ByName",
    "ByOrdinal",
    "ImportReport",
    "ImportTable",
    "InvalidImportByNameError",
    "InvalidImportDescriptorError",
    "InvalidThunkEntryError",
    "LoadError",
    "LoaderLimits",
    "OutOfBoundsError",
    "PeImage",
    "RvaNotMappedError",
    "ThunkDiagnostic",
    "UnknownOptionalHeaderLayoutError",
    "UnterminatedStringError",
    "load",
]
