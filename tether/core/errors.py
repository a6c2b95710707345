"""
Tether Error Taxonomy
======================

Every way a PE image can fail to load surfaces as a subclass of
:class:`LoadError`.  Malformed and malicious files are indistinguishable
at this level: both end up as one of the named errors below, never as a
``struct.error``, ``IndexError`` or an unchecked read.

Fatal errors (raised out of :meth:`tether.core.image.PeImage.load`):
    - :class:`OutOfBoundsError` / :class:`UnterminatedStringError` while
      establishing headers, sections or the descriptor array
    - :class:`BadDosSignatureError`, :class:`BadPeSignatureError`
    - :class:`UnknownOptionalHeaderLayoutError`
    - :class:`RvaNotMappedError` on the import directory itself
    - :class:`InvalidImportDescriptorError`

Recovered per thunk entry (recorded as diagnostics):
    - :class:`InvalidThunkEntryError`
    - :class:`InvalidImportByNameError`
"""

from __future__ import annotations

from typing import Optional


class LoadError(Exception):
    """Base class for all image decoding failures.

    Args:
        message: Human-readable description.
        offset:  File offset involved, when known.
        rva:     Relative virtual address involved, when known.
    """

    def __init__(
        self,
        message: str,
        *,
        offset: Optional[int] = None,
        rva: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.offset = offset
        self.rva = rva

    @property
    def kind(self) -> str:
        """Short error name without the ``Error`` suffix."""
        name = type(self).__name__
        return name[:-5] if name.endswith("Error") else name


class OutOfBoundsError(LoadError):
    """A read would start or end outside the image buffer."""


class UnterminatedStringError(LoadError):
    """No NUL terminator within the scan limit or before the buffer ends."""


class BadDosSignatureError(LoadError):
    """The image does not start with ``MZ``."""


class BadPeSignatureError(LoadError):
    """``e_lfanew`` does not point at ``PE\\0\\0``."""


class UnknownOptionalHeaderLayoutError(LoadError):
    """Optional header magic or declared size matches no known layout."""


class RvaNotMappedError(LoadError):
    """No section's virtual range covers the RVA."""


class InvalidImportDescriptorError(LoadError):
    """An import descriptor's library name cannot be read."""


class InvalidThunkEntryError(LoadError):
    """A thunk entry references an unmapped or out-of-bounds location."""


class InvalidImportByNameError(LoadError):
    """An import-by-name record carries an empty name."""


class ImageTooLargeError(LoadError):
    """The file exceeds the configured size budget."""
