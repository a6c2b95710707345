"""Hard caps on the value-terminated walks performed during a load."""

from __future__ import annotations

from dataclasses import dataclass, fields


@dataclass(frozen=True, slots=True)
class LoaderLimits:
    """Iteration and scan caps applied on top of buffer bounds.

    Attributes:
        max_descriptors: Import descriptors read before the walk stops.
        max_thunks:      Thunk entries read per library.
        max_name_length: Bytes scanned for a NUL in library/symbol names.

    Raises:
        ValueError: A cap is not a positive integer.
    """

    max_descriptors: int = 4096
    max_thunks: int = 65536
    max_name_length: int = 4096

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{f.name} must be a positive integer, got {value!r}")


DEFAULT_LIMITS = LoaderLimits()
