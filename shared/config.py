"""
Tether Configuration Management
================================

Centralised configuration using Python dataclasses and TOML persistence.

Sections of ``config.toml``::

    [global]
    log_level = "INFO"
    log_file = "tether.log"
    log_json = false

    [loader]
    max_file_size = 67108864
    max_descriptors = 4096
    max_thunks = 65536
    max_name_length = 4096

References:
    - Wiggins, A. (2011). The Twelve-Factor App. https://12factor.net/
    - TOML v1.0.0 Specification. https://toml.io/en/v1.0.0
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


_DEFAULT_CONFIG_PATH: Path = Path(__file__).resolve().parent.parent / "config.toml"


@dataclass(frozen=False, slots=True)
class LoaderConfig:
    """Resource caps applied to every image load.

    Section counts, descriptor counts and thunk-array lengths are all
    attacker-controlled; these bound the work done on hostile input.
    """

    max_file_size: int = 67_108_864  # 64 MiB
    max_descriptors: int = 4096
    max_thunks: int = 65536
    max_name_length: int = 4096

    def __post_init__(self) -> None:
        for name in ("max_file_size", "max_descriptors", "max_thunks", "max_name_length"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(
                    f"[loader] {name} must be a positive integer, got {value!r}"
                )


@dataclass(frozen=False, slots=True)
class GlobalConfig:
    """Logging and output settings."""

    log_level: str = "INFO"
    log_file: str | None = None
    log_json: bool = False
    debug: bool = False


@dataclass(frozen=False, slots=True)
class TetherConfig:
    """Master configuration.

    Usage:
        >>> config = TetherConfig.load()                 # default path
        >>> config = TetherConfig.load("custom.toml")    # explicit path
        >>> config.loader.max_thunks
        65536
    """

    global_settings: GlobalConfig = field(default_factory=GlobalConfig)
    loader: LoaderConfig = field(default_factory=LoaderConfig)

    @classmethod
    def load(cls, path: str | Path | None = None) -> TetherConfig:
        """Load configuration from a TOML file.

        Missing keys fall back to dataclass defaults and unknown keys are
        ignored.

        Raises:
            FileNotFoundError: *path* was given explicitly and does not exist.
            ValueError: The file is not valid TOML or a [loader] cap is not a
                positive integer.
        """
        config_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH

        if not config_path.exists():
            if path is not None:
                raise FileNotFoundError(
                    f"Configuration file not found: {config_path}"
                )
            return cls()

        with open(config_path, "rb") as fh:
            raw: dict[str, Any] = tomllib.load(fh)

        return cls(
            global_settings=cls._build_section(GlobalConfig, raw.get("global", {})),
            loader=cls._build_section(LoaderConfig, raw.get("loader", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def _build_section(cls: type, data: dict[str, Any]) -> Any:
        """Instantiate dataclass *cls* from the keys it declares."""
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}  # type: ignore[attr-defined]
        return cls(**{k: v for k, v in data.items() if k in valid_keys})

