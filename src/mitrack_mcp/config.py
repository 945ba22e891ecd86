"""Configuration for the mitrack ledger."""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

DEFAULT_HOME_DIR_NAME = ".mitrack"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")


def default_home() -> Path:
    """Default ledger home: ~/.mitrack"""
    return Path.home() / DEFAULT_HOME_DIR_NAME


@dataclass(frozen=True)
class LedgerConfig:
    """Ledger configuration."""

    home: Path
    # raise on unreadable records in listings instead of skipping them
    strict: bool = False
    alias_index: bool = True

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """Create config from environment variables.

        Recognized env vars:
        - MITRACK_HOME (default: ~/.mitrack)
        - MITRACK_STRICT (default: false)
        - MITRACK_ALIAS_INDEX (default: true)
        """
        home = os.environ.get("MITRACK_HOME")
        return cls(
            home=Path(home).expanduser() if home else default_home(),
            strict=_env_flag("MITRACK_STRICT", False),
            alias_index=_env_flag("MITRACK_ALIAS_INDEX", True),
        )

    def with_overrides(
        self, home: Optional[Path] = None, strict: Optional[bool] = None
    ) -> "LedgerConfig":
        """Return a copy with command-line overrides applied."""
        config = self
        if home is not None:
            config = replace(config, home=Path(home).expanduser())
        if strict is not None:
            config = replace(config, strict=strict)
        return config
