"""Configuration loading from environment variables and keepsake.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_SAVE_DIR = Path.home() / ".keepsake" / "saves"
_CONFIG_FILENAME = "keepsake.toml"


@dataclass
class StorageConfig:
    """Where save files live and how they are encoded on disk."""

    save_dir: Path = _DEFAULT_SAVE_DIR
    compression: str = "none"
    compress_level: int = 6
    password: str = ""


@dataclass
class KeepsakeConfig:
    """Top-level keepsake configuration."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> KeepsakeConfig:
    """Load configuration from environment variables and optional keepsake.toml.

    Priority: environment variables > keepsake.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.keepsake/
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".keepsake" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    storage_data = file_data.get("storage", {})

    config = KeepsakeConfig(
        storage=StorageConfig(
            save_dir=Path(
                os.getenv("KEEPSAKE_SAVE_DIR", storage_data.get("save_dir", str(_DEFAULT_SAVE_DIR)))
            ).expanduser(),
            compression=os.getenv("KEEPSAKE_COMPRESSION", storage_data.get("compression", "none")),
            compress_level=int(
                os.getenv("KEEPSAKE_COMPRESS_LEVEL", storage_data.get("compress_level", 6))
            ),
            password=os.getenv("KEEPSAKE_PASSWORD", storage_data.get("password", "")),
        ),
        log_level=os.getenv("KEEPSAKE_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
