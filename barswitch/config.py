"""
Configuration management for barswitch stores.

The configuration is stored as a TOML file in the store directory.
It names the host folders to look for, the title of the collections
root, and how the current-collection pointer is encoded.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

# tomli_w for writing TOML (tomllib is read-only)
import tomli_w

from .types import DEFAULT_POINTER_TAG, POINTER_SEPARATOR


CONFIG_FILENAME = "barswitch.toml"
CONFIG_VERSION = 1


@dataclass
class LayoutConfig:
    """Titles and markers used to find things in the host store."""
    active_slot_title: str = "Bookmarks Bar"
    other_root_title: str = "Other Bookmarks"
    collections_root_title: str = "BookmarkBars"
    pointer_tag: str = DEFAULT_POINTER_TAG
    pointer_url: str = "http://zoeetrope.com/en/bbs"
    default_collection: str = "Default"


@dataclass
class StoreConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    mirror_enabled: bool = True

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    @property
    def database_path(self) -> Path:
        """Path to the bookmark database."""
        return self.path / "bookmarks.db"

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def get_default_store_path() -> Path:
    """Store directory: BARSWITCH_STORE_PATH, else ~/.barswitch."""
    env = os.environ.get("BARSWITCH_STORE_PATH")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".barswitch"


def load_config(store_path: Path) -> StoreConfig:
    """
    Load configuration from a store directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = store_path / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    # Validate version
    version = data.get("store", {}).get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    defaults = LayoutConfig()
    section = data.get("layout", {})
    layout = LayoutConfig(**{
        name: str(section.get(name, getattr(defaults, name)))
        for name in LayoutConfig.__dataclass_fields__
    })
    if POINTER_SEPARATOR in layout.default_collection or not layout.default_collection:
        raise ValueError(f"Invalid default collection name: {layout.default_collection!r}")

    return StoreConfig(
        path=store_path,
        version=version,
        created=data.get("store", {}).get("created", ""),
        layout=layout,
        mirror_enabled=bool(data.get("mirror", {}).get("enabled", True)),
    )


def save_config(config: StoreConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    # Ensure directory exists
    config.path.mkdir(parents=True, exist_ok=True)

    layout = config.layout
    data = {
        "store": {
            "version": config.version,
            "created": config.created,
        },
        "layout": {
            name: getattr(layout, name)
            for name in LayoutConfig.__dataclass_fields__
        },
        "mirror": {
            "enabled": config.mirror_enabled,
        },
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(store_path: Path) -> StoreConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    config = StoreConfig(path=store_path)
    if config.exists():
        return load_config(store_path)
    save_config(config)
    return config
