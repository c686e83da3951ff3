"""Per-repository land configuration stored in `.gitland/config.toml`."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import tomlkit

from gitland.core.errors import ConfigurationError
from gitland.core.models import LandStrategy

CONFIG_DIR_NAME = ".gitland"
CONFIG_FILE_NAME = "config.toml"

ONTO_KEY = "land.onto"
ONTO_REMOTE_KEY = "land.onto_remote"
STRATEGY_KEY = "land.strategy"
CONFIG_KEYS = (ONTO_KEY, ONTO_REMOTE_KEY, STRATEGY_KEY)


@dataclass(frozen=True)
class LandConfig:
    """In-memory representation of `.gitland/config.toml`.

    Example config:
      [land]
      onto = ["master"]
      onto_remote = "origin"
      strategy = "squash"
    """

    onto: list[str] = field(default_factory=list)
    onto_remote: str | None = None
    strategy: LandStrategy | None = None


def config_path(repo_root: Path) -> Path:
    return repo_root / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def parse_strategy(value: str) -> LandStrategy:
    """Parse a strategy name, rejecting anything but "squash" or "merge"."""
    try:
        return LandStrategy(value.lower())
    except ValueError:
        raise ConfigurationError(
            f'Unknown land strategy "{value}". Valid strategies are "squash" and "merge".'
        ) from None


def load_config(repo_root: Path) -> LandConfig:
    """Load land configuration if present; otherwise return defaults."""
    cfg_path = config_path(repo_root)
    if not cfg_path.exists():
        return LandConfig()

    data = tomllib.loads(cfg_path.read_text(encoding="utf-8"))
    land = data.get("land", {})

    onto = land.get("onto", [])
    if isinstance(onto, str):
        onto = [onto]
    onto_remote = land.get("onto_remote")
    strategy = land.get("strategy")

    return LandConfig(
        onto=[str(ref) for ref in onto],
        onto_remote=str(onto_remote) if onto_remote is not None else None,
        strategy=parse_strategy(str(strategy)) if strategy is not None else None,
    )


def save_config(repo_root: Path, config: LandConfig) -> None:
    """Save LandConfig to config.toml, preserving unrelated content.

    Creates the config directory if it doesn't exist.
    Uses tomlkit to preserve TOML formatting and comments.
    """
    cfg_path = config_path(repo_root)
    cfg_path.parent.mkdir(parents=True, exist_ok=True)

    if cfg_path.exists():
        doc = tomlkit.parse(cfg_path.read_text(encoding="utf-8"))
    else:
        doc = tomlkit.document()

    land = tomlkit.table()
    if config.onto:
        land["onto"] = list(config.onto)
    if config.onto_remote is not None:
        land["onto_remote"] = config.onto_remote
    if config.strategy is not None:
        land["strategy"] = config.strategy.value
    doc["land"] = land

    cfg_path.write_text(tomlkit.dumps(doc), encoding="utf-8")


def get_config_value(config: LandConfig, key: str) -> list[str]:
    """Return the display values for a config key (empty when unset)."""
    match key:
        case "land.onto":
            return list(config.onto)
        case "land.onto_remote":
            return [config.onto_remote] if config.onto_remote is not None else []
        case "land.strategy":
            return [config.strategy.value] if config.strategy is not None else []
        case _:
            raise ConfigurationError(f"Unknown configuration key: {key}")


def set_config_value(config: LandConfig, key: str, values: list[str]) -> LandConfig:
    """Return a new LandConfig with one key replaced."""
    match key:
        case "land.onto":
            return LandConfig(onto=values, onto_remote=config.onto_remote, strategy=config.strategy)
        case "land.onto_remote":
            if len(values) != 1:
                raise ConfigurationError(f"{key} takes exactly one value")
            return LandConfig(onto=config.onto, onto_remote=values[0], strategy=config.strategy)
        case "land.strategy":
            if len(values) != 1:
                raise ConfigurationError(f"{key} takes exactly one value")
            return LandConfig(
                onto=config.onto,
                onto_remote=config.onto_remote,
                strategy=parse_strategy(values[0]),
            )
        case _:
            raise ConfigurationError(f"Unknown configuration key: {key}")
